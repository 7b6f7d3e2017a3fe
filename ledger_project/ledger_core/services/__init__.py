"""Business operations.

Functions here raise ledger_core.exceptions errors (ValidationError family)
and take the company explicitly. ledger_core.api wraps them into
ServiceResult values for callers that want a discriminated result.
"""
