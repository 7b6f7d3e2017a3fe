from decimal import Decimal

from django.core.exceptions import ValidationError


class LedgerError(ValidationError):
    """Base for expected domain failures.

    Subclasses ValidationError so model clean() errors and service errors
    are handled in one place (api.service_result, admin actions).
    """

    default_code = "invalid"

    def __init__(self, message, code=None, params=None):
        super().__init__(message, code=code or self.default_code, params=params)


class MissingCompanyError(LedgerError):
    default_code = "no_company"

    def __init__(self, message="No organization selected for this operation"):
        super().__init__(message)


class UnbalancedJournalError(LedgerError):
    """Raised when a journal's debits and credits differ by more than the tolerance."""

    default_code = "unbalanced"

    def __init__(self, total_debits, total_credits):
        self.total_debits = Decimal(total_debits)
        self.total_credits = Decimal(total_credits)
        super().__init__(
            f"Journal does not balance. Total Debits: {self.total_debits:.2f}, "
            f"Total Credits: {self.total_credits:.2f}"
        )


class InvalidStateError(LedgerError):
    """Operation not allowed in the document's / journal's current status."""

    default_code = "invalid_state"


class PeriodClosedError(InvalidStateError):
    default_code = "period_closed"

    def __init__(self, message=None):
        super().__init__(
            message
            or "Transaction date falls outside an open period. Create or open a "
            "period for this date, or post without period control."
        )


class SystemAccountError(LedgerError):
    default_code = "system_account"


class DuplicateAccountCodeError(LedgerError):
    default_code = "duplicate_code"

    def __init__(self, message="Account code already exists"):
        super().__init__(message)


class GLAccountMissingError(LedgerError):
    """A well-known account needed for auto posting is not in the chart."""

    default_code = "gl_account_missing"


class PaymentAmountError(LedgerError):
    default_code = "invalid_amount"


class DuplicateBillError(LedgerError):
    """Raised only when the caller asks for duplicates to be blocked."""

    default_code = "duplicate_bill"

    def __init__(self, check):
        self.check = check
        super().__init__(
            f"Possible duplicate bill ({check.confidence} confidence, "
            f"{len(check.matches)} match(es))"
        )
