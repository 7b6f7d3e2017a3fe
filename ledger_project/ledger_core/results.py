import functools
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from django.core.exceptions import ObjectDoesNotExist, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ServiceResult:
    """Discriminated outcome of a public ledger operation.

    ok=True  -> data holds the payload, error/code are None
    ok=False -> error holds a user-facing message, code a stable key
    warnings carry non-blocking problems (e.g. GL posting failed after
    the document itself was saved).
    """

    ok: bool
    data: Any = None
    error: Optional[str] = None
    code: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def success(cls, data=None, warnings=None):
        return cls(ok=True, data=data, warnings=list(warnings or []))

    @classmethod
    def failure(cls, error, code="validation"):
        return cls(ok=False, error=error, code=code)


class Outcome:
    """Payload plus warnings, returned by services that can partially fail."""

    def __init__(self, value, warnings=None):
        self.value = value
        self.warnings = list(warnings or [])


def _error_code(exc: ValidationError) -> str:
    if hasattr(exc, "error_dict"):
        return "validation"
    return getattr(exc, "code", None) or "validation"


def service_result(func):
    """Turn a raising service into one returning ServiceResult.

    Applied on top of services that open their own transaction.atomic()
    block, so by the time an error is converted the transaction has already
    rolled back. Database and programming errors are not caught.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            value = func(*args, **kwargs)
        except ValidationError as exc:
            message = "; ".join(exc.messages)
            logger.info("%s rejected: %s", func.__name__, message)
            return ServiceResult.failure(message, code=_error_code(exc))
        except ObjectDoesNotExist as exc:
            # id/company mismatch lands here as well: no existence leak
            logger.info("%s: not found (%s)", func.__name__, exc)
            return ServiceResult.failure("Not found", code="not_found")

        if isinstance(value, Outcome):
            return ServiceResult.success(value.value, warnings=value.warnings)
        return ServiceResult.success(value)

    return wrapper
