from typing import Optional

from ..exceptions import MissingCompanyError
from ..models import ActivityLog, Company


def log_action(
    *,
    action: str,
    instance,
    user=None,
    company: Optional[Company] = None,
    description: str = "",
    changes: dict | None = None,
):
    """
    Append one ActivityLog row.
    Runs inside the caller's transaction, so a rolled back operation
    leaves no trail either.
    """
    if company is None:
        company = getattr(instance, "company", None)

    # anonymous / system users are stored as NULL
    if user is not None and not getattr(user, "is_authenticated", False):
        user = None

    return ActivityLog.objects.create(
        company=company,
        user=user,
        action=action,
        object_type=instance.__class__.__name__,
        object_id=str(instance.pk),
        description=description,
        changes=changes,
    )


def get_activity_log(company, instance=None, *, object_type=None, object_id=None, limit=20):
    """
    Newest-first activity of a company.

    Narrow it to one object by passing the instance, or an object_type
    (with an optional object_id) when only the id is known.
    """
    if company is None:
        raise MissingCompanyError()
    entries = ActivityLog.objects.for_company(company).select_related("user")
    if instance is not None:
        object_type, object_id = instance.__class__.__name__, instance.pk
    if object_type:
        entries = entries.filter(object_type=object_type)
    if object_id is not None:
        entries = entries.filter(object_id=str(object_id))
    return list(entries.order_by("-created_at", "-id")[:limit])
