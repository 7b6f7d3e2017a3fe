import logging

from django.db import transaction
from django.utils import timezone

from ..exceptions import LedgerError, PeriodClosedError
from ..models import Period
from ..models.period import PERIOD_STATUS
from .accounts import require_company
from .audit_helper import log_action
from .calculations import to_date

logger = logging.getLogger(__name__)

PERIOD_STATUSES = tuple(code for code, _ in PERIOD_STATUS)


def create_period(company, data, user=None):
    require_company(company)
    status = data.get("status", "open")
    if status not in PERIOD_STATUSES:
        raise LedgerError(f"Unknown period status: {status}")

    with transaction.atomic():
        period = Period(
            company=company,
            name=(data.get("name") or "").strip(),
            start_date=to_date(data.get("start_date"), "start_date"),
            end_date=to_date(data.get("end_date"), "end_date"),
            status=status,
            is_year_end=bool(data.get("is_year_end", False)),
        )
        if status != "open":
            period.closed_by = user
            period.closed_at = timezone.now()
        period.save()
        log_action(
            action="period.create",
            instance=period,
            user=user,
            company=company,
            description=f"Created period {period.name}",
        )
    return period


def update_period_status(company, period_id, status, user=None):
    require_company(company)
    if status not in PERIOD_STATUSES:
        raise LedgerError(f"Unknown period status: {status}")

    with transaction.atomic():
        period = Period.objects.for_company(company).select_for_update().get(pk=period_id)
        old_status = period.status
        period.status = status
        if status == "open":
            period.closed_by = None
            period.closed_at = None
        elif old_status == "open" or period.closed_at is None:
            period.closed_by = user
            period.closed_at = timezone.now()
        period.save()
        log_action(
            action="period.status",
            instance=period,
            user=user,
            company=company,
            description=f"Period {period.name}: {old_status} -> {status}",
            changes={"status": [old_status, status]},
        )

    logger.info("Period %s of company %s is now %s", period.name, company.pk, status)
    return period


def list_periods(company):
    require_company(company)
    return list(Period.objects.for_company(company).order_by("-start_date"))


def find_open_period(company, day):
    return (
        Period.objects.for_company(company)
        .filter(status="open", start_date__lte=day, end_date__gte=day)
        .order_by("-start_date")
        .first()
    )


def check_period_control(company, day):
    """
    Posting date gate.
    Companies that never defined a period post freely; once one exists,
    the date must fall inside an open period.
    """
    if not Period.objects.for_company(company).exists():
        return None
    period = find_open_period(company, day)
    if period is None:
        raise PeriodClosedError()
    return period
