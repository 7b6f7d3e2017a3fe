"""
Duplicate bill detection.

Two tiers:
    high   - same vendor and same vendor invoice number (trimmed,
             case-insensitive)
    medium - same vendor, total within +/- 1 %, bill date within 30 days

Advisory only. The check runs before the bill is written and is not part
of the insert's transaction, so two simultaneous identical submissions can
both pass.
"""
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Callable, List, Optional

from django.conf import settings
from django.utils.module_loading import import_string

from ..models import Bill
from .accounts import require_company
from .calculations import money, to_date, to_decimal

logger = logging.getLogger(__name__)

MATCH_LIMIT = 10


@dataclass
class BillCandidate:
    """The bill being entered, in the shape scorers compare against."""

    vendor_id: int
    vendor_invoice_number: str
    total: Decimal
    bill_date: object


@dataclass
class DuplicateMatch:
    bill_id: int
    bill_number: str
    vendor_invoice_number: str
    total: Decimal
    bill_date: object
    status: str
    similarity: float
    reason: str


@dataclass
class DuplicateCheck:
    is_duplicate: bool
    confidence: str  # "high" | "medium" | "low"
    matches: List[DuplicateMatch] = field(default_factory=list)

    def as_dict(self):
        return {
            "is_duplicate": self.is_duplicate,
            "confidence": self.confidence,
            "matches": [m.__dict__ for m in self.matches],
        }


def _date_window():
    return int(getattr(settings, "LEDGER_DUPLICATE_DATE_WINDOW_DAYS", 30))


def _amount_tolerance():
    return Decimal(str(getattr(settings, "LEDGER_DUPLICATE_AMOUNT_TOLERANCE", "0.01")))


# ---------- Scorers: score(candidate, existing) -> float in [0, 1] ----------
def weighted_similarity(candidate, existing):
    score = 0.0
    if candidate.vendor_id == existing.vendor_id:
        score += 0.3

    mine = (candidate.vendor_invoice_number or "").strip().lower()
    theirs = (existing.vendor_invoice_number or "").strip().lower()
    if mine and mine == theirs:
        score += 0.4
    elif mine and theirs and (mine in theirs or theirs in mine):
        score += 0.2

    larger = max(abs(candidate.total), abs(existing.total))
    if larger and abs(candidate.total - existing.total) <= larger * _amount_tolerance():
        score += 0.2

    if abs((candidate.bill_date - existing.bill_date).days) <= _date_window():
        score += 0.1

    return min(score, 1.0)


def closeness_similarity(candidate, existing):
    """Graded amount/date closeness, 0.6 / 0.4, for finer ranking."""
    larger = max(abs(candidate.total), abs(existing.total))
    if larger:
        amount_gap = float(abs(candidate.total - existing.total) / larger)
    else:
        amount_gap = 0.0
    amount_score = max(0.0, 1.0 - amount_gap / float(_amount_tolerance())) if amount_gap else 1.0

    window = _date_window()
    day_gap = abs((candidate.bill_date - existing.bill_date).days)
    date_score = max(0.0, 1.0 - day_gap / window) if window else 0.0

    return min(1.0, max(0.0, 0.6 * amount_score + 0.4 * date_score))


def get_scorer(scorer=None) -> Callable:
    if scorer is None:
        scorer = getattr(
            settings,
            "LEDGER_DUPLICATE_SCORER",
            "ledger_core.services.duplicates.weighted_similarity",
        )
    if isinstance(scorer, str):
        scorer = import_string(scorer)
    return scorer


def _match(bill, similarity, reason):
    return DuplicateMatch(
        bill_id=bill.pk,
        bill_number=bill.bill_number,
        vendor_invoice_number=bill.vendor_invoice_number,
        total=bill.total,
        bill_date=bill.bill_date,
        status=bill.status,
        similarity=similarity,
        reason=reason,
    )


def check_for_duplicate_bill(
    company,
    vendor_id,
    vendor_invoice_number,
    amount,
    bill_date,
    exclude_id: Optional[int] = None,
    scorer=None,
):
    require_company(company)
    amount = money(to_decimal(amount, "amount"))
    bill_date = to_date(bill_date, "bill_date")
    invoice_number = (vendor_invoice_number or "").strip()

    bills = (
        Bill.objects.for_company(company)
        .filter(vendor_id=vendor_id)
        .exclude(status="cancelled")
    )
    if exclude_id:
        bills = bills.exclude(pk=exclude_id)

    # High: exact vendor invoice number
    if invoice_number:
        exact = list(
            bills.filter(vendor_invoice_number=invoice_number).order_by("-bill_date")[
                :MATCH_LIMIT
            ]
        )
        if exact:
            return DuplicateCheck(
                is_duplicate=True,
                confidence="high",
                matches=[_match(b, 1.0, "Same vendor and invoice number") for b in exact],
            )

    # Medium: similar amount close in time
    tolerance = amount * _amount_tolerance()
    window = timedelta(days=_date_window())
    similar = list(
        bills.filter(
            total__gte=amount - tolerance,
            total__lte=amount + tolerance,
            bill_date__gte=bill_date - window,
            bill_date__lte=bill_date + window,
        ).order_by("-bill_date")[:MATCH_LIMIT]
    )
    if not similar:
        return DuplicateCheck(is_duplicate=False, confidence="low")

    score = get_scorer(scorer)
    candidate = BillCandidate(vendor_id, invoice_number, amount, bill_date)
    matches = []
    for bill in similar:
        # scores are clamped into (0, 1]: every medium hit is a real hit
        similarity = min(1.0, max(float(score(candidate, bill)), 0.01))
        matches.append(
            _match(bill, similarity, f"Similar amount ({bill.total}) within {_date_window()} days")
        )
    matches.sort(key=lambda m: m.similarity, reverse=True)

    logger.info(
        "Possible duplicate bill for vendor %s (%d similar) in company %s",
        vendor_id,
        len(matches),
        company.pk,
    )
    return DuplicateCheck(is_duplicate=True, confidence="medium", matches=matches)
