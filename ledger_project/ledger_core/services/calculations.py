import hashlib
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import List, Optional

from django.utils import timezone
from django.utils.dateparse import parse_date

from ..exceptions import LedgerError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

AGING_BUCKETS = ("Current", "1-30", "31-60", "61-90", "90+")


def money(value) -> Decimal:
    """Round to cents, half up."""
    try:
        return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError):
        raise LedgerError(f"{value!r} is not a valid amount")


def to_decimal(value, field_name="amount") -> Decimal:
    if value is None or value == "":
        return ZERO
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise LedgerError(f"{field_name} must be a number")
    # NaN and Infinity parse, but cannot be compared or rounded
    if not number.is_finite():
        raise LedgerError(f"{field_name} must be a number")
    return number


def to_date(value, field_name="date", required=True) -> Optional[date]:
    """Accept a date, a datetime or an ISO string (JSON payloads)."""
    if value is None or value == "":
        if required:
            raise LedgerError(f"{field_name} is required")
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        parsed = parse_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise LedgerError(f"{field_name} must be a date (YYYY-MM-DD)")
    return parsed


@dataclass
class LineAmount:
    description: str
    quantity: Decimal
    unit_price: Decimal
    amount: Decimal
    extra: dict = field(default_factory=dict)


@dataclass
class TaxAmount:
    tax_name: str
    tax_percentage: Decimal
    tax_amount: Decimal
    is_withholding_tax: bool = False


@dataclass
class DocumentAmounts:
    lines: List[LineAmount]
    taxes: List[TaxAmount]
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal


def calculate_document_amounts(lines, taxes=None) -> DocumentAmounts:
    """
    Price a bill / invoice from raw line and tax dicts.

    amount = quantity * unit_price per line, subtotal = sum of amounts,
    every tax = subtotal * pct / 100 (never compounded), total = subtotal + taxes.
    """
    if not lines:
        raise LedgerError("At least one line item is required")
    if not isinstance(lines, (list, tuple)) or not isinstance(taxes or [], (list, tuple)):
        raise LedgerError("Line items and taxes must be lists")

    priced = []
    for i, raw in enumerate(lines, start=1):
        if not isinstance(raw, dict):
            raise LedgerError(f"Line {i} must be an object")
        description = (raw.get("description") or "").strip()
        if not description:
            raise LedgerError(f"Line {i}: description is required")
        quantity = to_decimal(raw.get("quantity", 1), f"Line {i} quantity")
        unit_price = to_decimal(raw.get("unit_price"), f"Line {i} unit_price")
        if quantity <= 0:
            raise LedgerError(f"Line {i}: quantity must be greater than zero")
        if unit_price < 0:
            raise LedgerError(f"Line {i}: unit price cannot be negative")
        extra = {k: v for k, v in raw.items() if k not in ("description", "quantity", "unit_price", "amount")}
        priced.append(
            LineAmount(description, quantity, unit_price, money(quantity * unit_price), extra)
        )

    subtotal = money(sum((line.amount for line in priced), ZERO))

    tax_rows = []
    for i, raw in enumerate(taxes or [], start=1):
        if not isinstance(raw, dict):
            raise LedgerError(f"Tax {i} must be an object")
        pct = to_decimal(raw.get("tax_percentage"), "tax_percentage")
        if pct < 0:
            raise LedgerError("Tax percentage cannot be negative")
        tax_rows.append(
            TaxAmount(
                tax_name=(raw.get("tax_name") or "Tax").strip(),
                tax_percentage=pct,
                tax_amount=money(subtotal * pct / Decimal("100")),
                is_withholding_tax=bool(raw.get("is_withholding_tax", False)),
            )
        )
    tax_amount = money(sum((t.tax_amount for t in tax_rows), ZERO))

    return DocumentAmounts(
        lines=priced,
        taxes=tax_rows,
        subtotal=subtotal,
        tax_amount=tax_amount,
        total=subtotal + tax_amount,
    )


def duplicate_check_hash(vendor_id, vendor_invoice_number, amount) -> str:
    normalized = (vendor_invoice_number or "").lower().strip()
    raw = f"{vendor_id}-{normalized}-{money(amount):.2f}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def days_past_due(due_date, today=None) -> int:
    if due_date is None:
        return 0
    today = today or timezone.localdate()
    return (today - due_date).days


def aging_bucket(due_date, today=None) -> str:
    days = days_past_due(due_date, today)
    if days <= 0:
        return "Current"
    if days <= 30:
        return "1-30"
    if days <= 60:
        return "31-60"
    if days <= 90:
        return "61-90"
    return "90+"
