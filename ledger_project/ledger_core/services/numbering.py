from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from ..models import Bill, Invoice, JournalEntry, PurchaseOrder, SequenceCounter, Vendor

# kind -> (model, number field, zero padding)
_SEQUENCES = {
    "journal": (JournalEntry, "journal_number", 6),
    "bill": (Bill, "bill_number", 4),
    "invoice": (Invoice, "invoice_number", 4),
    "purchase_order": (PurchaseOrder, "po_number", 4),
    "vendor": (Vendor, "vendor_code", 4),
}

_FIXED_PREFIXES = {
    "journal": "JE",
    "bill": "BILL",
    "purchase_order": "PO",
    "vendor": "VEN",
}


def number_prefix(company, kind):
    # invoices carry the company's own prefix, e.g. ACM-2025-0001
    if kind == "invoice":
        return company.document_prefix
    return _FIXED_PREFIXES[kind]


def format_number(company, kind, year, value):
    _, _, width = _SEQUENCES[kind]
    return f"{number_prefix(company, kind)}-{year}-{value:0{width}d}"


def _existing_count(company, kind, year):
    """Rows numbered before the counter existed (imports, old data)."""
    model, field, _ = _SEQUENCES[kind]
    prefix = f"{number_prefix(company, kind)}-{year}-"
    return model.objects.filter(company=company, **{f"{field}__startswith": prefix}).count()


def _locked_counter(company, kind, year):
    qs = SequenceCounter.objects.select_for_update().filter(
        company=company, kind=kind, year=year
    )
    counter = qs.first()
    if counter is not None:
        return counter
    try:
        with transaction.atomic():
            SequenceCounter.objects.create(
                company=company,
                kind=kind,
                year=year,
                last_value=_existing_count(company, kind, year),
            )
    except IntegrityError:
        # another writer created it first, lock theirs
        pass
    return qs.get()


def allocate_number(company, kind, year=None):
    """
    Hand out the next document number for (company, kind, year).

    The counter row stays locked until the caller's transaction ends, so
    numbers are gap free for committed documents and never collide.
    """
    if kind not in _SEQUENCES:
        raise ValueError(f"Unknown sequence kind: {kind}")
    year = year or timezone.localdate().year

    with transaction.atomic():
        counter = _locked_counter(company, kind, year)
        counter.last_value = F("last_value") + 1
        counter.save(update_fields=["last_value"])
        counter.refresh_from_db(fields=["last_value"])

    return format_number(company, kind, year, counter.last_value)
