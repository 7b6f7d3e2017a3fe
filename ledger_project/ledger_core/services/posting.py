"""
Automatic GL recognition of subledger documents.

    Bill approved      Dr 6000 Expenses             / Cr 2000 Accounts Payable
    Invoice sent       Dr 1200 Accounts Receivable  / Cr 4000 Sales Revenue

One journal per document, keyed on (company, source, source_id). Posting
runs after the document's own transaction has committed; a failure here is
reported, never rolled back into the document.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from ..models import Bill, Invoice, JournalEntry
from .accounts import (
    EXPENSE_ACCOUNT,
    PAYABLE_ACCOUNT,
    RECEIVABLE_ACCOUNT,
    REVENUE_ACCOUNT,
    get_system_account,
    require_company,
)
from .audit_helper import log_action
from .journals import create_source_journal, find_source_journal

logger = logging.getLogger(__name__)

PAYABLES = "payables"
RECEIVABLES = "receivables"


@dataclass
class GLPosting:
    posted: bool
    journal: Optional[JournalEntry] = None
    already_posted: bool = False
    warning: Optional[str] = None


def post_bill_journal(company, bill, user=None):
    """Dr Expense / Cr AP for bill.total. Returns (journal, created)."""
    expense = get_system_account(company, EXPENSE_ACCOUNT)
    payable = get_system_account(company, PAYABLE_ACCOUNT)
    data = {
        "transaction_date": bill.bill_date,
        "description": f"Bill Approval: {bill.bill_number}",
        "reference": bill.bill_number,
        "status": "posted",
        "lines": [
            {
                "account_id": expense.pk,
                "debit": bill.total,
                "description": f"Bill Expense - {bill.vendor_invoice_number}",
                "entity_type": "vendor",
                "entity_id": bill.vendor_id,
            },
            {
                "account_id": payable.pk,
                "credit": bill.total,
                "description": f"Accounts Payable - {bill.vendor.name}",
                "entity_type": "vendor",
                "entity_id": bill.vendor_id,
            },
        ],
    }
    return create_source_journal(company, data, user, source=PAYABLES, source_id=bill.pk)


def post_invoice_journal(company, invoice, user=None):
    """Dr AR / Cr Revenue for invoice.total. Returns (journal, created)."""
    receivable = get_system_account(company, RECEIVABLE_ACCOUNT)
    revenue = get_system_account(company, REVENUE_ACCOUNT)
    data = {
        "transaction_date": invoice.invoice_date,
        "description": f"Invoice Sent: {invoice.invoice_number}",
        "reference": invoice.invoice_number,
        "status": "posted",
        "lines": [
            {
                "account_id": receivable.pk,
                "debit": invoice.total,
                "description": f"Accounts Receivable - {invoice.customer.name}",
                "entity_type": "customer",
                "entity_id": invoice.customer_id,
            },
            {
                "account_id": revenue.pk,
                "credit": invoice.total,
                "description": f"Sales Revenue - {invoice.invoice_number}",
                "entity_type": "customer",
                "entity_id": invoice.customer_id,
            },
        ],
    }
    return create_source_journal(company, data, user, source=RECEIVABLES, source_id=invoice.pk)


def _post(company, document, user, post_func):
    with transaction.atomic():
        journal, created = post_func(company, document, user)
        if created:
            log_action(
                action="GL Posted",
                instance=document,
                user=user,
                company=company,
                description=f"Posted to GL as {journal.journal_number}",
            )
    return journal, created


def _post_best_effort(company, document, user, post_func, label):
    try:
        journal, created = _post(company, document, user, post_func)
    except ValidationError as exc:
        message = "; ".join(exc.messages)
        logger.warning("GL posting of %s %s failed: %s", label, document.pk, message)
        return GLPosting(
            posted=False,
            warning=f"{label.capitalize()} saved but not yet posted to GL: {message}",
        )
    except DatabaseError:
        logger.exception("GL posting of %s %s failed", label, document.pk)
        return GLPosting(
            posted=False,
            warning=f"{label.capitalize()} saved but not yet posted to GL: database error",
        )
    return GLPosting(posted=True, journal=journal, already_posted=not created)


def post_bill_best_effort(company, bill, user=None):
    return _post_best_effort(company, bill, user, post_bill_journal, "bill")


def post_invoice_best_effort(company, invoice, user=None):
    return _post_best_effort(company, invoice, user, post_invoice_journal, "invoice")


def post_bill_strict(company, bill, user=None):
    journal, created = _post(company, bill, user, post_bill_journal)
    return GLPosting(posted=True, journal=journal, already_posted=not created)


def post_invoice_strict(company, invoice, user=None):
    journal, created = _post(company, invoice, user, post_invoice_journal)
    return GLPosting(posted=True, journal=journal, already_posted=not created)


def gl_status(company, source, source_id):
    journal = find_source_journal(company, source, source_id)
    if journal is None:
        return {"posted": False, "posted_at": None, "journal_number": None, "journal_id": None}
    return {
        "posted": journal.status == "posted",
        "posted_at": journal.posted_at,
        "journal_number": journal.journal_number,
        "journal_id": journal.pk,
    }


def _unposted(company, model, statuses, source):
    posted_ids = set(
        JournalEntry.objects.for_company(company)
        .filter(source=source, source_id__isnull=False)
        .values_list("source_id", flat=True)
    )
    return [
        doc
        for doc in model.objects.for_company(company).filter(status__in=statuses).order_by("id")
        if str(doc.pk) not in posted_ids
    ]


def post_pending_documents(company, user=None):
    """
    Retry sweep: post every recognized bill / invoice that has no journal.

    Nothing schedules this on its own; run it from the celery task or by
    hand after fixing whatever made the original posting fail.
    """
    require_company(company)
    summary = {"bills_posted": 0, "invoices_posted": 0, "failures": []}

    for bill in _unposted(company, Bill, Bill.POSTABLE_STATUSES, PAYABLES):
        result = post_bill_best_effort(company, bill, user)
        if result.posted:
            summary["bills_posted"] += 1
        else:
            summary["failures"].append(result.warning)

    for invoice in _unposted(company, Invoice, Invoice.POSTABLE_STATUSES, RECEIVABLES):
        result = post_invoice_best_effort(company, invoice, user)
        if result.posted:
            summary["invoices_posted"] += 1
        else:
            summary["failures"].append(result.warning)

    logger.info(
        "GL sweep for company %s: %d bills, %d invoices posted, %d failures",
        company.pk,
        summary["bills_posted"],
        summary["invoices_posted"],
        len(summary["failures"]),
    )
    return summary
