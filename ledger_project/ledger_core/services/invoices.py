import logging

from django.db import transaction
from django.utils import timezone

from ..exceptions import InvalidStateError
from ..models import Customer, Invoice, InvoiceLineItem, InvoiceTax
from ..results import Outcome
from .accounts import require_company
from .audit_helper import log_action
from .calculations import calculate_document_amounts, to_date
from .documents import default_due_date, replace_items, resolve_currency
from .notifications import get_notifier, notify
from .numbering import allocate_number
from .posting import RECEIVABLES, gl_status, post_invoice_best_effort, post_invoice_strict

logger = logging.getLogger(__name__)


def create_invoice(company, data, user=None):
    """New invoices always start as draft; sending them is a separate step."""
    require_company(company)
    customer = Customer.objects.for_company(company).get(pk=data.get("customer_id"))
    invoice_date = to_date(data.get("invoice_date"), "invoice_date")
    due_date = to_date(data.get("due_date"), "due_date", required=False) or default_due_date(
        invoice_date, customer.payment_terms_days
    )
    amounts = calculate_document_amounts(data.get("lines"), data.get("taxes"))

    with transaction.atomic():
        invoice = Invoice(
            company=company,
            invoice_number=allocate_number(company, "invoice"),
            customer=customer,
            currency=resolve_currency(company, data.get("currency")),
            invoice_date=invoice_date,
            due_date=due_date,
            status="draft",
            notes=data.get("notes") or "",
            terms=data.get("terms") or "",
            created_by=user if getattr(user, "is_authenticated", False) else None,
        )
        invoice.set_amounts(amounts.subtotal, amounts.tax_amount, amounts.total)
        invoice.save()
        replace_items(invoice, amounts, InvoiceLineItem, InvoiceTax)
        log_action(
            action="Invoice Created",
            instance=invoice,
            user=user,
            company=company,
            description=f"Invoice {invoice.invoice_number} created for {customer.name} ({invoice.total})",
        )

    logger.info("Invoice %s created for company %s", invoice.invoice_number, company.pk)
    return invoice


def get_invoice(company, invoice_id):
    require_company(company)
    return (
        Invoice.objects.for_company(company)
        .select_related("customer")
        .prefetch_related("line_items", "taxes", "payments")
        .get(pk=invoice_id)
    )


def update_invoice(company, invoice_id, data, user=None):
    require_company(company)
    with transaction.atomic():
        invoice = Invoice.objects.for_company(company).select_for_update().get(pk=invoice_id)
        if not invoice.is_editable:
            raise InvalidStateError("Only draft invoices can be edited")

        changes = {}
        if "customer_id" in data:
            invoice.customer = Customer.objects.for_company(company).get(pk=data["customer_id"])
        if "invoice_date" in data:
            invoice.invoice_date = to_date(data["invoice_date"], "invoice_date")
        if "due_date" in data:
            invoice.due_date = to_date(data["due_date"], "due_date", required=False)
        for field in ("notes", "terms"):
            if field in data:
                setattr(invoice, field, data.get(field) or "")
        if "currency" in data:
            invoice.currency = resolve_currency(company, data.get("currency"))

        if "lines" in data or "taxes" in data:
            lines = data.get("lines")
            if lines is None:
                lines = [
                    {"description": li.description, "quantity": li.quantity, "unit_price": li.unit_price}
                    for li in invoice.line_items.all()
                ]
            taxes = data.get("taxes")
            if taxes is None:
                taxes = [
                    {"tax_name": t.tax_name, "tax_percentage": t.tax_percentage,
                     "is_withholding_tax": t.is_withholding_tax}
                    for t in invoice.taxes.all()
                ]
            amounts = calculate_document_amounts(lines, taxes)
            changes["total"] = [str(invoice.total), str(amounts.total)]
            invoice.set_amounts(amounts.subtotal, amounts.tax_amount, amounts.total)
            replace_items(invoice, amounts, InvoiceLineItem, InvoiceTax)

        invoice.save()
        log_action(
            action="Invoice Updated",
            instance=invoice,
            user=user,
            company=company,
            description=f"Invoice {invoice.invoice_number} updated",
            changes=changes or None,
        )
    return invoice


def delete_invoice(company, invoice_id, user=None):
    require_company(company)
    with transaction.atomic():
        invoice = Invoice.objects.for_company(company).select_for_update().get(pk=invoice_id)
        if not invoice.is_editable:
            raise InvalidStateError(
                "Only draft invoices can be deleted. Cancel this invoice instead."
            )
        log_action(
            action="Invoice Deleted",
            instance=invoice,
            user=user,
            company=company,
            description=f"Invoice {invoice.invoice_number} deleted",
        )
        invoice.delete()
    logger.info("Invoice %s deleted for company %s", invoice_id, company.pk)
    return invoice_id


def _gl_outcome(company, invoice, user, warnings):
    gl = post_invoice_best_effort(company, invoice, user)
    if gl.warning:
        warnings.append(gl.warning)
    return Outcome({"invoice": invoice, "gl_posted": gl.posted, "journal": gl.journal}, warnings)


def update_invoice_status(company, invoice_id, status, user=None):
    require_company(company)
    with transaction.atomic():
        invoice = Invoice.objects.for_company(company).select_for_update().get(pk=invoice_id)
        old_status = invoice.status
        invoice.transition_to(status)
        if status == "sent" and not invoice.sent_at:
            invoice.sent_at = timezone.now()
        invoice.save()
        log_action(
            action="Invoice Cancelled" if status == "cancelled" else "Status Changed",
            instance=invoice,
            user=user,
            company=company,
            description=f"Invoice {invoice.invoice_number}: {old_status} -> {status}",
            changes={"status": [old_status, status]},
        )

    if status == "sent":
        return _gl_outcome(company, invoice, user, [])
    return Outcome({"invoice": invoice, "gl_posted": False, "journal": None})


def send_invoice(company, invoice_id, user=None, notifier=None):
    """
    Deliver the invoice and mark it sent.

    draft / overdue become sent, partially paid keeps its status. The
    first send recognizes the revenue in the GL; later sends find the
    existing journal.
    """
    require_company(company)
    with transaction.atomic():
        invoice = (
            Invoice.objects.for_company(company)
            .select_for_update()
            .select_related("customer")
            .get(pk=invoice_id)
        )
        if invoice.status in ("cancelled", "paid"):
            raise InvalidStateError("Cannot send cancelled or paid invoices")
        old_status = invoice.status
        if invoice.status in ("draft", "overdue"):
            invoice.transition_to("sent")
        invoice.sent_at = timezone.now()
        # row is locked, a plain increment is safe
        invoice.email_sent_count += 1
        invoice.save()
        log_action(
            action="Invoice Sent",
            instance=invoice,
            user=user,
            company=company,
            description=f"Invoice {invoice.invoice_number} sent to {invoice.customer.name}",
            changes={"status": [old_status, invoice.status]},
        )

    logger.info("Invoice %s sent for company %s", invoice.invoice_number, company.pk)

    warnings = []
    warning = notify(get_notifier(notifier), "send_invoice", invoice)
    if warning:
        warnings.append(warning)
    return _gl_outcome(company, invoice, user, warnings)


def remind_invoice(company, invoice_id, user=None, notifier=None):
    require_company(company)
    with transaction.atomic():
        invoice = (
            Invoice.objects.for_company(company)
            .select_for_update()
            .select_related("customer")
            .get(pk=invoice_id)
        )
        if invoice.status not in Invoice.REMINDABLE_STATUSES:
            raise InvalidStateError(
                "Reminders can only be sent for sent, overdue or partially paid invoices"
            )
        invoice.last_reminder_at = timezone.now()
        invoice.save()
        log_action(
            action="Reminder Sent",
            instance=invoice,
            user=user,
            company=company,
            description=f"Reminder sent for {invoice.invoice_number} ({invoice.amount_due} due)",
        )

    warning = notify(get_notifier(notifier), "send_reminder", invoice)
    return Outcome(invoice, [warning] if warning else [])


def post_invoice_to_gl(company, invoice_id, user=None):
    """Manual backfill. An invoice that already has its journal is a no-op."""
    require_company(company)
    invoice = Invoice.objects.for_company(company).select_related("customer").get(pk=invoice_id)
    if invoice.status in ("draft", "cancelled"):
        raise InvalidStateError("Draft or cancelled invoices cannot be posted to the GL.")
    gl = post_invoice_strict(company, invoice, user)
    return {"invoice": invoice, "already_posted": gl.already_posted, "journal": gl.journal}


def get_invoice_gl_status(company, invoice_id):
    require_company(company)
    invoice = Invoice.objects.for_company(company).get(pk=invoice_id)
    return gl_status(company, RECEIVABLES, invoice.pk)