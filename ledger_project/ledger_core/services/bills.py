import logging

from django.db import transaction
from django.utils import timezone

from ..exceptions import DuplicateBillError, InvalidStateError, LedgerError
from ..models import Bill, BillLineItem, BillTax, PurchaseOrder, PurchaseOrderLine, Vendor
from ..models.purchase_order import BILLABLE_PO_STATUSES
from ..results import Outcome
from .accounts import require_company
from .audit_helper import log_action
from .calculations import calculate_document_amounts, duplicate_check_hash, to_date
from .documents import default_due_date, replace_items, resolve_currency
from .duplicates import check_for_duplicate_bill
from .numbering import allocate_number
from .posting import PAYABLES, gl_status, post_bill_best_effort, post_bill_strict
from .purchasing import update_po_billed_amount

logger = logging.getLogger(__name__)

INITIAL_STATUSES = ("draft", "pending", "approved")


def _billable_po(company, po_id, vendor):
    if not po_id:
        return None
    po = PurchaseOrder.objects.for_company(company).get(pk=po_id)
    if po.vendor_id != vendor.pk:
        raise LedgerError("Purchase order belongs to a different vendor")
    if po.status not in BILLABLE_PO_STATUSES:
        raise InvalidStateError("Purchase order must be approved before creating a bill")
    return po


def _po_line_resolver(po):
    """line_extra for replace_items: link bill lines to the PO's lines."""
    po_lines = {}
    if po is not None:
        po_lines = {line.pk: line for line in PurchaseOrderLine.objects.filter(purchase_order=po)}

    def extra(line):
        po_line_id = line.extra.get("po_line_id")
        if not po_line_id:
            return {}
        if po_line_id not in po_lines:
            raise LedgerError(f"Purchase order line {po_line_id} is not on this bill's purchase order")
        return {"po_line": po_lines[po_line_id]}

    return extra


def _duplicate_warning(check):
    reasons = "; ".join(sorted({m.reason for m in check.matches}))
    numbers = ", ".join(m.bill_number for m in check.matches)
    return f"Possible duplicate bill ({check.confidence} confidence): {reasons} [{numbers}]"


def _stamp_approval(bill, user):
    bill.approved_at = timezone.now()
    bill.approved_by = user if getattr(user, "is_authenticated", False) else None


def create_bill(company, data, user=None, *, block_duplicates=False, scorer=None):
    """
    Create a bill with its lines and taxes.

    The duplicate detector runs first. Its verdict comes back as a warning,
    or as a DuplicateBillError when block_duplicates is set. A bill created
    already approved is posted to the GL after it is saved.
    """
    require_company(company)
    vendor = Vendor.objects.for_company(company).get(pk=data.get("vendor_id"))
    vendor_invoice_number = (data.get("vendor_invoice_number") or "").strip()
    if not vendor_invoice_number:
        raise LedgerError("Vendor invoice number is required")
    status = data.get("status") or "draft"
    if status not in INITIAL_STATUSES:
        raise LedgerError("A new bill is draft, pending or approved")

    bill_date = to_date(data.get("bill_date"), "bill_date")
    due_date = to_date(data.get("due_date"), "due_date", required=False) or default_due_date(
        bill_date, vendor.payment_terms_days
    )
    po = _billable_po(company, data.get("purchase_order_id"), vendor)
    amounts = calculate_document_amounts(data.get("lines"), data.get("taxes"))

    check = check_for_duplicate_bill(
        company, vendor.pk, vendor_invoice_number, amounts.total, bill_date, scorer=scorer
    )
    warnings = []
    if check.is_duplicate:
        if block_duplicates:
            raise DuplicateBillError(check)
        warnings.append(_duplicate_warning(check))

    with transaction.atomic():
        bill = Bill(
            company=company,
            bill_number=allocate_number(company, "bill"),
            vendor=vendor,
            vendor_invoice_number=vendor_invoice_number,
            currency=resolve_currency(company, data.get("currency")),
            bill_date=bill_date,
            received_date=to_date(data.get("received_date"), "received_date", required=False),
            due_date=due_date,
            status=status,
            purchase_order=po,
            notes=data.get("notes") or "",
            duplicate_check_hash=duplicate_check_hash(
                vendor.pk, vendor_invoice_number, amounts.total
            ),
            created_by=user if getattr(user, "is_authenticated", False) else None,
        )
        bill.set_amounts(amounts.subtotal, amounts.tax_amount, amounts.total)
        if status == "approved":
            _stamp_approval(bill, user)
        bill.save()
        replace_items(bill, amounts, BillLineItem, BillTax, _po_line_resolver(po))
        log_action(
            action="Bill Created",
            instance=bill,
            user=user,
            company=company,
            description=f"Bill {bill.bill_number} created for {vendor.name} ({bill.total})",
        )

    logger.info("Bill %s created for company %s", bill.bill_number, company.pk)

    if po is not None:
        update_po_billed_amount(company, po.pk)

    gl_posted = False
    journal = None
    if bill.status == "approved":
        gl = post_bill_best_effort(company, bill, user)
        gl_posted, journal = gl.posted, gl.journal
        if gl.warning:
            warnings.append(gl.warning)

    return Outcome(
        {"bill": bill, "duplicate_check": check, "gl_posted": gl_posted, "journal": journal},
        warnings,
    )


def get_bill(company, bill_id):
    require_company(company)
    return (
        Bill.objects.for_company(company)
        .select_related("vendor", "purchase_order")
        .prefetch_related("line_items", "taxes", "payments")
        .get(pk=bill_id)
    )


def update_bill(company, bill_id, data, user=None):
    require_company(company)
    with transaction.atomic():
        bill = Bill.objects.for_company(company).select_for_update().get(pk=bill_id)
        if not bill.is_editable:
            raise InvalidStateError("Only draft bills can be edited")

        old_po_id = bill.purchase_order_id
        changes = {}
        if "vendor_invoice_number" in data:
            number = (data.get("vendor_invoice_number") or "").strip()
            if not number:
                raise LedgerError("Vendor invoice number is required")
            bill.vendor_invoice_number = number
        if "bill_date" in data:
            bill.bill_date = to_date(data["bill_date"], "bill_date")
        if "due_date" in data:
            bill.due_date = to_date(data["due_date"], "due_date", required=False)
        if "received_date" in data:
            bill.received_date = to_date(data["received_date"], "received_date", required=False)
        if "notes" in data:
            bill.notes = data.get("notes") or ""
        if "currency" in data:
            bill.currency = resolve_currency(company, data.get("currency"))
        if "purchase_order_id" in data:
            bill.purchase_order = _billable_po(company, data["purchase_order_id"], bill.vendor)

        if "lines" in data or "taxes" in data:
            lines = data.get("lines")
            if lines is None:
                lines = [
                    {"description": li.description, "quantity": li.quantity,
                     "unit_price": li.unit_price, "po_line_id": li.po_line_id}
                    for li in bill.line_items.all()
                ]
            taxes = data.get("taxes")
            if taxes is None:
                taxes = [
                    {"tax_name": t.tax_name, "tax_percentage": t.tax_percentage,
                     "is_withholding_tax": t.is_withholding_tax}
                    for t in bill.taxes.all()
                ]
            amounts = calculate_document_amounts(lines, taxes)
            changes["total"] = [str(bill.total), str(amounts.total)]
            bill.set_amounts(amounts.subtotal, amounts.tax_amount, amounts.total)
            replace_items(bill, amounts, BillLineItem, BillTax, _po_line_resolver(bill.purchase_order))

        bill.duplicate_check_hash = duplicate_check_hash(
            bill.vendor_id, bill.vendor_invoice_number, bill.total
        )
        bill.save()
        log_action(
            action="Bill Updated",
            instance=bill,
            user=user,
            company=company,
            description=f"Bill {bill.bill_number} updated",
            changes=changes or None,
        )

    for po_id in {old_po_id, bill.purchase_order_id} - {None}:
        update_po_billed_amount(company, po_id)
    return bill


def delete_bill(company, bill_id, user=None):
    require_company(company)
    with transaction.atomic():
        bill = Bill.objects.for_company(company).select_for_update().get(pk=bill_id)
        if not bill.is_editable:
            raise InvalidStateError("Only draft bills can be deleted. Cancel this bill instead.")
        po_id = bill.purchase_order_id
        log_action(
            action="Bill Deleted",
            instance=bill,
            user=user,
            company=company,
            description=f"Bill {bill.bill_number} deleted",
        )
        bill.delete()

    if po_id:
        update_po_billed_amount(company, po_id)
    logger.info("Bill %s deleted for company %s", bill_id, company.pk)
    return bill_id


def approve_bill(company, bill_id, user=None):
    require_company(company)
    with transaction.atomic():
        bill = Bill.objects.for_company(company).select_for_update().get(pk=bill_id)
        if bill.status not in Bill.APPROVABLE_STATUSES:
            raise InvalidStateError("Only pending or draft bills can be approved")
        old_status = bill.status
        bill.transition_to("approved")
        _stamp_approval(bill, user)
        bill.save()
        log_action(
            action="Bill Approved",
            instance=bill,
            user=user,
            company=company,
            description=f"Bill {bill.bill_number} approved",
            changes={"status": [old_status, "approved"]},
        )

    logger.info("Bill %s approved for company %s", bill.bill_number, company.pk)

    # the approval is committed; the journal is best effort on top of it
    gl = post_bill_best_effort(company, bill, user)
    return Outcome(
        {"bill": bill, "gl_posted": gl.posted, "journal": gl.journal},
        [gl.warning] if gl.warning else [],
    )


def update_bill_status(company, bill_id, status, user=None):
    require_company(company)
    with transaction.atomic():
        bill = Bill.objects.for_company(company).select_for_update().get(pk=bill_id)
        old_status = bill.status
        bill.transition_to(status)
        if status == "approved" and not bill.approved_at:
            _stamp_approval(bill, user)
        bill.save()
        log_action(
            action="Bill Cancelled" if status == "cancelled" else "Status Changed",
            instance=bill,
            user=user,
            company=company,
            description=f"Bill {bill.bill_number}: {old_status} -> {status}",
            changes={"status": [old_status, status]},
        )

    if status == "cancelled" and bill.purchase_order_id:
        update_po_billed_amount(company, bill.purchase_order_id)

    gl_posted = False
    journal = None
    warnings = []
    if status == "approved":
        gl = post_bill_best_effort(company, bill, user)
        gl_posted, journal = gl.posted, gl.journal
        if gl.warning:
            warnings.append(gl.warning)

    return Outcome({"bill": bill, "gl_posted": gl_posted, "journal": journal}, warnings)


def post_bill_to_gl(company, bill_id, user=None):
    """Manual backfill. A bill that already has its journal is a no-op."""
    require_company(company)
    bill = Bill.objects.for_company(company).select_related("vendor").get(pk=bill_id)
    if bill.status not in Bill.POSTABLE_STATUSES:
        raise InvalidStateError(
            "Only approved, partially paid, or paid bills can be posted to the GL."
        )
    gl = post_bill_strict(company, bill, user)
    return {"bill": bill, "already_posted": gl.already_posted, "journal": gl.journal}


def get_bill_gl_status(company, bill_id):
    require_company(company)
    bill = Bill.objects.for_company(company).get(pk=bill_id)
    return gl_status(company, PAYABLES, bill.pk)
