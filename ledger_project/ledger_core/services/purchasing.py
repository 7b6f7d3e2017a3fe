import logging

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from ..exceptions import InvalidStateError, LedgerError
from ..models import BillLineItem, PurchaseOrder, PurchaseOrderLine, Vendor
from ..models.purchase_order import PO_STATUS_CHOICES
from .accounts import require_company
from .audit_helper import log_action
from .calculations import ZERO, calculate_document_amounts, to_date
from .numbering import allocate_number

logger = logging.getLogger(__name__)

PO_STATUSES = tuple(code for code, _ in PO_STATUS_CHOICES)


def create_vendor(company, data, user=None):
    require_company(company)
    name = (data.get("name") or "").strip()
    if not name:
        raise LedgerError("Vendor name is required")
    try:
        terms = int(data.get("payment_terms_days", 30))
    except (TypeError, ValueError):
        raise LedgerError("Payment terms must be a whole number of days")
    if terms < 0:
        raise LedgerError("Payment terms cannot be negative")

    with transaction.atomic():
        vendor = Vendor(
            company=company,
            vendor_code=allocate_number(company, "vendor"),
            name=name,
            email=data.get("email") or None,
            payment_terms_days=terms,
        )
        vendor.full_clean()
        vendor.save()
        log_action(
            action="vendor.create",
            instance=vendor,
            user=user,
            company=company,
            description=f"Created vendor {vendor.vendor_code} {vendor.name}",
        )
    return vendor


def create_purchase_order(company, data, user=None):
    require_company(company)
    vendor = Vendor.objects.for_company(company).get(pk=data.get("vendor_id"))
    status = data.get("status") or "draft"
    if status not in ("draft", "sent", "approved"):
        raise LedgerError("A new purchase order is draft, sent or approved")
    amounts = calculate_document_amounts(data.get("lines") or [])

    with transaction.atomic():
        po = PurchaseOrder.objects.create(
            company=company,
            po_number=allocate_number(company, "purchase_order"),
            vendor=vendor,
            order_date=to_date(data.get("order_date"), "order_date", required=False)
            or timezone.localdate(),
            status=status,
            total=amounts.subtotal,
        )
        PurchaseOrderLine.objects.bulk_create(
            [
                PurchaseOrderLine(
                    purchase_order=po,
                    description=line.description,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    amount=line.amount,
                    sort_order=i,
                )
                for i, line in enumerate(amounts.lines)
            ]
        )
        log_action(
            action="purchase_order.create",
            instance=po,
            user=user,
            company=company,
            description=f"Created {po.po_number} for {vendor.name}",
        )
    return po


def update_purchase_order_status(company, po_id, status, user=None):
    require_company(company)
    if status not in PO_STATUSES:
        raise LedgerError(f"Unknown purchase order status: {status}")
    with transaction.atomic():
        po = PurchaseOrder.objects.for_company(company).select_for_update().get(pk=po_id)
        if po.status in ("closed", "cancelled"):
            raise InvalidStateError(f"Purchase order {po.po_number} is {po.status}")
        old_status = po.status
        po.status = status
        if status == "closed":
            po.closed_at = timezone.now()
        po.save()
        log_action(
            action="purchase_order.status",
            instance=po,
            user=user,
            company=company,
            changes={"status": [old_status, status]},
        )
    return po


def update_po_billed_amount(company, po_id):
    """
    Roll matched bill lines up into PurchaseOrder.billed_amount.
    Cancelled bills don't count. A fully billed PO closes itself.
    """
    with transaction.atomic():
        po = PurchaseOrder.objects.for_company(company).select_for_update().get(pk=po_id)
        billed = (
            BillLineItem.objects.filter(po_line__purchase_order=po)
            .exclude(bill__status="cancelled")
            .aggregate(total=Sum("amount"))["total"]
        ) or ZERO

        po.billed_amount = billed
        fields = ["billed_amount"]
        if billed >= po.total and po.total > 0 and po.status not in ("closed", "cancelled"):
            po.status = "closed"
            po.closed_at = timezone.now()
            fields += ["status", "closed_at"]
            logger.info("Purchase order %s fully billed, closed", po.po_number)
        po.save(update_fields=fields)
    return po
