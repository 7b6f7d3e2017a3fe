from django.conf import settings
from django.db import models

from ..managers import TenantManager
from .document import DocumentLineItem, DocumentPayment, DocumentTax, SubledgerDocument
from .purchase_order import PurchaseOrder, PurchaseOrderLine
from .vendor import Vendor

BILL_STATUS_CHOICES = [
    ("draft", "Draft"),
    ("pending", "Pending"),
    ("approved", "Approved"),
    ("partially_paid", "Partially Paid"),
    ("paid", "Paid"),
    ("overdue", "Overdue"),
    ("cancelled", "Cancelled"),
]


# ---------- Bills (Accounts Payable documents) ----------
class Bill(SubledgerDocument):
    # Manual status moves. Payment driven moves (approved -> partially_paid
    # -> paid and back) go through apply_paid_amount instead.
    TRANSITIONS = {
        "draft": ["pending", "approved", "cancelled"],
        "pending": ["draft", "approved", "cancelled"],
        "approved": ["overdue", "cancelled"],
        "overdue": ["approved", "cancelled"],
        "partially_paid": ["overdue", "cancelled"],
        "paid": [],
        "cancelled": [],
    }
    # payments accepted only after approval
    PAYABLE_STATUSES = ("approved", "partially_paid", "overdue")
    # states whose total is recognized in the GL
    POSTABLE_STATUSES = ("approved", "partially_paid", "paid", "overdue")
    APPROVABLE_STATUSES = ("draft", "pending")

    # BILL-2025-0001
    bill_number = models.CharField(max_length=32)
    vendor = models.ForeignKey(Vendor, on_delete=models.PROTECT, related_name="bills")
    # the supplier's own number, compared by the duplicate detector
    vendor_invoice_number = models.CharField(max_length=100)
    bill_date = models.DateField()
    received_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=BILL_STATUS_CHOICES, default="draft")
    purchase_order = models.ForeignKey(
        PurchaseOrder, null=True, blank=True, on_delete=models.SET_NULL, related_name="bills"
    )
    # sha256 of vendor id, normalized invoice number and amount
    duplicate_check_hash = models.CharField(max_length=64, blank=True, default="")
    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="approved_bills",
    )

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "status"]),
            models.Index(fields=["company", "vendor", "vendor_invoice_number"]),
            models.Index(fields=["company", "duplicate_check_hash"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "bill_number"], name="uq_bill_company_number"
            )
        ]
        ordering = ("-bill_date", "-id")

    def __str__(self):
        return f"Bill: {self.bill_number}"

    def unpaid_status(self, today=None):
        return "approved"

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class BillLineItem(DocumentLineItem):
    bill = models.ForeignKey(Bill, on_delete=models.CASCADE, related_name="line_items")
    # matched PO line, feeds the PO billed rollup
    po_line = models.ForeignKey(
        PurchaseOrderLine,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="bill_lines",
    )

    class Meta(DocumentLineItem.Meta):
        indexes = [models.Index(fields=["bill", "sort_order"])]


class BillTax(DocumentTax):
    bill = models.ForeignKey(Bill, on_delete=models.CASCADE, related_name="taxes")


class BillPayment(DocumentPayment):
    bill = models.ForeignKey(Bill, on_delete=models.CASCADE, related_name="payments")

    objects = TenantManager()

    class Meta(DocumentPayment.Meta):
        indexes = [models.Index(fields=["company", "bill"])]
