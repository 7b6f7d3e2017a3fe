from decimal import Decimal

from django.db import models

from ..managers import TenantManager
from .entitymembership import Company
from .vendor import Vendor

PO_STATUS_CHOICES = [
    ("draft", "Draft"),
    ("sent", "Sent"),
    ("approved", "Approved"),
    # fully billed
    ("closed", "Closed"),
    ("cancelled", "Cancelled"),
]

# a bill may only reference a PO in one of these
BILLABLE_PO_STATUSES = ("approved", "sent")


class PurchaseOrder(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    # PO-2025-0001
    po_number = models.CharField(max_length=32)
    vendor = models.ForeignKey(Vendor, on_delete=models.PROTECT, related_name="purchase_orders")
    order_date = models.DateField()
    status = models.CharField(max_length=12, choices=PO_STATUS_CHOICES, default="draft")
    total = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    # sum of bill line amounts matched to this PO's lines
    billed_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    closed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "po_number"], name="uq_company_po_number"
            ),
        ]

    def __str__(self):
        return self.po_number


class PurchaseOrderLine(models.Model):
    purchase_order = models.ForeignKey(
        PurchaseOrder, on_delete=models.CASCADE, related_name="lines"
    )
    description = models.CharField(max_length=400)
    quantity = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal("1"))
    unit_price = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))
    amount = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ("sort_order", "id")

    def __str__(self):
        return f"{self.purchase_order_id}: {self.description}"
