from django.db import models
from django.utils import timezone

from ..managers import TenantManager
from .customer import Customer
from .document import DocumentLineItem, DocumentPayment, DocumentTax, SubledgerDocument

INV_STATUS_CHOICES = [
    ("draft", "Draft"),
    ("sent", "Sent"),
    ("partially_paid", "Partially Paid"),
    ("paid", "Paid"),
    ("overdue", "Overdue"),
    ("cancelled", "Cancelled"),
]


class Invoice(SubledgerDocument):
    """Customer invoice (Accounts Receivable document)."""

    TRANSITIONS = {
        "draft": ["sent", "cancelled"],
        "sent": ["overdue", "cancelled"],
        "overdue": ["sent", "cancelled"],
        "partially_paid": ["overdue", "cancelled"],
        "paid": [],
        "cancelled": [],
    }
    PAYABLE_STATUSES = ("sent", "partially_paid", "overdue")
    POSTABLE_STATUSES = ("sent", "partially_paid", "paid", "overdue")
    # reminders only make sense while money is outstanding
    REMINDABLE_STATUSES = ("sent", "overdue", "partially_paid")

    # {PREFIX}-2025-0001, prefix from the company slug
    invoice_number = models.CharField(max_length=32)
    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name="invoices")
    invoice_date = models.DateField()
    status = models.CharField(max_length=20, choices=INV_STATUS_CHOICES, default="draft")
    terms = models.TextField(blank=True, default="")
    sent_at = models.DateTimeField(null=True, blank=True)
    email_sent_count = models.PositiveIntegerField(default=0)
    last_reminder_at = models.DateTimeField(null=True, blank=True)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "status"]),
            models.Index(fields=["company", "customer"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "invoice_number"],
                name="uq_invoice_company_number",
            )
        ]
        ordering = ("-invoice_date", "-id")

    def __str__(self):
        return f"Inv {self.invoice_number}"

    def unpaid_status(self, today=None):
        today = today or timezone.localdate()
        if self.due_date and self.due_date < today:
            return "overdue"
        return "sent"

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class InvoiceLineItem(DocumentLineItem):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="line_items")

    class Meta(DocumentLineItem.Meta):
        indexes = [models.Index(fields=["invoice", "sort_order"])]


class InvoiceTax(DocumentTax):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="taxes")


class InvoicePayment(DocumentPayment):
    invoice = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="payments")

    objects = TenantManager()

    class Meta(DocumentPayment.Meta):
        indexes = [models.Index(fields=["company", "invoice"])]
