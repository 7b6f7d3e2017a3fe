from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from ..exceptions import InvalidStateError
from .currency import Currency
from .entitymembership import Company

PAYMENT_METHODS = [
    ("cash", "Cash"),
    ("bank_transfer", "Bank Transfer"),
    ("check", "Check"),
    ("credit_card", "Credit Card"),
    ("debit_card", "Debit Card"),
    ("mobile_money", "Mobile Money"),
    ("other", "Other"),
]

# amount_due at or below this counts as settled
PAID_TOLERANCE = Decimal("0.01")


class SubledgerDocument(models.Model):
    """
    Shared shape of Bill and Invoice.

    Invariants kept by every write path:
        total == subtotal + tax_amount
        amount_due == total - amount_paid
    amount_paid only moves through services.payments.
    """

    # concrete classes define: status field, TRANSITIONS,
    # PAYABLE_STATUSES, unpaid_status()
    TRANSITIONS = {}
    PAYABLE_STATUSES = ()

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    currency = models.ForeignKey(
        Currency, null=True, blank=True, on_delete=models.PROTECT, related_name="+"
    )
    due_date = models.DateField(null=True, blank=True)
    subtotal = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    amount_paid = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    amount_due = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    notes = models.TextField(blank=True, default="")
    paid_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="%(class)s_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    @property
    def is_editable(self):
        return self.status == "draft"

    def set_amounts(self, subtotal, tax_amount, total):
        self.subtotal = subtotal
        self.tax_amount = tax_amount
        self.total = total
        self.amount_due = total - (self.amount_paid or Decimal("0.00"))

    def unpaid_status(self, today=None):
        raise NotImplementedError

    def apply_paid_amount(self, amount_paid, today=None):
        """Set amount_paid and derive amount_due / status / paid_at from it."""
        self.amount_paid = amount_paid
        self.amount_due = self.total - amount_paid
        if self.amount_due <= PAID_TOLERANCE:
            self.status = "paid"
            if not self.paid_at:
                self.paid_at = timezone.now()
            return
        self.status = "partially_paid" if amount_paid > 0 else self.unpaid_status(today)
        # leaving paid: the old settlement stamp no longer holds
        self.paid_at = None

    def transition_to(self, new_status):
        if new_status not in self.TRANSITIONS.get(self.status, []):
            raise InvalidStateError(
                f"Cannot go from {self.get_status_display()} to "
                f"{dict(self._meta.get_field('status').choices).get(new_status, new_status)}"
            )
        self.status = new_status
        if new_status == "cancelled":
            self.cancelled_at = timezone.now()

    def clean(self):
        if self.total != self.subtotal + self.tax_amount:
            raise ValidationError("Total must equal subtotal + tax amount")
        if self.amount_due != self.total - self.amount_paid:
            raise ValidationError("Amount due must equal total - amount paid")
        if self.amount_paid < 0:
            raise ValidationError("Amount paid cannot be negative")


class DocumentLineItem(models.Model):
    description = models.CharField(max_length=400)
    quantity = models.DecimalField(max_digits=14, decimal_places=4, default=Decimal("1"))
    unit_price = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))
    # quantity * unit_price, rounded to cents
    amount = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        abstract = True
        ordering = ("sort_order", "id")

    def __str__(self):
        return f"{self.description} ({self.quantity} x {self.unit_price})"


class DocumentTax(models.Model):
    tax_name = models.CharField(max_length=100)
    # 7.5 means 7.5 %
    tax_percentage = models.DecimalField(max_digits=7, decimal_places=4)
    # computed off the pre-tax subtotal, never compounded
    tax_amount = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    is_withholding_tax = models.BooleanField(default=False)

    class Meta:
        abstract = True

    def __str__(self):
        return f"{self.tax_name} {self.tax_percentage}%"


class DocumentPayment(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    payment_date = models.DateField()
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHODS, default="bank_transfer")
    reference_number = models.CharField(max_length=100, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="%(class)s_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="%(class)s_amount_positive",
            ),
        ]

    def __str__(self):
        return f"{self.amount} on {self.payment_date}"
