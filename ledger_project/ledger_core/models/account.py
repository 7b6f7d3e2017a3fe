from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from ..managers import TenantManager
from .entitymembership import Company

# Choice Lists
AC_TYPES = [
    ("asset", "Asset"),
    ("liability", "Liability"),
    ("equity", "Equity"),
    ("income", "Income"),
    ("expense", "Expense"),
]

# Finer reporting classification inside each type
ACCOUNT_CLASSES = [
    ("current_asset", "Current Asset"),
    ("non_current_asset", "Non-Current Asset"),
    ("current_liability", "Current Liability"),
    ("non_current_liability", "Non-Current Liability"),
    ("equity", "Equity"),
    ("revenue", "Revenue"),
    ("cost_of_goods_sold", "Cost of Goods Sold"),
    ("expense", "Expense"),
    ("other_income", "Other Income"),
    ("other_expense", "Other Expense"),
]

NORMAL_BALANCE = [
    ("debit", "Debit"),
    ("credit", "Credit"),
]

# Assets/Expenses increase on the debit side, everything else on credit
DEBIT_NORMAL_TYPES = ("asset", "expense")


def normal_balance_for(ac_type):
    return "debit" if ac_type in DEBIT_NORMAL_TYPES else "credit"


class Account(models.Model):
    """
    Ledger account in a company's chart of accounts.
    - code is unique per company
    - ac_type decides sign convention and report placement
    - current_balance is a cached projection of posted journal lines,
      written only by services.balances
    """

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    code = models.CharField(max_length=32)
    name = models.CharField(max_length=200)
    ac_type = models.CharField(max_length=10, choices=AC_TYPES)
    account_class = models.CharField(
        max_length=32, choices=ACCOUNT_CLASSES, blank=True, default=""
    )
    # derived from ac_type on save
    normal_balance = models.CharField(
        max_length=6, choices=NORMAL_BALANCE, default="debit"
    )
    description = models.TextField(blank=True, default="")
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        # a parent can't go while children exist
        on_delete=models.PROTECT,
        related_name="children",
    )
    # seeded defaults (1000, 1200, 2000, 4000, 6000): immutable, undeletable
    is_system = models.BooleanField(default=False)
    allow_manual_journals = models.BooleanField(default=True)
    is_active = models.BooleanField(default=True)
    current_balance = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TenantManager()

    class Meta:
        indexes = [
            # reports group by type
            models.Index(fields=["company", "ac_type"]),
            models.Index(fields=["company", "code"]),
            models.Index(fields=["company", "parent"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "code"], name="uq_company_account_code"
            )
        ]
        ordering = ("company", "code")

    def __str__(self):
        return f"{self.code} – {self.name}"

    @property
    def is_debit_normal(self):
        return self.ac_type in DEBIT_NORMAL_TYPES

    def signed_balance(self, debits, credits):
        """Apply this account's sign convention to raw debit/credit sums."""
        debits = debits or Decimal("0.00")
        credits = credits or Decimal("0.00")
        if self.is_debit_normal:
            return debits - credits
        return credits - debits

    def clean(self):
        if self.parent_id and self.parent.company_id != self.company_id:
            raise ValidationError(
                "Parent & child accounts must belong to the same company"
            )
        if self.parent_id and self.pk and self.parent_id == self.pk:
            raise ValidationError("An account cannot be its own parent")

    def save(self, *args, **kwargs):
        self.normal_balance = normal_balance_for(self.ac_type)
        if not self.pk:
            return super().save(*args, **kwargs)

        # can't deactivate an account that journals already use
        old = Account.objects.filter(pk=self.pk).only("is_active").first()
        if old and old.is_active and not self.is_active:
            if self.journal_lines.exists():
                raise ValidationError(
                    "Cannot disable an account that is used in journal lines."
                )
        return super().save(*args, **kwargs)
