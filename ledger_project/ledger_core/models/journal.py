from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from ..exceptions import InvalidStateError
from ..managers import JournalLineManager, TenantManager
from .account import Account
from .entitymembership import Company

JOURNAL_STATUS = [
    ("draft", "Draft"),  # editable, ignored by balances
    ("posted", "Posted"),  # counts toward balances and reports, immutable
    ("voided", "Voided"),  # dead, immutable
]

JOURNAL_SOURCES = [
    ("manual", "Manual"),
    ("payables", "Payables"),
    ("receivables", "Receivables"),
    ("payroll", "Payroll"),
    ("inventory", "Inventory"),
    ("fixed_assets", "Fixed Assets"),
    ("banking", "Banking"),
    ("system", "System"),
]

# Sources whose (company, source, source_id) must be unique:
# one recognition journal per bill / invoice
SUBLEDGER_SOURCES = ("payables", "receivables")


# ---------- Journal (Header) & JournalLine ----------
class JournalEntry(models.Model):
    """One double-entry transaction: header plus at least two lines."""

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    # JE-2025-000001, allocated from SequenceCounter
    journal_number = models.CharField(max_length=32)
    transaction_date = models.DateField()
    posting_date = models.DateField(null=True, blank=True)
    description = models.TextField(blank=True, default="")
    reference = models.CharField(max_length=200, blank=True, default="")
    source = models.CharField(max_length=20, choices=JOURNAL_SOURCES, default="manual")
    # id of the bill / invoice / ... that produced this journal
    source_id = models.CharField(max_length=64, null=True, blank=True)
    status = models.CharField(max_length=10, choices=JOURNAL_STATUS, default="draft")
    # denormalized line sums, kept in step by services.journals
    total_debits = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    total_credits = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="created_journals",
    )
    posted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="posted_journals",
    )
    posted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "transaction_date"]),
            models.Index(fields=["company", "status"]),
            models.Index(fields=["company", "source", "source_id"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "journal_number"], name="uq_je_company_number"
            ),
            # backs the (source, source_id) idempotency check against
            # two concurrent approvals of the same document
            models.UniqueConstraint(
                fields=["company", "source", "source_id"],
                condition=models.Q(source__in=SUBLEDGER_SOURCES)
                & models.Q(source_id__isnull=False),
                name="uq_je_subledger_source",
            ),
            models.CheckConstraint(
                condition=models.Q(total_debits__gte=0) & models.Q(total_credits__gte=0),
                name="je_non_negative_totals",
            ),
        ]
        ordering = ("-transaction_date", "-id")
        verbose_name_plural = "journal entries"

    def __str__(self):
        return f"{self.journal_number} {self.transaction_date} [{self.status}]"

    @property
    def is_draft(self):
        return self.status == "draft"

    # Aggregate all debit and credit amounts across the entry's lines
    def compute_totals(self):
        aggs = self.lines.aggregate(
            total_debit=models.Sum("debit"),
            total_credit=models.Sum("credit"),
        )
        return (
            aggs["total_debit"] or Decimal("0.00"),
            aggs["total_credit"] or Decimal("0.00"),
        )

    def account_ids(self):
        return set(self.lines.values_list("account_id", flat=True))

    def save(self, *args, **kwargs):
        if self.pk:
            orig = JournalEntry.objects.filter(pk=self.pk).only("status").first()
            # posted/voided never go back to draft or to each other
            # (posted -> voided included: reversal is a new journal)
            if orig and orig.status != "draft" and self.status != orig.status:
                raise InvalidStateError(
                    f"Cannot change a {orig.status} journal to {self.status}"
                )
        super().save(*args, **kwargs)

    def transition_to(self, new_status):
        allowed = {
            "draft": ["posted", "voided"],
            "posted": [],
            "voided": [],
        }
        if new_status not in allowed.get(self.status, []):
            raise InvalidStateError(
                f"Cannot go from {self.status} to {new_status}"
            )
        self.status = new_status


class JournalLine(models.Model):
    """One debit or credit against one account."""

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    journal = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    # can't delete an account that has lines
    account = models.ForeignKey(
        Account, on_delete=models.PROTECT, related_name="journal_lines"
    )
    description = models.CharField(max_length=400, blank=True, default="")
    debit = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    credit = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    # optional subledger entity (vendor, customer, employee...)
    entity_type = models.CharField(max_length=50, blank=True, default="")
    entity_id = models.CharField(max_length=64, null=True, blank=True)

    objects = JournalLineManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "account"]),
            models.Index(fields=["company", "journal"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(debit__gte=0) & models.Q(credit__gte=0),
                name="jl_non_negative_amounts",
            ),
            models.CheckConstraint(
                condition=~(models.Q(debit=0) & models.Q(credit=0)),
                name="jl_debit_or_credit_nonzero",
            ),
        ]

    def __str__(self):
        return f"{self.journal_id} | {self.account_id} | D:{self.debit} C:{self.credit}"

    @property
    def amount(self):
        return self.debit or self.credit

    def clean(self):
        debit = self.debit or Decimal("0")
        credit = self.credit or Decimal("0")
        if debit < 0 or credit < 0:
            raise ValidationError("Debit and credit must be >= 0")
        if debit > 0 and credit > 0:
            raise ValidationError(
                "JournalLine should not have both debit and credit > 0"
            )
        if debit == 0 and credit == 0:
            raise ValidationError(
                "JournalLine requires a non-0 amount on either debit or credit"
            )

        # tenant consistency: line, journal and account share one company
        if self.journal_id and self.company_id != self.journal.company_id:
            raise ValidationError("JournalLine.company must equal JournalEntry.company")
        if self.account_id and self.account.company_id != self.company_id:
            raise ValidationError("JournalLine.account must belong to the same company.")

        # lines of posted / voided journals are frozen
        if self.journal_id and self.journal.status != "draft":
            raise InvalidStateError(
                f"Cannot modify lines of a {self.journal.status} journal."
            )

    def save(self, *args, **kwargs):
        if not self.company_id and self.journal_id:
            self.company_id = self.journal.company_id
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.journal_id and JournalEntry.objects.filter(
            pk=self.journal_id
        ).exclude(status="draft").exists():
            raise InvalidStateError(
                "Cannot delete JournalLine: parent journal is locked."
            )
        return super().delete(*args, **kwargs)
