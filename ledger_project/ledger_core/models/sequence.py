from django.db import models

from ..managers import TenantManager
from .entitymembership import Company

SEQUENCE_KINDS = [
    ("journal", "Journal"),
    ("bill", "Bill"),
    ("invoice", "Invoice"),
    ("purchase_order", "Purchase Order"),
    ("vendor", "Vendor"),
]


class SequenceCounter(models.Model):
    """Last number handed out per (company, kind, year).

    Rows are locked with select_for_update while incrementing, so two
    concurrent writers can't draw the same document number.
    """

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    kind = models.CharField(max_length=20, choices=SEQUENCE_KINDS)
    year = models.PositiveIntegerField()
    last_value = models.PositiveIntegerField(default=0)

    objects = TenantManager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "kind", "year"], name="uq_sequence_company_kind_year"
            ),
        ]

    def __str__(self):
        return f"{self.company_id}:{self.kind}:{self.year}={self.last_value}"
