from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from ..managers import TenantManager
from .entitymembership import Company

PERIOD_STATUS = [
    ("open", "Open"),
    ("closed", "Closed"),
    # closed and not reopenable from the UI
    ("locked", "Locked"),
]


# ---------- Period (accounting period) ----------
class Period(models.Model):
    """
    Date range that gates posting.

    If a company defines any period, a journal may only be posted when its
    transaction date lies in an open one. Companies without periods post
    freely.
    """

    company = models.ForeignKey(Company, on_delete=models.PROTECT)
    name = models.CharField(max_length=50)  # "2025-07", "FY2025"
    start_date = models.DateField()
    end_date = models.DateField()
    status = models.CharField(max_length=10, choices=PERIOD_STATUS, default="open")
    is_year_end = models.BooleanField(default=False)
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="closed_periods",
    )
    closed_at = models.DateTimeField(null=True, blank=True)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "start_date"]),
            models.Index(fields=["company", "status"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "name"], name="uq_company_period_name"
            ),
        ]
        ordering = ("company", "-start_date")

    def __str__(self):
        return f"{self.company.slug} {self.name}"

    @property
    def is_open(self):
        return self.status == "open"

    def contains(self, day):
        return self.start_date <= day <= self.end_date

    def clean(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValidationError("start_date must not be after end_date")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
