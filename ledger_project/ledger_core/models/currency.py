from django.db import models


class Currency(models.Model):
    """ISO currency referenced by companies and documents (master data)."""

    # 'USD', 'EUR'; used directly as the primary key
    code = models.CharField(max_length=3, primary_key=True)
    name = models.CharField(max_length=64)
    symbol = models.CharField(max_length=8, blank=True, null=True)
    decimal_places = models.PositiveSmallIntegerField(default=2)

    class Meta:
        verbose_name_plural = "currencies"

    def __str__(self):
        return f"{self.code} ({self.symbol or ''})"
