from django.db import models

from ..managers import TenantManager
from .entitymembership import Company


class Vendor(models.Model):
    """Supplier that sends bills (master data, referenced by FK)."""

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    # VEN-2025-0001
    vendor_code = models.CharField(max_length=32)
    name = models.CharField(max_length=200)
    email = models.EmailField(null=True, blank=True)
    payment_terms_days = models.IntegerField(default=30)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["company", "name"])]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "vendor_code"], name="uq_company_vendor_code"
            ),
        ]

    def __str__(self):
        return self.name
