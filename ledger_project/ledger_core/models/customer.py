from django.db import models

from ..managers import TenantManager
from .entitymembership import Company


# ---------- Customer ----------
# Receives invoices (AR side)
class Customer(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    name = models.CharField(max_length=200)
    email = models.EmailField(null=True, blank=True)
    # invoice due date defaults to invoice_date + terms
    payment_terms_days = models.IntegerField(default=30)
    is_active = models.BooleanField(default=True)

    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["company", "name"])]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "name"], name="uq_company_customer_name"
            ),
        ]

    def __str__(self):
        return self.name
