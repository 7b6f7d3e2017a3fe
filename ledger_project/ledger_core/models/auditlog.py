from django.conf import settings
from django.db import models

from ..managers import TenantManager
from .entitymembership import Company

# Actions written by the bill / invoice lifecycle
BILL_ACTIONS = (
    "Bill Created",
    "Bill Approved",
    "Status Changed",
    "Payment Recorded",
    "Payment Updated",
    "Payment Deleted",
    "Bill Updated",
    "Bill Cancelled",
    "Bill Deleted",
    "GL Posted",
)
INVOICE_ACTIONS = (
    "Invoice Created",
    "Invoice Sent",
    "Status Changed",
    "Payment Recorded",
    "Payment Updated",
    "Payment Deleted",
    "Reminder Sent",
    "Invoice Updated",
    "Invoice Cancelled",
    "Invoice Deleted",
    "GL Posted",
)


# ---------- Activity / audit log ----------
class ActivityLog(models.Model):
    """Append-only trail of who did what to which ledger object."""

    company = models.ForeignKey(Company, null=True, blank=True, on_delete=models.SET_NULL)
    # null for automated actions (celery sweep, seed command)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL
    )
    action = models.CharField(max_length=50)  # "Bill Approved", "journal.post"
    object_type = models.CharField(max_length=100)  # "Bill", "JournalEntry"
    object_id = models.CharField(max_length=100)
    description = models.TextField(blank=True, default="")
    # before/after details
    changes = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "object_type", "object_id"]),
            models.Index(fields=["company", "created_at"]),
        ]
        ordering = ("-created_at", "-id")

    def __str__(self):
        return f"[{self.created_at:%Y-%m-%d %H:%M}] {self.user} {self.action} {self.object_type}({self.object_id})"
