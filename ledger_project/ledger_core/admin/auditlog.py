from django.contrib import admin

from ledger_core.models import ActivityLog

from .mixins import TenantAdminMixin
from .ReadOnly import ReadOnlyAdmin


# Register `ActivityLog` model
@admin.register(ActivityLog)
class ActivityLogAdmin(TenantAdminMixin, ReadOnlyAdmin):
    list_display = (
        "created_at",
        "company",
        "user",
        "action",
        "object_type",
        "object_id",
        "description",
    )
    search_fields = ("object_type", "object_id", "description", "user__username")
    list_filter = ("company", "action", "object_type")

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("company", "user")
