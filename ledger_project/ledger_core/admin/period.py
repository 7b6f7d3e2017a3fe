from django.contrib import admin, messages

from ledger_core.models import Period
from ledger_core.services.periods import update_period_status

from .mixins import TenantAdminMixin


def _set_status(modeladmin, request, queryset, status):
    for period in queryset:
        update_period_status(period.company, period.pk, status, user=request.user)
    modeladmin.message_user(
        request, f"{queryset.count()} period(s) marked {status}.", level=messages.SUCCESS
    )


@admin.action(description="Close selected periods")
def close_periods(modeladmin, request, queryset):
    _set_status(modeladmin, request, queryset, "closed")


@admin.action(description="Reopen selected periods")
def open_periods(modeladmin, request, queryset):
    _set_status(modeladmin, request, queryset.exclude(status="locked"), "open")


@admin.register(Period)
class PeriodAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("name", "company", "start_date", "end_date", "status", "closed_at")
    list_filter = ("company", "status", "is_year_end")
    search_fields = ("name",)
    readonly_fields = ("closed_by", "closed_at")
    actions = [close_periods, open_periods]
