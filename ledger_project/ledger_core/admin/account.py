from django.contrib import admin

from ledger_core.models import Account, Currency

from .actions import recalculate_balances
from .mixins import TenantAdminMixin


@admin.register(Account)
class AccountAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "company",
        "ac_type",
        "account_class",
        "normal_balance",
        "current_balance",
        "is_system",
        "is_active",
    )
    list_filter = ("company", "ac_type", "is_system", "is_active")
    search_fields = ("code", "name")
    ordering = ("company", "code")
    actions = [recalculate_balances]
    # projection of posted lines, never typed in
    readonly_fields = ("normal_balance", "current_balance", "created_at", "updated_at")

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("company", "parent")

    """ System accounts are seeded and immutable """

    def get_readonly_fields(self, request, obj=None):
        if obj and obj.is_system:
            return [f.name for f in self.model._meta.fields]
        return self.readonly_fields

    def has_delete_permission(self, request, obj=None):
        if obj and obj.is_system:
            return False
        return super().has_delete_permission(request, obj)


@admin.register(Currency)
class CurrencyAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "symbol", "decimal_places")
    search_fields = ("code", "name")
