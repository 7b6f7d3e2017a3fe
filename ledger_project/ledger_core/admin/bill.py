from django.contrib import admin

from ledger_core.models import Bill, PurchaseOrder, Vendor

from .actions import approve_bills, post_bills_to_gl
from .inlines import BillLineItemInline, BillPaymentInline, BillTaxInline
from .mixins import TenantAdminMixin


# Register `Bill` model
@admin.register(Bill)
class BillAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "bill_number",
        "company",
        "vendor",
        "vendor_invoice_number",
        "bill_date",
        "due_date",
        "status",
        "total",
        "amount_due",
    )
    list_filter = ("company", "status", "bill_date")
    search_fields = ("bill_number", "vendor_invoice_number", "vendor__name")
    actions = [approve_bills, post_bills_to_gl]
    inlines = [BillLineItemInline, BillTaxInline, BillPaymentInline]

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("company", "vendor")

    """ Bills are created and edited through the service layer """

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        if obj and obj.status != "draft":
            return False
        return super().has_delete_permission(request, obj)


@admin.register(Vendor)
class VendorAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("vendor_code", "name", "company", "email", "payment_terms_days", "is_active")
    list_filter = ("company", "is_active")
    search_fields = ("vendor_code", "name", "email")
    readonly_fields = ("vendor_code",)


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("po_number", "company", "vendor", "order_date", "status", "total", "billed_amount")
    list_filter = ("company", "status")
    search_fields = ("po_number", "vendor__name")
    readonly_fields = ("po_number", "billed_amount", "closed_at")
