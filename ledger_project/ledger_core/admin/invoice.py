from django.contrib import admin

from ledger_core.models import Customer, Invoice

from .actions import post_invoices_to_gl, send_invoices
from .inlines import InvoiceLineItemInline, InvoicePaymentInline, InvoiceTaxInline
from .mixins import TenantAdminMixin


# Register `Invoice` model
@admin.register(Invoice)
class InvoiceAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "invoice_number",
        "company",
        "customer",
        "invoice_date",
        "due_date",
        "status",
        "total",
        "amount_due",
        "email_sent_count",
    )
    list_filter = ("company", "status", "invoice_date")
    search_fields = ("invoice_number", "customer__name")
    actions = [send_invoices, post_invoices_to_gl]
    inlines = [InvoiceLineItemInline, InvoiceTaxInline, InvoicePaymentInline]

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("company", "customer")

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        if obj and obj.status != "draft":
            return False
        return super().has_delete_permission(request, obj)


@admin.register(Customer)
class CustomerAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("name", "company", "email", "payment_terms_days", "is_active")
    list_filter = ("company", "is_active")
    search_fields = ("name", "email")
