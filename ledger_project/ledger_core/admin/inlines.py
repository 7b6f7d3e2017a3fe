from django.contrib import admin

from ledger_core.models import (
    BillLineItem,
    BillPayment,
    BillTax,
    InvoiceLineItem,
    InvoicePayment,
    InvoiceTax,
    JournalLine,
)

from .forms import JournalLineInlineForm

# ---------- Helpful inline admin classes ----------


class JournalLineInline(admin.TabularInline):
    """Show JournalLine rows on the JournalEntry page"""

    model = JournalLine
    form = JournalLineInlineForm
    extra = 0  # don't show empty rows by default
    fields = ("account", "description", "debit", "credit", "entity_type", "entity_id")
    ordering = ("id",)

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("account")

    # posted / voided journals: every line is locked
    def get_readonly_fields(self, request, obj=None):
        if obj and obj.status != "draft":
            return self.fields
        return ()

    def has_add_permission(self, request, obj=None):
        if obj and obj.status != "draft":
            return False
        return super().has_add_permission(request, obj)

    def has_delete_permission(self, request, obj=None):
        if obj and obj.status != "draft":
            return False
        return super().has_delete_permission(request, obj)


class _ReadOnlyTabular(admin.TabularInline):
    """Document children are written by the services only."""

    extra = 0
    can_delete = False

    def get_readonly_fields(self, request, obj=None):
        return self.fields

    def has_add_permission(self, request, obj=None):
        return False


class BillLineItemInline(_ReadOnlyTabular):
    model = BillLineItem
    fields = ("description", "quantity", "unit_price", "amount", "po_line")


class BillTaxInline(_ReadOnlyTabular):
    model = BillTax
    fields = ("tax_name", "tax_percentage", "tax_amount", "is_withholding_tax")


class BillPaymentInline(_ReadOnlyTabular):
    model = BillPayment
    fields = ("payment_date", "amount", "payment_method", "reference_number")


class InvoiceLineItemInline(_ReadOnlyTabular):
    model = InvoiceLineItem
    fields = ("description", "quantity", "unit_price", "amount")


class InvoiceTaxInline(_ReadOnlyTabular):
    model = InvoiceTax
    fields = ("tax_name", "tax_percentage", "tax_amount", "is_withholding_tax")


class InvoicePaymentInline(_ReadOnlyTabular):
    model = InvoicePayment
    fields = ("payment_date", "amount", "payment_method", "reference_number")
