from django.contrib import admin
from django.db.models import Prefetch
from django.utils.html import format_html

from ledger_core.models import JournalEntry, JournalLine

from .actions import post_journal_entries, void_journal_entries
from .inlines import JournalLineInline
from .mixins import TenantAdminMixin


# Register `JournalEntry` model
@admin.register(JournalEntry)
class JournalEntryAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "journal_number",
        "company",
        "transaction_date",
        "reference",
        "source",
        "status",
        "posted_at",
        "balanced",
    )
    list_filter = ("company", "status", "source", "transaction_date")
    search_fields = ("journal_number", "reference", "description")
    readonly_fields = (
        "journal_number",
        "source",
        "source_id",
        "total_debits",
        "total_credits",
        "posted_at",
        "posted_by",
        "created_by",
    )
    inlines = [JournalLineInline]
    # posting must run period control and balance recalculation
    actions = [post_journal_entries, void_journal_entries]

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        lines = JournalLine.objects.select_related("account")
        return qs.select_related("company", "created_by").prefetch_related(
            Prefetch("lines", queryset=lines)
        )

    """ Computed column for the balance check """

    def balanced(self, obj):
        return format_html(
            "<b>{}</b> / <small>{}</small>", obj.total_debits, obj.total_credits
        )

    balanced.short_description = "Debits / Credits"

    """ Posted and voided journals are immutable """

    def get_readonly_fields(self, request, obj=None):
        if obj and obj.status != "draft":
            return [f.name for f in self.model._meta.fields]
        # status only moves through the actions
        return list(self.readonly_fields) + ["status"]

    def has_delete_permission(self, request, obj=None):
        if obj and obj.status != "draft":
            return False
        return super().has_delete_permission(request, obj)
