from django.contrib import admin, messages
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

from ledger_core.services import balances, bills, invoices, journals, posting

# ---------- Admin actions ----------
# Every action goes through the service layer, one object at a time,
# so the same rules apply as for the JSON endpoints.


def _run_each(modeladmin, request, queryset, func, verb):
    success = 0
    failures = 0
    for obj in queryset:
        try:
            outcome = func(obj)
        except ValidationError as exc:
            failures += 1
            modeladmin.message_user(
                request,
                _("Could not %(verb)s %(obj)s: %(err)s")
                % {"verb": verb, "obj": obj, "err": "; ".join(exc.messages)},
                level=messages.ERROR,
            )
            continue
        success += 1
        for warning in getattr(outcome, "warnings", []):
            modeladmin.message_user(request, f"{obj}: {warning}", level=messages.WARNING)

    modeladmin.message_user(
        request,
        _("%(verb)s: %(success)d succeeded, %(failures)d failed.")
        % {"verb": verb.capitalize(), "success": success, "failures": failures},
        level=messages.SUCCESS if failures == 0 else messages.WARNING,
    )


@admin.action(description="Post selected journals")
def post_journal_entries(modeladmin, request, queryset):
    _run_each(
        modeladmin,
        request,
        queryset.filter(status="draft"),
        lambda je: journals.post_journal(je.company, je.pk, user=request.user),
        "post",
    )


@admin.action(description="Void selected draft journals")
def void_journal_entries(modeladmin, request, queryset):
    _run_each(
        modeladmin,
        request,
        queryset.filter(status="draft"),
        lambda je: journals.void_journal(je.company, je.pk, user=request.user),
        "void",
    )


@admin.action(description="Approve selected bills")
def approve_bills(modeladmin, request, queryset):
    _run_each(
        modeladmin,
        request,
        queryset,
        lambda bill: bills.approve_bill(bill.company, bill.pk, user=request.user),
        "approve",
    )


@admin.action(description="Post selected bills to the GL")
def post_bills_to_gl(modeladmin, request, queryset):
    _run_each(
        modeladmin,
        request,
        queryset,
        lambda bill: bills.post_bill_to_gl(bill.company, bill.pk, user=request.user),
        "post",
    )


@admin.action(description="Send selected invoices")
def send_invoices(modeladmin, request, queryset):
    _run_each(
        modeladmin,
        request,
        queryset,
        lambda inv: invoices.send_invoice(inv.company, inv.pk, user=request.user),
        "send",
    )


@admin.action(description="Post selected invoices to the GL")
def post_invoices_to_gl(modeladmin, request, queryset):
    _run_each(
        modeladmin,
        request,
        queryset,
        lambda inv: invoices.post_invoice_to_gl(inv.company, inv.pk, user=request.user),
        "post",
    )


@admin.action(description="Recalculate account balances")
def recalculate_balances(modeladmin, request, queryset):
    companies = {account.company for account in queryset.select_related("company")}
    for company in companies:
        balances.recalculate_all_balances(company)
    modeladmin.message_user(request, f"Recalculated balances for {len(companies)} company(ies).")


@admin.action(description="Retry GL posting for the selected companies")
def post_pending_documents(modeladmin, request, queryset):
    for company in queryset:
        summary = posting.post_pending_documents(company, user=request.user)
        modeladmin.message_user(
            request,
            f"{company}: {summary['bills_posted']} bills, "
            f"{summary['invoices_posted']} invoices posted",
            level=messages.SUCCESS if not summary["failures"] else messages.WARNING,
        )
