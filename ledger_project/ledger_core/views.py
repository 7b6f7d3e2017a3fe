import json
import logging
from dataclasses import asdict, is_dataclass

from django.core.serializers.json import DjangoJSONEncoder
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from . import api
from .models import Account, ActivityLog, Bill, Invoice, JournalEntry, Period
from .models.document import DocumentPayment

logger = logging.getLogger(__name__)


# ----------------------------
# Serialization
# ----------------------------
def _account(a):
    return {
        "id": a.pk,
        "code": a.code,
        "name": a.name,
        "ac_type": a.ac_type,
        "account_class": a.account_class,
        "normal_balance": a.normal_balance,
        "is_system": a.is_system,
        "allow_manual_journals": a.allow_manual_journals,
        "is_active": a.is_active,
        "current_balance": a.current_balance,
        "parent_id": a.parent_id,
    }


def _journal(j):
    return {
        "id": j.pk,
        "journal_number": j.journal_number,
        "transaction_date": j.transaction_date,
        "posting_date": j.posting_date,
        "description": j.description,
        "reference": j.reference,
        "source": j.source,
        "source_id": j.source_id,
        "status": j.status,
        "total_debits": j.total_debits,
        "total_credits": j.total_credits,
        "posted_at": j.posted_at,
        "lines": [
            {
                "account_id": line.account_id,
                "description": line.description,
                "debit": line.debit,
                "credit": line.credit,
            }
            for line in j.lines.all()
        ],
    }


def _document_amounts(d):
    return {
        "id": d.pk,
        "status": d.status,
        "due_date": d.due_date,
        "subtotal": d.subtotal,
        "tax_amount": d.tax_amount,
        "total": d.total,
        "amount_paid": d.amount_paid,
        "amount_due": d.amount_due,
        "paid_at": d.paid_at,
    }


def _bill(b):
    data = _document_amounts(b)
    data.update(
        bill_number=b.bill_number,
        vendor_id=b.vendor_id,
        vendor_invoice_number=b.vendor_invoice_number,
        bill_date=b.bill_date,
        approved_at=b.approved_at,
    )
    return data


def _invoice(i):
    data = _document_amounts(i)
    data.update(
        invoice_number=i.invoice_number,
        customer_id=i.customer_id,
        invoice_date=i.invoice_date,
        sent_at=i.sent_at,
        email_sent_count=i.email_sent_count,
    )
    return data


def _payment(p):
    return {
        "id": p.pk,
        "amount": p.amount,
        "payment_date": p.payment_date,
        "payment_method": p.payment_method,
        "reference_number": p.reference_number,
    }


def _period(p):
    return {
        "id": p.pk,
        "name": p.name,
        "start_date": p.start_date,
        "end_date": p.end_date,
        "status": p.status,
        "closed_at": p.closed_at,
    }


def _activity(entry):
    return {
        "id": entry.pk,
        "action": entry.action,
        "object_type": entry.object_type,
        "object_id": entry.object_id,
        "description": entry.description,
        "changes": entry.changes,
        "user": entry.user.get_username() if entry.user else None,
        "created_at": entry.created_at,
    }


_SERIALIZERS = (
    (Account, _account),
    (JournalEntry, _journal),
    (Bill, _bill),
    (Invoice, _invoice),
    (DocumentPayment, _payment),
    (Period, _period),
    (ActivityLog, _activity),
)


def serialize(value):
    for model, func in _SERIALIZERS:
        if isinstance(value, model):
            return func(value)
    if is_dataclass(value) and not isinstance(value, type):
        return serialize(asdict(value))
    if isinstance(value, dict):
        return {str(k): serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize(v) for v in value]
    return value


def render(result):
    """ServiceResult -> JsonResponse (200 ok, 404 not found, 400 otherwise)."""
    body = {"ok": result.ok, "warnings": result.warnings}
    if result.ok:
        body["data"] = serialize(result.data)
        status = 200
    else:
        body["error"] = result.error
        body["code"] = result.code
        status = 404 if result.code == "not_found" else 400
    return JsonResponse(body, status=status, encoder=DjangoJSONEncoder)


def _payload(request):
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (TypeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def _bad_json():
    return JsonResponse(
        {"ok": False, "error": "Request body must be a JSON object", "code": "bad_request"},
        status=400,
    )


def _context(request):
    user = getattr(request, "user", None)
    return getattr(request, "company", None), user


# ----------------------------
# Accounts
# ----------------------------
@require_http_methods(["GET", "POST"])
def accounts_view(request):
    company, user = _context(request)
    if request.method == "GET":
        return render(api.get_chart_of_accounts(company))
    data = _payload(request)
    if data is None:
        return _bad_json()
    return render(api.create_account(company, data, user=user))


@require_http_methods(["GET", "PUT", "DELETE"])
def account_detail_view(request, account_id):
    company, user = _context(request)
    if request.method == "GET":
        return render(
            api.get_account_activity(
                company,
                account_id,
                start=request.GET.get("start"),
                end=request.GET.get("end"),
            )
        )
    if request.method == "DELETE":
        return render(api.delete_account(company, account_id, user=user))
    data = _payload(request)
    if data is None:
        return _bad_json()
    return render(api.update_account(company, account_id, data, user=user))


# ----------------------------
# Journals
# ----------------------------
@require_http_methods(["GET", "POST"])
def journals_view(request):
    company, user = _context(request)
    if request.method == "GET":
        return render(
            api.list_journals(
                company,
                status=request.GET.get("status"),
                source=request.GET.get("source"),
                start=request.GET.get("start"),
                end=request.GET.get("end"),
            )
        )
    data = _payload(request)
    if data is None:
        return _bad_json()
    return render(api.create_journal(company, data, user=user))


@require_http_methods(["GET", "PUT", "DELETE"])
def journal_detail_view(request, journal_id):
    company, user = _context(request)
    if request.method == "GET":
        return render(api.get_journal(company, journal_id))
    if request.method == "DELETE":
        return render(api.delete_journal(company, journal_id, user=user))
    data = _payload(request)
    if data is None:
        return _bad_json()
    return render(api.update_journal(company, journal_id, data, user=user))


@require_http_methods(["POST"])
def journal_post_view(request, journal_id):
    company, user = _context(request)
    return render(api.post_journal(company, journal_id, user=user))


@require_http_methods(["POST"])
def journal_void_view(request, journal_id):
    company, user = _context(request)
    return render(api.void_journal(company, journal_id, user=user))


# ----------------------------
# Periods
# ----------------------------
@require_http_methods(["GET", "POST"])
def periods_view(request):
    company, user = _context(request)
    if request.method == "GET":
        return render(api.list_periods(company))
    data = _payload(request)
    if data is None:
        return _bad_json()
    return render(api.create_period(company, data, user=user))


@require_http_methods(["POST"])
def period_status_view(request, period_id):
    company, user = _context(request)
    data = _payload(request)
    if data is None:
        return _bad_json()
    return render(api.update_period_status(company, period_id, data.get("status"), user=user))


# ----------------------------
# Bills
# ----------------------------
@require_http_methods(["POST"])
def bills_view(request):
    company, user = _context(request)
    data = _payload(request)
    if data is None:
        return _bad_json()
    block = bool(data.pop("block_duplicates", False))
    return render(api.create_bill(company, data, user=user, block_duplicates=block))


@require_http_methods(["GET", "PUT", "DELETE"])
def bill_detail_view(request, bill_id):
    company, user = _context(request)
    if request.method == "GET":
        return render(api.get_bill(company, bill_id))
    if request.method == "DELETE":
        return render(api.delete_bill(company, bill_id, user=user))
    data = _payload(request)
    if data is None:
        return _bad_json()
    return render(api.update_bill(company, bill_id, data, user=user))


@require_http_methods(["POST"])
def bill_approve_view(request, bill_id):
    company, user = _context(request)
    return render(api.approve_bill(company, bill_id, user=user))


@require_http_methods(["POST"])
def bill_status_view(request, bill_id):
    company, user = _context(request)
    data = _payload(request)
    if data is None:
        return _bad_json()
    return render(api.update_bill_status(company, bill_id, data.get("status"), user=user))


@require_http_methods(["GET", "POST"])
def bill_gl_view(request, bill_id):
    company, user = _context(request)
    if request.method == "GET":
        return render(api.get_bill_gl_status(company, bill_id))
    return render(api.post_bill_to_gl(company, bill_id, user=user))


@require_http_methods(["POST"])
def bill_duplicate_check_view(request):
    company, _ = _context(request)
    data = _payload(request)
    if data is None:
        return _bad_json()
    return render(
        api.check_for_duplicate_bill(
            company,
            data.get("vendor_id"),
            data.get("vendor_invoice_number"),
            data.get("amount"),
            data.get("bill_date"),
            exclude_id=data.get("exclude_id"),
        )
    )


@require_http_methods(["POST"])
def bill_payments_view(request, bill_id):
    company, user = _context(request)
    data = _payload(request)
    if data is None:
        return _bad_json()
    return render(api.record_bill_payment(company, bill_id, data, user=user))


@require_http_methods(["PUT", "DELETE"])
def bill_payment_detail_view(request, payment_id):
    company, user = _context(request)
    if request.method == "DELETE":
        return render(api.delete_bill_payment(company, payment_id, user=user))
    data = _payload(request)
    if data is None:
        return _bad_json()
    return render(api.update_bill_payment(company, payment_id, data, user=user))


# ----------------------------
# Invoices
# ----------------------------
@require_http_methods(["POST"])
def invoices_view(request):
    company, user = _context(request)
    data = _payload(request)
    if data is None:
        return _bad_json()
    return render(api.create_invoice(company, data, user=user))


@require_http_methods(["GET", "PUT", "DELETE"])
def invoice_detail_view(request, invoice_id):
    company, user = _context(request)
    if request.method == "GET":
        return render(api.get_invoice(company, invoice_id))
    if request.method == "DELETE":
        return render(api.delete_invoice(company, invoice_id, user=user))
    data = _payload(request)
    if data is None:
        return _bad_json()
    return render(api.update_invoice(company, invoice_id, data, user=user))


@require_http_methods(["POST"])
def invoice_status_view(request, invoice_id):
    company, user = _context(request)
    data = _payload(request)
    if data is None:
        return _bad_json()
    return render(api.update_invoice_status(company, invoice_id, data.get("status"), user=user))


@require_http_methods(["POST"])
def invoice_send_view(request, invoice_id):
    company, user = _context(request)
    return render(api.send_invoice(company, invoice_id, user=user))


@require_http_methods(["POST"])
def invoice_remind_view(request, invoice_id):
    company, user = _context(request)
    return render(api.remind_invoice(company, invoice_id, user=user))


@require_http_methods(["GET", "POST"])
def invoice_gl_view(request, invoice_id):
    company, user = _context(request)
    if request.method == "GET":
        return render(api.get_invoice_gl_status(company, invoice_id))
    return render(api.post_invoice_to_gl(company, invoice_id, user=user))


@require_http_methods(["POST"])
def invoice_payments_view(request, invoice_id):
    company, user = _context(request)
    data = _payload(request)
    if data is None:
        return _bad_json()
    return render(api.record_invoice_payment(company, invoice_id, data, user=user))


@require_http_methods(["PUT", "DELETE"])
def invoice_payment_detail_view(request, payment_id):
    company, user = _context(request)
    if request.method == "DELETE":
        return render(api.delete_invoice_payment(company, payment_id, user=user))
    data = _payload(request)
    if data is None:
        return _bad_json()
    return render(api.update_invoice_payment(company, payment_id, data, user=user))


# ----------------------------
# Reports
# ----------------------------
@require_http_methods(["GET"])
def trial_balance_view(request):
    company, _ = _context(request)
    return render(
        api.trial_balance(company, request.GET.get("start"), request.GET.get("end"))
    )


@require_http_methods(["GET"])
def income_statement_view(request):
    company, _ = _context(request)
    return render(
        api.income_statement(company, request.GET.get("start"), request.GET.get("end"))
    )


@require_http_methods(["GET"])
def balance_sheet_view(request):
    company, _ = _context(request)
    return render(api.balance_sheet(company, request.GET.get("as_of")))


@require_http_methods(["GET"])
def payables_aging_view(request):
    company, _ = _context(request)
    return render(api.payables_aging(company, request.GET.get("as_of")))


# ----------------------------
# Activity log
# ----------------------------
@require_http_methods(["GET"])
def activity_view(request):
    company, _ = _context(request)
    try:
        limit = min(int(request.GET.get("limit", 20)), 200)
    except ValueError:
        return JsonResponse(
            {"ok": False, "error": "limit must be a whole number", "code": "bad_request"},
            status=400,
        )
    return render(
        api.get_activity_log(
            company,
            object_type=request.GET.get("object_type") or None,
            object_id=request.GET.get("object_id") or None,
            limit=max(limit, 1),
        )
    )
