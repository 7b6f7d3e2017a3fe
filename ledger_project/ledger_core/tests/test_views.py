import json

import pytest
from django.test import RequestFactory

from .. import views
from ..models import JournalEntry

from .factories import account, bill_data, make_company, make_user, make_vendor


@pytest.fixture
def company(db):
    return make_company()


@pytest.fixture
def user(company):
    return make_user(company=company)


@pytest.fixture
def rf():
    return RequestFactory()


def _call(view, request, company, user, **kwargs):
    request.company = company
    request.user = user
    response = view(request, **kwargs)
    return response.status_code, json.loads(response.content)


def _json(rf, method, path, payload):
    return getattr(rf, method)(path, data=json.dumps(payload), content_type="application/json")


def test_chart_of_accounts(rf, company, user):
    status, body = _call(views.accounts_view, rf.get("/api/accounts/"), company, user)

    assert status == 200
    assert body["ok"] is True
    assert [a["code"] for a in body["data"]] == ["1000", "1200", "2000", "4000", "6000"]
    assert body["data"][0]["current_balance"] == "0.00"


def test_create_journal_and_post(rf, company, user):
    payload = {
        "transaction_date": "2025-03-10",
        "description": "Cash sale",
        "lines": [
            {"account_id": account(company, "1000").pk, "debit": "25.00"},
            {"account_id": account(company, "4000").pk, "credit": "25.00"},
        ],
    }
    status, body = _call(views.journals_view, _json(rf, "post", "/api/journals/", payload), company, user)

    assert status == 200
    journal_id = body["data"]["id"]
    assert body["data"]["status"] == "draft"
    assert len(body["data"]["lines"]) == 2

    status, body = _call(
        views.journal_post_view, rf.post(f"/api/journals/{journal_id}/post/"), company, user,
        journal_id=journal_id,
    )
    assert status == 200
    assert body["data"]["status"] == "posted"
    assert JournalEntry.objects.get(pk=journal_id).posted_by == user


def test_unbalanced_journal_is_a_400(rf, company, user):
    payload = {
        "transaction_date": "2025-03-10",
        "lines": [
            {"account_id": account(company, "1000").pk, "debit": "100"},
            {"account_id": account(company, "4000").pk, "credit": "90"},
        ],
    }
    status, body = _call(views.journals_view, _json(rf, "post", "/api/journals/", payload), company, user)

    assert status == 400
    assert body["code"] == "unbalanced"
    assert "100.00" in body["error"]
    assert JournalEntry.objects.count() == 0


def test_unknown_journal_is_a_404(rf, company, user):
    status, body = _call(
        views.journal_detail_view, rf.get("/api/journals/999/"), company, user, journal_id=999
    )
    assert status == 404
    assert body["code"] == "not_found"


def test_missing_company_is_a_400(rf, user):
    status, body = _call(views.accounts_view, rf.get("/api/accounts/"), None, user)
    assert status == 400
    assert body["code"] == "no_company"


def test_bad_json(rf, company, user):
    request = rf.post("/api/journals/", data="{not json", content_type="application/json")
    status, body = _call(views.journals_view, request, company, user)
    assert status == 400
    assert body["code"] == "bad_request"


def test_method_not_allowed(rf, company, user):
    request = rf.delete("/api/accounts/")
    request.company, request.user = company, user
    assert views.accounts_view(request).status_code == 405


def test_bill_flow_over_http(rf, company, user):
    vendor = make_vendor(company)
    payload = bill_data(vendor)
    payload["bill_date"] = payload["bill_date"].isoformat()
    payload["lines"][0]["unit_price"] = "100"

    status, body = _call(views.bills_view, _json(rf, "post", "/api/bills/", payload), company, user)
    assert status == 200
    bill_id = body["data"]["bill"]["id"]
    assert body["data"]["bill"]["total"] == "200.00"
    assert body["data"]["duplicate_check"]["confidence"] == "low"

    status, body = _call(
        views.bill_approve_view, rf.post(f"/api/bills/{bill_id}/approve/"), company, user, bill_id=bill_id
    )
    assert status == 200
    assert body["data"]["gl_posted"] is True
    assert body["data"]["journal"]["source"] == "payables"

    status, body = _call(
        views.bill_gl_view, rf.get(f"/api/bills/{bill_id}/gl/"), company, user, bill_id=bill_id
    )
    assert body["data"]["posted"] is True

    status, body = _call(
        views.bill_payments_view,
        _json(rf, "post", f"/api/bills/{bill_id}/payments/", {"amount": "250"}),
        company,
        user,
        bill_id=bill_id,
    )
    assert status == 400
    assert body["error"] == "Payment amount cannot exceed amount due (200.00)"


def test_duplicate_check_endpoint(rf, company, user):
    vendor = make_vendor(company)
    payload = bill_data(vendor, "INV-1")
    payload["bill_date"] = payload["bill_date"].isoformat()
    payload["lines"][0]["unit_price"] = "100"
    _call(views.bills_view, _json(rf, "post", "/api/bills/", payload), company, user)

    check = {
        "vendor_id": vendor.pk,
        "vendor_invoice_number": " INV-1 ",
        "amount": "200",
        "bill_date": "2025-03-10",
    }
    status, body = _call(
        views.bill_duplicate_check_view,
        _json(rf, "post", "/api/bills/duplicate-check/", check),
        company,
        user,
    )
    assert status == 200
    assert body["data"]["is_duplicate"] is True
    assert body["data"]["confidence"] == "high"


def test_trial_balance_report(rf, company, user):
    status, body = _call(
        views.trial_balance_view,
        rf.get("/api/reports/trial-balance/", {"start": "2025-01-01", "end": "2025-12-31"}),
        company,
        user,
    )
    assert status == 200
    assert body["data"]["start"] == "2025-01-01"
    assert len(body["data"]["rows"]) == 5


def test_activity_endpoint(rf, company, user):
    vendor = make_vendor(company)
    payload = bill_data(vendor)
    payload["bill_date"] = payload["bill_date"].isoformat()
    payload["lines"][0]["unit_price"] = "100"
    _, body = _call(views.bills_view, _json(rf, "post", "/api/bills/", payload), company, user)
    bill_id = body["data"]["bill"]["id"]

    status, body = _call(
        views.activity_view,
        rf.get("/api/activity/", {"object_type": "Bill", "object_id": bill_id}),
        company,
        user,
    )
    assert status == 200
    assert [e["action"] for e in body["data"]] == ["Bill Created"]
    assert body["data"][0]["user"] == user.get_username()

    status, body = _call(views.activity_view, rf.get("/api/activity/", {"limit": "ten"}), company, user)
    assert status == 400
    assert body["code"] == "bad_request"
