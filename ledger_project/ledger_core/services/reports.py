"""
Financial statements derived from posted journal lines.

Nothing here reads Account.current_balance: every figure is a fresh sum
over lines whose journal is posted, so reports stay correct even if a
cached balance drifted.
"""
from collections import OrderedDict
from decimal import Decimal

from django.db.models import Q, Sum
from django.utils import timezone

from ..models import Account, Bill
from .accounts import ensure_default_accounts, require_company
from .calculations import AGING_BUCKETS, ZERO, aging_bucket, days_past_due, to_date


def _account_totals(company, start=None, end=None):
    """{account_id: (debits, credits)} of posted lines in [start, end]."""
    line_filter = Q(journal_lines__journal__status="posted")
    if start:
        line_filter &= Q(journal_lines__journal__transaction_date__gte=start)
    if end:
        line_filter &= Q(journal_lines__journal__transaction_date__lte=end)

    rows = (
        Account.objects.for_company(company)
        .annotate(
            debits=Sum("journal_lines__debit", filter=line_filter),
            credits=Sum("journal_lines__credit", filter=line_filter),
        )
        .order_by("code")
    )
    return rows


def trial_balance(company, start=None, end=None):
    """
    Every account in the chart with its posted debits, credits and
    net = debits - credits. Accounts without activity show zeros.
    """
    require_company(company)
    ensure_default_accounts(company)
    start = to_date(start, "start", required=False)
    end = to_date(end, "end", required=False)

    rows = []
    total_debits = ZERO
    total_credits = ZERO
    for account in _account_totals(company, start, end):
        debits = account.debits or ZERO
        credits = account.credits or ZERO
        total_debits += debits
        total_credits += credits
        rows.append(
            {
                "account_id": account.pk,
                "code": account.code,
                "name": account.name,
                "ac_type": account.ac_type,
                "account_class": account.account_class,
                "total_debits": debits,
                "total_credits": credits,
                "net_balance": debits - credits,
            }
        )

    return {
        "start": start,
        "end": end,
        "rows": rows,
        "total_debits": total_debits,
        "total_credits": total_credits,
    }


def _statement_row(row, amount):
    return {
        "account_id": row["account_id"],
        "code": row["code"],
        "name": row["name"],
        "account_class": row["account_class"],
        "amount": amount,
    }


def income_statement(company, start=None, end=None):
    tb = trial_balance(company, start, end)

    revenue = []
    expenses = []
    for row in tb["rows"]:
        if row["ac_type"] == "income":
            revenue.append(_statement_row(row, row["total_credits"] - row["total_debits"]))
        elif row["ac_type"] == "expense":
            expenses.append(_statement_row(row, row["total_debits"] - row["total_credits"]))

    total_revenue = sum((r["amount"] for r in revenue), ZERO)
    total_expenses = sum((r["amount"] for r in expenses), ZERO)
    return {
        "start": tb["start"],
        "end": tb["end"],
        "revenue": revenue,
        "expenses": expenses,
        "total_revenue": total_revenue,
        "total_expenses": total_expenses,
        "net_income": total_revenue - total_expenses,
    }


def balance_sheet(company, as_of=None):
    """
    Assets = Liabilities + Equity as of a date.

    With no closing entries, retained earnings is the live net income of
    all income/expense activity up to as_of, added to equity.
    """
    as_of = to_date(as_of, "as_of", required=False) or timezone.localdate()
    tb = trial_balance(company, end=as_of)

    assets, liabilities, equity = [], [], []
    retained_earnings = ZERO
    for row in tb["rows"]:
        debit_side = row["total_debits"] - row["total_credits"]
        if row["ac_type"] == "asset":
            assets.append(_statement_row(row, debit_side))
        elif row["ac_type"] == "liability":
            liabilities.append(_statement_row(row, -debit_side))
        elif row["ac_type"] == "equity":
            equity.append(_statement_row(row, -debit_side))
        else:
            # income adds (credit - debit), expense subtracts (debit - credit)
            retained_earnings -= debit_side

    total_assets = sum((r["amount"] for r in assets), ZERO)
    total_liabilities = sum((r["amount"] for r in liabilities), ZERO)
    total_equity = sum((r["amount"] for r in equity), ZERO) + retained_earnings

    return {
        "as_of": as_of,
        "assets": assets,
        "liabilities": liabilities,
        "equity": equity,
        "retained_earnings": retained_earnings,
        "total_assets": total_assets,
        "total_liabilities": total_liabilities,
        "total_equity": total_equity,
        "check": total_assets - (total_liabilities + total_equity),
    }


def payables_aging(company, as_of=None):
    """Open bills grouped into Current / 1-30 / 31-60 / 61-90 / 90+."""
    require_company(company)
    as_of = to_date(as_of, "as_of", required=False) or timezone.localdate()

    buckets = OrderedDict((name, {"bills": [], "total": ZERO}) for name in AGING_BUCKETS)
    bills = (
        Bill.objects.for_company(company)
        .exclude(status__in=("draft", "paid", "cancelled"))
        .filter(amount_due__gt=Decimal("0"))
        .select_related("vendor")
        .order_by("due_date", "id")
    )
    for bill in bills:
        bucket = buckets[aging_bucket(bill.due_date, as_of)]
        bucket["bills"].append(
            {
                "bill_id": bill.pk,
                "bill_number": bill.bill_number,
                "vendor": bill.vendor.name,
                "due_date": bill.due_date,
                "days_overdue": max(days_past_due(bill.due_date, as_of), 0),
                "amount_due": bill.amount_due,
            }
        )
        bucket["total"] += bill.amount_due

    return {
        "as_of": as_of,
        "buckets": buckets,
        "total": sum((b["total"] for b in buckets.values()), ZERO),
    }
