import logging

from django.db.models import Sum

from ..models import Account, JournalLine
from .accounts import require_company

logger = logging.getLogger(__name__)


def recalculate_account_balance(company, account_id):
    """
    Rebuild Account.current_balance from posted journal lines.

    A full re-sum, so calling it twice (or from two workers) writes the
    same value.
    """
    account = Account.objects.for_company(company).get(pk=account_id)
    sums = (
        JournalLine.objects.for_company(company)
        .filter(account_id=account.pk)
        .posted()
        .aggregate(debits=Sum("debit"), credits=Sum("credit"))
    )
    balance = account.signed_balance(sums["debits"], sums["credits"])

    # update() skips Account.save and its deactivation checks
    Account.objects.filter(pk=account.pk).update(current_balance=balance)
    account.current_balance = balance
    return balance


def recalculate_accounts(company, account_ids):
    require_company(company)
    balances = {}
    for account_id in sorted(set(account_ids)):
        balances[account_id] = recalculate_account_balance(company, account_id)
    return balances


def recalculate_all_balances(company):
    require_company(company)
    ids = Account.objects.for_company(company).values_list("pk", flat=True)
    balances = recalculate_accounts(company, ids)
    logger.info("Recalculated %d account balances for company %s", len(balances), company.pk)
    return balances
