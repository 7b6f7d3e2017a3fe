import logging

from django.db import transaction

from ..exceptions import (
    DuplicateAccountCodeError,
    GLAccountMissingError,
    LedgerError,
    MissingCompanyError,
    SystemAccountError,
)
from ..models import Account, JournalLine
from ..models.account import normal_balance_for
from .audit_helper import log_action

logger = logging.getLogger(__name__)

CASH_ACCOUNT = "1000"
RECEIVABLE_ACCOUNT = "1200"
PAYABLE_ACCOUNT = "2000"
REVENUE_ACCOUNT = "4000"
EXPENSE_ACCOUNT = "6000"

# (code, name, ac_type, account_class)
DEFAULT_GL_ACCOUNTS = [
    (CASH_ACCOUNT, "Cash / Bank", "asset", "current_asset"),
    (RECEIVABLE_ACCOUNT, "Accounts Receivable", "asset", "current_asset"),
    (PAYABLE_ACCOUNT, "Accounts Payable", "liability", "current_liability"),
    (REVENUE_ACCOUNT, "Sales Revenue", "income", "revenue"),
    (EXPENSE_ACCOUNT, "Expenses", "expense", "expense"),
]
SYSTEM_ACCOUNT_CODES = tuple(row[0] for row in DEFAULT_GL_ACCOUNTS)

EDITABLE_FIELDS = (
    "code",
    "name",
    "ac_type",
    "account_class",
    "description",
    "allow_manual_journals",
    "is_active",
)


def require_company(company):
    if company is None:
        raise MissingCompanyError()
    return company


def ensure_default_accounts(company):
    """Seed the system chart. Codes that already exist are left alone."""
    require_company(company)
    existing = set(
        Account.objects.for_company(company)
        .filter(code__in=SYSTEM_ACCOUNT_CODES)
        .values_list("code", flat=True)
    )
    missing = [
        Account(
            company=company,
            code=code,
            name=name,
            ac_type=ac_type,
            account_class=account_class,
            normal_balance=normal_balance_for(ac_type),
            is_system=True,
            allow_manual_journals=True,
        )
        for code, name, ac_type, account_class in DEFAULT_GL_ACCOUNTS
        if code not in existing
    ]
    if missing:
        # a concurrent seed may insert the same codes, conflicts are skipped
        Account.objects.bulk_create(missing, ignore_conflicts=True)
        logger.info(
            "Seeded %d default accounts for company %s", len(missing), company.pk
        )
    return len(missing)


def get_chart_of_accounts(company, include_inactive=True):
    ensure_default_accounts(company)
    qs = Account.objects.for_company(company).order_by("code")
    if not include_inactive:
        qs = qs.filter(is_active=True)
    return list(qs)


def get_system_account(company, code):
    ensure_default_accounts(company)
    account = Account.objects.for_company(company).filter(code=code).first()
    if account is None:
        raise GLAccountMissingError(
            f"Default GL account {code} is missing. Restore the chart of accounts "
            "before posting."
        )
    return account


def _resolve_parent(company, parent_id):
    if not parent_id:
        return None
    parent = Account.objects.for_company(company).filter(pk=parent_id).first()
    if parent is None:
        raise LedgerError("Parent account must belong to the same company")
    return parent


def create_account(company, data, user=None):
    require_company(company)
    code = (data.get("code") or "").strip()
    name = (data.get("name") or "").strip()
    if not code or not name:
        raise LedgerError("Account code and name are required")
    if data.get("is_system"):
        raise SystemAccountError("System accounts are seeded automatically")

    with transaction.atomic():
        if Account.objects.for_company(company).filter(code=code).exists():
            raise DuplicateAccountCodeError()

        account = Account(
            company=company,
            code=code,
            name=name,
            ac_type=data.get("ac_type"),
            account_class=data.get("account_class") or "",
            description=data.get("description") or "",
            parent=_resolve_parent(company, data.get("parent_id")),
            allow_manual_journals=data.get("allow_manual_journals", True),
            is_active=data.get("is_active", True),
        )
        account.full_clean()
        account.save()
        log_action(
            action="account.create",
            instance=account,
            user=user,
            company=company,
            description=f"Created account {account.code} {account.name}",
        )

    logger.info("Account %s created for company %s", account.code, company.pk)
    return account


def update_account(company, account_id, data, user=None):
    require_company(company)
    with transaction.atomic():
        account = Account.objects.for_company(company).select_for_update().get(pk=account_id)
        if account.is_system:
            raise SystemAccountError(
                "System default accounts cannot be edited. You can add custom "
                "accounts instead."
            )

        new_code = (data.get("code") or account.code).strip()
        if new_code != account.code and (
            Account.objects.for_company(company)
            .filter(code=new_code)
            .exclude(pk=account.pk)
            .exists()
        ):
            raise DuplicateAccountCodeError()

        changes = {}
        for field in EDITABLE_FIELDS:
            if field not in data:
                continue
            value = new_code if field == "code" else data[field]
            if getattr(account, field) != value:
                changes[field] = [str(getattr(account, field)), str(value)]
                setattr(account, field, value)
        if "parent_id" in data:
            account.parent = _resolve_parent(company, data["parent_id"])

        account.full_clean()
        account.save()
        log_action(
            action="account.update",
            instance=account,
            user=user,
            company=company,
            description=f"Updated account {account.code}",
            changes=changes,
        )
    return account


def delete_account(company, account_id, user=None):
    require_company(company)
    with transaction.atomic():
        account = Account.objects.for_company(company).select_for_update().get(pk=account_id)
        if account.is_system:
            raise SystemAccountError(
                "System default accounts (1000, 1200, 2000, 4000, 6000) cannot be "
                "deleted. They are required for invoicing and payables."
            )
        if JournalLine.objects.filter(account=account).exists():
            raise LedgerError(
                "Account has journal lines and cannot be deleted. Deactivate it instead."
            )
        if account.children.exists():
            raise LedgerError("Account has sub-accounts and cannot be deleted")

        log_action(
            action="account.delete",
            instance=account,
            user=user,
            company=company,
            description=f"Deleted account {account.code} {account.name}",
        )
        account.delete()
    logger.info("Account %s deleted for company %s", account_id, company.pk)
    return account_id


def get_account_activity(company, account_id, limit=50, start=None, end=None):
    """Journal lines of one account, newest first (all journal statuses)."""
    require_company(company)
    account = Account.objects.for_company(company).get(pk=account_id)
    lines = (
        JournalLine.objects.for_company(company)
        .filter(account=account)
        .within(start, end)
        .select_related("journal")
        .order_by("-journal__transaction_date", "-journal_id", "id")[:limit]
    )
    return {
        "account": account,
        "lines": [
            {
                "journal_id": line.journal_id,
                "journal_number": line.journal.journal_number,
                "transaction_date": line.journal.transaction_date,
                "status": line.journal.status,
                "description": line.description,
                "debit": line.debit,
                "credit": line.credit,
            }
            for line in lines
        ],
    }
