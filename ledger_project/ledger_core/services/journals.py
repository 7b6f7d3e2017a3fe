import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from ..exceptions import InvalidStateError, LedgerError, UnbalancedJournalError
from ..models import Account, JournalEntry, JournalLine
from ..models.journal import JOURNAL_SOURCES
from .accounts import require_company
from .audit_helper import log_action
from .balances import recalculate_accounts
from .calculations import ZERO, money, to_date, to_decimal
from .numbering import allocate_number
from .periods import check_period_control

logger = logging.getLogger(__name__)

JOURNAL_SOURCE_CODES = tuple(code for code, _ in JOURNAL_SOURCES)


def balance_tolerance():
    return Decimal(str(getattr(settings, "LEDGER_BALANCE_TOLERANCE", "0.01")))


@dataclass
class LineInput:
    account: Account
    debit: Decimal
    credit: Decimal
    description: str = ""
    entity_type: str = ""
    entity_id: Optional[str] = None


def _clean_lines(company, raw_lines, default_description, manual) -> List[LineInput]:
    """
    Validate raw line dicts before anything is written.
    Each line is one-sided and non-negative, and its account is in the
    company (and open to manual journals when the journal is manual).
    """
    if not isinstance(raw_lines, (list, tuple)):
        raise LedgerError("Journal lines must be a list")
    if len(raw_lines) < 2:
        raise LedgerError("A journal needs at least two lines")
    for i, raw in enumerate(raw_lines, start=1):
        if not isinstance(raw, dict):
            raise LedgerError(f"Line {i} must be an object")

    account_ids = {raw.get("account_id") for raw in raw_lines}
    accounts = Account.objects.for_company(company).in_bulk(
        [pk for pk in account_ids if pk is not None]
    )

    lines = []
    for i, raw in enumerate(raw_lines, start=1):
        account = accounts.get(raw.get("account_id"))
        if account is None:
            # another company's account looks exactly like a missing one
            raise LedgerError(f"Line {i}: account {raw.get('account_id')} not found")
        debit = money(to_decimal(raw.get("debit"), f"Line {i} debit"))
        credit = money(to_decimal(raw.get("credit"), f"Line {i} credit"))
        if debit < 0 or credit < 0:
            raise LedgerError(f"Line {i}: debit and credit must be >= 0")
        if debit > 0 and credit > 0:
            raise LedgerError(f"Line {i}: a line is either a debit or a credit, not both")
        if debit == 0 and credit == 0:
            raise LedgerError(f"Line {i}: debit or credit must be non-zero")
        if not account.is_active:
            raise LedgerError(f"Account {account.code} is inactive")
        if manual and not account.allow_manual_journals:
            raise LedgerError(f"Account {account.code} does not accept manual journals")

        lines.append(
            LineInput(
                account=account,
                debit=debit,
                credit=credit,
                description=(raw.get("description") or default_description or "")[:400],
                entity_type=raw.get("entity_type") or "",
                entity_id=str(raw["entity_id"]) if raw.get("entity_id") is not None else None,
            )
        )
    return lines


def _check_balance(lines):
    total_debits = sum((line.debit for line in lines), ZERO)
    total_credits = sum((line.credit for line in lines), ZERO)
    if abs(total_debits - total_credits) > balance_tolerance():
        raise UnbalancedJournalError(total_debits, total_credits)
    return total_debits, total_credits


def _write_lines(journal, lines):
    for line in lines:
        JournalLine.objects.create(
            company=journal.company,
            journal=journal,
            account=line.account,
            description=line.description,
            debit=line.debit,
            credit=line.credit,
            entity_type=line.entity_type,
            entity_id=line.entity_id,
        )


def _mark_posted(journal, user):
    journal.transition_to("posted")
    journal.posted_by = user if getattr(user, "is_authenticated", False) else None
    journal.posted_at = timezone.now()
    journal.posting_date = journal.posting_date or timezone.localdate()
    journal.save()


def create_journal(company, data, user=None, *, source="manual", source_id=None):
    """
    Create a journal (header + lines) in one transaction.

    data keys: transaction_date, posting_date, description, reference,
    status ("draft" or "posted"), lines [{account_id, debit, credit,
    description, entity_type, entity_id}].
    """
    require_company(company)
    if source not in JOURNAL_SOURCE_CODES:
        raise LedgerError(f"Unknown journal source: {source}")
    status = data.get("status") or "draft"
    if status not in ("draft", "posted"):
        raise LedgerError("A new journal is either draft or posted")

    transaction_date = to_date(data.get("transaction_date"), "transaction_date")
    posting_date = to_date(data.get("posting_date"), "posting_date", required=False)
    description = (data.get("description") or "").strip()

    # everything is validated before the first write
    lines = _clean_lines(company, data.get("lines") or [], description, manual=source == "manual")
    total_debits, total_credits = _check_balance(lines)

    with transaction.atomic():
        if status == "posted":
            check_period_control(company, transaction_date)

        journal = JournalEntry.objects.create(
            company=company,
            journal_number=allocate_number(company, "journal"),
            transaction_date=transaction_date,
            posting_date=posting_date,
            description=description,
            reference=(data.get("reference") or "").strip(),
            source=source,
            source_id=str(source_id) if source_id is not None else None,
            # lines are only accepted on a draft; flipped below when posting
            status="draft",
            total_debits=total_debits,
            total_credits=total_credits,
            created_by=user if getattr(user, "is_authenticated", False) else None,
        )
        _write_lines(journal, lines)
        if status == "posted":
            _mark_posted(journal, user)

        log_action(
            action="journal.create",
            instance=journal,
            user=user,
            company=company,
            description=f"{journal.journal_number} created as {journal.status}",
        )
        recalculate_accounts(company, {line.account.pk for line in lines})

    logger.info(
        "Journal %s created (%s, source=%s) for company %s",
        journal.journal_number,
        journal.status,
        source,
        company.pk,
    )
    return journal


def post_journal(company, journal_id, user=None):
    require_company(company)
    with transaction.atomic():
        # Lock the row to avoid double posting
        journal = JournalEntry.objects.for_company(company).select_for_update().get(pk=journal_id)
        if journal.status == "posted":
            raise InvalidStateError("Journal is already posted")
        if journal.status == "voided":
            raise InvalidStateError("Cannot post a voided journal")

        if journal.lines.count() < 2:
            raise LedgerError("A journal needs at least two lines")
        total_debits, total_credits = journal.compute_totals()
        if abs(total_debits - total_credits) > balance_tolerance():
            raise UnbalancedJournalError(total_debits, total_credits)

        check_period_control(company, journal.transaction_date)

        journal.total_debits = total_debits
        journal.total_credits = total_credits
        _mark_posted(journal, user)
        log_action(
            action="journal.post",
            instance=journal,
            user=user,
            company=company,
            description=f"{journal.journal_number} posted",
        )
        recalculate_accounts(company, journal.account_ids())

    logger.info("Journal %s posted for company %s", journal.journal_number, company.pk)
    return journal


def update_journal(company, journal_id, data, user=None):
    require_company(company)
    with transaction.atomic():
        journal = JournalEntry.objects.for_company(company).select_for_update().get(pk=journal_id)
        if not journal.is_draft:
            raise InvalidStateError(
                "Only draft journals can be edited. Posted or voided journals are locked."
            )

        if "transaction_date" in data:
            journal.transaction_date = to_date(data["transaction_date"], "transaction_date")
        if "posting_date" in data:
            journal.posting_date = to_date(data["posting_date"], "posting_date", required=False)
        if "description" in data:
            journal.description = (data.get("description") or "").strip()
        if "reference" in data:
            journal.reference = (data.get("reference") or "").strip()

        old_account_ids = journal.account_ids()
        new_account_ids = set()
        if "lines" in data:
            lines = _clean_lines(
                company,
                data.get("lines") or [],
                journal.description,
                manual=journal.source == "manual",
            )
            journal.total_debits, journal.total_credits = _check_balance(lines)
            # replaced wholesale; lines of a draft may be deleted in bulk
            journal.lines.all().delete()
            _write_lines(journal, lines)
            new_account_ids = {line.account.pk for line in lines}

        journal.save()
        log_action(
            action="journal.update",
            instance=journal,
            user=user,
            company=company,
            description=f"{journal.journal_number} updated",
        )
        # removed accounts must drop this journal's effect too
        recalculate_accounts(company, old_account_ids | new_account_ids)

    return journal


def delete_journal(company, journal_id, user=None):
    require_company(company)
    with transaction.atomic():
        journal = JournalEntry.objects.for_company(company).select_for_update().get(pk=journal_id)
        if not journal.is_draft:
            raise InvalidStateError(
                "Only draft journals can be deleted. Posted or voided journals are locked."
            )
        account_ids = journal.account_ids()
        number = journal.journal_number
        log_action(
            action="journal.delete",
            instance=journal,
            user=user,
            company=company,
            description=f"{number} deleted",
        )
        journal.delete()
        recalculate_accounts(company, account_ids)

    logger.info("Journal %s deleted for company %s", number, company.pk)
    return journal_id


def void_journal(company, journal_id, user=None):
    require_company(company)
    with transaction.atomic():
        journal = JournalEntry.objects.for_company(company).select_for_update().get(pk=journal_id)
        if journal.status == "posted":
            raise InvalidStateError(
                "Posted journals are locked. Record an offsetting journal instead."
            )
        if journal.status == "voided":
            raise InvalidStateError("Journal is already voided")
        journal.transition_to("voided")
        journal.save()
        log_action(
            action="journal.void",
            instance=journal,
            user=user,
            company=company,
            description=f"{journal.journal_number} voided",
        )
        recalculate_accounts(company, journal.account_ids())
    return journal


def get_journal(company, journal_id):
    require_company(company)
    return (
        JournalEntry.objects.for_company(company)
        .prefetch_related("lines__account")
        .get(pk=journal_id)
    )


def list_journals(company, status=None, source=None, start=None, end=None):
    require_company(company)
    qs = JournalEntry.objects.for_company(company)
    if status:
        qs = qs.filter(status=status)
    if source:
        qs = qs.filter(source=source)
    if start:
        qs = qs.filter(transaction_date__gte=to_date(start, "start"))
    if end:
        qs = qs.filter(transaction_date__lte=to_date(end, "end"))
    return list(qs.order_by("-transaction_date", "-id"))


def find_source_journal(company, source, source_id):
    return (
        JournalEntry.objects.for_company(company)
        .filter(source=source, source_id=str(source_id))
        .order_by("id")
        .first()
    )


def create_source_journal(company, data, user=None, *, source, source_id):
    """
    Idempotent create for subledger postings.

    Returns (journal, created). An existing journal for
    (company, source, source_id) is returned untouched; a concurrent insert
    that wins the unique constraint is resolved the same way.
    """
    existing = find_source_journal(company, source, source_id)
    if existing is not None:
        return existing, False
    try:
        with transaction.atomic():
            journal = create_journal(company, data, user, source=source, source_id=source_id)
    except IntegrityError:
        existing = find_source_journal(company, source, source_id)
        if existing is None:
            raise
        logger.info(
            "Concurrent %s posting for %s resolved to %s",
            source,
            source_id,
            existing.journal_number,
        )
        return existing, False
    return journal, True
