import datetime
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings
from django.utils import timezone

from ..exceptions import InvalidStateError, PeriodClosedError, UnbalancedJournalError
from ..models import ActivityLog, JournalEntry, JournalLine
from ..services import journals, periods

from .factories import account, cr, dr, journal_data, make_account, make_company, make_user


class JournalCreateTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.cash = account(self.company, "1000")
        self.sales = account(self.company, "4000")
        self.expenses = account(self.company, "6000")

    def test_unbalanced_journal_is_rejected_without_writing(self):
        with self.assertRaises(UnbalancedJournalError) as ctx:
            journals.create_journal(
                self.company, journal_data([dr(self.expenses, 100), cr(self.cash, 90)])
            )

        message = ctx.exception.messages[0]
        self.assertIn("100.00", message)
        self.assertIn("90.00", message)
        self.assertEqual(JournalEntry.objects.count(), 0)
        self.assertEqual(JournalLine.objects.count(), 0)

    def test_difference_within_tolerance_is_accepted(self):
        journal = journals.create_journal(
            self.company, journal_data([dr(self.expenses, "100.00"), cr(self.cash, "99.99")])
        )
        self.assertEqual(journal.total_debits, Decimal("100.00"))
        self.assertEqual(journal.total_credits, Decimal("99.99"))

    @override_settings(LEDGER_BALANCE_TOLERANCE="0")
    def test_tolerance_comes_from_settings(self):
        with self.assertRaises(UnbalancedJournalError):
            journals.create_journal(
                self.company, journal_data([dr(self.expenses, "100.00"), cr(self.cash, "99.99")])
            )

    def test_needs_two_lines(self):
        with self.assertRaisesMessage(ValidationError, "A journal needs at least two lines"):
            journals.create_journal(self.company, journal_data([dr(self.cash, 10)]))

    def test_line_with_both_sides_is_rejected(self):
        both = {"account_id": self.cash.pk, "debit": Decimal("5"), "credit": Decimal("5")}
        with self.assertRaisesMessage(ValidationError, "not both"):
            journals.create_journal(self.company, journal_data([both, cr(self.sales, 5)]))

    def test_zero_line_is_rejected(self):
        with self.assertRaisesMessage(ValidationError, "Line 2: debit or credit must be non-zero"):
            journals.create_journal(
                self.company, journal_data([dr(self.cash, 10), cr(self.sales, 0), cr(self.sales, 10)])
            )

    def test_negative_amount_is_rejected(self):
        with self.assertRaisesMessage(ValidationError, "must be >= 0"):
            journals.create_journal(self.company, journal_data([dr(self.cash, -10), cr(self.sales, -10)]))

    def test_non_finite_amounts_are_rejected(self):
        for value in ("NaN", "Infinity", "-Infinity", "sNaN"):
            bad = {"account_id": self.cash.pk, "debit": value}
            with self.assertRaisesMessage(ValidationError, "Line 1 debit must be a number"):
                journals.create_journal(self.company, journal_data([bad, cr(self.sales, 10)]))
        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_line_must_be_an_object(self):
        with self.assertRaisesMessage(ValidationError, "Line 2 must be an object"):
            journals.create_journal(self.company, journal_data([dr(self.cash, 10), "x"]))
        with self.assertRaisesMessage(ValidationError, "Journal lines must be a list"):
            journals.create_journal(self.company, journal_data(42))

    def test_account_of_another_company_is_not_found(self):
        other = make_company(name="Other Co")
        foreign_cash = account(other, "1000")
        with self.assertRaisesMessage(ValidationError, f"Line 1: account {foreign_cash.pk} not found"):
            journals.create_journal(self.company, journal_data([dr(foreign_cash, 10), cr(self.sales, 10)]))
        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_inactive_account_is_rejected(self):
        old = make_account(self.company, "6900", "expense", is_active=False)
        with self.assertRaisesMessage(ValidationError, "Account 6900 is inactive"):
            journals.create_journal(self.company, journal_data([dr(old, 10), cr(self.cash, 10)]))

    def test_manual_journal_respects_allow_manual_journals(self):
        restricted = make_account(self.company, "2100", "liability", allow_manual_journals=False)
        with self.assertRaisesMessage(ValidationError, "Account 2100 does not accept manual journals"):
            journals.create_journal(self.company, journal_data([dr(self.cash, 10), cr(restricted, 10)]))

        # system sources may still use it
        journal = journals.create_journal(
            self.company,
            journal_data([dr(self.cash, 10), cr(restricted, 10)]),
            source="system",
        )
        self.assertEqual(journal.source, "system")

    def test_line_description_defaults_to_header(self):
        journal = journals.create_journal(
            self.company,
            journal_data(
                [dr(self.cash, 10, description="Till"), cr(self.sales, 10)],
                description="Cash sale",
            ),
        )
        self.assertEqual(
            sorted(journal.lines.values_list("description", flat=True)), ["Cash sale", "Till"]
        )

    def test_draft_journal_does_not_touch_balances(self):
        journal = journals.create_journal(self.company, journal_data([dr(self.cash, 75), cr(self.sales, 75)]))

        self.assertEqual(journal.status, "draft")
        self.assertIsNone(journal.posted_at)
        self.cash.refresh_from_db()
        self.assertEqual(self.cash.current_balance, 0)

    def test_posted_journal_updates_balances(self):
        user = make_user(company=self.company)
        journal = journals.create_journal(
            self.company,
            journal_data([dr(self.cash, 75), cr(self.sales, 75)], status="posted"),
            user=user,
        )

        self.assertEqual(journal.status, "posted")
        self.assertEqual(journal.posted_by, user)
        self.assertIsNotNone(journal.posted_at)
        self.assertEqual(journal.posting_date, timezone.localdate())
        self.cash.refresh_from_db()
        self.sales.refresh_from_db()
        self.assertEqual(self.cash.current_balance, Decimal("75.00"))
        self.assertEqual(self.sales.current_balance, Decimal("75.00"))

    def test_new_journal_must_be_draft_or_posted(self):
        with self.assertRaises(ValidationError):
            journals.create_journal(
                self.company, journal_data([dr(self.cash, 1), cr(self.sales, 1)], status="voided")
            )

    def test_numbers_are_sequential_per_company(self):
        year = timezone.localdate().year
        first = journals.create_journal(self.company, journal_data([dr(self.cash, 1), cr(self.sales, 1)]))
        second = journals.create_journal(self.company, journal_data([dr(self.cash, 2), cr(self.sales, 2)]))
        other = make_company(name="Other Co")
        foreign = journals.create_journal(
            other, journal_data([dr(account(other, "1000"), 1), cr(account(other, "4000"), 1)])
        )

        self.assertEqual(first.journal_number, f"JE-{year}-000001")
        self.assertEqual(second.journal_number, f"JE-{year}-000002")
        self.assertEqual(foreign.journal_number, f"JE-{year}-000001")

    def test_create_is_audited(self):
        journal = journals.create_journal(self.company, journal_data([dr(self.cash, 1), cr(self.sales, 1)]))
        self.assertTrue(
            ActivityLog.objects.filter(
                company=self.company, action="journal.create", object_id=str(journal.pk)
            ).exists()
        )


class JournalLifecycleTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.cash = account(self.company, "1000")
        self.sales = account(self.company, "4000")
        self.draft = journals.create_journal(
            self.company, journal_data([dr(self.cash, 40), cr(self.sales, 40)])
        )

    def test_post_draft(self):
        journal = journals.post_journal(self.company, self.draft.pk)

        self.assertEqual(journal.status, "posted")
        self.cash.refresh_from_db()
        self.assertEqual(self.cash.current_balance, Decimal("40.00"))

    def test_post_twice_is_rejected(self):
        journals.post_journal(self.company, self.draft.pk)
        with self.assertRaisesMessage(InvalidStateError, "Journal is already posted"):
            journals.post_journal(self.company, self.draft.pk)

    def test_posted_journal_is_locked(self):
        journals.post_journal(self.company, self.draft.pk)

        with self.assertRaisesMessage(InvalidStateError, "Only draft journals can be edited"):
            journals.update_journal(self.company, self.draft.pk, {"description": "changed"})
        with self.assertRaisesMessage(InvalidStateError, "Only draft journals can be deleted"):
            journals.delete_journal(self.company, self.draft.pk)
        with self.assertRaisesMessage(InvalidStateError, "Record an offsetting journal instead"):
            journals.void_journal(self.company, self.draft.pk)

    def test_void_draft(self):
        journal = journals.void_journal(self.company, self.draft.pk)
        self.assertEqual(journal.status, "voided")

        with self.assertRaisesMessage(InvalidStateError, "Cannot post a voided journal"):
            journals.post_journal(self.company, self.draft.pk)
        with self.assertRaisesMessage(InvalidStateError, "Journal is already voided"):
            journals.void_journal(self.company, self.draft.pk)

    def test_update_draft_replaces_lines_and_recalculates(self):
        expenses = account(self.company, "6000")
        journals.update_journal(
            self.company,
            self.draft.pk,
            {"lines": [dr(expenses, 15), cr(self.cash, 15)]},
        )
        self.draft.refresh_from_db()

        self.assertEqual(self.draft.lines.count(), 2)
        self.assertEqual(self.draft.total_debits, Decimal("15.00"))
        self.assertEqual(self.draft.account_ids(), {expenses.pk, self.cash.pk})

    def test_update_rejects_unbalanced_lines_and_keeps_old_ones(self):
        with self.assertRaises(UnbalancedJournalError):
            journals.update_journal(
                self.company, self.draft.pk, {"lines": [dr(self.cash, 10), cr(self.sales, 9)]}
            )
        self.assertEqual(self.draft.lines.count(), 2)
        self.assertEqual(sum(line.debit for line in self.draft.lines.all()), Decimal("40.00"))

    def test_delete_draft(self):
        journals.delete_journal(self.company, self.draft.pk)
        self.assertFalse(JournalEntry.objects.filter(pk=self.draft.pk).exists())
        self.assertEqual(JournalLine.objects.count(), 0)

    def test_posted_journal_cannot_be_deleted_through_the_orm(self):
        journals.post_journal(self.company, self.draft.pk)
        with self.assertRaises(InvalidStateError):
            JournalEntry.objects.get(pk=self.draft.pk).delete()

    def test_list_journals_filters(self):
        journals.post_journal(self.company, self.draft.pk)
        journals.create_journal(
            self.company,
            journal_data([dr(self.cash, 5), cr(self.sales, 5)], transaction_date=datetime.date(2025, 6, 1)),
        )

        posted = journals.list_journals(self.company, status="posted")
        june = journals.list_journals(self.company, start="2025-06-01", end="2025-06-30")

        self.assertEqual([j.pk for j in posted], [self.draft.pk])
        self.assertEqual(len(june), 1)
        self.assertEqual(june[0].transaction_date, datetime.date(2025, 6, 1))


class PeriodControlTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.cash = account(self.company, "1000")
        self.sales = account(self.company, "4000")

    def _posted(self, day):
        return journals.create_journal(
            self.company,
            journal_data([dr(self.cash, 10), cr(self.sales, 10)], transaction_date=day, status="posted"),
        )

    def test_no_periods_posts_freely(self):
        self.assertEqual(self._posted(datetime.date(2019, 1, 1)).status, "posted")

    def test_date_inside_open_period_posts(self):
        periods.create_period(
            self.company,
            {"name": "2025-03", "start_date": "2025-03-01", "end_date": "2025-03-31"},
        )
        self.assertEqual(self._posted(datetime.date(2025, 3, 15)).status, "posted")

    def test_date_outside_any_open_period_is_rejected(self):
        periods.create_period(
            self.company,
            {"name": "2025-03", "start_date": "2025-03-01", "end_date": "2025-03-31"},
        )
        with self.assertRaises(PeriodClosedError):
            self._posted(datetime.date(2025, 4, 2))
        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_closed_period_blocks_posting_but_not_drafts(self):
        user = make_user(company=self.company)
        period = periods.create_period(
            self.company,
            {"name": "2025-03", "start_date": "2025-03-01", "end_date": "2025-03-31"},
        )
        closed = periods.update_period_status(self.company, period.pk, "closed", user=user)
        self.assertEqual(closed.closed_by, user)
        self.assertIsNotNone(closed.closed_at)

        draft = journals.create_journal(
            self.company,
            journal_data([dr(self.cash, 10), cr(self.sales, 10)], transaction_date=datetime.date(2025, 3, 5)),
        )
        with self.assertRaises(PeriodClosedError):
            journals.post_journal(self.company, draft.pk)

        reopened = periods.update_period_status(self.company, period.pk, "open")
        self.assertIsNone(reopened.closed_at)
        self.assertEqual(journals.post_journal(self.company, draft.pk).status, "posted")

    def test_period_dates_must_be_ordered(self):
        with self.assertRaises(ValidationError):
            periods.create_period(
                self.company,
                {"name": "bad", "start_date": "2025-03-31", "end_date": "2025-03-01"},
            )
