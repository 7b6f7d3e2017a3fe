from io import StringIO

from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.test import TestCase

from ..exceptions import (
    DuplicateAccountCodeError,
    MissingCompanyError,
    SystemAccountError,
)
from ..models import Account, Company
from ..services import accounts, journals

from .factories import account, cr, dr, journal_data, make_account, make_company


class DefaultAccountsTests(TestCase):
    def setUp(self):
        self.company = make_company(seed=False)

    def test_seeds_the_five_system_accounts(self):
        created = accounts.ensure_default_accounts(self.company)

        self.assertEqual(created, 5)
        rows = {
            a.code: (a.name, a.ac_type, a.account_class, a.normal_balance)
            for a in Account.objects.for_company(self.company)
        }
        self.assertEqual(
            rows,
            {
                "1000": ("Cash / Bank", "asset", "current_asset", "debit"),
                "1200": ("Accounts Receivable", "asset", "current_asset", "debit"),
                "2000": ("Accounts Payable", "liability", "current_liability", "credit"),
                "4000": ("Sales Revenue", "income", "revenue", "credit"),
                "6000": ("Expenses", "expense", "expense", "debit"),
            },
        )
        for acct in Account.objects.for_company(self.company):
            self.assertTrue(acct.is_system)
            self.assertTrue(acct.allow_manual_journals)
            self.assertEqual(acct.current_balance, 0)

    def test_seeding_is_idempotent(self):
        accounts.ensure_default_accounts(self.company)
        self.assertEqual(accounts.ensure_default_accounts(self.company), 0)
        self.assertEqual(Account.objects.for_company(self.company).count(), 5)

    def test_seeding_skips_codes_already_present(self):
        make_account(self.company, "1000", "asset", name="Main bank")

        self.assertEqual(accounts.ensure_default_accounts(self.company), 4)
        self.assertEqual(account(self.company, "1000").name, "Main bank")

    def test_chart_of_accounts_seeds_and_orders_by_code(self):
        make_account(self.company, "1500", "asset")

        chart = accounts.get_chart_of_accounts(self.company)

        self.assertEqual([a.code for a in chart], ["1000", "1200", "1500", "2000", "4000", "6000"])

    def test_no_company_is_rejected(self):
        with self.assertRaises(MissingCompanyError):
            accounts.get_chart_of_accounts(None)


class AccountCrudTests(TestCase):
    def setUp(self):
        self.company = make_company()

    def test_create_account_starts_at_zero(self):
        acct = accounts.create_account(
            self.company,
            {"code": "1100", "name": "Petty cash", "ac_type": "asset", "account_class": "current_asset"},
        )
        self.assertEqual(acct.current_balance, 0)
        self.assertEqual(acct.normal_balance, "debit")
        self.assertFalse(acct.is_system)

    def test_duplicate_code_is_rejected(self):
        with self.assertRaises(DuplicateAccountCodeError) as ctx:
            accounts.create_account(self.company, {"code": "1000", "name": "Other cash", "ac_type": "asset"})
        self.assertEqual(ctx.exception.messages, ["Account code already exists"])

    def test_same_code_allowed_in_another_company(self):
        other = make_company(name="Other Co")
        acct = accounts.create_account(other, {"code": "7000", "name": "Rent", "ac_type": "expense"})
        accounts.create_account(self.company, {"code": "7000", "name": "Rent", "ac_type": "expense"})
        self.assertEqual(acct.company, other)

    def test_invalid_type_is_rejected(self):
        with self.assertRaises(ValidationError):
            accounts.create_account(self.company, {"code": "9000", "name": "Odd", "ac_type": "gain"})

    def test_parent_must_belong_to_the_same_company(self):
        other = make_company(name="Other Co")
        foreign_parent = account(other, "6000")
        with self.assertRaises(ValidationError):
            accounts.create_account(
                self.company,
                {"code": "6100", "name": "Travel", "ac_type": "expense", "parent_id": foreign_parent.pk},
            )

    def test_system_accounts_cannot_be_edited(self):
        with self.assertRaises(SystemAccountError) as ctx:
            accounts.update_account(self.company, account(self.company, "4000").pk, {"name": "Sales"})
        self.assertEqual(
            ctx.exception.messages,
            ["System default accounts cannot be edited. You can add custom accounts instead."],
        )

    def test_system_accounts_cannot_be_deleted(self):
        with self.assertRaises(SystemAccountError) as ctx:
            accounts.delete_account(self.company, account(self.company, "2000").pk)
        self.assertIn("(1000, 1200, 2000, 4000, 6000)", ctx.exception.messages[0])
        self.assertTrue(Account.objects.filter(company=self.company, code="2000").exists())

    def test_update_rejects_code_collision(self):
        acct = make_account(self.company, "6100", "expense")
        with self.assertRaises(DuplicateAccountCodeError):
            accounts.update_account(self.company, acct.pk, {"code": "6000"})

    def test_update_custom_account(self):
        acct = make_account(self.company, "6100", "expense", name="Travel")
        accounts.update_account(self.company, acct.pk, {"name": "Travel & lodging", "code": "6150"})
        acct.refresh_from_db()
        self.assertEqual((acct.code, acct.name), ("6150", "Travel & lodging"))

    def test_account_with_lines_cannot_be_deleted(self):
        rent = make_account(self.company, "6100", "expense")
        journals.create_journal(
            self.company, journal_data([dr(rent, 50), cr(account(self.company, "1000"), 50)])
        )
        with self.assertRaises(ValidationError):
            accounts.delete_account(self.company, rent.pk)

    def test_unused_custom_account_is_deleted(self):
        acct = make_account(self.company, "6100", "expense")
        accounts.delete_account(self.company, acct.pk)
        self.assertFalse(Account.objects.filter(pk=acct.pk).exists())

    def test_account_activity_lists_lines_newest_first(self):
        cash = account(self.company, "1000")
        sales = account(self.company, "4000")
        journals.create_journal(self.company, journal_data([dr(cash, 10), cr(sales, 10)], status="posted"))
        journals.create_journal(self.company, journal_data([dr(cash, 20), cr(sales, 20)], status="posted"))

        activity = accounts.get_account_activity(self.company, cash.pk)

        self.assertEqual(activity["account"], cash)
        self.assertEqual(len(activity["lines"]), 2)
        self.assertEqual(activity["lines"][0]["debit"], 20)


class SeedLedgerCommandTests(TestCase):
    def test_seed_ledger_creates_company_and_chart(self):
        out = StringIO()
        call_command("seed_ledger", "acme", "--name", "Acme Ltd", stdout=out)

        company = Company.objects.get(slug="acme")
        self.assertEqual(company.name, "Acme Ltd")
        self.assertEqual(Account.objects.for_company(company).filter(is_system=True).count(), 5)
        self.assertIn("Seeded 5 default account(s)", out.getvalue())

    def test_seed_ledger_twice_seeds_nothing_new(self):
        call_command("seed_ledger", "acme", stdout=StringIO())
        out = StringIO()
        call_command("seed_ledger", "acme", stdout=out)
        self.assertIn("Seeded 0 default account(s)", out.getvalue())
