from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings
from django.utils import timezone

from ..exceptions import InvalidStateError
from ..models import Invoice, JournalEntry
from ..services import invoices, payments
from ..services.audit_helper import get_activity_log
from .. import api

from .factories import BILL_DATE, account, invoice_data, make_company, make_customer, make_user


class RecordingNotifier:
    def __init__(self):
        self.events = []

    def send_invoice(self, invoice):
        self.events.append(("send_invoice", invoice.pk))

    def send_reminder(self, invoice):
        self.events.append(("send_reminder", invoice.pk))


class BrokenNotifier:
    def send_invoice(self, invoice):
        raise ConnectionError("smtp down")

    def send_reminder(self, invoice):
        raise ConnectionError("smtp down")


class InvoiceCreateTests(TestCase):
    def setUp(self):
        self.company = make_company(name="Acme Ltd")
        self.customer = make_customer(self.company)

    def test_numbers_use_the_company_prefix(self):
        year = timezone.localdate().year
        first = invoices.create_invoice(self.company, invoice_data(self.customer))
        second = invoices.create_invoice(self.company, invoice_data(self.customer))

        self.assertEqual(self.company.document_prefix, "ACM")
        self.assertEqual(first.invoice_number, f"ACM-{year}-0001")
        self.assertEqual(second.invoice_number, f"ACM-{year}-0002")

    def test_new_invoice_is_a_draft_with_no_journal(self):
        invoice = invoices.create_invoice(
            self.company,
            invoice_data(self.customer, status="sent", taxes=[{"tax_name": "VAT", "tax_percentage": "10"}]),
        )

        self.assertEqual(invoice.status, "draft")
        self.assertEqual(invoice.total, Decimal("550.00"))
        self.assertEqual(invoice.amount_due, Decimal("550.00"))
        self.assertEqual(invoice.currency_id, "USD")
        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_update_and_delete_draft(self):
        invoice = invoices.create_invoice(self.company, invoice_data(self.customer))
        updated = invoices.update_invoice(
            self.company,
            invoice.pk,
            {"lines": [{"description": "Audit", "quantity": 2, "unit_price": "300"}]},
        )
        self.assertEqual(updated.total, Decimal("600.00"))

        invoices.delete_invoice(self.company, invoice.pk)
        self.assertFalse(Invoice.objects.filter(pk=invoice.pk).exists())


class InvoiceSendTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.user = make_user(company=self.company)
        self.customer = make_customer(self.company)
        self.invoice = invoices.create_invoice(self.company, invoice_data(self.customer), self.user)
        self.notifier = RecordingNotifier()

    def test_send_marks_sent_and_recognizes_revenue(self):
        outcome = invoices.send_invoice(self.company, self.invoice.pk, self.user, notifier=self.notifier)
        invoice = outcome.value["invoice"]

        self.assertEqual(invoice.status, "sent")
        self.assertIsNotNone(invoice.sent_at)
        self.assertEqual(invoice.email_sent_count, 1)
        self.assertEqual(self.notifier.events, [("send_invoice", invoice.pk)])
        self.assertTrue(outcome.value["gl_posted"])
        self.assertEqual(outcome.warnings, [])

        journal = outcome.value["journal"]
        self.assertEqual((journal.source, journal.source_id), ("receivables", str(invoice.pk)))
        self.assertEqual(journal.transaction_date, BILL_DATE)
        self.assertEqual(account(self.company, "1200").current_balance, Decimal("500.00"))
        self.assertEqual(account(self.company, "4000").current_balance, Decimal("500.00"))

    def test_resend_does_not_post_twice(self):
        invoices.send_invoice(self.company, self.invoice.pk, notifier=self.notifier)
        outcome = invoices.send_invoice(self.company, self.invoice.pk, notifier=self.notifier)

        self.assertEqual(outcome.value["invoice"].email_sent_count, 2)
        self.assertEqual(JournalEntry.objects.filter(source="receivables").count(), 1)
        self.assertEqual(account(self.company, "1200").current_balance, Decimal("500.00"))

    def test_notifier_failure_is_a_warning(self):
        outcome = invoices.send_invoice(self.company, self.invoice.pk, notifier=BrokenNotifier())

        self.assertEqual(outcome.value["invoice"].status, "sent")
        self.assertEqual(
            outcome.warnings,
            ["Notification failed (send_invoice); the invoice status was still updated."],
        )
        self.assertTrue(outcome.value["gl_posted"])

    @override_settings(LEDGER_NOTIFIER="ledger_core.services.notifications.LoggingNotifier")
    def test_default_notifier_from_settings(self):
        outcome = invoices.send_invoice(self.company, self.invoice.pk)
        self.assertEqual(outcome.warnings, [])

    def test_partially_paid_invoice_keeps_its_status_when_resent(self):
        invoices.send_invoice(self.company, self.invoice.pk, notifier=self.notifier)
        payments.record_invoice_payment(self.company, self.invoice.pk, {"amount": "100"})

        outcome = invoices.send_invoice(self.company, self.invoice.pk, notifier=self.notifier)

        self.assertEqual(outcome.value["invoice"].status, "partially_paid")
        self.assertEqual(outcome.value["invoice"].email_sent_count, 2)

    def test_paid_or_cancelled_invoices_cannot_be_sent(self):
        invoices.update_invoice_status(self.company, self.invoice.pk, "cancelled")
        with self.assertRaisesMessage(InvalidStateError, "Cannot send cancelled or paid invoices"):
            invoices.send_invoice(self.company, self.invoice.pk, notifier=self.notifier)

    def test_sent_invoice_is_locked(self):
        invoices.send_invoice(self.company, self.invoice.pk, notifier=self.notifier)
        with self.assertRaisesMessage(InvalidStateError, "Only draft invoices can be edited"):
            invoices.update_invoice(self.company, self.invoice.pk, {"notes": "late"})
        with self.assertRaisesMessage(
            InvalidStateError, "Only draft invoices can be deleted. Cancel this invoice instead."
        ):
            invoices.delete_invoice(self.company, self.invoice.pk)

    def test_status_change_to_sent_also_posts(self):
        outcome = invoices.update_invoice_status(self.company, self.invoice.pk, "sent")

        self.assertTrue(outcome.value["gl_posted"])
        self.assertIsNotNone(outcome.value["invoice"].sent_at)
        self.assertTrue(invoices.get_invoice_gl_status(self.company, self.invoice.pk)["posted"])


class InvoiceReminderTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.customer = make_customer(self.company)
        self.invoice = invoices.create_invoice(self.company, invoice_data(self.customer))
        self.notifier = RecordingNotifier()

    def test_draft_cannot_be_reminded(self):
        with self.assertRaisesMessage(
            InvalidStateError, "Reminders can only be sent for sent, overdue or partially paid invoices"
        ):
            invoices.remind_invoice(self.company, self.invoice.pk, notifier=self.notifier)

    def test_remind_sent_invoice(self):
        invoices.send_invoice(self.company, self.invoice.pk, notifier=self.notifier)

        outcome = invoices.remind_invoice(self.company, self.invoice.pk, notifier=self.notifier)

        self.assertIsNotNone(outcome.value.last_reminder_at)
        self.assertEqual(outcome.warnings, [])
        self.assertEqual(self.notifier.events[-1], ("send_reminder", self.invoice.pk))

    def test_reminder_failure_is_a_warning(self):
        invoices.send_invoice(self.company, self.invoice.pk, notifier=self.notifier)

        outcome = invoices.remind_invoice(self.company, self.invoice.pk, notifier=BrokenNotifier())

        self.assertEqual(len(outcome.warnings), 1)
        self.assertIn("send_reminder", outcome.warnings[0])


class InvoiceManualPostingTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.customer = make_customer(self.company)
        self.invoice = invoices.create_invoice(self.company, invoice_data(self.customer))

    def test_draft_is_rejected(self):
        with self.assertRaisesMessage(ValidationError, "Draft or cancelled invoices cannot be posted to the GL."):
            invoices.post_invoice_to_gl(self.company, self.invoice.pk)

    def test_sent_invoice_already_posted(self):
        invoices.send_invoice(self.company, self.invoice.pk, notifier=RecordingNotifier())

        result = invoices.post_invoice_to_gl(self.company, self.invoice.pk)

        self.assertTrue(result["already_posted"])
        self.assertEqual(JournalEntry.objects.filter(source="receivables").count(), 1)


class InvoiceActivityLogTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.user = make_user(company=self.company)
        self.customer = make_customer(self.company)
        self.invoice = invoices.create_invoice(self.company, invoice_data(self.customer), self.user)
        invoices.send_invoice(self.company, self.invoice.pk, self.user, notifier=RecordingNotifier())

    def test_activity_of_one_invoice_is_newest_first(self):
        entries = get_activity_log(self.company, self.invoice)

        self.assertEqual(
            [e.action for e in entries], ["GL Posted", "Invoice Sent", "Invoice Created"]
        )
        self.assertEqual(entries[-1].user, self.user)
        self.assertEqual(get_activity_log(self.company, self.invoice, limit=1)[0].action, "GL Posted")

    def test_lookup_by_type_and_id(self):
        entries = get_activity_log(self.company, object_type="Invoice", object_id=self.invoice.pk)
        self.assertEqual(len(entries), 3)

    def test_other_companies_see_nothing(self):
        other = make_company(name="Other Co")
        self.assertEqual(get_activity_log(other, self.invoice), [])

    def test_api_requires_a_company(self):
        result = api.get_activity_log(None)
        self.assertEqual(result.code, "no_company")
