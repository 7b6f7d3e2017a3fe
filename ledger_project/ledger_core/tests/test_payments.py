import datetime
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase
from django.utils import timezone

from ..exceptions import InvalidStateError, PaymentAmountError
from ..models import ActivityLog, Bill, BillPayment, InvoicePayment, JournalEntry
from ..services import bills, invoices, payments

from .factories import bill_data, invoice_data, make_company, make_customer, make_user, make_vendor


class BillPaymentTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.user = make_user(company=self.company)
        self.vendor = make_vendor(self.company)
        self.bill = bills.create_bill(
            self.company, bill_data(self.vendor, status="approved"), self.user
        ).value["bill"]
        self.journals_before = JournalEntry.objects.count()

    def _bill(self):
        return Bill.objects.get(pk=self.bill.pk)

    def test_partial_then_full_payment(self):
        payment = payments.record_bill_payment(
            self.company,
            self.bill.pk,
            {"amount": "50", "payment_method": "check", "reference_number": "CHK-1"},
            self.user,
        )
        self.assertEqual(payment.payment_date, timezone.localdate())
        self.assertEqual(payment.created_by, self.user)
        bill = self._bill()
        self.assertEqual(bill.status, "partially_paid")
        self.assertEqual(bill.amount_paid, Decimal("50.00"))
        self.assertEqual(bill.amount_due, Decimal("150.00"))
        self.assertIsNone(bill.paid_at)

        payments.record_bill_payment(self.company, self.bill.pk, {"amount": "150"})
        bill = self._bill()
        self.assertEqual(bill.status, "paid")
        self.assertEqual(bill.amount_due, 0)
        self.assertIsNotNone(bill.paid_at)
        self.assertEqual(JournalEntry.objects.count(), self.journals_before)

    def test_overpayment_is_rejected(self):
        with self.assertRaisesMessage(
            PaymentAmountError, "Payment amount cannot exceed amount due (200.00)"
        ):
            payments.record_bill_payment(self.company, self.bill.pk, {"amount": "200.01"})
        self.assertFalse(BillPayment.objects.exists())
        self.assertEqual(self._bill().amount_paid, 0)

    def test_zero_or_negative_amount_is_rejected(self):
        for amount in ("0", "-5"):
            with self.assertRaisesMessage(PaymentAmountError, "Payment amount must be greater than zero"):
                payments.record_bill_payment(self.company, self.bill.pk, {"amount": amount})

    def test_non_finite_amount_is_rejected(self):
        for amount in ("NaN", "Infinity", "sNaN"):
            with self.assertRaisesMessage(ValidationError, "amount must be a number"):
                payments.record_bill_payment(self.company, self.bill.pk, {"amount": amount})
        self.assertFalse(BillPayment.objects.exists())
        self.assertEqual(self._bill().amount_due, Decimal("200.00"))

    def test_unknown_method_is_rejected(self):
        with self.assertRaises(ValidationError):
            payments.record_bill_payment(
                self.company, self.bill.pk, {"amount": "10", "payment_method": "barter"}
            )

    def test_draft_bill_cannot_be_paid(self):
        draft = bills.create_bill(self.company, bill_data(self.vendor, "DRAFT-1", unit_price="9")).value["bill"]
        with self.assertRaisesMessage(InvalidStateError, "Payments cannot be recorded against a draft bill"):
            payments.record_bill_payment(self.company, draft.pk, {"amount": "1"})

    def test_update_payment_reapplies_the_difference(self):
        payment = payments.record_bill_payment(self.company, self.bill.pk, {"amount": "200"})
        self.assertEqual(self._bill().status, "paid")

        payments.update_bill_payment(
            self.company, payment.pk, {"amount": "80", "payment_date": "2025-03-20"}
        )
        payment.refresh_from_db()
        bill = self._bill()

        self.assertEqual(payment.amount, Decimal("80.00"))
        self.assertEqual(payment.payment_date, datetime.date(2025, 3, 20))
        self.assertEqual(bill.status, "partially_paid")
        self.assertEqual(bill.amount_due, Decimal("120.00"))
        self.assertIsNone(bill.paid_at)

    def test_update_cannot_overshoot_the_total(self):
        first = payments.record_bill_payment(self.company, self.bill.pk, {"amount": "100"})
        payments.record_bill_payment(self.company, self.bill.pk, {"amount": "50"})
        with self.assertRaises(PaymentAmountError):
            payments.update_bill_payment(self.company, first.pk, {"amount": "151"})
        first.refresh_from_db()
        self.assertEqual(first.amount, Decimal("100.00"))

    def test_delete_payment_restores_amount_due(self):
        payment = payments.record_bill_payment(self.company, self.bill.pk, {"amount": "200"})

        bill = payments.delete_bill_payment(self.company, payment.pk, self.user)

        self.assertEqual(bill.status, "approved")
        self.assertEqual(bill.amount_paid, 0)
        self.assertEqual(bill.amount_due, Decimal("200.00"))
        self.assertIsNone(bill.paid_at)
        self.assertFalse(BillPayment.objects.filter(pk=payment.pk).exists())
        self.assertEqual(
            list(
                ActivityLog.objects.filter(object_id=str(self.bill.pk), action__startswith="Payment")
                .order_by("id")
                .values_list("action", flat=True)
            ),
            ["Payment Recorded", "Payment Deleted"],
        )

    def test_payments_of_a_cancelled_bill_are_frozen(self):
        payment = payments.record_bill_payment(self.company, self.bill.pk, {"amount": "20"})
        bills.update_bill_status(self.company, self.bill.pk, "cancelled")

        with self.assertRaisesMessage(InvalidStateError, "Payments of a cancelled bill cannot be changed"):
            payments.delete_bill_payment(self.company, payment.pk)

    def test_bill_with_payments_cannot_be_deleted_through_the_orm(self):
        payments.record_bill_payment(self.company, self.bill.pk, {"amount": "20"})
        with self.assertRaises(ValidationError):
            self._bill().delete()


class InvoicePaymentTests(TestCase):
    def setUp(self):
        self.company = make_company()
        self.customer = make_customer(self.company)
        # due long ago: unpaid means overdue
        invoice = invoices.create_invoice(
            self.company, invoice_data(self.customer, invoice_date=datetime.date(2024, 1, 1))
        )
        invoices.send_invoice(self.company, invoice.pk)
        self.invoice = invoice

    def test_deleting_the_only_payment_reverts_to_overdue(self):
        payment = payments.record_invoice_payment(self.company, self.invoice.pk, {"amount": "500"})
        self.assertEqual(invoices.get_invoice(self.company, self.invoice.pk).status, "paid")

        invoice = payments.delete_invoice_payment(self.company, payment.pk)

        self.assertEqual(invoice.status, "overdue")
        self.assertIsNone(invoice.paid_at)

    def test_update_invoice_payment(self):
        payment = payments.record_invoice_payment(self.company, self.invoice.pk, {"amount": "100"})
        payments.update_invoice_payment(self.company, payment.pk, {"amount": "500"})

        invoice = invoices.get_invoice(self.company, self.invoice.pk)
        self.assertEqual(invoice.status, "paid")
        self.assertEqual(invoice.amount_due, 0)

    def test_payment_of_another_company_is_not_found(self):
        payment = payments.record_invoice_payment(self.company, self.invoice.pk, {"amount": "100"})
        other = make_company(name="Other Co")
        with self.assertRaises(InvoicePayment.DoesNotExist):
            payments.delete_invoice_payment(other, payment.pk)
