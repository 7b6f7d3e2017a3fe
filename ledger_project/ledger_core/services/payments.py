"""
Payment application for bills and invoices.

Pure document arithmetic: a payment row and the document's amount_paid /
amount_due / status move together in one transaction. No journal is
written for cash movements.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from ..exceptions import InvalidStateError, LedgerError, PaymentAmountError
from ..models import Bill, BillPayment, Invoice, InvoicePayment
from ..models.document import PAYMENT_METHODS
from .accounts import require_company
from .audit_helper import log_action
from .calculations import money, to_date, to_decimal

logger = logging.getLogger(__name__)

PAYMENT_METHOD_CODES = tuple(code for code, _ in PAYMENT_METHODS)
# an edit may overshoot amount_due by at most this much
OVERPAY_TOLERANCE = Decimal("0.01")


def _clean_amount(raw):
    amount = money(to_decimal(raw, "amount"))
    if amount <= 0:
        raise PaymentAmountError("Payment amount must be greater than zero")
    return amount


def _clean_method(raw):
    method = raw or "bank_transfer"
    if method not in PAYMENT_METHOD_CODES:
        raise LedgerError(f"Unknown payment method: {method}")
    return method


def _lock_document(company, document_model, document_id):
    return document_model.objects.for_company(company).select_for_update().get(pk=document_id)


def _log(document, action, user, company, amount, old_status):
    log_action(
        action=action,
        instance=document,
        user=user,
        company=company,
        description=f"{action}: {amount} ({old_status} -> {document.status})",
        changes={
            "amount": str(amount),
            "status": [old_status, document.status],
            "amount_due": str(document.amount_due),
        },
    )


def _record_payment(company, document_model, payment_model, document_id, data, user):
    require_company(company)
    amount = _clean_amount(data.get("amount"))
    method = _clean_method(data.get("payment_method"))
    payment_date = to_date(data.get("payment_date"), "payment_date", required=False)
    kind = document_model._meta.model_name

    with transaction.atomic():
        document = _lock_document(company, document_model, document_id)
        if document.status not in document.PAYABLE_STATUSES:
            raise InvalidStateError(
                f"Payments cannot be recorded against a {document.get_status_display().lower()} {kind}"
            )
        if amount > document.amount_due:
            raise PaymentAmountError(
                f"Payment amount cannot exceed amount due ({document.amount_due})"
            )

        payment = payment_model.objects.create(
            company=company,
            **{kind: document},
            amount=amount,
            payment_date=payment_date or timezone.localdate(),
            payment_method=method,
            reference_number=data.get("reference_number") or "",
            notes=data.get("notes") or "",
            created_by=user if getattr(user, "is_authenticated", False) else None,
        )
        old_status = document.status
        document.apply_paid_amount(document.amount_paid + amount)
        document.save()
        _log(document, "Payment Recorded", user, company, amount, old_status)

    logger.info(
        "Payment %s recorded on %s %s (now %s)", amount, kind, document.pk, document.status
    )
    return payment


def _lock_payment(company, document_model, payment_model, payment_id):
    """Lock the document first, then its payment, in one fixed order."""
    kind = document_model._meta.model_name
    document_id = (
        payment_model.objects.for_company(company)
        .values_list(f"{kind}_id", flat=True)
        .get(pk=payment_id)
    )
    document = _lock_document(company, document_model, document_id)
    payment = payment_model.objects.select_for_update().get(pk=payment_id)
    if document.status == "cancelled":
        raise InvalidStateError(f"Payments of a cancelled {kind} cannot be changed")
    return document, payment


def _update_payment(company, document_model, payment_model, payment_id, data, user):
    require_company(company)
    with transaction.atomic():
        document, payment = _lock_payment(company, document_model, payment_model, payment_id)

        new_amount = _clean_amount(data.get("amount", payment.amount))
        paid_without = document.amount_paid - payment.amount
        available = document.total - paid_without
        if available - new_amount < -OVERPAY_TOLERANCE:
            raise PaymentAmountError(f"Payment amount cannot exceed amount due ({available})")

        old_amount = payment.amount
        payment.amount = new_amount
        if "payment_date" in data:
            payment.payment_date = to_date(data["payment_date"], "payment_date")
        if "payment_method" in data:
            payment.payment_method = _clean_method(data["payment_method"])
        for field in ("reference_number", "notes"):
            if field in data:
                setattr(payment, field, data.get(field) or "")
        payment.save()

        old_status = document.status
        document.apply_paid_amount(paid_without + new_amount)
        document.save()
        _log(
            document,
            "Payment Updated",
            user,
            company,
            f"{old_amount} -> {new_amount}",
            old_status,
        )
    return payment


def _delete_payment(company, document_model, payment_model, payment_id, user):
    require_company(company)
    with transaction.atomic():
        document, payment = _lock_payment(company, document_model, payment_model, payment_id)
        amount = payment.amount
        payment.delete()

        old_status = document.status
        document.apply_paid_amount(document.amount_paid - amount)
        document.save()
        _log(document, "Payment Deleted", user, company, amount, old_status)
    return document


def record_bill_payment(company, bill_id, data, user=None):
    return _record_payment(company, Bill, BillPayment, bill_id, data, user)


def update_bill_payment(company, payment_id, data, user=None):
    return _update_payment(company, Bill, BillPayment, payment_id, data, user)


def delete_bill_payment(company, payment_id, user=None):
    return _delete_payment(company, Bill, BillPayment, payment_id, user)


def record_invoice_payment(company, invoice_id, data, user=None):
    return _record_payment(company, Invoice, InvoicePayment, invoice_id, data, user)


def update_invoice_payment(company, payment_id, data, user=None):
    return _update_payment(company, Invoice, InvoicePayment, payment_id, data, user)


def delete_invoice_payment(company, payment_id, user=None):
    return _delete_payment(company, Invoice, InvoicePayment, payment_id, user)
