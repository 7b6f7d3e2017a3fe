"""
Last line of defense for deletes that bypass the service layer
(admin, shell, cascades).
"""
from django.core.exceptions import ValidationError
from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .exceptions import InvalidStateError
from .models import Bill, BillPayment, Invoice, InvoicePayment, JournalEntry


# pre_delete fires just before Django deletes the row
@receiver(pre_delete, sender=JournalEntry)
def prevent_delete_locked_journal(sender, instance, **kwargs):
    if instance.status != "draft":
        raise InvalidStateError(
            "Only draft journals can be deleted. Posted or voided journals are locked."
        )


# payments keep the document alive; cancel it instead
@receiver(pre_delete, sender=Bill)
def prevent_delete_bill_with_payments(sender, instance, **kwargs):
    if BillPayment.objects.filter(bill=instance).exists():
        raise ValidationError("Cannot delete a bill with recorded payments.")


@receiver(pre_delete, sender=Invoice)
def prevent_delete_invoice_with_payments(sender, instance, **kwargs):
    if InvoicePayment.objects.filter(invoice=instance).exists():
        raise ValidationError("Cannot delete an invoice with recorded payments.")
