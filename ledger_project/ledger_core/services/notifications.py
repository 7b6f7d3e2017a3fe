import logging
from typing import Protocol

from django.conf import settings
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Outbound side effects of the invoice lifecycle (email, PDF...)."""

    def send_invoice(self, invoice) -> None: ...

    def send_reminder(self, invoice) -> None: ...


class LoggingNotifier:
    """Default notifier: records the event, delivers nothing."""

    def send_invoice(self, invoice):
        logger.info(
            "Invoice %s sent to %s",
            invoice.invoice_number,
            invoice.customer.email or invoice.customer.name,
        )

    def send_reminder(self, invoice):
        logger.info(
            "Reminder for invoice %s sent to %s (due %s)",
            invoice.invoice_number,
            invoice.customer.email or invoice.customer.name,
            invoice.amount_due,
        )


def get_notifier(notifier=None):
    if notifier is not None:
        return notifier
    path = getattr(
        settings, "LEDGER_NOTIFIER", "ledger_core.services.notifications.LoggingNotifier"
    )
    return import_string(path)()


def notify(notifier, event, invoice):
    """
    Run one notifier call. Failures are logged and returned as a warning
    string; the committed status change stays.
    """
    try:
        getattr(notifier, event)(invoice)
    except Exception:
        logger.exception("Notifier %s failed for invoice %s", event, invoice.pk)
        return f"Notification failed ({event}); the invoice status was still updated."
    return None
