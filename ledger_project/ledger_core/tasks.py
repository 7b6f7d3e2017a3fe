import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def recalculate_company_balances(company_id):
    """Re-derive every cached account balance of one company."""
    # import lazily to avoid circular imports at module import time
    from .models import Company
    from .services.balances import recalculate_all_balances

    company = Company.objects.get(pk=company_id)
    balances = recalculate_all_balances(company)
    # celery results are JSON: Decimal as string
    return {str(account_id): str(balance) for account_id, balance in balances.items()}


@shared_task
def post_pending_documents(company_id):
    """Retry GL posting for recognized bills / invoices that have no journal."""
    from .models import Company
    from .services.posting import post_pending_documents as sweep

    company = Company.objects.get(pk=company_id)
    summary = sweep(company)
    if summary["failures"]:
        logger.warning(
            "GL sweep for company %s left %d documents unposted",
            company_id,
            len(summary["failures"]),
        )
    return summary
