import logging

from celery import shared_task

from core.context import TenantContext
from loyalty.services import LoyaltyService
from salon.models import Customer

logger = logging.getLogger(__name__)


@shared_task
def reconcile_loyalty_summaries(organization_id=None):
    """
    Periodic task that rebuilds every customer's loyalty summary from the ledger.
    Scheduled nightly; repairs rows left stale by concurrent checkouts.
    """
    batch_size = 1000
    service = LoyaltyService()

    customers = Customer.objects.for_organization(organization_id) if organization_id else Customer.objects
    customers = customers.select_related("organization").order_by("pk")

    logger.info("Starting loyalty reconciliation (organization: %s)", organization_id or "all")

    processed_count = 0
    failed_count = 0

    # Using iterator() to reduce memory usage
    for customer in customers.iterator(chunk_size=batch_size):
        try:
            service.recompute_summary(TenantContext(organization=customer.organization), customer)
            processed_count += 1
        except Exception:
            failed_count += 1
            logger.exception("Failed to reconcile loyalty for customer %s", customer.id)

    logger.info("Loyalty reconciliation finished: %s customers, %s failures", processed_count, failed_count)
    return f"Finished. Processed {processed_count} customers. Failed: {failed_count}"
