import logging

from celery import shared_task
from django.db import transaction
from django.utils import timezone

from .models import RentalRequest

logger = logging.getLogger(__name__)


@shared_task
def expire_stale_pending_requests():
    """Cancel pending requests whose start date has already passed."""
    now = timezone.now()
    expired = 0
    stale_ids = list(RentalRequest.objects.filter(
        status=RentalRequest.PENDING,
        start_date__lt=now,
    ).values_list("id", flat=True))

    for rental_request_id in stale_ids:
        with transaction.atomic():
            rental_request = RentalRequest.objects.select_for_update().get(
                pk=rental_request_id)
            if rental_request.status != RentalRequest.PENDING:
                continue
            rental_request.transition_to(RentalRequest.CANCELLED)
            expired += 1

    if expired:
        logger.info(f"Expired {expired} stale pending rental requests")
    return f"Expired {expired} rental requests"
