"""
Availability Checker.

Answers whether a product is free for a date range. Ranges are half-open
``[start, end)``: a rental ending at 10:00 does not clash with one
starting at 10:00. Only requests in an occupying status block dates.
"""
from dataclasses import dataclass
from datetime import timedelta
from typing import List

from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from rentalhub.modules.exceptions import InvalidRangeError
from .models import RentalRequest


@dataclass(frozen=True)
class AvailabilityResult:
    overlaps: List[RentalRequest]
    pending_count: int
    recent_accepted_count: int
    is_throttled: bool

    @property
    def is_available(self):
        return not self.overlaps


def ranges_overlap(start_a, end_a, start_b, end_b):
    return start_a < end_b and start_b < end_a


def overlap_q(start_date, end_date):
    return Q(start_date__lt=end_date, end_date__gt=start_date)


def occupying_requests(product_id):
    return RentalRequest.objects.filter(
        product_id=product_id,
        status__in=RentalRequest.OCCUPYING_STATUSES,
    )


def request_limit_counts(product_id, now=None):
    """Pending request count and requests accepted within the window."""
    now = now or timezone.now()
    window_start = now - timedelta(hours=settings.RENTAL_THROTTLE_WINDOW_HOURS)
    requests = RentalRequest.objects.filter(product_id=product_id)
    pending_count = requests.filter(status=RentalRequest.PENDING).count()
    recent_accepted_count = requests.filter(
        status=RentalRequest.ACCEPTED,
        status_changed_at__gte=window_start,
    ).count()
    return pending_count, recent_accepted_count


def is_at_request_limit(pending_count, recent_accepted_count):
    return (pending_count >= settings.RENTAL_PENDING_REQUEST_LIMIT
            and recent_accepted_count == 0)


def check_availability(product_id, start_date, end_date, *, now=None):
    if start_date >= end_date:
        raise InvalidRangeError(
            "End date must be after start date",
            field_errors={"end_date": ["End date must be after start date"]})

    overlaps = list(
        occupying_requests(product_id)
        .filter(overlap_q(start_date, end_date))
        .order_by("start_date")
    )
    pending_count, recent_accepted_count = request_limit_counts(
        product_id, now=now)
    return AvailabilityResult(
        overlaps=overlaps,
        pending_count=pending_count,
        recent_accepted_count=recent_accepted_count,
        is_throttled=is_at_request_limit(
            pending_count, recent_accepted_count),
    )


def unavailable_ranges(product_id, *, now=None):
    """Blocked date ranges of a product plus its request-limit advisory."""
    ranges = [
        {
            "start_date": item.start_date.isoformat(),
            "end_date": item.end_date.isoformat(),
            "status": item.status,
        }
        for item in occupying_requests(product_id).order_by("start_date")
    ]
    pending_count, recent_accepted_count = request_limit_counts(
        product_id, now=now)
    return {
        "unavailable_ranges": ranges,
        "request_limit_info": {
            "pending_requests_count": pending_count,
            "recent_accepted_requests": recent_accepted_count,
            "is_at_limit": is_at_request_limit(
                pending_count, recent_accepted_count),
            "max_requests": settings.RENTAL_PENDING_REQUEST_LIMIT,
        },
    }
