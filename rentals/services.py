"""
Rental Request State Machine.

All status changes of a rental request go through ``RentalRequestService``.
Every write runs in one transaction with the product row locked, so
creations and approvals for the same product are serialized and two
overlapping requests can never both end up occupying the product.
Notifications are sent after commit and never roll a change back.
"""
import logging

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from payments.models import Payment
from products.models import Product
from rentalhub.modules.exceptions import (
    Conflict,
    Forbidden,
    InvalidRangeError,
    InvalidState,
    NotFound,
    ValidationError,
)
from .availability import check_availability, overlap_q
from .models import RentalRequest
from .pricing import compute_price, normalize_unit

logger = logging.getLogger(__name__)

INSTANT_APPROVAL = "instant"
MANUAL_APPROVAL = "manual"


def get_dispatcher():
    from users.services import get_dispatcher as build_dispatcher
    return build_dispatcher()


def schedule_notification(dispatcher, method_name, *args, **kwargs):
    """Run a dispatcher method once the current transaction commits."""
    def send():
        getattr(dispatcher, method_name)(*args, **kwargs)
    transaction.on_commit(send, robust=True)


def release_product(product, excluding=None):
    """
    Mark ``product`` available again unless another request that is
    paid for or in progress still holds it.
    """
    with transaction.atomic():
        product = Product.objects.select_for_update().get(pk=product.pk)
        holders = RentalRequest.objects.filter(
            product_id=product.pk,
            status__in=RentalRequest.HOLDING_STATUSES,
        )
        if excluding is not None:
            holders = holders.exclude(pk=excluding.pk)
        if holders.exists():
            logger.info(
                f"Product {product.pk} still held by another rental; "
                f"keeping status {product.status}")
            return product
        if product.status != Product.AVAILABLE:
            product.status = Product.AVAILABLE
            product.save(update_fields=["status", "updated_at"])
            logger.info(f"Product {product.pk} released")
        return product


class RentalRequestService:

    def __init__(self, dispatcher=None):
        self._dispatcher = dispatcher

    @property
    def dispatcher(self):
        if self._dispatcher is None:
            self._dispatcher = get_dispatcher()
        return self._dispatcher

    def _notify(self, method_name, *args, **kwargs):
        schedule_notification(self.dispatcher, method_name, *args, **kwargs)

    @staticmethod
    def _lock_product(product_id):
        try:
            product = Product.objects.select_for_update().filter(
                pk=product_id).first()
        except DjangoValidationError:
            product = None
        if product is None:
            raise NotFound("Product not found")
        return product

    @staticmethod
    def _lock_request(rental_request_id):
        try:
            rental_request = RentalRequest.objects.select_for_update().filter(
                pk=rental_request_id).first()
        except DjangoValidationError:
            rental_request = None
        if rental_request is None:
            raise NotFound("Rental request not found")
        return rental_request

    @staticmethod
    def _fail_pending_payment(rental_request):
        payment = Payment.objects.select_for_update().filter(
            rental_request=rental_request,
            payment_status=Payment.PENDING).first()
        if payment is None:
            return
        payment.payment_status = Payment.FAILED
        payment.save(update_fields=["payment_status", "updated_at"])
        logger.info(
            f"Payment {payment.pk} marked failed: rental request "
            f"{rental_request.pk} was cancelled")

    @staticmethod
    def _require_party(rental_request, actor):
        if not rental_request.is_party(actor):
            raise Forbidden(
                "Only the customer or the product owner can change this "
                "rental request")

    @staticmethod
    def _require_owner(rental_request, actor):
        if actor is None or rental_request.product.owner_id != actor.pk:
            raise Forbidden(
                "Only the product owner can respond to this rental request")

    def create_request(self, customer, product_id, start_date, end_date,
                       period_unit=None, pickup_location="",
                       return_location=""):
        """
        Create a rental request for ``product_id``.

        Returns ``(rental_request, availability)``; ``availability`` carries
        the advisory request-limit information for the caller.
        """
        with transaction.atomic():
            product = self._lock_product(product_id)

            if start_date >= end_date:
                raise InvalidRangeError(
                    "End date must be after start date",
                    field_errors={
                        "end_date": ["End date must be after start date"]})
            if product.owner_id == customer.pk:
                raise ValidationError("You cannot rent your own product")
            if product.status != Product.AVAILABLE:
                raise Conflict("Product is not available for rent")

            availability = check_availability(product.pk, start_date, end_date)
            if not availability.is_available:
                raise Conflict(
                    "Product is already booked for the selected dates",
                    field_errors={"overlaps": [
                        {"start_date": item.start_date.isoformat(),
                         "end_date": item.end_date.isoformat()}
                        for item in availability.overlaps
                    ]})

            unit = normalize_unit(period_unit)
            quote = compute_price(
                product.rental_rate, start_date, end_date, unit)

            if settings.RENTAL_APPROVAL_POLICY == MANUAL_APPROVAL:
                initial_status = RentalRequest.PENDING
            else:
                initial_status = RentalRequest.ACCEPTED

            rental_request = RentalRequest.objects.create(
                product=product,
                customer=customer,
                start_date=start_date,
                end_date=end_date,
                rental_period_unit=unit,
                rental_period=quote.period_count,
                price=quote.price,
                pickup_location=pickup_location or "",
                return_location=return_location or "",
                status=initial_status,
            )
            self._notify("notify_new_request", rental_request)

        logger.info(
            f"Rental request {rental_request.pk} created for product "
            f"{product.pk} by {customer.email} ({initial_status})")
        if availability.is_throttled:
            logger.info(f"Product {product.pk} is at its pending request limit") # noqa
        return rental_request, availability

    def approve(self, rental_request_id, actor):
        with transaction.atomic():
            rental_request = self._lock_request(rental_request_id)
            self._require_owner(rental_request, actor)
            if rental_request.status != RentalRequest.PENDING:
                raise InvalidState(
                    f"Only pending requests can be approved; this one is "
                    f"'{rental_request.status}'")

            product = self._lock_product(rental_request.product_id)
            availability = check_availability(
                product.pk, rental_request.start_date, rental_request.end_date)
            if not availability.is_available:
                raise Conflict(
                    "Product is already booked for the selected dates")

            rental_request.transition_to(RentalRequest.ACCEPTED)

            conflicting = RentalRequest.objects.select_for_update().filter(
                overlap_q(rental_request.start_date, rental_request.end_date),
                product_id=product.pk,
                status=RentalRequest.PENDING,
            ).exclude(pk=rental_request.pk)
            for other in conflicting:
                other.transition_to(RentalRequest.CANCELLED)
                self._notify("notify_conflicting_rejected", other)
                logger.info(
                    f"Rental request {other.pk} cancelled: overlaps approved "
                    f"request {rental_request.pk}")

            self._notify("notify_request_approved", rental_request)

        logger.info(f"Rental request {rental_request.pk} approved")
        return rental_request

    def reject(self, rental_request_id, actor, reason=""):
        with transaction.atomic():
            rental_request = self._lock_request(rental_request_id)
            self._require_owner(rental_request, actor)
            if rental_request.status != RentalRequest.PENDING:
                raise InvalidState(
                    f"Only pending requests can be rejected; this one is "
                    f"'{rental_request.status}'")
            rental_request.transition_to(RentalRequest.REJECTED)
            release_product(rental_request.product, excluding=rental_request)
            self._notify("notify_request_rejected", rental_request, reason)

        logger.info(f"Rental request {rental_request.pk} rejected")
        return rental_request

    def cancel(self, rental_request_id, actor, reason=""):
        with transaction.atomic():
            rental_request = self._lock_request(rental_request_id)
            self._require_party(rental_request, actor)
            if rental_request.status not in (
                    RentalRequest.PENDING, RentalRequest.ACCEPTED):
                raise InvalidState(
                    f"A '{rental_request.status}' rental request cannot be "
                    f"cancelled")
            rental_request.transition_to(RentalRequest.CANCELLED)
            release_product(rental_request.product, excluding=rental_request)
            self._fail_pending_payment(rental_request)

        logger.info(
            f"Rental request {rental_request.pk} cancelled by {actor.email}"
            + (f": {reason}" if reason else ""))
        return rental_request

    def complete(self, rental_request_id, actor,
                 status=RentalRequest.COMPLETED):
        if status not in (RentalRequest.COMPLETED, RentalRequest.RETURNED):
            raise ValidationError(
                "Completion status must be 'completed' or 'returned'",
                field_errors={"status": [f"Invalid value '{status}'"]})

        with transaction.atomic():
            rental_request = self._lock_request(rental_request_id)
            self._require_party(rental_request, actor)
            if not rental_request.is_occupying:
                raise InvalidState(
                    f"A '{rental_request.status}' rental request cannot be "
                    f"completed")
            rental_request.transition_to(status)
            release_product(rental_request.product, excluding=rental_request)

        logger.info(f"Rental request {rental_request.pk} marked {status}")
        return rental_request

    def update_status(self, rental_request_id, actor, new_status, reason=""):
        """Apply a status change requested through the REST API."""
        if new_status == RentalRequest.ACCEPTED:
            return self.approve(rental_request_id, actor)
        if new_status == RentalRequest.REJECTED:
            return self.reject(rental_request_id, actor, reason)
        if new_status == RentalRequest.CANCELLED:
            return self.cancel(rental_request_id, actor, reason)
        if new_status in (RentalRequest.COMPLETED, RentalRequest.RETURNED):
            return self.complete(rental_request_id, actor, status=new_status)
        raise ValidationError(
            f"Status '{new_status}' cannot be set directly",
            field_errors={"status": [
                "Allowed values: accepted, rejected, cancelled, completed, "
                "returned"]})

    def get_for_party(self, rental_request_id, user):
        try:
            rental_request = RentalRequest.objects.select_related(
                "product", "product__owner", "customer").filter(
                pk=rental_request_id).first()
        except DjangoValidationError:
            rental_request = None
        if rental_request is None:
            raise NotFound("Rental request not found")
        if not rental_request.is_party(user):
            raise Forbidden("You do not have access to this rental request")
        return rental_request

    def list_for_user(self, user, as_owner=False, status=None):
        queryset = RentalRequest.objects.select_related(
            "product", "product__owner", "customer")
        if as_owner:
            queryset = queryset.filter(product__owner=user)
        else:
            queryset = queryset.filter(customer=user)
        if status:
            queryset = queryset.filter(status=status)
        return queryset.order_by("-created_at")

    def active_rentals(self, user):
        """The customer's rentals that are still out and not yet returned."""
        return RentalRequest.objects.select_related(
            "product", "product__owner", "customer").filter(
            customer=user,
            status__in=RentalRequest.OCCUPYING_STATUSES,
            product_return__isnull=True,
        ).order_by("end_date")
