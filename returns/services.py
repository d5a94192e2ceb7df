"""
Return & Damage Workflow.

A return moves not_initiated -> initiated -> (in_progress ->) completed
and never goes back. Confirming a return completes the rental request and
releases the product in the same transaction.
"""
import logging
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from rentalhub.modules.exceptions import (
    AlreadyExists,
    Forbidden,
    InvalidState,
    NotFound,
    ValidationError,
)
from rentals.models import RentalRequest
from rentals.services import (
    get_dispatcher,
    release_product,
    schedule_notification,
)
from .models import DamageAssessment, DamagePhoto, ProductReturn

logger = logging.getLogger(__name__)


class ReturnService:

    def __init__(self, dispatcher=None):
        self._dispatcher = dispatcher

    @property
    def dispatcher(self):
        if self._dispatcher is None:
            self._dispatcher = get_dispatcher()
        return self._dispatcher

    @staticmethod
    def _lock_request(rental_request_id, actor):
        try:
            rental_request = RentalRequest.objects.select_for_update().filter(
                pk=rental_request_id).first()
        except DjangoValidationError:
            rental_request = None
        if rental_request is None:
            raise NotFound("Rental request not found")
        if not rental_request.is_party(actor):
            raise Forbidden(
                "Only the customer or the product owner can manage this "
                "return")
        return rental_request

    @staticmethod
    def _transition(product_return, new_status):
        if not product_return.can_transition_to(new_status):
            raise InvalidState(
                f"Cannot move return from '{product_return.return_status}' "
                f"to '{new_status}'")
        product_return.return_status = new_status

    def initiate_return(self, rental_request_id, actor):
        with transaction.atomic():
            rental_request = self._lock_request(rental_request_id, actor)
            if not rental_request.is_occupying:
                raise InvalidState(
                    f"A '{rental_request.status}' rental cannot be returned")

            product_return, _ = ProductReturn.objects.select_for_update(
            ).get_or_create(rental_request=rental_request)
            self._transition(product_return, ProductReturn.INITIATED)
            product_return.initiated_by = actor
            product_return.save()

        logger.info(
            f"Return {product_return.pk} initiated by {actor.email}")
        return product_return

    def mark_in_progress(self, rental_request_id, actor):
        with transaction.atomic():
            rental_request = self._lock_request(rental_request_id, actor)
            product_return = ProductReturn.objects.select_for_update().filter(
                rental_request=rental_request).first()
            if product_return is None:
                raise NotFound("Return has not been initiated")
            self._transition(product_return, ProductReturn.IN_PROGRESS)
            product_return.save()

        logger.info(f"Return {product_return.pk} in progress")
        return product_return

    def confirm_return(self, rental_request_id, actor, signature="",
                       condition_notes=""):
        """
        Complete the return of a rental, creating and initiating it first
        when needed. A return can only be confirmed once.
        """
        with transaction.atomic():
            rental_request = self._lock_request(rental_request_id, actor)
            product_return = ProductReturn.objects.select_for_update().filter(
                rental_request=rental_request).first()

            if (product_return is not None
                    and product_return.return_status == ProductReturn.COMPLETED): # noqa
                raise InvalidState("Return has already been confirmed")
            if not rental_request.is_occupying:
                raise InvalidState(
                    f"A '{rental_request.status}' rental cannot be returned")

            if product_return is None:
                product_return = ProductReturn(
                    rental_request=rental_request,
                    initiated_by=actor,
                )
            if product_return.return_status == ProductReturn.NOT_INITIATED:
                self._transition(product_return, ProductReturn.INITIATED)
                product_return.initiated_by = product_return.initiated_by or actor # noqa

            self._transition(product_return, ProductReturn.COMPLETED)
            product_return.return_date = timezone.now()
            product_return.customer_signature = signature or ""
            product_return.condition_notes = condition_notes or ""
            product_return.save()

            rental_request.transition_to(RentalRequest.COMPLETED)
            release_product(rental_request.product, excluding=rental_request)

            schedule_notification(
                self.dispatcher, "notify_return_confirmed", product_return)

        logger.info(
            f"Return {product_return.pk} confirmed for rental request "
            f"{rental_request.pk}")
        return product_return

    def create_damage_assessment(self, return_id, actor, severity,
                                 description="", repair_cost=None,
                                 photo_urls=()):
        """
        Record the owner's damage assessment for a return. ``photo_urls``
        holds URL strings or ``{"url": ..., "caption": ...}`` dicts.
        """
        valid_severities = [
            choice for choice, _ in DamageAssessment.SEVERITY_CHOICES]
        if severity not in valid_severities:
            raise ValidationError(
                "Invalid damage severity",
                field_errors={"severity": [
                    f"Must be one of: {', '.join(valid_severities)}"]})
        if repair_cost is not None:
            try:
                repair_cost = Decimal(str(repair_cost))
            except InvalidOperation:
                raise ValidationError(
                    "Invalid repair cost",
                    field_errors={"repair_cost": ["Must be a number"]})
            if repair_cost < 0:
                raise ValidationError(
                    "Repair cost cannot be negative",
                    field_errors={"repair_cost": ["Must not be negative"]})

        with transaction.atomic():
            try:
                product_return = ProductReturn.objects.select_related(
                    "rental_request__product").filter(pk=return_id).first()
            except DjangoValidationError:
                product_return = None
            if product_return is None:
                raise NotFound("Return not found")
            if actor is None or (
                    product_return.rental_request.product.owner_id
                    != actor.pk):
                raise Forbidden(
                    "Only the product owner can assess damage")

            if DamageAssessment.objects.filter(
                    product_return=product_return).exists():
                raise AlreadyExists(
                    "A damage assessment already exists for this return")
            try:
                with transaction.atomic():
                    assessment = DamageAssessment.objects.create(
                        product_return=product_return,
                        assessed_by=actor,
                        severity=severity,
                        description=description or "",
                        repair_cost=repair_cost,
                    )
            except IntegrityError:
                raise AlreadyExists(
                    "A damage assessment already exists for this return")

            photos = []
            for item in photo_urls or ():
                if isinstance(item, dict):
                    photos.append(DamagePhoto(
                        damage_assessment=assessment,
                        photo_url=item["url"],
                        caption=item.get("caption", ""),
                    ))
                else:
                    photos.append(DamagePhoto(
                        damage_assessment=assessment, photo_url=item))
            DamagePhoto.objects.bulk_create(photos)

        logger.info(
            f"Damage assessment {assessment.pk} ({severity}) recorded for "
            f"return {product_return.pk}")
        return assessment

    def get_return(self, rental_request_id, actor):
        try:
            rental_request = RentalRequest.objects.select_related(
                "product").filter(pk=rental_request_id).first()
        except DjangoValidationError:
            rental_request = None
        if rental_request is None:
            raise NotFound("Rental request not found")
        if not rental_request.is_party(actor):
            raise Forbidden("You do not have access to this return")
        product_return = ProductReturn.objects.select_related(
            "damage_assessment").prefetch_related(
            "damage_assessment__photos").filter(
            rental_request=rental_request).first()
        if product_return is None:
            raise NotFound("No return recorded for this rental")
        return product_return
