"""
Payment Orchestrator.

Creates the single payment (and unpaid invoice) of a rental request,
confirms it, and cascades a completed payment to the rental request,
the product and the invoice in one transaction.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from products.models import Product
from rentalhub.modules.exceptions import (
    DuplicatePayment,
    ExternalServiceError,
    Forbidden,
    InvalidAmount,
    InvalidState,
    NotFound,
    RentalHubError,
    ValidationError,
)
from rentalhub.modules.payment_service import get_payment_provider
from rentals.models import RentalRequest
from rentals.services import get_dispatcher, schedule_notification
from .models import Invoice, InvoiceDownload, Payment

logger = logging.getLogger(__name__)

CONFIRMABLE_STATUSES = (Payment.COMPLETED, Payment.FAILED, Payment.REFUNDED)

WEBHOOK_EVENT_STATUSES = {
    "payment_intent.succeeded": Payment.COMPLETED,
    "payment_intent.payment_failed": Payment.FAILED,
}


def to_minor_units(amount):
    return int((Decimal(amount) * 100).quantize(Decimal("1")))


@dataclass(frozen=True)
class PaymentResult:
    payment: Payment
    client_secret: Optional[str]
    is_offline: bool


def _get_locked(model, pk, message):
    try:
        obj = model.objects.select_for_update().filter(pk=pk).first()
    except DjangoValidationError:
        obj = None
    if obj is None:
        raise NotFound(message)
    return obj


class PaymentService:

    def __init__(self, provider=None, dispatcher=None):
        self._provider = provider
        self._dispatcher = dispatcher

    @property
    def provider(self):
        if self._provider is None:
            self._provider = get_payment_provider()
        return self._provider

    @property
    def dispatcher(self):
        if self._dispatcher is None:
            self._dispatcher = get_dispatcher()
        return self._dispatcher

    def create_payment(self, actor, rental_request_id, payment_method):
        """
        Create the payment for a rental request.

        Online methods open a payment intent with the provider and return
        its client secret; offline payments wait for the owner to confirm
        them. A provider failure leaves no payment behind.
        """
        valid_methods = [choice for choice, _ in Payment.METHOD_CHOICES]
        if payment_method not in valid_methods:
            raise ValidationError(
                "Invalid payment method",
                field_errors={"payment_method": [
                    f"Must be one of: {', '.join(valid_methods)}"]})

        with transaction.atomic():
            rental_request = _get_locked(
                RentalRequest, rental_request_id, "Rental request not found")
            if actor is None or rental_request.customer_id != actor.pk:
                raise Forbidden(
                    "Only the customer can pay for this rental request")
            if not rental_request.is_occupying:
                raise InvalidState(
                    f"A '{rental_request.status}' rental request cannot be "
                    f"paid for")

            amount = rental_request.price
            if amount is None or amount <= 0:
                raise InvalidAmount()

            if Payment.objects.filter(rental_request=rental_request).exists():
                raise DuplicatePayment()

            product = rental_request.product
            try:
                with transaction.atomic():
                    payment = Payment.objects.create(
                        rental_request=rental_request,
                        payment_method=payment_method,
                        amount=amount,
                        currency=product.currency,
                        payment_status=Payment.PENDING,
                    )
            except IntegrityError:
                raise DuplicatePayment()

            client_secret = None
            if not payment.is_offline:
                intent = self.provider.create_payment_intent(
                    to_minor_units(amount),
                    product.currency,
                    metadata={
                        "rental_request_id": rental_request.pk,
                        "customer_id": rental_request.customer_id,
                        "product_id": product.pk,
                    },
                )
                payment.transaction_id = intent.id
                payment.save(update_fields=["transaction_id", "updated_at"])
                client_secret = intent.client_secret

            Invoice.objects.create(
                rental_request=rental_request,
                amount=amount,
                due_date=timezone.now() + timedelta(
                    days=settings.INVOICE_DUE_DAYS),
            )

        logger.info(
            f"Payment {payment.pk} ({payment_method}) created for rental "
            f"request {rental_request.pk}")
        return PaymentResult(
            payment=payment,
            client_secret=client_secret,
            is_offline=payment.is_offline,
        )

    def confirm_payment(self, payment_id, new_status, actor=None):
        """
        Move a payment to ``new_status``.

        ``actor=None`` is the provider webhook and may only confirm online
        payments. Repeating a confirmation raises InvalidState and changes
        nothing.
        """
        if new_status not in CONFIRMABLE_STATUSES:
            raise ValidationError(
                "Invalid payment status",
                field_errors={"payment_status": [
                    f"Must be one of: {', '.join(CONFIRMABLE_STATUSES)}"]})

        with transaction.atomic():
            payment = _get_locked(Payment, payment_id, "Payment not found")
            rental_request = _get_locked(
                RentalRequest, payment.rental_request_id,
                "Rental request not found")
            owner_id = rental_request.product.owner_id

            if payment.is_offline:
                if actor is None or actor.pk != owner_id:
                    raise Forbidden(
                        "Only the product owner can confirm offline payments")
            elif actor is not None and actor.pk != owner_id:
                raise Forbidden(
                    "Only the product owner can confirm this payment")

            if not payment.can_transition_to(new_status):
                raise InvalidState(
                    f"Cannot change payment from '{payment.payment_status}' "
                    f"to '{new_status}'")

            payment.payment_status = new_status
            if new_status == Payment.COMPLETED:
                payment.payment_date = timezone.now()
                self._complete_rental(rental_request)
            elif new_status == Payment.REFUNDED and not payment.is_offline:
                if payment.transaction_id:
                    self.provider.refund(payment.transaction_id)
            payment.save(update_fields=[
                "payment_status", "payment_date", "updated_at"])

            if new_status == Payment.COMPLETED:
                schedule_notification(
                    self.dispatcher, "notify_payment_completed", payment)
                schedule_notification(
                    self.dispatcher, "notify_payment_confirmed", payment)

        logger.info(f"Payment {payment.pk} marked {new_status}")
        return payment

    @staticmethod
    def _complete_rental(rental_request):
        if rental_request.status != RentalRequest.ACTIVE:
            rental_request.transition_to(RentalRequest.ACTIVE)

        product = Product.objects.select_for_update().get(
            pk=rental_request.product_id)
        if product.status != Product.RENTED:
            product.status = Product.RENTED
            product.save(update_fields=["status", "updated_at"])

        invoice = Invoice.objects.select_for_update().filter(
            rental_request=rental_request).first()
        if invoice is not None and invoice.invoice_status != Invoice.PAID:
            invoice.invoice_status = Invoice.PAID
            invoice.paid_date = timezone.now()
            invoice.save(update_fields=[
                "invoice_status", "paid_date", "updated_at"])

    def get_for_party(self, payment_id, user):
        try:
            payment = Payment.objects.select_related(
                "rental_request", "rental_request__product").filter(
                pk=payment_id).first()
        except DjangoValidationError:
            payment = None
        if payment is None:
            raise NotFound("Payment not found")
        if not payment.rental_request.is_party(user):
            raise Forbidden("You do not have access to this payment")
        return payment

    def handle_webhook(self, payload, signature):
        """Apply a provider event. Returns False when it could not be."""
        try:
            event = self.provider.construct_event(payload, signature)
        except ExternalServiceError as e:
            logger.warning(f"Rejected payment webhook: {e}")
            return False

        event_type = event["type"]
        new_status = WEBHOOK_EVENT_STATUSES.get(event_type)
        if new_status is None:
            logger.info(f"Ignoring payment webhook event {event_type}")
            return True

        intent_id = event["data"]["object"]["id"]
        payment = Payment.objects.filter(transaction_id=intent_id).first()
        if payment is None:
            logger.warning(f"No payment found for payment intent {intent_id}")
            return False

        try:
            self.confirm_payment(payment.pk, new_status, actor=None)
        except InvalidState as e:
            payment.refresh_from_db()
            if payment.payment_status == new_status:
                logger.info(
                    f"Payment {payment.pk} already {payment.payment_status}; "
                    f"ignoring {event_type}")
                return True
            logger.error(
                f"Unable to apply {event_type} to payment {payment.pk} "
                f"({payment.payment_status}, rental request "
                f"{payment.rental_request_id}): {e}")
            return False
        except RentalHubError as e:
            logger.error(
                f"Webhook processing error for payment {payment.pk}: {e}")
            return False
        return True


class InvoiceService:

    def __init__(self, dispatcher=None):
        self._dispatcher = dispatcher

    @property
    def dispatcher(self):
        if self._dispatcher is None:
            self._dispatcher = get_dispatcher()
        return self._dispatcher

    @staticmethod
    def get_for_party(invoice_id, user):
        try:
            invoice = Invoice.objects.select_related(
                "rental_request", "rental_request__product",
                "rental_request__customer").filter(pk=invoice_id).first()
        except DjangoValidationError:
            invoice = None
        if invoice is None:
            raise NotFound("Invoice not found")
        if not invoice.rental_request.is_party(user):
            raise Forbidden("You do not have access to this invoice")
        return invoice

    def email_invoice(self, invoice_id, actor, recipient_email=None):
        """Email the invoice. Delivery failures are raised to the caller."""
        invoice = self.get_for_party(invoice_id, actor)
        recipient_email = (
            recipient_email or invoice.rental_request.customer.email)
        self.dispatcher.notify_invoice_emailed(
            invoice, recipient_email, raise_on_failure=True)
        logger.info(f"Invoice {invoice.invoice_number} emailed to {recipient_email}") # noqa
        return invoice

    def record_download(self, invoice_id, actor):
        invoice = self.get_for_party(invoice_id, actor)
        download = InvoiceDownload.objects.create(invoice=invoice, user=actor)
        logger.info(
            f"Invoice {invoice.invoice_number} downloaded by {actor.email}")
        return invoice, download

    def download_history(self, invoice_id, actor):
        invoice = self.get_for_party(invoice_id, actor)
        return invoice.downloads.select_related("user").order_by("-created_at")
