"""
Notification Dispatcher.

Turns rental lifecycle events into in-app notifications, live socket
pushes and queued emails. Dispatch is best-effort: every step logs its
failure and carries on, so a notification problem never affects the
operation that triggered it. The invoice email is the one exception and
reports its failure to the caller.
"""
import logging

from users.models import Notification
from users.notifications import (
    ConflictingRejectedPayload,
    InvoiceEmailedPayload,
    NewRequestPayload,
    PaymentCompletedPayload,
    PaymentConfirmedPayload,
    RequestApprovedPayload,
    RequestRejectedPayload,
    ReturnConfirmedPayload,
)
from users.registry import get_registry
from users.tasks import deliver_notification_email, send_notification_email
from rentalhub.modules.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d %H:%M"


class NotificationDispatcher:

    def __init__(self, registry, email_enabled=True):
        self.registry = registry
        self.email_enabled = email_enabled

    def _dispatch(self, user, payload, title, message,
                  rental_request=None, recipient_email=None,
                  raise_on_failure=False):
        try:
            notification = Notification.objects.create(
                user=user,
                rental_request=rental_request,
                notification_type=payload.kind,
                title=title,
                message=message,
                data=payload.to_dict(),
            )
        except Exception as exc:
            logger.error(
                f"Failed to store {payload.kind} notification for "
                f"{user.email}: {exc}", exc_info=True)
            if raise_on_failure:
                raise ExternalServiceError(
                    f"Failed to send {payload.kind} notification") from exc
            return None

        try:
            self.registry.push(user.id, notification.to_message())
        except Exception as exc:
            logger.error(
                f"Failed to push {payload.kind} notification to "
                f"{user.email}: {exc}", exc_info=True)

        if raise_on_failure:
            try:
                deliver_notification_email(notification.id, recipient_email)
            except Exception as exc:
                logger.error(
                    f"Failed to email {payload.kind} notification: {exc}",
                    exc_info=True)
                raise ExternalServiceError(
                    f"Failed to send {payload.kind} email") from exc
        elif self.email_enabled and user.email_notifications:
            try:
                send_notification_email.delay(
                    str(notification.id), recipient_email)
            except Exception as exc:
                logger.error(
                    f"Failed to queue {payload.kind} email for "
                    f"{user.email}: {exc}", exc_info=True)

        logger.info(f"Dispatched {payload.kind} notification to {user.email}")
        return notification

    def notify_new_request(self, rental_request):
        product = rental_request.product
        customer_name = rental_request.customer.get_full_name()
        payload = NewRequestPayload(
            rental_request_id=str(rental_request.id),
            product_id=str(product.id),
            product_title=product.title,
            customer_name=customer_name,
            start_date=rental_request.start_date.isoformat(),
            end_date=rental_request.end_date.isoformat(),
            price=str(rental_request.price),
            currency=product.currency,
        )
        return self._dispatch(
            product.owner, payload,
            title="New rental request",
            message=(
                f"{customer_name} requested {product.title} from "
                f"{rental_request.start_date:{DATE_FORMAT}} to "
                f"{rental_request.end_date:{DATE_FORMAT}}."
            ),
            rental_request=rental_request,
        )

    def notify_request_approved(self, rental_request):
        product = rental_request.product
        payload = RequestApprovedPayload(
            rental_request_id=str(rental_request.id),
            product_title=product.title,
            start_date=rental_request.start_date.isoformat(),
            end_date=rental_request.end_date.isoformat(),
            price=str(rental_request.price),
        )
        return self._dispatch(
            rental_request.customer, payload,
            title="Rental request approved",
            message=(
                f"Your request for {product.title} was approved. "
                f"Complete the payment of {rental_request.price} "
                f"{product.currency.upper()} to start your rental."
            ),
            rental_request=rental_request,
        )

    def notify_request_rejected(self, rental_request, reason=""):
        product = rental_request.product
        payload = RequestRejectedPayload(
            rental_request_id=str(rental_request.id),
            product_title=product.title,
            reason=reason or "",
        )
        message = f"Your request for {product.title} was rejected."
        if reason:
            message = f"{message} Reason: {reason}"
        return self._dispatch(
            rental_request.customer, payload,
            title="Rental request rejected",
            message=message,
            rental_request=rental_request,
        )

    def notify_conflicting_rejected(self, rental_request):
        product = rental_request.product
        payload = ConflictingRejectedPayload(
            rental_request_id=str(rental_request.id),
            product_title=product.title,
            start_date=rental_request.start_date.isoformat(),
            end_date=rental_request.end_date.isoformat(),
        )
        return self._dispatch(
            rental_request.customer, payload,
            title="Rental request no longer available",
            message=(
                f"{product.title} was booked by another customer for "
                f"overlapping dates, so your request was cancelled."
            ),
            rental_request=rental_request,
        )

    def notify_payment_completed(self, payment):
        rental_request = payment.rental_request
        product = rental_request.product
        customer_name = rental_request.customer.get_full_name()
        payload = PaymentCompletedPayload(
            rental_request_id=str(rental_request.id),
            payment_id=str(payment.id),
            product_title=product.title,
            customer_name=customer_name,
            amount=str(payment.amount),
            currency=payment.currency,
        )
        return self._dispatch(
            product.owner, payload,
            title="Payment received",
            message=(
                f"{customer_name} paid {payment.amount} "
                f"{payment.currency.upper()} for {product.title}."
            ),
            rental_request=rental_request,
        )

    def notify_payment_confirmed(self, payment):
        rental_request = payment.rental_request
        product = rental_request.product
        payload = PaymentConfirmedPayload(
            rental_request_id=str(rental_request.id),
            payment_id=str(payment.id),
            product_title=product.title,
            amount=str(payment.amount),
            currency=payment.currency,
        )
        return self._dispatch(
            rental_request.customer, payload,
            title="Payment confirmed",
            message=(
                f"Your payment of {payment.amount} "
                f"{payment.currency.upper()} for {product.title} "
                f"was confirmed. Your rental is now active."
            ),
            rental_request=rental_request,
        )

    def notify_return_confirmed(self, product_return):
        rental_request = product_return.rental_request
        product = rental_request.product
        payload = ReturnConfirmedPayload(
            rental_request_id=str(rental_request.id),
            return_id=str(product_return.id),
            product_title=product.title,
            return_date=product_return.return_date.isoformat(),
        )
        return self._dispatch(
            rental_request.customer, payload,
            title="Return confirmed",
            message=f"The return of {product.title} has been confirmed.",
            rental_request=rental_request,
        )

    def notify_invoice_emailed(self, invoice, recipient_email,
                               raise_on_failure=True):
        rental_request = invoice.rental_request
        payload = InvoiceEmailedPayload(
            rental_request_id=str(rental_request.id),
            invoice_id=str(invoice.id),
            invoice_number=invoice.invoice_number,
            recipient_email=recipient_email,
            amount=str(invoice.amount),
        )
        return self._dispatch(
            rental_request.customer, payload,
            title=f"Invoice {invoice.invoice_number}",
            message=(
                f"Invoice {invoice.invoice_number} for "
                f"{rental_request.product.title} ({invoice.amount} "
                f"{rental_request.product.currency.upper()}) was sent to "
                f"{recipient_email}."
            ),
            rental_request=rental_request,
            recipient_email=recipient_email,
            raise_on_failure=raise_on_failure,
        )


def get_dispatcher():
    return NotificationDispatcher(get_registry())
