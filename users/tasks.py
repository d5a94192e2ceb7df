import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils import timezone
from django.utils.html import strip_tags

logger = logging.getLogger(__name__)


def deliver_notification_email(notification_id, recipient_email=None):
    """
    Render and send the email for a stored notification.

    Sends to ``recipient_email`` when given, otherwise to the notification
    owner. Raises on any delivery failure.
    """
    from users.models import Notification

    notification = Notification.objects.select_related('user').get(
        id=notification_id)
    user = notification.user
    to_email = recipient_email or user.email

    action_url = None
    frontend_url = getattr(settings, 'FRONTEND_URL', None)
    if frontend_url and notification.rental_request_id:
        action_url = (
            f"{frontend_url}/rentals/{notification.rental_request_id}")

    html_message = render_to_string(
        'emails/rental_notification.html',
        {
            'name': user.get_full_name(),
            'title': notification.title,
            'message': notification.message,
            'action_url': action_url,
            'now': timezone.now().strftime('%Y-%m-%d %H:%M:%S'),
        }
    )
    msg = EmailMultiAlternatives(
        subject=f"Rental Update: {notification.title}",
        body=strip_tags(html_message),
        from_email=getattr(settings, 'DEFAULT_FROM_EMAIL', None),
        to=[to_email],
    )
    msg.attach_alternative(html_message, "text/html")
    msg.send(fail_silently=False)
    notification.mark_as_sent()
    logger.info(
        f"Notification email {notification.notification_type} sent to "
        f"{to_email}")


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def send_notification_email(self, notification_id, recipient_email=None):
    """
    Send a notification email asynchronously.
    Retries up to 3 times on failure.
    """
    try:
        deliver_notification_email(notification_id, recipient_email)
    except Exception as exc:
        logger.error(
            f"Failed to send notification email {notification_id}: {exc}",
            exc_info=True)
        try:
            self.retry(exc=exc)
        except self.MaxRetriesExceededError:
            logger.critical(
                f"Max retries exceeded for notification email {notification_id}")  # noqa
