from django.contrib.auth.models import (AbstractBaseUser,
                                        PermissionsMixin,
                                        BaseUserManager)
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
import uuid


class CustomUserManager(BaseUserManager):
    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError(_('The Email field must be set'))
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError(_('Superuser must have is_staff=True.'))
        if extra_fields.get('is_superuser') is not True:
            raise ValueError(_('Superuser must have is_superuser=True.'))

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom user model for RentalHub. Accounts are provisioned by the
    authentication service; this backend only verifies their tokens.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False) # noqa
    email = models.EmailField(_('email address'), unique=True)
    first_name = models.CharField(_('first name'), max_length=30, blank=True)
    last_name = models.CharField(_('last name'), max_length=30, blank=True)
    is_active = models.BooleanField(_('active'), default=True)
    is_staff = models.BooleanField(_('staff status'), default=False)
    email_notifications = models.BooleanField(
        _('email notifications'), default=True)
    date_joined = models.DateTimeField(_('date joined'), default=timezone.now)
    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    objects = CustomUserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        indexes = [
            models.Index(fields=['is_active'], name='users_user_is_active_idx'),
            models.Index(fields=['created_at'], name='users_user_created_idx'),
        ]

    def get_full_name(self):
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.email

    def get_short_name(self):
        return self.first_name or self.email

    def __str__(self):
        return self.email


class Notification(models.Model):
    """
    In-app notification for a user. ``data`` always holds a versioned
    payload produced by ``users.notifications``.
    """
    NEW_REQUEST = 'new_request'
    REQUEST_APPROVED = 'request_approved'
    REQUEST_REJECTED = 'request_rejected'
    PAYMENT_COMPLETED = 'payment_completed'
    PAYMENT_CONFIRMED = 'payment_confirmed'
    RETURN_CONFIRMED = 'return_confirmed'
    INVOICE_EMAILED = 'invoice_emailed'
    CONFLICTING_REJECTED = 'conflicting_rejected'

    NOTIFICATION_TYPES = [
        (NEW_REQUEST, _('New rental request')),
        (REQUEST_APPROVED, _('Rental request approved')),
        (REQUEST_REJECTED, _('Rental request rejected')),
        (PAYMENT_COMPLETED, _('Payment completed')),
        (PAYMENT_CONFIRMED, _('Payment confirmed')),
        (RETURN_CONFIRMED, _('Return confirmed')),
        (INVOICE_EMAILED, _('Invoice emailed')),
        (CONFLICTING_REJECTED, _('Conflicting request rejected')),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False) # noqa
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    rental_request = models.ForeignKey(
        'rentals.RentalRequest',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='notifications'
    )
    notification_type = models.CharField(
        _('notification type'),
        max_length=32,
        choices=NOTIFICATION_TYPES,
    )
    title = models.CharField(_('title'), max_length=200)
    message = models.TextField(_('message'))
    data = models.JSONField(_('data'), default=dict, blank=True)

    # Status
    is_read = models.BooleanField(_('is read'), default=False)
    is_sent = models.BooleanField(_('is sent'), default=False)

    # Timestamps
    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    read_at = models.DateTimeField(_('read at'), null=True, blank=True)

    class Meta:
        verbose_name = _('notification')
        verbose_name_plural = _('notifications')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read'],
                         name='notif_user_is_read_idx'),
            models.Index(fields=['created_at'], name='notif_created_at_idx'),
        ]

    def __str__(self):
        return f"{self.user.email} - {self.title}"

    def mark_as_read(self):
        """Mark notification as read."""
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=['is_read', 'read_at'])

    def mark_as_sent(self):
        """Mark notification as sent (for email notifications)."""
        self.is_sent = True
        self.save(update_fields=['is_sent'])

    def to_message(self):
        """Shape pushed over the socket and returned by the poll."""
        return {
            "id": str(self.id),
            "title": self.title,
            "message": self.message,
            "notification_type": self.notification_type,
            "rental_request_id": (
                str(self.rental_request_id) if self.rental_request_id
                else None),
            "data": self.data,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat(),
            "read_at": self.read_at.isoformat() if self.read_at else None,
        }
