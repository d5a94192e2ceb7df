import uuid

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from rentalhub.modules.exceptions import InvalidState


class RentalRequest(models.Model):
    """
    A customer's request to rent a product for a date range.

    Requests are never deleted; they end in one of the terminal statuses.
    """
    PENDING = "pending"
    ACCEPTED = "accepted"
    ACTIVE = "active"
    PAID = "paid"
    COMPLETED = "completed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    RETURNED = "returned"

    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (ACCEPTED, "Accepted"),
        (ACTIVE, "Active"),
        (PAID, "Paid"),
        (COMPLETED, "Completed"),
        (REJECTED, "Rejected"),
        (CANCELLED, "Cancelled"),
        (RETURNED, "Returned"),
    ]

    # Statuses that hold the product's calendar
    OCCUPYING_STATUSES = (ACCEPTED, ACTIVE, PAID)
    # Statuses in which the product is physically out with the customer
    HOLDING_STATUSES = (ACTIVE, PAID)
    TERMINAL_STATUSES = (COMPLETED, REJECTED, CANCELLED, RETURNED)

    TRANSITIONS = {
        PENDING: {ACCEPTED, REJECTED, CANCELLED},
        ACCEPTED: {ACTIVE, PAID, REJECTED, CANCELLED, RETURNED, COMPLETED},
        ACTIVE: {PAID, RETURNED, COMPLETED},
        PAID: {ACTIVE, RETURNED, COMPLETED},
        COMPLETED: set(),
        REJECTED: set(),
        CANCELLED: set(),
        RETURNED: set(),
    }

    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    PERIOD_UNIT_CHOICES = [
        (HOURLY, "Hourly"),
        (DAILY, "Daily"),
        (WEEKLY, "Weekly"),
        (MONTHLY, "Monthly"),
        (QUARTERLY, "Quarterly"),
        (YEARLY, "Yearly"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="rental_requests",
    )
    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="rental_requests",
    )

    # Rental period
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    rental_period_unit = models.CharField(
        max_length=20, choices=PERIOD_UNIT_CHOICES, default=DAILY)
    rental_period = models.PositiveIntegerField()

    # Pricing
    price = models.DecimalField(max_digits=12, decimal_places=2)

    # Pickup and return
    pickup_location = models.CharField(max_length=255, blank=True)
    return_location = models.CharField(max_length=255, blank=True)

    status = models.CharField(
        max_length=20, choices=STATUS_CHOICES, default=PENDING)
    status_changed_at = models.DateTimeField(default=timezone.now)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["product", "status"],
                         name="rental_product_status_idx"),
            models.Index(fields=["customer", "status"],
                         name="rental_customer_status_idx"),
            models.Index(fields=["start_date", "end_date"],
                         name="rental_dates_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(start_date__lt=F("end_date")),
                name="rental_request_start_before_end",
            ),
            models.CheckConstraint(
                condition=Q(price__gt=0),
                name="rental_request_price_positive",
            ),
        ]

    def __str__(self):
        return f"Rental {self.id} - {self.product} ({self.status})"

    @property
    def is_occupying(self):
        return self.status in self.OCCUPYING_STATUSES

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def is_party(self, user):
        return user is not None and user.pk in (
            self.customer_id, self.product.owner_id)

    def can_transition_to(self, new_status):
        return new_status in self.TRANSITIONS.get(self.status, set())

    def transition_to(self, new_status, save=True):
        """Move to ``new_status`` or raise InvalidState."""
        if not self.can_transition_to(new_status):
            raise InvalidState(
                f"Cannot change rental request from '{self.status}' "
                f"to '{new_status}'")
        self.status = new_status
        self.status_changed_at = timezone.now()
        if save:
            self.save(update_fields=["status", "status_changed_at",
                                     "updated_at"])
        return self
