import string
import uuid

from django.conf import settings
from django.db import models
from django.utils.crypto import get_random_string


def generate_invoice_number():
    return "INV-" + get_random_string(
        8, allowed_chars=string.ascii_uppercase + string.digits)


class Payment(models.Model):
    CARD = "card"
    PAYPAL = "paypal"
    APPLE_PAY = "apple_pay"
    GOOGLE_PAY = "google_pay"
    OFFLINE = "offline"
    METHOD_CHOICES = [
        (CARD, "Card"),
        (PAYPAL, "PayPal"),
        (APPLE_PAY, "Apple Pay"),
        (GOOGLE_PAY, "Google Pay"),
        (OFFLINE, "Offline"),
    ]

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (COMPLETED, "Completed"),
        (FAILED, "Failed"),
        (REFUNDED, "Refunded"),
    ]

    TRANSITIONS = {
        PENDING: {COMPLETED, FAILED},
        COMPLETED: {REFUNDED},
        FAILED: set(),
        REFUNDED: set(),
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    rental_request = models.OneToOneField(
        "rentals.RentalRequest",
        on_delete=models.PROTECT,
        related_name="payment",
    )
    payment_method = models.CharField(max_length=20, choices=METHOD_CHOICES)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3)
    payment_status = models.CharField(
        max_length=20, choices=STATUS_CHOICES, default=PENDING)
    # Payment intent id for online payments
    transaction_id = models.CharField(
        max_length=255, null=True, blank=True, db_index=True)
    payment_date = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["payment_status"], name="payment_status_idx"),
        ]

    def __str__(self):
        return (f"Payment {self.id} for rental {self.rental_request_id} - "
                f"{self.amount} {self.currency}")

    @property
    def is_offline(self):
        return self.payment_method == self.OFFLINE

    def can_transition_to(self, new_status):
        return new_status in self.TRANSITIONS.get(self.payment_status, set())


class Invoice(models.Model):
    UNPAID = "unpaid"
    PAID = "paid"
    STATUS_CHOICES = [
        (UNPAID, "Unpaid"),
        (PAID, "Paid"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    rental_request = models.OneToOneField(
        "rentals.RentalRequest",
        on_delete=models.PROTECT,
        related_name="invoice",
    )
    invoice_number = models.CharField(
        max_length=20, unique=True, default=generate_invoice_number)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    due_date = models.DateTimeField()
    invoice_status = models.CharField(
        max_length=20, choices=STATUS_CHOICES, default=UNPAID)
    paid_date = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.invoice_number


class InvoiceDownload(models.Model):
    invoice = models.ForeignKey(
        Invoice, on_delete=models.CASCADE, related_name="downloads")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="invoice_downloads",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.invoice} downloaded by {self.user}"
