import uuid

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


def default_currency():
    return settings.RENTAL_CURRENCY


class Product(models.Model):
    """
    A rentable item listed by its owner. ``rental_rate`` is the base rate
    per day; the pricing engine scales it to the chosen rental period.
    """
    AVAILABLE = "available"
    RENTED = "rented"
    STATUS_CHOICES = [
        (AVAILABLE, "Available"),
        (RENTED, "Rented"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='products'
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=100, blank=True)
    location = models.CharField(max_length=255, blank=True)
    rental_rate = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(0)],
        help_text="Base rental rate per day"
    )
    currency = models.CharField(max_length=3, default=default_currency)
    status = models.CharField(
        max_length=20, choices=STATUS_CHOICES, default=AVAILABLE)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['owner'], name='product_owner_idx'),
            models.Index(fields=['status'], name='product_status_idx'),
            models.Index(fields=['category'], name='product_category_idx'),
        ]

    def __str__(self):
        return self.title

    @property
    def is_available(self):
        return self.status == self.AVAILABLE
