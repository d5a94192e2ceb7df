import uuid

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class ProductReturn(models.Model):
    NOT_INITIATED = "not_initiated"
    INITIATED = "initiated"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    STATUS_CHOICES = [
        (NOT_INITIATED, "Not initiated"),
        (INITIATED, "Initiated"),
        (IN_PROGRESS, "In progress"),
        (COMPLETED, "Completed"),
    ]

    TRANSITIONS = {
        NOT_INITIATED: {INITIATED},
        INITIATED: {IN_PROGRESS, COMPLETED},
        IN_PROGRESS: {COMPLETED},
        COMPLETED: set(),
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    rental_request = models.OneToOneField(
        "rentals.RentalRequest",
        on_delete=models.PROTECT,
        related_name="product_return",
    )
    return_status = models.CharField(
        max_length=20, choices=STATUS_CHOICES, default=NOT_INITIATED)
    customer_signature = models.TextField(blank=True)
    condition_notes = models.TextField(blank=True)
    return_date = models.DateTimeField(null=True, blank=True)
    initiated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="initiated_returns",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Return of rental {self.rental_request_id} ({self.return_status})" # noqa

    def can_transition_to(self, new_status):
        return new_status in self.TRANSITIONS.get(self.return_status, set())


class DamageAssessment(models.Model):
    NONE = "none"
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"
    SEVERITY_CHOICES = [
        (NONE, "None"),
        (MINOR, "Minor"),
        (MODERATE, "Moderate"),
        (SEVERE, "Severe"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product_return = models.OneToOneField(
        ProductReturn,
        on_delete=models.CASCADE,
        related_name="damage_assessment",
    )
    assessed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="damage_assessments",
    )
    severity = models.CharField(max_length=20, choices=SEVERITY_CHOICES)
    description = models.TextField(blank=True)
    repair_cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0)],
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.get_severity_display()} damage on {self.product_return}" # noqa


class DamagePhoto(models.Model):
    damage_assessment = models.ForeignKey(
        DamageAssessment, on_delete=models.CASCADE, related_name="photos")
    photo_url = models.URLField(max_length=500)
    caption = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return self.photo_url
