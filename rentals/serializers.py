from rest_framework import serializers

from users.serializers import UserSummarySerializer
from products.models import Product
from .models import RentalRequest
from .pricing import UNIT_LENGTHS


class RentalProductSerializer(serializers.ModelSerializer):

    class Meta:
        model = Product
        fields = [
            "id", "title", "category", "location", "rental_rate", "currency",
            "status", "owner",
        ]
        read_only_fields = fields


class RentalRequestSerializer(serializers.ModelSerializer):
    product = RentalProductSerializer(read_only=True)
    customer = UserSummarySerializer(read_only=True)

    class Meta:
        model = RentalRequest
        fields = [
            "id",
            "product",
            "customer",
            "start_date",
            "end_date",
            "rental_period_unit",
            "rental_period",
            "price",
            "pickup_location",
            "return_location",
            "status",
            "status_changed_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class RentalRequestCreateSerializer(serializers.Serializer):
    """
    Input for a new rental request. Price and period are always computed
    from the product's stored rate; client supplied values are ignored.
    """
    product_id = serializers.UUIDField()
    start_date = serializers.DateTimeField()
    end_date = serializers.DateTimeField()
    rental_period_unit = serializers.CharField(
        required=False, allow_blank=True, default="daily")
    pickup_location = serializers.CharField(
        required=False, allow_blank=True, default="", max_length=255)
    return_location = serializers.CharField(
        required=False, allow_blank=True, default="", max_length=255)

    def validate_rental_period_unit(self, value):
        return value if value in UNIT_LENGTHS else "daily"

    def validate(self, attrs):
        if attrs["start_date"] >= attrs["end_date"]:
            raise serializers.ValidationError(
                {"end_date": "End date must be after start date."})
        return attrs


class RentalRequestStatusUpdateSerializer(serializers.Serializer):
    STATUS_CHOICES = [
        RentalRequest.ACCEPTED,
        RentalRequest.REJECTED,
        RentalRequest.CANCELLED,
        RentalRequest.COMPLETED,
        RentalRequest.RETURNED,
    ]

    status = serializers.ChoiceField(choices=STATUS_CHOICES)
    reason = serializers.CharField(
        required=False, allow_blank=True, default="")
