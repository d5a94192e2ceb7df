from rest_framework import serializers

from users.serializers import UserSummarySerializer
from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    owner = UserSummarySerializer(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id',
            'owner',
            'title',
            'description',
            'category',
            'location',
            'rental_rate',
            'currency',
            'status',
            'created_at',
            'updated_at',
        ]
        read_only_fields = [
            'id', 'owner', 'status', 'created_at', 'updated_at']


class ProductCreateSerializer(serializers.ModelSerializer):

    class Meta:
        model = Product
        fields = [
            'title',
            'description',
            'category',
            'location',
            'rental_rate',
            'currency',
        ]

    def validate_rental_rate(self, value):
        if value <= 0:
            raise serializers.ValidationError(
                "Rental rate must be greater than zero.")
        return value

    def validate_currency(self, value):
        return value.lower()
