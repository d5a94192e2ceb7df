from rest_framework import serializers

from users.serializers import UserSummarySerializer
from .models import Invoice, InvoiceDownload, Payment


class PaymentSerializer(serializers.ModelSerializer):

    class Meta:
        model = Payment
        fields = [
            "id",
            "rental_request",
            "payment_method",
            "amount",
            "currency",
            "payment_status",
            "transaction_id",
            "payment_date",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PaymentCreateSerializer(serializers.Serializer):
    rental_request_id = serializers.UUIDField()
    payment_method = serializers.ChoiceField(choices=Payment.METHOD_CHOICES)


class PaymentConfirmSerializer(serializers.Serializer):
    payment_status = serializers.ChoiceField(choices=[
        Payment.COMPLETED, Payment.FAILED, Payment.REFUNDED])


class InvoiceSerializer(serializers.ModelSerializer):
    product_title = serializers.CharField(
        source="rental_request.product.title", read_only=True)
    currency = serializers.CharField(
        source="rental_request.product.currency", read_only=True)

    class Meta:
        model = Invoice
        fields = [
            "id",
            "invoice_number",
            "rental_request",
            "product_title",
            "amount",
            "currency",
            "due_date",
            "invoice_status",
            "paid_date",
            "created_at",
        ]
        read_only_fields = fields


class InvoiceEmailSerializer(serializers.Serializer):
    recipient_email = serializers.EmailField(required=False)


class InvoiceDownloadSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = InvoiceDownload
        fields = ["id", "invoice", "user", "created_at"]
        read_only_fields = fields
