from rest_framework import serializers

from .models import DamageAssessment, DamagePhoto, ProductReturn


class DamagePhotoSerializer(serializers.ModelSerializer):

    class Meta:
        model = DamagePhoto
        fields = ["id", "photo_url", "caption", "created_at"]
        read_only_fields = fields


class DamageAssessmentSerializer(serializers.ModelSerializer):
    photos = DamagePhotoSerializer(many=True, read_only=True)

    class Meta:
        model = DamageAssessment
        fields = [
            "id",
            "product_return",
            "assessed_by",
            "severity",
            "description",
            "repair_cost",
            "photos",
            "created_at",
        ]
        read_only_fields = fields


class ProductReturnSerializer(serializers.ModelSerializer):
    damage_assessment = serializers.SerializerMethodField()

    class Meta:
        model = ProductReturn
        fields = [
            "id",
            "rental_request",
            "return_status",
            "customer_signature",
            "condition_notes",
            "return_date",
            "initiated_by",
            "damage_assessment",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_damage_assessment(self, obj):
        try:
            assessment = obj.damage_assessment
        except DamageAssessment.DoesNotExist:
            return None
        return DamageAssessmentSerializer(assessment).data


class ReturnConfirmSerializer(serializers.Serializer):
    customer_signature = serializers.CharField(
        required=False, allow_blank=True, default="")
    condition_notes = serializers.CharField(
        required=False, allow_blank=True, default="")


class DamagePhotoInputSerializer(serializers.Serializer):
    url = serializers.URLField(max_length=500)
    caption = serializers.CharField(
        required=False, allow_blank=True, default="", max_length=255)


class DamageAssessmentCreateSerializer(serializers.Serializer):
    severity = serializers.ChoiceField(
        choices=DamageAssessment.SEVERITY_CHOICES)
    description = serializers.CharField(
        required=False, allow_blank=True, default="")
    repair_cost = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True,
        min_value=0)
    photos = DamagePhotoInputSerializer(many=True, required=False)
