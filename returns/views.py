import logging

from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from rentalhub.modules.exceptions import (
    RentalHubError,
    raise_serializer_error_msg,
)
from rentalhub.modules.utils import (
    api_response,
    error_response,
    get_incoming_request_checks,
    incoming_request_checks,
    server_error_response,
)
from .serializers import (
    DamageAssessmentCreateSerializer,
    DamageAssessmentSerializer,
    ProductReturnSerializer,
    ReturnConfirmSerializer,
)
from .services import ReturnService

logger = logging.getLogger(__name__)


class ReturnDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Get the return of a rental request",
        responses={200: ProductReturnSerializer()},
    )
    def get(self, request, rental_request_id):
        status_, data = get_incoming_request_checks(request)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            product_return = ReturnService().get_return(
                rental_request_id, request.user)
        except RentalHubError as exc:
            return error_response(exc)
        return Response(
            api_response(
                message="Return retrieved successfully.",
                status=True,
                data=ProductReturnSerializer(product_return).data,
            )
        )


class ReturnInitiateView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Initiate the return of a rental",
        responses={200: ProductReturnSerializer()},
    )
    def post(self, request, rental_request_id):
        status_, data = incoming_request_checks(
            request, require_data_field=False)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            product_return = ReturnService().initiate_return(
                rental_request_id, request.user)
        except RentalHubError as exc:
            return error_response(exc)
        except Exception:
            logger.exception(
                f"Failed to initiate return for {rental_request_id}")
            return server_error_response("Failed to initiate return.")
        return Response(
            api_response(
                message="Return initiated successfully.",
                status=True,
                data=ProductReturnSerializer(product_return).data,
            )
        )


class ReturnInProgressView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Mark an initiated return as in progress",
        responses={200: ProductReturnSerializer()},
    )
    def post(self, request, rental_request_id):
        status_, data = incoming_request_checks(
            request, require_data_field=False)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            product_return = ReturnService().mark_in_progress(
                rental_request_id, request.user)
        except RentalHubError as exc:
            return error_response(exc)
        except Exception:
            logger.exception(
                f"Failed to update return for {rental_request_id}")
            return server_error_response("Failed to update return.")
        return Response(
            api_response(
                message="Return marked in progress.",
                status=True,
                data=ProductReturnSerializer(product_return).data,
            )
        )


class ReturnConfirmView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description=(
            "Confirm the return of a rental; completes the rental request"),
        request_body=ReturnConfirmSerializer,
        responses={200: ProductReturnSerializer()},
    )
    def post(self, request, rental_request_id):
        status_, data = incoming_request_checks(
            request, require_data_field=False)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            serializer = ReturnConfirmSerializer(data=data)
            if not serializer.is_valid():
                raise_serializer_error_msg(errors=serializer.errors)
            product_return = ReturnService().confirm_return(
                rental_request_id,
                request.user,
                signature=serializer.validated_data["customer_signature"],
                condition_notes=serializer.validated_data["condition_notes"],
            )
        except RentalHubError as exc:
            return error_response(exc)
        except Exception:
            logger.exception(
                f"Failed to confirm return for {rental_request_id}")
            return server_error_response("Failed to confirm return.")
        return Response(
            api_response(
                message="Return confirmed successfully.",
                status=True,
                data=ProductReturnSerializer(product_return).data,
            )
        )


class DamageAssessmentCreateView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Record a damage assessment (product owner)",
        request_body=DamageAssessmentCreateSerializer,
        responses={201: DamageAssessmentSerializer()},
    )
    def post(self, request, return_id):
        status_, data = incoming_request_checks(request)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            serializer = DamageAssessmentCreateSerializer(data=data)
            if not serializer.is_valid():
                raise_serializer_error_msg(errors=serializer.errors)
            validated = serializer.validated_data
            assessment = ReturnService().create_damage_assessment(
                return_id,
                request.user,
                severity=validated["severity"],
                description=validated["description"],
                repair_cost=validated.get("repair_cost"),
                photo_urls=validated.get("photos", []),
            )
        except RentalHubError as exc:
            return error_response(exc)
        except Exception:
            logger.exception(
                f"Failed to create damage assessment for {return_id}")
            return server_error_response(
                "Failed to create damage assessment.")
        return Response(
            api_response(
                message="Damage assessment recorded successfully.",
                status=True,
                data=DamageAssessmentSerializer(assessment).data,
            ),
            status=status.HTTP_201_CREATED,
        )
