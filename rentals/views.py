import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from products.models import Product
from rentalhub.modules.exceptions import (
    RentalHubError,
    raise_serializer_error_msg,
)
from rentalhub.modules.paginations import CustomLimitOffsetPagination
from rentalhub.modules.utils import (
    api_response,
    error_response,
    get_incoming_request_checks,
    incoming_request_checks,
    server_error_response,
)
from .availability import unavailable_ranges
from .serializers import (
    RentalRequestCreateSerializer,
    RentalRequestSerializer,
    RentalRequestStatusUpdateSerializer,
)
from .services import RentalRequestService

logger = logging.getLogger(__name__)


class RentalRequestListCreateView(APIView):
    permission_classes = [IsAuthenticated]
    pagination_class = CustomLimitOffsetPagination

    @swagger_auto_schema(
        operation_description=(
            "List rental requests made by the authenticated user, or "
            "received for their products with as_owner=true"),
        manual_parameters=[
            openapi.Parameter(
                "status",
                openapi.IN_QUERY,
                description="Filter by status",
                type=openapi.TYPE_STRING,
                required=False,
            ),
            openapi.Parameter(
                "as_owner",
                openapi.IN_QUERY,
                description="List requests for products you own",
                type=openapi.TYPE_BOOLEAN,
                required=False,
            ),
        ],
        responses={200: RentalRequestSerializer(many=True)},
    )
    def get(self, request):
        status_, data = get_incoming_request_checks(request)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST,
            )

        as_owner = request.query_params.get("as_owner", "").lower() in (
            "true", "1")
        rental_requests = RentalRequestService().list_for_user(
            request.user,
            as_owner=as_owner,
            status=request.query_params.get("status"),
        )

        paginator = self.pagination_class()
        page = paginator.paginate_queryset(rental_requests, request)
        serializer = RentalRequestSerializer(page, many=True)
        return Response(
            api_response(
                message="Rental requests retrieved successfully.",
                status=True,
                data=paginator.get_paginated_data(serializer.data),
            )
        )

    @swagger_auto_schema(
        operation_description="Create a new rental request",
        request_body=RentalRequestCreateSerializer,
        responses={201: RentalRequestSerializer()},
    )
    def post(self, request):
        status_, data = incoming_request_checks(request)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            serializer = RentalRequestCreateSerializer(data=data)
            if not serializer.is_valid():
                raise_serializer_error_msg(errors=serializer.errors)
            validated = serializer.validated_data

            rental_request, availability = RentalRequestService(
            ).create_request(
                customer=request.user,
                product_id=validated["product_id"],
                start_date=validated["start_date"],
                end_date=validated["end_date"],
                period_unit=validated["rental_period_unit"],
                pickup_location=validated["pickup_location"],
                return_location=validated["return_location"],
            )
        except RentalHubError as exc:
            return error_response(exc)
        except Exception:
            logger.exception("Failed to create rental request")
            return server_error_response("Failed to create rental request.")

        return Response(
            api_response(
                message="Rental request created successfully.",
                status=True,
                data={
                    "rental_request": RentalRequestSerializer(
                        rental_request).data,
                    "request_limit_info": {
                        "pending_requests_count": availability.pending_count,
                        "recent_accepted_requests":
                            availability.recent_accepted_count,
                        "is_at_limit": availability.is_throttled,
                    },
                },
            ),
            status=status.HTTP_201_CREATED,
        )


class RentalRequestDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Get details of a rental request",
        responses={200: RentalRequestSerializer()},
    )
    def get(self, request, rental_request_id):
        status_, data = get_incoming_request_checks(request)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            rental_request = RentalRequestService().get_for_party(
                rental_request_id, request.user)
        except RentalHubError as exc:
            return error_response(exc)

        return Response(
            api_response(
                message="Rental request retrieved successfully.",
                status=True,
                data=RentalRequestSerializer(rental_request).data,
            )
        )

    @swagger_auto_schema(
        operation_description=(
            "Update rental request status: accept or reject (owner), "
            "cancel, complete or return (customer or owner)"),
        request_body=RentalRequestStatusUpdateSerializer,
        responses={200: RentalRequestSerializer()},
    )
    def patch(self, request, rental_request_id):
        status_, data = incoming_request_checks(request)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            serializer = RentalRequestStatusUpdateSerializer(data=data)
            if not serializer.is_valid():
                raise_serializer_error_msg(errors=serializer.errors)
            rental_request = RentalRequestService().update_status(
                rental_request_id,
                request.user,
                serializer.validated_data["status"],
                reason=serializer.validated_data["reason"],
            )
        except RentalHubError as exc:
            return error_response(exc)
        except Exception:
            logger.exception(
                f"Failed to update rental request {rental_request_id}")
            return server_error_response("Failed to update rental request.")

        return Response(
            api_response(
                message="Rental request updated successfully.",
                status=True,
                data=RentalRequestSerializer(rental_request).data,
            )
        )


class ActiveRentalsView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description=(
            "List the authenticated customer's rentals that can be returned"),
        responses={200: RentalRequestSerializer(many=True)},
    )
    def get(self, request):
        status_, data = get_incoming_request_checks(request)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST,
            )
        rentals = RentalRequestService().active_rentals(request.user)
        return Response(
            api_response(
                message="Active rentals retrieved successfully.",
                status=True,
                data=RentalRequestSerializer(rentals, many=True).data,
            )
        )


class AvailabilityView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    @swagger_auto_schema(
        operation_description="Get unavailable date ranges for a product",
        manual_parameters=[
            openapi.Parameter(
                "product_id",
                openapi.IN_QUERY,
                description="Product ID",
                type=openapi.TYPE_STRING,
                required=True,
            ),
        ],
    )
    def get(self, request):
        status_, data = get_incoming_request_checks(request)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST,
            )

        product_id = request.query_params.get("product_id")
        if not product_id:
            return Response(
                api_response(message="Product ID is required", status=False),
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            exists = Product.objects.filter(pk=product_id).exists()
        except DjangoValidationError:
            exists = False
        if not exists:
            return Response(
                api_response(message="Product not found", status=False),
                status=status.HTTP_404_NOT_FOUND,
            )

        return Response(
            api_response(
                message="Unavailable dates retrieved successfully",
                status=True,
                data=unavailable_ranges(product_id),
            )
        )
