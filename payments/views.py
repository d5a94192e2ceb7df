import logging

from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
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
    InvoiceDownloadSerializer,
    InvoiceEmailSerializer,
    InvoiceSerializer,
    PaymentConfirmSerializer,
    PaymentCreateSerializer,
    PaymentSerializer,
)
from .services import InvoiceService, PaymentService

logger = logging.getLogger(__name__)


class PaymentCreateView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description=(
            "Pay for a rental request. Online methods return the payment "
            "intent client secret."),
        request_body=PaymentCreateSerializer,
        responses={201: PaymentSerializer()},
    )
    def post(self, request):
        status_, data = incoming_request_checks(request)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            serializer = PaymentCreateSerializer(data=data)
            if not serializer.is_valid():
                raise_serializer_error_msg(errors=serializer.errors)
            result = PaymentService().create_payment(
                request.user,
                serializer.validated_data["rental_request_id"],
                serializer.validated_data["payment_method"],
            )
        except RentalHubError as exc:
            return error_response(exc)
        except Exception:
            logger.exception("Failed to create payment")
            return server_error_response("Failed to create payment.")

        return Response(
            api_response(
                message="Payment created successfully.",
                status=True,
                data={
                    "payment": PaymentSerializer(result.payment).data,
                    "client_secret": result.client_secret,
                    "is_offline": result.is_offline,
                },
            ),
            status=status.HTTP_201_CREATED,
        )


class PaymentDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Get payment details",
        responses={200: PaymentSerializer()},
    )
    def get(self, request, payment_id):
        status_, data = get_incoming_request_checks(request)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            payment = PaymentService().get_for_party(payment_id, request.user)
        except RentalHubError as exc:
            return error_response(exc)
        return Response(
            api_response(
                message="Payment retrieved successfully.",
                status=True,
                data=PaymentSerializer(payment).data,
            )
        )

    @swagger_auto_schema(
        operation_description=(
            "Confirm a payment (product owner): completed, failed or "
            "refunded"),
        request_body=PaymentConfirmSerializer,
        responses={200: PaymentSerializer()},
    )
    def patch(self, request, payment_id):
        status_, data = incoming_request_checks(request)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            serializer = PaymentConfirmSerializer(data=data)
            if not serializer.is_valid():
                raise_serializer_error_msg(errors=serializer.errors)
            payment = PaymentService().confirm_payment(
                payment_id,
                serializer.validated_data["payment_status"],
                actor=request.user,
            )
        except RentalHubError as exc:
            return error_response(exc)
        except Exception:
            logger.exception(f"Failed to confirm payment {payment_id}")
            return server_error_response("Failed to confirm payment.")

        return Response(
            api_response(
                message="Payment updated successfully.",
                status=True,
                data=PaymentSerializer(payment).data,
            )
        )


class PaymentWebhookView(APIView):
    """Receives payment provider events; authenticated by signature."""
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = []

    @swagger_auto_schema(auto_schema=None)
    def post(self, request):
        signature = request.META.get("HTTP_STRIPE_SIGNATURE", "")
        processed = PaymentService().handle_webhook(request.body, signature)
        if not processed:
            return Response(
                api_response(message="Webhook not processed", status=False),
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response(
            api_response(message="Webhook processed", status=True))


class InvoiceDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Download an invoice; the download is recorded", # noqa
        responses={200: InvoiceSerializer()},
    )
    def get(self, request, invoice_id):
        status_, data = get_incoming_request_checks(request)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            invoice, _ = InvoiceService().record_download(
                invoice_id, request.user)
        except RentalHubError as exc:
            return error_response(exc)
        return Response(
            api_response(
                message="Invoice retrieved successfully.",
                status=True,
                data=InvoiceSerializer(invoice).data,
            )
        )


class InvoiceEmailView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description=(
            "Email an invoice, to the customer by default"),
        request_body=InvoiceEmailSerializer,
        responses={200: InvoiceSerializer()},
    )
    def post(self, request, invoice_id):
        status_, data = incoming_request_checks(
            request, require_data_field=False)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            serializer = InvoiceEmailSerializer(data=data)
            if not serializer.is_valid():
                raise_serializer_error_msg(errors=serializer.errors)
            invoice = InvoiceService().email_invoice(
                invoice_id,
                request.user,
                serializer.validated_data.get("recipient_email"),
            )
        except RentalHubError as exc:
            return error_response(exc)
        except Exception:
            logger.exception(f"Failed to email invoice {invoice_id}")
            return server_error_response("Failed to email invoice.")

        return Response(
            api_response(
                message="Invoice sent successfully.",
                status=True,
                data=InvoiceSerializer(invoice).data,
            )
        )


class InvoiceDownloadHistoryView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Retrieve download history for an invoice",
        manual_parameters=[
            openapi.Parameter(
                "invoice_id", openapi.IN_PATH, type=openapi.TYPE_STRING,
                description="Invoice ID"),
        ],
        responses={200: InvoiceDownloadSerializer(many=True)},
    )
    def get(self, request, invoice_id):
        status_, data = get_incoming_request_checks(request)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST,
            )
        try:
            downloads = InvoiceService().download_history(
                invoice_id, request.user)
        except RentalHubError as exc:
            return error_response(exc)
        return Response(
            api_response(
                message="Download history retrieved successfully",
                status=True,
                data=InvoiceDownloadSerializer(downloads, many=True).data,
            )
        )
