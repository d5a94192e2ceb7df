import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status as http_status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from rentalhub.modules.paginations import CustomLimitOffsetPagination
from rentalhub.modules.utils import (
    api_response,
    get_incoming_request_checks,
    incoming_request_checks,
)
from .models import Notification
from .serializers import NotificationSerializer

logger = logging.getLogger(__name__)


class NotificationListView(APIView):
    permission_classes = [IsAuthenticated]
    pagination_class = CustomLimitOffsetPagination

    @swagger_auto_schema(
        operation_description="Get a paginated list of notifications "
        "for the authenticated user.",
        manual_parameters=[
            openapi.Parameter(
                'is_read', openapi.IN_QUERY, description="Filter by read status",  # noqa
                type=openapi.TYPE_BOOLEAN, required=False
            ),
            openapi.Parameter(
                'type', openapi.IN_QUERY, description="Filter by notification type",  # noqa
                type=openapi.TYPE_STRING, required=False
            ),
        ],
        responses={200: NotificationSerializer(many=True)}
    )
    def get(self, request):
        status_, data = get_incoming_request_checks(request)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=http_status.HTTP_400_BAD_REQUEST
            )

        notifications = Notification.objects.filter(
            user=request.user).order_by('-created_at')

        is_read = request.query_params.get('is_read')
        if is_read is not None:
            notifications = notifications.filter(
                is_read=is_read.lower() == 'true')

        notification_type = request.query_params.get('type')
        if notification_type:
            notifications = notifications.filter(
                notification_type=notification_type)

        paginator = self.pagination_class()
        paginated_notifications = paginator.paginate_queryset(
            notifications, request)
        serializer = NotificationSerializer(paginated_notifications, many=True)

        return Response(api_response(
            message="Notifications retrieved successfully",
            status=True,
            data=paginator.get_paginated_data(serializer.data)
        ))


class NotificationDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get_notification(self, request, notification_id):
        try:
            return Notification.objects.get(
                id=notification_id, user=request.user)
        except (Notification.DoesNotExist, DjangoValidationError):
            return None

    @swagger_auto_schema(
        operation_description="Get a specific notification.",
        responses={200: NotificationSerializer()}
    )
    def get(self, request, notification_id):
        status_, data = get_incoming_request_checks(request)
        if not status_:
            return Response(api_response(message=data, status=False),
                            status=http_status.HTTP_400_BAD_REQUEST)

        notification = self.get_notification(request, notification_id)
        if notification is None:
            return Response(
                api_response(message="Notification not found", status=False),
                status=http_status.HTTP_404_NOT_FOUND
            )
        return Response(api_response(
            message="Notification retrieved successfully",
            status=True,
            data=NotificationSerializer(notification).data
        ))

    @swagger_auto_schema(
        operation_description="Mark notification as read.",
        responses={200: NotificationSerializer()}
    )
    def patch(self, request, notification_id):
        status_, data = incoming_request_checks(
            request, require_data_field=False)
        if not status_:
            return Response(api_response(message=data, status=False),
                            status=http_status.HTTP_400_BAD_REQUEST)

        notification = self.get_notification(request, notification_id)
        if notification is None:
            return Response(
                api_response(message="Notification not found", status=False),
                status=http_status.HTTP_404_NOT_FOUND
            )
        notification.mark_as_read()
        return Response(api_response(
            message="Notification marked as read",
            status=True,
            data=NotificationSerializer(notification).data
        ))


class NotificationMarkAllReadView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Mark all user notifications as read.",
        responses={200: openapi.Response("All notifications marked as read")},
    )
    def post(self, request):
        status_, data = get_incoming_request_checks(request)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=http_status.HTTP_400_BAD_REQUEST,
            )
        updated_count = Notification.objects.filter(
            user=request.user, is_read=False
        ).update(is_read=True, read_at=timezone.now())
        logger.info(
            f"{request.user.email} marked {updated_count} notifications read")
        return Response(
            api_response(
                message=f"Marked {updated_count} notifications as read",
                status=True,
                data={"updated_count": updated_count},
            )
        )
