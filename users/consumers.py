import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.conf import settings
from django.core.exceptions import ValidationError
from django.utils import timezone

from .models import Notification
from .notifications import merge_notification_feeds
from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class NotificationConsumer(AsyncWebsocketConsumer):
    """
    WebSocket consumer for real-time notifications.

    ``registry`` may be injected with ``as_asgi(registry=...)``; by default
    one is built over this consumer's channel layer.
    """
    registry = None

    async def connect(self):
        self.user = self.scope.get('user')

        if not self.user or not self.user.is_authenticated:
            await self.close()
            return

        if self.registry is None:
            self.registry = ConnectionRegistry(self.channel_layer)
        self.live_items = []

        await self.registry.aregister(self.user.id, self.channel_name)
        await self.accept()

        unread_count = await self.get_unread_notifications_count()
        await self.send(text_data=json.dumps({
            'type': 'notification.count',
            'unread_count': unread_count
        }))

    async def disconnect(self, close_code):
        user = getattr(self, 'user', None)
        if self.registry is not None and user and user.is_authenticated:
            await self.registry.aunregister(user.id, self.channel_name)

    async def receive(self, text_data=None, bytes_data=None):
        try:
            data = json.loads(text_data or "")
        except json.JSONDecodeError:
            await self.send_error('Invalid JSON format')
            return
        if not isinstance(data, dict):
            await self.send_error('Message must be a JSON object')
            return

        message_type = data.get('type')
        try:
            if message_type == 'mark_read':
                updated = await self.mark_notification_read(
                    data.get('notification_id'))
                await self.send_unread_count()
                if not updated:
                    await self.send_error('Notification not found')

            elif message_type == 'mark_all_read':
                await self.mark_all_notifications_read()
                await self.send_unread_count()

            elif message_type == 'get_notifications':
                limit = data.get('limit', settings.NOTIFICATION_FEED_LIMIT)
                await self.send_notifications(limit)

            else:
                await self.send_error(f'Unknown message type: {message_type}') # noqa
        except Exception:
            logger.exception(f"Socket message {message_type} failed")
            await self.send_error('Failed to process message')

    async def notification_message(self, event):
        """Relay a pushed notification to the socket."""
        message = event['message']
        self.live_items = merge_notification_feeds(
            [message], self.live_items,
            limit=settings.NOTIFICATION_FEED_LIMIT)
        await self.send(text_data=json.dumps({
            'type': 'notification.new',
            'notification': message
        }))

    async def send_notifications(self, limit):
        try:
            limit = max(1, min(int(limit), settings.NOTIFICATION_FEED_LIMIT))
        except (TypeError, ValueError):
            limit = settings.NOTIFICATION_FEED_LIMIT
        polled = await self.get_recent_notifications(limit)
        items = merge_notification_feeds(self.live_items, polled, limit=limit)
        await self.send(text_data=json.dumps({
            'type': 'notification.list',
            'notifications': items,
        }))

    async def send_unread_count(self):
        unread_count = await self.get_unread_notifications_count()
        await self.send(text_data=json.dumps({
            'type': 'notification.count_update',
            'unread_count': unread_count
        }))

    async def send_error(self, message):
        await self.send(text_data=json.dumps({
            'type': 'error',
            'message': message
        }))

    @database_sync_to_async
    def get_unread_notifications_count(self):
        return Notification.objects.filter(
            user=self.user,
            is_read=False
        ).count()

    @database_sync_to_async
    def mark_notification_read(self, notification_id):
        try:
            notification = Notification.objects.get(
                id=notification_id,
                user=self.user
            )
        except (Notification.DoesNotExist, ValidationError):
            return False
        notification.mark_as_read()
        return True

    @database_sync_to_async
    def mark_all_notifications_read(self):
        return Notification.objects.filter(
            user=self.user,
            is_read=False
        ).update(is_read=True, read_at=timezone.now())

    @database_sync_to_async
    def get_recent_notifications(self, limit):
        notifications = Notification.objects.filter(
            user=self.user
        ).order_by('-created_at')[:limit]
        return [notification.to_message() for notification in notifications]
