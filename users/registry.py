import logging

from asgiref.sync import async_to_sync

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    Maps user ids to the live socket connections subscribed for them.

    Backed by a Channels layer: each user has one group and every open
    connection of that user is a member of it. Sync and async callers are
    both supported (``push`` for sync code, ``apush``/``aregister`` from
    consumers).
    """

    group_prefix = "notifications"

    def __init__(self, channel_layer):
        self.channel_layer = channel_layer

    def group_name(self, user_id):
        return f"{self.group_prefix}_{user_id}"

    async def aregister(self, user_id, channel_name):
        await self.channel_layer.group_add(
            self.group_name(user_id), channel_name)

    async def aunregister(self, user_id, channel_name):
        await self.channel_layer.group_discard(
            self.group_name(user_id), channel_name)

    async def apush(self, user_id, message: dict):
        await self.channel_layer.group_send(
            self.group_name(user_id),
            {"type": "notification.message", "message": message},
        )

    def register(self, user_id, channel_name):
        async_to_sync(self.aregister)(user_id, channel_name)

    def unregister(self, user_id, channel_name):
        async_to_sync(self.aunregister)(user_id, channel_name)

    def push(self, user_id, message: dict):
        """Deliver ``message`` to every open connection of ``user_id``."""
        if self.channel_layer is None:
            logger.warning("No channel layer configured; skipping push")
            return
        async_to_sync(self.apush)(user_id, message)


def get_registry():
    from channels.layers import get_channel_layer
    return ConnectionRegistry(get_channel_layer())
