"""
Per-user notification socket.

Every authenticated connection joins ``user_<id>`` and receives the
events `notifications.services.push_to_user` sends there.  An open
socket also counts as being online.
"""
from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from messaging.presence import presence

from .services import user_group


class NotificationConsumer(AsyncJsonWebsocketConsumer):
    async def connect(self):
        user = self.scope.get("user")
        if not user or not user.is_authenticated:
            await self.close()
            return
        self.user_id = user.id
        self.group_name = user_group(user.id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        await database_sync_to_async(presence.socket_connected)(user.id)

    async def disconnect(self, code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)
            await database_sync_to_async(presence.socket_disconnected)(self.user_id)

    async def receive_json(self, content, **kwargs):
        if content.get("type") == "ping":
            await self.send_json({"type": "pong"})

    # push_to_user(..., "notification.created", data)
    async def notification_created(self, event):
        await self.send_json({"type": "notification.created", "data": event["data"]})
