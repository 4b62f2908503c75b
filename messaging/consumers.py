"""
Channels consumer for an open conversation thread.

While a client holds ``ws/messaging/conversations/<user_id>/`` open the
user counts as active in the thread with <user_id>, so new messages from
that user are not announced by notification.  Activity expires after a
few minutes; clients keep it alive with ``{"type": "ping"}``.
"""
from __future__ import annotations

import logging
from typing import Any

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.contrib.auth import get_user_model

from .presence import presence

logger = logging.getLogger(__name__)

User = get_user_model()


class ConversationPresenceConsumer(AsyncJsonWebsocketConsumer):
    """Marks the connected user as reading one conversation."""

    async def connect(self) -> None:
        user = self.scope.get("user")
        if not user or not user.is_authenticated:
            await self.close()
            return
        self.other_id = int(self.scope["url_route"]["kwargs"]["user_id"])
        if self.other_id == user.id or not await self._user_exists(self.other_id):
            await self.close()
            return
        await self.accept()
        await database_sync_to_async(presence.mark_active_in_conversation)(user.id, self.other_id)
        await self.send_json({"type": "presence.active", "user_id": self.other_id})

    async def disconnect(self, code: int) -> None:
        user = self.scope.get("user")
        if getattr(self, "other_id", None) is not None and user and user.is_authenticated:
            await database_sync_to_async(presence.clear_active_in_conversation)(user.id, self.other_id)

    async def receive_json(self, content: dict[str, Any], **kwargs: Any) -> None:
        if content.get("type") == "ping":
            user = self.scope["user"]
            await database_sync_to_async(presence.mark_active_in_conversation)(user.id, self.other_id)
            await self.send_json({"type": "pong"})

    # ---------- sync helper methods ----------
    @database_sync_to_async
    def _user_exists(self, user_id: int) -> bool:
        return User.objects.filter(pk=user_id, is_active=True).exists()
