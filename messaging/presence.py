"""
Presence tracking and the new-message notification suppression policy.

All state lives in the shared ``default`` cache so every worker and
ASGI process sees the same view:

* ``msg:active:<user>:<other>``  the user has the thread with <other> open
* ``msg:notified:<recipient>:<sender>``  a notification went out recently
* ``msg:sockets:<user>``  number of live notification sockets
"""
import logging

from django.core.cache import cache

from users.models import UserProfile

from .conf import messaging_setting

logger = logging.getLogger(__name__)


class PresenceService:
    def __init__(self, backend=None):
        self.cache = backend if backend is not None else cache

    # ---------- keys ----------
    @staticmethod
    def _active_key(user_id, other_id):
        return f"msg:active:{user_id}:{other_id}"

    @staticmethod
    def _notified_key(recipient_id, sender_id):
        return f"msg:notified:{recipient_id}:{sender_id}"

    @staticmethod
    def _sockets_key(user_id):
        return f"msg:sockets:{user_id}"

    # ---------- conversation activity ----------
    def mark_active_in_conversation(self, user_id, other_id):
        """Record that `user_id` is looking at the thread with `other_id`."""
        self.cache.set(
            self._active_key(user_id, other_id),
            True,
            timeout=messaging_setting("ACTIVE_CONVERSATION_SECONDS"),
        )
        # Reading the thread re-arms notifications from this sender
        self.cache.delete(self._notified_key(user_id, other_id))

    def clear_active_in_conversation(self, user_id, other_id):
        self.cache.delete(self._active_key(user_id, other_id))

    def is_active_in_conversation(self, user_id, other_id) -> bool:
        return bool(self.cache.get(self._active_key(user_id, other_id)))

    # ---------- socket presence ----------
    def socket_connected(self, user_id):
        key = self._sockets_key(user_id)
        self.cache.add(key, 0, timeout=None)
        try:
            self.cache.incr(key)
        except ValueError:
            # key evicted between add and incr
            self.cache.set(key, 1, timeout=None)

    def socket_disconnected(self, user_id):
        key = self._sockets_key(user_id)
        try:
            remaining = self.cache.decr(key)
        except ValueError:
            return
        if remaining <= 0:
            self.cache.delete(key)

    # ---------- queries ----------
    def is_user_online(self, user_id) -> bool:
        if (self.cache.get(self._sockets_key(user_id)) or 0) > 0:
            return True
        profile = UserProfile.objects.filter(user_id=user_id).only("last_activity_at").first()
        return bool(profile and profile.is_online)

    def should_suppress_notification(self, recipient_id, sender_id) -> bool:
        """
        True when the recipient should not be notified about a new message
        from `sender_id`: they have the conversation open, or one
        notification for this pair already went out inside the cooldown.

        A False answer claims the cooldown slot, so concurrent sends from
        the same sender produce a single notification.
        """
        if self.is_active_in_conversation(recipient_id, sender_id):
            logger.debug("Suppressing notification: %s is viewing thread with %s", recipient_id, sender_id)
            return True

        claimed = self.cache.add(
            self._notified_key(recipient_id, sender_id),
            True,
            timeout=messaging_setting("NOTIFICATION_COOLDOWN_SECONDS"),
        )
        if not claimed:
            logger.debug("Suppressing notification: cooldown for %s <- %s", recipient_id, sender_id)
        return not claimed

    def release_notification_slot(self, recipient_id, sender_id):
        """Give back a cooldown slot whose notification never went out."""
        self.cache.delete(self._notified_key(recipient_id, sender_id))


presence = PresenceService()
