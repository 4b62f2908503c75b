"""
Unread badge counter.

Counts the distinct senders that have at least one unread message for
the user.  Results are kept in a process-local cache (`unread_counts`
alias) for a short TTL; any flag change touching a user drops that
user's entry.  Computation failures never reach the caller: the badge
falls back to zero with an error marker.
"""
import logging
from typing import NamedTuple, Optional

from django.core.cache import caches

from .conf import messaging_setting
from .models import Message, MessageDeletion

logger = logging.getLogger(__name__)


class UnreadCount(NamedTuple):
    count: int
    stale: bool = False
    error: Optional[str] = None

    def as_dict(self):
        data = {"count": self.count, "stale": self.stale}
        if self.error:
            data["error"] = self.error
        return data


class UnreadCountCache:
    """Keyed TTL store for unread counts; expired entries vanish on read."""

    alias = "unread_counts"
    key_prefix = "unread"

    def __init__(self, alias=None, ttl=None):
        if alias:
            self.alias = alias
        self.ttl = ttl

    @property
    def backend(self):
        return caches[self.alias]

    def key(self, user_id) -> str:
        return f"{self.key_prefix}:{user_id}"

    def get(self, user_id) -> Optional[int]:
        return self.backend.get(self.key(user_id))

    def put(self, user_id, count: int) -> None:
        ttl = self.ttl if self.ttl is not None else messaging_setting("UNREAD_CACHE_TTL")
        self.backend.set(self.key(user_id), int(count), timeout=ttl)

    def invalidate(self, *user_ids) -> None:
        keys = [self.key(uid) for uid in user_ids if uid is not None]
        if keys:
            self.backend.delete_many(keys)


unread_cache = UnreadCountCache()


def compute_unread_count(user_id) -> int:
    trashed = MessageDeletion.objects.filter(user_id=user_id).values("message_id")
    return (
        Message.objects.filter(recipient_id=user_id, read=False, draft=False, unsent=False)
        .exclude(sender_id=user_id)
        .exclude(pk__in=trashed)
        .values("sender_id")
        .distinct()
        .count()
    )


def get_unread_count(user, cache=None) -> UnreadCount:
    cache = cache or unread_cache
    try:
        cached = cache.get(user.pk)
        if cached is not None:
            return UnreadCount(count=cached, stale=True)

        count = compute_unread_count(user.pk)
        cache.put(user.pk, count)
        return UnreadCount(count=count)
    except Exception:
        logger.exception("Unread count failed for user %s", user.pk)
        return UnreadCount(count=0, error="server_error")


def invalidate_unread(*user_ids) -> None:
    unread_cache.invalidate(*user_ids)
