"""Messaging limits read from ``settings.MESSAGING`` with built-in defaults."""
from django.conf import settings

DEFAULTS = {
    "MAX_ATTACHMENTS": 5,
    "MAX_ATTACHMENT_BYTES": 10 * 1024 * 1024,
    "ALLOWED_ATTACHMENT_TYPES": ("image/jpeg", "image/png", "image/gif", "image/webp"),
    "THUMBNAIL_SIZE": (300, 300),
    "TRASH_RETENTION_DAYS": 30,
    "UNREAD_CACHE_TTL": 30,
    "NOTIFICATION_COOLDOWN_SECONDS": 300,
    "ACTIVE_CONVERSATION_SECONDS": 300,
    "EDIT_WINDOW_HOURS": 24,
    "TASK_SOFT_TIME_LIMIT": 30,
    "TASK_TIME_LIMIT": 60,
}


def messaging_setting(name):
    overrides = getattr(settings, "MESSAGING", None) or {}
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]
