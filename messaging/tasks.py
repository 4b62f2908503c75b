# messaging/tasks.py
"""
Celery tasks for work that follows a send.

Attachment processing and notification delivery run here so a message
is acknowledged as soon as it is stored.  Both tasks log and absorb
their own failures; the message itself is never rolled back.
"""
import logging

from celery import shared_task
from celery.exceptions import SoftTimeLimitExceeded

from .attachments import uploader
from .conf import messaging_setting
from .models import Message
from .visibility import sweep_expired_trash as sweep_trash

logger = logging.getLogger(__name__)

TIME_LIMITS = {
    "soft_time_limit": messaging_setting("TASK_SOFT_TIME_LIMIT"),
    "time_limit": messaging_setting("TASK_TIME_LIMIT"),
}


@shared_task(**TIME_LIMITS)
def process_message_attachments(message_id: int, staged: list) -> int:
    """Thumbnail staged files and attach them. Returns the number attached."""
    if not Message.objects.filter(pk=message_id).exists():
        logger.info("Message %s vanished before its attachments were processed", message_id)
        uploader.discard(staged)
        return 0
    try:
        return len(uploader.process(message_id, staged))
    except SoftTimeLimitExceeded:
        logger.warning("Attachment processing timed out for message %s", message_id)
    except Exception:
        logger.exception("Attachment processing failed for message %s", message_id)
    uploader.discard(staged)
    Message.objects.filter(pk=message_id).update(has_pending_attachments=False)
    return 0


@shared_task(**TIME_LIMITS)
def dispatch_new_message_notification(message_id: int) -> bool:
    """Tell the recipient about a new message. Returns True when delivered."""
    from notifications.services import NotificationDispatcher
    from users.models import display_name

    message = (
        Message.objects.select_related("sender__profile", "recipient__profile", "related_ad")
        .filter(pk=message_id)
        .first()
    )
    if message is None:
        return False

    ad_title = message.related_ad.title if message.related_ad_id else None
    return NotificationDispatcher().notify_new_message(
        message.recipient,
        display_name(message.sender),
        ad_title=ad_title,
        message=message,
    )


@shared_task
def sweep_expired_trash() -> int:
    """Periodic purge of trash older than the retention period, for all users."""
    return sweep_trash(retention_days=messaging_setting("TRASH_RETENTION_DAYS"))
