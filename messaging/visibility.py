"""
Per-user visibility of messages.

A message is visible to a user when the user is its sender or recipient
and has not put it in the trash.  Drafts are visible to their author only.  Trash state is a `MessageDeletion`
tombstone per (message, user); removing the tombstone restores the
message for that user only.
"""
import logging
from datetime import timedelta

from django.db.models import Q
from django.utils import timezone

from .models import Message, MessageDeletion

logger = logging.getLogger(__name__)


def _tombstoned_ids(user_id):
    return MessageDeletion.objects.filter(user_id=user_id).values("message_id")


def party_q(user_id) -> Q:
    # a draft belongs to its author until it is sent
    return Q(sender_id=user_id) | Q(recipient_id=user_id, draft=False)


def visible_q(user_id) -> Q:
    """Messages the user takes part in and has not trashed."""
    return party_q(user_id) & ~Q(pk__in=_tombstoned_ids(user_id))


def trashed_q(user_id) -> Q:
    return party_q(user_id) & Q(pk__in=_tombstoned_ids(user_id))


def visible_messages(user):
    return Message.objects.filter(visible_q(user.pk))


def is_deleted_by(message, user_id) -> bool:
    return MessageDeletion.objects.filter(message=message, user_id=user_id).exists()


def deleted_by_ids(message):
    return list(message.deletions.values_list("user_id", flat=True))


def add_tombstone(message, user_id) -> bool:
    """Trash `message` for `user_id`. Returns False when it was already trashed."""
    _, created = MessageDeletion.objects.get_or_create(message=message, user_id=user_id)
    return created


def remove_tombstone(message, user_id) -> bool:
    deleted, _ = MessageDeletion.objects.filter(message=message, user_id=user_id).delete()
    return bool(deleted)


def sweep_expired_trash(user_id=None, retention_days=30) -> int:
    """
    Hard-delete messages whose tombstone is older than the retention period.

    With `user_id` only that user's trash is swept.  Returns the number of
    messages removed.
    """
    cutoff = timezone.now() - timedelta(days=retention_days)
    tombstones = MessageDeletion.objects.filter(deleted_at__lt=cutoff)
    if user_id is not None:
        tombstones = tombstones.filter(user_id=user_id)

    expired_ids = list(tombstones.values_list("message_id", flat=True).distinct())
    if not expired_ids:
        return 0

    Message.objects.filter(pk__in=expired_ids).delete()
    logger.info("Swept %s expired trash messages (user=%s)", len(expired_ids), user_id)
    return len(expired_ids)
