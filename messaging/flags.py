"""
Flag and lifecycle operations on single messages.

Each operation checks that the caller is a party to the message, applies
one conditional UPDATE (or tombstone write) and drops the unread badge
cache of both parties.
"""
import logging
from datetime import timedelta

from django.db.models import Case, Value, When
from django.utils import timezone

from .conf import messaging_setting
from .exceptions import ContentRequired, EditWindowExpired, NotAParticipant
from .models import Message
from .services import load_message
from .unread import invalidate_unread
from .visibility import add_tombstone, remove_tombstone

logger = logging.getLogger(__name__)

TRASHED = "trashed"
DELETED = "deleted"


def _touched(message):
    invalidate_unread(message.sender_id, message.recipient_id)


def mark_as_read(message_id, user) -> Message:
    message = load_message(message_id, user)
    if message.recipient_id != user.pk:
        raise NotAParticipant("Only the recipient can mark a message as read.")
    if Message.objects.filter(pk=message.pk, read=False).update(read=True):
        _touched(message)
    message.read = True
    return message


def toggle_star(message_id, user) -> Message:
    message = load_message(message_id, user)
    Message.objects.filter(pk=message.pk).update(
        starred=Case(When(starred=True, then=Value(False)), default=Value(True)),
        updated_at=timezone.now(),
    )
    message.refresh_from_db(fields=["starred", "updated_at"])
    _touched(message)
    return message


def _set_archived(message_id, user, archived) -> Message:
    message = load_message(message_id, user)
    Message.objects.filter(pk=message.pk).update(archived=archived, updated_at=timezone.now())
    message.archived = archived
    _touched(message)
    return message


def archive(message_id, user) -> Message:
    return _set_archived(message_id, user, True)


def unarchive(message_id, user) -> Message:
    return _set_archived(message_id, user, False)


def hard_delete(message) -> None:
    """Remove the message for everyone; stored files go with its attachments."""
    sender_id, recipient_id = message.sender_id, message.recipient_id
    pk = message.pk
    message.delete()
    invalidate_unread(sender_id, recipient_id)
    logger.info("Message %s permanently deleted", pk)


def soft_delete(message_id, user) -> str:
    """
    Move a message to the user's trash.

    Deleting a message that is already in the user's trash removes it
    for both parties.  Returns ``"trashed"`` or ``"deleted"``.
    """
    message = load_message(message_id, user)
    if add_tombstone(message, user.pk):
        _touched(message)
        return TRASHED
    hard_delete(message)
    return DELETED


def restore(message_id, user) -> Message:
    message = load_message(message_id, user)
    if remove_tombstone(message, user.pk):
        _touched(message)
    return load_message(message_id, user)


def edit_message(message_id, user, content, subject=None) -> Message:
    message = load_message(message_id, user)
    if message.sender_id != user.pk:
        raise NotAParticipant("Only the sender can edit a message.")

    content = (content or "").strip()
    if not content:
        raise ContentRequired()
    if message.unsent:
        raise EditWindowExpired("An unsent message cannot be edited.")

    window = timedelta(hours=messaging_setting("EDIT_WINDOW_HOURS"))
    if timezone.now() - message.created_at > window:
        raise EditWindowExpired()

    now = timezone.now()
    fields = {"content": content, "is_edited": True, "edited_at": now, "updated_at": now}
    if subject is not None and subject.strip():
        fields["subject"] = subject.strip()
    Message.objects.filter(pk=message.pk).update(**fields)
    return load_message(message_id, user)


def unsend_message(message_id, user) -> Message:
    message = load_message(message_id, user)
    if message.sender_id != user.pk:
        raise NotAParticipant("Only the sender can unsend a message.")
    now = timezone.now()
    Message.objects.filter(pk=message.pk, unsent=False).update(
        unsent=True, unsent_at=now, updated_at=now
    )
    _touched(message)
    return load_message(message_id, user)
