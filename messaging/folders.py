"""
Folder queries.

A folder is a named view over the messages a user can see.  The set of
folders is closed; asking for anything else raises `InvalidFolder`
rather than silently returning every message.
"""
import logging

from django.db import models
from django.db.models import Q

from .conf import messaging_setting
from .exceptions import InvalidFolder
from .models import Message
from .visibility import party_q, sweep_expired_trash, trashed_q, visible_q

logger = logging.getLogger(__name__)


class Folder(models.TextChoices):
    INBOX = "inbox", "Inbox"
    SENT = "sent", "Sent"
    DRAFTS = "drafts", "Drafts"
    STARRED = "starred", "Starred"
    ARCHIVED = "archived", "Archived"
    TRASH = "trash", "Trash"


def parse_folder(value) -> Folder:
    try:
        return Folder((value or "").strip().lower())
    except ValueError:
        raise InvalidFolder(f"Unknown folder '{value}'.")


def folder_q(folder, user_id) -> Q:
    """Filter selecting `folder` for `user_id`."""
    folder = parse_folder(folder)

    if folder == Folder.TRASH:
        return trashed_q(user_id)

    if folder == Folder.INBOX:
        base = Q(recipient_id=user_id, draft=False)
    elif folder == Folder.SENT:
        base = Q(sender_id=user_id, draft=False)
    elif folder == Folder.DRAFTS:
        base = Q(sender_id=user_id, draft=True)
    elif folder == Folder.STARRED:
        base = party_q(user_id) & Q(starred=True)
    else:
        base = party_q(user_id) & Q(archived=True)
    return base & visible_q(user_id)


def folder_queryset(user, folder):
    """
    Messages in `folder` for `user`, newest first.

    Listing the trash first destroys the user's tombstoned messages that
    are past the retention period.
    """
    folder = parse_folder(folder)
    if folder == Folder.TRASH:
        sweep_expired_trash(user.pk, messaging_setting("TRASH_RETENTION_DAYS"))

    return (
        Message.objects.filter(folder_q(folder, user.pk))
        .select_related("sender__profile", "recipient__profile", "related_ad")
        .prefetch_related("attachments", "deletions")
        .order_by("-created_at", "-id")
    )
