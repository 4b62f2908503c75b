"""
Conversation view over the flat message log.

A conversation is every visible, non-draft message between the user and
one counterpart about one listing (or about no listing).  Its key is
``"<other user id>:<ad id or 'no-ad'>"``.  Rows are rebuilt on every
request by folding the user's messages; nothing about a conversation is
stored.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Optional

from django.contrib.auth import get_user_model
from django.db.models import Q
from django.utils import timezone

from .exceptions import ConversationNotFound
from .models import Message, MessageDeletion
from .presence import presence
from .services import DEFAULT_SUBJECT, deliver, resolve_ad
from .unread import invalidate_unread
from .visibility import party_q, visible_q

logger = logging.getLogger(__name__)

User = get_user_model()

NO_AD = "no-ad"

ACTIONS = ("read", "star", "archive", "unarchive", "trash", "restore")


def conversation_key(other_id, ad_id) -> str:
    return f"{other_id}:{ad_id if ad_id is not None else NO_AD}"


def _sort_key(message):
    return (message.created_at, message.pk)


@dataclass
class ConversationRow:
    conversation_id: str
    other_party: object
    last_message: Optional[Message] = None
    unread_count: int = 0
    ad: object = None
    _ad_seen: tuple = field(default=None, repr=False)

    def absorb(self, message, user_id):
        if self.last_message is None or _sort_key(message) > _sort_key(self.last_message):
            self.last_message = message

        if message.related_ad_id is not None:
            if self._ad_seen is None or _sort_key(message) > self._ad_seen:
                self.ad = message.related_ad
                self._ad_seen = _sort_key(message)

        if (
            message.recipient_id == user_id
            and message.sender_id == self.other_party.pk
            and not message.read
            and not message.unsent
        ):
            self.unread_count += 1


def aggregate_conversations(messages, user_id) -> list:
    """
    Fold messages into one row per conversation key, newest first.

    The result depends only on the set of messages, not on their order.
    Messages to oneself and messages whose counterpart cannot be resolved
    are skipped.
    """
    rows = {}
    for message in messages:
        other_id = message.other_party_id(user_id)
        if other_id is None or other_id == user_id:
            logger.debug("Skipping message %s in conversations of %s", message.pk, user_id)
            continue
        other = message.recipient if message.sender_id == user_id else message.sender
        if other is None:
            logger.debug("Counterpart of message %s is missing", message.pk)
            continue

        key = conversation_key(other_id, message.related_ad_id)
        row = rows.get(key)
        if row is None:
            row = rows[key] = ConversationRow(conversation_id=key, other_party=other)
        row.absorb(message, user_id)

    return sorted(
        rows.values(),
        key=lambda r: (_sort_key(r.last_message), r.conversation_id),
        reverse=True,
    )


def list_conversations(user) -> list:
    messages = (
        Message.objects.filter(visible_q(user.pk), draft=False)
        .select_related("sender__profile", "recipient__profile", "related_ad")
        .prefetch_related("attachments")
    )
    return aggregate_conversations(messages, user.pk)


# ============================================================
# ====================== Threads =============================
# ============================================================

def _other_user(other_user_id):
    try:
        return User.objects.select_related("profile").get(pk=other_user_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise ConversationNotFound()


def _pair_q(user_id, other_id) -> Q:
    return Q(sender_id=user_id, recipient_id=other_id) | Q(sender_id=other_id, recipient_id=user_id)


def _ad_q(ad) -> Q:
    if ad in (None, ""):
        return Q()
    if ad == NO_AD:
        return Q(related_ad__isnull=True)
    try:
        return Q(related_ad_id=int(ad))
    except (TypeError, ValueError):
        raise ConversationNotFound("Unknown listing in conversation.")


def thread_queryset(user, other_id, ad=None):
    return Message.objects.filter(
        visible_q(user.pk), _pair_q(user.pk, other_id), _ad_q(ad), draft=False
    )


def mark_thread_read(user, other_id, ad=None) -> int:
    marked = thread_queryset(user, other_id, ad).filter(
        sender_id=other_id, recipient_id=user.pk, read=False
    ).update(read=True)
    if marked:
        invalidate_unread(user.pk)
    return marked


def get_conversation_thread(user, other_user_id, ad=None, page=1, limit=50) -> dict:
    """
    One page of the thread with `other_user_id`, oldest to newest.

    Opening a thread reads it: the counterpart's unread messages are
    marked read and the user counts as active in the conversation, which
    holds back new-message notifications from that counterpart.
    """
    other = _other_user(other_user_id)
    page = max(int(page or 1), 1)
    limit = min(max(int(limit or 50), 1), 100)

    qs = (
        thread_queryset(user, other.pk, ad)
        .select_related("sender__profile", "recipient__profile", "related_ad")
        .prefetch_related("attachments", "deletions")
        .order_by("-created_at", "-id")
    )
    total = qs.count()
    start = (page - 1) * limit
    messages = list(qs[start:start + limit])
    messages.reverse()

    mark_thread_read(user, other.pk, ad)
    for message in messages:
        if message.recipient_id == user.pk:
            message.read = True
    presence.mark_active_in_conversation(user.pk, other.pk)

    ad_info = resolve_ad(ad) if ad not in (None, "", NO_AD) else None
    if ad_info is None and ad != NO_AD:
        latest_with_ad = qs.filter(related_ad__isnull=False).first()
        ad_info = latest_with_ad.related_ad if latest_with_ad else None

    pages = math.ceil(total / limit) if total else 0
    return {
        "other_user": other,
        "messages": messages,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": pages,
            "has_next": page < pages,
        },
        "ad_info": ad_info,
    }


def reply_in_conversation(user, other_user_id, content="", ad=None, files=None) -> Message:
    other = _other_user(other_user_id)
    last = thread_queryset(user, other.pk, ad).order_by("-created_at", "-id").first()

    related_ad = resolve_ad(ad) if ad not in (None, "", NO_AD) else None
    if related_ad is None and ad != NO_AD and last is not None:
        related_ad = last.related_ad

    subject = (last.subject if last else "") or DEFAULT_SUBJECT
    if not subject.lower().startswith("re:"):
        subject = f"Re: {subject}"

    return deliver(
        sender=user, recipient=other, subject=subject, content=content,
        files=files, related_ad=related_ad,
    )


# ============================================================
# ====================== Bulk moves ==========================
# ============================================================

def conversation_action(user, other_user_id, action, ad=None) -> int:
    """
    Apply `action` to every message of a conversation.

    Returns the number of messages affected.  `restore` also brings back
    messages the user trashed, so it looks at trashed messages too.
    """
    if action not in ACTIONS:
        raise ConversationNotFound(f"Unknown conversation action '{action}'.")
    other = _other_user(other_user_id)

    scope = party_q(user.pk) if action == "restore" else visible_q(user.pk)
    qs = Message.objects.filter(scope, _pair_q(user.pk, other.pk), _ad_q(ad), draft=False)
    ids = list(qs.values_list("pk", flat=True))
    if not ids:
        raise ConversationNotFound()

    now = timezone.now()
    batch = Message.objects.filter(pk__in=ids)
    if action == "read":
        affected = batch.filter(sender_id=other.pk, recipient_id=user.pk, read=False).update(read=True)
    elif action == "star":
        affected = batch.update(starred=True, updated_at=now)
    elif action == "archive":
        affected = batch.update(archived=True, updated_at=now)
    elif action == "unarchive":
        affected = batch.update(archived=False, updated_at=now)
    elif action == "trash":
        MessageDeletion.objects.bulk_create(
            [MessageDeletion(message_id=pk, user=user, deleted_at=now) for pk in ids],
            ignore_conflicts=True,
        )
        affected = len(ids)
    else:
        MessageDeletion.objects.filter(user=user, message_id__in=ids).delete()
        affected = batch.update(archived=False, updated_at=now)

    invalidate_unread(user.pk, other.pk)
    logger.info("Conversation %s by %s: %s messages", action, user.pk, affected)
    return affected
