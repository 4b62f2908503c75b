# messaging/services.py
"""
Message store and send flows.

Every write here is a single-row statement; nothing needs a transaction
spanning several messages.  A message is always persisted before its
attachments are processed or the recipient is notified, and neither of
those follow-ups can turn a successful send into a failure.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.contrib.auth import get_user_model
from django.db.models import Q

from listings.models import Ad
from users.models import display_name

from .attachments import uploader
from .exceptions import (
    ContentRequired,
    MessageNotFound,
    NotAParticipant,
    RecipientNotFound,
    SelfMessageNotAllowed,
)
from .folders import folder_queryset
from .models import Message
from .presence import presence
from .unread import invalidate_unread
from .visibility import visible_q

logger = logging.getLogger(__name__)

User = get_user_model()

DEFAULT_SUBJECT = "New message"
SUGGESTION_LIMIT = 5
SUGGESTION_MIN_CHARS = 2


# ============================================================
# ====================== Message store =======================
# ============================================================

def load_message(message_id, user) -> Message:
    """
    Fetch a message the user is a party to.

    Raises `MessageNotFound` when it does not exist and `NotAParticipant`
    when the user is neither its sender nor its recipient.  Someone
    else's draft is reported as missing.  Trashed messages are still
    returned; the trash folder needs them.
    """
    qs = Message.objects.select_related(
        "sender__profile", "recipient__profile", "related_ad"
    ).prefetch_related("attachments", "deletions")
    try:
        message = qs.get(pk=message_id)
    except (Message.DoesNotExist, ValueError, TypeError):
        raise MessageNotFound()
    if not message.is_party(user.pk):
        raise NotAParticipant()
    if message.draft and message.sender_id != user.pk:
        raise MessageNotFound()
    return message


def get_message(message_id, user) -> Message:
    """Load a message for display; the recipient's first read marks it read."""
    message = load_message(message_id, user)
    if message.recipient_id == user.pk and not message.read and not message.draft:
        flipped = Message.objects.filter(pk=message.pk, read=False).update(read=True)
        if flipped:
            invalidate_unread(user.pk)
        message.read = True
    return message


def create_message(**fields) -> Message:
    content = (fields.get("content") or "").strip()
    fields["content"] = content
    if not content and not fields.get("draft") and not fields.get("has_pending_attachments"):
        raise ContentRequired()
    message = Message.objects.create(**fields)
    invalidate_unread(message.sender_id, message.recipient_id)
    return message


def update_fields(message_id, **fields) -> int:
    updated = Message.objects.filter(pk=message_id).update(**fields)
    if not updated:
        raise MessageNotFound()
    return updated


# ============================================================
# ====================== Lookups =============================
# ============================================================

def resolve_recipient(identifier) -> User:
    """Find a user by numeric id, username or e-mail address."""
    ident = str(identifier if identifier is not None else "").strip()
    if not ident:
        raise RecipientNotFound()

    users = User.objects.filter(is_active=True)
    user = None
    if ident.isdigit():
        user = users.filter(pk=int(ident)).first()
    if user is None:
        user = users.filter(Q(username__iexact=ident) | Q(email__iexact=ident)).first()
    if user is None:
        raise RecipientNotFound()
    return user


def resolve_ad(ad_id) -> Optional[Ad]:
    if ad_id in (None, "", "no-ad"):
        return None
    try:
        return Ad.objects.select_related("owner").get(pk=int(ad_id))
    except (Ad.DoesNotExist, ValueError, TypeError):
        return None


# ============================================================
# ====================== Follow-ups ==========================
# ============================================================

def _queue_attachments(message, files):
    """Store raw files and hand thumbnailing to Celery. Never raises."""
    from .tasks import process_message_attachments

    staged = []
    try:
        staged = uploader.stage(files, message.sender_id, message.pk)
        process_message_attachments.delay(message.pk, staged)
    except Exception:
        logger.exception("Attachment upload failed for message %s", message.pk)
        uploader.discard(staged)
        Message.objects.filter(pk=message.pk).update(has_pending_attachments=False)


def _queue_notification(message):
    """Notify the recipient unless presence rules say otherwise. Never raises."""
    from .tasks import dispatch_new_message_notification

    if message.draft or message.sender_id == message.recipient_id:
        return
    try:
        if presence.should_suppress_notification(message.recipient_id, message.sender_id):
            return
    except Exception:
        logger.exception("Presence check failed for message %s", message.pk)
        return
    try:
        dispatch_new_message_notification.delay(message.pk)
    except Exception:
        logger.exception("Notification dispatch failed for message %s", message.pk)
        try:
            presence.release_notification_slot(message.recipient_id, message.sender_id)
        except Exception as exc:
            logger.warning("Could not release notification cooldown for message %s: %s", message.pk, exc)


def deliver(*, sender, recipient, subject, content, files=None, related_ad=None, allow_self=False):
    files = uploader.validate(files)
    content = (content or "").strip()
    if not content and not files:
        raise ContentRequired()
    if recipient.pk == sender.pk and not allow_self:
        raise SelfMessageNotAllowed()

    message = create_message(
        sender=sender,
        recipient=recipient,
        subject=(subject or "").strip() or DEFAULT_SUBJECT,
        content=content,
        related_ad=related_ad,
        has_pending_attachments=bool(files),
    )
    logger.info("Message %s sent %s -> %s", message.pk, sender.pk, recipient.pk)

    if files:
        _queue_attachments(message, files)
    _queue_notification(message)
    return message


# ============================================================
# ====================== Send flows ==========================
# ============================================================

def send_message(sender, recipient_identifier, subject="", content="", files=None, ad_id=None):
    """Send a message to a user given by id, username or e-mail."""
    recipient = resolve_recipient(recipient_identifier)
    return deliver(
        sender=sender, recipient=recipient, subject=subject, content=content,
        files=files, related_ad=resolve_ad(ad_id),
    )


def send_to_user(sender, user_id, subject="", content="", files=None):
    """Send from a user's public profile."""
    try:
        recipient = User.objects.get(pk=user_id, is_active=True)
    except (User.DoesNotExist, ValueError, TypeError):
        raise RecipientNotFound()
    subject = (subject or "").strip() or f"Message to {display_name(recipient)}"
    return deliver(sender=sender, recipient=recipient, subject=subject, content=content, files=files)


def send_to_ad(sender, ad_id, subject="", content="", files=None):
    """
    Message the owner of a listing.

    Owners may message their own ad, which is how they check the
    contact flow from the listing page.
    """
    ad = resolve_ad(ad_id)
    if ad is None:
        raise RecipientNotFound("Listing not found.")
    subject = (subject or "").strip() or f"Question about listing: {ad.title}"
    return deliver(
        sender=sender, recipient=ad.owner, subject=subject, content=content,
        files=files, related_ad=ad, allow_self=True,
    )


def reply_to_message(user, message_id, content="", files=None):
    """Answer a message; recipient and listing come from the original."""
    original = load_message(message_id, user)
    recipient = original.recipient if original.sender_id == user.pk else original.sender
    subject = original.subject or DEFAULT_SUBJECT
    if not subject.lower().startswith("re:"):
        subject = f"Re: {subject}"
    return deliver(
        sender=user, recipient=recipient, subject=subject, content=content,
        files=files, related_ad=original.related_ad,
    )


def save_draft(user, draft_id=None, recipient_identifier=None, subject="", content="", ad_id=None, files=None):
    """
    Create or update a draft.

    A draft without a resolvable recipient is addressed to its author
    until it is completed.
    """
    files = uploader.validate(files)

    recipient = user
    if recipient_identifier not in (None, ""):
        try:
            recipient = resolve_recipient(recipient_identifier)
        except RecipientNotFound:
            logger.debug("Draft recipient %r not found; keeping placeholder", recipient_identifier)

    fields = {
        "recipient": recipient,
        "subject": (subject or "").strip(),
        "content": (content or "").strip(),
        "related_ad": resolve_ad(ad_id),
    }

    if draft_id not in (None, ""):
        try:
            draft = Message.objects.get(pk=draft_id, sender=user, draft=True)
        except (Message.DoesNotExist, ValueError, TypeError):
            raise MessageNotFound("Draft not found.")
        for name, value in fields.items():
            setattr(draft, name, value)
        draft.has_pending_attachments = draft.has_pending_attachments or bool(files)
        draft.save(update_fields=[*fields, "has_pending_attachments", "updated_at"])
    else:
        draft = create_message(sender=user, draft=True, has_pending_attachments=bool(files), **fields)

    if files:
        _queue_attachments(draft, files)
    return draft


# ============================================================
# ====================== Search ==============================
# ============================================================

def search_messages(user, query, folder=None):
    """Case-insensitive subject/content match among the user's messages."""
    query = (query or "").strip()
    if folder:
        qs = folder_queryset(user, folder)
    else:
        qs = (
            Message.objects.filter(visible_q(user.pk))
            .select_related("sender__profile", "recipient__profile", "related_ad")
            .prefetch_related("attachments", "deletions")
            .order_by("-created_at", "-id")
        )
    if query:
        qs = qs.filter(Q(subject__icontains=query) | Q(content__icontains=query))
    return qs


def suggest_users(user, query):
    """Recipient autocomplete: at most five matches for two or more characters."""
    query = (query or "").strip()
    if len(query) < SUGGESTION_MIN_CHARS:
        return []
    return list(
        User.objects.filter(is_active=True)
        .exclude(pk=user.pk)
        .filter(
            Q(username__icontains=query)
            | Q(email__icontains=query)
            | Q(first_name__icontains=query)
            | Q(last_name__icontains=query)
            | Q(profile__full_name__icontains=query)
        )
        .select_related("profile")
        .distinct()
        .order_by("username")[:SUGGESTION_LIMIT]
    )
