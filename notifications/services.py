"""
Delivery of new-message notifications.

A notification is stored in-app, e-mailed when the recipient opted in
and pushed to their ``user_<id>`` channel group.  Each channel is tried
independently; a failure in one is logged and never reaches the caller.
"""
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string

from .models import Notification

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 140


def user_group(user_id) -> str:
    return f"user_{user_id}"


def push_to_user(user_id, msg_type, data) -> bool:
    """Send an event to every socket the user has open."""
    try:
        channel_layer = get_channel_layer()
        if channel_layer is None:
            return False
        async_to_sync(channel_layer.group_send)(
            user_group(user_id),
            {"type": msg_type, "data": data},
        )
        return True
    except Exception as e:
        logger.error("Failed to push %s to %s: %s", msg_type, user_group(user_id), e)
        return False


def _wants_email(user) -> bool:
    if not user.email:
        return False
    profile = getattr(user, "profile", None)
    return bool(getattr(profile, "email_notifications", True))


class NotificationDispatcher:
    """Creates, e-mails and pushes notifications about new messages."""

    def notify_new_message(self, recipient, sender_name, ad_title=None, message=None) -> bool:
        """
        Tell `recipient` that `sender_name` wrote to them.

        Returns True when the in-app notification was stored.  Never raises.
        """
        if ad_title:
            title = f"New message from {sender_name} about {ad_title}"
        else:
            title = f"New message from {sender_name}"
        preview = ""
        data = {}
        if message is not None:
            preview = (message.content or "")[:PREVIEW_CHARS]
            data = {
                "message_id": message.pk,
                "sender_id": message.sender_id,
                "ad_id": message.related_ad_id,
                "subject": message.subject,
            }

        try:
            notification = Notification.objects.create(
                recipient=recipient,
                actor_id=data.get("sender_id"),
                kind=Notification.KIND_NEW_MESSAGE,
                title=title,
                description=preview,
                data=data,
            )
        except Exception:
            logger.exception("Could not store new-message notification for user %s", recipient.pk)
            return False

        self._email(recipient, title, sender_name, ad_title, preview)
        push_to_user(
            recipient.pk,
            "notification.created",
            {
                "id": notification.pk,
                "kind": notification.kind,
                "title": notification.title,
                "description": notification.description,
                "data": notification.data,
                "created_at": notification.created_at.isoformat(),
            },
        )
        return True

    def _email(self, recipient, title, sender_name, ad_title, preview) -> bool:
        if not _wants_email(recipient):
            return False
        ctx = {
            "title": title,
            "sender_name": sender_name,
            "ad_title": ad_title,
            "preview": preview,
            "messages_url": f"{settings.FRONTEND_URL.rstrip('/')}/messages",
        }
        try:
            text_body = render_to_string("notifications/emails/new_message.txt", ctx)
            html_body = render_to_string("notifications/emails/new_message.html", ctx)
            send_mail(
                subject=title,
                message=text_body,
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[recipient.email],
                html_message=html_body,
                fail_silently=False,
            )
            logger.info("New-message e-mail sent to user %s", recipient.pk)
            return True
        except Exception as e:
            logger.warning("New-message e-mail to user %s failed: %s", recipient.pk, e)
            return False
