# messaging/models.py
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


class Message(models.Model):
    """
    A directed private message between two users.

    Flags like `starred` and `archived` are shared by both parties;
    per-user trash state lives in `MessageDeletion` tombstones so one
    party deleting a message never hides it from the other.
    """

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="sent_messages"
    )
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="received_messages"
    )
    subject = models.CharField(max_length=255, blank=True, default="")
    content = models.TextField(blank=True, default="")
    related_ad = models.ForeignKey(
        "listings.Ad", null=True, blank=True,
        on_delete=models.SET_NULL, related_name="messages",
    )

    read = models.BooleanField(default=False)
    starred = models.BooleanField(default=False)
    archived = models.BooleanField(default=False)
    draft = models.BooleanField(default=False)

    # set while a deferred upload for this message is still running
    has_pending_attachments = models.BooleanField(default=False)

    unsent = models.BooleanField(default=False)
    unsent_at = models.DateTimeField(null=True, blank=True)
    is_edited = models.BooleanField(default=False)
    edited_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now, editable=False, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["recipient", "read"], name="msg_recipient_read_idx"),
            models.Index(fields=["sender", "draft"], name="msg_sender_draft_idx"),
            models.Index(fields=["recipient", "sender", "created_at"], name="msg_pair_created_idx"),
        ]

    # ---------- validation ----------
    def clean(self):
        super().clean()
        if not self.draft and not (self.content or "").strip():
            has_files = self.has_pending_attachments or (
                self.pk is not None and self.attachments.exists()
            )
            if not has_files:
                raise ValidationError({"content": "Content is required when there are no attachments."})

    # ---------- participants ----------
    def participants(self):
        return self.sender_id, self.recipient_id

    def is_party(self, user_id) -> bool:
        return user_id in (self.sender_id, self.recipient_id)

    def other_party_id(self, user_id):
        """Counterpart of `user_id`, or None when the user is not a party."""
        if self.sender_id == user_id:
            return self.recipient_id
        if self.recipient_id == user_id:
            return self.sender_id
        return None

    def __str__(self):
        return f"Message({self.pk}: {self.sender_id} -> {self.recipient_id})"


class MessageAttachment(models.Model):
    """An uploaded image attached to a message, with its thumbnail."""

    message = models.ForeignKey(Message, on_delete=models.CASCADE, related_name="attachments")
    position = models.PositiveSmallIntegerField(default=0)
    name = models.CharField(max_length=255)
    path = models.CharField(max_length=512)
    thumbnail_path = models.CharField(max_length=512, blank=True)
    size = models.PositiveIntegerField(default=0)
    mime_type = models.CharField(max_length=100)
    width = models.PositiveIntegerField(null=True, blank=True)
    height = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["position", "id"]

    def __str__(self):
        return f"Attachment({self.message_id}#{self.position}: {self.name})"


class MessageDeletion(models.Model):
    """Per-user soft-delete tombstone: the message sits in `user`'s trash."""

    message = models.ForeignKey(Message, on_delete=models.CASCADE, related_name="deletions")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="message_deletions"
    )
    deleted_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["message", "user"], name="uniq_message_deletion_per_user"),
        ]
        indexes = [
            models.Index(fields=["user", "deleted_at"], name="msg_deletion_user_age_idx"),
        ]

    def __str__(self):
        return f"MessageDeletion(message={self.message_id}, user={self.user_id})"
