"""
Models for the users app.

A `UserProfile` model extends the built-in `auth.User` with the fields
the marketplace shows next to a message: a display name, an avatar and
the last time the user was seen.  The profile is created automatically
via signals when a new user instance is saved.
"""
from datetime import timedelta
import os
import uuid

from django.contrib.auth.models import User
from django.db import models
from django.utils import timezone
from django.utils.text import slugify


def user_profile_image(instance, filename):
    name, ext = os.path.splitext(filename or "")
    base = slugify(name) or "avatar"
    return f"avatars/{base}-{uuid.uuid4().hex[:8]}{ext.lower()}"


class UserProfile(models.Model):
    """Extension of Django's built-in User model."""

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="profile")
    full_name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    user_image = models.ImageField(upload_to=user_profile_image, blank=True, null=True)
    # Opt-out for new-message e-mails
    email_notifications = models.BooleanField(default=True)
    last_activity_at = models.DateTimeField(null=True, blank=True)
    # Online if active within last N minutes
    ONLINE_THRESHOLD = timedelta(minutes=2)

    @property
    def is_online(self):
        """
        True if user was active within the last ONLINE_THRESHOLD.
        """
        if not self.last_activity_at:
            return False
        return timezone.now() - self.last_activity_at <= self.ONLINE_THRESHOLD

    def __str__(self) -> str:
        return f"Profile<{self.user.username}>"

    class Meta:
        indexes = [
            models.Index(fields=["last_activity_at"], name="users_prof_last_activity_idx"),
        ]


def display_name(user) -> str:
    """Best human label for a user: profile name, full name, username or e-mail."""
    if user is None:
        return ""
    prof = getattr(user, "profile", None) if _has_profile(user) else None
    return (
        (getattr(prof, "full_name", "") or "").strip()
        or user.get_full_name()
        or user.username
        or user.email
        or f"User {user.pk}"
    )


def _has_profile(user) -> bool:
    try:
        return user.profile is not None
    except UserProfile.DoesNotExist:
        return False
