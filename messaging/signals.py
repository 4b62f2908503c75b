"""
Signal handlers for the messaging app.

Stored attachment files are removed once their row is gone, whichever
path deleted it (hard delete, trash sweep, user removal).
"""
import logging

from django.db import transaction
from django.db.models.signals import post_delete
from django.dispatch import receiver

from .attachments import uploader
from .models import MessageAttachment

logger = logging.getLogger(__name__)


@receiver(post_delete, sender=MessageAttachment)
def remove_attachment_files(sender, instance: MessageAttachment, **kwargs) -> None:
    paths = [instance.path, instance.thumbnail_path]
    transaction.on_commit(lambda: uploader.delete_files(paths))
