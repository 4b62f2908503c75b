"""
Image attachments for messages.

Files are checked up front (count, size, declared and decoded type),
written to Django's default storage right away, and turned into
`MessageAttachment` rows with thumbnails afterwards, normally from the
`process_message_attachments` Celery task.
"""
import io
import logging
import os
import uuid

from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.db import transaction
from django.utils.text import get_valid_filename
from PIL import Image, UnidentifiedImageError

from .conf import messaging_setting
from .exceptions import InvalidAttachment, ServerFault
from .models import Message, MessageAttachment

logger = logging.getLogger(__name__)


def _safe_name(name):
    base = os.path.basename(name or "") or "image"
    return get_valid_filename(base)[:200] or "image"


class AttachmentUploader:
    """Validates, stores and thumbnails message images."""

    def __init__(self, storage=None):
        self.storage = storage or default_storage

    # ---------- validation ----------
    def validate(self, files):
        files = list(files or [])
        max_files = messaging_setting("MAX_ATTACHMENTS")
        max_bytes = messaging_setting("MAX_ATTACHMENT_BYTES")
        allowed = set(messaging_setting("ALLOWED_ATTACHMENT_TYPES"))

        if len(files) > max_files:
            raise InvalidAttachment(f"At most {max_files} attachments are allowed.")

        errors = []
        for f in files:
            name = getattr(f, "name", "") or "file"
            content_type = (getattr(f, "content_type", "") or "").lower()
            if f.size > max_bytes:
                errors.append(f"{name}: larger than {max_bytes // (1024 * 1024)} MB.")
                continue
            if content_type not in allowed:
                errors.append(f"{name}: unsupported type '{content_type or 'unknown'}'.")
                continue
            detected = self._detect_mime(f)
            if detected not in allowed:
                errors.append(f"{name}: not a valid image.")

        if errors:
            raise InvalidAttachment("Invalid attachment.", errors=errors)
        return files

    @staticmethod
    def _detect_mime(f):
        try:
            f.seek(0)
            with Image.open(f) as img:
                fmt = img.format
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError):
            return None
        finally:
            f.seek(0)
        return Image.MIME.get(fmt)

    # ---------- storage ----------
    def _prefix(self, owner_id, message_id):
        return f"messages/{owner_id}/{message_id}"

    def stage(self, files, owner_id, message_id):
        """Write raw files to storage; returns descriptors for `process`."""
        staged = []
        prefix = self._prefix(owner_id, message_id)
        try:
            for position, f in enumerate(files):
                name = _safe_name(f.name)
                f.seek(0)
                path = self.storage.save(f"{prefix}/{uuid.uuid4().hex[:12]}-{name}", f)
                staged.append({
                    "name": name,
                    "path": path,
                    "size": f.size,
                    "mime_type": (f.content_type or "").lower(),
                    "position": position,
                })
        except Exception:
            self.discard(staged)
            raise
        return staged

    def _make_thumbnail(self, path):
        size = tuple(messaging_setting("THUMBNAIL_SIZE"))
        with self.storage.open(path, "rb") as fh:
            with Image.open(fh) as img:
                img.load()
                width, height = img.size
                thumb = img.convert("RGB") if img.mode not in ("RGB", "L") else img.copy()
                thumb.thumbnail(size)

        buf = io.BytesIO()
        thumb.save(buf, format="JPEG", quality=85)
        head, tail = os.path.split(path)
        stem = os.path.splitext(tail)[0]
        thumb_path = self.storage.save(f"{head}/thumbs/{stem}.jpg", ContentFile(buf.getvalue()))
        return thumb_path, width, height

    def process(self, message_id, staged):
        """
        Build thumbnails for staged files and attach them to the message.

        Returns the attachment descriptors that were recorded.
        """
        records = []
        for item in staged:
            try:
                thumb_path, width, height = self._make_thumbnail(item["path"])
            except (UnidentifiedImageError, OSError) as exc:
                logger.warning("Thumbnail failed for %s on message %s: %s", item["path"], message_id, exc)
                thumb_path, width, height = "", None, None
            records.append({**item, "thumbnail_path": thumb_path, "width": width, "height": height})

        try:
            with transaction.atomic():
                MessageAttachment.objects.bulk_create(
                    [MessageAttachment(message_id=message_id, **rec) for rec in records]
                )
                Message.objects.filter(pk=message_id).update(has_pending_attachments=False)
        except Exception:
            self.delete_files([rec["thumbnail_path"] for rec in records])
            raise
        return records

    def upload(self, files, owner, message_id):
        """Validate, store and record `files` for the message in one go."""
        files = self.validate(files)
        if not files:
            return []
        try:
            staged = self.stage(files, owner.pk, message_id)
        except OSError as exc:
            logger.error("Attachment storage failed for message %s: %s", message_id, exc)
            raise ServerFault("Attachment storage is unavailable.") from exc
        try:
            return self.process(message_id, staged)
        except Exception:
            self.discard(staged)
            raise

    def url(self, path):
        if not path:
            return ""
        return self.storage.url(path)

    def delete_files(self, paths):
        for path in paths:
            if not path:
                continue
            try:
                self.storage.delete(path)
            except OSError as exc:
                logger.warning("Could not delete stored attachment %s: %s", path, exc)

    def discard(self, staged):
        """Remove staged files that never became attachment rows."""
        self.delete_files([item["path"] for item in staged or []])


uploader = AttachmentUploader()
