"""
Common test fixtures for Django REST Framework API tests.

Provides users with profiles, a listing, authenticated API clients and
a small image factory for attachment uploads.  Caches are emptied
around every test so unread counts and presence keys never leak.
"""
import io

import pytest
from django.contrib.auth.models import User
from django.core.cache import caches
from django.core.files.uploadedfile import SimpleUploadedFile
from PIL import Image
from rest_framework.test import APIClient

from listings.models import Ad
from messaging.models import Message


@pytest.fixture(autouse=True)
def _clear_caches():
    caches["default"].clear()
    caches["unread_counts"].clear()
    yield
    caches["default"].clear()
    caches["unread_counts"].clear()


@pytest.fixture(autouse=True)
def _isolated_media_root(settings, tmp_path):
    """Give every test its own MEDIA_ROOT so stored files never leak between tests."""
    settings.MEDIA_ROOT = str(tmp_path / "media")


@pytest.fixture
def user(db):
    """Create a test user."""
    u = User.objects.create_user(username="u1", password="pass12345", email="u1@example.com")
    u.profile.full_name = "Una One"
    u.profile.save()
    return u


@pytest.fixture
def other_user(db):
    u = User.objects.create_user(username="u2", password="pass12345", email="u2@example.com")
    u.profile.full_name = "Tomas Two"
    u.profile.save()
    return u


@pytest.fixture
def third_user(db):
    return User.objects.create_user(username="u3", password="pass12345", email="u3@example.com")


@pytest.fixture
def ad(db, other_user):
    """A listing owned by `other_user`."""
    return Ad.objects.create(owner=other_user, headline="Audi A4 Avant", brand="Audi", model="A4")


@pytest.fixture
def second_ad(db, other_user):
    return Ad.objects.create(owner=other_user, brand="BMW", model="320d")


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def auth_client(user):
    """API client authenticated as `user`."""
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def other_client(other_user):
    client = APIClient()
    client.force_authenticate(user=other_user)
    return client


@pytest.fixture
def make_image():
    """Build an in-memory upload of a small real image."""

    def _make(name="photo.png", fmt="PNG", content_type="image/png", size=(640, 480)):
        buf = io.BytesIO()
        Image.new("RGB", size, color=(200, 30, 30)).save(buf, format=fmt)
        return SimpleUploadedFile(name, buf.getvalue(), content_type=content_type)

    return _make


@pytest.fixture
def make_message(db):
    """Create a message row directly, bypassing the send flow."""

    def _make(sender, recipient, content="Hello there", subject="Hi", **fields):
        return Message.objects.create(
            sender=sender, recipient=recipient, content=content, subject=subject, **fields
        )

    return _make
