"""
Tests for authentication and profiles in the users app.

Covers e-mail login via JWT, automatic profile creation and the
`display_name` helper used in message subjects and notifications.
"""
import pytest
from django.contrib.auth.models import User

from users.models import UserProfile, display_name


@pytest.mark.django_db
def test_login_with_email_returns_tokens(api_client, user):
    resp = api_client.post(
        "/api/auth/login/", {"email": "u1@example.com", "password": "pass12345"}, format="json"
    )
    assert resp.status_code == 200
    assert {"access", "refresh"} <= set(resp.json())


@pytest.mark.django_db
def test_login_with_wrong_password(api_client, user):
    resp = api_client.post(
        "/api/auth/login/", {"email": "u1@example.com", "password": "nope"}, format="json"
    )
    assert resp.status_code == 401


@pytest.mark.django_db
def test_bearer_token_authenticates_messaging_api(api_client, user):
    token = api_client.post(
        "/api/auth/token/", {"email": "u1@example.com", "password": "pass12345"}, format="json"
    ).json()["access"]

    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
    resp = api_client.get("/api/messages/unread-count/")
    assert resp.status_code == 200
    assert resp.json()["count"] == 0


@pytest.mark.django_db
def test_profile_created_with_user():
    u = User.objects.create_user(username="fresh", password="pass12345")
    assert UserProfile.objects.filter(user=u).count() == 1
    assert u.profile.email_notifications is True
    assert u.profile.is_online is False


@pytest.mark.django_db
def test_display_name_fallbacks(user):
    assert display_name(user) == "Una One"

    plain = User.objects.create_user(username="plain", first_name="Pat", last_name="Lee")
    assert display_name(plain) == "Pat Lee"

    bare = User.objects.create_user(username="bare")
    assert display_name(bare) == "bare"
    assert display_name(None) == ""
