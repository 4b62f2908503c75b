"""
Tests for loading single messages and the visibility rules around them.
"""
import pytest

from messaging import services
from messaging.exceptions import ContentRequired, MessageNotFound, NotAParticipant
from messaging.models import Message, MessageDeletion


@pytest.mark.django_db
def test_create_requires_content_without_attachments(user, other_user):
    with pytest.raises(ContentRequired):
        services.create_message(sender=user, recipient=other_user, content="   ")
    assert Message.objects.count() == 0


@pytest.mark.django_db
def test_create_allows_empty_content_with_pending_attachments(user, other_user):
    msg = services.create_message(
        sender=user, recipient=other_user, content="", has_pending_attachments=True
    )
    assert msg.pk is not None
    assert msg.read is False and msg.starred is False and msg.archived is False


@pytest.mark.django_db
def test_recipient_get_marks_read(auth_client, user, other_user, make_message):
    msg = make_message(other_user, user)

    resp = auth_client.get(f"/api/messages/{msg.pk}/")
    assert resp.status_code == 200
    body = resp.json()
    assert body["read"] is True
    assert body["sender"]["id"] == other_user.pk
    assert body["deleted_by"] == []

    msg.refresh_from_db()
    assert msg.read is True


@pytest.mark.django_db
def test_sender_get_does_not_mark_read(auth_client, user, other_user, make_message):
    msg = make_message(user, other_user)
    resp = auth_client.get(f"/api/messages/{msg.pk}/")
    assert resp.status_code == 200
    msg.refresh_from_db()
    assert msg.read is False


@pytest.mark.django_db
def test_non_party_is_forbidden(api_client, user, other_user, third_user, make_message):
    msg = make_message(user, other_user)
    api_client.force_authenticate(user=third_user)

    resp = api_client.get(f"/api/messages/{msg.pk}/")
    assert resp.status_code == 403
    assert resp.json()["code"] == "forbidden"

    with pytest.raises(NotAParticipant):
        services.get_message(msg.pk, third_user)


@pytest.mark.django_db
def test_missing_message_is_not_found(auth_client, user):
    resp = auth_client.get("/api/messages/999999/")
    assert resp.status_code == 404

    with pytest.raises(MessageNotFound):
        services.load_message(999999, user)


@pytest.mark.django_db
def test_anonymous_requests_are_rejected(api_client, user, other_user, make_message):
    msg = make_message(user, other_user)
    resp = api_client.get(f"/api/messages/{msg.pk}/")
    assert resp.status_code == 401


@pytest.mark.django_db
def test_trashed_message_still_loads_for_owner(user, other_user, make_message):
    msg = make_message(other_user, user)
    MessageDeletion.objects.create(message=msg, user=user)
    loaded = services.load_message(msg.pk, user)
    assert loaded.pk == msg.pk


@pytest.mark.django_db
def test_update_fields_on_missing_message(user):
    with pytest.raises(MessageNotFound):
        services.update_fields(424242, starred=True)


@pytest.mark.django_db
def test_resolve_recipient_by_id_username_and_email(other_user):
    assert services.resolve_recipient(other_user.pk) == other_user
    assert services.resolve_recipient("U2") == other_user
    assert services.resolve_recipient("u2@EXAMPLE.com") == other_user
