"""
Tests for per-message flags and lifecycle transitions.
"""
from datetime import timedelta

import pytest
from django.utils import timezone

from messaging import flags
from messaging.exceptions import EditWindowExpired, MessageNotFound, NotAParticipant
from messaging.folders import folder_queryset
from messaging.models import Message, MessageDeletion


@pytest.mark.django_db
def test_mark_as_read_is_idempotent(auth_client, user, other_user, make_message):
    msg = make_message(other_user, user)

    first = auth_client.patch(f"/api/messages/{msg.pk}/read/")
    second = auth_client.patch(f"/api/messages/{msg.pk}/read/")
    assert first.status_code == second.status_code == 200
    assert first.json()["read"] is True
    assert second.json()["read"] is True
    msg.refresh_from_db()
    assert msg.read is True


@pytest.mark.django_db
def test_only_recipient_marks_read(user, other_user, make_message):
    msg = make_message(user, other_user)
    with pytest.raises(NotAParticipant):
        flags.mark_as_read(msg.pk, user)


@pytest.mark.django_db
def test_star_twice_restores_original_value(auth_client, user, other_user, make_message):
    msg = make_message(other_user, user)

    assert auth_client.patch(f"/api/messages/{msg.pk}/star/").json()["starred"] is True
    assert auth_client.patch(f"/api/messages/{msg.pk}/star/").json()["starred"] is False
    msg.refresh_from_db()
    assert msg.starred is False


@pytest.mark.django_db
def test_star_and_archive_are_shared_between_parties(user, other_user, make_message):
    msg = make_message(user, other_user)
    flags.toggle_star(msg.pk, other_user)
    flags.archive(msg.pk, user)

    assert msg in folder_queryset(user, "starred")
    assert msg in folder_queryset(other_user, "archived")

    flags.unarchive(msg.pk, other_user)
    assert folder_queryset(user, "archived").count() == 0


@pytest.mark.django_db
def test_flags_forbidden_for_outsiders(api_client, user, other_user, third_user, make_message):
    msg = make_message(user, other_user)
    api_client.force_authenticate(user=third_user)
    for flag in ("read", "star", "archive", "unarchive", "restore", "unsend"):
        assert api_client.patch(f"/api/messages/{msg.pk}/{flag}/").status_code == 403


@pytest.mark.django_db
def test_flag_on_missing_message(user):
    with pytest.raises(MessageNotFound):
        flags.toggle_star(31337, user)


@pytest.mark.django_db
def test_first_delete_trashes_for_caller_only(auth_client, user, other_user, make_message):
    msg = make_message(other_user, user)

    resp = auth_client.delete(f"/api/messages/{msg.pk}/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "trashed"

    assert msg in folder_queryset(user, "trash")
    assert msg in folder_queryset(other_user, "sent")
    assert MessageDeletion.objects.filter(message=msg).count() == 1


@pytest.mark.django_db
def test_second_delete_by_same_user_removes_for_everyone(auth_client, user, other_user, make_message):
    msg = make_message(other_user, user)

    auth_client.delete(f"/api/messages/{msg.pk}/")
    resp = auth_client.delete(f"/api/messages/{msg.pk}/")
    assert resp.json()["status"] == "deleted"
    assert not Message.objects.filter(pk=msg.pk).exists()


@pytest.mark.django_db
def test_both_parties_deleting_once_keeps_the_row(user, other_user, make_message):
    msg = make_message(other_user, user)
    assert flags.soft_delete(msg.pk, user) == flags.TRASHED
    assert flags.soft_delete(msg.pk, other_user) == flags.TRASHED
    assert Message.objects.filter(pk=msg.pk).exists()


@pytest.mark.django_db
def test_restore_removes_own_tombstone(auth_client, user, other_user, make_message):
    msg = make_message(other_user, user)
    flags.soft_delete(msg.pk, user)
    flags.soft_delete(msg.pk, other_user)

    resp = auth_client.patch(f"/api/messages/{msg.pk}/restore/")
    assert resp.status_code == 200
    assert resp.json()["deleted_by"] == [other_user.pk]
    assert msg in folder_queryset(user, "inbox")
    assert msg in folder_queryset(other_user, "trash")


@pytest.mark.django_db
def test_sender_can_edit_within_window(auth_client, user, other_user, make_message):
    msg = make_message(user, other_user, content="typo")

    resp = auth_client.put(f"/api/messages/{msg.pk}/", {"content": "fixed"}, format="json")
    assert resp.status_code == 200
    body = resp.json()
    assert body["content"] == "fixed"
    assert body["is_edited"] is True
    assert body["edited_at"]


@pytest.mark.django_db
def test_edit_rules(auth_client, user, other_user, make_message):
    theirs = make_message(other_user, user)
    assert auth_client.put(f"/api/messages/{theirs.pk}/", {"content": "x"}, format="json").status_code == 403

    mine = make_message(user, other_user)
    resp = auth_client.put(f"/api/messages/{mine.pk}/", {"content": "  "}, format="json")
    assert resp.status_code == 400

    stale = make_message(user, other_user, created_at=timezone.now() - timedelta(hours=25))
    with pytest.raises(EditWindowExpired):
        flags.edit_message(stale.pk, user, "too late")


@pytest.mark.django_db
def test_unsend_hides_content_from_both_sides(auth_client, other_client, user, other_user, make_message):
    msg = make_message(user, other_user, content="oops")

    assert other_client.patch(f"/api/messages/{msg.pk}/unsend/").status_code == 403

    resp = auth_client.patch(f"/api/messages/{msg.pk}/unsend/")
    assert resp.status_code == 200
    assert resp.json()["unsent"] is True
    assert resp.json()["unsent_at"]

    seen = other_client.get(f"/api/messages/{msg.pk}/").json()
    assert seen["content"] == ""
    assert seen["unsent"] is True

    with pytest.raises(EditWindowExpired):
        flags.edit_message(msg.pk, user, "again")
