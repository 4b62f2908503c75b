"""
Tests for sending, replying, drafts, search and recipient suggestions.

Celery runs eagerly in the test settings, so attachment processing and
notification dispatch happen inside the request.
"""
from unittest import mock

import pytest
from django.core import mail
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile

from messaging import services
from messaging.attachments import AttachmentUploader
from messaging.exceptions import ServerFault
from messaging.models import Message, MessageAttachment
from messaging.tasks import dispatch_new_message_notification, process_message_attachments
from notifications.models import Notification


@pytest.mark.django_db
def test_send_by_username(auth_client, user, other_user):
    resp = auth_client.post(
        "/api/messages/send/",
        {"recipient": "u2", "subject": "", "content": "Hello!"},
        format="json",
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["recipient"]["id"] == other_user.pk
    assert body["subject"] == "New message"
    assert body["read"] is False
    assert body["attachments"] == []


@pytest.mark.django_db
def test_send_requires_content_or_attachment(auth_client, other_user):
    resp = auth_client.post("/api/messages/send/", {"recipient": "u2", "content": "  "}, format="json")
    assert resp.status_code == 400
    assert resp.json()["code"] == "content_required"
    assert Message.objects.count() == 0


@pytest.mark.django_db
def test_send_to_unknown_recipient(auth_client):
    resp = auth_client.post("/api/messages/send/", {"recipient": "nobody", "content": "hi"}, format="json")
    assert resp.status_code == 404
    assert resp.json()["code"] == "recipient_not_found"


@pytest.mark.django_db
def test_direct_self_send_is_rejected(auth_client, user):
    resp = auth_client.post("/api/messages/send/", {"recipient": "u1", "content": "me"}, format="json")
    assert resp.status_code == 400
    assert resp.json()["code"] == "self_message"


@pytest.mark.django_db
def test_send_with_image_attachment(auth_client, user, other_user, make_image):
    resp = auth_client.post(
        "/api/messages/send/",
        {"recipient": str(other_user.pk), "content": "", "attachments": [make_image()]},
        format="multipart",
    )
    assert resp.status_code == 201

    msg = Message.objects.get(pk=resp.json()["id"])
    assert msg.content == ""
    assert msg.has_pending_attachments is False
    att = MessageAttachment.objects.get(message=msg)
    assert att.mime_type == "image/png"
    assert (att.width, att.height) == (640, 480)
    assert default_storage.exists(att.path)
    assert default_storage.exists(att.thumbnail_path)


@pytest.mark.django_db
def test_rejects_non_image_and_too_many_files(auth_client, other_user, make_image):
    text = SimpleUploadedFile("notes.txt", b"hello", content_type="text/plain")
    resp = auth_client.post(
        "/api/messages/send/",
        {"recipient": "u2", "content": "see file", "attachments": [text]},
        format="multipart",
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_attachment"
    assert resp.json()["errors"]

    files = [make_image(name=f"p{i}.png") for i in range(6)]
    resp = auth_client.post(
        "/api/messages/send/",
        {"recipient": "u2", "content": "many", "attachments": files},
        format="multipart",
    )
    assert resp.status_code == 400
    assert Message.objects.count() == 0


@pytest.mark.django_db
def test_image_with_lying_content_type_is_rejected(auth_client, other_user):
    fake = SimpleUploadedFile("fake.jpg", b"definitely not a jpeg", content_type="image/jpeg")
    resp = auth_client.post(
        "/api/messages/send/",
        {"recipient": "u2", "content": "x", "attachments": [fake]},
        format="multipart",
    )
    assert resp.status_code == 400


@pytest.mark.django_db
def test_storage_failure_keeps_the_message(auth_client, other_user, make_image):
    with mock.patch("messaging.services.uploader.stage", side_effect=OSError("bucket unavailable")):
        resp = auth_client.post(
            "/api/messages/send/",
            {"recipient": "u2", "content": "with photo", "attachments": [make_image()]},
            format="multipart",
        )
    assert resp.status_code == 201
    msg = Message.objects.get(pk=resp.json()["id"])
    assert msg.content == "with photo"
    assert msg.has_pending_attachments is False
    assert msg.attachments.count() == 0


@pytest.mark.django_db
def test_processing_failure_keeps_the_message(auth_client, user, other_user, make_image):
    with mock.patch("messaging.tasks.uploader.process", side_effect=RuntimeError("pillow exploded")):
        resp = auth_client.post(
            "/api/messages/send/",
            {"recipient": "u2", "content": "photo", "attachments": [make_image()]},
            format="multipart",
        )
    assert resp.status_code == 201
    msg = Message.objects.get(pk=resp.json()["id"])
    assert msg.has_pending_attachments is False
    # the staged original is removed with nothing left to reference it
    assert default_storage.listdir(f"messages/{user.pk}/{msg.pk}") == ([], [])


@pytest.mark.django_db
def test_uploader_contract(user, other_user, make_image):
    msg = Message.objects.create(sender=user, recipient=other_user, content="", has_pending_attachments=True)
    records = services.uploader.upload([make_image(), make_image("b.jpg", "JPEG", "image/jpeg")], user, msg.pk)
    assert [r["position"] for r in records] == [0, 1]
    assert [r["mime_type"] for r in records] == ["image/png", "image/jpeg"]
    assert msg.attachments.count() == 2


@pytest.mark.django_db
def test_uploader_reports_storage_outage(user, other_user, make_image):
    msg = Message.objects.create(sender=user, recipient=other_user, content="", has_pending_attachments=True)
    broken = mock.Mock()
    broken.save.side_effect = OSError("bucket unavailable")
    with pytest.raises(ServerFault):
        AttachmentUploader(storage=broken).upload([make_image()], user, msg.pk)
    assert msg.attachments.count() == 0


@pytest.mark.django_db
def test_partial_staging_removes_saved_files(user, other_user, make_image):
    storage = mock.Mock()
    storage.save.side_effect = ["messages/1/2/abc-a.png", OSError("disk full")]
    with pytest.raises(OSError):
        AttachmentUploader(storage=storage).stage([make_image(), make_image("b.png")], 1, 2)
    storage.delete.assert_called_once_with("messages/1/2/abc-a.png")


@pytest.mark.django_db
def test_staged_files_removed_when_message_vanished(user, make_image):
    staged = services.uploader.stage([make_image()], user.pk, 999999)
    assert default_storage.exists(staged[0]["path"])

    assert process_message_attachments(999999, staged) == 0
    assert not default_storage.exists(staged[0]["path"])


@pytest.mark.django_db
def test_failed_enqueue_removes_staged_files(auth_client, user, other_user, make_image):
    with mock.patch.object(process_message_attachments, "delay", side_effect=RuntimeError("broker down")):
        resp = auth_client.post(
            "/api/messages/send/",
            {"recipient": "u2", "content": "photo", "attachments": [make_image()]},
            format="multipart",
        )
    assert resp.status_code == 201
    msg = Message.objects.get(pk=resp.json()["id"])
    assert msg.has_pending_attachments is False
    assert default_storage.listdir(f"messages/{user.pk}/{msg.pk}") == ([], [])


@pytest.mark.django_db
def test_notification_failure_does_not_fail_send(auth_client, other_user):
    with mock.patch(
        "notifications.services.NotificationDispatcher.notify_new_message",
        side_effect=RuntimeError("smtp down"),
    ):
        resp = auth_client.post("/api/messages/send/", {"recipient": "u2", "content": "hi"}, format="json")
    assert resp.status_code == 201


@pytest.mark.django_db
def test_failed_enqueue_releases_notification_cooldown(auth_client, user, other_user):
    with mock.patch.object(dispatch_new_message_notification, "delay", side_effect=RuntimeError("broker down")):
        resp = auth_client.post("/api/messages/send/", {"recipient": "u2", "content": "hi"}, format="json")
    assert resp.status_code == 201
    assert Notification.objects.count() == 0

    # the next message still gets through
    auth_client.post("/api/messages/send/", {"recipient": "u2", "content": "again"}, format="json")
    assert Notification.objects.filter(recipient=other_user).count() == 1


@pytest.mark.django_db
def test_send_notifies_recipient(auth_client, user, other_user):
    resp = auth_client.post("/api/messages/send/", {"recipient": "u2", "content": "Hi"}, format="json")
    assert resp.status_code == 201

    note = Notification.objects.get(recipient=other_user)
    assert note.kind == Notification.KIND_NEW_MESSAGE
    assert note.title == "New message from Una One"
    assert note.data["message_id"] == resp.json()["id"]
    assert len(mail.outbox) == 1
    assert mail.outbox[0].to == ["u2@example.com"]


@pytest.mark.django_db
def test_email_respects_opt_out(auth_client, other_user):
    other_user.profile.email_notifications = False
    other_user.profile.save()

    auth_client.post("/api/messages/send/", {"recipient": "u2", "content": "Hi"}, format="json")
    assert Notification.objects.filter(recipient=other_user).count() == 1
    assert mail.outbox == []


@pytest.mark.django_db
def test_send_to_user_defaults_subject(auth_client, other_user):
    resp = auth_client.post(f"/api/messages/send-to-user/{other_user.pk}/", {"content": "Hi"}, format="json")
    assert resp.status_code == 201
    assert resp.json()["subject"] == "Message to Tomas Two"

    resp = auth_client.post("/api/messages/send-to-user/999999/", {"content": "Hi"}, format="json")
    assert resp.status_code == 404


@pytest.mark.django_db
def test_send_to_ad_goes_to_owner(auth_client, user, other_user, ad):
    resp = auth_client.post(f"/api/messages/send-to-ad/{ad.pk}/", {"content": "Still for sale?"}, format="json")
    assert resp.status_code == 201
    body = resp.json()
    assert body["recipient"]["id"] == other_user.pk
    assert body["subject"] == "Question about listing: Audi A4 Avant"
    assert body["related_ad"]["id"] == ad.pk


@pytest.mark.django_db
def test_owner_may_message_own_ad(other_client, other_user, ad):
    resp = other_client.post(f"/api/messages/send-to-ad/{ad.pk}/", {"content": "test"}, format="json")
    assert resp.status_code == 201
    assert resp.json()["recipient"]["id"] == other_user.pk
    # no notification to oneself
    assert Notification.objects.count() == 0


@pytest.mark.django_db
def test_send_to_missing_ad(auth_client):
    resp = auth_client.post("/api/messages/send-to-ad/424242/", {"content": "hi"}, format="json")
    assert resp.status_code == 404


@pytest.mark.django_db
def test_reply_derives_recipient_subject_and_ad(other_client, user, other_user, ad, make_message):
    original = make_message(user, other_user, subject="Price?", related_ad=ad)

    resp = other_client.post(f"/api/messages/{original.pk}/reply/", {"content": "20k"}, format="json")
    assert resp.status_code == 201
    body = resp.json()
    assert body["recipient"]["id"] == user.pk
    assert body["subject"] == "Re: Price?"
    assert body["related_ad"]["id"] == ad.pk

    again = other_client.post(f"/api/messages/{body['id']}/reply/", {"content": "ok"}, format="json")
    assert again.json()["subject"] == "Re: Price?"


@pytest.mark.django_db
def test_reply_by_outsider_is_forbidden(api_client, user, other_user, third_user, make_message):
    original = make_message(user, other_user)
    api_client.force_authenticate(user=third_user)
    resp = api_client.post(f"/api/messages/{original.pk}/reply/", {"content": "hi"}, format="json")
    assert resp.status_code == 403


@pytest.mark.django_db
def test_draft_save_and_update(auth_client, user, other_user):
    resp = auth_client.post("/api/messages/drafts/", {"subject": "Draft", "content": ""}, format="json")
    assert resp.status_code == 201
    draft = resp.json()
    assert draft["draft"] is True
    # placeholder recipient until one is chosen
    assert draft["recipient"]["id"] == user.pk

    resp = auth_client.post(
        "/api/messages/drafts/",
        {"draft_id": draft["id"], "recipient": "u2", "subject": "Draft", "content": "more"},
        format="json",
    )
    assert resp.status_code == 200
    assert resp.json()["id"] == draft["id"]
    assert resp.json()["recipient"]["id"] == other_user.pk
    assert resp.json()["content"] == "more"

    drafts = auth_client.get("/api/messages/folders/drafts/").json()["results"]
    assert [d["id"] for d in drafts] == [draft["id"]]
    assert auth_client.get("/api/messages/folders/sent/").json()["results"] == []
    # drafts never notify
    assert Notification.objects.count() == 0


@pytest.mark.django_db
def test_draft_of_someone_else_is_not_found(auth_client, other_user, user, make_message):
    theirs = make_message(other_user, user, draft=True)
    resp = auth_client.post("/api/messages/drafts/", {"draft_id": theirs.pk, "content": "x"}, format="json")
    assert resp.status_code == 404


@pytest.mark.django_db
def test_search_matches_subject_and_content(auth_client, user, other_user, make_message):
    a = make_message(other_user, user, subject="Audi service history", content="attached")
    b = make_message(user, other_user, subject="Re: question", content="The AUDI has new tyres")
    make_message(other_user, user, subject="BMW", content="nothing relevant")

    resp = auth_client.get("/api/messages/search/?query=audi")
    assert resp.status_code == 200
    assert {m["id"] for m in resp.json()["results"]} == {a.pk, b.pk}

    resp = auth_client.get("/api/messages/search/?query=audi&folder=sent")
    assert [m["id"] for m in resp.json()["results"]] == [b.pk]

    assert auth_client.get("/api/messages/search/?query=audi&folder=bogus").status_code == 400


@pytest.mark.django_db
def test_user_suggestions(auth_client, user, other_user, third_user):
    assert auth_client.get("/api/messages/users/suggestions/?query=u").json() == []

    resp = auth_client.get("/api/messages/users/suggestions/?query=tomas")
    assert [u["id"] for u in resp.json()] == [other_user.pk]

    resp = auth_client.get("/api/messages/users/suggestions/?query=example.com")
    ids = [u["id"] for u in resp.json()]
    assert user.pk not in ids
    assert set(ids) == {other_user.pk, third_user.pk}
