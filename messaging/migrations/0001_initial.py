"""
Initial migration for the messaging app.

Defines messages, their image attachments and the per-user trash
tombstones, with the indexes the folder and unread queries rely on.
"""
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("listings", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Message",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("subject", models.CharField(blank=True, default="", max_length=255)),
                ("content", models.TextField(blank=True, default="")),
                ("read", models.BooleanField(default=False)),
                ("starred", models.BooleanField(default=False)),
                ("archived", models.BooleanField(default=False)),
                ("draft", models.BooleanField(default=False)),
                ("has_pending_attachments", models.BooleanField(default=False)),
                ("unsent", models.BooleanField(default=False)),
                ("unsent_at", models.DateTimeField(blank=True, null=True)),
                ("is_edited", models.BooleanField(default=False)),
                ("edited_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now, editable=False)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("recipient", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="received_messages",
                    to=settings.AUTH_USER_MODEL,
                )),
                ("related_ad", models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="messages",
                    to="listings.ad",
                )),
                ("sender", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="sent_messages",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["recipient", "read"], name="msg_recipient_read_idx"),
                    models.Index(fields=["sender", "draft"], name="msg_sender_draft_idx"),
                    models.Index(fields=["recipient", "sender", "created_at"], name="msg_pair_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="MessageAttachment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("position", models.PositiveSmallIntegerField(default=0)),
                ("name", models.CharField(max_length=255)),
                ("path", models.CharField(max_length=512)),
                ("thumbnail_path", models.CharField(blank=True, max_length=512)),
                ("size", models.PositiveIntegerField(default=0)),
                ("mime_type", models.CharField(max_length=100)),
                ("width", models.PositiveIntegerField(blank=True, null=True)),
                ("height", models.PositiveIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("message", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="attachments",
                    to="messaging.message",
                )),
            ],
            options={
                "ordering": ["position", "id"],
            },
        ),
        migrations.CreateModel(
            name="MessageDeletion",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("deleted_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("message", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="deletions",
                    to="messaging.message",
                )),
                ("user", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="message_deletions",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "indexes": [models.Index(fields=["user", "deleted_at"], name="msg_deletion_user_age_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("message", "user"), name="uniq_message_deletion_per_user"),
                ],
            },
        ),
    ]
