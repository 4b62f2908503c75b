"""
Initial migration for the users app.

Defines the `UserProfile` model that carries the display name, avatar
and last-activity timestamp used by messaging presence checks.
"""
from django.db import migrations, models
import django.db.models.deletion
from django.conf import settings

import users.models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="UserProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("full_name", models.CharField(blank=True, max_length=255)),
                ("phone", models.CharField(blank=True, max_length=32)),
                ("user_image", models.ImageField(blank=True, null=True, upload_to=users.models.user_profile_image)),
                ("email_notifications", models.BooleanField(default=True)),
                ("last_activity_at", models.DateTimeField(blank=True, null=True)),
                ("user", models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="profile",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "indexes": [models.Index(fields=["last_activity_at"], name="users_prof_last_activity_idx")],
            },
        ),
    ]
