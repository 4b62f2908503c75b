from rest_framework import serializers

from users.serializers import UserSummarySerializer

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    actor = UserSummarySerializer(read_only=True)

    class Meta:
        model = Notification
        fields = (
            "id", "kind", "title", "description",
            "is_read", "created_at", "actor", "data",
        )
        read_only_fields = fields
