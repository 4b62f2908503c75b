from __future__ import annotations

from rest_framework import serializers

from listings.models import Ad
from users.serializers import UserSummarySerializer

from .attachments import uploader
from .models import Message, MessageAttachment


class AdSummarySerializer(serializers.ModelSerializer):
    title = serializers.CharField(read_only=True)

    class Meta:
        model = Ad
        fields = ["id", "title", "brand", "model", "status", "owner"]
        read_only_fields = fields


class AttachmentSerializer(serializers.ModelSerializer):
    url = serializers.SerializerMethodField()
    thumbnail_url = serializers.SerializerMethodField()

    class Meta:
        model = MessageAttachment
        fields = ["id", "name", "url", "thumbnail_url", "size", "mime_type", "width", "height", "position"]
        read_only_fields = fields

    def _absolute(self, path):
        url = uploader.url(path)
        req = self.context.get("request")
        if req and url.startswith("/"):
            return req.build_absolute_uri(url)
        return url

    def get_url(self, obj):
        return self._absolute(obj.path)

    def get_thumbnail_url(self, obj):
        return self._absolute(obj.thumbnail_path)


class MessageSerializer(serializers.ModelSerializer):
    sender = UserSummarySerializer(read_only=True)
    recipient = UserSummarySerializer(read_only=True)
    related_ad = AdSummarySerializer(read_only=True)
    attachments = serializers.SerializerMethodField()
    content = serializers.SerializerMethodField()
    deleted_by = serializers.SerializerMethodField()

    class Meta:
        model = Message
        fields = [
            "id", "sender", "recipient", "subject", "content", "attachments",
            "read", "starred", "archived", "draft", "deleted_by", "related_ad",
            "unsent", "unsent_at", "is_edited", "edited_at",
            "has_pending_attachments", "created_at", "updated_at",
        ]
        read_only_fields = fields

    # An unsent message keeps its row but no longer shows what was said
    def get_content(self, obj):
        return "" if obj.unsent else obj.content

    def get_attachments(self, obj):
        if obj.unsent:
            return []
        return AttachmentSerializer(obj.attachments.all(), many=True, context=self.context).data

    def get_deleted_by(self, obj):
        return [d.user_id for d in obj.deletions.all()]


# ---------- request bodies ----------

class ComposeSerializer(serializers.Serializer):
    subject = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")
    content = serializers.CharField(required=False, allow_blank=True, trim_whitespace=True, default="")


class SendMessageSerializer(ComposeSerializer):
    recipient = serializers.CharField(help_text="User id, username or e-mail")
    ad_id = serializers.IntegerField(required=False, allow_null=True)


class ConversationReplySerializer(serializers.Serializer):
    content = serializers.CharField(required=False, allow_blank=True, default="")
    ad_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class DraftSerializer(ComposeSerializer):
    draft_id = serializers.IntegerField(required=False, allow_null=True)
    recipient = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    ad_id = serializers.IntegerField(required=False, allow_null=True)


class EditMessageSerializer(serializers.Serializer):
    content = serializers.CharField(allow_blank=True)
    subject = serializers.CharField(required=False, allow_blank=True, max_length=255)


# ---------- conversations ----------

class ConversationSerializer(serializers.Serializer):
    conversation_id = serializers.CharField()
    other_party = UserSummarySerializer()
    last_message = MessageSerializer()
    unread_count = serializers.IntegerField()
    ad_info = AdSummarySerializer(source="ad", allow_null=True)


class ThreadSerializer(serializers.Serializer):
    other_user = UserSummarySerializer()
    messages = MessageSerializer(many=True)
    pagination = serializers.DictField()
    ad_info = AdSummarySerializer(allow_null=True)


class UnreadCountSerializer(serializers.Serializer):
    count = serializers.IntegerField()
    stale = serializers.BooleanField()
    error = serializers.CharField(required=False)
