# messaging/admin.py
from django.contrib import admin

from .models import Message, MessageAttachment, MessageDeletion


class MessageAttachmentInline(admin.TabularInline):
    model = MessageAttachment
    extra = 0
    readonly_fields = ("name", "path", "thumbnail_path", "size", "mime_type", "width", "height", "position")


class MessageDeletionInline(admin.TabularInline):
    model = MessageDeletion
    extra = 0
    readonly_fields = ("user", "deleted_at")


class MessageStateFilter(admin.SimpleListFilter):
    title = "State"
    parameter_name = "state"

    def lookups(self, request, model_admin):
        return (("draft", "Draft"), ("unsent", "Unsent"), ("trashed", "In someone's trash"))

    def queryset(self, request, qs):
        v = self.value()
        if v == "draft":
            return qs.filter(draft=True)
        if v == "unsent":
            return qs.filter(unsent=True)
        if v == "trashed":
            return qs.filter(deletions__isnull=False).distinct()
        return qs


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ("id", "sender", "recipient", "subject", "related_ad", "read", "starred", "archived", "created_at")
    list_filter = (MessageStateFilter, "read", "starred", "archived", "created_at")
    search_fields = ("sender__username", "recipient__username", "subject", "content")
    raw_id_fields = ("sender", "recipient", "related_ad")
    ordering = ("-created_at",)
    inlines = [MessageAttachmentInline, MessageDeletionInline]
