from django.contrib import admin

from .models import Ad


@admin.register(Ad)
class AdAdmin(admin.ModelAdmin):
    list_display = ("id", "headline", "brand", "model", "owner", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("headline", "brand", "model", "owner__username")
    ordering = ("-created_at",)
