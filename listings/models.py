"""
Listing reference model.

Ad CRUD lives outside this service; messaging only needs to know who
owns a listing and how to title it in subjects and notifications.
"""
from django.conf import settings
from django.db import models


class Ad(models.Model):
    STATUS_ACTIVE = "active"
    STATUS_PENDING = "pending"
    STATUS_EXPIRED = "expired"
    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_PENDING, "Pending"),
        (STATUS_EXPIRED, "Expired"),
    ]

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="ads"
    )
    headline = models.CharField(max_length=255, blank=True)
    brand = models.CharField(max_length=100, blank=True)
    model = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=["owner", "status"], name="listings_ad_owner_status_idx")]

    @property
    def title(self) -> str:
        return (self.headline or f"{self.brand} {self.model}").strip() or f"Ad #{self.pk}"

    def __str__(self):
        return self.title
