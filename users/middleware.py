# users/middleware.py
from datetime import timedelta

from django.db.models import Q
from django.utils import timezone

from .models import UserProfile


class LastActivityMiddleware:
    """
    Update profile.last_activity_at for every authenticated request.
    Presence checks for message notifications read this timestamp.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)

        # DRF copies the JWT-authenticated user back onto the Django request
        user = getattr(request, "user", None)
        if user and user.is_authenticated:
            now = timezone.now()
            # Only update if >60s difference to avoid extra writes
            UserProfile.objects.filter(user_id=user.pk).filter(
                Q(last_activity_at__isnull=True) | Q(last_activity_at__lt=now - timedelta(seconds=60))
            ).update(last_activity_at=now)

        return response
