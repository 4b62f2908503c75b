"""
django-filter FilterSet for the notification feed.

``?unread=true`` keeps only unread rows and ``?kind=new_message``
narrows the feed to one notification kind.
"""
from django_filters import rest_framework as filters

from .models import Notification


class NotificationFilter(filters.FilterSet):
    kind = filters.ChoiceFilter(choices=Notification.KIND_CHOICES)
    unread = filters.BooleanFilter(method="filter_unread")

    class Meta:
        model = Notification
        fields = []

    def filter_unread(self, queryset, name, value):
        if value:
            return queryset.filter(is_read=False)
        return queryset
