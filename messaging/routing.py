"""
WebSocket routing for the messaging app.

The JWT middleware stack authenticates the socket; the consumer closes
it for anonymous users.
"""
from django.urls import re_path

from .consumers import ConversationPresenceConsumer


websocket_urlpatterns = [
    re_path(
        r"^ws/messaging/conversations/(?P<user_id>\d+)/$",
        ConversationPresenceConsumer.as_asgi(),
    ),
]
