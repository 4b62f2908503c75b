"""
Project-level Channels routing configuration.

This module collects the WebSocket routes of every app.  The ASGI
application wraps them with the JWT authentication middleware stack.
"""
from messaging.routing import websocket_urlpatterns as messaging_ws
from notifications.routing import websocket_urlpatterns as notifications_ws

websocket_urlpatterns = [
    *messaging_ws,
    *notifications_ws,
]
