"""
Tests for the conversation presence socket.
"""
import pytest
from channels.db import database_sync_to_async
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser

from messaging.presence import presence
from messaging.routing import websocket_urlpatterns


def _communicator(path, user):
    communicator = WebsocketCommunicator(URLRouter(websocket_urlpatterns), path)
    communicator.scope["user"] = user
    return communicator


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_open_socket_marks_thread_active(user, other_user):
    communicator = _communicator(f"/ws/messaging/conversations/{other_user.pk}/", user)
    connected, _ = await communicator.connect()
    assert connected

    hello = await communicator.receive_json_from()
    assert hello == {"type": "presence.active", "user_id": other_user.pk}
    assert await database_sync_to_async(presence.is_active_in_conversation)(user.pk, other_user.pk)

    await communicator.send_json_to({"type": "ping"})
    assert await communicator.receive_json_from() == {"type": "pong"}

    await communicator.disconnect()
    assert not await database_sync_to_async(presence.is_active_in_conversation)(user.pk, other_user.pk)


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_anonymous_socket_is_closed(other_user):
    communicator = _communicator(f"/ws/messaging/conversations/{other_user.pk}/", AnonymousUser())
    connected, _ = await communicator.connect()
    assert not connected


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
async def test_socket_for_unknown_user_is_closed(user):
    communicator = _communicator("/ws/messaging/conversations/999999/", user)
    connected, _ = await communicator.connect()
    assert not connected
