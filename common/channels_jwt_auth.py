"""
JWT authentication middleware for Django Channels.

Browsers cannot set an `Authorization` header on a WebSocket handshake,
so the token is read from the header when present and from the `token`
query parameter otherwise.  A valid SimpleJWT access token populates
`scope['user']`; anything else leaves an `AnonymousUser` in place and
lets the consumer decide whether to close the socket.
"""

import logging
import urllib.parse
from typing import Callable

from channels.auth import AuthMiddlewareStack
from channels.middleware import BaseMiddleware
from channels.db import database_sync_to_async
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.db import close_old_connections
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

logger = logging.getLogger(__name__)

User = get_user_model()


@database_sync_to_async
def get_user_from_token(token):
    """Return the active user the access token belongs to, or None."""
    try:
        access = AccessToken(token)
    except TokenError as exc:
        logger.debug("Rejected websocket token: %s", exc)
        return None

    user_id = access.get(api_settings.USER_ID_CLAIM)
    if not user_id:
        return None
    return User.objects.filter(pk=user_id, is_active=True).first()


def _token_from_scope(scope):
    headers = dict(scope.get("headers", []))
    auth_header = headers.get(b"authorization", b"").decode()
    if auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip()

    params = urllib.parse.parse_qs(scope.get("query_string", b"").decode())
    return params.get("token", [None])[0]


class _JWTMiddleware(BaseMiddleware):
    """Low-level middleware to handle JWT tokens in a WebSocket scope."""

    async def __call__(self, scope, receive, send):
        token = _token_from_scope(scope)

        # Tests inject a user directly into the scope
        if not getattr(scope.get("user"), "is_authenticated", False):
            scope["user"] = AnonymousUser()
            if token:
                user = await get_user_from_token(token)
                if user:
                    scope["user"] = user

        # Close old database connections to prevent leaks
        close_old_connections()
        return await super().__call__(scope, receive, send)


def JWTAuthMiddlewareStack(inner: Callable):
    """Entry point for the middleware stack used by Channels routing."""
    return _JWTMiddleware(AuthMiddlewareStack(inner))
