"""
Project-wide DRF exception handler.

Client-facing errors (validation, not found, permission) are rendered by
DRF with their detail.  Anything else is an unexpected server fault: it
is logged with the request context and the caller receives a generic
body without internals.
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

GENERIC_FAULT = {"detail": "Server error.", "code": "server_fault"}


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is not None:
        if response.status_code >= 500:
            logger.error("API fault in %s: %s", _view_name(context), exc)
            response.data = dict(GENERIC_FAULT)
        elif isinstance(response.data, dict) and "detail" in response.data:
            response.data.setdefault("code", _error_code(exc))
        return response

    request = context.get("request")
    logger.exception(
        "Unhandled error in %s (user=%s, path=%s)",
        _view_name(context),
        getattr(getattr(request, "user", None), "pk", None),
        getattr(request, "path", None),
        exc_info=exc,
    )
    return Response(dict(GENERIC_FAULT), status=status.HTTP_500_INTERNAL_SERVER_ERROR)


def _error_code(exc):
    code = getattr(getattr(exc, "detail", None), "code", None)
    return code or getattr(exc, "default_code", "error")


def _view_name(context):
    view = context.get("view")
    return view.__class__.__name__ if view is not None else "unknown view"
