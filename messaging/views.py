"""
Views for the messaging app.

REST endpoints for the mailbox (folders, single messages, flags, send
and reply flows, drafts, search) and for the conversation view built
on top of it.  Authentication is required everywhere; the service
layer raises the 403/404 errors for messages the caller may not touch.
"""
from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiParameter, OpenApiTypes, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from common.pagination import MessageCursorPagination
from users.serializers import UserSummarySerializer

from . import conversations, flags, services
from .folders import folder_queryset
from .serializers import (
    ComposeSerializer,
    ConversationReplySerializer,
    ConversationSerializer,
    DraftSerializer,
    EditMessageSerializer,
    MessageSerializer,
    SendMessageSerializer,
    ThreadSerializer,
    UnreadCountSerializer,
)
from .unread import get_unread_count

logger = logging.getLogger(__name__)


def _files(request):
    return request.FILES.getlist("attachments")


class MessageViewSet(viewsets.ViewSet):
    """Mailbox endpoints under /api/messages/."""

    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def _serialize(self, message, status_code=status.HTTP_200_OK):
        data = MessageSerializer(message, context={"request": self.request}).data
        return Response(data, status=status_code)

    def _paginate(self, queryset):
        paginator = MessageCursorPagination()
        page = paginator.paginate_queryset(queryset, self.request, view=self)
        ser = MessageSerializer(page, many=True, context={"request": self.request})
        return paginator.get_paginated_response(ser.data)

    # ---------- listing ----------
    @extend_schema(responses=MessageSerializer(many=True))
    def folder(self, request, folder=None):
        return self._paginate(folder_queryset(request.user, folder))

    @extend_schema(
        parameters=[
            OpenApiParameter("query", OpenApiTypes.STR, OpenApiParameter.QUERY),
            OpenApiParameter("folder", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False),
        ],
        responses=MessageSerializer(many=True),
    )
    def search(self, request):
        qs = services.search_messages(
            request.user,
            request.query_params.get("query") or request.query_params.get("q"),
            folder=request.query_params.get("folder") or None,
        )
        return self._paginate(qs)

    @extend_schema(responses=UnreadCountSerializer)
    def unread_count(self, request):
        return Response(get_unread_count(request.user).as_dict())

    @extend_schema(
        parameters=[OpenApiParameter("query", OpenApiTypes.STR, OpenApiParameter.QUERY)],
        responses=UserSummarySerializer(many=True),
    )
    def suggestions(self, request):
        users = services.suggest_users(request.user, request.query_params.get("query"))
        return Response(UserSummarySerializer(users, many=True).data)

    # ---------- single message ----------
    @extend_schema(responses=MessageSerializer)
    def retrieve(self, request, pk=None):
        return self._serialize(services.get_message(pk, request.user))

    @extend_schema(request=EditMessageSerializer, responses=MessageSerializer)
    def update(self, request, pk=None):
        ser = EditMessageSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        message = flags.edit_message(
            pk, request.user, ser.validated_data["content"], ser.validated_data.get("subject")
        )
        return self._serialize(message)

    def destroy(self, request, pk=None):
        outcome = flags.soft_delete(pk, request.user)
        if outcome == flags.DELETED:
            return Response({"detail": "Message permanently deleted.", "status": outcome})
        return Response({"detail": "Message moved to trash.", "status": outcome})

    # ---------- flags ----------
    def read(self, request, pk=None):
        return self._serialize(flags.mark_as_read(pk, request.user))

    def star(self, request, pk=None):
        return self._serialize(flags.toggle_star(pk, request.user))

    def archive(self, request, pk=None):
        return self._serialize(flags.archive(pk, request.user))

    def unarchive(self, request, pk=None):
        return self._serialize(flags.unarchive(pk, request.user))

    def restore(self, request, pk=None):
        return self._serialize(flags.restore(pk, request.user))

    def unsend(self, request, pk=None):
        return self._serialize(flags.unsend_message(pk, request.user))

    # ---------- sending ----------
    @extend_schema(request=SendMessageSerializer, responses=MessageSerializer)
    def send(self, request):
        ser = SendMessageSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        message = services.send_message(
            request.user,
            data["recipient"],
            subject=data["subject"],
            content=data["content"],
            files=_files(request),
            ad_id=data.get("ad_id"),
        )
        return self._serialize(message, status.HTTP_201_CREATED)

    @extend_schema(request=ComposeSerializer, responses=MessageSerializer)
    def send_to_user(self, request, user_id=None):
        ser = ComposeSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        message = services.send_to_user(
            request.user, user_id, files=_files(request), **ser.validated_data
        )
        return self._serialize(message, status.HTTP_201_CREATED)

    @extend_schema(request=ComposeSerializer, responses=MessageSerializer)
    def send_to_ad(self, request, ad_id=None):
        ser = ComposeSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        message = services.send_to_ad(
            request.user, ad_id, files=_files(request), **ser.validated_data
        )
        return self._serialize(message, status.HTTP_201_CREATED)

    @extend_schema(request=ComposeSerializer, responses=MessageSerializer)
    def reply(self, request, pk=None):
        ser = ComposeSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        message = services.reply_to_message(
            request.user, pk, content=ser.validated_data["content"], files=_files(request)
        )
        return self._serialize(message, status.HTTP_201_CREATED)

    @extend_schema(request=DraftSerializer, responses=MessageSerializer)
    def save_draft(self, request):
        ser = DraftSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        draft = services.save_draft(
            request.user,
            draft_id=data.get("draft_id"),
            recipient_identifier=data.get("recipient"),
            subject=data["subject"],
            content=data["content"],
            ad_id=data.get("ad_id"),
            files=_files(request),
        )
        created = not data.get("draft_id")
        return self._serialize(draft, status.HTTP_201_CREATED if created else status.HTTP_200_OK)


class ConversationViewSet(viewsets.ViewSet):
    """Conversation list, threads, replies and conversation-wide moves."""

    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    @extend_schema(responses=ConversationSerializer(many=True))
    def list(self, request):
        rows = conversations.list_conversations(request.user)
        return Response(ConversationSerializer(rows, many=True, context={"request": request}).data)

    @extend_schema(
        parameters=[
            OpenApiParameter("ad", OpenApiTypes.STR, OpenApiParameter.QUERY, required=False,
                             description="Listing id or 'no-ad'"),
            OpenApiParameter("page", OpenApiTypes.INT, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("limit", OpenApiTypes.INT, OpenApiParameter.QUERY, required=False),
        ],
        responses=ThreadSerializer,
    )
    def retrieve(self, request, user_id=None):
        params = request.query_params
        try:
            page = int(params.get("page", 1))
            limit = int(params.get("limit", 50))
        except (TypeError, ValueError):
            return Response({"detail": "page and limit must be integers."}, status=400)
        thread = conversations.get_conversation_thread(
            request.user, user_id, ad=params.get("ad") or None, page=page, limit=limit
        )
        return Response(ThreadSerializer(thread, context={"request": request}).data)

    @extend_schema(request=ConversationReplySerializer, responses=MessageSerializer)
    def reply(self, request, user_id=None):
        ser = ConversationReplySerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        message = conversations.reply_in_conversation(
            request.user,
            user_id,
            content=ser.validated_data["content"],
            ad=ser.validated_data.get("ad_id") or request.query_params.get("ad") or None,
            files=_files(request),
        )
        data = MessageSerializer(message, context={"request": request}).data
        return Response(data, status=status.HTTP_201_CREATED)

    def bulk(self, request, user_id=None, conv_action=None):
        affected = conversations.conversation_action(
            request.user, user_id, conv_action,
            ad=request.data.get("ad_id") or request.query_params.get("ad") or None,
        )
        return Response({"action": conv_action, "affected": affected})
