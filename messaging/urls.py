# messaging/urls.py
"""
URL configuration for the messaging app.

Mounted under ``/api/messages/`` at the project level.  Routes are bound
explicitly because most of them are verbs on a message rather than
plain CRUD.
"""

from django.urls import path

from .conversations import ACTIONS as CONVERSATION_ACTIONS
from .views import ConversationViewSet, MessageViewSet

app_name = "messaging"

urlpatterns = [
    # mailbox
    path("folders/<str:folder>/", MessageViewSet.as_view({"get": "folder"}), name="folder"),
    path("send/", MessageViewSet.as_view({"post": "send"}), name="send"),
    path("send-to-user/<int:user_id>/", MessageViewSet.as_view({"post": "send_to_user"}), name="send-to-user"),
    path("send-to-ad/<int:ad_id>/", MessageViewSet.as_view({"post": "send_to_ad"}), name="send-to-ad"),
    path("drafts/", MessageViewSet.as_view({"post": "save_draft"}), name="drafts"),
    path("unread-count/", MessageViewSet.as_view({"get": "unread_count"}), name="unread-count"),
    path("search/", MessageViewSet.as_view({"get": "search"}), name="search"),
    path("users/suggestions/", MessageViewSet.as_view({"get": "suggestions"}), name="user-suggestions"),

    # conversations
    path("conversations/", ConversationViewSet.as_view({"get": "list"}), name="conversation-list"),
    path(
        "conversations/<int:user_id>/",
        ConversationViewSet.as_view({"get": "retrieve"}),
        name="conversation-thread",
    ),
    path(
        "conversations/<int:user_id>/reply/",
        ConversationViewSet.as_view({"post": "reply"}),
        name="conversation-reply",
    ),

    # single message
    path(
        "<int:pk>/",
        MessageViewSet.as_view({"get": "retrieve", "put": "update", "delete": "destroy"}),
        name="message-detail",
    ),
    path("<int:pk>/reply/", MessageViewSet.as_view({"post": "reply"}), name="message-reply"),
]

for flag in ("read", "star", "archive", "unarchive", "restore", "unsend"):
    urlpatterns.append(
        path(f"<int:pk>/{flag}/", MessageViewSet.as_view({"patch": flag}), name=f"message-{flag}")
    )

for conv_action in CONVERSATION_ACTIONS:
    urlpatterns.append(
        path(
            f"conversations/<int:user_id>/{conv_action}/",
            ConversationViewSet.as_view({"patch": "bulk"}),
            {"conv_action": conv_action},
            name=f"conversation-{conv_action}",
        )
    )
