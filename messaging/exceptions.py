"""
Error taxonomy for the messaging app.

Every client-facing failure is a DRF `APIException` so views can simply
let it propagate; `common.exceptions.api_exception_handler` renders it
with its detail.  `ServerFault` covers unexpected storage or
aggregation failures and is rendered without internals.
"""
from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, PermissionDenied


class MessageNotFound(NotFound):
    default_detail = "Message not found."
    default_code = "message_not_found"


class RecipientNotFound(NotFound):
    default_detail = "Recipient not found."
    default_code = "recipient_not_found"


class ConversationNotFound(NotFound):
    default_detail = "Conversation not found."
    default_code = "conversation_not_found"


class NotAParticipant(PermissionDenied):
    default_detail = "You are not a party to this message."
    default_code = "forbidden"


class InvalidFolder(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Unknown folder."
    default_code = "invalid_folder"


class InvalidAttachment(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid attachment."
    default_code = "invalid_attachment"

    def __init__(self, detail=None, code=None, errors=None):
        if errors:
            detail = {"detail": detail or self.default_detail, "errors": list(errors)}
        super().__init__(detail, code)


class ContentRequired(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Message content is required when no attachments are sent."
    default_code = "content_required"


class SelfMessageNotAllowed(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "You cannot send a message to yourself."
    default_code = "self_message"


class EditWindowExpired(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Messages can only be edited shortly after sending."
    default_code = "edit_window_expired"


class ServerFault(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Server error."
    default_code = "server_fault"
