"""
Failure kinds surfaced by the messaging engine.

Every kind carries a short message that is safe to show on a status line,
and the HTTP status the routers answer with.
"""


class ChatError(Exception):
    kind = "ChatError"
    status_code = 500
    default_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidUsername(ChatError):
    kind = "InvalidUsername"
    status_code = 422
    default_message = "Username: 3-20 letters/numbers, case insensitive"


class AuthAlreadyLinked(ChatError):
    kind = "AuthAlreadyLinked"
    status_code = 409
    default_message = "This account is already linked to another username"


class Unauthorized(ChatError):
    kind = "Unauthorized"
    status_code = 401
    default_message = "Unauthorized"


class ProfileNotFound(ChatError):
    kind = "ProfileNotFound"
    status_code = 404
    default_message = "Profile not found for current user"


class RecipientNotFound(ChatError):
    kind = "RecipientNotFound"
    status_code = 404
    default_message = "Recipient not found"


class SelfConversationNotAllowed(ChatError):
    kind = "SelfConversationNotAllowed"
    status_code = 400
    default_message = "You cannot message yourself"


class EmptyMessageBody(ChatError):
    kind = "EmptyMessageBody"
    status_code = 422
    default_message = "Message cannot be empty"


class ConversationNotFound(ChatError):
    kind = "ConversationNotFound"
    status_code = 404
    default_message = "Conversation not found"


class NotAMember(ChatError):
    kind = "NotAMember"
    status_code = 403
    default_message = "You are not a member of this conversation"


class StorageUnavailable(ChatError):
    kind = "StorageUnavailable"
    status_code = 503
    default_message = "Messaging is temporarily unavailable. Please try again."
