from enum import Enum
from pydantic import BaseModel
from typing import List, Optional


class PageDirection(str, Enum):
    NEWEST_FIRST = "newest_first"
    OLDEST_FIRST = "oldest_first"


class Conversation(BaseModel):
    id: str
    kind: str = "direct"
    pair_key: str
    created_by: str
    created_at: int
    updated_at: int
    last_message_at: Optional[int] = None
    last_message_preview: Optional[str] = None
    last_message_sender_id: Optional[str] = None


class Membership(BaseModel):
    id: str
    conversation_id: str
    user_id: str
    joined_at: int
    last_read_at: Optional[int] = None


class Message(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    body: str
    created_at: int


# Send Messages
class SendMessageModel(BaseModel):
    to_username: str
    body: str


class SendResult(BaseModel):
    conversation_id: str
    message_id: str
    created_at: int
    # True when the message is stored but the conversation summary lags behind
    summary_stale: bool = False


# Get Conversations
class OtherUser(BaseModel):
    user_id: str
    username: str


class ConversationSummary(BaseModel):
    conversation_id: str
    updated_at: int
    last_message_at: Optional[int] = None
    last_message_preview: Optional[str] = None
    other_user: Optional[OtherUser] = None


class GetConversationsResponseModel(BaseModel):
    conversations: List[ConversationSummary]


# Get messages
class ConversationMessage(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    sender_username: str
    body: str
    created_at: int


class GetMessagesResponseModel(BaseModel):
    messages: List[ConversationMessage]
