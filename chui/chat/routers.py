import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from chui.core.dependencies import get_messenger, verify_token
from chui.core.errors import ChatError
from chui.core.session import Session

from .facade import Messenger
from .schemas import (
    SendMessageModel,
    SendResult,
    GetConversationsResponseModel,
    GetMessagesResponseModel,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/messages",
    response_model=SendResult,
    status_code=201,
)
async def send_direct_message(
    data: SendMessageModel,
    session: Session = Depends(verify_token),
    messenger: Messenger = Depends(get_messenger),
):
    """
    Send a direct message to another user by username.

    The conversation between the two users is created on first contact and
    reused afterwards; both users become members of it.

    **Input**
    - `to_username`: recipient's username (case insensitive)
    - `body`: message text, must not be blank

    **Returns**
    - `conversation_id`, `message_id`, `created_at`
    - `summary_stale`: the message is stored but the inbox preview was not
      refreshed (it will be on the next message)

    **Errors**
    - 400: Messaging yourself
    - 401: Unauthorized
    - 404: Recipient or your profile not found
    - 422: Invalid username or empty message
    - 503: Storage unavailable
    """
    try:
        return await messenger.send_direct_message(session, data.to_username, data.body)

    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except Exception:
        logger.exception("send_message_failed")
        raise HTTPException(status_code=500, detail="Failed to send message.")


@router.get(
    "/conversations",
    response_model=GetConversationsResponseModel,
    status_code=200,
)
async def list_my_conversations(
    limit: Optional[int] = Query(default=None),
    session: Session = Depends(verify_token),
    messenger: Messenger = Depends(get_messenger),
):
    """
    Retrieve the authenticated user's conversations, most recent first.

    Each entry carries the last message preview and the other member's
    username, which is what the inbox sidebar renders.

    **Query**
    - `limit`: clamped to 1..100 (default 50)

    **Errors**
    - 401: Unauthorized
    - 404: Profile not found
    - 503: Storage unavailable
    """
    try:
        conversations = await messenger.list_my_conversations(session, limit)
        return {"conversations": conversations}

    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except Exception:
        logger.exception("list_conversations_failed")
        raise HTTPException(status_code=500, detail="Failed to fetch conversations")


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=GetMessagesResponseModel,
    status_code=200,
)
async def list_conversation_messages(
    conversation_id: str,
    limit: Optional[int] = Query(default=None),
    session: Session = Depends(verify_token),
    messenger: Messenger = Depends(get_messenger),
):
    """
    Retrieve the most recent messages of a conversation, oldest first.

    **Query**
    - `limit`: clamped to 1..200 (default 50)

    **Errors**
    - 401: Unauthorized
    - 404: Conversation not found, or you are not a member of it
    - 503: Storage unavailable
    """
    try:
        messages = await messenger.list_conversation_messages(
            session, conversation_id, limit
        )
        return {"messages": messages}

    except ChatError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    except Exception:
        logger.exception("list_messages_failed")
        raise HTTPException(status_code=500, detail="Failed to retrieve messages")
