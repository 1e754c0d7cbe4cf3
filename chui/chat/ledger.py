import logging
import math
from typing import Callable, List

from chui.core.errors import EmptyMessageBody, NotAMember
from chui.storage.base import DocumentStore
from chui.storage.models import MEMBERS, MESSAGES
from chui.utils.clock import now_ms

from .schemas import Message, PageDirection

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


def clamp_limit(limit, default: int, maximum: int) -> int:
    """Clamp ``limit`` into 1..maximum; non-numeric, NaN or infinite uses ``default``."""
    if isinstance(limit, bool) or not isinstance(limit, (int, float)):
        return default
    if isinstance(limit, float) and (math.isnan(limit) or math.isinf(limit)):
        return default
    return max(1, min(int(limit), maximum))


def clean_body(body) -> str:
    if not isinstance(body, str) or not body.strip():
        raise EmptyMessageBody()
    return body.strip()


class MessageLedger:
    """Append-only message store, read back in pages by time."""

    def __init__(self, store: DocumentStore, clock: Callable[[], int] = now_ms):
        self.store = store
        self.clock = clock

    async def append(
        self, conversation_id: str, sender_id: str, body: str, at: int | None = None
    ) -> str:
        body = clean_body(body)

        membership = await self.store.find_one(
            MEMBERS, conversation_id=conversation_id, user_id=sender_id
        )
        if membership is None:
            raise NotAMember()

        created_at = at if at is not None else self.clock()
        message_id = await self.store.insert(
            MESSAGES,
            {
                "conversation_id": conversation_id,
                "sender_id": sender_id,
                "body": body,
                "created_at": created_at,
            },
        )
        logger.info(
            f"message_appended conversation_id={conversation_id} message_id={message_id}"
        )
        return message_id

    async def page(
        self,
        conversation_id: str,
        limit=DEFAULT_PAGE_SIZE,
        direction: PageDirection = PageDirection.NEWEST_FIRST,
    ) -> List[Message]:
        limit = clamp_limit(limit, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE)
        docs = await self.store.find(
            MESSAGES,
            {"conversation_id": conversation_id},
            order_by="created_at",
            descending=direction == PageDirection.NEWEST_FIRST,
            limit=limit,
        )
        return [Message.model_validate(doc) for doc in docs]
