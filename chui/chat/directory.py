"""
Conversation Directory.

A direct conversation is identified by the canonical pair key of its two
members, so (A, B) and (B, A) always resolve to the same record. The
database carries a unique constraint on ``pair_key``; when two first
messages race past the lookup, the losing insert re-reads the key and
adopts the winner's row.
"""

import logging
from typing import Callable, List, Optional

from chui.core.errors import SelfConversationNotAllowed
from chui.storage.base import DocumentStore, UniqueViolation
from chui.storage.models import CONVERSATIONS, MEMBERS
from chui.utils.clock import now_ms

from .schemas import Conversation, Membership

logger = logging.getLogger(__name__)

PAIR_KEY_SEPARATOR = ":"
PREVIEW_MAX_CHARS = 140


def pair_key(user_a: str, user_b: str) -> str:
    u1, u2 = sorted([user_a, user_b])
    return f"{u1}{PAIR_KEY_SEPARATOR}{u2}"


def make_preview(body: str) -> str:
    return body[:PREVIEW_MAX_CHARS]


class ConversationDirectory:
    def __init__(self, store: DocumentStore, clock: Callable[[], int] = now_ms):
        self.store = store
        self.clock = clock

    async def get(self, conversation_id: str) -> Optional[Conversation]:
        doc = await self.store.get(CONVERSATIONS, conversation_id)
        return Conversation.model_validate(doc) if doc else None

    async def get_or_create_direct_conversation(self, user_a: str, user_b: str) -> str:
        if user_a == user_b:
            raise SelfConversationNotAllowed()

        key = pair_key(user_a, user_b)
        now = self.clock()
        existing = await self.store.find_one(CONVERSATIONS, pair_key=key)
        if existing:
            conversation_id = existing["id"]
            await self._ensure_pair(conversation_id, user_a, user_b, now)
            return conversation_id

        try:
            conversation_id = await self.store.insert(
                CONVERSATIONS,
                {
                    "kind": "direct",
                    "pair_key": key,
                    "created_by": user_a,
                    "created_at": now,
                    "updated_at": now,
                },
            )
            logger.info(f"conversation_created conversation_id={conversation_id} pair_key={key}")
        except UniqueViolation:
            winner = await self.store.find_one(CONVERSATIONS, pair_key=key)
            if winner is None:
                raise
            conversation_id = winner["id"]
            logger.info(f"conversation_create_race_resolved conversation_id={conversation_id}")

        await self._ensure_pair(conversation_id, user_a, user_b, now)
        return conversation_id

    async def _ensure_pair(self, conversation_id: str, user_a: str, user_b: str, at: int) -> None:
        # Runs on every call: an earlier request (or a race winner) may have
        # stopped between creating the conversation and adding its members
        await self.ensure_membership(conversation_id, user_a, at)
        await self.ensure_membership(conversation_id, user_b, at)

    async def ensure_membership(
        self, conversation_id: str, user_id: str, at: Optional[int] = None
    ) -> None:
        existing = await self.store.find_one(
            MEMBERS, conversation_id=conversation_id, user_id=user_id
        )
        if existing:
            return

        try:
            await self.store.insert(
                MEMBERS,
                {
                    "conversation_id": conversation_id,
                    "user_id": user_id,
                    "joined_at": at if at is not None else self.clock(),
                },
            )
        except UniqueViolation:
            logger.debug(
                f"membership_already_present conversation_id={conversation_id} user_id={user_id}"
            )

    async def is_member(self, conversation_id: str, user_id: str) -> bool:
        doc = await self.store.find_one(
            MEMBERS, conversation_id=conversation_id, user_id=user_id
        )
        return doc is not None

    async def members(self, conversation_id: str) -> List[Membership]:
        docs = await self.store.find(MEMBERS, {"conversation_id": conversation_id})
        return [Membership.model_validate(doc) for doc in docs]

    async def memberships_for_user(self, user_id: str) -> List[Membership]:
        docs = await self.store.find(MEMBERS, {"user_id": user_id})
        return [Membership.model_validate(doc) for doc in docs]

    async def touch_summary(
        self, conversation_id: str, sender_id: str, body: str, at: int
    ) -> None:
        """
        Mirror the newest message onto the conversation record.

        Must follow every successful ledger append. Writing the same values
        twice is harmless, so a failed touch can simply be retried.
        """
        await self.store.patch(
            CONVERSATIONS,
            conversation_id,
            {
                "updated_at": at,
                "last_message_at": at,
                "last_message_sender_id": sender_id,
                "last_message_preview": make_preview(body),
            },
        )
