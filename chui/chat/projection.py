import logging
from typing import List, Optional

from chui.profiles.registry import IdentityRegistry

from .directory import ConversationDirectory
from .ledger import clamp_limit
from .schemas import ConversationSummary, OtherUser

logger = logging.getLogger(__name__)

DEFAULT_LIST_SIZE = 50
MAX_LIST_SIZE = 100


class ConversationListProjection:
    """Per-user inbox: conversations joined with the other member, newest first."""

    def __init__(self, directory: ConversationDirectory, registry: IdentityRegistry):
        self.directory = directory
        self.registry = registry

    async def _other_user(self, conversation_id: str, user_id: str) -> Optional[OtherUser]:
        members = await self.directory.members(conversation_id)
        other_id = next((m.user_id for m in members if m.user_id != user_id), None)
        if other_id is None:
            return None

        other = await self.registry.get(other_id)
        if other is None:
            return None
        return OtherUser(user_id=other.id, username=other.username)

    async def list_for_user(self, user_id: str, limit=DEFAULT_LIST_SIZE) -> List[ConversationSummary]:
        limit = clamp_limit(limit, DEFAULT_LIST_SIZE, MAX_LIST_SIZE)

        summaries: List[ConversationSummary] = []
        for membership in await self.directory.memberships_for_user(user_id):
            conversation = await self.directory.get(membership.conversation_id)
            if conversation is None:
                logger.warning(
                    f"conversation_missing conversation_id={membership.conversation_id} user_id={user_id}"
                )
                continue

            summaries.append(
                ConversationSummary(
                    conversation_id=conversation.id,
                    updated_at=conversation.updated_at,
                    last_message_at=conversation.last_message_at,
                    last_message_preview=conversation.last_message_preview,
                    other_user=await self._other_user(conversation.id, user_id),
                )
            )

        summaries.sort(
            key=lambda s: s.last_message_at if s.last_message_at is not None else s.updated_at,
            reverse=True,
        )
        return summaries[:limit]
