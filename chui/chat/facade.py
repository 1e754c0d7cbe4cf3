"""
Client read/send facade.

The only surface the presentation layer talks to. Every call takes the
caller's Session explicitly, validates its string inputs before touching
storage, and surfaces failures as ChatError kinds whose message can be put
straight onto a status line.
"""

import functools
import logging
from typing import Callable, Dict, List, Optional

from chui.core.errors import (
    ChatError,
    ConversationNotFound,
    ProfileNotFound,
    RecipientNotFound,
    SelfConversationNotAllowed,
    StorageUnavailable,
    Unauthorized,
)
from chui.core.session import Session
from chui.profiles.registry import IdentityRegistry
from chui.profiles.schemas import ProfileItem, UpsertUsernameResponseModel, User
from chui.storage.base import DocumentStore, StorageError
from chui.utils.clock import now_ms

from .directory import ConversationDirectory
from .ledger import MessageLedger, clean_body
from .projection import ConversationListProjection
from .schemas import (
    ConversationMessage,
    ConversationSummary,
    PageDirection,
    SendResult,
)

logger = logging.getLogger(__name__)


def boundary(func):
    """Re-raise anything that is not already a ChatError as StorageUnavailable."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except ChatError:
            raise
        except StorageError as e:
            logger.error(f"storage_failure operation={func.__name__} error={e}")
            raise StorageUnavailable() from e
        except Exception as e:
            logger.exception(f"unexpected_failure operation={func.__name__}")
            raise StorageUnavailable() from e

    return wrapper


class Messenger:
    def __init__(
        self,
        store: DocumentStore,
        allow_underscore: bool = False,
        clock: Callable[[], int] = now_ms,
    ):
        self.clock = clock
        self.registry = IdentityRegistry(store, allow_underscore, clock)
        self.directory = ConversationDirectory(store, clock)
        self.ledger = MessageLedger(store, clock)
        self.projection = ConversationListProjection(self.directory, self.registry)

    @staticmethod
    def _require_session(session: Optional[Session]) -> Session:
        if session is None or not session.auth_user_id:
            raise Unauthorized()
        return session

    async def _me(self, session: Optional[Session]) -> User:
        session = self._require_session(session)
        me = await self.registry.get_by_auth_ref(session.auth_user_id)
        if me is None:
            raise ProfileNotFound()
        return me

    @boundary
    async def upsert_by_username(self, username: str) -> UpsertUsernameResponseModel:
        """Username-only sign in: create the profile on first use."""
        username = self.registry.parse(username)
        user_id = await self.registry.resolve_or_create(username)
        return UpsertUsernameResponseModel(user_id=user_id, username=username)

    @boundary
    async def get_my_profile(self, session: Optional[Session]) -> Optional[User]:
        if session is None:
            return None
        return await self.registry.get_by_auth_ref(session.auth_user_id)

    @boundary
    async def list_profiles(self, session: Optional[Session]) -> List[ProfileItem]:
        self._require_session(session)
        profiles = await self.registry.list_profiles()
        return [ProfileItem(username=p.username, email=p.email) for p in profiles]

    @boundary
    async def send_direct_message(
        self, session: Optional[Session], to_username: str, body: str
    ) -> SendResult:
        """
        Resolve recipient, get or create the pair's conversation, append the
        message, then refresh the conversation summary.

        The append and the summary touch are two writes. When the touch
        fails the message is already durable, so it is kept and the result
        is flagged ``summary_stale``; the next send to the pair rewrites the
        summary.
        """
        self._require_session(session)
        to_username = self.registry.parse(to_username)
        body = clean_body(body)

        me = await self._me(session)
        recipient = await self.registry.lookup(to_username)
        if recipient is None:
            raise RecipientNotFound()
        if recipient.id == me.id:
            raise SelfConversationNotAllowed()

        conversation_id = await self.directory.get_or_create_direct_conversation(
            me.id, recipient.id
        )
        created_at = self.clock()
        message_id = await self.ledger.append(conversation_id, me.id, body, created_at)

        summary_stale = False
        try:
            await self.directory.touch_summary(conversation_id, me.id, body, created_at)
        except StorageError as e:
            summary_stale = True
            logger.error(
                f"summary_touch_failed conversation_id={conversation_id} message_id={message_id} error={e}"
            )

        logger.info(
            f"message_sent conversation_id={conversation_id} sender={me.username} to={recipient.username}"
        )
        return SendResult(
            conversation_id=conversation_id,
            message_id=message_id,
            created_at=created_at,
            summary_stale=summary_stale,
        )

    @boundary
    async def list_my_conversations(
        self, session: Optional[Session], limit: Optional[int] = None
    ) -> List[ConversationSummary]:
        me = await self._me(session)
        if limit is None:
            return await self.projection.list_for_user(me.id)
        return await self.projection.list_for_user(me.id, limit)

    @boundary
    async def list_conversation_messages(
        self,
        session: Optional[Session],
        conversation_id: str,
        limit: Optional[int] = None,
    ) -> List[ConversationMessage]:
        """Most recent messages of a conversation, oldest first."""
        self._require_session(session)
        if not isinstance(conversation_id, str) or not conversation_id.strip():
            raise ConversationNotFound()
        conversation_id = conversation_id.strip()

        me = await self._me(session)
        conversation = await self.directory.get(conversation_id)
        if conversation is None:
            raise ConversationNotFound()
        if not await self.directory.is_member(conversation_id, me.id):
            raise ConversationNotFound()

        if limit is None:
            page = await self.ledger.page(conversation_id, direction=PageDirection.NEWEST_FIRST)
        else:
            page = await self.ledger.page(conversation_id, limit, PageDirection.NEWEST_FIRST)
        page.reverse()

        usernames: Dict[str, str] = {me.id: me.username}
        for message in page:
            if message.sender_id not in usernames:
                sender = await self.registry.get(message.sender_id)
                usernames[message.sender_id] = sender.username if sender else "unknown"

        return [
            ConversationMessage(
                **message.model_dump(), sender_username=usernames[message.sender_id]
            )
            for message in page
        ]
