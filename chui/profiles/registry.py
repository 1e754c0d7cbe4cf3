import logging
from typing import Callable, List, Optional

from chui.core.errors import AuthAlreadyLinked
from chui.storage.base import DocumentStore, UniqueViolation
from chui.storage.models import PROFILES
from chui.utils.clock import now_ms

from .schemas import User
from .usernames import parse_username

logger = logging.getLogger(__name__)


class IdentityRegistry:
    """Maps normalized usernames to stable profile records."""

    def __init__(
        self,
        store: DocumentStore,
        allow_underscore: bool = False,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.allow_underscore = allow_underscore
        self.clock = clock

    def parse(self, raw_username) -> str:
        return parse_username(raw_username, self.allow_underscore)

    async def resolve_or_create(
        self,
        username: str,
        auth_user_id: Optional[str] = None,
        email: Optional[str] = None,
    ) -> str:
        """
        Return the id of the profile for ``username``, creating it if needed.

        An existing profile gets ``updated_at`` refreshed. A supplied auth
        reference or email overwrites the stored one; omitting them never
        clears what is already there. An auth reference already held by a
        different profile is refused with AuthAlreadyLinked.
        """
        username = self.parse(username)
        now = self.clock()

        existing = await self.store.find_one(PROFILES, username=username)
        if auth_user_id is not None:
            holder = await self.store.find_one(PROFILES, auth_user_id=auth_user_id)
            if holder and (existing is None or holder["id"] != existing["id"]):
                raise AuthAlreadyLinked()

        if existing is None:
            doc = {
                "username": username,
                "auth_user_id": auth_user_id,
                "email": email,
                "created_at": now,
                "updated_at": now,
            }
            try:
                user_id = await self.store.insert(PROFILES, doc)
                logger.info(f"profile_created username={username} user_id={user_id}")
                return user_id
            except UniqueViolation:
                # Lost a race with a concurrent registration for the same name
                existing = await self.store.find_one(PROFILES, username=username)
                if existing is None:
                    raise
                logger.info(f"profile_create_race_resolved username={username}")

        fields = {"updated_at": now}
        if auth_user_id is not None:
            fields["auth_user_id"] = auth_user_id
        if email is not None:
            fields["email"] = email
        await self.store.patch(PROFILES, existing["id"], fields)
        return existing["id"]

    async def lookup(self, username: str) -> Optional[User]:
        username = self.parse(username)
        doc = await self.store.find_one(PROFILES, username=username)
        return User.model_validate(doc) if doc else None

    async def get(self, user_id: str) -> Optional[User]:
        doc = await self.store.get(PROFILES, user_id)
        return User.model_validate(doc) if doc else None

    async def get_by_auth_ref(self, auth_user_id: str) -> Optional[User]:
        doc = await self.store.find_one(PROFILES, auth_user_id=auth_user_id)
        return User.model_validate(doc) if doc else None

    async def list_profiles(self) -> List[User]:
        docs = await self.store.find(PROFILES, {}, order_by="username")
        return [User.model_validate(doc) for doc in docs]
