import pytest

from chui.chat.facade import Messenger
from chui.core.session import Session
from chui.storage.memory_store import MemoryStore


class TickClock:
    """Deterministic clock: every call is one millisecond later."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


@pytest.fixture
def clock():
    return TickClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def messenger(store, clock):
    return Messenger(store, clock=clock)


@pytest.fixture
def sign_in(messenger):
    """Create (or re-link) a profile and return a Session for it."""

    async def _sign_in(username: str) -> Session:
        auth_user_id = f"auth-{username.strip().lower()}"
        await messenger.registry.resolve_or_create(username, auth_user_id=auth_user_id)
        return Session(auth_user_id=auth_user_id, access_token="token")

    return _sign_in
