"""Tests for the Supabase-backed store against a stand-in PostgREST client."""

from types import SimpleNamespace

import pytest
from postgrest.exceptions import APIError

from chui.chat.facade import Messenger
from chui.core.errors import ConversationNotFound, StorageUnavailable
from chui.core.session import Session
from chui.storage.base import RecordNotFound, StorageError, UniqueViolation
from chui.storage.supabase_store import SupabaseStore


def api_error(code: str) -> APIError:
    return APIError({"message": f"error {code}", "code": code, "hint": None, "details": None})


class FakeQuery:
    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.filters = {}
        self.payload = None
        self.action = "select"

    def select(self, *columns):
        return self

    def eq(self, field, value):
        self.filters[field] = value
        return self

    def order(self, field, desc=False):
        return self

    def limit(self, n):
        return self

    def insert(self, doc):
        self.action, self.payload = "insert", doc
        return self

    def update(self, fields):
        self.action, self.payload = "update", fields
        return self

    async def execute(self):
        error = self.client.errors.get((self.table, self.action))
        if error:
            raise error
        rows = self.client.rows.setdefault(self.table, [])
        if self.action == "insert":
            row = {**self.payload, "id": f"{self.table}-{len(rows) + 1}"}
            rows.append(row)
            return SimpleNamespace(data=[row])

        matched = [r for r in rows if all(r.get(f) == v for f, v in self.filters.items())]
        if self.action == "update":
            for row in matched:
                row.update(self.payload)
        return SimpleNamespace(data=matched)


class FakeClient:
    def __init__(self):
        self.rows = {}
        self.errors = {}

    def table(self, name):
        return FakeQuery(self, name)


@pytest.fixture
def client():
    return FakeClient()


class TestSupabaseStore:
    @pytest.mark.asyncio
    async def test_insert_find_patch(self, client):
        store = SupabaseStore(client)
        doc_id = await store.insert("profiles", {"username": "alice"})

        assert (await store.find_one("profiles", username="alice"))["id"] == doc_id
        await store.patch("profiles", doc_id, {"updated_at": 5})
        assert (await store.get("profiles", doc_id))["updated_at"] == 5

    @pytest.mark.asyncio
    async def test_patch_missing_row(self, client):
        with pytest.raises(RecordNotFound):
            await SupabaseStore(client).patch("profiles", "nope", {"updated_at": 1})

    @pytest.mark.asyncio
    async def test_unique_violation_mapped(self, client):
        client.errors[("conversations", "insert")] = api_error("23505")

        with pytest.raises(UniqueViolation):
            await SupabaseStore(client).insert("conversations", {"pair_key": "a:b"})

    @pytest.mark.asyncio
    async def test_malformed_key_reads_as_missing(self, client):
        client.errors[("conversations", "select")] = api_error("22P02")
        store = SupabaseStore(client)

        assert await store.get("conversations", "abc") is None
        assert await store.find("conversations", {"id": "abc"}) == []

    @pytest.mark.asyncio
    async def test_malformed_value_on_write_is_storage_error(self, client):
        client.errors[("messages", "insert")] = api_error("22P02")

        with pytest.raises(StorageError):
            await SupabaseStore(client).insert("messages", {"conversation_id": "abc"})

    @pytest.mark.asyncio
    async def test_other_errors_are_storage_errors(self, client):
        client.errors[("profiles", "select")] = api_error("57P01")

        with pytest.raises(StorageError):
            await SupabaseStore(client).find_one("profiles", username="alice")


class TestMessengerOverSupabase:
    @pytest.mark.asyncio
    async def test_malformed_conversation_id_is_not_found(self, client, clock):
        messenger = Messenger(SupabaseStore(client), clock=clock)
        await messenger.registry.resolve_or_create("alice", auth_user_id="auth-alice")
        client.errors[("conversations", "select")] = api_error("22P02")

        with pytest.raises(ConversationNotFound):
            await messenger.list_conversation_messages(Session(auth_user_id="auth-alice"), "abc")

    @pytest.mark.asyncio
    async def test_outage_is_still_unavailable(self, client, clock):
        messenger = Messenger(SupabaseStore(client), clock=clock)
        await messenger.registry.resolve_or_create("alice", auth_user_id="auth-alice")
        client.errors[("conversations", "select")] = api_error("57P01")

        with pytest.raises(StorageUnavailable):
            await messenger.list_conversation_messages(Session(auth_user_id="auth-alice"), "abc")
