"""HTTP surface tests: routers, dependency wiring and error mapping."""

import asyncio
import time

import jwt
import pytest
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from fastapi.testclient import TestClient

from chui.chat.facade import Messenger
from chui.core import dependencies
from chui.core.config import Settings
from chui.core.dependencies import security, verify_token
from chui.core.session import Session
from chui.main import create_app
from chui.storage.base import StorageError
from chui.storage.memory_store import MemoryStore


def bearer(auth_user_id: str) -> dict:
    return {"Authorization": f"Bearer {auth_user_id}"}


@pytest.fixture
def client():
    messenger = Messenger(MemoryStore())

    async def seed():
        for name in ["alice", "bob", "mallory"]:
            await messenger.registry.resolve_or_create(name, auth_user_id=f"auth-{name}")

    asyncio.run(seed())

    app = create_app(Settings(storage="memory"))
    app.state.messenger = messenger

    # the bearer token is the auth user id
    def fake_verify_token(credentials=Depends(security)):
        if credentials is None:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return Session(auth_user_id=credentials.credentials)

    app.dependency_overrides[verify_token] = fake_verify_token

    with TestClient(app) as c:
        yield c


class TestChatRoutes:
    def test_send_and_read_back(self, client):
        res = client.post(
            "/chat/messages", json={"to_username": "bob", "body": "hello bob"}, headers=bearer("auth-alice")
        )
        assert res.status_code == 201
        conversation_id = res.json()["conversation_id"]

        res = client.post(
            "/chat/messages", json={"to_username": "alice", "body": "hi alice"}, headers=bearer("auth-bob")
        )
        assert res.json()["conversation_id"] == conversation_id

        res = client.get(f"/chat/conversations/{conversation_id}/messages", headers=bearer("auth-alice"))
        assert res.status_code == 200
        assert [m["body"] for m in res.json()["messages"]] == ["hello bob", "hi alice"]

        res = client.get("/chat/conversations", headers=bearer("auth-bob"))
        [summary] = res.json()["conversations"]
        assert summary["other_user"]["username"] == "alice"
        assert summary["last_message_preview"] == "hi alice"

    def test_error_kinds_map_to_status(self, client):
        headers = bearer("auth-alice")
        cases = [
            ({"to_username": "alice", "body": "me"}, 400),
            ({"to_username": "nobody", "body": "hi"}, 404),
            ({"to_username": "bob", "body": "   "}, 422),
            ({"to_username": "b", "body": "hi"}, 422),
        ]
        for payload, expected in cases:
            res = client.post("/chat/messages", json=payload, headers=headers)
            assert res.status_code == expected, payload
            assert res.json()["detail"]

    def test_missing_token(self, client):
        assert client.get("/chat/conversations").status_code == 401

    def test_unknown_profile(self, client):
        res = client.get("/chat/conversations", headers=bearer("auth-ghost"))
        assert res.status_code == 404

    def test_outsider_gets_404(self, client):
        res = client.post(
            "/chat/messages", json={"to_username": "bob", "body": "secret"}, headers=bearer("auth-alice")
        )
        conversation_id = res.json()["conversation_id"]

        res = client.get(f"/chat/conversations/{conversation_id}/messages", headers=bearer("auth-mallory"))
        assert res.status_code == 404

    def test_message_limit_clamped(self, client):
        for i in range(3):
            res = client.post(
                "/chat/messages", json={"to_username": "bob", "body": f"m{i}"}, headers=bearer("auth-alice")
            )
        conversation_id = res.json()["conversation_id"]

        res = client.get(
            f"/chat/conversations/{conversation_id}/messages?limit=500", headers=bearer("auth-alice")
        )
        assert len(res.json()["messages"]) == 3


class TestProfileRoutes:
    def test_upsert(self, client):
        res = client.post("/profiles/upsert", json={"username": " Carol "})
        assert res.status_code == 200
        assert res.json()["username"] == "carol"

        assert client.post("/profiles/upsert", json={"username": "c!"}).status_code == 422

    def test_list_profiles(self, client):
        res = client.get("/profiles", headers=bearer("auth-alice"))
        assert [p["username"] for p in res.json()["profiles"]] == ["alice", "bob", "mallory"]

    def test_me(self, client):
        assert client.get("/profiles/me").json() == {"profile": None}


class TestAppWiring:
    def test_health_and_request_id(self, client):
        res = client.get("/health", headers={"X-Request-ID": "req-1"})
        assert res.json() == {"status": "ok"}
        assert res.headers["X-Request-ID"] == "req-1"

    def test_auth_routes_need_supabase(self, client):
        res = client.post("/auth/login", json={"login": "alice", "password": "password1"})
        assert res.status_code == 503

    def test_register_storage_failure_is_500(self):
        class DownStore(MemoryStore):
            async def find(self, table, equals, order_by=None, descending=False, limit=None):
                raise StorageError(f"{table}: connection refused")

        app = create_app(Settings(storage="memory"))
        app.state.messenger = Messenger(DownStore())
        app.dependency_overrides[dependencies.get_supabase] = lambda: object()

        with TestClient(app) as c:
            res = c.post("/auth/register", json={"username": "alice", "password": "password123"})

        assert res.status_code == 500
        assert res.json()["detail"] == "An internal server error occurred during registration."


class TestVerifyToken:
    SECRET = "test-secret"
    URL = "https://example.supabase.co"

    @pytest.fixture(autouse=True)
    def jwt_settings(self, monkeypatch):
        monkeypatch.setattr(
            dependencies, "settings", Settings(supabase_url=self.URL, jwt_secret=self.SECRET)
        )

    def token(self, **claims):
        payload = {"sub": "auth-alice", "iss": f"{self.URL}/auth/v1", "exp": int(time.time()) + 60}
        payload.update(claims)
        return jwt.encode(payload, self.SECRET, algorithm="HS256")

    def credentials(self, token):
        return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)

    def test_valid_token(self):
        token = self.token(email="alice@users.chui.local")
        session = verify_token(self.credentials(token))
        assert session == Session(
            auth_user_id="auth-alice", access_token=token, email="alice@users.chui.local"
        )

    def test_expired_token(self):
        with pytest.raises(HTTPException) as excinfo:
            verify_token(self.credentials(self.token(exp=int(time.time()) - 3600)))
        assert excinfo.value.detail == "Token expired"

    def test_wrong_issuer(self):
        with pytest.raises(HTTPException) as excinfo:
            verify_token(self.credentials(self.token(iss="https://evil.example/auth/v1")))
        assert excinfo.value.status_code == 401

    def test_missing_credentials(self):
        with pytest.raises(HTTPException) as excinfo:
            verify_token(None)
        assert excinfo.value.status_code == 401
