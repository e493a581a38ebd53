"""Tests for the Supabase HTTP data access layer."""

import json

import httpx
import pytest

from mindful_diary.services.token_service import TokenService, resolve_session_user
from mindful_diary.utils.database import SupabaseStore
from mindful_diary.utils.errors import AuthenticationError, PersistenceError


def make_store(handler, api_key="service-key"):
    """Build a store whose requests are answered by ``handler``."""
    requests = []

    def _record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    store = SupabaseStore(
        "https://example.supabase.co/", api_key, transport=httpx.MockTransport(_record)
    )
    return store, requests


class TestSelect:
    """Tests for SupabaseStore.select."""

    @pytest.mark.asyncio
    async def test_select_builds_postgrest_query(self):
        """Filters become eq. params, order and columns are passed through."""
        store, requests = make_store(lambda r: httpx.Response(200, json=[{"user_id": "u1"}]))

        rows = await store.select(
            "api_tokens", columns="user_id", filters={"token": "mdt_x"}, order="created_at.desc"
        )

        assert rows == [{"user_id": "u1"}]
        request = requests[0]
        assert request.method == "GET"
        assert request.url.path == "/rest/v1/api_tokens"
        assert request.url.params["select"] == "user_id"
        assert request.url.params["token"] == "eq.mdt_x"
        assert request.url.params["order"] == "created_at.desc"

    @pytest.mark.asyncio
    async def test_service_key_used_as_bearer_by_default(self):
        """Without an access token the API key authorizes the request."""
        store, requests = make_store(lambda r: httpx.Response(200, json=[]))

        await store.select("diary_entries")

        assert requests[0].headers["apikey"] == "service-key"
        assert requests[0].headers["Authorization"] == "Bearer service-key"

    @pytest.mark.asyncio
    async def test_access_token_overrides_authorization(self):
        """User access tokens are forwarded so row-level policies apply."""
        store, requests = make_store(lambda r: httpx.Response(200, json=[]), api_key="anon-key")

        await store.select("diary_entries", access_token="user-jwt")

        assert requests[0].headers["apikey"] == "anon-key"
        assert requests[0].headers["Authorization"] == "Bearer user-jwt"

    @pytest.mark.asyncio
    async def test_error_status_raises_persistence_error(self):
        """PostgREST error bodies surface their message."""
        store, _ = make_store(
            lambda r: httpx.Response(400, json={"message": "relation does not exist"})
        )

        with pytest.raises(PersistenceError, match="relation does not exist"):
            await store.select("missing")

    @pytest.mark.asyncio
    async def test_network_error_raises_persistence_error(self):
        """Transport failures are wrapped as PersistenceError."""
        def boom(request):
            raise httpx.ConnectError("connection refused", request=request)

        store, _ = make_store(boom)

        with pytest.raises(PersistenceError, match="connection refused"):
            await store.select("diary_entries")


class TestWrites:
    """Tests for insert, update and delete."""

    @pytest.mark.asyncio
    async def test_insert_returns_single_row(self):
        """Insert asks for the representation and returns the stored row."""
        stored = {"id": "e1", "user_id": "u1", "content": "hi", "mood": None,
                  "created_at": "2024-01-15T10:00:00+00:00"}
        store, requests = make_store(lambda r: httpx.Response(201, json=[stored]))

        row = await store.insert("diary_entries", {"user_id": "u1", "content": "hi", "mood": None})

        assert row == stored
        request = requests[0]
        assert request.method == "POST"
        assert request.headers["Prefer"] == "return=representation"
        assert json.loads(request.content) == [{"user_id": "u1", "content": "hi", "mood": None}]

    @pytest.mark.asyncio
    async def test_insert_without_row_fails(self):
        """An empty representation is treated as a failed write."""
        store, _ = make_store(lambda r: httpx.Response(201, json=[]))

        with pytest.raises(PersistenceError):
            await store.insert("diary_entries", {"content": "hi"})

    @pytest.mark.asyncio
    async def test_update_returns_affected_count(self):
        store, requests = make_store(lambda r: httpx.Response(200, json=[{"id": "t1"}]))

        count = await store.update("api_tokens", {"last_used_at": "now"}, filters={"token": "abc"})

        assert count == 1
        assert requests[0].method == "PATCH"
        assert requests[0].url.params["token"] == "eq.abc"

    @pytest.mark.asyncio
    async def test_delete_filters_on_every_column(self):
        """Delete is scoped to all given columns."""
        store, requests = make_store(lambda r: httpx.Response(200, json=[]))

        count = await store.delete("api_tokens", filters={"id": "t1", "user_id": "u1"})

        assert count == 0
        params = requests[0].url.params
        assert params["id"] == "eq.t1"
        assert params["user_id"] == "eq.u1"


class TestGetUser:
    """Tests for session resolution through the auth API."""

    @pytest.mark.asyncio
    async def test_valid_session_returns_user(self):
        store, requests = make_store(
            lambda r: httpx.Response(200, json={"id": "u1", "email": "a@b.c"}), api_key="anon-key"
        )

        user = await store.get_user("user-jwt")

        assert user["id"] == "u1"
        assert requests[0].url.path == "/auth/v1/user"
        assert requests[0].headers["Authorization"] == "Bearer user-jwt"
        assert requests[0].headers["apikey"] == "anon-key"

    @pytest.mark.asyncio
    async def test_rejected_session_returns_none(self):
        store, _ = make_store(lambda r: httpx.Response(401, json={"msg": "invalid JWT"}))

        assert await store.get_user("expired") is None

    @pytest.mark.asyncio
    async def test_empty_token_skips_request(self):
        store, requests = make_store(lambda r: httpx.Response(200, json={"id": "u1"}))

        assert await store.get_user("") is None
        assert requests == []


class TestMalformedReplies:
    """Replies that parse badly stay inside the error taxonomy."""

    @pytest.mark.asyncio
    async def test_non_json_success_body_raises_persistence_error(self):
        """A gateway HTML page with a 200 status is a failed read."""
        store, _ = make_store(lambda r: httpx.Response(200, text="<html>gateway</html>"))

        with pytest.raises(PersistenceError, match="Malformed response"):
            await store.select("api_tokens", filters={"token": "mdt_abc"})

    @pytest.mark.asyncio
    async def test_non_json_lookup_reply_is_invalid_token(self):
        """Token lookup through a broken gateway is an authentication failure."""
        store, _ = make_store(lambda r: httpx.Response(200, text="<html>gateway</html>"))

        with pytest.raises(AuthenticationError, match="Invalid token"):
            await TokenService(store).verify_bearer("Bearer mdt_abc")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", [
        httpx.Response(200, json=[]),
        httpx.Response(200, json="u1"),
        httpx.Response(200, text="<html>gateway</html>"),
    ])
    async def test_non_object_user_reply_returns_none(self, reply):
        store, _ = make_store(lambda r: reply)

        assert await store.get_user("tok") is None

    @pytest.mark.asyncio
    async def test_non_object_user_reply_is_unauthorized(self):
        store, _ = make_store(lambda r: httpx.Response(200, json=[]), api_key="anon-key")

        with pytest.raises(AuthenticationError, match="Unauthorized"):
            await resolve_session_user(store, "Bearer tok")
