"""Shared pytest fixtures for mindful-diary tests."""

import os

# Keep test runs from writing logs/app.log
os.environ.setdefault("LOG_FILE", "")

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from main import create_app
from mindful_diary.utils.config import Settings
from mindful_diary.utils.errors import PersistenceError

USER_ID = "user-1"
OTHER_USER_ID = "user-2"
SESSION_TOKEN = "session-user-1"
OTHER_SESSION_TOKEN = "session-user-2"


class FakeStore:
    """In-memory stand-in for SupabaseStore.

    Honors equality filters, ``column.asc|desc`` ordering and column
    projection. Set ``fail[op] = message`` to make an operation raise
    PersistenceError. ``view(name)`` returns a second client over the same
    tables; every call is recorded in ``calls`` as ``(name, op, table)``.
    """

    def __init__(self, name: str = "admin"):
        self.name = name
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            "diary_entries": [],
            "api_tokens": [],
        }
        self.users: Dict[str, Dict[str, Any]] = {}
        self.fail: Dict[str, str] = {}
        self.access_tokens: List[Optional[str]] = []
        self.calls: List[Tuple[str, str, str]] = []
        self._clock = [datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)]

    def view(self, name: str) -> "FakeStore":
        other = FakeStore(name)
        other.tables = self.tables
        other.users = self.users
        other.fail = self.fail
        other.access_tokens = self.access_tokens
        other.calls = self.calls
        other._clock = self._clock
        return other

    def _check(self, op: str, table: str) -> None:
        self.calls.append((self.name, op, table))
        if op in self.fail:
            raise PersistenceError(self.fail[op])

    def _now(self) -> str:
        self._clock[0] += timedelta(seconds=1)
        return self._clock[0].isoformat()

    def served(self, table: str) -> set:
        """Names of the clients that touched ``table``."""
        return {name for name, _, t in self.calls if t == table}

    @staticmethod
    def _matches(row: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
        return all(row.get(k) == v for k, v in (filters or {}).items())

    async def select(self, table, columns="*", filters=None, order=None, access_token=None):
        self._check("select", table)
        self.access_tokens.append(access_token)
        rows = [r for r in self.tables[table] if self._matches(r, filters)]
        if order:
            column, direction = order.split(".")
            rows.sort(key=lambda r: r[column], reverse=direction == "desc")
        if columns != "*":
            wanted = columns.split(",")
            rows = [{k: r.get(k) for k in wanted} for r in rows]
        return [dict(r) for r in rows]

    async def insert(self, table, row, access_token=None):
        self._check("insert", table)
        self.access_tokens.append(access_token)
        now = self._now()
        stored = {"id": str(uuid4()), "created_at": now, **row}
        if table == "diary_entries":
            stored.setdefault("updated_at", now)
        if table == "api_tokens":
            stored.setdefault("last_used_at", None)
        self.tables[table].append(stored)
        return dict(stored)

    async def update(self, table, values, filters, access_token=None):
        self._check("update", table)
        count = 0
        for row in self.tables[table]:
            if self._matches(row, filters):
                row.update(values)
                count += 1
        return count

    async def delete(self, table, filters, access_token=None):
        self._check("delete", table)
        self.access_tokens.append(access_token)
        before = len(self.tables[table])
        self.tables[table] = [r for r in self.tables[table] if not self._matches(r, filters)]
        return before - len(self.tables[table])

    async def get_user(self, access_token):
        self.calls.append((self.name, "get_user", "auth"))
        return self.users.get(access_token)

    # helpers for seeding
    def add_token(self, user_id: str, token: str, name: str = "cli") -> Dict[str, Any]:
        row = {
            "id": str(uuid4()),
            "user_id": user_id,
            "token": token,
            "name": name,
            "created_at": self._now(),
            "last_used_at": None,
        }
        self.tables["api_tokens"].append(row)
        return row


@pytest.fixture
def settings():
    """Settings with every secret configured."""
    return Settings(
        _env_file=None,
        supabase_url="https://example.supabase.co",
        supabase_service_role_key="service-key",
        supabase_anon_key="anon-key",
        log_file="",
    )


@pytest.fixture
def store():
    fake = FakeStore()
    fake.users[SESSION_TOKEN] = {"id": USER_ID, "email": "one@example.com"}
    fake.users[OTHER_SESSION_TOKEN] = {"id": OTHER_USER_ID, "email": "two@example.com"}
    return fake


@pytest.fixture
def client(settings, store):
    app = create_app(settings, admin_store=store, public_store=store.view("public"))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def client_factory(store):
    """Build a client around custom settings (e.g. missing secrets)."""

    def _create(**overrides):
        values = {
            "supabase_url": "https://example.supabase.co",
            "supabase_service_role_key": "service-key",
            "supabase_anon_key": "anon-key",
            "log_file": "",
        }
        values.update(overrides)
        app = create_app(Settings(_env_file=None, **values), admin_store=store, public_store=store.view("public"))
        return TestClient(app)

    return _create


@pytest.fixture
def api_token(store):
    """A valid bearer token owned by USER_ID."""
    token = "mdt_" + "ab" * 32
    store.add_token(USER_ID, token)
    return token


@pytest.fixture
def bearer(api_token):
    return {"Authorization": f"Bearer {api_token}"}


@pytest.fixture
def session_headers():
    return {"Authorization": f"Bearer {SESSION_TOKEN}"}


@pytest.fixture
def other_session_headers():
    return {"Authorization": f"Bearer {OTHER_SESSION_TOKEN}"}
