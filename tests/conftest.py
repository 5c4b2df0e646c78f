"""
Signal edge: pytest fixtures.

Provides:
- Test settings (explicit, never read from the process environment)
- An in-memory stand-in for the database/auth provider behind httpx.MockTransport
- The FastAPI app and an async HTTP client bound to it
"""
import itertools
import json
from typing import Any, AsyncGenerator
from urllib.parse import parse_qsl

import httpx
import pytest
import pytest_asyncio

from signal_edge.config import Settings
from signal_edge.main import create_app


# =============================================================================
# Constants
# =============================================================================
PROVIDER_URL = "https://provider.test"
SERVICE_KEY = "service-role-key-for-tests"
ANON_KEY = "anon-key-for-tests"

USER_TOKEN = "user-token-alice"
USER_ID = "11111111-1111-1111-1111-111111111111"


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _matches(row: dict[str, Any], column: str, expr: str) -> bool:
    op, _, raw = expr.partition(".")
    current = _as_text(row.get(column))
    if op == "eq":
        return current == raw
    if op == "neq":
        return current != raw
    if op == "in":
        return current in raw.strip("()").split(",")
    if op == "is":
        return current == raw
    if op in ("gt", "gte", "lt", "lte"):
        if row.get(column) is None:
            return False
        return {
            "gt": current > raw,
            "gte": current >= raw,
            "lt": current < raw,
            "lte": current <= raw,
        }[op]
    raise AssertionError(f"unsupported filter operator {op!r}")


class FakeProvider:
    """Just enough of PostgREST + the auth user endpoint for the handlers under test."""

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.users: dict[str, dict[str, Any]] = {}
        self.failures: dict[str, tuple[int, dict[str, Any]]] = {}
        self.crash_tables: set[str] = set()
        self.requests: list[httpx.Request] = []
        self._ids = itertools.count(1)

    # --- seeding -----------------------------------------------------------
    def add_user(self, token: str, user_id: str, *, role: str = "user", **profile: Any) -> None:
        self.users[token] = {"id": user_id, "email": f"{user_id}@example.test"}
        self.tables.setdefault("profiles", []).append(
            {"user_id": user_id, "role": role, "created_at": "2025-01-01T00:00:00+00:00", **profile}
        )

    def seed(self, table: str, *rows: dict[str, Any]) -> None:
        self.tables.setdefault(table, []).extend(dict(r) for r in rows)

    def fail(self, table: str, status: int = 400, message: str = "relation does not exist", code: str = "42P01") -> None:
        self.failures[table] = (status, {"message": message, "code": code})

    def rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables.get(table, [])

    # --- transport ---------------------------------------------------------
    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/auth/v1/user":
            auth = request.headers.get("authorization", "")
            token = auth[len("Bearer "):] if auth.startswith("Bearer ") else ""
            user = self.users.get(token)
            if user is None:
                return httpx.Response(401, json={"msg": "invalid JWT"})
            return httpx.Response(200, json=user)

        assert path.startswith("/rest/v1/"), path
        table = path[len("/rest/v1/"):]
        if table in self.crash_tables:
            raise RuntimeError(f"provider exploded on {table}")
        if table in self.failures:
            status, body = self.failures[table]
            return httpx.Response(status, json=body)

        if request.method == "POST":
            row = json.loads(request.content)
            row.setdefault("id", f"{table}-{next(self._ids)}")
            self.tables.setdefault(table, []).append(row)
            return httpx.Response(201, json=[row])

        params = parse_qsl(request.url.query.decode())
        rows = list(self.tables.get(table, []))
        limit = None
        order = None
        for key, value in params:
            if key == "select":
                continue
            if key == "limit":
                limit = int(value)
            elif key == "order":
                order = value
            else:
                rows = [r for r in rows if _matches(r, key, value)]
        if order:
            column, _, direction = order.partition(".")
            rows.sort(key=lambda r: _as_text(r.get(column)), reverse=direction == "desc")
        if limit is not None:
            rows = rows[:limit]
        return httpx.Response(200, json=rows)


# =============================================================================
# Fixtures
# =============================================================================
@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        SUPABASE_URL=PROVIDER_URL,
        SUPABASE_ANON_KEY=ANON_KEY,
        SUPABASE_SERVICE_ROLE_KEY=SERVICE_KEY,
        ENV="test",
        METRICS_ENABLED=True,
    )


@pytest.fixture
def fake_provider() -> FakeProvider:
    provider = FakeProvider()
    provider.add_user(USER_TOKEN, USER_ID)
    return provider


@pytest.fixture
def provider_transport(fake_provider: FakeProvider) -> httpx.MockTransport:
    return httpx.MockTransport(fake_provider.handle)


@pytest.fixture
def app(settings: Settings, provider_transport: httpx.MockTransport):
    return create_app(settings, provider_transport=provider_transport)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {USER_TOKEN}"}


@pytest.fixture
def user_id() -> str:
    return USER_ID
