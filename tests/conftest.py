"""Shared test fixtures.

Provides:
  - An in-memory stand-in for the supabase query builder and auth client
  - Mock HTTP transport for httpx (intercepts all vendor requests)
  - A FastAPI TestClient wired to the fakes through dependency overrides
"""

from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from app.config import Settings, get_settings
from app.core.dependencies import get_preference_store
from app.database.supabase_client import (
    get_admin_supabase, get_service_supabase, get_sign_in_supabase, get_supabase
)
from app.main import app, limiter
from app.modules.access.preferences import MemoryPreferenceStore
from app.modules.auth.service import clear_auth_cache
from app.modules.brain.routes import get_http_client


SEED_TABLES: Dict[str, List[Dict[str, Any]]] = {
    "profiles": [
        {"id": "u-admin", "email": "ops@caspergroup.com", "role": "admin"},
        {"id": "u1", "email": "line@caspergroup.com", "role": "employee", "location_id": "loc-42"},
        {"id": "u-partner", "email": "partner@caspergroup.com", "role": "partner", "brand_id": "b-2"},
        {"id": "u-odd", "email": "odd@caspergroup.com", "role": "manager"},
    ],
    "cg_locations": [
        {"id": "loc-42", "name": "Washington Parq"},
        {"id": "loc-1", "name": "Atlanta Midtown"},
        {"id": "loc-7", "name": "Buckhead"},
    ],
    "cg_brands": [
        {"id": "b-2", "name": "Tossd"},
        {"id": "b-1", "name": "Angel Wings"},
        {"id": "b-3", "name": "Sweet Chaos"},
    ],
    "user_location_access": [
        {"user_id": "u1", "location_id": "loc-42"},
        {"user_id": "u-partner", "location_id": "loc-7"},
    ],
    "user_brand_access": [
        {"user_id": "u1", "brand_id": "b-1"},
        {"user_id": "u1", "brand_id": "b-3"},
        {"user_id": "u-partner", "brand_id": "b-2"},
    ],
}

TOKENS = {
    "tok-admin": "u-admin",
    "tok-u1": "u1",
    "tok-partner": "u-partner",
    "tok-odd": "u-odd",
    "tok-ghost": "u-ghost",
}

# Rows a signed-in anon client can read under row-level security
USER_SCOPED_COLUMNS = {
    "profiles": "id",
    "user_location_access": "user_id",
    "user_brand_access": "user_id",
}


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self.ops: List[tuple] = []
        self._order: Optional[tuple] = None
        self._single = False
        self._limit: Optional[int] = None

    def select(self, columns: str = "*"):
        self.ops.append(("select", columns))
        return self

    def eq(self, column: str, value: Any):
        self.ops.append(("eq", column, value))
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column: str, values):
        values = set(values)
        self.ops.append(("in", column, tuple(sorted(values))))
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column: str, desc: bool = False):
        self._order = (column, desc)
        return self

    def limit(self, count: int):
        self._limit = count
        return self

    def single(self):
        self._single = True
        return self

    def execute(self):
        self.db.calls.append((self.table_name, tuple(self.ops)))
        if self.table_name in self.db.failing:
            raise RuntimeError(f"permission denied for table {self.table_name}")
        rows = [dict(r) for r in self.db.tables.get(self.table_name, []) if all(f(r) for f in self.filters)]
        scope_column = USER_SCOPED_COLUMNS.get(self.table_name)
        if scope_column and self.db.auth.session is not None:
            rows = [r for r in rows if r.get(scope_column) == self.db.auth.session.user.id]
        if self._order:
            column, desc = self._order
            rows.sort(key=lambda r: r.get(column) or "", reverse=desc)
        if self._limit is not None:
            rows = rows[:self._limit]
        if self._single:
            if len(rows) != 1:
                raise RuntimeError("JSON object requested, multiple (or no) rows returned")
            return SimpleNamespace(data=rows[0])
        return SimpleNamespace(data=rows)


class FakeAdminAuth:
    def __init__(self):
        self.revoked: List[str] = []

    def sign_out(self, jwt: str, scope: str = "global"):
        self.revoked.append(jwt)


class FakeAuth:
    def __init__(self, tokens: Dict[str, str], passwords: Optional[Dict[str, tuple]] = None):
        self.tokens = tokens
        self.passwords = passwords or {}
        self.session = None
        self.sign_out_calls = 0
        self.admin = FakeAdminAuth()

    def get_user(self, jwt: str = None):
        user_id = self.tokens.get(jwt)
        if user_id is None:
            raise RuntimeError("invalid JWT: token is expired")
        return SimpleNamespace(user=SimpleNamespace(
            id=user_id, email=f"{user_id}@caspergroup.com", user_metadata={}, app_metadata={}
        ))

    def sign_in_with_password(self, credentials: Dict[str, str]):
        entry = self.passwords.get(credentials["email"])
        if entry is None or entry[0] != credentials["password"]:
            raise RuntimeError("Invalid login credentials")
        user_id, token = entry[1], entry[2]
        user = SimpleNamespace(id=user_id, email=credentials["email"])
        self.session = SimpleNamespace(user=user, access_token=token)
        return SimpleNamespace(user=user, session=self.session)

    def get_session(self):
        return self.session

    def sign_out(self):
        self.sign_out_calls += 1
        self.session = None


class FakeSupabase:
    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None, failing=()):
        source = SEED_TABLES if tables is None else tables
        self.tables = {name: [dict(r) for r in rows] for name, rows in source.items()}
        self.failing = set(failing)
        self.calls: List[tuple] = []
        self.auth = FakeAuth(TOKENS, {
            "line@caspergroup.com": ("pw", "u1", "tok-u1"),
            "ops@caspergroup.com": ("pw", "u-admin", "tok-admin"),
        })

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def tables_read(self) -> List[str]:
        return [name for name, _ in self.calls]


class MockTransport(httpx.AsyncBaseTransport):
    """Mock HTTP transport that returns preconfigured responses.

    Each call pops the next response from the list and records the request.
    If the list is exhausted, returns a 500 error.
    """

    def __init__(self, responses: Optional[List[httpx.Response]] = None) -> None:
        self.responses = list(responses or [])
        self.requests: List[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responses:
            response = self.responses.pop(0)
            response.stream = httpx.ByteStream(response.content)
            return response
        return httpx.Response(500, json={"error": "No more mock responses"})


@pytest.fixture(autouse=True)
def _clear_auth_cache():
    clear_auth_cache()
    yield
    clear_auth_cache()


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    limiter.reset()
    yield


@pytest.fixture
def db() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def prefs() -> MemoryPreferenceStore:
    return MemoryPreferenceStore()


@pytest.fixture
def proxy_settings() -> Settings:
    return Settings(
        supabase_url="https://project.supabase.test",
        supabase_key="anon-key",
        supabase_service_role_key="service-role-key",
        airtable_api_key="airtable-key",
        airtable_base_id="appBase123",
        n8n_base_url="https://n8n.caspergroup.com/webhook/",
        n8n_webhook_token="n8n-token",
    )


@pytest.fixture
def transport() -> MockTransport:
    return MockTransport()


@pytest.fixture
def sign_in_clients() -> List[FakeSupabase]:
    """Every fresh client handed to a login request, in order."""
    return []


@pytest.fixture
def client(db, prefs, proxy_settings, transport, sign_in_clients):
    def _sign_in_client():
        sign_in_clients.append(FakeSupabase())
        return sign_in_clients[-1]

    app.dependency_overrides[get_supabase] = lambda: db
    app.dependency_overrides[get_service_supabase] = lambda: db
    app.dependency_overrides[get_admin_supabase] = lambda: db
    app.dependency_overrides[get_sign_in_supabase] = _sign_in_client
    app.dependency_overrides[get_preference_store] = lambda: prefs
    app.dependency_overrides[get_settings] = lambda: proxy_settings
    app.dependency_overrides[get_http_client] = lambda: httpx.AsyncClient(transport=transport)
    yield TestClient(app)
    app.dependency_overrides.clear()


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
