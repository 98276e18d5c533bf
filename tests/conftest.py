import copy
import json
import time
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from auth.middleware import AuthMiddleware, get_auth_middleware
from config.settings import Settings, get_settings
from services.generation_service import GenerationClient
from services.providers import get_generation_client, get_workspace_registry
from services.workspace import WorkspaceRegistry

TEST_JWT_SECRET = "test-jwt-secret-that-is-long-enough-for-hs256"
ADMIN_EMAIL = "admin@example.com"


def _as_datetime(value):
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


class FakeQuery:
    """Just enough of the PostgREST query builder for the services under test."""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.action = "select"
        self.columns = "*"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.row_limit = None

    def select(self, columns="*"):
        self.action, self.columns = "select", columns
        return self

    def insert(self, data):
        self.action, self.payload = "insert", data
        return self

    def update(self, data):
        self.action, self.payload = "update", data
        return self

    def upsert(self, data):
        self.action, self.payload = "upsert", data
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def lt(self, column, value):
        self.filters.append(
            lambda row: row.get(column) is not None and _as_datetime(row[column]) < _as_datetime(value)
        )
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.row_limit = count
        return self

    def _matches(self, row):
        return all(check(row) for check in self.filters)

    def _project(self, row):
        if self.columns.strip() == "*":
            return copy.deepcopy(row)
        names = [name.strip() for name in self.columns.split(",")]
        return {name: copy.deepcopy(row.get(name)) for name in names}

    def execute(self):
        if (self.table, self.action) in self.db.failures:
            raise Exception(f"simulated {self.action} failure on {self.table}")
        self.db.calls.append((self.table, self.action))
        rows = self.db.tables.setdefault(self.table, [])

        if self.action == "select":
            found = [row for row in rows if self._matches(row)]
            if self.order_by:
                column, desc = self.order_by
                found.sort(key=lambda row: str(row.get(column) or ""), reverse=desc)
            if self.row_limit is not None:
                found = found[:self.row_limit]
            return SimpleNamespace(data=[self._project(row) for row in found])

        if self.action == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in items:
                row = {"created_at": datetime.now(timezone.utc).isoformat(), **copy.deepcopy(item)}
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return SimpleNamespace(data=inserted)

        if self.action == "upsert":
            item = copy.deepcopy(self.payload)
            for row in rows:
                if row.get("id") == item.get("id"):
                    row.update(item)
                    return SimpleNamespace(data=[copy.deepcopy(row)])
            row = {"created_at": datetime.now(timezone.utc).isoformat(), **item}
            rows.append(row)
            return SimpleNamespace(data=[copy.deepcopy(row)])

        if self.action == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(copy.deepcopy(self.payload))
                    updated.append(copy.deepcopy(row))
            return SimpleNamespace(data=updated)

        if self.action == "delete":
            removed = [row for row in rows if self._matches(row)]
            self.db.tables[self.table] = [row for row in rows if not self._matches(row)]
            return SimpleNamespace(data=removed)

        raise AssertionError(f"unsupported action {self.action}")


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.calls = []
        self.failures = set()

    def table(self, name):
        return FakeQuery(self, name)

    def count(self, table, action):
        return self.calls.count((table, action))


class FakeModels:
    def __init__(self, owner):
        self.owner = owner

    def generate_content(self, model, contents, config=None):
        self.owner.calls.append({"model": model, "contents": contents, "config": config})
        if self.owner.delay:
            time.sleep(self.owner.delay)
        reply = self.owner.replies.pop(0) if self.owner.replies else self.owner.default_reply
        if isinstance(reply, BaseException):
            raise reply
        return SimpleNamespace(text=reply)


class FakeGenaiClient:
    """Stands in for google.genai.Client; replies are queued JSON strings or exceptions."""

    def __init__(self, default_reply=None):
        self.calls = []
        self.replies = []
        self.delay = 0
        self.default_reply = default_reply if default_reply is not None else site_reply()
        self.models = FakeModels(self)

    def queue(self, *replies):
        self.replies.extend(replies)


def site_reply(**overrides):
    payload = {
        "title": "Coffee Shop",
        "plan": "* Add a hero section\n* Add a menu grid",
        "html_code": "<main><h1>Coffee</h1></main>",
        "css_code": "h1 { color: brown; }",
        "js_code": "console.log('hi');",
        "external_css_files": ["https://fonts.googleapis.com/css2?family=Inter"],
        "external_js_files": [],
    }
    for key, value in overrides.items():
        if value is ...:
            payload.pop(key, None)
        else:
            payload[key] = value
    return json.dumps(payload)


def make_token(user_id="user-1", email="dev@example.com", secret=TEST_JWT_SECRET, expires_in=3600):
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "aud": "authenticated",
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(user_id="user-1", email="dev@example.com"):
    return {"Authorization": f"Bearer {make_token(user_id, email)}"}


@pytest.fixture
def settings():
    return Settings(
        gemini_api_key="test-key",
        supabase_url="http://supabase.test",
        supabase_service_key="service-key",
        supabase_jwt_secret=TEST_JWT_SECRET,
        generation_timeout=5,
        autosave_quiet_seconds=0.05,
        admin_emails=[ADMIN_EMAIL],
    )


@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def genai_client():
    return FakeGenaiClient()


@pytest_asyncio.fixture
async def api(settings, supabase, genai_client):
    from index import app

    registry = WorkspaceRegistry()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_auth_middleware] = lambda: AuthMiddleware(settings, supabase_client=supabase)
    app.dependency_overrides[get_generation_client] = lambda: GenerationClient(settings, client=genai_client)
    app.dependency_overrides[get_workspace_registry] = lambda: registry

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    await registry.close_all()
    app.dependency_overrides.clear()
