"""
tests/conftest.py -- Shared test fixtures for TenantNotes integration tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for users + notes
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_env: TestClient plus seeded acme/globex tenants and a token helper

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

The environment must be prepared before any api/auth/core import:
  DEBUG=true             -- get_settings() falls back to the dev SECRET_KEY
  ALLOWED_HOSTS          -- TestClient sends Host: testserver
  LOGIN_RATE_LIMIT       -- the whole session shares one in-memory limiter
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: set before any auth/core import so get_settings() sees them.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Tenant, User
from auth.passwords import hash_password
from auth.store import UserStore
from auth.tokens import TokenCodec
from core.config import get_settings
from core.models import Plan, Role, SessionClaim
from notes.models import Note
from notes.store import NoteStore

PASSWORD = "password"  # noqa: S105 # nosec B105 -- test credential

# One bcrypt run for the whole session instead of one per seeded user.
_PASSWORD_HASH = hash_password(PASSWORD)

# (email, role, tenant slug)
SEED_USERS = (
    ("admin@acme.test", "admin", "acme"),
    ("user@acme.test", "member", "acme"),
    ("user2@acme.test", "member", "acme"),
    ("admin@globex.test", "admin", "globex"),
    ("user@globex.test", "member", "globex"),
)


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, NoteStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so tests never share
                   state.
    """
    auth_url = f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true"
    notes_url = f"sqlite:///file:test_notes_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=auth_url), NoteStore(db_url=notes_url)


def _seed(user_store: UserStore) -> dict[str, User]:
    tenant_ids = {
        "acme": user_store.create_tenant(Tenant(slug="acme", name="Acme Corporation")),
        "globex": user_store.create_tenant(Tenant(slug="globex", name="Globex Corporation")),
    }
    users: dict[str, User] = {}
    for email, role, slug in SEED_USERS:
        user_id = user_store.create_user(
            User(email=email, role=role, tenant_id=tenant_ids[slug], password_hash=_PASSWORD_HASH)
        )
        users[email] = user_store.get_user(user_id)
    return users


def _patch_lifespan(user_store: UserStore, notes: NoteStore, codec: TokenCodec):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.token_codec = codec
        app.state.user_store = user_store
        app.state.notes = notes
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@dataclass
class ApiEnv:
    client: TestClient
    user_store: UserStore
    notes: NoteStore
    codec: TokenCodec
    users: dict[str, User]

    def claim_for(self, email: str) -> SessionClaim:
        """Build the claim a fresh login would produce for this seeded user."""
        user = self.users[email]
        tenant = self.user_store.get_tenant(user.tenant_id)
        return SessionClaim(
            subject_id=user.id,
            email=user.email,
            role=Role(user.role),
            tenant_id=tenant.id,
            tenant_slug=tenant.slug,
            plan=Plan(tenant.plan),
        )

    def headers(self, email: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.codec.issue(self.claim_for(email))}"}

    def add_note(self, email: str, title: str = "Seeded note") -> int:
        """Insert a note directly through the store, bypassing quota."""
        user = self.users[email]
        return self.notes.create_note(Note(tenant_id=user.tenant_id, user_id=user.id, title=title, content="body"))


@pytest.fixture
def api_env() -> Generator[ApiEnv, None, None]:
    """Yield an ApiEnv with acme and globex on the free plan and no notes.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers, middleware and exception handlers but use
    isolated in-memory stores.
    """
    user_store, notes = _make_test_stores(uuid.uuid4().hex)
    users = _seed(user_store)
    codec = TokenCodec.from_settings(get_settings())

    app.router.lifespan_context = _patch_lifespan(user_store, notes, codec)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiEnv(client=client, user_store=user_store, notes=notes, codec=codec, users=users)

    notes.close()
    user_store.close()
