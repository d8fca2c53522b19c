"""
auth/store.py -- SQLAlchemy Core persistence layer for tenants and users.

Pattern: Repository + Data Mapper (same as notes/store.py).
UserStore is the repository; _row_to_tenant / _row_to_user are the mappers.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Duplicate e-mails and slugs are reported as UniqueViolation, a structured
  error the API layer maps to 409. IntegrityError alone is not enough: it
  also covers CHECK failures, so the store confirms the conflicting row
  exists before calling it a duplicate.

DB path: auth/tenantnotes_auth.db (sibling to notes/tenantnotes_notes.db).

Layer rule: no imports from api/ or notes/.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import Tenant, User
from core.storage import build_engine

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'tenantnotes_auth.db'}"


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_tenants = Table(
    "tenants",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("slug", String(63), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("plan", String(10), nullable=False, server_default="free"),
    Column("created_at", String(32), nullable=False),
    CheckConstraint("plan IN ('free', 'pro')", name="ck_tenant_plan"),
)

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("role", String(10), nullable=False),
    # Removing a tenant removes its users.
    Column("tenant_id", Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
    Column("last_login", String(32)),
    CheckConstraint("role IN ('admin', 'member')", name="ck_user_role"),
)


class UniqueViolation(Exception):
    """An insert collided with an existing unique value."""

    def __init__(self, field: str, value: str) -> None:
        super().__init__(f"{field} already exists")
        self.field = field
        self.value = value


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for Tenant and User entities.

    Usage:
        store = UserStore()
        tenant_id = store.create_tenant(Tenant(slug="acme", name="Acme Corporation"))
        store.create_user(User(email="admin@acme.test", role="admin", tenant_id=tenant_id,
                               password_hash=hash_password("secret")))
        user = store.get_user_by_email("admin@acme.test")
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL, timeout: float = 5.0) -> None:
        self.engine: Engine = build_engine(db_url or _DEFAULT_DB_URL, timeout)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Tenants
    # ------------------------------------------------------------------

    def create_tenant(self, tenant: Tenant) -> int:
        """Insert a tenant and return its ID. Raises UniqueViolation on a taken slug."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _tenants.insert().values(
                        slug=tenant.slug,
                        name=tenant.name,
                        plan=tenant.plan,
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
                return result.inserted_primary_key[0]
        except IntegrityError:
            if self.get_tenant_by_slug(tenant.slug) is not None:
                raise UniqueViolation("slug", tenant.slug) from None
            raise

    def get_tenant(self, tenant_id: int) -> Tenant | None:
        with self.engine.connect() as conn:
            row = conn.execute(_tenants.select().where(_tenants.c.id == tenant_id)).fetchone()
        return _row_to_tenant(row) if row is not None else None

    def get_tenant_by_slug(self, slug: str) -> Tenant | None:
        with self.engine.connect() as conn:
            row = conn.execute(_tenants.select().where(_tenants.c.slug == slug)).fetchone()
        return _row_to_tenant(row) if row is not None else None

    def set_tenant_plan(self, tenant_id: int, plan: str) -> bool:
        """Change a tenant's plan. Returns False if tenant_id was not found.

        The caller is responsible for checking that the requester is an admin
        of this tenant (core.policy.authorize).
        """
        with self.engine.connect() as conn:
            result = conn.execute(_tenants.update().where(_tenants.c.id == tenant_id).values(plan=plan))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises UniqueViolation if the e-mail is already registered (in any
        tenant -- e-mails are globally unique because login has no tenant
        field).
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        email=user.email,
                        password_hash=user.password_hash,
                        role=user.role,
                        tenant_id=user.tenant_id,
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
                return result.inserted_primary_key[0]
        except IntegrityError:
            if self.get_user_by_email(user.email) is not None:
                raise UniqueViolation("email", user.email) from None
            raise

    def get_user_by_email(self, email: str) -> User | None:
        """Look up a user by exact e-mail. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_user(self, user_id: int) -> User | None:
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self, tenant_id: int) -> list[User]:
        """Return the users of one tenant ordered by e-mail."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _users.select().where(_users.c.tenant_id == tenant_id).order_by(_users.c.email)
            ).fetchall()
        return [_row_to_user(r) for r in rows]

    def update_last_login(self, user_id: int) -> None:
        """Stamp the current UTC timestamp as last_login for the given user."""
        with self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(last_login=_now_iso()))
            conn.commit()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_tenant(row) -> Tenant:
    return Tenant(
        id=row.id,
        slug=row.slug,
        name=row.name,
        plan=row.plan,
        created_at=row.created_at,
    )


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        role=row.role,
        tenant_id=row.tenant_id,
        created_at=row.created_at,
        last_login=row.last_login,
    )
