"""
auth/models.py -- Domain dataclasses for identity entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in notes/models.py -- dataclasses own domain shape; stores and routes do the
work.

Layer rule: no imports from api/ or notes/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Tenant:
    """The unit of isolation. Every user and note belongs to exactly one.

    slug is immutable after provisioning because it appears in URLs and in
    issued session tokens. plan is "free" or "pro" and is only changed by an
    admin of the same tenant.
    """

    slug: str
    name: str
    plan: str = "free"
    id: int | None = None
    created_at: str | None = None


@dataclass
class User:
    """A principal. tenant_id is fixed for the lifetime of the record.

    password_hash is a bcrypt hash; the plaintext is never stored or logged.
    """

    email: str
    role: str  # "admin" | "member"
    tenant_id: int
    password_hash: str
    id: int | None = None
    created_at: str | None = None
    last_login: str | None = None
