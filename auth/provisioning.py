"""
auth/provisioning.py -- Create tenants and users outside the request path.

Tenants are never created over the HTTP API. Operators provision them with
the CLI (main.py), and local development can seed the demo tenants at startup
(SEED_DEMO_DATA=true).

Layer rule: no imports from api/ or notes/.
"""

from __future__ import annotations

import logging
import re

from auth.models import Tenant, User
from auth.passwords import hash_password
from auth.store import UniqueViolation, UserStore
from core.models import SLUG_PATTERN, Plan, Role

logger = logging.getLogger("tenantnotes.auth")

_SLUG_RE = re.compile(SLUG_PATTERN)

DEMO_PASSWORD = "password"  # noqa: S105 # nosec B105 -- published demo credential

_DEMO_TENANTS = (
    ("acme", "Acme Corporation"),
    ("globex", "Globex Corporation"),
)


def provision_tenant(store: UserStore, slug: str, name: str, plan: str = "free") -> Tenant:
    """Create a tenant. Raises ValueError on a bad slug/plan, UniqueViolation if the slug is taken."""
    if not _SLUG_RE.match(slug):
        raise ValueError(f"Invalid tenant slug {slug!r}: use lowercase letters, digits and dashes.")
    plan = Plan(plan).value
    tenant_id = store.create_tenant(Tenant(slug=slug, name=name, plan=plan))
    logger.info("Provisioned tenant %s (id=%d, plan=%s)", slug, tenant_id, plan)
    return store.get_tenant(tenant_id)


def provision_user(store: UserStore, email: str, password: str, role: str, tenant_slug: str) -> User:
    """Create a user inside an existing tenant.

    Raises LookupError if the tenant does not exist, UniqueViolation if the
    e-mail is taken.
    """
    tenant = store.get_tenant_by_slug(tenant_slug)
    if tenant is None:
        raise LookupError(f"Unknown tenant {tenant_slug!r}")
    user = User(
        email=email.strip().lower(),
        role=Role(role).value,
        tenant_id=tenant.id,
        password_hash=hash_password(password),
    )
    user_id = store.create_user(user)
    logger.info("Provisioned %s user in tenant %s (id=%d)", user.role, tenant_slug, user_id)
    return store.get_user(user_id)


def seed_demo(store: UserStore) -> int:
    """Create the acme/globex demo tenants with one admin and one member each.

    Idempotent: existing tenants and users are left untouched. Returns the
    number of records created. All demo users share DEMO_PASSWORD.
    """
    created = 0
    password_hash = hash_password(DEMO_PASSWORD)
    for slug, name in _DEMO_TENANTS:
        tenant = store.get_tenant_by_slug(slug)
        if tenant is None:
            tenant = provision_tenant(store, slug, name)
            created += 1
        for local, role in (("admin", Role.admin), ("user", Role.member)):
            email = f"{local}@{slug}.test"
            if store.get_user_by_email(email) is not None:
                continue
            try:
                store.create_user(
                    User(email=email, role=role.value, tenant_id=tenant.id, password_hash=password_hash)
                )
            except UniqueViolation:
                # Another worker seeded the same user between our check and insert.
                continue
            created += 1
    if created:
        logger.warning("Seeded %d demo records -- demo users share a public password", created)
    return created
