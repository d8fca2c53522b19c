"""
api/routes/v1/tenants.py -- Tenant-level endpoints addressed by slug.

Routes:
  GET  /tenants/{slug}           -- plan and note usage (any user of the tenant)
  POST /tenants/{slug}/upgrade   -- switch the tenant to the pro plan (admin)
  POST /tenants/{slug}/invite    -- create a user in the tenant (admin)

The slug in the path must equal the slug in the caller's token before
anything else happens; core.policy.authorize() checks it as part of tenant
scoping, and a mismatch is a 403. The tenant that is read or changed is
always claim.tenant_id -- never a tenant looked up from the path.
"""

from __future__ import annotations

import dataclasses
import logging
import secrets

from fastapi import APIRouter, Depends, Request

from api.guards import enforce
from api.models import InviteRequest, InviteResponse, TenantResponse, UpgradeResponse
from auth.dependencies import get_current_claim
from auth.models import User
from auth.passwords import hash_password
from auth.store import UniqueViolation, UserStore
from auth.tokens import TokenCodec
from core.errors import ConflictError, NotFoundError
from core.models import Plan, ResourceDescriptor, SessionClaim
from core.policy import Action
from core.quota import note_limit
from notes.store import NoteStore

logger = logging.getLogger("tenantnotes.api")

router = APIRouter()


def _tenant_target(claim: SessionClaim, slug: str) -> ResourceDescriptor:
    return ResourceDescriptor(tenant_id=claim.tenant_id, tenant_slug=slug)


@router.get("/tenants/{slug}", response_model=TenantResponse)
def get_tenant(request: Request, slug: str, claim: SessionClaim = Depends(get_current_claim)) -> TenantResponse:
    """Return the tenant's current plan and how much of its note quota is used."""
    enforce(claim, Action.view_tenant, _tenant_target(claim, slug))

    user_store: UserStore = request.app.state.user_store
    notes: NoteStore = request.app.state.notes
    tenant = user_store.get_tenant(claim.tenant_id)
    if tenant is None:
        raise NotFoundError("Tenant not found.")
    plan = Plan(tenant.plan)
    return TenantResponse(
        slug=tenant.slug,
        name=tenant.name,
        plan=plan,
        note_count=notes.count_notes(tenant.id),
        note_limit=note_limit(plan),
    )


@router.post("/tenants/{slug}/upgrade", response_model=UpgradeResponse)
def upgrade_tenant(
    request: Request,
    slug: str,
    claim: SessionClaim = Depends(get_current_claim),
) -> UpgradeResponse:
    """Move the tenant to the pro plan. Idempotent.

    The response carries a fresh token whose plan claim is "pro". Tokens
    issued earlier keep saying "free" until they expire; that only affects
    what clients display, because quota checks read the plan from storage.
    """
    enforce(claim, Action.upgrade_plan, _tenant_target(claim, slug))

    user_store: UserStore = request.app.state.user_store
    codec: TokenCodec = request.app.state.token_codec
    if not user_store.set_tenant_plan(claim.tenant_id, Plan.pro.value):
        raise NotFoundError("Tenant not found.")
    logger.info("Tenant %s upgraded to pro by user %d", claim.tenant_slug, claim.subject_id)

    token = codec.issue(dataclasses.replace(claim, plan=Plan.pro))
    return UpgradeResponse(plan=Plan.pro, token=token)


@router.post("/tenants/{slug}/invite", response_model=InviteResponse, status_code=201)
def invite_user(
    request: Request,
    slug: str,
    body: InviteRequest,
    claim: SessionClaim = Depends(get_current_claim),
) -> InviteResponse:
    """Create a user in the caller's tenant. Admin only.

    Without a password in the body a random one is generated and returned
    ONCE in temporary_password. It is never stored in plaintext and cannot be
    retrieved again.
    """
    enforce(claim, Action.invite_user, _tenant_target(claim, slug))

    user_store: UserStore = request.app.state.user_store
    temporary_password = None
    password = body.password
    if password is None:
        temporary_password = password = secrets.token_urlsafe(12)

    try:
        user_store.create_user(
            User(
                email=body.email,
                role=body.role.value,
                tenant_id=claim.tenant_id,
                password_hash=hash_password(password),
            )
        )
    except UniqueViolation as exc:
        raise ConflictError("A user with that email already exists.") from exc

    logger.info("User invited to tenant %s as %s by user %d", claim.tenant_slug, body.role.value, claim.subject_id)
    return InviteResponse(email=body.email, role=body.role, temporary_password=temporary_password)
