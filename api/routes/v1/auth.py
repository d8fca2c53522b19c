"""
api/routes/v1/auth.py -- Login and identity REST endpoints.

Routes:
  POST /api/v1/auth/login   -- e-mail/password login; returns a Bearer token
  GET  /api/v1/auth/me      -- identity carried by the caller's token

Security:
  POST /login is rate-limited per IP (LOGIN_RATE_LIMIT, default 10/minute).
  authenticate_user() provides timing equalization -- use it, never inline
  get_user_by_email() + verify_password().
  Unknown e-mail and wrong password produce the same 401 body.
  Cache-Control: no-store on every login response, success or failure.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, LoginRequest, LoginResponse, LoginUser, MeResponse, TenantSummary
from auth.dependencies import get_current_claim
from auth.passwords import authenticate_user
from auth.store import UserStore
from auth.tokens import TokenCodec
from core.config import get_settings
from core.models import Plan, Role, SessionClaim

logger = logging.getLogger("tenantnotes.api")

# Auth policy:
# - POST /api/v1/auth/login: public -- login endpoint must be unauthenticated
# - GET  /api/v1/auth/me:    requires a valid Bearer token (get_current_claim)
router = APIRouter()


def _login_rate_limit() -> str:
    return get_settings().login_rate_limit


def _invalid_credentials() -> JSONResponse:
    resp = JSONResponse(
        status_code=401,
        content=ErrorResponse(
            error=ErrorDetail(code="invalid_credentials", message="Invalid email or password.")
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@limiter.limit(_login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Exchange e-mail and password for a seven-day session token.

    The token embeds the tenant's plan as of this login. Quota checks re-read
    the plan from storage, so a stale plan in the token never blocks a
    create after an upgrade.
    """
    user_store: UserStore = request.app.state.user_store
    codec: TokenCodec = request.app.state.token_codec

    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        return _invalid_credentials()

    tenant = user_store.get_tenant(user.tenant_id)
    if tenant is None:
        logger.error("User %d references missing tenant %d", user.id, user.tenant_id)
        return _invalid_credentials()

    claim = SessionClaim(
        subject_id=user.id,
        email=user.email,
        role=Role(user.role),
        tenant_id=tenant.id,
        tenant_slug=tenant.slug,
        plan=Plan(tenant.plan),
    )
    token = codec.issue(claim)
    user_store.update_last_login(user.id)
    logger.info("Login succeeded for user %d (tenant %s)", user.id, tenant.slug)

    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            token=token,
            user=LoginUser(
                email=user.email,
                role=claim.role,
                tenant=TenantSummary(slug=tenant.slug, name=tenant.name, plan=claim.plan),
            ),
        ).model_dump(mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/auth/me", response_model=MeResponse)
def me(claim: SessionClaim = Depends(get_current_claim)) -> MeResponse:
    """Return the identity carried by the caller's token."""
    return MeResponse(
        user_id=claim.subject_id,
        email=claim.email,
        role=claim.role,
        tenant_id=claim.tenant_id,
        tenant_slug=claim.tenant_slug,
        plan=claim.plan,
    )
