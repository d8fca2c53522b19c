"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Requests authenticate with an "Authorization: Bearer <token>" header. The
token is verified by the TokenCodec that the lifespan stored on app.state;
no other credential type is accepted.

try_get_current_claim() is the soft variant (returns None on failure).
get_current_claim() wraps it and raises AuthenticationError (401) if
unauthenticated. Role, ownership and tenant checks are not done here -- they
belong to core.policy.authorize(), called by each route.

Layer rule: no imports from api/ or notes/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.tokens import TokenCodec, TokenError
from core.errors import AuthenticationError
from core.models import SessionClaim

logger = logging.getLogger("tenantnotes.auth")


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    token = auth_header[7:].strip()
    return token or None


def try_get_current_claim(request: Request) -> SessionClaim | None:
    """Return the verified claim for this request, or None.

    Never raises for a bad token. The failure reason is logged at DEBUG and
    otherwise discarded so callers cannot leak which check failed.
    """
    token = _bearer_token(request)
    if token is None:
        return None
    codec: TokenCodec = request.app.state.token_codec
    try:
        return codec.verify(token)
    except TokenError as exc:
        logger.debug("Rejected bearer token (%s)", exc.reason.value)
        return None


def get_current_claim(request: Request) -> SessionClaim:
    """Require authentication. Raises AuthenticationError (401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/notes")
        def route(claim: SessionClaim = Depends(get_current_claim)): ...
    """
    claim = try_get_current_claim(request)
    if claim is None:
        raise AuthenticationError()
    return claim
