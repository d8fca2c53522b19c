"""
auth/tokens.py -- Identity token codec (signed session claims).

Security design decisions:
  JWT: python-jose with HS256 and nothing else. Tokens carry the session claim
       (sub, email, role, tenantId, tenantSlug, plan) plus iat/exp as integer
       seconds. The algorithm list passed to jwt.decode() is fixed, so a token
       whose header names "none" or an RSA algorithm is rejected as forged.

  Explicit configuration: TokenCodec is constructed once at startup from
       Settings and stored on app.state. It never reads the environment
       itself and holds no mutable state, so any number of request handlers
       can share one instance.

  Injected clock: expiry is computed and checked against clock(), not
       jose's wall clock, so tests can issue and verify tokens at fixed
       instants.

  Failure reasons: verify() raises TokenError with a structured reason
       (malformed / bad_signature / expired) decided by which stage failed,
       never by parsing jose's error messages. The reason is for logs and
       tests only -- auth/dependencies.py collapses every reason into one
       opaque 401.

Layer rule: no imports from api/ or notes/. Import from core/ is allowed.
"""

from __future__ import annotations

import base64
import json
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from jose import JWTError, jwt

from core.config import SEVEN_DAYS, Settings
from core.models import Plan, Role, SessionClaim

ALGORITHM = "HS256"

_DECODE_OPTIONS = {
    # Checked below against the injected clock.
    "verify_exp": False,
    # sub is the integer user id; jose only accepts string subjects.
    "verify_sub": False,
    "verify_aud": False,
}


class TokenErrorReason(str, Enum):
    malformed = "malformed"
    bad_signature = "bad_signature"
    expired = "expired"


class TokenError(Exception):
    def __init__(self, reason: TokenErrorReason) -> None:
        super().__init__(reason.value)
        self.reason = reason


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


class TokenCodec:
    """Issue and verify signed session tokens.

    Usage:
        codec = TokenCodec.from_settings(get_settings())
        token = codec.issue(claim)
        claim = codec.verify(token)      # raises TokenError
    """

    def __init__(
        self,
        secret_key: str,
        lifetime_seconds: int = SEVEN_DAYS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._secret_key = secret_key
        self.lifetime_seconds = lifetime_seconds
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, clock: Callable[[], datetime] = _utcnow) -> TokenCodec:
        return cls(settings.secret_key, settings.token_expire_seconds, clock=clock)

    # ------------------------------------------------------------------
    # Encode
    # ------------------------------------------------------------------

    def issue(self, claim: SessionClaim) -> str:
        """Return a signed token for claim, valid for lifetime_seconds from now."""
        issued_at = int(self._clock().timestamp())
        payload = {
            "sub": claim.subject_id,
            "email": claim.email,
            "role": Role(claim.role).value,
            "tenantId": claim.tenant_id,
            "tenantSlug": claim.tenant_slug,
            "plan": Plan(claim.plan).value,
            "iat": issued_at,
            "exp": issued_at + self.lifetime_seconds,
        }
        return jwt.encode(payload, self._secret_key, algorithm=ALGORITHM)

    # ------------------------------------------------------------------
    # Decode
    # ------------------------------------------------------------------

    def verify(self, token: str) -> SessionClaim:
        """Verify signature and expiry, then rebuild the SessionClaim.

        Stages, first failure wins:
          1. header and payload segments parse     -> malformed
          2. algorithm, signature segment encoding
             and HMAC signature                    -> bad_signature
          3. exp present and in the future         -> malformed / expired
          4. claim fields present and well-typed   -> malformed
        """
        segments = token.split(".") if isinstance(token, str) else []
        if len(segments) != 3:
            raise TokenError(TokenErrorReason.malformed)
        header_segment, payload_segment, signature_segment = segments
        header = _decode_json_segment(header_segment)
        if header is None or _decode_json_segment(payload_segment) is None:
            raise TokenError(TokenErrorReason.malformed)

        if header.get("alg") != ALGORITHM:
            raise TokenError(TokenErrorReason.bad_signature)
        # base64 decoding ignores the trailing padding bits of the last
        # character, so only the canonical encoding of the MAC is accepted.
        if not _is_canonical_b64(signature_segment):
            raise TokenError(TokenErrorReason.bad_signature)
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[ALGORITHM], options=_DECODE_OPTIONS)
        except JWTError:
            raise TokenError(TokenErrorReason.bad_signature) from None

        exp = payload.get("exp")
        if not _is_int(exp):
            raise TokenError(TokenErrorReason.malformed)
        if self._clock().timestamp() >= exp:
            raise TokenError(TokenErrorReason.expired)

        return _payload_to_claim(payload)


def _b64_decode(segment: str) -> bytes:
    """Strict base64url decode of an unpadded segment. Raises ValueError."""
    return base64.b64decode(segment + "=" * (-len(segment) % 4), altchars=b"-_", validate=True)


def _decode_json_segment(segment: str) -> dict | None:
    try:
        value = json.loads(_b64_decode(segment))
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def _is_canonical_b64(segment: str) -> bool:
    try:
        raw = _b64_decode(segment)
    except ValueError:
        return False
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii") == segment


def _payload_to_claim(payload: dict) -> SessionClaim:
    sub = payload.get("sub")
    tenant_id = payload.get("tenantId")
    email = payload.get("email")
    tenant_slug = payload.get("tenantSlug")
    if not (_is_int(sub) and _is_int(tenant_id) and _is_text(email) and _is_text(tenant_slug)):
        raise TokenError(TokenErrorReason.malformed)
    try:
        role = Role(payload.get("role"))
        plan = Plan(payload.get("plan"))
    except ValueError:
        raise TokenError(TokenErrorReason.malformed) from None
    return SessionClaim(
        subject_id=sub,
        email=email,
        role=role,
        tenant_id=tenant_id,
        tenant_slug=tenant_slug,
        plan=plan,
    )
