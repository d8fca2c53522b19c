"""
api/guards.py -- Turn policy decisions into HTTP-facing errors.

core.policy.authorize() and core.quota.can_create() return values; they never
raise for a refusal. This module is the one place that decides how each
refusal looks from outside:

  cross_tenant on a note action     -> 404 (a note in another tenant is
                                       indistinguishable from no note)
  cross_tenant on a tenant action   -> 403
  insufficient_role / not_owner     -> 403, reason in error.detail
  quota exhausted                   -> 402 note_limit_reached
"""

from __future__ import annotations

import logging

from core.errors import AuthorizationError, NotFoundError, QuotaError
from core.models import Plan, ResourceDescriptor, SessionClaim
from core.policy import NOTE_ACTIONS, Action, DenyReason, authorize
from core.quota import can_create

logger = logging.getLogger("tenantnotes.api")

_DENY_MESSAGES = {
    DenyReason.cross_tenant: "You can only act on your own tenant.",
    DenyReason.insufficient_role: "Admin role required.",
    DenyReason.not_owner: "Members can only change their own notes.",
}


def enforce(claim: SessionClaim, action: Action, resource: ResourceDescriptor) -> None:
    """Raise the mapped error unless claim may perform action on resource."""
    decision = authorize(claim, action, resource)
    if decision.allowed:
        return
    logger.info(
        "Denied %s for user %d of tenant %d (%s)",
        action.value,
        claim.subject_id,
        claim.tenant_id,
        decision.reason.value,
    )
    if decision.reason is DenyReason.cross_tenant and action in NOTE_ACTIONS:
        raise NotFoundError("Note not found.")
    raise AuthorizationError(_DENY_MESSAGES[decision.reason], detail=decision.reason.value)


def enforce_quota(plan: Plan, current_count: int) -> None:
    """Raise QuotaError (402) unless a tenant on plan holding current_count notes may add one."""
    if not can_create(plan, current_count):
        raise QuotaError()
