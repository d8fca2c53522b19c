"""
core/policy.py -- Authorization policy: who may do what to which resource.

authorize(claim, action, resource) is a pure function of its three inputs.
No I/O, no hidden state, no exceptions for an expected refusal: a DENY is an
ordinary return value. The dispatcher (api/) decides how each DENY reason is
surfaced to a client.

Rules are evaluated in order and the first match wins:

  1. Tenant scoping  -- resource.tenant_id must equal claim.tenant_id, and a
                        slug named in the request path must equal
                        claim.tenant_slug. No exceptions, not even for admins.
  2. Role gating     -- upgradePlan and inviteUser require an admin.
  3. Ownership       -- a member may only update or delete notes they created.
                        Admins are exempt (rule 1 still applies to them).
  4. Reads           -- listNotes, getNote and viewTenant need only rule 1.

Layer rule: core/ is the kernel and imports nothing outside core/.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.models import ResourceDescriptor, SessionClaim


class Action(str, Enum):
    list_notes = "listNotes"
    get_note = "getNote"
    create_note = "createNote"
    update_note = "updateNote"
    delete_note = "deleteNote"
    view_tenant = "viewTenant"
    upgrade_plan = "upgradePlan"
    invite_user = "inviteUser"


class DenyReason(str, Enum):
    cross_tenant = "cross_tenant"
    insufficient_role = "insufficient_role"
    not_owner = "not_owner"


NOTE_ACTIONS = frozenset(
    {Action.list_notes, Action.get_note, Action.create_note, Action.update_note, Action.delete_note}
)
ADMIN_ACTIONS = frozenset({Action.upgrade_plan, Action.invite_user})
OWNER_ACTIONS = frozenset({Action.update_note, Action.delete_note})


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[DenyReason] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(allowed=True)


def _deny(reason: DenyReason) -> Decision:
    return Decision(allowed=False, reason=reason)


def authorize(claim: SessionClaim, action: Action, resource: ResourceDescriptor) -> Decision:
    """Return ALLOW or the first DENY reason for claim performing action on resource."""
    if resource.tenant_id != claim.tenant_id:
        return _deny(DenyReason.cross_tenant)
    if resource.tenant_slug is not None and resource.tenant_slug != claim.tenant_slug:
        return _deny(DenyReason.cross_tenant)

    if action in ADMIN_ACTIONS and not claim.is_admin:
        return _deny(DenyReason.insufficient_role)

    if action in OWNER_ACTIONS and not claim.is_admin:
        if resource.owner_user_id != claim.subject_id:
            return _deny(DenyReason.not_owner)

    return ALLOW
