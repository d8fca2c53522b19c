"""Unit tests for core/policy.py -- authorize() decision table.

Covers:
- Every action denies a resource in another tenant, admins included
- A path slug that differs from the claim's slug is cross_tenant
- upgradePlan / inviteUser require the admin role
- Members may only update/delete notes they own; admins any in their tenant
- Reads need only tenant scoping
- Rule order: cross_tenant wins over insufficient_role and not_owner
"""

import pytest

from core.models import Plan, ResourceDescriptor, Role, SessionClaim
from core.policy import ALLOW, Action, DenyReason, authorize

ADMIN = SessionClaim(
    subject_id=1, email="admin@acme.test", role=Role.admin, tenant_id=10, tenant_slug="acme", plan=Plan.free
)
MEMBER = SessionClaim(
    subject_id=2, email="user@acme.test", role=Role.member, tenant_id=10, tenant_slug="acme", plan=Plan.free
)

OTHER_TENANT = 20


@pytest.mark.parametrize("claim", [ADMIN, MEMBER], ids=["admin", "member"])
@pytest.mark.parametrize("action", list(Action))
def test_other_tenant_is_always_denied(claim, action):
    resource = ResourceDescriptor(tenant_id=OTHER_TENANT, owner_user_id=claim.subject_id)
    decision = authorize(claim, action, resource)
    assert not decision
    assert decision.reason is DenyReason.cross_tenant


@pytest.mark.parametrize("action", [Action.view_tenant, Action.upgrade_plan, Action.invite_user])
def test_slug_mismatch_is_cross_tenant(action):
    resource = ResourceDescriptor(tenant_id=ADMIN.tenant_id, tenant_slug="globex")
    assert authorize(ADMIN, action, resource).reason is DenyReason.cross_tenant


@pytest.mark.parametrize("action", [Action.upgrade_plan, Action.invite_user])
def test_admin_actions(action):
    resource = ResourceDescriptor(tenant_id=10, tenant_slug="acme")
    assert authorize(ADMIN, action, resource) == ALLOW
    denied = authorize(MEMBER, action, resource)
    assert not denied.allowed
    assert denied.reason is DenyReason.insufficient_role


@pytest.mark.parametrize("action", [Action.update_note, Action.delete_note])
def test_member_may_only_change_own_notes(action):
    own = ResourceDescriptor(tenant_id=10, owner_user_id=MEMBER.subject_id)
    someone_elses = ResourceDescriptor(tenant_id=10, owner_user_id=99)
    assert authorize(MEMBER, action, own).allowed
    decision = authorize(MEMBER, action, someone_elses)
    assert decision.reason is DenyReason.not_owner


@pytest.mark.parametrize("action", [Action.update_note, Action.delete_note])
def test_admin_is_exempt_from_ownership(action):
    resource = ResourceDescriptor(tenant_id=10, owner_user_id=99)
    assert authorize(ADMIN, action, resource).allowed


@pytest.mark.parametrize("claim", [ADMIN, MEMBER], ids=["admin", "member"])
@pytest.mark.parametrize("action", [Action.list_notes, Action.get_note, Action.create_note, Action.view_tenant])
def test_reads_and_create_need_only_tenant_scope(claim, action):
    # Owner is someone else on purpose: only update/delete look at ownership.
    resource = ResourceDescriptor(tenant_id=10, owner_user_id=99, tenant_slug="acme")
    assert authorize(claim, action, resource) == ALLOW


def test_cross_tenant_is_reported_before_role_and_ownership():
    assert authorize(MEMBER, Action.invite_user, ResourceDescriptor(tenant_id=OTHER_TENANT)).reason is (
        DenyReason.cross_tenant
    )
    assert authorize(
        MEMBER, Action.delete_note, ResourceDescriptor(tenant_id=OTHER_TENANT, owner_user_id=99)
    ).reason is DenyReason.cross_tenant


def test_plan_does_not_affect_authorization():
    pro_member = SessionClaim(
        subject_id=2, email="user@acme.test", role=Role.member, tenant_id=10, tenant_slug="acme", plan=Plan.pro
    )
    assert authorize(pro_member, Action.upgrade_plan, ResourceDescriptor(tenant_id=10)).reason is (
        DenyReason.insufficient_role
    )


def test_authorize_accepts_plain_string_role():
    claim = SessionClaim(
        subject_id=1, email="admin@acme.test", role="admin", tenant_id=10, tenant_slug="acme", plan="free"
    )
    assert authorize(claim, Action.invite_user, ResourceDescriptor(tenant_id=10)).allowed
