"""
core/quota.py -- Plan-based creation limits.

Knows only a plan and a count. Roles and tenants are the authorization
policy's business; keeping this separate lets new quota dimensions (seats,
storage) be added beside it without touching core/policy.py.
"""

from typing import Optional

from core.models import Plan

FREE_PLAN_NOTE_LIMIT = 3

# None means unlimited.
_NOTE_LIMITS: dict[Plan, Optional[int]] = {
    Plan.free: FREE_PLAN_NOTE_LIMIT,
    Plan.pro: None,
}


def note_limit(plan: Plan) -> Optional[int]:
    """Return the maximum number of notes a tenant on this plan may hold."""
    return _NOTE_LIMITS[Plan(plan)]


def can_create(plan: Plan, current_count: int) -> bool:
    """Return True if a tenant on this plan holding current_count notes may create one more."""
    limit = note_limit(plan)
    return limit is None or current_count < limit
