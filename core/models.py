from dataclasses import dataclass
from enum import Enum
from typing import Optional

# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

# Tenant slugs appear in URLs and never change after provisioning.
# All layers (api/, CLI) that need to validate a slug import from here.
SLUG_PATTERN = r"^[a-z0-9][a-z0-9-]{0,62}$"


class Role(str, Enum):
    admin = "admin"
    member = "member"


class Plan(str, Enum):
    free = "free"
    pro = "pro"


@dataclass(frozen=True)
class SessionClaim:
    """The trusted identity carried by a verified session token.

    Never persisted. Rebuilt from storage on every login, so role and plan may
    lag behind the database until the token is re-issued.
    """

    subject_id: int
    email: str
    role: Role
    tenant_id: int
    tenant_slug: str
    plan: Plan

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin


@dataclass(frozen=True)
class ResourceDescriptor:
    """The minimum the authorization policy needs to know about a target.

    tenant_id     -- owning tenant; every tenant-scoped resource has one
    owner_user_id -- creator of a note; None for tenant-level resources
    tenant_slug   -- slug named in the request path, for tenant-level actions
    """

    tenant_id: int
    owner_user_id: Optional[int] = None
    tenant_slug: Optional[str] = None
