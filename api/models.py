"""
API request and response models for TenantNotes REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
notes/models.py, which own the internal domain representation. Route handlers
map between the two.

Separation of concerns: domain dataclasses = domain truth; api/ models = API contract.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.models import Plan, Role
from notes.models import Note

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Deliberately loose: one "@" with a dot somewhere after it. Deliverability is
# not our concern, only that the value is recognisably an address.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

_MAX_PASSWORD = 72  # bcrypt truncates beyond 72 bytes


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]


class SuccessResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=_MAX_PASSWORD)

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.lower()


class TenantSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    slug: str
    name: str
    plan: Plan


class LoginUser(BaseModel):
    model_config = ConfigDict(frozen=True)

    email: str
    role: Role
    tenant: TenantSummary


class LoginResponse(BaseModel):
    """Login exchange result. token is a Bearer token valid for seven days."""

    model_config = ConfigDict(frozen=True)

    token: str
    user: LoginUser


class MeResponse(BaseModel):
    """Identity as carried by the caller's token (may lag behind storage)."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    email: str
    role: Role
    tenant_id: int
    tenant_slug: str
    plan: Plan


# ---------------------------------------------------------------------------
# Tenants
# ---------------------------------------------------------------------------


class TenantResponse(BaseModel):
    """Response for GET /api/v1/tenants/{slug}. note_limit is null on unlimited plans."""

    model_config = ConfigDict(frozen=True)

    slug: str
    name: str
    plan: Plan
    note_count: int
    note_limit: Optional[int]


class UpgradeResponse(BaseModel):
    """The plan change plus a re-issued token that carries the new plan."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    plan: Plan
    token: str


class InviteRequest(BaseModel):
    """Request body for POST /api/v1/tenants/{slug}/invite.

    When password is omitted a random temporary password is generated and
    returned once in the response.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    role: Role
    password: Optional[str] = Field(default=None, min_length=8, max_length=_MAX_PASSWORD)

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.lower()


class InviteResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    email: str
    role: Role
    temporary_password: Optional[str] = None


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


class NoteCreate(BaseModel):
    """Request body for POST /api/v1/notes."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1, max_length=20000)


class NoteUpdate(BaseModel):
    """Request body for PUT /api/v1/notes/{note_id}. Omitted fields keep their value."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = Field(default=None, min_length=1, max_length=20000)


class NoteResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    content: str
    user_id: int
    created_at: str
    updated_at: str

    @classmethod
    def from_note(cls, note: Note) -> "NoteResponse":
        """Build a NoteResponse from a notes.models.Note.

        The mapping lives here, colocated with the output model, rather than
        scattered across route handlers. tenant_id is never returned: a
        client only ever sees its own tenant.
        """
        return cls(
            id=note.id,
            title=note.title,
            content=note.content,
            user_id=note.user_id,
            created_at=note.created_at,
            updated_at=note.updated_at,
        )
