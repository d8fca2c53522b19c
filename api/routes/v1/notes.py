"""
api/routes/v1/notes.py -- Tenant-scoped note CRUD.

Routes:
  GET    /notes              -- list the caller's tenant's notes, newest first
  POST   /notes              -- create a note (quota-gated on the free plan)
  GET    /notes/{note_id}    -- read one note
  PUT    /notes/{note_id}    -- update title and/or content
  DELETE /notes/{note_id}    -- delete a note

Every handler follows the same sequence:
  1. get_current_claim verifies the Bearer token (401 on any failure)
  2. the note descriptor is loaded unscoped (404 if absent)
  3. guards.enforce() runs core.policy.authorize() -- a note in another
     tenant is reported as 404, a member touching someone else's note as 403
  4. creates additionally pass the quota policy (402 note_limit_reached)
  5. only then is storage mutated, again scoped by tenant_id
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from api.guards import enforce, enforce_quota
from api.models import NoteCreate, NoteResponse, NoteUpdate, SuccessResponse
from auth.dependencies import get_current_claim
from auth.store import UserStore
from core.errors import AuthenticationError, NotFoundError, QuotaError, ValidationError
from core.models import Plan, ResourceDescriptor, SessionClaim
from core.policy import Action
from core.quota import note_limit
from notes.models import Note
from notes.store import NoteStore

logger = logging.getLogger("tenantnotes.api")

router = APIRouter()


def _load_note(notes: NoteStore, note_id: int) -> Note:
    note = notes.get_note(note_id)
    if note is None:
        raise NotFoundError("Note not found.")
    return note


def _descriptor(note: Note) -> ResourceDescriptor:
    return ResourceDescriptor(tenant_id=note.tenant_id, owner_user_id=note.user_id)


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------


@router.get("/notes", response_model=list[NoteResponse])
def list_notes(request: Request, claim: SessionClaim = Depends(get_current_claim)) -> list[NoteResponse]:
    """Return every note in the caller's tenant."""
    enforce(claim, Action.list_notes, ResourceDescriptor(tenant_id=claim.tenant_id))
    notes: NoteStore = request.app.state.notes
    return [NoteResponse.from_note(n) for n in notes.list_notes(claim.tenant_id)]


@router.post("/notes", response_model=NoteResponse, status_code=201)
def create_note(
    request: Request,
    body: NoteCreate,
    claim: SessionClaim = Depends(get_current_claim),
) -> NoteResponse:
    """Create a note owned by the caller.

    The plan is read from storage, not from the token, so an upgrade takes
    effect on the next request without logging in again. can_create() answers
    first; the store's conditional insert then enforces the same limit
    atomically, so a concurrent create cannot push a free tenant past it.
    """
    enforce(claim, Action.create_note, ResourceDescriptor(tenant_id=claim.tenant_id))

    user_store: UserStore = request.app.state.user_store
    notes: NoteStore = request.app.state.notes

    tenant = user_store.get_tenant(claim.tenant_id)
    if tenant is None:
        raise AuthenticationError()
    plan = Plan(tenant.plan)
    enforce_quota(plan, notes.count_notes(claim.tenant_id))

    note_id = notes.create_note(
        Note(tenant_id=claim.tenant_id, user_id=claim.subject_id, title=body.title, content=body.content),
        limit=note_limit(plan),
    )
    if note_id is None:
        # A concurrent create filled the last free slot after our count.
        raise QuotaError()
    logger.info("Note %d created in tenant %s by user %d", note_id, claim.tenant_slug, claim.subject_id)
    return NoteResponse.from_note(notes.get_note(note_id))


# ---------------------------------------------------------------------------
# Item
# ---------------------------------------------------------------------------


@router.get("/notes/{note_id}", response_model=NoteResponse)
def get_note(request: Request, note_id: int, claim: SessionClaim = Depends(get_current_claim)) -> NoteResponse:
    notes: NoteStore = request.app.state.notes
    note = _load_note(notes, note_id)
    enforce(claim, Action.get_note, _descriptor(note))
    return NoteResponse.from_note(note)


@router.put("/notes/{note_id}", response_model=NoteResponse)
def update_note(
    request: Request,
    note_id: int,
    body: NoteUpdate,
    claim: SessionClaim = Depends(get_current_claim),
) -> NoteResponse:
    """Update a note. Members may only update their own notes; admins any in their tenant."""
    notes: NoteStore = request.app.state.notes
    note = _load_note(notes, note_id)
    enforce(claim, Action.update_note, _descriptor(note))

    if body.title is None and body.content is None:
        raise ValidationError("Provide a title or content to update.", code="no_changes")

    updated = notes.update_note(note_id, claim.tenant_id, title=body.title, content=body.content)
    if updated is None:
        # Deleted between the descriptor load and the update.
        raise NotFoundError("Note not found.")
    return NoteResponse.from_note(updated)


@router.delete("/notes/{note_id}", response_model=SuccessResponse)
def delete_note(request: Request, note_id: int, claim: SessionClaim = Depends(get_current_claim)) -> SuccessResponse:
    """Delete a note. Members may only delete their own notes; admins any in their tenant."""
    notes: NoteStore = request.app.state.notes
    note = _load_note(notes, note_id)
    enforce(claim, Action.delete_note, _descriptor(note))

    if not notes.delete_note(note_id, claim.tenant_id):
        raise NotFoundError("Note not found.")
    logger.info("Note %d deleted in tenant %s by user %d", note_id, claim.tenant_slug, claim.subject_id)
    return SuccessResponse()
