"""
notes/store.py -- SQLAlchemy-backed persistence layer for notes.

Uses SQLAlchemy Core (not ORM) so the dataclass in notes/models.py remains
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change, not a rewrite.

Pattern: Repository + Data Mapper. NoteStore is the repository; _row_to_note
is the mapper. Route handlers never touch SQL directly.

Tenant scoping:
  get_note() is deliberately unscoped -- it loads the descriptor the
  authorization policy needs (tenant_id, user_id). Every mutation is scoped
  by tenant_id as well, so a policy bug cannot reach another tenant's rows.

Quota enforcement:
  create_note(note, limit) is one INSERT ... SELECT ... WHERE count < limit
  statement. SQLite holds the write lock for the whole statement, so two
  concurrent creates can never both slip under the limit. On PostgreSQL the
  same guarantee needs SERIALIZABLE isolation.

Engine construction (WAL, busy timeout, pool timeout) lives in
core/storage.py and is shared with auth/store.py.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = NoteStore()                               # SQLite default
    store = NoteStore("postgresql://user:pw@host/db") # PostgreSQL
    note_id = store.create_note(note, limit=3)        # None if the tenant is full
    notes = store.list_notes(tenant_id)
    store.close()
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    func,
    literal,
    select,
    text,
)
from sqlalchemy.engine import Engine

from core.storage import build_engine
from notes.models import Note

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'tenantnotes_notes.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_notes = Table(
    "notes",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("tenant_id", Integer, nullable=False, index=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("title", String(255), nullable=False),
    Column("content", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_INSERT_COLUMNS = ["tenant_id", "user_id", "title", "content", "created_at", "updated_at"]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class NoteStore:
    def __init__(self, db_url: str = _DEFAULT_DB_URL, timeout: float = 5.0) -> None:
        self.engine: Engine = build_engine(db_url or _DEFAULT_DB_URL, timeout)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_note(self, note_id: int) -> Optional[Note]:
        """Return the note with this id from any tenant, or None.

        Callers must run the result through core.policy.authorize() before
        exposing it.
        """
        with self.engine.connect() as conn:
            row = conn.execute(_notes.select().where(_notes.c.id == note_id)).fetchone()
        return _row_to_note(row) if row is not None else None

    def list_notes(self, tenant_id: int) -> list[Note]:
        """Return every note of one tenant, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _notes.select()
                .where(_notes.c.tenant_id == tenant_id)
                .order_by(_notes.c.created_at.desc(), _notes.c.id.desc())
            ).fetchall()
        return [_row_to_note(r) for r in rows]

    def count_notes(self, tenant_id: int) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                select(func.count()).select_from(_notes).where(_notes.c.tenant_id == tenant_id)
            ).scalar()
        return result or 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_note(self, note: Note, limit: Optional[int] = None) -> Optional[int]:
        """Insert note unless its tenant already holds limit notes.

        Returns the new note id, or None when the limit was reached. limit=None
        inserts unconditionally. The count and the insert are a single
        statement, so there is no window between check and write.
        """
        now = _now_iso()
        source = select(
            literal(note.tenant_id, Integer),
            literal(note.user_id, Integer),
            literal(note.title, String),
            literal(note.content, Text),
            literal(now, String),
            literal(now, String),
        )
        if limit is not None:
            held = (
                select(func.count())
                .select_from(_notes)
                .where(_notes.c.tenant_id == note.tenant_id)
                .correlate(None)
                .scalar_subquery()
            )
            source = source.where(held < limit)
        stmt = _notes.insert().from_select(_INSERT_COLUMNS, source).returning(_notes.c.id)
        with self.engine.connect() as conn:
            new_id = conn.execute(stmt).scalar()
            conn.commit()
        return new_id

    def update_note(
        self,
        note_id: int,
        tenant_id: int,
        title: Optional[str] = None,
        content: Optional[str] = None,
    ) -> Optional[Note]:
        """Replace title and/or content. Returns the updated note, or None if not in this tenant."""
        fields: dict = {"updated_at": _now_iso()}
        if title is not None:
            fields["title"] = title
        if content is not None:
            fields["content"] = content
        with self.engine.connect() as conn:
            result = conn.execute(
                _notes.update().where((_notes.c.id == note_id) & (_notes.c.tenant_id == tenant_id)).values(**fields)
            )
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_note(note_id)

    def delete_note(self, note_id: int, tenant_id: int) -> bool:
        """Delete a note of this tenant. Returns False if no such note."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _notes.delete().where((_notes.c.id == note_id) & (_notes.c.tenant_id == tenant_id))
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_note(row) -> Note:
    return Note(
        id=row.id,
        tenant_id=row.tenant_id,
        user_id=row.user_id,
        title=row.title,
        content=row.content,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
