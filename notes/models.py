"""
notes/models.py -- Domain dataclass for tenant-owned notes.

Pure data container with zero logic. Who may read or change a note is
decided in core/policy.py; how many a tenant may hold is decided in
core/quota.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Note:
    """A note owned by one tenant and created by one of its users.

    tenant_id never changes and must equal the tenant of whoever reads or
    writes the note. user_id is the creator and decides member-level
    mutation rights; every user of the tenant can read the note.

    id is None before the record is written to the database.
    """

    tenant_id: int
    user_id: int
    title: str
    content: str
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""  # ISO 8601, refreshed on every update
