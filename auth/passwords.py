"""
auth/passwords.py -- Credential verification (bcrypt).

Security design decisions:
  bcrypt is used directly rather than through passlib: passlib's wrap-bug
  detection builds a password longer than 72 bytes, which bcrypt 4.x rejects
  with an explicit error.

  The cost factor is fixed at 10 rounds. Every hash in the database therefore
  costs the same to verify, which is what makes the timing equalization in
  authenticate_user() work.

  Unknown e-mail and wrong password both return None after exactly one bcrypt
  comparison. The route layer maps None to one generic 401, so neither the
  response body nor its timing reveals whether an account exists.

Layer rule: no imports from api/ or notes/.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import bcrypt

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("tenantnotes.auth")

BCRYPT_ROUNDS = 10


class CredentialHashError(Exception):
    """A stored hash could not be parsed. Fatal for the request."""


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    Passwords longer than 72 bytes are truncated by bcrypt. The API layer caps
    password fields at 72 characters of input so that never happens silently
    for ASCII passwords.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Raises CredentialHashError if the stored hash is corrupt. That is a data
    problem, not a wrong password, and must not be reported as one.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError as exc:
        logger.error("Stored password hash could not be parsed")
        raise CredentialHashError("invalid stored hash") from exc


# Computed once at import so the first login attempt is not measurably slower
# than subsequent ones.
_DUMMY_HASH: str = hash_password("tenantnotes_timing_dummy")


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Return the User whose e-mail and password match, or None.

    Always runs bcrypt whether or not the user exists:
    - Unknown e-mail: bcrypt runs against _DUMMY_HASH (same cost as a real check)
    - Wrong password: bcrypt runs against the real hash (same cost)
    """
    user = store.get_user_by_email(email)
    if user is None:
        # Do NOT return before running bcrypt.
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user
