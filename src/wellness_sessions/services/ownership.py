"""Ownership checks for session records."""

from enum import Enum

from wellness_sessions.domain.errors import NotFoundError
from wellness_sessions.domain.sessions import SessionRecord
from wellness_sessions.services.identity import Identity


class Access(Enum):
    """Outcome of an ownership decision."""

    ALLOWED = "allowed"
    DENIED = "denied"


def authorize(identity: Identity, record: SessionRecord) -> Access:
    """Allow owner reads and writes only to the identity that created the record."""
    if record.owner_id == identity.owner_id:
        return Access.ALLOWED
    return Access.DENIED


def require_owner(identity: Identity, record: SessionRecord | None) -> SessionRecord:
    """Return the record when owned by the caller.

    Missing and foreign records raise the same NotFoundError so callers
    cannot discover other owners' drafts.
    """
    if record is None or authorize(identity, record) is Access.DENIED:
        raise NotFoundError
    return record
