"""Draft persistence: the create-or-update path for session revisions."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from wellness_sessions.domain.sessions import (
    SessionDraft,
    SessionRecord,
    normalize_draft,
)
from wellness_sessions.services.identity import Identity
from wellness_sessions.services.ownership import require_owner

logger = logging.getLogger(__name__)


class SessionRepository(Protocol):
    """Persistence interface for session records."""

    def create_session(self, owner_id: str, draft: SessionDraft) -> SessionRecord:
        """Create a draft session, minting its id and timestamps."""

    def get_owned_session(
        self, session_id: UUID, owner_id: str
    ) -> SessionRecord | None:
        """Return a session when it exists and belongs to the owner."""

    def update_if_owned(
        self,
        session_id: UUID,
        owner_id: str,
        draft: SessionDraft,
        expected_revision: int | None = None,
    ) -> SessionRecord:
        """Overwrite draft fields of an owned session and return the new revision."""

    def transition_to_published(
        self, session_id: UUID, owner_id: str
    ) -> SessionRecord:
        """Mark an owned session as published and return it."""

    def list_owned(self, owner_id: str) -> list[SessionRecord]:
        """Return all sessions of an owner, most recently updated first."""

    def list_published(self) -> list[SessionRecord]:
        """Return published sessions, newest first."""


@dataclass
class DraftService:
    """Application service for saving and reading session drafts."""

    repository: SessionRepository

    def save_draft(  # noqa: PLR0913
        self,
        identity: Identity,
        title: str | None,
        tags: list[str] | None,
        content_ref: str | None,
        session_id: UUID | None = None,
        expected_revision: int | None = None,
    ) -> SessionRecord:
        """Validate and persist a draft revision.

        Without ``session_id`` a new draft is created; this is the only path
        that mints an id. With ``session_id`` the owned record is overwritten
        in place, so repeating a call with the same values is harmless.
        Validation failures raise before any write happens.
        """
        draft = normalize_draft(title, tags, content_ref)
        if session_id is None:
            record = self.repository.create_session(identity.owner_id, draft)
            logger.info(
                "Created draft session",
                extra={"session_id": str(record.id), "owner_id": identity.owner_id},
            )
            return record

        record = self.repository.update_if_owned(
            session_id,
            identity.owner_id,
            draft,
            expected_revision=expected_revision,
        )
        logger.info(
            "Saved draft revision",
            extra={"session_id": str(session_id), "revision": record.revision},
        )
        return record

    def get_owned(self, identity: Identity, session_id: UUID) -> SessionRecord:
        """Return an owned session or raise NotFoundError."""
        record = self.repository.get_owned_session(session_id, identity.owner_id)
        return require_owner(identity, record)

    def list_owned(self, identity: Identity) -> list[SessionRecord]:
        """Return the caller's drafts and published sessions."""
        return self.repository.list_owned(identity.owner_id)

    def list_published(self) -> list[SessionRecord]:
        """Return sessions visible to every reader."""
        return self.repository.list_published()
