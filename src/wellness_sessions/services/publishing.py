"""Draft to published transition."""

import logging
from dataclasses import dataclass
from uuid import UUID

from wellness_sessions.domain.errors import InvariantViolation
from wellness_sessions.domain.sessions import SessionDraft, SessionRecord
from wellness_sessions.services.identity import Identity
from wellness_sessions.services.ownership import require_owner
from wellness_sessions.services.sessions import DraftService, SessionRepository

logger = logging.getLogger(__name__)


@dataclass
class PublishService:
    """Publishes owned sessions, flushing pending edits first."""

    draft_service: DraftService
    repository: SessionRepository

    def publish(
        self,
        identity: Identity,
        session_id: UUID,
        pending: SessionDraft | None = None,
    ) -> SessionRecord:
        """Flush ``pending`` values if given, then mark the session published.

        Publishing an already-published session succeeds again so retried
        requests never fail.
        """
        if pending is not None:
            self.draft_service.save_draft(
                identity,
                title=pending.title,
                tags=pending.tags,
                content_ref=pending.content_ref,
                session_id=session_id,
            )

        record = self.repository.transition_to_published(
            session_id, identity.owner_id
        )
        require_owner(identity, record)
        if not record.is_published:
            logger.error(
                "Store returned unpublished record after publish",
                extra={"session_id": str(session_id), "status": record.status},
            )
            raise InvariantViolation(
                f"Session {session_id} is {record.status} after publish"
            )
        logger.info("Published session", extra={"session_id": str(session_id)})
        return record
