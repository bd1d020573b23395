"""In-memory session repository for local runs and tests."""

import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from uuid import UUID, uuid4

from wellness_sessions.domain.errors import ConflictError, NotFoundError
from wellness_sessions.domain.sessions import (
    SessionDraft,
    SessionRecord,
    SessionStatus,
    normalize_draft,
)
from wellness_sessions.services.sessions import SessionRepository


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class InMemorySessionRepository(SessionRepository):
    """Non-durable store; a lock makes each ownership check and write atomic."""

    sessions: dict[UUID, SessionRecord] = field(default_factory=dict)
    clock: Callable[[], datetime] = _utcnow
    writes: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def create_session(self, owner_id: str, draft: SessionDraft) -> SessionRecord:
        """Create a draft session and return it."""
        checked = normalize_draft(draft.title, draft.tags, draft.content_ref)
        now = self.clock()
        record = SessionRecord(
            id=uuid4(),
            owner_id=owner_id,
            title=checked.title,
            tags=list(checked.tags),
            content_ref=checked.content_ref,
            status=SessionStatus.DRAFT,
            created_at=now,
            updated_at=now,
            revision=1,
        )
        with self._lock:
            self.sessions[record.id] = record
            self.writes += 1
        return record

    def get_owned_session(
        self, session_id: UUID, owner_id: str
    ) -> SessionRecord | None:
        """Return an owned session, if present."""
        with self._lock:
            record = self.sessions.get(session_id)
        if record is None or record.owner_id != owner_id:
            return None
        return record

    def update_if_owned(
        self,
        session_id: UUID,
        owner_id: str,
        draft: SessionDraft,
        expected_revision: int | None = None,
    ) -> SessionRecord:
        """Overwrite draft fields when the caller owns the session."""
        checked = normalize_draft(draft.title, draft.tags, draft.content_ref)
        with self._lock:
            current = self._owned_or_raise(session_id, owner_id)
            if (
                expected_revision is not None
                and expected_revision != current.revision
            ):
                raise ConflictError(expected_revision, current.revision)
            updated = replace(
                current,
                title=checked.title,
                tags=list(checked.tags),
                content_ref=checked.content_ref,
                updated_at=self._touch(current),
                revision=current.revision + 1,
            )
            self.sessions[session_id] = updated
            self.writes += 1
        return updated

    def transition_to_published(
        self, session_id: UUID, owner_id: str
    ) -> SessionRecord:
        """Publish an owned session; repeating the call is a no-op on status."""
        with self._lock:
            current = self._owned_or_raise(session_id, owner_id)
            updated = replace(
                current,
                status=SessionStatus.PUBLISHED,
                updated_at=self._touch(current),
                revision=current.revision + 1,
            )
            self.sessions[session_id] = updated
            self.writes += 1
        return updated

    def list_owned(self, owner_id: str) -> list[SessionRecord]:
        """Return owned sessions, most recently updated first."""
        owned = [s for s in self._snapshot() if s.owner_id == owner_id]
        return sorted(owned, key=lambda s: s.updated_at, reverse=True)

    def list_published(self) -> list[SessionRecord]:
        """Return published sessions, newest first."""
        published = [s for s in self._snapshot() if s.is_published]
        return sorted(published, key=lambda s: s.created_at, reverse=True)

    def _snapshot(self) -> list[SessionRecord]:
        with self._lock:
            return list(self.sessions.values())

    def _owned_or_raise(self, session_id: UUID, owner_id: str) -> SessionRecord:
        current = self.sessions.get(session_id)
        if current is None or current.owner_id != owner_id:
            raise NotFoundError
        return current

    def _touch(self, current: SessionRecord) -> datetime:
        return max(self.clock(), current.created_at)
