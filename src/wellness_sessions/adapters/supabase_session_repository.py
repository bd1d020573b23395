"""Supabase-backed session repository."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TypeVar
from uuid import UUID

import httpx
from supabase import Client, PostgrestAPIError

from wellness_sessions.domain.errors import (
    ConflictError,
    NotFoundError,
    TransientFailure,
)
from wellness_sessions.domain.sessions import (
    SessionDraft,
    SessionRecord,
    SessionStatus,
    normalize_draft,
)
from wellness_sessions.services.sessions import SessionRepository

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, owner_id, title, tags, content_ref, status, "
    "created_at, updated_at, revision"
)
# Attempts for last-write-wins updates racing another writer.
_WRITE_ATTEMPTS = 3

T = TypeVar("T")


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for session records.

    Every write is a single conditional UPDATE filtered on id, owner and
    the revision just read, so no write lands between the ownership check
    and the mutation.
    """

    client: Client
    table_name: str = "wellness_sessions"

    def create_session(self, owner_id: str, draft: SessionDraft) -> SessionRecord:
        """Insert a draft row and return it."""
        checked = normalize_draft(draft.title, draft.tags, draft.content_ref)
        now = datetime.now(tz=UTC).isoformat()
        response = self._execute(
            lambda: self.client.table(self.table_name)
            .insert(
                {
                    "owner_id": owner_id,
                    "title": checked.title,
                    "tags": list(checked.tags),
                    "content_ref": checked.content_ref,
                    "status": SessionStatus.DRAFT.value,
                    "created_at": now,
                    "updated_at": now,
                    "revision": 1,
                }
            )
            .execute()
        )
        if not response.data:
            raise TransientFailure("Failed to create session")
        return _parse_session(response.data[0])

    def get_owned_session(
        self, session_id: UUID, owner_id: str
    ) -> SessionRecord | None:
        """Return an owned session, if present."""
        response = self._execute(
            lambda: self.client.table(self.table_name)
            .select(_COLUMNS)
            .eq("id", str(session_id))
            .eq("owner_id", owner_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_session(response.data[0])

    def update_if_owned(
        self,
        session_id: UUID,
        owner_id: str,
        draft: SessionDraft,
        expected_revision: int | None = None,
    ) -> SessionRecord:
        """Overwrite draft fields of an owned session."""
        checked = normalize_draft(draft.title, draft.tags, draft.content_ref)
        payload = {
            "title": checked.title,
            "tags": list(checked.tags),
            "content_ref": checked.content_ref,
        }
        return self._compare_and_set(
            session_id, owner_id, payload, expected_revision=expected_revision
        )

    def transition_to_published(
        self, session_id: UUID, owner_id: str
    ) -> SessionRecord:
        """Set status to published; already-published rows are refreshed only."""
        return self._compare_and_set(
            session_id, owner_id, {"status": SessionStatus.PUBLISHED.value}
        )

    def list_owned(self, owner_id: str) -> list[SessionRecord]:
        """Return owned sessions, most recently updated first."""
        response = self._execute(
            lambda: self.client.table(self.table_name)
            .select(_COLUMNS)
            .eq("owner_id", owner_id)
            .order("updated_at", desc=True)
            .execute()
        )
        return [_parse_session(row) for row in response.data or []]

    def list_published(self) -> list[SessionRecord]:
        """Return published sessions, newest first."""
        response = self._execute(
            lambda: self.client.table(self.table_name)
            .select(_COLUMNS)
            .eq("status", SessionStatus.PUBLISHED.value)
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_session(row) for row in response.data or []]

    def _compare_and_set(
        self,
        session_id: UUID,
        owner_id: str,
        payload: dict[str, object],
        expected_revision: int | None = None,
    ) -> SessionRecord:
        for _ in range(_WRITE_ATTEMPTS):
            current = self.get_owned_session(session_id, owner_id)
            if current is None:
                raise NotFoundError
            if (
                expected_revision is not None
                and expected_revision != current.revision
            ):
                raise ConflictError(expected_revision, current.revision)
            updated_at = max(datetime.now(tz=UTC), current.created_at)
            response = self._execute(
                lambda current=current, updated_at=updated_at: self.client.table(
                    self.table_name
                )
                .update(
                    {
                        **payload,
                        "updated_at": updated_at.isoformat(),
                        "revision": current.revision + 1,
                    }
                )
                .eq("id", str(session_id))
                .eq("owner_id", owner_id)
                .eq("revision", current.revision)
                .execute()
            )
            if response.data:
                return _parse_session(response.data[0])
            logger.info(
                "Session changed during write, retrying",
                extra={"session_id": str(session_id)},
            )
        raise TransientFailure(f"Session {session_id} kept changing during write")

    @staticmethod
    def _execute(call: Callable[[], T]) -> T:
        try:
            return call()
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            logger.exception("Supabase request failed")
            raise TransientFailure(str(exc)) from exc


def _parse_session(row: dict[str, object]) -> SessionRecord:
    return SessionRecord(
        id=UUID(str(row["id"])),
        owner_id=str(row["owner_id"]),
        title=str(row["title"]),
        tags=[str(tag) for tag in row.get("tags") or []],
        content_ref=str(row["content_ref"]),
        status=SessionStatus(str(row["status"])),
        created_at=_parse_timestamp(row["created_at"]),
        updated_at=_parse_timestamp(row["updated_at"]),
        revision=int(row.get("revision") or 1),
    )


def _parse_timestamp(value: object) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
