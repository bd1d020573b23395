"""Debounced autosave for one open session editor.

The scheduler sits on the client side of the save contract. Edits restart a
quiet-interval timer; when it elapses the latest field values are sent in a
single save. Writes for the document are serialized: a flush requested while
another is in flight waits for it and then sends whatever is newest, so two
writes never race on the same id and a session without an id is created once.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol
from uuid import UUID

from wellness_sessions.domain.errors import (
    ConflictError,
    NotFoundError,
    TransientFailure,
    ValidationError,
)
from wellness_sessions.domain.sessions import (
    SessionDraft,
    SessionRecord,
    is_savable,
    normalize_draft,
    parse_tags,
)
from wellness_sessions.editor.clock import AsyncioClock, Clock, TimerHandle

logger = logging.getLogger(__name__)

DEFAULT_QUIET_INTERVAL = 5.0


class SessionApi(Protocol):
    """Network contract the editor uses to persist sessions."""

    async def save_draft(
        self,
        title: str,
        tags: list[str],
        content_ref: str,
        session_id: UUID | None = None,
        revision: int | None = None,
    ) -> SessionRecord:
        """Create or update a draft and return the stored revision."""

    async def publish(self, session_id: UUID) -> SessionRecord:
        """Publish a persisted session."""

    async def get_session(self, session_id: UUID) -> SessionRecord:
        """Fetch an owned session."""


class SaveState(Enum):
    """Persistence state of the open document."""

    IDLE = "idle"
    PENDING_SAVE = "pending_save"
    SAVING = "saving"


@dataclass(frozen=True)
class DraftFields:
    """Raw field values as typed in the editor."""

    title: str
    content_ref: str
    tags: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class EditorStatus:
    """Snapshot of what the editing surface should show."""

    state: SaveState
    last_saved_at: datetime | None = None
    last_error: Exception | None = None

    def indicator(self) -> str:
        if self.state is SaveState.SAVING:
            return "Saving..."
        if self.state is SaveState.PENDING_SAVE:
            if isinstance(self.last_error, TransientFailure):
                return "Save failed, will retry"
            if isinstance(self.last_error, ConflictError):
                return "Session changed elsewhere, reload to continue"
            if isinstance(self.last_error, ValidationError):
                return "Unsaved changes, check the highlighted fields"
            if self.last_error is not None:
                return "Save failed"
            return "Unsaved changes"
        if self.last_saved_at is not None:
            return f"Saved at {self.last_saved_at:%H:%M}"
        return ""


class AutosaveScheduler:
    """Decides when edits of one session are written through ``SessionApi``."""

    def __init__(
        self,
        api: SessionApi,
        clock: Clock | None = None,
        quiet_interval: float = DEFAULT_QUIET_INTERVAL,
        session_id: UUID | None = None,
        revision: int | None = None,
    ) -> None:
        self.api = api
        self.clock = clock or AsyncioClock()
        self.quiet_interval = quiet_interval
        self.session_id = session_id
        self.revision = revision
        self.last_saved_at: datetime | None = None
        self.last_error: Exception | None = None
        self.last_record: SessionRecord | None = None
        self._state = SaveState.IDLE
        self._fields: DraftFields | None = None
        self._uncertain: SessionDraft | None = None
        self._closed = False
        self._generation = 0
        self._saved_generation = 0
        self._timer: TimerHandle | None = None
        self._write_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> SaveState:
        return self._state

    @property
    def fields(self) -> DraftFields | None:
        return self._fields

    @property
    def has_unsaved_changes(self) -> bool:
        return self._generation > self._saved_generation

    def status(self) -> EditorStatus:
        return EditorStatus(
            state=self._state,
            last_saved_at=self.last_saved_at,
            last_error=self.last_error,
        )

    async def load(self, session_id: UUID) -> SessionRecord:
        """Open an existing session; nothing is unsaved afterwards."""
        record = await self.api.get_session(session_id)
        self._cancel_timer()
        self._fields = DraftFields(
            title=record.title, content_ref=record.content_ref, tags=list(record.tags)
        )
        self._saved_generation = self._generation
        self._remember(record)
        self.last_saved_at = record.updated_at
        self.last_error = None
        self._state = SaveState.IDLE
        return record

    def edit(self, title: str, tags: list[str], content_ref: str) -> None:
        """Record the latest values and restart the quiet-interval timer.

        While title or content_ref is blank no timer is armed; the values are
        kept and go out with the next savable edit or explicit save.
        """
        self._fields = DraftFields(title=title, content_ref=content_ref, tags=list(tags))
        self._generation += 1
        if isinstance(self.last_error, ValidationError):
            self.last_error = None
        if self._state is not SaveState.SAVING:
            self._state = SaveState.PENDING_SAVE
        self._cancel_timer()
        if is_savable(title, content_ref):
            self._arm_timer()

    def edit_raw(self, title: str, tags_text: str, content_ref: str) -> None:
        """Like ``edit`` but with tags as typed: one comma-separated string."""
        self.edit(title, parse_tags(tags_text), content_ref)

    async def save_now(self) -> SessionRecord:
        """Manual save: write the latest values without waiting for the timer."""
        self._cancel_timer()
        async with self._write_lock:
            return await self._flush_locked(force=True)

    async def flush_pending(self) -> SessionRecord | None:
        """Write unsaved edits now, if there are any."""
        self._cancel_timer()
        async with self._write_lock:
            return await self._flush_locked(force=False)

    async def publish(self) -> SessionRecord:
        """Flush pending edits, then publish the flushed revision."""
        self._cancel_timer()
        async with self._write_lock:
            await self._flush_locked(force=False)
            if self.session_id is None:
                raise NotFoundError
            record = await self.api.publish(self.session_id)
            self._remember(record)
        logger.info("Published session", extra={"session_id": str(record.id)})
        return record

    async def close(self) -> bool:
        """Best-effort final flush when the editor is abandoned.

        No timer survives close, even when the final flush fails.
        """
        self._closed = True
        try:
            await self.flush_pending()
        except Exception:
            logger.warning(
                "Final flush failed; unsaved edits remain",
                extra={"session_id": str(self.session_id)},
                exc_info=True,
            )
            return False
        finally:
            await self.drain()
            self._cancel_timer()
        return not self.has_unsaved_changes

    async def drain(self) -> None:
        """Wait for timer-started flushes to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _arm_timer(self) -> None:
        self._cancel_timer()
        if self._closed:
            return
        self._timer = self.clock.call_later(self.quiet_interval, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self._autosave())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _autosave(self) -> None:
        try:
            async with self._write_lock:
                await self._flush_locked(force=False)
        except Exception as exc:
            logger.warning(
                "Autosave failed",
                extra={"session_id": str(self.session_id), "error": str(exc)},
            )

    async def _flush_locked(self, force: bool) -> SessionRecord | None:
        if not force and not self.has_unsaved_changes:
            return self.last_record
        fields = self._fields
        generation = self._generation
        try:
            draft = normalize_draft(
                fields.title if fields else None,
                fields.tags if fields else None,
                fields.content_ref if fields else None,
            )
        except ValidationError as exc:
            self.last_error = exc
            raise

        self._state = SaveState.SAVING
        try:
            try:
                record = await self._send(draft)
            except ConflictError:
                if not await self._adopt_uncertain_write():
                    raise
                record = await self._send(draft)
        except Exception as exc:
            self._state = SaveState.PENDING_SAVE
            self.last_error = exc
            if isinstance(exc, TransientFailure):
                # The write may have landed; a later conflict is checked against it.
                self._uncertain = draft
                if self._timer is None:
                    self._arm_timer()
            raise

        self._uncertain = None
        self._remember(record)
        self.last_saved_at = self.clock.now()
        self.last_error = None
        self._saved_generation = max(self._saved_generation, generation)
        if self.has_unsaved_changes:
            self._state = SaveState.PENDING_SAVE
        else:
            self._state = SaveState.IDLE
        return record

    async def _send(self, draft: SessionDraft) -> SessionRecord:
        return await self.api.save_draft(
            title=draft.title,
            tags=list(draft.tags),
            content_ref=draft.content_ref,
            session_id=self.session_id,
            revision=self.revision,
        )

    async def _adopt_uncertain_write(self) -> bool:
        """Accept the stored revision when it is our own timed-out write."""
        attempted = self._uncertain
        if attempted is None or self.session_id is None:
            return False
        stored = await self.api.get_session(self.session_id)
        if (stored.title, sorted(stored.tags), stored.content_ref) != (
            attempted.title,
            sorted(attempted.tags),
            attempted.content_ref,
        ):
            return False
        logger.info(
            "Adopting revision written by a timed-out save",
            extra={"session_id": str(self.session_id), "revision": stored.revision},
        )
        self._remember(stored)
        return True

    def _remember(self, record: SessionRecord) -> None:
        self.session_id = record.id
        self.revision = record.revision
        self.last_record = record
