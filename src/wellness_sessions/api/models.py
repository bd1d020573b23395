"""Pydantic models for session API payloads."""

from uuid import UUID

from pydantic import BaseModel, Field

from wellness_sessions.domain.sessions import SessionDraft


class SaveDraftRequest(BaseModel):
    """Body of a save-draft call; field constraints are checked by the service."""

    title: str = ""
    tags: list[str] = Field(default_factory=list)
    content_ref: str = ""
    session_id: UUID | None = None
    revision: int | None = Field(default=None, ge=1)


class PublishRequest(BaseModel):
    """Body of a publish call; optional fields are saved before publishing."""

    session_id: UUID
    title: str | None = None
    tags: list[str] | None = None
    content_ref: str | None = None

    def pending_draft(self) -> SessionDraft | None:
        """Return unsaved editor values, if the caller sent any."""
        if self.title is None and self.content_ref is None and self.tags is None:
            return None
        return SessionDraft(
            title=self.title or "",
            content_ref=self.content_ref or "",
            tags=list(self.tags or []),
        )
