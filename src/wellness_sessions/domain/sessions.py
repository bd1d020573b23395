"""Domain models for editable wellness sessions."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import AnyHttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from wellness_sessions.domain.errors import ValidationError

MAX_TITLE_LENGTH = 200
MAX_TAG_LENGTH = 50

_URL_ADAPTER = TypeAdapter(AnyHttpUrl)


class SessionStatus(StrEnum):
    """Publication state of a session."""

    DRAFT = "draft"
    PUBLISHED = "published"


@dataclass(frozen=True)
class SessionDraft:
    """Validated field values for one revision of a session."""

    title: str
    content_ref: str
    tags: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SessionRecord:
    """Represents a persisted session revision."""

    id: UUID
    owner_id: str
    title: str
    tags: list[str]
    content_ref: str
    status: SessionStatus
    created_at: datetime
    updated_at: datetime
    revision: int = 1

    @property
    def is_published(self) -> bool:
        return self.status is SessionStatus.PUBLISHED

    def to_payload(self) -> dict[str, object]:
        """Return a JSON-ready representation."""
        return {
            "id": str(self.id),
            "owner_id": self.owner_id,
            "title": self.title,
            "tags": list(self.tags),
            "content_ref": self.content_ref,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "revision": self.revision,
        }


def is_savable(title: str | None, content_ref: str | None) -> bool:
    """Return true when both required fields carry non-blank text."""
    return bool((title or "").strip()) and bool((content_ref or "").strip())


def normalize_draft(
    title: str | None, tags: list[str] | None, content_ref: str | None
) -> SessionDraft:
    """Trim and validate draft fields, raising ValidationError on failure."""
    errors: dict[str, str] = {}

    cleaned_title = (title or "").strip()
    if not cleaned_title:
        errors["title"] = "Title is required"
    elif len(cleaned_title) > MAX_TITLE_LENGTH:
        errors["title"] = f"Title cannot exceed {MAX_TITLE_LENGTH} characters"

    cleaned_tags: list[str] = []
    for tag in tags or []:
        value = str(tag).strip()
        if not value or value in cleaned_tags:
            continue
        if len(value) > MAX_TAG_LENGTH:
            errors["tags"] = f"Tag cannot exceed {MAX_TAG_LENGTH} characters"
            break
        cleaned_tags.append(value)

    cleaned_ref = (content_ref or "").strip()
    if not cleaned_ref:
        errors["content_ref"] = "Content URL is required"
    elif not _is_url(cleaned_ref):
        errors["content_ref"] = "Content URL must be a valid URL"

    if errors:
        raise ValidationError(errors)
    return SessionDraft(title=cleaned_title, content_ref=cleaned_ref, tags=cleaned_tags)


def parse_tags(raw: str | None) -> list[str]:
    """Split a comma-separated tag string as typed in the editor."""
    if not raw:
        return []
    return [chunk.strip() for chunk in raw.split(",") if chunk.strip()]


def _is_url(value: str) -> bool:
    try:
        _URL_ADAPTER.validate_python(value)
    except PydanticValidationError:
        return False
    return True
