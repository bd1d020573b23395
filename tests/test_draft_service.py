"""Tests for saving, reading and publishing drafts."""

from dataclasses import replace
from uuid import UUID, uuid4

import pytest

from tests.conftest import CONTENT_URL, OWNER_A, OWNER_B
from wellness_sessions.adapters.memory_session_repository import (
    InMemorySessionRepository,
)
from wellness_sessions.domain.errors import (
    ConflictError,
    InvariantViolation,
    NotFoundError,
    ValidationError,
)
from wellness_sessions.domain.sessions import (
    SessionDraft,
    SessionRecord,
    SessionStatus,
)
from wellness_sessions.services.publishing import PublishService
from wellness_sessions.services.sessions import DraftService


def test_create_then_publish_twice(
    draft_service: DraftService, publish_service: PublishService
) -> None:
    created = draft_service.save_draft(
        OWNER_A, title="Morning Flow", tags=[], content_ref=CONTENT_URL
    )

    assert isinstance(created.id, UUID)
    assert created.status is SessionStatus.DRAFT
    assert created.owner_id == OWNER_A.owner_id

    published = publish_service.publish(OWNER_A, created.id)
    again = publish_service.publish(OWNER_A, created.id)

    assert published.status is SessionStatus.PUBLISHED
    assert again.status is SessionStatus.PUBLISHED
    assert again.id == created.id
    assert again.title == "Morning Flow"


def test_save_draft_with_id_overwrites_without_new_record(
    draft_service: DraftService, session_repository: InMemorySessionRepository
) -> None:
    created = draft_service.save_draft(
        OWNER_A, title="Flow", tags=["yoga"], content_ref=CONTENT_URL
    )

    first = draft_service.save_draft(
        OWNER_A,
        title="Flow",
        tags=["yoga"],
        content_ref=CONTENT_URL,
        session_id=created.id,
    )
    second = draft_service.save_draft(
        OWNER_A,
        title="Flow",
        tags=["yoga"],
        content_ref=CONTENT_URL,
        session_id=created.id,
    )

    assert len(session_repository.sessions) == 1
    for record in (first, second):
        assert record.id == created.id
        assert (record.title, record.tags, record.content_ref) == (
            "Flow",
            ["yoga"],
            CONTENT_URL,
        )
        assert record.owner_id == OWNER_A.owner_id


def test_update_keeps_owner_and_created_at(draft_service: DraftService) -> None:
    created = draft_service.save_draft(
        OWNER_A, title="Flow", tags=[], content_ref=CONTENT_URL
    )

    updated = draft_service.save_draft(
        OWNER_A,
        title="Evening Flow",
        tags=["calm"],
        content_ref=CONTENT_URL,
        session_id=created.id,
    )

    assert updated.owner_id == created.owner_id
    assert updated.created_at == created.created_at
    assert updated.updated_at > created.updated_at
    assert updated.revision == created.revision + 1


def test_save_draft_rejects_empty_title_without_writes(
    draft_service: DraftService, session_repository: InMemorySessionRepository
) -> None:
    with pytest.raises(ValidationError):
        draft_service.save_draft(OWNER_A, title="", tags=[], content_ref=CONTENT_URL)

    assert session_repository.writes == 0
    assert session_repository.sessions == {}


def test_save_draft_rejects_empty_content_ref_without_writes(
    draft_service: DraftService, session_repository: InMemorySessionRepository
) -> None:
    created = draft_service.save_draft(
        OWNER_A, title="Flow", tags=[], content_ref=CONTENT_URL
    )
    writes_before = session_repository.writes

    with pytest.raises(ValidationError):
        draft_service.save_draft(
            OWNER_A, title="Flow", tags=[], content_ref=" ", session_id=created.id
        )

    assert session_repository.writes == writes_before
    assert session_repository.sessions[created.id].content_ref == CONTENT_URL


def test_other_owner_cannot_save_or_publish(
    draft_service: DraftService,
    publish_service: PublishService,
    session_repository: InMemorySessionRepository,
) -> None:
    created = draft_service.save_draft(
        OWNER_A, title="Flow", tags=[], content_ref=CONTENT_URL
    )

    with pytest.raises(NotFoundError) as foreign:
        draft_service.save_draft(
            OWNER_B,
            title="Hijacked",
            tags=[],
            content_ref=CONTENT_URL,
            session_id=created.id,
        )
    with pytest.raises(NotFoundError) as missing:
        draft_service.save_draft(
            OWNER_B,
            title="Hijacked",
            tags=[],
            content_ref=CONTENT_URL,
            session_id=uuid4(),
        )
    with pytest.raises(NotFoundError):
        publish_service.publish(OWNER_B, created.id)

    assert str(foreign.value) == str(missing.value)
    assert session_repository.sessions[created.id] == created


def test_get_owned_hides_other_owners_drafts(draft_service: DraftService) -> None:
    created = draft_service.save_draft(
        OWNER_A, title="Flow", tags=[], content_ref=CONTENT_URL
    )

    assert draft_service.get_owned(OWNER_A, created.id) == created
    with pytest.raises(NotFoundError):
        draft_service.get_owned(OWNER_B, created.id)


def test_published_status_survives_later_saves(
    draft_service: DraftService, publish_service: PublishService
) -> None:
    created = draft_service.save_draft(
        OWNER_A, title="Flow", tags=[], content_ref=CONTENT_URL
    )
    publish_service.publish(OWNER_A, created.id)

    edited = draft_service.save_draft(
        OWNER_A,
        title="Flow v2",
        tags=[],
        content_ref=CONTENT_URL,
        session_id=created.id,
    )
    republished = publish_service.publish(OWNER_A, created.id)

    assert edited.status is SessionStatus.PUBLISHED
    assert edited.title == "Flow v2"
    assert republished.status is SessionStatus.PUBLISHED


def test_stale_revision_is_rejected(draft_service: DraftService) -> None:
    created = draft_service.save_draft(
        OWNER_A, title="Flow", tags=[], content_ref=CONTENT_URL
    )
    draft_service.save_draft(
        OWNER_A,
        title="Tab one",
        tags=[],
        content_ref=CONTENT_URL,
        session_id=created.id,
        expected_revision=created.revision,
    )

    with pytest.raises(ConflictError) as excinfo:
        draft_service.save_draft(
            OWNER_A,
            title="Tab two",
            tags=[],
            content_ref=CONTENT_URL,
            session_id=created.id,
            expected_revision=created.revision,
        )

    assert excinfo.value.current_revision == created.revision + 1
    assert draft_service.get_owned(OWNER_A, created.id).title == "Tab one"


def test_publish_flushes_pending_values_first(
    draft_service: DraftService, publish_service: PublishService
) -> None:
    created = draft_service.save_draft(
        OWNER_A, title="Flow", tags=[], content_ref=CONTENT_URL
    )

    published = publish_service.publish(
        OWNER_A,
        created.id,
        pending=SessionDraft(
            title="Final Flow", content_ref="https://x/final.json", tags=["calm"]
        ),
    )

    assert published.status is SessionStatus.PUBLISHED
    assert published.title == "Final Flow"
    assert published.content_ref == "https://x/final.json"
    assert published.tags == ["calm"]


def test_list_owned_and_published(
    draft_service: DraftService, publish_service: PublishService
) -> None:
    first = draft_service.save_draft(
        OWNER_A, title="First", tags=[], content_ref=CONTENT_URL
    )
    second = draft_service.save_draft(
        OWNER_A, title="Second", tags=[], content_ref=CONTENT_URL
    )
    other = draft_service.save_draft(
        OWNER_B, title="Other", tags=[], content_ref=CONTENT_URL
    )
    publish_service.publish(OWNER_B, other.id)

    owned = draft_service.list_owned(OWNER_A)
    published = draft_service.list_published()

    assert [record.id for record in owned] == [second.id, first.id]
    assert [record.id for record in published] == [other.id]


class _BrokenPublishRepository(InMemorySessionRepository):
    def transition_to_published(self, session_id: UUID, owner_id: str) -> SessionRecord:
        return replace(self.sessions[session_id], status=SessionStatus.DRAFT)


def test_publish_raises_invariant_violation_on_unpublished_result() -> None:
    repository = _BrokenPublishRepository()
    draft_service = DraftService(repository)
    publish_service = PublishService(draft_service=draft_service, repository=repository)
    created = draft_service.save_draft(
        OWNER_A, title="Flow", tags=[], content_ref=CONTENT_URL
    )

    with pytest.raises(InvariantViolation):
        publish_service.publish(OWNER_A, created.id)
