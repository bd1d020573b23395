"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import UUID

import pytest

from wellness_sessions.adapters.jwt_identity import JwtIdentityVerifier
from wellness_sessions.adapters.memory_session_repository import (
    InMemorySessionRepository,
)
from wellness_sessions.config import Settings
from wellness_sessions.containers import AppContainer
from wellness_sessions.domain.sessions import SessionRecord
from wellness_sessions.editor.scheduler import SessionApi
from wellness_sessions.services.identity import Identity
from wellness_sessions.services.publishing import PublishService
from wellness_sessions.services.sessions import DraftService

OWNER_A = Identity(owner_id="owner-a")
OWNER_B = Identity(owner_id="owner-b")
CONTENT_URL = "https://x/y.json"


class TickingClock:
    """Returns a strictly increasing timestamp on every call."""

    def __init__(self) -> None:
        self.current = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@dataclass
class FakeSessionApi(SessionApi):
    """In-process session API that records calls and can inject failures."""

    draft_service: DraftService
    publish_service: PublishService
    identity: Identity = OWNER_A
    calls: list[tuple[str, dict[str, object]]] = field(default_factory=list)
    failures: list[Exception] = field(default_factory=list)
    failures_after_write: list[Exception] = field(default_factory=list)
    gate: asyncio.Event | None = None
    in_flight: int = 0
    max_in_flight: int = 0

    async def save_draft(
        self,
        title: str,
        tags: list[str],
        content_ref: str,
        session_id: UUID | None = None,
        revision: int | None = None,
    ) -> SessionRecord:
        self.calls.append(
            (
                "save_draft",
                {
                    "title": title,
                    "tags": tags,
                    "content_ref": content_ref,
                    "session_id": session_id,
                    "revision": revision,
                },
            )
        )
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.failures:
                raise self.failures.pop(0)
            record = self.draft_service.save_draft(
                self.identity,
                title=title,
                tags=tags,
                content_ref=content_ref,
                session_id=session_id,
                expected_revision=revision,
            )
            if self.failures_after_write:
                raise self.failures_after_write.pop(0)
            return record
        finally:
            self.in_flight -= 1

    async def publish(self, session_id: UUID) -> SessionRecord:
        self.calls.append(("publish", {"session_id": session_id}))
        return self.publish_service.publish(self.identity, session_id)

    async def get_session(self, session_id: UUID) -> SessionRecord:
        self.calls.append(("get_session", {"session_id": session_id}))
        return self.draft_service.get_owned(self.identity, session_id)

    @property
    def save_calls(self) -> list[dict[str, object]]:
        return [payload for name, payload in self.calls if name == "save_draft"]


async def settle() -> None:
    """Let started tasks run until they block."""
    for _ in range(10):
        await asyncio.sleep(0)


@pytest.fixture
def settings() -> Settings:
    return Settings(jwt_secret="test-secret", storage_backend="memory")


@pytest.fixture
def session_repository() -> InMemorySessionRepository:
    return InMemorySessionRepository(clock=TickingClock())


@pytest.fixture
def draft_service(session_repository: InMemorySessionRepository) -> DraftService:
    return DraftService(session_repository)


@pytest.fixture
def publish_service(
    draft_service: DraftService, session_repository: InMemorySessionRepository
) -> PublishService:
    return PublishService(draft_service=draft_service, repository=session_repository)


@pytest.fixture
def session_api(
    draft_service: DraftService, publish_service: PublishService
) -> FakeSessionApi:
    return FakeSessionApi(draft_service=draft_service, publish_service=publish_service)


@pytest.fixture
def verifier(settings: Settings) -> JwtIdentityVerifier:
    return JwtIdentityVerifier(secret=settings.jwt_secret)


@pytest.fixture
def container(
    settings: Settings,
    session_repository: InMemorySessionRepository,
    draft_service: DraftService,
    publish_service: PublishService,
    verifier: JwtIdentityVerifier,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        identity_verifier=verifier,
        session_repository=session_repository,
        draft_service=draft_service,
        publish_service=publish_service,
        close_resources=close_resources,
    )


def auth_headers(verifier: JwtIdentityVerifier, identity: Identity) -> dict[str, str]:
    return {"Authorization": f"Bearer {verifier.issue_token(identity.owner_id)}"}
