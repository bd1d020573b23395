"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from uuid import UUID

from supabase import create_client

from wellness_sessions.adapters.jwt_identity import JwtIdentityVerifier
from wellness_sessions.adapters.memory_session_repository import (
    InMemorySessionRepository,
)
from wellness_sessions.adapters.session_api_client import HttpxSessionApiClient
from wellness_sessions.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from wellness_sessions.config import Settings
from wellness_sessions.editor.scheduler import AutosaveScheduler
from wellness_sessions.services.identity import IdentityVerifier
from wellness_sessions.services.publishing import PublishService
from wellness_sessions.services.sessions import DraftService, SessionRepository


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    identity_verifier: IdentityVerifier
    session_repository: SessionRepository
    draft_service: DraftService
    publish_service: PublishService
    close_resources: Callable[[], Awaitable[None]]


def build_session_repository(settings: Settings) -> SessionRepository:
    """Create the session store selected by ``storage_backend``."""
    if settings.storage_backend == "memory":
        return InMemorySessionRepository()
    if settings.storage_backend != "supabase":
        raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
    if not settings.supabase_url or not settings.supabase_service_key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY are required")
    client = create_client(settings.supabase_url, settings.supabase_service_key)
    return SupabaseSessionRepository(client, table_name=settings.sessions_table)


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    session_repository = build_session_repository(resolved_settings)
    draft_service = DraftService(session_repository)
    publish_service = PublishService(
        draft_service=draft_service, repository=session_repository
    )
    identity_verifier = JwtIdentityVerifier(
        secret=resolved_settings.jwt_secret,
        algorithm=resolved_settings.jwt_algorithm,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=resolved_settings,
        identity_verifier=identity_verifier,
        session_repository=session_repository,
        draft_service=draft_service,
        publish_service=publish_service,
        close_resources=close_resources,
    )


def build_editor(
    settings: Settings,
    base_url: str,
    access_token: str,
    session_id: UUID | None = None,
) -> AutosaveScheduler:
    """Create an autosave scheduler talking to the session API over HTTP."""
    client = HttpxSessionApiClient.create(
        base_url, access_token, timeout=settings.request_timeout_seconds
    )
    return AutosaveScheduler(
        client,
        quiet_interval=settings.autosave_quiet_seconds,
        session_id=session_id,
    )
