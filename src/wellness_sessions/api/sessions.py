"""Session API endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Request

from wellness_sessions.api.auth import require_identity
from wellness_sessions.api.models import PublishRequest, SaveDraftRequest
from wellness_sessions.services.identity import Identity  # noqa: TC001

if TYPE_CHECKING:
    from wellness_sessions.containers import AppContainer

router = APIRouter(prefix="/api", tags=["sessions"])


@router.get("/sessions")
async def list_published(
    request: Request, identity: Identity = Depends(require_identity)
) -> dict[str, object]:
    """Return all published sessions."""
    container: AppContainer = request.app.state.container
    sessions = container.draft_service.list_published()
    return {"sessions": [session.to_payload() for session in sessions]}


@router.get("/my-sessions")
async def list_owned(
    request: Request, identity: Identity = Depends(require_identity)
) -> dict[str, object]:
    """Return the caller's drafts and published sessions."""
    container: AppContainer = request.app.state.container
    sessions = container.draft_service.list_owned(identity)
    return {"sessions": [session.to_payload() for session in sessions]}


@router.get("/my-sessions/{session_id}")
async def get_owned(
    session_id: UUID, request: Request, identity: Identity = Depends(require_identity)
) -> dict[str, object]:
    """Return one of the caller's sessions."""
    container: AppContainer = request.app.state.container
    session = container.draft_service.get_owned(identity, session_id)
    return {"session": session.to_payload()}


@router.post("/my-sessions/save-draft")
async def save_draft(
    body: SaveDraftRequest,
    request: Request,
    identity: Identity = Depends(require_identity),
) -> dict[str, object]:
    """Create a draft, or overwrite an owned one when ``session_id`` is given."""
    container: AppContainer = request.app.state.container
    session = container.draft_service.save_draft(
        identity,
        title=body.title,
        tags=body.tags,
        content_ref=body.content_ref,
        session_id=body.session_id,
        expected_revision=body.revision,
    )
    return {"message": "Draft saved successfully", "session": session.to_payload()}


@router.post("/my-sessions/publish")
async def publish(
    body: PublishRequest,
    request: Request,
    identity: Identity = Depends(require_identity),
) -> dict[str, object]:
    """Publish an owned session; publishing twice is not an error.

    Field values in the body are saved first, so the published revision is
    never older than what the caller was looking at.
    """
    container: AppContainer = request.app.state.container
    session = container.publish_service.publish(
        identity, body.session_id, pending=body.pending_draft()
    )
    return {
        "message": "Session published successfully",
        "session": session.to_payload(),
    }
