"""Bearer-token authentication for API routes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Header, HTTPException, Request, status

from wellness_sessions.services.identity import (
    AuthenticationError,
    Identity,
    extract_bearer_token,
)

if TYPE_CHECKING:
    from wellness_sessions.containers import AppContainer


async def require_identity(
    request: Request,
    authorization: str | None = Header(default=None),
) -> Identity:
    """Resolve the caller identity for this request or reject it."""
    token = extract_bearer_token(authorization)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    container: AppContainer = request.app.state.container
    try:
        return container.identity_verifier.verify(token)
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
