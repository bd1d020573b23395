"""HTTP client for the session API used by the editor."""

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

import httpx

from wellness_sessions.domain.errors import (
    ConflictError,
    NotFoundError,
    SessionError,
    TransientFailure,
    ValidationError,
)
from wellness_sessions.domain.sessions import SessionRecord, SessionStatus
from wellness_sessions.editor.scheduler import SessionApi

logger = logging.getLogger(__name__)


@dataclass
class HttpxSessionApiClient(SessionApi):
    """Session API client implemented with httpx.

    The bearer token belongs to this client instance; nothing is stored in
    process-wide defaults.
    """

    base_url: str
    access_token: str
    http_client: httpx.AsyncClient
    timeout: float = 10.0

    @classmethod
    def create(
        cls, base_url: str, access_token: str, timeout: float = 10.0
    ) -> "HttpxSessionApiClient":
        """Create a client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            access_token=access_token,
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def save_draft(
        self,
        title: str,
        tags: list[str],
        content_ref: str,
        session_id: UUID | None = None,
        revision: int | None = None,
    ) -> SessionRecord:
        """Create or update a draft via the save-draft endpoint."""
        payload: dict[str, object] = {
            "title": title,
            "tags": tags,
            "content_ref": content_ref,
        }
        if session_id is not None:
            payload["session_id"] = str(session_id)
        if revision is not None:
            payload["revision"] = revision
        data = await self._request("POST", "/api/my-sessions/save-draft", payload)
        return parse_session_payload(data["session"])

    async def publish(self, session_id: UUID) -> SessionRecord:
        """Publish a session via the publish endpoint."""
        data = await self._request(
            "POST", "/api/my-sessions/publish", {"session_id": str(session_id)}
        )
        return parse_session_payload(data["session"])

    async def get_session(self, session_id: UUID) -> SessionRecord:
        """Fetch an owned session."""
        data = await self._request("GET", f"/api/my-sessions/{session_id}")
        return parse_session_payload(data["session"])

    async def list_owned(self) -> list[SessionRecord]:
        """Fetch the caller's sessions."""
        data = await self._request("GET", "/api/my-sessions")
        return [parse_session_payload(row) for row in data["sessions"]]

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()

    async def _request(
        self, method: str, path: str, payload: dict[str, object] | None = None
    ) -> dict:
        try:
            response = await self.http_client.request(
                method,
                f"{self.base_url}{path}",
                json=payload,
                headers={"Authorization": f"Bearer {self.access_token}"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            logger.warning("Session API request failed", extra={"path": path})
            raise TransientFailure(str(exc)) from exc
        if response.is_success:
            return response.json()
        raise _error_from_response(response)


def _error_from_response(response: httpx.Response) -> SessionError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    status_code = response.status_code
    if status_code == httpx.codes.NOT_FOUND:
        return NotFoundError()
    if status_code == httpx.codes.CONFLICT:
        return ConflictError(
            int(body.get("expected_revision") or 0),
            int(body.get("current_revision") or 0),
        )
    if status_code in {httpx.codes.BAD_REQUEST, httpx.codes.UNPROCESSABLE_ENTITY}:
        errors = body.get("errors") or {"request": body.get("message", "invalid")}
        if isinstance(errors, list):
            errors = {"request": "; ".join(str(item) for item in errors)}
        return ValidationError(errors)
    if status_code == httpx.codes.UNAUTHORIZED:
        return SessionError("Not authenticated")
    return TransientFailure(f"Session API returned {status_code}")


def parse_session_payload(data: dict[str, object]) -> SessionRecord:
    """Build a SessionRecord from its JSON representation."""
    return SessionRecord(
        id=UUID(str(data["id"])),
        owner_id=str(data["owner_id"]),
        title=str(data["title"]),
        tags=[str(tag) for tag in data.get("tags") or []],
        content_ref=str(data["content_ref"]),
        status=SessionStatus(str(data["status"])),
        created_at=datetime.fromisoformat(str(data["created_at"])),
        updated_at=datetime.fromisoformat(str(data["updated_at"])),
        revision=int(data.get("revision") or 1),
    )
