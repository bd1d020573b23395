"""Caller identity resolution."""

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class Identity:
    """Authenticated owner identity passed explicitly into every call."""

    owner_id: str


class AuthenticationError(Exception):
    """Raised when a request carries no usable credentials."""


class IdentityVerifier(Protocol):
    """Interface for turning a bearer token into an identity."""

    def verify(self, token: str) -> Identity:
        """Return the identity for a token or raise AuthenticationError."""


def extract_bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an Authorization header value."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":  # noqa: PLR2004
        return None
    return parts[1]
