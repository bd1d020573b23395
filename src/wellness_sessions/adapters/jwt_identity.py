"""JWT-based identity verification."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from wellness_sessions.services.identity import (
    AuthenticationError,
    Identity,
    IdentityVerifier,
)


@dataclass
class JwtIdentityVerifier(IdentityVerifier):
    """Verifies HS-signed access tokens whose ``sub`` claim is the owner id."""

    secret: str
    algorithm: str = "HS256"

    def verify(self, token: str) -> Identity:
        """Decode a token and return the identity it carries."""
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as exc:
            raise AuthenticationError("Invalid token") from exc
        subject = payload.get("sub")
        if not subject:
            raise AuthenticationError("Token has no subject")
        return Identity(owner_id=str(subject))

    def issue_token(
        self, owner_id: str, expires_delta: timedelta | None = None
    ) -> str:
        """Create an access token for an owner id."""
        expire = datetime.now(tz=UTC) + (expires_delta or timedelta(minutes=15))
        return jwt.encode(
            {"sub": owner_id, "exp": expire}, self.secret, algorithm=self.algorithm
        )
