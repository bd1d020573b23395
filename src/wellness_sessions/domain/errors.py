"""Error taxonomy for session persistence."""


class SessionError(Exception):
    """Base class for errors raised by the session core."""


class ValidationError(SessionError):
    """Raised when draft fields fail their constraints."""

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        details = "; ".join(f"{field}: {message}" for field, message in errors.items())
        super().__init__(f"Validation failed: {details}")


class NotFoundError(SessionError):
    """Raised when a session is unknown or owned by another identity."""

    def __init__(self) -> None:
        super().__init__("Session not found")


class ConflictError(SessionError):
    """Raised when an update is based on a stale revision."""

    def __init__(self, expected_revision: int, current_revision: int) -> None:
        self.expected_revision = expected_revision
        self.current_revision = current_revision
        super().__init__(
            f"Session changed since revision {expected_revision} "
            f"(now {current_revision})"
        )


class TransientFailure(SessionError):
    """Raised when the store or transport fails in a retryable way."""


class InvariantViolation(SessionError):
    """Raised on programming errors such as a backwards status change."""
