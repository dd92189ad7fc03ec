"""Error taxonomy reported to callers as structured failures."""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for recoverable request errors."""

    kind = "LedgerError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "message": self.message}


class InvalidInput(LedgerError, ValueError):
    """Malformed or out-of-range request data."""

    kind = "InvalidInput"


class NotFound(LedgerError):
    """A referenced entity is absent."""

    kind = "NotFound"


class Conflict(LedgerError):
    """Duplicate identifier or an entity in a state that forbids the request."""

    kind = "Conflict"


class Unauthorized(LedgerError):
    """Credential mismatch or an operation outside the caller's role."""

    kind = "Unauthorized"


class InvalidTransition(LedgerError):
    """A claim status change that the lifecycle rules forbid."""

    kind = "InvalidTransition"
