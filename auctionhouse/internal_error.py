"""Domain-level errors raised by entities, use cases and repositories."""

from __future__ import annotations

NOT_FOUND = "not_found"
INTERNAL_SERVER_ERROR = "internal_server_error"
BAD_REQUEST = "bad_request"


class InternalError(Exception):
    """An application error carrying a message and a machine-readable kind."""

    def __init__(self, message: str, err: str) -> None:
        super().__init__(message)
        self.message = message
        self.err = err

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"InternalError(message={self.message!r}, err={self.err!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InternalError):
            return NotImplemented
        return (self.message, self.err) == (other.message, other.err)

    def __hash__(self) -> int:
        return hash((self.message, self.err))


def not_found_error(message: str) -> InternalError:
    """Build an error for a missing resource."""
    return InternalError(message, NOT_FOUND)


def internal_server_error(message: str) -> InternalError:
    """Build an error for an unexpected server-side failure."""
    return InternalError(message, INTERNAL_SERVER_ERROR)


def bad_request_error(message: str) -> InternalError:
    """Build an error for invalid client input."""
    return InternalError(message, BAD_REQUEST)