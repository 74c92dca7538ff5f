"""HTTP-facing error representation and conversion from domain errors."""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import Any

from auctionhouse.internal_error import InternalError


@dataclass(frozen=True)
class Cause:
    """A single field-level reason for a rejected request."""

    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class RestError(Exception):
    """An error ready to be sent as a JSON response body."""

    def __init__(
        self,
        message: str,
        err: str,
        code: int,
        causes: list[Cause] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.err = err
        self.code = code
        self.causes = causes

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"RestError(message={self.message!r}, err={self.err!r}, "
            f"code={self.code!r}, causes={self.causes!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body for this error."""
        return {
            "message": self.message,
            "err": self.err,
            "code": self.code,
            "causes": (
                None if self.causes is None else [c.to_dict() for c in self.causes]
            ),
        }


def convert_error(internal_error: InternalError) -> RestError:
    """Map a domain error onto the matching HTTP error."""
    if internal_error.err == "bad_request":
        return bad_request_error(str(internal_error))
    if internal_error.err == "not_found":
        return not_found_error(str(internal_error))
    return internal_server_error(str(internal_error))


def bad_request_error(message: str, *args: Cause) -> RestError:
    """Build a 400 error, optionally listing the offending fields."""
    return RestError(
        message,
        "bad_request",
        HTTPStatus.BAD_REQUEST.value,
        list(args) if args else None,
    )


def internal_server_error(message: str) -> RestError:
    """Build a 500 error."""
    return RestError(
        message, "internal_server", HTTPStatus.INTERNAL_SERVER_ERROR.value, None
    )


def not_found_error(message: str) -> RestError:
    """Build a 404 error."""
    return RestError(message, "not_found", HTTPStatus.NOT_FOUND.value, None)