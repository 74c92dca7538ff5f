"""Decoding and validation of JSON request bodies."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

from auctionhouse.auction_usecase import AuctionInput
from auctionhouse.bid_usecase import BidInput
from auctionhouse.rest_error import (
    Cause,
    RestError,
    bad_request_error,
    not_found_error,
)

_JSON_WHITESPACE = " \t\n\r"
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_CONVERT_MESSAGE = "Error trying to convert fields"
_TYPE_MESSAGE = "Invalid type error"
_INVALID_FIELDS_MESSAGE = "Invalid field values"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


_DECODER = json.JSONDecoder(parse_constant=_reject_constant)


class _Kind(Enum):
    STRING = ""
    INTEGER = 0
    NUMBER = 0.0


@dataclass(frozen=True)
class _Field:
    name: str
    key: str
    kind: _Kind


_AUCTION_FIELDS = (
    _Field("ProductName", "product_name", _Kind.STRING),
    _Field("Category", "category", _Kind.STRING),
    _Field("Description", "description", _Kind.STRING),
    _Field("Condition", "condition", _Kind.INTEGER),
)

_BID_FIELDS = (
    _Field("UserId", "user_id", _Kind.STRING),
    _Field("AuctionId", "auction_id", _Kind.STRING),
    _Field("Amount", "amount", _Kind.NUMBER),
)

_ALLOWED_CONDITIONS = (0, 1, 2)


def _type_error() -> RestError:
    return not_found_error(_TYPE_MESSAGE)


def _parse(payload: bytes | str | None) -> Any:
    """Decode the first JSON value of the body; anything after it is ignored."""
    try:
        if payload is None:
            text = ""
        elif isinstance(payload, (bytes, bytearray)):
            text = bytes(payload).decode("utf-8")
        else:
            text = payload
        value, _ = _DECODER.raw_decode(text.lstrip(_JSON_WHITESPACE))
    except ValueError as exc:
        raise bad_request_error(_CONVERT_MESSAGE) from exc
    return value


def _match(fields: tuple[_Field, ...], key: str) -> _Field | None:
    for field in fields:
        if field.key == key:
            return field
    folded = key.casefold()
    for field in fields:
        if field.key.casefold() == folded:
            return field
    return None


def _coerce(raw: Any, kind: _Kind) -> Any:
    if isinstance(raw, bool):
        raise _type_error()
    if kind is _Kind.STRING:
        if not isinstance(raw, str):
            raise _type_error()
        return raw
    if kind is _Kind.INTEGER:
        if not isinstance(raw, int) or not _INT64_MIN <= raw <= _INT64_MAX:
            raise _type_error()
        return raw
    if isinstance(raw, int):
        try:
            return float(raw)
        except OverflowError as exc:
            raise _type_error() from exc
    if isinstance(raw, float) and not math.isinf(raw):
        return raw
    raise _type_error()


def _decode_object(
    payload: bytes | str | None, fields: tuple[_Field, ...]
) -> dict[str, Any]:
    document = _parse(payload)
    values = {field.key: field.kind.value for field in fields}
    if document is None:
        return values
    if not isinstance(document, dict):
        raise _type_error()
    for key, raw in document.items():
        field = _match(fields, key)
        if field is None or raw is None:
            continue
        values[field.key] = _coerce(raw, field.kind)
    return values


def _characters(count: int) -> str:
    return "1 character" if count == 1 else f"{count} characters"


def _string_cause(
    name: str, value: str, minimum: int, maximum: int | None = None
) -> Cause | None:
    if value == "":
        return Cause(name, f"{name} is a required field")
    if len(value) < minimum:
        return Cause(name, f"{name} must be at least {_characters(minimum)}")
    if maximum is not None and len(value) > maximum:
        return Cause(name, f"{name} must be a maximum of {_characters(maximum)}")
    return None


def validate_auction_input(payload: bytes | str | None) -> AuctionInput:
    """Decode and validate an auction creation body.

    Raises RestError: 404 for a value of the wrong type, 400 for a body that
    is not JSON or for fields that break the rules.
    """
    values = _decode_object(payload, _AUCTION_FIELDS)
    candidates = (
        _string_cause("ProductName", values["product_name"], 1),
        _string_cause("Category", values["category"], 2),
        _string_cause("Description", values["description"], 10, 200),
        (
            None
            if values["condition"] in _ALLOWED_CONDITIONS
            else Cause(
                "Condition",
                "Condition must be one of ["
                + " ".join(str(c) for c in _ALLOWED_CONDITIONS)
                + "]",
            )
        ),
    )
    causes = [cause for cause in candidates if cause is not None]
    if causes:
        raise bad_request_error(_INVALID_FIELDS_MESSAGE, *causes)
    return AuctionInput(
        product_name=values["product_name"],
        category=values["category"],
        description=values["description"],
        condition=values["condition"],
    )


def validate_bid_input(payload: bytes | str | None) -> BidInput:
    """Decode a bid creation body.

    Raises RestError: 404 for a value of the wrong type, 400 for a body that
    is not JSON.
    """
    values = _decode_object(payload, _BID_FIELDS)
    return BidInput(
        user_id=values["user_id"],
        auction_id=values["auction_id"],
        amount=values["amount"],
    )