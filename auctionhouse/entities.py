"""Core domain entities: auctions, bids and users."""

from __future__ import annotations

import os
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from fractions import Fraction

from auctionhouse.internal_error import bad_request_error


class ProductCondition(IntEnum):
    NEW = 1
    USED = 2
    REFURBISHED = 3


class AuctionStatus(IntEnum):
    ACTIVE = 0
    COMPLETED = 1


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_condition(value: int) -> int:
    """Return the enum member for a known condition, else the plain integer."""
    try:
        return ProductCondition(value)
    except ValueError:
        return int(value)


@dataclass
class Auction:
    """An item put up for auction."""

    id: str
    product_name: str
    category: str
    description: str
    condition: int
    status: AuctionStatus = AuctionStatus.ACTIVE
    timestamp: datetime = field(default_factory=_now)

    def validate(self) -> None:
        """Raise a bad-request error if the auction is malformed."""
        too_short_name = len(self.product_name.encode()) <= 1
        too_short_category = len(self.category.encode()) <= 2
        short_description_bad_condition = len(
            self.description.encode()
        ) <= 10 and self.condition not in set(ProductCondition)
        if too_short_name or too_short_category or short_description_bad_condition:
            raise bad_request_error("invalid auction object")


@dataclass
class Bid:
    """An offer made by a user on an auction."""

    id: str
    user_id: str
    auction_id: str
    amount: float
    timestamp: datetime = field(default_factory=_now)

    def validate(self) -> None:
        """Raise a bad-request error if the bid is malformed."""
        if not is_valid_uuid(self.user_id):
            raise bad_request_error("UserId is not a valid id")
        if not is_valid_uuid(self.auction_id):
            raise bad_request_error("AuctionId is not a valid id")
        if self.amount <= 0:
            raise bad_request_error("Amount is not a valid value")


@dataclass
class User:
    id: str
    name: str


def create_auction(
    product_name: str, category: str, description: str, condition: int
) -> Auction:
    """Create a new active auction with a fresh id, validating it."""
    auction = Auction(
        id=str(uuid.uuid4()),
        product_name=product_name,
        category=category,
        description=description,
        condition=_as_condition(condition),
        status=AuctionStatus.ACTIVE,
        timestamp=_now(),
    )
    auction.validate()
    return auction


def create_bid(user_id: str, auction_id: str, amount: float) -> Bid:
    """Create a new bid with a fresh id, validating it."""
    bid = Bid(
        id=str(uuid.uuid4()),
        user_id=user_id,
        auction_id=auction_id,
        amount=float(amount),
        timestamp=_now(),
    )
    bid.validate()
    return bid


_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
_DASH_POSITIONS = (8, 13, 18, 23)


def is_valid_uuid(value: str) -> bool:
    """Check the textual forms of a UUID: plain, braced, URN or 32 hex digits."""
    if len(value) == 32:
        return all(c in _HEX_DIGITS for c in value)
    if len(value) == 45:
        if value[:9].lower() != "urn:uuid:":
            return False
        value = value[9:]
    elif len(value) == 38:
        if not (value.startswith("{") and value.endswith("}")):
            return False
        value = value[1:-1]
    if len(value) != 36:
        return False
    if any(value[i] != "-" for i in _DASH_POSITIONS):
        return False
    return all(
        c in _HEX_DIGITS for i, c in enumerate(value) if i not in _DASH_POSITIONS
    )


_UNIT_NANOSECONDS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_COMPONENT = re.compile(r"(\d*)(?:\.(\d*))?([^\d.]*)")
_MAX_NANOSECONDS = 2**63 - 1


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``"300ms"``, ``"-1.5h"`` or ``"2h45m"``.

    Raises ValueError for anything that is not a valid duration.
    """
    original = text
    negative = False
    if text[:1] in ("-", "+"):
        negative = text[0] == "-"
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError(f"invalid duration {original!r}")

    total = Fraction(0)
    position = 0
    while position < len(text):
        match = _COMPONENT.match(text, position)
        whole, fraction, unit = match.group(1), match.group(2), match.group(3)
        if not whole and not fraction:
            raise ValueError(f"invalid duration {original!r}")
        if not unit:
            raise ValueError(f"missing unit in duration {original!r}")
        if unit not in _UNIT_NANOSECONDS:
            raise ValueError(f"unknown unit {unit!r} in duration {original!r}")
        number = Fraction(int(whole or "0"))
        if fraction:
            number += Fraction(int(fraction), 10 ** len(fraction))
        total += number * _UNIT_NANOSECONDS[unit]
        if total > _MAX_NANOSECONDS + (1 if negative else 0):
            raise ValueError(f"invalid duration {original!r}")
        position = match.end()

    nanoseconds = int(total)
    if negative:
        nanoseconds = -nanoseconds
    return timedelta(microseconds=round(Fraction(nanoseconds, 1000)))


def get_auction_interval() -> timedelta:
    """Auction length from ``AUCTION_INTERVAL``, five minutes if unset or invalid."""
    try:
        return parse_duration(os.environ.get("AUCTION_INTERVAL", ""))
    except ValueError:
        return timedelta(minutes=5)