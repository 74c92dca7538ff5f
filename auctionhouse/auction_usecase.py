"""Auction use cases: creation, lookups and winner reporting."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from auctionhouse import logger
from auctionhouse.bid_usecase import BidOutput, _rfc3339
from auctionhouse.entities import Auction, Bid, create_auction
from auctionhouse.internal_error import InternalError


class _AuctionRepository(Protocol):
    def create_auction(self, auction: Auction) -> None: ...

    def find_auctions(
        self, status: int, category: str, product_name: str
    ) -> list[Auction]: ...

    def find_auction_by_id(self, auction_id: str) -> Auction: ...


class _BidRepository(Protocol):
    def find_winning_bid_by_auction_id(self, auction_id: str) -> Bid: ...


@dataclass(frozen=True)
class AuctionInput:
    """An auction as submitted by a client."""

    product_name: str
    category: str
    description: str
    condition: int


@dataclass(frozen=True)
class AuctionOutput:
    """An auction as returned to a client."""

    id: str
    product_name: str
    category: str
    description: str
    condition: int
    status: int
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body for this auction."""
        return {
            "id": self.id,
            "product_name": self.product_name,
            "category": self.category,
            "description": self.description,
            "condition": self.condition,
            "status": self.status,
            "timestamp": _rfc3339(self.timestamp),
        }


@dataclass(frozen=True)
class WinningInfoOutput:
    """An auction together with its winning bid, if any."""

    auction: AuctionOutput
    bid: BidOutput | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body; ``bid`` is omitted when there is none."""
        body: dict[str, Any] = {"auction": self.auction.to_dict()}
        if self.bid is not None:
            body["bid"] = self.bid.to_dict()
        return body


def _auction_output(auction: Auction) -> AuctionOutput:
    return AuctionOutput(
        id=auction.id,
        product_name=auction.product_name,
        category=auction.category,
        description=auction.description,
        condition=int(auction.condition),
        status=int(auction.status),
        timestamp=auction.timestamp,
    )


class AuctionUseCase:
    """Application logic for auctions."""

    def __init__(
        self, auction_repository: _AuctionRepository, bid_repository: _BidRepository
    ) -> None:
        self.auction_repository = auction_repository
        self.bid_repository = bid_repository

    def create_auction(self, auction_input: AuctionInput) -> None:
        """Validate and store a new auction."""
        auction = create_auction(
            auction_input.product_name,
            auction_input.category,
            auction_input.description,
            auction_input.condition,
        )
        self.auction_repository.create_auction(auction)

    def find_auction_by_id(self, auction_id: str) -> AuctionOutput:
        """Return a single auction."""
        return _auction_output(self.auction_repository.find_auction_by_id(auction_id))

    def find_auctions(
        self, status: int, category: str, product_name: str
    ) -> list[AuctionOutput]:
        """Return the auctions matching the given filters."""
        auctions = self.auction_repository.find_auctions(
            int(status), category, product_name
        )
        return [_auction_output(auction) for auction in auctions]

    def find_winning_bid_by_auction_id(self, auction_id: str) -> WinningInfoOutput:
        """Return an auction and its highest bid; the bid is absent if none is found."""
        auction = self.auction_repository.find_auction_by_id(auction_id)
        auction_output = _auction_output(auction)
        try:
            winning = self.bid_repository.find_winning_bid_by_auction_id(auction.id)
        except InternalError as exc:
            logger.error("", exc)
            return WinningInfoOutput(auction=auction_output, bid=None)
        return WinningInfoOutput(
            auction=auction_output, bid=BidOutput._from_entity(winning)
        )