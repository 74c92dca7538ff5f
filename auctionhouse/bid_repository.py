"""Persistence of bids in the ``bids`` collection."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Any

from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from auctionhouse import logger
from auctionhouse.auction_repository import (
    AuctionRepository,
    _from_unix,
    _unix_seconds,
)
from auctionhouse.entities import AuctionStatus, Bid, get_auction_interval
from auctionhouse.internal_error import InternalError, internal_server_error

_COLLECTION = "bids"
_MAX_WORKERS = 32


def _to_document(bid: Bid) -> dict[str, Any]:
    return {
        "_id": bid.id,
        "user_id": bid.user_id,
        "auction_id": bid.auction_id,
        "amount": bid.amount,
        "timestamp": _unix_seconds(bid.timestamp),
    }


def _from_document(document: dict[str, Any]) -> Bid:
    return Bid(
        id=str(document.get("_id", "")),
        user_id=str(document.get("user_id", "")),
        auction_id=str(document.get("auction_id", "")),
        amount=float(document.get("amount", 0.0)),
        timestamp=_from_unix(int(document.get("timestamp", 0))),
    )


class BidRepository:
    """Stores bids, dropping those placed on auctions that are already over."""

    def __init__(
        self,
        database: Any,
        auction_repository: AuctionRepository,
        auction_interval: timedelta | None = None,
    ) -> None:
        self.collection = database[_COLLECTION]
        self.auction_repository = auction_repository
        self.auction_interval = (
            get_auction_interval() if auction_interval is None else auction_interval
        )
        self._auction_status: dict[str, int] = {}
        self._auction_end_time: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def create_bid(self, bids: list[Bid]) -> None:
        """Insert every bid whose auction is still open, concurrently."""
        if not bids:
            return
        with ThreadPoolExecutor(max_workers=min(len(bids), _MAX_WORKERS)) as pool:
            list(pool.map(self._insert_bid, bids))

    def _insert(self, document: dict[str, Any]) -> None:
        try:
            self.collection.insert_one(document)
        except PyMongoError as exc:
            logger.error("Error trying to insert bid", exc)

    def _insert_bid(self, bid: Bid) -> None:
        with self._lock:
            status = self._auction_status.get(bid.auction_id)
            end_time = self._auction_end_time.get(bid.auction_id)

        document = _to_document(bid)

        if status is not None and end_time is not None:
            now = datetime.now(timezone.utc)
            if status == AuctionStatus.COMPLETED or now > end_time:
                return
            self._insert(document)
            return

        try:
            auction = self.auction_repository.find_auction_by_id(bid.auction_id)
        except InternalError as exc:
            logger.error("Error trying to find auction by id", exc)
            return
        if auction.status == AuctionStatus.COMPLETED:
            return

        with self._lock:
            self._auction_status[bid.auction_id] = auction.status
            self._auction_end_time[bid.auction_id] = (
                auction.timestamp + self.auction_interval
            )

        self._insert(document)

    def find_bid_by_auction_id(self, auction_id: str) -> list[Bid]:
        """Return the bids recorded for an auction."""
        message = f"Error trying to find bids by auctionId {auction_id}"
        try:
            cursor = self.collection.find({"auctionId": auction_id})
            documents = list(cursor)
            return [_from_document(document) for document in documents]
        except (PyMongoError, TypeError, ValueError) as exc:
            logger.error(message, exc)
            raise internal_server_error(message) from exc

    def find_winning_bid_by_auction_id(self, auction_id: str) -> Bid:
        """Return the highest bid on an auction."""
        try:
            document = self.collection.find_one(
                {"auction_id": auction_id}, sort=[("amount", DESCENDING)]
            )
            if document is None:
                raise LookupError("no documents in result")
            return _from_document(document)
        except (PyMongoError, LookupError, TypeError, ValueError) as exc:
            logger.error("Error trying to find the auction winner", exc)
            raise internal_server_error(
                "Error trying to find the auction winner"
            ) from exc