"""Persistence of auctions in the ``auctions`` collection."""

from __future__ import annotations

import math
import threading
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import Any

from pymongo.errors import PyMongoError

from auctionhouse import logger
from auctionhouse.entities import (
    Auction,
    AuctionStatus,
    ProductCondition,
    get_auction_interval,
)
from auctionhouse.internal_error import internal_server_error

_COLLECTION = "auctions"


def _unix_seconds(moment: datetime) -> int:
    return math.floor(moment.timestamp())


def _from_unix(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, timezone.utc)


def _enum_or_int(enum_class: type[IntEnum], value: Any) -> int:
    number = int(value)
    try:
        return enum_class(number)
    except ValueError:
        return number


def _to_document(auction: Auction) -> dict[str, Any]:
    return {
        "_id": auction.id,
        "product_name": auction.product_name,
        "category": auction.category,
        "description": auction.description,
        "condition": int(auction.condition),
        "status": int(auction.status),
        "timestamp": _unix_seconds(auction.timestamp),
    }


def _from_document(document: dict[str, Any]) -> Auction:
    return Auction(
        id=str(document.get("_id", "")),
        product_name=str(document.get("product_name", "")),
        category=str(document.get("category", "")),
        description=str(document.get("description", "")),
        condition=_enum_or_int(ProductCondition, document.get("condition", 0)),
        status=_enum_or_int(AuctionStatus, document.get("status", 0)),
        timestamp=_from_unix(int(document.get("timestamp", 0))),
    )


class AuctionRepository:
    """Stores auctions and closes each one once its interval has elapsed."""

    def __init__(self, database: Any, auction_interval: timedelta | None = None) -> None:
        self.collection = database[_COLLECTION]
        self._auction_interval = auction_interval

    def create_auction(self, auction: Auction) -> None:
        """Insert an auction and schedule its completion."""
        try:
            self.collection.insert_one(_to_document(auction))
        except PyMongoError as exc:
            logger.error("Error trying to insert auction", exc)
            raise internal_server_error("Error trying to insert auction") from exc
        self._schedule_completion(auction.id)

    def _schedule_completion(self, auction_id: str) -> None:
        interval = self._auction_interval
        if interval is None:
            interval = get_auction_interval()
        timer = threading.Timer(
            max(interval.total_seconds(), 0.0),
            self._complete_auction,
            args=(auction_id,),
        )
        timer.daemon = True
        timer.start()

    def _complete_auction(self, auction_id: str) -> None:
        try:
            self.collection.update_one(
                {"_id": auction_id},
                {"$set": {"status": int(AuctionStatus.COMPLETED)}},
            )
        except PyMongoError as exc:
            logger.error("Error trying to update auction status", exc)

    def find_auction_by_id(self, auction_id: str) -> Auction:
        """Return the auction with the given id."""
        try:
            document = self.collection.find_one({"_id": auction_id})
            if document is None:
                raise LookupError("no documents in result")
            return _from_document(document)
        except (PyMongoError, LookupError, TypeError, ValueError) as exc:
            logger.error(f"Error trying to find auction by id = {auction_id}", exc)
            raise internal_server_error("Error trying to find auction by id") from exc

    def find_auctions(
        self, status: int, category: str, product_name: str
    ) -> list[Auction]:
        """Return auctions filtered by status, category and a name pattern."""
        query: dict[str, Any] = {}
        if status != 0:
            query["status"] = int(status)
        if category != "":
            query["category"] = category
        if product_name != "":
            query["productName"] = {"$regex": product_name, "$options": "i"}

        try:
            cursor = self.collection.find(query)
        except PyMongoError as exc:
            logger.error("Error finding auctions", exc)
            raise internal_server_error("Error finding auctions") from exc

        try:
            return [_from_document(document) for document in cursor]
        except (PyMongoError, TypeError, ValueError) as exc:
            logger.error("Error decoding auctions", exc)
            raise internal_server_error("Error decoding auctions") from exc
        finally:
            cursor.close()