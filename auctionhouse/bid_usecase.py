"""Bid use cases: validated bid creation with batched persistence, and lookups."""

from __future__ import annotations

import os
import queue
import re
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol

from auctionhouse import logger
from auctionhouse.entities import Bid, create_bid, parse_duration

_DEFAULT_BATCH_SIZE = 5
_DEFAULT_BATCH_INTERVAL = timedelta(minutes=3)
_INTEGER = re.compile(r"[+-]?[0-9]+")
_STOP = object()


class _BidRepository(Protocol):
    def create_bid(self, bids: list[Bid]) -> None: ...

    def find_bid_by_auction_id(self, auction_id: str) -> list[Bid]: ...

    def find_winning_bid_by_auction_id(self, auction_id: str) -> Bid: ...


def _rfc3339(moment: datetime) -> str:
    """Format a timestamp as RFC 3339 with trimmed fractional seconds."""
    if moment.tzinfo is None:
        moment = moment.astimezone()
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if moment.microsecond:
        text += f".{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset() or timedelta(0)
    minutes = int(offset.total_seconds()) // 60
    if minutes == 0:
        return text + "Z"
    sign = "-" if minutes < 0 else "+"
    hours, mins = divmod(abs(minutes), 60)
    return f"{text}{sign}{hours:02d}:{mins:02d}"


@dataclass(frozen=True)
class BidInput:
    """A bid as submitted by a client."""

    user_id: str
    auction_id: str
    amount: float


@dataclass(frozen=True)
class BidOutput:
    """A bid as returned to a client."""

    id: str
    user_id: str
    auction_id: str
    amount: float
    timestamp: datetime

    @classmethod
    def _from_entity(cls, bid: Bid) -> BidOutput:
        return cls(
            id=bid.id,
            user_id=bid.user_id,
            auction_id=bid.auction_id,
            amount=bid.amount,
            timestamp=bid.timestamp,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body for this bid."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "auction_id": self.auction_id,
            "amount": self.amount,
            "timestamp": _rfc3339(self.timestamp),
        }


def get_max_batch_size() -> int:
    """Batch size from ``MAX_BATCH_SIZE``, five if unset or not an integer."""
    raw = os.environ.get("MAX_BATCH_SIZE", "")
    if not _INTEGER.fullmatch(raw):
        return _DEFAULT_BATCH_SIZE
    return int(raw)


def get_batch_insert_interval() -> timedelta:
    """Flush interval from ``BATCH_INSERT_INTERVAL``, three minutes if unset or invalid."""
    try:
        return parse_duration(os.environ.get("BATCH_INSERT_INTERVAL", ""))
    except ValueError:
        return _DEFAULT_BATCH_INTERVAL


class BidUseCase:
    """Accepts bids and writes them to the repository in batches.

    A batch is written once it reaches ``max_batch_size`` bids or when
    ``batch_insert_interval`` elapses, whichever comes first.
    """

    def __init__(
        self,
        bid_repository: _BidRepository,
        max_batch_size: int | None = None,
        batch_insert_interval: timedelta | None = None,
    ) -> None:
        if max_batch_size is None:
            max_batch_size = get_max_batch_size()
        if batch_insert_interval is None:
            batch_insert_interval = get_batch_insert_interval()
        if max_batch_size < 0:
            raise ValueError(f"negative batch size {max_batch_size}")
        self.bid_repository = bid_repository
        self.max_batch_size = max_batch_size
        self.batch_insert_interval = batch_insert_interval
        self._queue: queue.Queue[Any] = queue.Queue(maxsize=max_batch_size)
        self._lock = threading.Lock()
        self._closed = False
        self._worker = threading.Thread(
            target=self._run, name="bid-batcher", daemon=True
        )
        self._worker.start()

    def __enter__(self) -> BidUseCase:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _flush(self, batch: list[Bid]) -> None:
        try:
            self.bid_repository.create_bid(batch)
        except Exception as exc:
            logger.error("error trying to process bid batch list", exc)

    def _run(self) -> None:
        interval = max(self.batch_insert_interval.total_seconds(), 0.0)
        deadline = time.monotonic() + interval
        batch: list[Bid] = []
        while True:
            try:
                item = self._queue.get(timeout=max(deadline - time.monotonic(), 0.0))
            except queue.Empty:
                self._flush(batch)
                batch = []
                deadline = time.monotonic() + interval
                continue
            if item is _STOP:
                if batch:
                    self._flush(batch)
                return
            batch.append(item)
            if len(batch) >= self.max_batch_size:
                self._flush(batch)
                batch = []
                deadline = time.monotonic() + interval

    def create_bid(self, bid_input: BidInput) -> None:
        """Validate a bid and queue it for the next batch write."""
        bid = create_bid(bid_input.user_id, bid_input.auction_id, bid_input.amount)
        with self._lock:
            if self._closed:
                raise RuntimeError("bid use case is closed")
            self._queue.put(bid)

    def find_bid_by_auction_id(self, auction_id: str) -> list[BidOutput]:
        """Return every bid placed on an auction."""
        bids = self.bid_repository.find_bid_by_auction_id(auction_id)
        return [BidOutput._from_entity(bid) for bid in bids]

    def find_winning_bid_by_auction_id(self, auction_id: str) -> BidOutput:
        """Return the highest bid placed on an auction."""
        return BidOutput._from_entity(
            self.bid_repository.find_winning_bid_by_auction_id(auction_id)
        )

    def close(self) -> None:
        """Stop accepting bids, write any pending ones and stop the worker."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_STOP)
        self._worker.join()