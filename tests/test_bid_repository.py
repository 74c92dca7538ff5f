import threading
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from pymongo.errors import PyMongoError

from auctionhouse.bid_repository import BidRepository
from auctionhouse.entities import Auction, AuctionStatus, Bid, ProductCondition
from auctionhouse.internal_error import InternalError, internal_server_error


class FakeCollection:
    def __init__(self):
        self.documents = []
        self.fail_insert = False
        self.fail_find = False
        self.last_filter = None
        self.lock = threading.Lock()

    def _matches(self, query):
        return [
            dict(d)
            for d in self.documents
            if all(d.get(k) == v for k, v in query.items())
        ]

    def insert_one(self, document):
        if self.fail_insert:
            raise PyMongoError("insert")
        with self.lock:
            self.documents.append(dict(document))

    def find(self, query):
        self.last_filter = query
        if self.fail_find:
            raise PyMongoError("find")
        return iter(self._matches(query))

    def find_one(self, query, sort=None):
        self.last_filter = query
        matches = self._matches(query)
        for key, direction in reversed(sort or []):
            matches.sort(key=lambda d: d[key], reverse=direction < 0)
        return matches[0] if matches else None


class FakeDatabase:
    def __init__(self):
        self.collections = {}

    def __getitem__(self, name):
        return self.collections.setdefault(name, FakeCollection())


class FakeAuctionRepository:
    def __init__(self, auction=None):
        self.auction = auction
        self.calls = 0
        self.lock = threading.Lock()

    def find_auction_by_id(self, auction_id):
        with self.lock:
            self.calls += 1
        if self.auction is None:
            raise internal_server_error("Error trying to find auction by id")
        return self.auction


AUCTION_ID = str(uuid.uuid4())
USER_ID = str(uuid.uuid4())


def make_auction(status=AuctionStatus.ACTIVE, timestamp=None):
    return Auction(
        id=AUCTION_ID,
        product_name="Phone",
        category="phones",
        description="A very good phone",
        condition=ProductCondition.NEW,
        status=status,
        timestamp=timestamp or datetime.now(timezone.utc),
    )


def make_bid(amount=10.0):
    return Bid(
        id=str(uuid.uuid4()),
        user_id=USER_ID,
        auction_id=AUCTION_ID,
        amount=amount,
        timestamp=datetime(2024, 1, 1, 12, 0, 0, 250000, tzinfo=timezone.utc),
    )


@pytest.fixture
def database():
    return FakeDatabase()


def test_bids_on_open_auction_are_stored(database):
    repo = BidRepository(database, FakeAuctionRepository(make_auction()), timedelta(minutes=5))
    bids = [make_bid(1.0), make_bid(2.0), make_bid(3.0)]
    repo.create_bid(bids)
    stored = database["bids"].documents
    assert sorted(d["_id"] for d in stored) == sorted(b.id for b in bids)
    assert all(d["auction_id"] == AUCTION_ID and d["user_id"] == USER_ID for d in stored)


def test_bids_on_completed_auction_are_dropped(database):
    repo = BidRepository(
        database,
        FakeAuctionRepository(make_auction(status=AuctionStatus.COMPLETED)),
        timedelta(minutes=5),
    )
    repo.create_bid([make_bid()])
    assert database["bids"].documents == []


def test_auction_lookup_is_cached(database):
    auctions = FakeAuctionRepository(make_auction())
    repo = BidRepository(database, auctions, timedelta(minutes=5))
    repo.create_bid([make_bid()])
    repo.create_bid([make_bid()])
    assert auctions.calls == 1
    assert len(database["bids"].documents) == 2


def test_cached_expired_auction_drops_later_bids(database):
    old = datetime.now(timezone.utc) - timedelta(hours=1)
    auctions = FakeAuctionRepository(make_auction(timestamp=old))
    repo = BidRepository(database, auctions, timedelta(minutes=5))
    repo.create_bid([make_bid()])
    repo.create_bid([make_bid()])
    assert len(database["bids"].documents) == 1


def test_failed_auction_lookup_stores_nothing(database):
    repo = BidRepository(database, FakeAuctionRepository(None), timedelta(minutes=5))
    repo.create_bid([make_bid()])
    assert database["bids"].documents == []


def test_insert_failure_is_swallowed(database, capsys):
    database["bids"].fail_insert = True
    repo = BidRepository(database, FakeAuctionRepository(make_auction()), timedelta(minutes=5))
    repo.create_bid([make_bid()])
    assert "Error trying to insert bid" in capsys.readouterr().err


def test_winning_bid_is_highest_amount(database):
    repo = BidRepository(database, FakeAuctionRepository(make_auction()), timedelta(minutes=5))
    bids = [make_bid(5.0), make_bid(42.5), make_bid(7.0)]
    repo.create_bid(bids)
    winner = repo.find_winning_bid_by_auction_id(AUCTION_ID)
    assert winner.id == bids[1].id
    assert winner.amount == 42.5
    assert winner.timestamp == bids[1].timestamp.replace(microsecond=0)
    assert database["bids"].last_filter == {"auction_id": AUCTION_ID}


def test_no_winner_raises(database):
    repo = BidRepository(database, FakeAuctionRepository(make_auction()), timedelta(minutes=5))
    with pytest.raises(InternalError) as info:
        repo.find_winning_bid_by_auction_id(AUCTION_ID)
    assert info.value.message == "Error trying to find the auction winner"


def test_find_bids_queries_by_auction_id_key(database):
    bid = make_bid(3.0)
    database["bids"].documents.append(
        {
            "_id": bid.id,
            "user_id": USER_ID,
            "auction_id": AUCTION_ID,
            "auctionId": AUCTION_ID,
            "amount": 3.0,
            "timestamp": 0,
        }
    )
    repo = BidRepository(database, FakeAuctionRepository(make_auction()), timedelta(minutes=5))
    found = repo.find_bid_by_auction_id(AUCTION_ID)
    assert database["bids"].last_filter == {"auctionId": AUCTION_ID}
    assert [(b.id, b.amount) for b in found] == [(bid.id, 3.0)]
    assert found[0].timestamp == datetime(1970, 1, 1, tzinfo=timezone.utc)


def test_find_bids_failure_raises(database):
    database["bids"].fail_find = True
    repo = BidRepository(database, FakeAuctionRepository(make_auction()), timedelta(minutes=5))
    with pytest.raises(InternalError) as info:
        repo.find_bid_by_auction_id("xyz")
    assert info.value.message == "Error trying to find bids by auctionId xyz"