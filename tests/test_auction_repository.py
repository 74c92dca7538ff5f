import time
from datetime import datetime, timedelta, timezone

import pytest
from pymongo.errors import PyMongoError

from auctionhouse.auction_repository import AuctionRepository
from auctionhouse.entities import Auction, AuctionStatus, ProductCondition
from auctionhouse.internal_error import InternalError


class FakeCursor:
    def __init__(self, documents, fail=False):
        self.documents = documents
        self.fail = fail
        self.closed = False

    def __iter__(self):
        if self.fail:
            raise PyMongoError("decode")
        return iter(self.documents)

    def close(self):
        self.closed = True


class FakeCollection:
    def __init__(self):
        self.documents = []
        self.fail_insert = False
        self.fail_find = False
        self.fail_iterate = False
        self.last_filter = None
        self.last_cursor = None

    def insert_one(self, document):
        if self.fail_insert:
            raise PyMongoError("insert")
        self.documents.append(dict(document))

    def find_one(self, query):
        for document in self.documents:
            if all(document.get(k) == v for k, v in query.items()):
                return dict(document)
        return None

    def find(self, query):
        self.last_filter = query
        if self.fail_find:
            raise PyMongoError("find")
        matches = [
            dict(d)
            for d in self.documents
            if all(d.get(k) == v for k, v in query.items() if not isinstance(v, dict))
        ]
        self.last_cursor = FakeCursor(matches, self.fail_iterate)
        return self.last_cursor

    def update_one(self, query, update):
        for document in self.documents:
            if all(document.get(k) == v for k, v in query.items()):
                document.update(update["$set"])
                return


class FakeDatabase:
    def __init__(self):
        self.collections = {}

    def __getitem__(self, name):
        return self.collections.setdefault(name, FakeCollection())


MOMENT = datetime(2024, 1, 1, 12, 0, 0, 500000, tzinfo=timezone.utc)


def make_auction(auction_id="a1", category="phones"):
    return Auction(
        id=auction_id,
        product_name="Phone",
        category=category,
        description="A very good phone",
        condition=ProductCondition.USED,
        status=AuctionStatus.ACTIVE,
        timestamp=MOMENT,
    )


@pytest.fixture
def database():
    return FakeDatabase()


def test_create_stores_document_in_auctions_collection(database):
    repo = AuctionRepository(database, timedelta(hours=1))
    repo.create_auction(make_auction())
    [document] = database["auctions"].documents
    assert document["_id"] == "a1"
    assert document["product_name"] == "Phone"
    assert document["condition"] == 2
    assert document["status"] == 0
    assert isinstance(document["timestamp"], int)


def test_round_trip_truncates_to_seconds(database):
    repo = AuctionRepository(database, timedelta(hours=1))
    repo.create_auction(make_auction())
    found = repo.find_auction_by_id("a1")
    assert found == make_auction().__class__(
        **{**make_auction().__dict__, "timestamp": MOMENT.replace(microsecond=0)}
    )
    assert found.condition is ProductCondition.USED


def test_auction_completes_after_interval(database):
    repo = AuctionRepository(database, timedelta(0))
    repo.create_auction(make_auction())
    collection = database["auctions"]
    deadline = time.monotonic() + 5
    while time.monotonic() < deadline and collection.documents[0]["status"] != 1:
        time.sleep(0.01)
    assert collection.documents[0]["status"] == int(AuctionStatus.COMPLETED)


def test_insert_failure_raises_internal_error(database):
    database["auctions"].fail_insert = True
    repo = AuctionRepository(database, timedelta(hours=1))
    with pytest.raises(InternalError) as info:
        repo.create_auction(make_auction())
    assert info.value.message == "Error trying to insert auction"
    assert info.value.err == "internal_server_error"


def test_missing_auction_raises_internal_error(database):
    repo = AuctionRepository(database, timedelta(hours=1))
    with pytest.raises(InternalError) as info:
        repo.find_auction_by_id("nope")
    assert info.value.message == "Error trying to find auction by id"
    assert info.value.err == "internal_server_error"


def test_find_auctions_without_filters(database):
    repo = AuctionRepository(database, timedelta(hours=1))
    repo.create_auction(make_auction("a1"))
    repo.create_auction(make_auction("a2", category="books"))
    found = repo.find_auctions(0, "", "")
    assert database["auctions"].last_filter == {}
    assert sorted(a.id for a in found) == ["a1", "a2"]
    assert database["auctions"].last_cursor.closed


def test_find_auctions_builds_filter(database):
    repo = AuctionRepository(database, timedelta(hours=1))
    repo.create_auction(make_auction("a1"))
    repo.create_auction(make_auction("a2", category="books"))
    found = repo.find_auctions(0, "books", "pho")
    assert database["auctions"].last_filter == {
        "category": "books",
        "productName": {"$regex": "pho", "$options": "i"},
    }
    assert [a.id for a in found] == ["a2"]


def test_find_auctions_status_filter(database):
    repo = AuctionRepository(database, timedelta(hours=1))
    repo.find_auctions(1, "", "")
    assert database["auctions"].last_filter == {"status": 1}


def test_find_auctions_query_failure(database):
    database["auctions"].fail_find = True
    repo = AuctionRepository(database, timedelta(hours=1))
    with pytest.raises(InternalError, match="Error finding auctions"):
        repo.find_auctions(0, "", "")


def test_find_auctions_decode_failure(database):
    database["auctions"].fail_iterate = True
    repo = AuctionRepository(database, timedelta(hours=1))
    with pytest.raises(InternalError, match="Error decoding auctions"):
        repo.find_auctions(0, "", "")
    assert database["auctions"].last_cursor.closed