"""MongoDB connection set up from the environment."""

from __future__ import annotations

import os

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from auctionhouse import logger

MONGODB_URL = "MONGODB_URL"
MONGODB_DB = "MONGODB_DB"


def connect_database() -> Database:
    """Connect to the server named by ``MONGODB_URL``, ping it and return ``MONGODB_DB``.

    Raises the driver's error if the connection or the ping fails.
    """
    mongo_url = os.environ.get(MONGODB_URL, "")
    database_name = os.environ.get(MONGODB_DB, "")

    try:
        client = MongoClient(mongo_url)
    except PyMongoError as exc:
        logger.error("Error trying to connect to mongodb database", exc)
        raise

    try:
        client.admin.command("ping")
    except PyMongoError as exc:
        logger.error("Error trying to ping mongodb database", exc)
        raise

    return client[database_name]