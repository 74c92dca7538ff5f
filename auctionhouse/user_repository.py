"""Lookup of users in the ``users`` collection."""

from __future__ import annotations

from typing import Any

from pymongo.errors import PyMongoError

from auctionhouse import logger
from auctionhouse.entities import User
from auctionhouse.internal_error import internal_server_error, not_found_error

_COLLECTION = "users"


class UserRepository:
    """Reads users from the database."""

    def __init__(self, database: Any) -> None:
        self.collection = database[_COLLECTION]

    def find_user_by_id(self, user_id: str) -> User:
        """Return the user with the given id; not found if there is none."""
        try:
            document = self.collection.find_one({"_id": user_id})
        except PyMongoError as exc:
            logger.error("Error trying to find user by userId", exc)
            raise internal_server_error("Error trying to find user by userId") from exc

        if document is None:
            message = f"User not found with this id = %!d(string={user_id})"
            logger.error(message, "mongo: no documents in result")
            raise not_found_error(message)

        return User(id=str(document.get("_id", "")), name=str(document.get("name", "")))