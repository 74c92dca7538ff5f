"""User use cases."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from auctionhouse.entities import User


class _UserRepository(Protocol):
    def find_user_by_id(self, user_id: str) -> User: ...


@dataclass(frozen=True)
class UserOutput:
    """A user as returned to a client."""

    id: str
    name: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name}


class UserUseCase:
    """Application logic for users."""

    def __init__(self, user_repository: _UserRepository) -> None:
        self.user_repository = user_repository

    def find_user_by_id(self, user_id: str) -> UserOutput:
        """Return a single user."""
        user = self.user_repository.find_user_by_id(user_id)
        return UserOutput(id=user.id, name=user.name)