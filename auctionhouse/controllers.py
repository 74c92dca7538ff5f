"""HTTP-agnostic request handlers returning a status code and a JSON body."""

from __future__ import annotations

import re
from http import HTTPStatus
from typing import Any

from auctionhouse.entities import is_valid_uuid
from auctionhouse.internal_error import InternalError
from auctionhouse.rest_error import Cause, RestError, bad_request_error, convert_error
from auctionhouse.validation import validate_auction_input, validate_bid_input

_INTEGER = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

Response = tuple[int, Any]


def _error_response(error: RestError) -> Response:
    return error.code, error.to_dict()


def _invalid_id(field: str) -> Response:
    return _error_response(
        bad_request_error("Invalid fields", Cause(field, "Invalid UUID value"))
    )


def _parse_int(text: str) -> int | None:
    if not _INTEGER.fullmatch(text):
        return None
    number = int(text)
    if not _INT64_MIN <= number <= _INT64_MAX:
        return None
    return number


def _list_body(items: list[Any]) -> list[dict[str, Any]] | None:
    return [item.to_dict() for item in items] or None


class AuctionController:
    """Handlers for the auction endpoints."""

    def __init__(self, auction_use_case: Any) -> None:
        self.auction_use_case = auction_use_case

    def create_auction(self, payload: bytes | str | None) -> Response:
        try:
            auction_input = validate_auction_input(payload)
        except RestError as exc:
            return _error_response(exc)
        try:
            self.auction_use_case.create_auction(auction_input)
        except InternalError as exc:
            return _error_response(convert_error(exc))
        return HTTPStatus.CREATED.value, None

    def find_auction_by_id(self, auction_id: str) -> Response:
        if not is_valid_uuid(auction_id):
            return _invalid_id("auctionId")
        try:
            auction = self.auction_use_case.find_auction_by_id(auction_id)
        except InternalError as exc:
            return _error_response(convert_error(exc))
        return HTTPStatus.OK.value, auction.to_dict()

    def find_auctions(self, status: str, category: str, product_name: str) -> Response:
        status_number = _parse_int(status)
        if status_number is None:
            return _error_response(
                bad_request_error("Error trying to validate auction status param")
            )
        try:
            auctions = self.auction_use_case.find_auctions(
                status_number, category, product_name
            )
        except InternalError as exc:
            return _error_response(convert_error(exc))
        return HTTPStatus.OK.value, _list_body(auctions)

    def find_winning_bid_by_auction_id(self, auction_id: str) -> Response:
        if not is_valid_uuid(auction_id):
            return _invalid_id("auctionId")
        try:
            winning = self.auction_use_case.find_winning_bid_by_auction_id(auction_id)
        except InternalError as exc:
            return _error_response(convert_error(exc))
        return HTTPStatus.OK.value, winning.to_dict()


class BidController:
    """Handlers for the bid endpoints."""

    def __init__(self, bid_use_case: Any) -> None:
        self.bid_use_case = bid_use_case

    def create_bid(self, payload: bytes | str | None) -> Response:
        try:
            bid_input = validate_bid_input(payload)
        except RestError as exc:
            return _error_response(exc)
        try:
            self.bid_use_case.create_bid(bid_input)
        except InternalError as exc:
            return _error_response(convert_error(exc))
        return HTTPStatus.CREATED.value, None

    def find_bid_by_auction_id(self, auction_id: str) -> Response:
        if not is_valid_uuid(auction_id):
            return _invalid_id("auctionId")
        try:
            bids = self.bid_use_case.find_bid_by_auction_id(auction_id)
        except InternalError as exc:
            return _error_response(convert_error(exc))
        return HTTPStatus.OK.value, _list_body(bids)


class UserController:
    """Handlers for the user endpoints."""

    def __init__(self, user_use_case: Any) -> None:
        self.user_use_case = user_use_case

    def find_user_by_id(self, user_id: str) -> Response:
        if not is_valid_uuid(user_id):
            return _invalid_id("userId")
        try:
            user = self.user_use_case.find_user_by_id(user_id)
        except InternalError as exc:
            return _error_response(convert_error(exc))
        return HTTPStatus.OK.value, user.to_dict()