"""HTTP application wiring and the command that serves it."""

from __future__ import annotations

import argparse
import json
import os
import sys
from http import HTTPStatus
from typing import Any

from dotenv import load_dotenv
from flask import Flask, Response, request
from pymongo.errors import PyMongoError

from auctionhouse.auction_repository import AuctionRepository
from auctionhouse.auction_usecase import AuctionUseCase
from auctionhouse.bid_repository import BidRepository
from auctionhouse.bid_usecase import BidUseCase
from auctionhouse.controllers import AuctionController, BidController, UserController
from auctionhouse.database import connect_database
from auctionhouse.user_repository import UserRepository
from auctionhouse.user_usecase import UserUseCase

DEFAULT_ENV_FILE = "cmd/auction/.env"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080


def _respond(result: tuple[int, Any]) -> Response:
    status, body = result
    if status == HTTPStatus.CREATED:
        return Response(status=status)
    return Response(json.dumps(body), status=status, mimetype="application/json")


def create_app(
    auction_controller: AuctionController,
    bid_controller: BidController,
    user_controller: UserController,
) -> Flask:
    """Build the web application with every auction, bid and user route."""
    app = Flask(__name__)

    def find_auctions() -> Response:
        return _respond(
            auction_controller.find_auctions(
                request.args.get("status", ""),
                request.args.get("category", ""),
                request.args.get("productName", ""),
            )
        )

    def find_auction_by_id(auction_id: str) -> Response:
        return _respond(auction_controller.find_auction_by_id(auction_id))

    def create_auction() -> Response:
        return _respond(auction_controller.create_auction(request.get_data()))

    def find_winner(auction_id: str) -> Response:
        return _respond(auction_controller.find_winning_bid_by_auction_id(auction_id))

    def create_bid() -> Response:
        return _respond(bid_controller.create_bid(request.get_data()))

    def find_bids(auction_id: str) -> Response:
        return _respond(bid_controller.find_bid_by_auction_id(auction_id))

    def find_user(user_id: str) -> Response:
        return _respond(user_controller.find_user_by_id(user_id))

    app.add_url_rule("/auction", "find_auctions", find_auctions, methods=["GET"])
    app.add_url_rule(
        "/auction/<auction_id>", "find_auction_by_id", find_auction_by_id, methods=["GET"]
    )
    app.add_url_rule("/auction", "create_auction", create_auction, methods=["POST"])
    app.add_url_rule(
        "/auction/winner/<auction_id>", "find_winner", find_winner, methods=["GET"]
    )
    app.add_url_rule("/bid", "create_bid", create_bid, methods=["POST"])
    app.add_url_rule("/bid/<auction_id>", "find_bids", find_bids, methods=["GET"])
    app.add_url_rule("/user/<user_id>", "find_user", find_user, methods=["GET"])
    return app


def build_controllers(
    database: Any,
) -> tuple[AuctionController, BidController, UserController]:
    """Wire repositories and use cases over a database into controllers."""
    auction_repository = AuctionRepository(database)
    bid_repository = BidRepository(database, auction_repository)
    user_repository = UserRepository(database)

    auction_controller = AuctionController(
        AuctionUseCase(auction_repository, bid_repository)
    )
    bid_controller = BidController(BidUseCase(bid_repository))
    user_controller = UserController(UserUseCase(user_repository))
    return auction_controller, bid_controller, user_controller


def main(argv: list[str] | None = None) -> int:
    """Load the environment, connect to the database and serve the API."""
    parser = argparse.ArgumentParser(prog="auctionhouse", description="Auction HTTP API")
    parser.add_argument("--env-file", default=DEFAULT_ENV_FILE)
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    args = parser.parse_args(argv)

    if not os.path.isfile(args.env_file):
        print("Error trying to load env variables", file=sys.stderr)
        return 1
    try:
        load_dotenv(args.env_file)
    except OSError:
        print("Error trying to load env variables", file=sys.stderr)
        return 1

    try:
        database = connect_database()
    except PyMongoError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    app = create_app(*build_controllers(database))
    app.run(host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())