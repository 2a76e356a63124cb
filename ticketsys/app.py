"""WSGI application and the command that serves it."""

from __future__ import annotations

import argparse
import logging
import sqlite3
from http import HTTPStatus
from typing import Any, Callable, Iterable, Mapping
from wsgiref import simple_server

from ticketsys.db import DBManager
from ticketsys.handlers import TicketHandler

logger = logging.getLogger(__name__)

DEFAULT_DSN = "tickets.db"
DEFAULT_PORT = 8080

WSGIApp = Callable[[dict, Callable[..., Any]], Iterable[bytes]]


class _Router:
    """Dispatches requests by exact path; unknown paths get 404."""

    def __init__(self, routes: Mapping[str, WSGIApp]) -> None:
        self._routes = dict(routes)

    def __call__(self, environ: dict, start_response: Callable[..., Any]) -> Iterable[bytes]:
        app = self._routes.get(environ.get("PATH_INFO") or "/")
        if app is not None:
            return app(environ, start_response)
        body = b"404 page not found\n"
        status = HTTPStatus.NOT_FOUND
        start_response(
            f"{status.value} {status.phrase}",
            [
                ("Content-Type", "text/plain; charset=utf-8"),
                ("X-Content-Type-Options", "nosniff"),
                ("Content-Length", str(len(body))),
            ],
        )
        return [body]


def create_app(db_manager: DBManager) -> WSGIApp:
    """Return the WSGI application serving ``/ticket``."""
    return _Router({"/ticket": TicketHandler(db_manager)})


def main(argv: list[str] | None = None) -> int:
    """Open the database and serve tickets over HTTP; return the exit status."""
    parser = argparse.ArgumentParser(prog="ticketsys", description="Serve the ticket API.")
    parser.add_argument("--dsn", default=DEFAULT_DSN, help="database file")
    parser.add_argument("--host", default="", help="address to listen on")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="port to listen on")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    try:
        db_manager = DBManager(args.dsn)
    except sqlite3.Error as exc:
        logger.critical("Failed to connect to database: %s", exc)
        return 1

    with db_manager:
        try:
            db_manager.create_schema()
        except sqlite3.Error as exc:
            logger.critical("Failed to prepare database: %s", exc)
            return 1
        try:
            with simple_server.make_server(args.host, args.port, create_app(db_manager)) as server:
                logger.info("Server starting on %s:%d...", args.host, args.port)
                server.serve_forever()
        except KeyboardInterrupt:
            logger.info("Server stopped")
        except OSError as exc:
            logger.critical("Server failed: %s", exc)
            return 1
    return 0