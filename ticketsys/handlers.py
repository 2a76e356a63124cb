"""WSGI handler that accepts tickets posted as JSON."""

from __future__ import annotations

import json
import logging
from http import HTTPStatus
from typing import Any, Callable, Iterable

from ticketsys.db import DBManager
from ticketsys.models import Ticket
from ticketsys.services import TicketProcessingError, TicketService

logger = logging.getLogger(__name__)

StartResponse = Callable[..., Any]


class ValidationError(ValueError):
    """Raised when a decoded ticket fails the checks made before storing it."""


def validate_ticket(ticket: Ticket) -> None:
    """Check stake, selections and selection data; raise ValidationError on the first fault."""
    if ticket.total_stake <= 0:
        raise ValidationError("Invalid total stake")
    if not ticket.selections:
        raise ValidationError("No selections provided")
    for sel in ticket.selections:
        if sel.odd_value <= 0 or sel.stake <= 0 or sel.event_date is None:
            raise ValidationError("Invalid selection data")


def _status_line(status: HTTPStatus) -> str:
    return f"{status.value} {status.phrase}"


def _error(start_response: StartResponse, status: HTTPStatus, message: str) -> list[bytes]:
    body = (message + "\n").encode("utf-8")
    start_response(
        _status_line(status),
        [
            ("Content-Type", "text/plain; charset=utf-8"),
            ("X-Content-Type-Options", "nosniff"),
            ("Content-Length", str(len(body))),
        ],
    )
    return [body]


def _read_body(environ: dict[str, Any]) -> bytes:
    try:
        length = int(environ.get("CONTENT_LENGTH") or 0)
    except ValueError:
        length = 0
    stream = environ.get("wsgi.input")
    if stream is None or length <= 0:
        return b""
    return stream.read(length)


def _decode_ticket(raw: bytes) -> Ticket:
    """Decode the first JSON value of the body into a ticket; raise ValueError if it fails."""
    text = raw.decode("utf-8").lstrip()
    data, _ = json.JSONDecoder().raw_decode(text)
    return Ticket() if data is None else Ticket.from_dict(data)


class TicketHandler:
    """Accepts ``POST`` requests carrying a ticket and stores it."""

    def __init__(self, db_manager: DBManager) -> None:
        self._db_manager = db_manager
        self._service = TicketService(db_manager)

    def handle_ticket(
        self, environ: dict[str, Any], start_response: StartResponse
    ) -> Iterable[bytes]:
        """Validate and process the posted ticket; reply with its id as JSON."""
        logger.info("Received request on /ticket")

        if environ.get("REQUEST_METHOD", "GET").upper() != "POST":
            return _error(start_response, HTTPStatus.METHOD_NOT_ALLOWED, "Method not allowed")

        try:
            ticket = _decode_ticket(_read_body(environ))
        except ValueError:
            return _error(start_response, HTTPStatus.BAD_REQUEST, "Invalid request body")
        logger.debug("Decoded ticket: %r", ticket)

        try:
            validate_ticket(ticket)
        except ValidationError as exc:
            return _error(start_response, HTTPStatus.BAD_REQUEST, str(exc))

        try:
            ticket_id = self._service.process_ticket(ticket)
        except TicketProcessingError as exc:
            logger.error("Error processing ticket: %s", exc)
            return _error(start_response, HTTPStatus.INTERNAL_SERVER_ERROR, str(exc))

        body = (json.dumps({"ticket_id": ticket_id}) + "\n").encode("utf-8")
        start_response(
            _status_line(HTTPStatus.CREATED),
            [("Content-Type", "application/json"), ("Content-Length", str(len(body)))],
        )
        return [body]

    def __call__(
        self, environ: dict[str, Any], start_response: StartResponse
    ) -> Iterable[bytes]:
        return self.handle_ticket(environ, start_response)