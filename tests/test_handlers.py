import io
import json
from wsgiref.util import setup_testing_defaults

import pytest

from ticketsys.db import DBManager
from ticketsys.handlers import TicketHandler, ValidationError, validate_ticket
from ticketsys.models import Selection, Ticket

EVENT_DATE = "2025-06-07T14:30:00Z"


@pytest.fixture
def db():
    manager = DBManager(":memory:")
    manager.create_schema()
    yield manager
    manager.close()


@pytest.fixture
def handler(db):
    return TicketHandler(db)


def _call(app, method="POST", body=b""):
    environ = {}
    setup_testing_defaults(environ)
    environ["REQUEST_METHOD"] = method
    environ["PATH_INFO"] = "/ticket"
    environ["wsgi.input"] = io.BytesIO(body)
    environ["CONTENT_LENGTH"] = str(len(body))
    captured = {}

    def start_response(status, headers, exc_info=None):
        captured["status"] = status
        captured["headers"] = dict(headers)

    chunks = app(environ, start_response)
    return captured["status"], captured["headers"], b"".join(chunks)


def _selection(**overrides):
    sel = {
        "sport_type": "football",
        "home_team": "Home",
        "away_team": "Away",
        "event_date": EVENT_DATE,
        "odd_value": 2.0,
        "stake": 1.0,
        "is_fixed": False,
    }
    sel.update(overrides)
    return sel


def _post(handler, payload):
    return _call(handler, body=json.dumps(payload).encode())


def test_get_is_rejected(handler):
    status, headers, body = _call(handler, method="GET")
    assert status.startswith("405")
    assert body == b"Method not allowed\n"
    assert headers["Content-Type"] == "text/plain; charset=utf-8"


def test_malformed_body_is_rejected(handler):
    status, _, body = _call(handler, body=b"{not json")
    assert status.startswith("400")
    assert body == b"Invalid request body\n"


def test_empty_body_is_rejected(handler):
    status, _, body = _call(handler, body=b"")
    assert status.startswith("400")
    assert body == b"Invalid request body\n"


def test_wrong_field_type_is_rejected(handler):
    status, _, body = _post(handler, {"total_stake": "ten"})
    assert status.startswith("400")
    assert body == b"Invalid request body\n"


def test_zero_stake_is_rejected(handler):
    status, _, body = _post(handler, {"total_stake": 0, "selections": [_selection()]})
    assert status.startswith("400")
    assert body == b"Invalid total stake\n"


def test_missing_selections_are_rejected(handler):
    status, _, body = _post(handler, {"total_stake": 10})
    assert status.startswith("400")
    assert body == b"No selections provided\n"


def test_selection_without_event_date_is_rejected(handler):
    sel = _selection()
    del sel["event_date"]
    status, _, body = _post(handler, {"total_stake": 10, "selections": [sel]})
    assert status.startswith("400")
    assert body == b"Invalid selection data\n"


def test_normal_ticket_is_created(handler, db):
    payload = {
        "total_stake": 10,
        "ticket_type": "normal",
        "selections": [_selection(odd_value=2.0), _selection(odd_value=1.5)],
    }
    status, headers, body = _post(handler, payload)
    assert status.startswith("201")
    assert headers["Content-Type"] == "application/json"
    ticket_id = json.loads(body)["ticket_id"]
    rows = db.query("SELECT num_combinations FROM tickets WHERE ticket_id = ?", ticket_id)
    assert rows == [(1,)]
    combos = db.query("SELECT COUNT(*) FROM combinations WHERE ticket_id = ?", ticket_id)
    assert combos == [(1,)]


def test_ticket_ids_increase(handler):
    payload = {"total_stake": 5, "selections": [_selection()]}
    first = json.loads(_post(handler, payload)[2])["ticket_id"]
    second = json.loads(_post(handler, payload)[2])["ticket_id"]
    assert second > first


def test_system_ticket_stores_each_combination(handler, db):
    payload = {
        "total_stake": 30,
        "ticket_type": "system",
        "system_combination": "2/3",
        "selections": [_selection(), _selection(), _selection()],
    }
    status, _, body = _post(handler, payload)
    assert status.startswith("201")
    ticket_id = json.loads(body)["ticket_id"]
    (num,), = db.query("SELECT num_combinations FROM tickets WHERE ticket_id = ?", ticket_id)
    (count,), = db.query("SELECT COUNT(*) FROM combinations WHERE ticket_id = ?", ticket_id)
    assert num == count == 3


def test_system_ticket_without_combinations_fails(handler):
    payload = {
        "total_stake": 30,
        "ticket_type": "system",
        "system_combination": "5/5",
        "selections": [_selection(), _selection()],
    }
    status, _, body = _post(handler, payload)
    assert status.startswith("500")
    assert b"no valid combinations calculated" in body


def test_validate_ticket_accepts_good_ticket():
    ticket = Ticket.from_dict({"total_stake": 3, "selections": [_selection()]})
    validate_ticket(ticket)
    assert ticket.total_stake == 3.0


@pytest.mark.parametrize(
    "ticket, message",
    [
        (Ticket(total_stake=-1.0, selections=[Selection()]), "Invalid total stake"),
        (Ticket(total_stake=1.0), "No selections provided"),
        (Ticket(total_stake=1.0, selections=[Selection(odd_value=2.0, stake=1.0)]),
         "Invalid selection data"),
    ],
)
def test_validate_ticket_errors(ticket, message):
    with pytest.raises(ValidationError, match=message):
        validate_ticket(ticket)