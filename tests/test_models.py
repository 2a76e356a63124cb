from datetime import datetime, timedelta, timezone

import pytest

from ticketsys.models import DBCombination, DBTicket, Selection, Ticket


def test_ticket_from_go_style_keys():
    ticket = Ticket.from_dict(
        {
            "UserID": 7,
            "TotalStake": 100,
            "TicketType": "system",
            "SystemCombination": "2/3",
            "Selections": [
                {
                    "HomeTeam": "Home",
                    "AwayTeam": "Away",
                    "EventDate": "2025-06-07T14:30:00Z",
                    "OddValue": 1.5,
                    "Stake": 10,
                    "IsFixed": True,
                }
            ],
        }
    )
    assert ticket.user_id == 7
    assert ticket.total_stake == 100.0
    assert ticket.ticket_type == "system"
    assert ticket.system_combination == "2/3"
    assert len(ticket.selections) == 1
    sel = ticket.selections[0]
    assert sel.home_team == "Home"
    assert sel.away_team == "Away"
    assert sel.odd_value == 1.5
    assert sel.stake == 10.0
    assert sel.is_fixed is True
    assert sel.event_date == datetime(2025, 6, 7, 14, 30, tzinfo=timezone.utc)


def test_keys_match_without_case_or_underscores():
    ticket = Ticket.from_dict({"user_id": 3, "totalstake": 2.5, "TICKET_TYPE": "normal"})
    assert ticket.user_id == 3
    assert ticket.total_stake == 2.5
    assert ticket.ticket_type == "normal"


def test_defaults_for_missing_fields():
    ticket = Ticket.from_dict({})
    assert ticket == Ticket()
    assert ticket.selections == []
    assert ticket.created_at is None
    assert ticket.status == ""


def test_unknown_keys_and_nulls_are_ignored():
    ticket = Ticket.from_dict({"Unknown": 1, "Status": None, "Selections": None})
    assert ticket.status == ""
    assert ticket.selections == []


def test_null_selection_becomes_empty_selection():
    ticket = Ticket.from_dict({"Selections": [None]})
    assert ticket.selections == [Selection()]


def test_time_with_offset_and_fraction():
    sel = Selection.from_dict({"EventDate": "2025-06-07T14:30:00.123456789+02:00"})
    expected = datetime(
        2025, 6, 7, 14, 30, 0, 123456, tzinfo=timezone(timedelta(hours=2))
    )
    assert sel.event_date == expected


def test_zero_time_decodes_to_none():
    sel = Selection.from_dict({"EventDate": "0001-01-01T00:00:00Z"})
    assert sel.event_date is None


@pytest.mark.parametrize(
    "data",
    [
        {"UserID": "7"},
        {"UserID": 1.5},
        {"UserID": True},
        {"TotalStake": "10"},
        {"Status": 3},
        {"Selections": {"HomeTeam": "x"}},
        {"Selections": ["x"]},
        {"CreatedAt": "not a date"},
        {"CreatedAt": "2025-13-01T00:00:00Z"},
    ],
)
def test_wrong_types_raise(data):
    with pytest.raises(ValueError):
        Ticket.from_dict(data)


def test_non_mapping_raises():
    with pytest.raises(ValueError):
        Ticket.from_dict([1, 2])


def test_selection_bool_must_be_bool():
    with pytest.raises(ValueError):
        Selection.from_dict({"IsFixed": 1})


def test_db_records_hold_their_values():
    combo = DBCombination(ticket_id=4, selection_ids=[1, 2])
    assert combo.selection_ids == [1, 2]
    assert DBCombination().selection_ids == []
    assert DBTicket(system_combination="2/3").system_combination == "2/3"
    assert DBTicket().system_combination is None