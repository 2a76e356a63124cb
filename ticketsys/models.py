"""Ticket and selection records, as received from clients and as stored."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping, TypeVar

_T = TypeVar("_T")

_RFC3339 = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(\.\d+)?"
    r"(?:([Zz])|([+-])(\d{2}):(\d{2}))$"
)


def _normalize_key(key: str) -> str:
    return key.replace("_", "").lower()


def _as_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {name!r} must be an integer, got {value!r}")
    return value


def _as_float(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"field {name!r} must be a number, got {value!r}")
    return float(value)


def _as_str(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"field {name!r} must be a string, got {value!r}")
    return value


def _as_bool(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"field {name!r} must be a boolean, got {value!r}")
    return value


def _as_time(name: str, value: Any) -> datetime | None:
    """Parse an RFC 3339 timestamp; the zero instant decodes to None."""
    if not isinstance(value, str):
        raise ValueError(f"field {name!r} must be a timestamp string, got {value!r}")
    match = _RFC3339.match(value)
    if match is None:
        raise ValueError(f"field {name!r} is not an RFC 3339 timestamp: {value!r}")
    year, month, day, hour, minute, second = (int(g) for g in match.group(1, 2, 3, 4, 5, 6))
    fraction = match.group(7)
    microsecond = int(fraction[1:7].ljust(6, "0")) if fraction else 0
    if match.group(8):
        offset = timedelta(0)
    else:
        sign = -1 if match.group(9) == "-" else 1
        offset = sign * timedelta(hours=int(match.group(10)), minutes=int(match.group(11)))
    try:
        tz = timezone(offset)
        parsed = datetime(year, month, day, hour, minute, second, microsecond, tzinfo=tz)
    except ValueError as exc:
        raise ValueError(f"field {name!r} is not a valid timestamp: {value!r}") from exc
    if offset == timedelta(0) and (year, month, day, hour, minute, second, microsecond) == (
        1, 1, 1, 0, 0, 0, 0,
    ):
        return None
    return parsed


def _as_selections(name: str, value: Any) -> list["Selection"]:
    if not isinstance(value, list):
        raise ValueError(f"field {name!r} must be a list, got {value!r}")
    return [Selection() if item is None else Selection.from_dict(item) for item in value]


def _decoder(func: Callable[[str, Any], Any]) -> dict[str, Any]:
    return {"decode": func}


def _decode(cls: type[_T], data: Any) -> _T:
    """Build ``cls`` from a mapping, matching keys without regard to case or underscores.

    Unknown keys and null values are ignored; values of the wrong type raise ValueError.
    """
    if not isinstance(data, Mapping):
        raise ValueError(f"{cls.__name__} must be decoded from an object, got {data!r}")
    by_key = {_normalize_key(f.name): f for f in fields(cls)}  # type: ignore[arg-type]
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if not isinstance(key, str) or value is None:
            continue
        target = by_key.get(_normalize_key(key))
        if target is None:
            continue
        kwargs[target.name] = target.metadata["decode"](target.name, value)
    return cls(**kwargs)


@dataclass
class Selection:
    """One pick on a ticket as submitted by a client."""

    sport_type: str = field(default="", metadata=_decoder(_as_str))
    league: str = field(default="", metadata=_decoder(_as_str))
    home_team: str = field(default="", metadata=_decoder(_as_str))
    away_team: str = field(default="", metadata=_decoder(_as_str))
    event_date: datetime | None = field(default=None, metadata=_decoder(_as_time))
    market_type: str = field(default="", metadata=_decoder(_as_str))
    selected_outcome: str = field(default="", metadata=_decoder(_as_str))
    odd_value: float = field(default=0.0, metadata=_decoder(_as_float))
    stake: float = field(default=0.0, metadata=_decoder(_as_float))
    eid: str = field(default="", metadata=_decoder(_as_str))
    selection_type: str = field(default="", metadata=_decoder(_as_str))
    status: str = field(default="", metadata=_decoder(_as_str))
    is_fixed: bool = field(default=False, metadata=_decoder(_as_bool))

    @classmethod
    def from_dict(cls, data: Any) -> "Selection":
        """Decode a selection from a JSON object."""
        return _decode(cls, data)


@dataclass
class Ticket:
    """A ticket as submitted by a client, with its selections."""

    user_id: int = field(default=0, metadata=_decoder(_as_int))
    total_stake: float = field(default=0.0, metadata=_decoder(_as_float))
    total_odd: float = field(default=0.0, metadata=_decoder(_as_float))
    potential_payout: float = field(default=0.0, metadata=_decoder(_as_float))
    hits: int = field(default=0, metadata=_decoder(_as_int))
    misses: int = field(default=0, metadata=_decoder(_as_int))
    pending: int = field(default=0, metadata=_decoder(_as_int))
    status: str = field(default="", metadata=_decoder(_as_str))
    created_at: datetime | None = field(default=None, metadata=_decoder(_as_time))
    max_payout: float = field(default=0.0, metadata=_decoder(_as_float))
    min_payout: float = field(default=0.0, metadata=_decoder(_as_float))
    final_payout: float = field(default=0.0, metadata=_decoder(_as_float))
    num_combinations: int = field(default=0, metadata=_decoder(_as_int))
    system_combination: str = field(default="", metadata=_decoder(_as_str))
    ticket_type: str = field(default="", metadata=_decoder(_as_str))
    selections: list[Selection] = field(
        default_factory=list, metadata=_decoder(_as_selections)
    )
    logo: str = field(default="", metadata=_decoder(_as_str))

    @classmethod
    def from_dict(cls, data: Any) -> "Ticket":
        """Decode a ticket and its selections from a JSON object."""
        return _decode(cls, data)


@dataclass
class DBTicket:
    """A row of the tickets table."""

    ticket_id: int = 0
    user_id: int = 0
    total_stake: float = 0.0
    total_odd: float = 0.0
    potential_payout: float = 0.0
    hits: int = 0
    misses: int = 0
    pending: int = 0
    status: str = ""
    created_at: datetime | None = None
    max_payout: float = 0.0
    min_payout: float = 0.0
    final_payout: float = 0.0
    num_combinations: int = 0
    system_combination: str | None = None
    ticket_type: str = ""


@dataclass
class DBSelection:
    """A row of the selections table."""

    id: int = 0
    ticket_id: int = 0
    sport_type: str = ""
    league: str = ""
    home_team: str = ""
    away_team: str = ""
    event_date: datetime | None = None
    market_type: str = ""
    selected_outcome: str = ""
    odd_value: float = 0.0
    stake: float = 0.0
    eid: str = ""
    selection_type: str = ""
    status: str = ""
    is_fixed: bool = False


@dataclass
class DBCombination:
    """A row of the combinations table."""

    combination_id: int = 0
    ticket_id: int = 0
    selection_ids: list[int] = field(default_factory=list)
    combination_odds: float = 0.0
    stake_per_combination: float = 0.0
    potential_win: float = 0.0
    status: str = ""
    final_payout: float = 0.0
    created_at: datetime | None = None