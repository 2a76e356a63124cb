"""Ticket creation and settlement of normal and system tickets."""

from __future__ import annotations

import logging
import re
import sqlite3
import sys
from datetime import datetime
from typing import Iterable, Mapping, Sequence

from ticketsys.combinatorics import binom, generate_combinations
from ticketsys.db import DBManager, Transaction
from ticketsys.models import Ticket

logger = logging.getLogger(__name__)

_INTEGER = re.compile(r"[+-]?[0-9]+")

_INSERT_COMBINATION = (
    "INSERT INTO combinations (ticket_id, selection_ids, combination_odds, "
    "stake_per_combination, potential_win, status, created_at) "
    "VALUES (?, ?, ?, ?, ?, ?, ?)"
)


class TicketProcessingError(Exception):
    """Raised when a ticket cannot be stored or its combinations computed."""

    def __init__(self, message: str, ticket_id: int | None = None) -> None:
        super().__init__(message)
        self.ticket_id = ticket_id


def parse_int(s: str) -> int:
    """Parse a decimal integer, ignoring surrounding whitespace."""
    text = s.strip()
    if not _INTEGER.fullmatch(text):
        raise ValueError(f"invalid integer: {s!r}")
    return int(text)


def _combo_size(combo: str) -> int:
    return parse_int(combo.strip().split("/")[0])


def find_min_k(combinations: Iterable[str]) -> int:
    """Return the smallest ``k`` among ``"k/n"`` entries; unparsable ones count as 0."""
    min_k = sys.maxsize
    for combo in combinations:
        try:
            k = _combo_size(combo)
        except ValueError:
            k = 0
        min_k = min(min_k, k)
    return min_k


def calculate_odds(combo_ids: Sequence[int], odds_map: Mapping[int, float]) -> float:
    """Multiply the odds of the given selections; unknown ids count as 0."""
    odds = 1.0
    for selection_id in combo_ids:
        odds *= odds_map.get(selection_id, 0.0)
    return odds


def _now() -> datetime:
    return datetime.now().astimezone()


def _wrap(exc: Exception, ticket_id: int | None) -> TicketProcessingError:
    error = TicketProcessingError(str(exc), ticket_id=ticket_id)
    error.__cause__ = exc
    return error


class TicketService:
    """Stores tickets and computes their combinations and payouts."""

    def __init__(self, db: DBManager) -> None:
        self._db = db

    def create_ticket(self, ticket: Ticket) -> int:
        """Store the ticket and its selections; return the new ticket id.

        Fills in a default status and creation time on the ticket itself.
        """
        try:
            tx = self._db.begin_transaction()
        except (sqlite3.Error, RuntimeError) as exc:
            raise TicketProcessingError(f"failed to begin transaction: {exc}") from exc

        if not ticket.status:
            ticket.status = "pending"
        if ticket.created_at is None:
            ticket.created_at = _now()
        ticket.hits = max(ticket.hits, 0)
        ticket.misses = max(ticket.misses, 0)
        ticket.pending = max(ticket.pending, 0)

        try:
            with tx:
                try:
                    result = tx.exec(
                        "INSERT INTO tickets (user_id, total_stake, total_odd, potential_payout, "
                        "hits, misses, pending, status, created_at, max_payout, min_payout, "
                        "final_payout, num_combinations, system_combination, ticket_type) "
                        "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                        ticket.user_id, ticket.total_stake, ticket.total_odd,
                        ticket.potential_payout, ticket.hits, ticket.misses, ticket.pending,
                        ticket.status, ticket.created_at, ticket.max_payout,
                        ticket.min_payout, ticket.final_payout, ticket.num_combinations,
                        ticket.system_combination, ticket.ticket_type,
                    )
                except sqlite3.Error as exc:
                    raise TicketProcessingError(f"failed to insert ticket: {exc}") from exc
                ticket_id = result.last_insert_id
                if ticket_id is None:
                    raise TicketProcessingError("failed to insert ticket: no id returned")

                for sel in ticket.selections:
                    try:
                        tx.exec(
                            "INSERT INTO selections (ticket_id, sport_type, league, home_team, "
                            "away_team, event_date, market_type, selected_outcome, odd_value, "
                            "stake, eid, selection_type, status, is_fixed) "
                            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                            ticket_id, sel.sport_type, sel.league, sel.home_team,
                            sel.away_team, sel.event_date, sel.market_type,
                            sel.selected_outcome, sel.odd_value, sel.stake, sel.eid,
                            sel.selection_type, "pending", sel.is_fixed,
                        )
                    except sqlite3.Error as exc:
                        raise TicketProcessingError(
                            f"failed to insert selection: {exc}"
                        ) from exc
        except TicketProcessingError:
            raise
        except (sqlite3.Error, RuntimeError) as exc:
            raise _wrap(exc, None) from exc
        return ticket_id

    def process_ticket(self, ticket: Ticket) -> int:
        """Store the ticket, then compute its combinations; return the ticket id."""
        ticket_id = self.create_ticket(ticket)
        logger.info(
            "Processing ticket %d, type: %s, system_combination: %s",
            ticket_id, ticket.ticket_type, ticket.system_combination,
        )
        if ticket.ticket_type == "system" and ticket.system_combination:
            SystemTicketService(self._db).process_system_ticket(ticket_id, ticket)
        else:
            self._process_normal_ticket(ticket_id, ticket)
        return ticket_id

    def _process_normal_ticket(self, ticket_id: int, ticket: Ticket) -> None:
        try:
            with self._db.begin_transaction() as tx:
                rows = tx.query(
                    "SELECT selection_id, odd_value FROM selections "
                    "WHERE ticket_id = ? ORDER BY selection_id",
                    ticket_id,
                )
                selection_ids = [row[0] for row in rows]
                odds = 1.0
                for _, odd in rows:
                    odds *= odd

                potential_win = odds * ticket.total_stake
                max_payout = potential_win
                min_payout = 0.0
                num_combinations = 1

                tx.exec(
                    _INSERT_COMBINATION, ticket_id, selection_ids, odds,
                    ticket.total_stake, potential_win, "pending", _now(),
                )
                tx.exec(
                    "UPDATE tickets SET total_odd = ?, potential_payout = ?, max_payout = ?, "
                    "min_payout = ?, num_combinations = ? WHERE ticket_id = ?",
                    odds, potential_win, max_payout, min_payout, num_combinations, ticket_id,
                )
        except TicketProcessingError:
            raise
        except (sqlite3.Error, RuntimeError) as exc:
            raise _wrap(exc, ticket_id) from exc
        logger.info(
            "Processed normal ticket %d, max_payout: %f, min_payout: %f, num_combinations: %d",
            ticket_id, max_payout, min_payout, num_combinations,
        )


class SystemTicketService:
    """Expands a system ticket into its combinations and records the payouts."""

    def __init__(self, db: DBManager) -> None:
        self._db = db

    def process_system_ticket(self, ticket_id: int, ticket: Ticket) -> None:
        """Generate and store every combination of a stored system ticket."""
        try:
            with self._db.begin_transaction() as tx:
                self._process(tx, ticket_id, ticket)
        except TicketProcessingError:
            raise
        except (sqlite3.Error, ValueError, RuntimeError) as exc:
            raise _wrap(exc, ticket_id) from exc

    def _process(self, tx: Transaction, ticket_id: int, ticket: Ticket) -> None:
        fixed_ids: list[int] = []
        free_ids: list[int] = []
        odds_map: dict[int, float] = {}
        rows = tx.query(
            "SELECT selection_id, odd_value, is_fixed FROM selections "
            "WHERE ticket_id = ? ORDER BY selection_id",
            ticket_id,
        )
        for selection_id, odd, is_fixed in rows:
            odds_map[selection_id] = odd
            (fixed_ids if is_fixed else free_ids).append(selection_id)
        logger.debug(
            "Fixed IDs: %s (count: %d), Free IDs: %s (count: %d), OddsMap: %s",
            fixed_ids, len(fixed_ids), free_ids, len(free_ids), odds_map,
        )

        system_combos = ticket.system_combination.strip().split(",")
        sizes = [(combo, _combo_size(combo)) for combo in system_combos]
        num_combinations = sum(binom(len(free_ids), k) for _, k in sizes)
        logger.debug("Calculated numCombinations: %d", num_combinations)
        if num_combinations == 0:
            raise TicketProcessingError("no valid combinations calculated", ticket_id=ticket_id)

        stake_per_combination = ticket.total_stake / num_combinations
        max_payout = 0.0
        min_payout = sys.float_info.max
        created_at = _now()

        for combo, k in sizes:
            free_combinations = generate_combinations(free_ids, k)
            if not free_combinations:
                logger.warning("No combinations generated for combo %s", combo)
            for combo_ids in free_combinations:
                final_combo = fixed_ids + combo_ids
                odds = calculate_odds(final_combo, odds_map)
                potential_win = odds * stake_per_combination
                max_payout += potential_win
                min_payout = min(min_payout, potential_win)
                tx.exec(
                    _INSERT_COMBINATION, ticket_id, final_combo, odds,
                    stake_per_combination, potential_win, "pending", created_at,
                )

        result = tx.exec(
            "UPDATE tickets SET num_combinations = ?, max_payout = ?, min_payout = ? "
            "WHERE ticket_id = ?",
            num_combinations, max_payout, min_payout, ticket_id,
        )
        if result.rows_affected == 0:
            logger.warning("No rows updated for ticket_id %d", ticket_id)
        else:
            logger.info(
                "Updated max_payout: %f, min_payout: %f for ticket_id %d",
                max_payout, min_payout, ticket_id,
            )