"""System-ticket processing that counts combinations from the lookup table."""

from __future__ import annotations

import logging
import sqlite3
import sys
from datetime import datetime

from ticketsys.combination_table import MissingCombinationError, lookup_combinations
from ticketsys.combinatorics import generate_combinations
from ticketsys.db import DBManager, Transaction
from ticketsys.models import Ticket
from ticketsys.services import TicketProcessingError, calculate_odds, parse_int

logger = logging.getLogger(__name__)

_INSERT_COMBINATION = (
    "INSERT INTO combinations (ticket_id, selection_ids, combination_odds, "
    "stake_per_combination, potential_win, status, created_at) "
    "VALUES (?, ?, ?, ?, ?, ?, ?)"
)


def _combo_size(combo: str) -> int:
    return parse_int(combo.strip().split("/")[0])


class TableSystemTicketService:
    """Expands a system ticket whose combination count comes from the ``k/n/fixed`` table.

    Fixed selections count toward ``k``: a combination of size ``k`` holds every
    fixed selection plus ``k - fixed`` of the free ones.
    """

    def __init__(self, db: DBManager) -> None:
        self._db = db

    def process_system_ticket(self, ticket_id: int, ticket: Ticket) -> None:
        """Generate and store every combination of a stored system ticket."""
        try:
            with self._db.begin_transaction() as tx:
                self._process(tx, ticket_id, ticket)
        except TicketProcessingError:
            raise
        except MissingCombinationError as exc:
            raise TicketProcessingError(str(exc), ticket_id=ticket_id) from exc
        except (sqlite3.Error, ValueError, RuntimeError) as exc:
            raise TicketProcessingError(str(exc), ticket_id=ticket_id) from exc

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

        total_selections = len(fixed_ids) + len(free_ids)
        system_combos = ticket.system_combination.strip().split(",")
        sizes = [(combo, _combo_size(combo)) for combo in system_combos]

        num_combinations = 0
        for combo, k in sizes:
            count = lookup_combinations(k, total_selections, len(fixed_ids))
            num_combinations += count
            logger.debug("Combo: %s, k: %d, combinations: %d", combo, k, count)
        logger.debug("Calculated numCombinations: %d", num_combinations)

        if num_combinations == 0:
            raise TicketProcessingError("no valid combinations calculated", ticket_id=ticket_id)

        stake_per_combination = ticket.total_stake / num_combinations
        max_payout = 0.0
        min_payout = sys.float_info.max
        created_at = datetime.now().astimezone()

        for combo, k in sizes:
            extra_k = max(k - len(fixed_ids), 0)
            if extra_k > len(free_ids):
                raise TicketProcessingError(
                    f"not enough free selections for combo {combo}", ticket_id=ticket_id
                )
            free_combinations = generate_combinations(free_ids, extra_k)
            if not free_combinations and extra_k > 0:
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
        logger.debug("Final maxPayout: %f, minPayout: %f", max_payout, min_payout)

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