"""Lookup table of system-bet combination counts keyed by ``k/n/fixed``."""

from __future__ import annotations

from ticketsys.combinatorics import binom
from ticketsys.table_keys import table_key

DEFAULT_MAX_N = 20


class MissingCombinationError(LookupError):
    """Raised when the table holds no entry for a key."""


def build_table(max_n: int) -> dict[str, int]:
    """Return combination counts for every ``n`` up to ``max_n``.

    For ``1 <= k <= n`` and ``0 <= fixed <= k`` the entry ``"k/n/fixed"`` counts
    the ways to fill ``k`` places when ``fixed`` selections must be in every one.
    """
    if max_n < 0:
        raise ValueError(f"max_n must not be negative: {max_n}")
    return {
        table_key(k, n, fixed): binom(n - fixed, k - fixed)
        for n in range(1, max_n + 1)
        for k in range(1, n + 1)
        for fixed in range(k + 1)
    }


COMBINATION_TABLE: dict[str, int] = build_table(DEFAULT_MAX_N)


def lookup_combinations(k: int, n: int, fixed: int) -> int:
    """Return the table entry for ``k/n/fixed``; raise MissingCombinationError if absent."""
    key = table_key(k, n, fixed)
    try:
        return COMBINATION_TABLE[key]
    except KeyError:
        raise MissingCombinationError(f"no combination data found for key {key}") from None