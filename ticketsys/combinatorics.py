"""Binomial coefficients and enumeration of selection combinations."""

from __future__ import annotations

from itertools import combinations
from typing import Sequence, TypeVar

T = TypeVar("T")


def binom(n: int, k: int) -> int:
    """Return the number of ways to choose ``k`` items out of ``n``.

    Values of ``k`` outside ``0..n`` give 0.
    """
    if k < 0 or k > n:
        return 0
    if k == 0 or k == n:
        return 1
    k = min(k, n - k)
    result = 1
    for i in range(k):
        result = result * (n - i) // (i + 1)
    return result


def generate_combinations(ids: Sequence[T], k: int) -> list[list[T]]:
    """Return every ``k``-element combination of ``ids``, in input order.

    A ``k`` of 0 yields a single empty combination; a negative ``k`` or one
    larger than ``len(ids)`` yields none.
    """
    if k == 0:
        return [[]]
    if k < 0:
        return []
    return [list(combo) for combo in combinations(ids, k)]