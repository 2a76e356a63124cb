"""Keys of the system-combination lookup table, written as ``k/n/fixed``."""

from __future__ import annotations

from dataclasses import dataclass

_SEPARATOR = "/"


@dataclass(frozen=True, order=True)
class TableKey:
    """A lookup key: pick ``k`` of ``n`` selections, ``fixed`` of them fixed."""

    k: int
    n: int
    fixed: int

    def __str__(self) -> str:
        return f"{self.k}{_SEPARATOR}{self.n}{_SEPARATOR}{self.fixed}"


def table_key(k: int, n: int, fixed: int) -> str:
    """Format a table key as ``"k/n/fixed"``."""
    return str(TableKey(k, n, fixed))


def parse_table_key(key: str) -> TableKey:
    """Parse a ``"k/n/fixed"`` string; raise ValueError when it is malformed."""
    parts = key.split(_SEPARATOR)
    if len(parts) != 3:
        raise ValueError(f"table key must have three parts: {key!r}")
    try:
        k, n, fixed = (int(part.strip()) for part in parts)
    except ValueError:
        raise ValueError(f"table key parts must be integers: {key!r}") from None
    return TableKey(k, n, fixed)