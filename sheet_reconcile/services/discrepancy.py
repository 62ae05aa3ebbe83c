from __future__ import annotations

from collections.abc import Sequence

"""Discrepancy detection between a master record and a staged row."""

__all__ = [
    "ARROW",
    "find_discrepancies",
    "describe_discrepancies",
]

ARROW = "→"


def find_discrepancies(existing: Sequence[str], new: Sequence[str]) -> frozenset[int]:
    """Indices where the two sequences differ (exact, case-sensitive).

    A position present in only one of the sequences counts as differing.
    """
    width = max(len(existing), len(new))
    return frozenset(
        i
        for i in range(width)
        if i >= len(existing) or i >= len(new) or existing[i] != new[i]
    )


def describe_discrepancies(
    columns: Sequence[str],
    existing: Sequence[str],
    new: Sequence[str],
    indices: frozenset[int],
) -> tuple[str, ...]:
    """``"column: old → new"`` for each index, in column order."""
    out = []
    for i in sorted(indices):
        name = columns[i] if i < len(columns) else f"Column {i + 1}"
        old = existing[i] if i < len(existing) else ""
        val = new[i] if i < len(new) else ""
        out.append(f"{name}: {old} {ARROW} {val}")
    return tuple(out)
