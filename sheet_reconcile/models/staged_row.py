from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from itertools import groupby

"""Staged (indexed) content models.

The indexing step writes one ``StagedCell`` per (row, column) of the source
sheet. Reconciliation works on ``StagedRow``, the per-row grouping of those
cells with values ordered by the source header position.
"""

__all__ = [
    "StagedCell",
    "StagedRow",
    "group_cells",
]


@dataclass(frozen=True)
class StagedCell:
    """One cell of ``content_index``."""
    archive_id: int
    sheet_name: str
    row_number: int  # 1-based data row number (header excluded)
    column_index: int  # 0-based position in the source header
    column_name: str
    cell_value: str  # empty string for blank cells


@dataclass(frozen=True)
class StagedRow:
    """All cells of one staged row, ordered by column position."""
    archive_id: int
    sheet_name: str
    row_number: int
    columns: tuple[str, ...]
    values: tuple[str, ...]

    def value_of(self, column: str) -> str:
        try:
            return self.values[self.columns.index(column)]
        except ValueError:
            return ""


def group_cells(cells: Iterable[StagedCell]) -> list[StagedRow]:
    """Group staged cells into rows.

    Rows come back in ascending ``row_number`` order; within a row the
    values follow ``column_index``. Input order does not matter.
    """
    ordered = sorted(cells, key=lambda c: (c.row_number, c.column_index))
    rows: list[StagedRow] = []
    for row_number, group in groupby(ordered, key=lambda c: c.row_number):
        row_cells = list(group)
        first = row_cells[0]
        rows.append(
            StagedRow(
                archive_id=first.archive_id,
                sheet_name=first.sheet_name,
                row_number=row_number,
                columns=tuple(c.column_name for c in row_cells),
                values=tuple(c.cell_value if c.cell_value is not None else "" for c in row_cells),
            )
        )
    return rows
