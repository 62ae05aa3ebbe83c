from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import pandas as pd

"""Tabular file loader (pandas).

Reads one sheet of an ``.xlsx``/``.xls`` workbook, or a ``.csv`` file, into
plain strings: a header list and data rows aligned with it. Every value is
kept as text (``dtype=str``, no NA conversion) so that reconciliation compares
exactly what the user typed; blank cells become ``""``.
"""

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "SheetHeaderError",
    "UnsupportedFileError",
    "LoadedSheet",
    "dedupe_columns",
    "load_file",
    "normalize_frame",
]

SUPPORTED_EXTENSIONS = frozenset({".xlsx", ".xls", ".csv"})


class SheetHeaderError(Exception):
    """Raised when the header row is missing."""


class UnsupportedFileError(Exception):
    """Raised for extensions the loader cannot read, or a missing sheet."""


@dataclass
class LoadedSheet:
    sheet_name: str
    columns: list[str]
    rows: list[list[str]]  # data rows, each aligned with ``columns``


def _cell_text(val: object) -> str:
    if val is None:
        return ""
    try:
        if pd.isna(val):
            return ""
    except (TypeError, ValueError):
        pass
    return str(val).strip()


def dedupe_columns(names: list[str]) -> list[str]:
    """Suffix repeated header names as ``name.1``, ``name.2`` (pandas style).

    Master payloads are keyed by column name, so every column must be unique.
    """
    seen = set(names)
    counts: dict[str, int] = {}
    out: list[str] = []
    for name in names:
        if name not in counts:
            counts[name] = 0
            out.append(name)
            continue
        n = counts[name] + 1
        while f"{name}.{n}" in seen:
            n += 1
        counts[name] = n
        candidate = f"{name}.{n}"
        seen.add(candidate)
        out.append(candidate)
    return out


def normalize_frame(df: pd.DataFrame, sheet_name: str, header_row: int = 1) -> LoadedSheet:
    """Split a raw (header=None) frame into header and data rows.

    Steps:
    1. Validate the 1-based ``header_row`` exists
    2. Header cells are stripped; blank header cells become ``Column N``;
       repeated names get a ``.N`` suffix
    3. Rows after the header become data rows; fully blank rows are dropped
    4. Short rows are padded with ``""`` to the header width
    """
    if df.shape[0] < header_row:
        raise SheetHeaderError(f"sheet '{sheet_name}' lacks header row {header_row}")
    header_cells = [_cell_text(c) for c in df.iloc[header_row - 1].tolist()]
    columns = dedupe_columns([c if c else f"Column {i + 1}" for i, c in enumerate(header_cells)])
    width = len(columns)

    rows: list[list[str]] = []
    for raw in df.iloc[header_row:].itertuples(index=False, name=None):
        values = [_cell_text(v) for v in raw][:width]
        if not any(values):
            continue
        values.extend([""] * (width - len(values)))
        rows.append(values)
    return LoadedSheet(sheet_name=sheet_name, columns=columns, rows=rows)


def load_file(path: Path, sheet_name: str | None = None, header_row: int = 1) -> LoadedSheet:
    """Load ``path`` as text rows.

    Parameters
    ----------
    path: 入力ファイル (.xlsx / .xls / .csv)
    sheet_name: workbook sheet to read (None = first sheet; ignored for CSV)
    header_row: 1-based header row number
    """
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileError(f"unsupported file type: {path.name}")

    if suffix == ".csv":
        df = pd.read_csv(path, header=None, dtype=str, keep_default_na=False, skip_blank_lines=False)
        return normalize_frame(df, path.stem, header_row)

    xls = pd.ExcelFile(path)
    names = [str(n) for n in xls.sheet_names]
    if not names:
        raise UnsupportedFileError(f"no worksheets in {path.name}")
    target = sheet_name if sheet_name is not None else names[0]
    if target not in names:
        raise UnsupportedFileError(f"sheet '{target}' not found in {path.name}")
    df = xls.parse(target, header=None, dtype=str, keep_default_na=False)
    return normalize_frame(df, target, header_row)
