from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""MasterRecord model (one row of ``master_data``)."""

__all__ = [
    "MasterRecord",
]


@dataclass(frozen=True)
class MasterRecord:
    """Canonical long-lived record for a unique key.

    ``data`` is an opaque serialized payload; only the payload codec in
    ``sheet_reconcile.services.payload`` interprets it.
    """
    unique_key: str  # primary key
    data: str
    created_at: datetime | None = None
    last_updated: datetime | None = None
