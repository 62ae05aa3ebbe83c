"""Domain models for the spreadsheet reconciliation tool.

Archive, staged content and master record rows, the classified record union
produced by a reconciliation pass, and the configuration dataclasses.
"""

from .archive import ArchiveRecord
from .classification import (
    ApplyOutcome,
    ClassificationResult,
    ClassifiedRecord,
    DisagreementRecord,
    MatchRecord,
    NewRecord,
    RecordKind,
    UserDecision,
)
from .config_models import AppConfig, DatabaseConfig, ReconciliationConfig
from .master_record import MasterRecord
from .staged_row import StagedCell, StagedRow

__all__ = [
    # Configuration models
    "AppConfig",
    "DatabaseConfig",
    "ReconciliationConfig",
    # Stored rows
    "ArchiveRecord",
    "MasterRecord",
    "StagedCell",
    "StagedRow",
    # Reconciliation models
    "ApplyOutcome",
    "ClassificationResult",
    "ClassifiedRecord",
    "DisagreementRecord",
    "MatchRecord",
    "NewRecord",
    "RecordKind",
    "UserDecision",
]
