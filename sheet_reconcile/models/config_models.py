from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the reconciliation tool.

Typed view of ``config/reconcile.yml`` after schema validation. The loader in
``sheet_reconcile.config.loader`` builds these; services only ever see the
dataclasses.
"""

__all__ = [
    "DatabaseConfig",
    "ReconciliationConfig",
    "AppConfig",
]


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ReconciliationConfig:
    """Key column selection for classification.

    ``key_column`` of ``None`` means "first column of the staged header".
    ``key_column_overrides`` maps an archive file name to its key column and
    wins over ``key_column``.
    """
    key_column: str | None = None
    key_column_overrides: dict[str, str] = field(default_factory=dict)

    def key_column_for(self, file_name: str) -> str | None:
        return self.key_column_overrides.get(file_name, self.key_column)


@dataclass(frozen=True)
class AppConfig:
    """Root configuration object."""
    archive_directory: str  # archived copies of imported files
    uploaded_by: str = "operator"  # default uploader recorded in archive_log
    header_row: int = 1  # 1-based header row of source sheets
    sheet_name: str | None = None  # sheet to index (None = first sheet)
    reconciliation: ReconciliationConfig = field(default_factory=ReconciliationConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
