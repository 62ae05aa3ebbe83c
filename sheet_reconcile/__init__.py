"""Spreadsheet import and master record reconciliation."""

__version__ = "0.1.0"
