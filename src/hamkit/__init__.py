"""hamkit - inspection and export tools for an embedded key-value store."""

from hamkit.codec import FieldFormat, ValueFormat, format_entry, render
from hamkit.parsing import expand_response_files
from hamkit.stats import StatsSummary, TableStats
from hamkit.store import (
    Cursor,
    CursorMove,
    DuplicateKeyError,
    Entry,
    Environment,
    EnvironmentNotFoundError,
    KeyNotFoundError,
    Match,
    StoreError,
    Table,
    TableFlags,
    TableNotFoundError,
)
from hamkit.traversal import DumpOptions, collect_stats, dump_table, iter_entries

__all__ = [
    # Store
    "Environment",
    "Table",
    "Cursor",
    "CursorMove",
    "Match",
    "Entry",
    "TableFlags",
    # Errors
    "StoreError",
    "KeyNotFoundError",
    "DuplicateKeyError",
    "EnvironmentNotFoundError",
    "TableNotFoundError",
    # Rendering and traversal
    "ValueFormat",
    "FieldFormat",
    "DumpOptions",
    "render",
    "format_entry",
    "iter_entries",
    "dump_table",
    "collect_stats",
    "TableStats",
    "StatsSummary",
    "expand_response_files",
]

__version__ = "0.1.0"
