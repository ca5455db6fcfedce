"""Cursor-driven traversal of whole tables."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TextIO

from hamkit.codec import FieldFormat, format_entry
from hamkit.stats import TableStats
from hamkit.store import CursorMove, Entry, KeyNotFoundError, Table


@dataclass(frozen=True)
class DumpOptions:
    """Rendering options shared by every table of a dump."""

    key: FieldFormat = field(default_factory=FieldFormat)
    record: FieldFormat = field(default_factory=FieldFormat)


def iter_entries(table: Table) -> Iterator[Entry]:
    """Yield every entry of a table in ascending key order.

    One cursor is held for the whole traversal and released when the
    iteration ends, fails, or is abandoned by the caller. Running off the
    end of the table is not an error; any other store failure propagates.
    """
    with table.cursor() as cursor:
        while True:
            try:
                entry = cursor.move(CursorMove.NEXT)
            except KeyNotFoundError:
                return
            yield entry


def dump_table(table: Table, options: DumpOptions, out: TextIO | None = None) -> int:
    """Print every entry of a table and return the number printed."""
    out = out or sys.stdout
    table_id = table.table_id
    print(f"database {table_id} (0x{table_id:x})", file=out)
    count = 0
    for entry in iter_entries(table):
        print(format_entry(entry, options.key, options.record), file=out)
        count += 1
    print(file=out)
    return count


def collect_stats(table: Table, inline_key_limit: int | None = None) -> TableStats:
    """Traverse a table and accumulate its size statistics.

    `inline_key_limit` defaults to the table's configured key size.
    """
    if inline_key_limit is None:
        inline_key_limit = table.key_size
    stats = TableStats()
    for entry in iter_entries(table):
        stats.observe(len(entry.key), len(entry.record), inline_key_limit)
    return stats
