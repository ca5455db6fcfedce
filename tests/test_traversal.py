"""Tests for table traversal, dumping and statistics collection."""

import io
from pathlib import Path

import pytest

from hamkit.codec import FieldFormat, ValueFormat
from hamkit.store import Cursor, Environment, StoreError
from hamkit.traversal import DumpOptions, collect_stats, dump_table, iter_entries


@pytest.fixture
def env_path(tmp_path: Path) -> Path:
    """Environment with table 1 = {a: 1, bb: 22} and an empty table 2."""
    path = tmp_path / "test.db"
    with Environment.create(path) as env:
        table = env.create_table(1, key_size=1)
        table.insert(b"bb", b"22")
        table.insert(b"a", b"1")
        env.create_table(2)
    return path


@pytest.fixture
def track_cursors(monkeypatch):
    """Record every cursor close."""
    closed = []
    original_close = Cursor.close

    def close(self):
        closed.append(self)
        original_close(self)

    monkeypatch.setattr(Cursor, "close", close)
    return closed


class TestIterEntries:
    """Tests for cursor-driven iteration."""

    def test_ascending_order(self, env_path: Path):
        with Environment.open(env_path) as env, env.open_table(1) as table:
            entries = list(iter_entries(table))

        assert [(e.key, e.record) for e in entries] == [(b"a", b"1"), (b"bb", b"22")]

    def test_empty_table(self, env_path: Path):
        with Environment.open(env_path) as env, env.open_table(2) as table:
            assert list(iter_entries(table)) == []

    def test_cursor_released_on_completion(self, env_path: Path, track_cursors):
        with Environment.open(env_path) as env, env.open_table(1) as table:
            list(iter_entries(table))

        assert len(track_cursors) == 1

    def test_cursor_released_on_early_stop(self, env_path: Path, track_cursors):
        """Abandoning the iteration still closes the cursor."""
        with Environment.open(env_path) as env, env.open_table(1) as table:
            gen = iter_entries(table)
            next(gen)
            gen.close()

        assert len(track_cursors) == 1

    def test_store_error_propagates(self, env_path: Path, track_cursors, monkeypatch):
        """Failures other than end-of-table abort and release the cursor."""

        def failing_move(self, direction):
            raise StoreError("cursor_move", "Simulated I/O error")

        monkeypatch.setattr(Cursor, "move", failing_move)

        with Environment.open(env_path) as env, env.open_table(1) as table:
            with pytest.raises(StoreError, match="cursor_move"):
                list(iter_entries(table))

        assert len(track_cursors) == 1


class TestDumpTable:
    """Tests for dumping a table."""

    def test_binary_unlimited(self, env_path: Path):
        """Binary dump: header, one line per entry, blank line."""
        out = io.StringIO()
        with Environment.open(env_path) as env, env.open_table(1) as table:
            count = dump_table(table, DumpOptions(), out)

        assert count == 2
        assert out.getvalue().splitlines() == [
            "database 1 (0x1)",
            "key: 61 => 31",
            "key: 62 62 => 32 32",
            "",
        ]

    def test_string_format_with_limit(self, env_path: Path):
        out = io.StringIO()
        options = DumpOptions(
            key=FieldFormat(ValueFormat.STRING, 1),
            record=FieldFormat(ValueFormat.STRING, 0),
        )
        with Environment.open(env_path) as env, env.open_table(1) as table:
            dump_table(table, options, out)

        lines = out.getvalue().splitlines()
        assert lines[1:3] == ["key: a => 1", "key: b => 22"]

    def test_numeric_illegal_size_does_not_abort(self, tmp_path: Path):
        """A record of the wrong size is reported inline; the dump goes on."""
        path = tmp_path / "numeric.db"
        with Environment.create(path) as env:
            table = env.create_table(7)
            table.insert(b"a", b"\x01\x00\x00")
            table.insert(b"b", b"\x05")

        out = io.StringIO()
        options = DumpOptions(record=FieldFormat(ValueFormat.NUMERIC))
        with Environment.open(path) as env, env.open_table(7) as table:
            count = dump_table(table, options, out)

        assert count == 2
        assert out.getvalue().splitlines()[1:3] == [
            "key: 61 => (illegal numeric size: 3)",
            "key: 62 => 5",
        ]

    def test_empty_table(self, env_path: Path):
        out = io.StringIO()
        with Environment.open(env_path) as env, env.open_table(2) as table:
            dump_table(table, DumpOptions(), out)

        assert out.getvalue() == "database 2 (0x2)\n\n"


class TestCollectStats:
    """Tests for statistics over a whole table."""

    def test_sizes(self, env_path: Path):
        with Environment.open(env_path) as env, env.open_table(1) as table:
            summary = collect_stats(table).finalize()

        assert summary.count == 2
        assert summary.min_key_size == 1
        assert summary.max_key_size == 2
        assert summary.total_record_size == 3
        # Table 1 was created with an inline key size of 1
        assert summary.extended_keys == 1

    def test_explicit_inline_limit(self, env_path: Path):
        with Environment.open(env_path) as env, env.open_table(1) as table:
            assert collect_stats(table, 0).extended_keys == 2

    def test_empty_table(self, env_path: Path):
        with Environment.open(env_path) as env, env.open_table(2) as table:
            summary = collect_stats(table).finalize()

        assert summary.count == 0
        assert summary.average_key_size is None
