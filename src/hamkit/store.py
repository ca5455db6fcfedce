"""Key-value store client: environments, tables and cursors backed by LMDB."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum, IntFlag
from pathlib import Path
from typing import Any, NamedTuple

import lmdb

logger = logging.getLogger(__name__)

# Inline key storage limit used when a table is created without one
DEFAULT_KEY_SIZE = 21

# Upper bound on named tables per environment
MAX_TABLES = 512

DEFAULT_MAP_SIZE = 64 * 1024 * 1024

# Table identifiers live in a 16-bit namespace; 0 and 0xFFFF are reserved
MIN_TABLE_ID = 1
MAX_TABLE_ID = 0xFFFE

# Fixed per-page and per-key overhead used to estimate keys per page
PAGE_HEADER_SIZE = 32
KEY_OVERHEAD = 11

_META_TABLE = b"__meta__"


class StoreError(Exception):
    """A store call failed."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation}() returned error: {message}")
        self.operation = operation
        self.message = message


class KeyNotFoundError(StoreError):
    """No entry matched (also signals the end of a traversal)."""


class DuplicateKeyError(StoreError):
    """The key already exists and the table does not allow duplicates."""


class EnvironmentNotFoundError(StoreError):
    """The environment file does not exist or cannot be opened."""


class TableNotFoundError(StoreError):
    """The environment has no table with the requested identifier."""


class TableFlags(IntFlag):
    """Creation flags recorded for each table."""

    NONE = 0
    DISABLE_VAR_KEYLEN = 0x0040
    RECORD_NUMBER = 0x2000
    ENABLE_DUPLICATES = 0x4000


def flags_to_str(flags: int) -> str:
    """Return the names of the set flags joined by `|`, or `NONE`."""
    names = [f.name for f in TableFlags if f and f.name and flags & f == f]
    return "|".join(names) if names else "NONE"


class CursorMove(Enum):
    """Cursor movement directions."""

    FIRST = "first"
    LAST = "last"
    NEXT = "next"
    PREVIOUS = "previous"


class Match(Enum):
    """Lookup modes for find operations."""

    EXACT = "exact"
    LT = "lt"
    GT = "gt"
    LEQ = "leq"
    GEQ = "geq"
    NEAR = "near"


class Entry(NamedTuple):
    """One key/record pair returned by a cursor."""

    key: bytes
    record: bytes


@dataclass(frozen=True)
class TableInfo:
    """Per-table metadata."""

    table_id: int
    key_size: int
    keys_per_page: int
    flags: int


@dataclass(frozen=True)
class EnvironmentInfo:
    """Per-environment metadata."""

    page_size: int
    version: tuple[int, ...]
    max_tables: int
    table_count: int

    @property
    def version_str(self) -> str:
        return ".".join(str(part) for part in self.version)


def validate_table_id(table_id: int) -> int:
    """Check that a table identifier is inside the usable 16-bit range."""
    if not MIN_TABLE_ID <= table_id <= MAX_TABLE_ID:
        raise ValueError(
            f"Table identifier {table_id} out of range "
            f"[{MIN_TABLE_ID}, 0x{MAX_TABLE_ID:x}]"
        )
    return table_id


def _table_name(table_id: int) -> bytes:
    return str(table_id).encode("ascii")


def _parse_table_name(name: bytes) -> int | None:
    """Return the identifier encoded in a named database, or None."""
    if not name.isdigit():
        return None
    table_id = int(name)
    if MIN_TABLE_ID <= table_id <= MAX_TABLE_ID and _table_name(table_id) == name:
        return table_id
    return None


class Cursor:
    """A position inside one table, usable for ordered traversal and lookups.

    A cursor owns a read transaction for its whole lifetime, so the view it
    traverses is stable. Use it as a context manager to release it.
    """

    def __init__(self, table: Table) -> None:
        self.table = table
        env = table.environment.lmdb_env
        try:
            self._txn = env.begin(db=table.dbi, write=False)
            self._cursor = self._txn.cursor(db=table.dbi)
        except lmdb.Error as e:
            raise StoreError("cursor_create", str(e)) from e
        self._positioned = False
        self._closed = False
        logger.debug("Opened cursor on table %d", table.table_id)

    def _current(self) -> Entry:
        return Entry(self._cursor.key(), self._cursor.value())

    def _step(self, operation: str, moved: bool) -> Entry:
        if not moved:
            self._positioned = False
            raise KeyNotFoundError(operation, "Key not found")
        self._positioned = True
        return self._current()

    def move(self, direction: CursorMove) -> Entry:
        """Move the cursor and return the entry it lands on.

        NEXT on an unpositioned cursor moves to the first entry, PREVIOUS to
        the last. Raises KeyNotFoundError when there is no such entry.
        """
        if self._closed:
            raise StoreError("cursor_move", "Cursor is closed")
        try:
            if direction is CursorMove.FIRST:
                moved = self._cursor.first()
            elif direction is CursorMove.LAST:
                moved = self._cursor.last()
            elif direction is CursorMove.NEXT:
                moved = self._cursor.next() if self._positioned else self._cursor.first()
            else:
                moved = self._cursor.prev() if self._positioned else self._cursor.last()
        except lmdb.Error as e:
            raise StoreError("cursor_move", str(e)) from e
        return self._step("cursor_move", moved)

    def find(self, key: bytes, match: Match = Match.EXACT) -> Entry:
        """Position the cursor on the entry matching `key` under `match`."""
        if self._closed:
            raise StoreError("cursor_find", "Cursor is closed")
        try:
            moved = self._find(key, match)
        except lmdb.Error as e:
            raise StoreError("cursor_find", str(e)) from e
        return self._step("cursor_find", moved)

    def _find(self, key: bytes, match: Match) -> bool:
        c = self._cursor
        if match is Match.EXACT:
            return c.set_key(key)
        if match is Match.GEQ:
            return c.set_range(key)
        if match is Match.GT:
            if not c.set_range(key):
                return False
            if c.key() == key:
                return c.next_nodup()
            return True
        if match is Match.LEQ:
            if c.set_range(key):
                if c.key() == key:
                    return True
                return c.prev()
            return c.last()
        if match is Match.LT:
            # set_range lands on the first key >= `key`, so the entry before
            # it is the nearest smaller one
            if c.set_range(key):
                return c.prev()
            return c.last()
        # NEAR: exact, then the smaller neighbour, then the larger one
        if c.set_key(key):
            return True
        if self._find(key, Match.LT):
            return True
        return c.set_range(key)

    def close(self) -> None:
        """Release the cursor and its transaction."""
        if self._closed:
            return
        self._closed = True
        self._cursor.close()
        self._txn.abort()
        logger.debug("Closed cursor on table %d", self.table.table_id)

    def __enter__(self) -> Cursor:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


class Table:
    """An open table inside an environment."""

    def __init__(
        self,
        environment: Environment,
        table_id: int,
        dbi: Any,
        key_size: int,
        flags: int,
    ) -> None:
        self.environment = environment
        self.table_id = table_id
        self.dbi = dbi
        self.key_size = key_size
        self.flags = flags
        self._closed = False

    @property
    def allows_duplicates(self) -> bool:
        return bool(self.flags & TableFlags.ENABLE_DUPLICATES)

    def cursor(self) -> Cursor:
        """Create a new cursor on this table."""
        if self._closed:
            raise StoreError("cursor_create", "Table is closed")
        return Cursor(self)

    def find(self, key: bytes, match: Match = Match.EXACT) -> Entry:
        """Look up a single entry."""
        with self.cursor() as cursor:
            return cursor.find(key, match)

    def insert(self, key: bytes, record: bytes, overwrite: bool = False) -> None:
        """Insert a key/record pair.

        Raises DuplicateKeyError if the key exists, unless the table allows
        duplicates or `overwrite` is set.
        """
        if self.environment.read_only:
            raise StoreError("insert", "Environment is read-only")
        try:
            with self.environment.lmdb_env.begin(db=self.dbi, write=True) as txn:
                if self.allows_duplicates:
                    stored = txn.put(key, record, dupdata=True, db=self.dbi)
                else:
                    stored = txn.put(key, record, overwrite=overwrite, db=self.dbi)
        except lmdb.Error as e:
            raise StoreError("insert", str(e)) from e
        if not stored:
            raise DuplicateKeyError("insert", f"Duplicate key: {key!r}")

    def count(self) -> int:
        """Return the number of entries in the table."""
        try:
            with self.environment.lmdb_env.begin(db=self.dbi) as txn:
                return txn.stat(self.dbi)["entries"]
        except lmdb.Error as e:
            raise StoreError("count", str(e)) from e

    def info(self) -> TableInfo:
        """Return the table's configured metadata."""
        page_size = self.environment.page_size
        keys_per_page = (page_size - PAGE_HEADER_SIZE) // (self.key_size + KEY_OVERHEAD)
        return TableInfo(
            table_id=self.table_id,
            key_size=self.key_size,
            keys_per_page=keys_per_page,
            flags=self.flags,
        )

    def close(self) -> None:
        """Close the table handle."""
        if not self._closed:
            self._closed = True
            logger.debug("Closed table %d", self.table_id)

    def __enter__(self) -> Table:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


class Environment:
    """A single-file container holding one or more tables."""

    def __init__(self, path: Path, lmdb_env: Any, read_only: bool) -> None:
        self.path = path
        self.lmdb_env = lmdb_env
        self.read_only = read_only
        try:
            self._meta_dbi = lmdb_env.open_db(_META_TABLE, create=not read_only)
        except lmdb.NotFoundError:
            self._meta_dbi = None
        except lmdb.Error as e:
            raise StoreError("env_open", str(e)) from e

    @classmethod
    def open(cls, path: str | Path, read_only: bool = True) -> Environment:
        """Open an existing environment file."""
        path = Path(path)
        if not path.is_file():
            raise EnvironmentNotFoundError("env_open", f"File not found: {path}")
        try:
            lmdb_env = lmdb.open(
                str(path),
                subdir=False,
                readonly=read_only,
                lock=not read_only,
                max_dbs=MAX_TABLES + 1,
                create=False,
            )
        except lmdb.Error as e:
            raise StoreError("env_open", str(e)) from e
        logger.debug("Opened environment %s (read_only=%s)", path, read_only)
        try:
            return cls(path, lmdb_env, read_only)
        except StoreError:
            lmdb_env.close()
            raise

    @classmethod
    def create(cls, path: str | Path, map_size: int = DEFAULT_MAP_SIZE) -> Environment:
        """Create a new environment file (or open an existing one for writing)."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            lmdb_env = lmdb.open(
                str(path),
                subdir=False,
                map_size=map_size,
                max_dbs=MAX_TABLES + 1,
                create=True,
            )
        except lmdb.Error as e:
            raise StoreError("env_create", str(e)) from e
        logger.debug("Created environment %s", path)
        try:
            return cls(path, lmdb_env, read_only=False)
        except StoreError:
            lmdb_env.close()
            raise

    @property
    def page_size(self) -> int:
        return self.lmdb_env.stat()["psize"]

    def _load_meta(self, table_id: int) -> dict[str, Any]:
        if self._meta_dbi is None:
            return {}
        with self.lmdb_env.begin(db=self._meta_dbi) as txn:
            raw = txn.get(_table_name(table_id), db=self._meta_dbi)
        if raw is None:
            return {}
        return json.loads(raw)

    def table_names(self) -> list[int]:
        """Return the identifiers of all tables, in ascending order."""
        try:
            with self.lmdb_env.begin() as txn:
                names = [key for key, _ in txn.cursor()]
        except lmdb.Error as e:
            raise StoreError("env_get_database_names", str(e)) from e
        ids = [_parse_table_name(name) for name in names]
        return sorted(table_id for table_id in ids if table_id is not None)

    def create_table(
        self,
        table_id: int,
        key_size: int = DEFAULT_KEY_SIZE,
        flags: int = TableFlags.NONE,
    ) -> Table:
        """Create a new table and return it open."""
        validate_table_id(table_id)
        if self.read_only:
            raise StoreError("env_create_db", "Environment is read-only")
        if table_id in self.table_names():
            raise StoreError("env_create_db", f"Database {table_id} already exists")
        dupsort = bool(flags & TableFlags.ENABLE_DUPLICATES)
        try:
            dbi = self.lmdb_env.open_db(_table_name(table_id), create=True, dupsort=dupsort)
            meta = json.dumps({"key_size": key_size, "flags": int(flags)}).encode()
            with self.lmdb_env.begin(db=self._meta_dbi, write=True) as txn:
                txn.put(_table_name(table_id), meta, db=self._meta_dbi)
        except lmdb.Error as e:
            raise StoreError("env_create_db", str(e)) from e
        logger.debug("Created table %d", table_id)
        return Table(self, table_id, dbi, key_size, int(flags))

    def open_table(self, table_id: int) -> Table:
        """Open an existing table."""
        if table_id not in self.table_names():
            raise TableNotFoundError(
                "env_open_db", f"Database {table_id} (0x{table_id:x}) not found"
            )
        meta = self._load_meta(table_id)
        flags = meta.get("flags", 0)
        dupsort = bool(flags & TableFlags.ENABLE_DUPLICATES)
        try:
            dbi = self.lmdb_env.open_db(_table_name(table_id), create=False, dupsort=dupsort)
        except lmdb.Error as e:
            raise StoreError("env_open_db", str(e)) from e
        logger.debug("Opened table %d", table_id)
        return Table(self, table_id, dbi, meta.get("key_size", DEFAULT_KEY_SIZE), flags)

    def info(self) -> EnvironmentInfo:
        """Return the environment's metadata."""
        return EnvironmentInfo(
            page_size=self.page_size,
            version=lmdb.version(),
            max_tables=MAX_TABLES,
            table_count=len(self.table_names()),
        )

    def close(self) -> None:
        """Close the environment."""
        if self.lmdb_env is not None:
            self.lmdb_env.close()
            self.lmdb_env = None
            logger.debug("Closed environment %s", self.path)

    def __enter__(self) -> Environment:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
