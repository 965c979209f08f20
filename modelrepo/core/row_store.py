"""Row store for the model repository, backed by SQLite.

Every ``(name, version)`` row holds per-field, timestamped cells. Writes
never overwrite a cell; reads return the newest cells first, so the most
recent value of a field is authoritative and older values form its
history.

Design:
- ``ConditionalPut`` stages several cells against one row and commits them
  only if a named field's most recent value equals an expected value (or
  has no value at all). The check and the writes run inside one
  ``BEGIN IMMEDIATE`` transaction, which serializes writers across threads
  and processes sharing the database file.
- ``RowScanner`` is a lazy, single-pass iterator over every row. It holds a
  read snapshot (WAL) until it is closed.
- A small ``repo_meta`` table stores per-table metadata such as the base
  storage URI and layout version.
"""

from __future__ import annotations

import json
import logging
import re
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from itertools import groupby
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from modelrepo.core.hasher import canonical_json
from modelrepo.models.record import Cell, Row, RowKey

logger = logging.getLogger(__name__)

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_CELLS = """
CREATE TABLE IF NOT EXISTS {table} (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT NOT NULL,
    version     TEXT NOT NULL,
    field       TEXT NOT NULL,
    value_json  TEXT NOT NULL,
    written_at  TEXT NOT NULL
);
"""

_CREATE_IDX_KEY = """
CREATE INDEX IF NOT EXISTS idx_{table}_key ON {table}(name, version, field, id);
"""

_CREATE_META = """
CREATE TABLE IF NOT EXISTS repo_meta (
    table_name  TEXT NOT NULL,
    meta_key    TEXT NOT NULL,
    meta_value  TEXT NOT NULL,
    PRIMARY KEY (table_name, meta_key)
);
"""

_MISSING = object()


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class RowStore(Protocol):
    """The row store operations the repository core depends on."""

    def get(
        self,
        key: RowKey,
        fields: Iterable[str] | None = None,
        max_versions: int | None = 1,
    ) -> Row | None:
        """Read one row, or ``None`` if it has no cells."""
        ...

    def scan(
        self,
        fields: Iterable[str] | None = None,
        max_versions: int | None = 1,
    ) -> RowScanner:
        """Open a lazy, single-pass scan over every row."""
        ...

    def begin(self, key: RowKey) -> ConditionalPut:
        """Start staging writes against one row."""
        ...

    def put(self, key: RowKey, field: str, value: Any) -> None:
        """Unconditionally write one cell."""
        ...

    def delete_row(self, key: RowKey) -> None:
        """Delete every cell of a row."""
        ...


# ---------------------------------------------------------------------------
# Scanner and conditional put
# ---------------------------------------------------------------------------


class RowScanner:
    """Single-pass iterator over rows. Close it (or use ``with``) when done."""

    def __init__(self, conn: sqlite3.Connection, cursor: sqlite3.Cursor, max_versions: int | None) -> None:
        self._conn = conn
        self._cursor = cursor
        self._max_versions = max_versions
        self._started = False
        self._closed = False

    def __iter__(self) -> Iterator[Row]:
        if self._closed:
            raise RuntimeError("Scanner is closed.")
        if self._started:
            raise RuntimeError("Scanner can only be iterated once.")
        self._started = True
        return self._rows()

    def _rows(self) -> Iterator[Row]:
        for (name, version), records in groupby(self._cursor, key=lambda r: (r[0], r[1])):
            cells = _group_cells(
                ((field, value_json, written_at) for _, _, field, value_json, written_at in records),
                self._max_versions,
            )
            yield Row(key=RowKey(name=name, version=version), cells=cells)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._conn.close()

    def __enter__(self) -> RowScanner:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ConditionalPut:
    """Stages cell writes against one row for a single conditional commit.

    Examples
    --------
    >>> putter = store.begin(RowKey(name="org.acme.model", version="1.0.0"))
    >>> putter.put("uploaded", False)
    >>> putter.check_and_commit("uploaded", None)  # commit only if absent
    True
    """

    def __init__(self, store: SqliteRowStore, key: RowKey) -> None:
        self._store = store
        self._key = key
        self._staged: list[tuple[str, Any]] = []
        self._finished = False

    @property
    def key(self) -> RowKey:
        return self._key

    def put(self, field: str, value: Any) -> None:
        if self._finished:
            raise RuntimeError("ConditionalPut has already been committed.")
        self._staged.append((field, value))

    def check_and_commit(self, field: str, expected: Any) -> bool:
        """Commit staged cells iff ``field``'s newest value equals ``expected``.

        ``expected=None`` requires the field to have no value at all.
        Returns ``False`` (and writes nothing) when the check fails.
        """
        if self._finished:
            raise RuntimeError("ConditionalPut has already been committed.")
        self._finished = True
        with self._store._write_transaction() as conn:
            current = self._store._most_recent_value(conn, self._key, field)
            if expected is None:
                matched = current is _MISSING
            else:
                matched = current is not _MISSING and current == expected
            if not matched:
                logger.debug(
                    "Conditional commit on %s/%s rejected: %s=%r, expected %r.",
                    self._key.name, self._key.version, field,
                    None if current is _MISSING else current, expected,
                )
                return False
            self._store._insert_cells(conn, self._key, self._staged)
        return True


# ---------------------------------------------------------------------------
# SQLite implementation
# ---------------------------------------------------------------------------


class SqliteRowStore:
    """Row store over a single SQLite table of versioned cells.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    table_name:
        Name of the cell table holding the model repository.
    busy_timeout:
        Seconds a writer waits for the database lock before failing.
    """

    def __init__(self, db_path: Path, table_name: str = "model_repo", busy_timeout: float = 30.0) -> None:
        if not _TABLE_NAME_RE.match(table_name):
            raise ValueError(f"Invalid table name: {table_name!r}")
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._table = table_name
        self._timeout = busy_timeout
        self._init_schema()

    @property
    def table_name(self) -> str:
        return self._table

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _open(self) -> sqlite3.Connection:
        return sqlite3.connect(
            str(self._db_path),
            timeout=self._timeout,
            isolation_level=None,
            check_same_thread=False,
        )

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = self._open()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _write_transaction(self) -> Iterator[sqlite3.Connection]:
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(_CREATE_META)

    # ------------------------------------------------------------------
    # Table lifecycle and metadata
    # ------------------------------------------------------------------

    def table_exists(self) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
                (self._table,),
            ).fetchone()
        return row is not None

    def create_table(self) -> None:
        with self._write_transaction() as conn:
            conn.execute(_CREATE_CELLS.format(table=self._table))
            conn.execute(_CREATE_IDX_KEY.format(table=self._table))
        logger.info("Created table '%s' in %s.", self._table, self._db_path)

    def drop_table(self) -> None:
        with self._write_transaction() as conn:
            conn.execute(f"DROP TABLE IF EXISTS {self._table}")
            conn.execute("DELETE FROM repo_meta WHERE table_name = ?", (self._table,))
        logger.info("Dropped table '%s' and its metadata.", self._table)

    def get_meta(self, meta_key: str) -> str | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT meta_value FROM repo_meta WHERE table_name = ? AND meta_key = ?",
                (self._table, meta_key),
            ).fetchone()
        return row[0] if row else None

    def put_meta(self, meta_key: str, meta_value: str) -> None:
        with self._write_transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO repo_meta (table_name, meta_key, meta_value) VALUES (?, ?, ?)",
                (self._table, meta_key, meta_value),
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(
        self,
        key: RowKey,
        fields: Iterable[str] | None = None,
        max_versions: int | None = 1,
    ) -> Row | None:
        field_clause, field_params = _field_filter(fields)
        with self._connect() as conn:
            records = conn.execute(
                f"SELECT field, value_json, written_at FROM {self._table} "
                f"WHERE name = ? AND version = ?{field_clause} "
                "ORDER BY field, id DESC",
                (key.name, key.version, *field_params),
            ).fetchall()
        if not records:
            return None
        return Row(key=key, cells=_group_cells(records, max_versions))

    def scan(
        self,
        fields: Iterable[str] | None = None,
        max_versions: int | None = 1,
    ) -> RowScanner:
        field_clause, field_params = _field_filter(fields)
        where = f" WHERE {field_clause[len(' AND '):]}" if field_clause else ""
        conn = self._open()
        try:
            cursor = conn.execute(
                f"SELECT name, version, field, value_json, written_at FROM {self._table}"
                f"{where} ORDER BY name, version, field, id DESC",
                field_params,
            )
        except BaseException:
            conn.close()
            raise
        return RowScanner(conn, cursor, max_versions)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def begin(self, key: RowKey) -> ConditionalPut:
        return ConditionalPut(self, key)

    def put(self, key: RowKey, field: str, value: Any) -> None:
        with self._write_transaction() as conn:
            self._insert_cells(conn, key, [(field, value)])

    def delete_row(self, key: RowKey) -> None:
        with self._write_transaction() as conn:
            conn.execute(
                f"DELETE FROM {self._table} WHERE name = ? AND version = ?",
                (key.name, key.version),
            )
        logger.debug("Deleted row %s/%s.", key.name, key.version)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _most_recent_value(self, conn: sqlite3.Connection, key: RowKey, field: str) -> Any:
        row = conn.execute(
            f"SELECT value_json FROM {self._table} "
            "WHERE name = ? AND version = ? AND field = ? ORDER BY id DESC LIMIT 1",
            (key.name, key.version, field),
        ).fetchone()
        return json.loads(row[0]) if row else _MISSING

    def _insert_cells(
        self,
        conn: sqlite3.Connection,
        key: RowKey,
        cells: list[tuple[str, Any]],
    ) -> None:
        written_at = datetime.now(timezone.utc).isoformat()
        conn.executemany(
            f"INSERT INTO {self._table} (name, version, field, value_json, written_at) "
            "VALUES (?, ?, ?, ?, ?)",
            [(key.name, key.version, field, canonical_json(value), written_at) for field, value in cells],
        )


def _field_filter(fields: Iterable[str] | None) -> tuple[str, tuple[str, ...]]:
    if fields is None:
        return "", ()
    wanted = tuple(sorted(set(fields)))
    if not wanted:
        return "", ()
    placeholders = ", ".join("?" for _ in wanted)
    return f" AND field IN ({placeholders})", wanted


def _group_cells(
    records: Iterable[tuple[str, str, str]],
    max_versions: int | None,
) -> dict[str, list[Cell]]:
    """Group ``(field, value_json, written_at)`` tuples, newest first per field."""
    cells: dict[str, list[Cell]] = {}
    for field, value_json, written_at in records:
        bucket = cells.setdefault(field, [])
        if max_versions is not None and len(bucket) >= max_versions:
            continue
        bucket.append(Cell(value=json.loads(value_json), written_at=datetime.fromisoformat(written_at)))
    return cells
