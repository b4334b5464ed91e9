# src/cache/sqlite_store.py - v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3, no external dependency. Rows are updated individually
instead of rewriting the whole cache, and list filtering/ordering runs in SQL.
The database file ``cache.db`` doubles as the backend marker, so the
connection is opened lazily and never creates the file outside ``init()``.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from promptcache.cache.base_cache_store import (
    NOT_INITIALIZED,
    BaseCacheStore,
    check_import_strategy,
    coerce_snapshot,
    should_import,
)
from promptcache.cache.models import (
    CacheEntry,
    CacheSnapshot,
    CacheStats,
    ClearResult,
    ImportResult,
    InitResult,
    ListOptions,
    SnapshotMeta,
    WriteResult,
    cutoff_for,
    utcnow,
)

logger = logging.getLogger(__name__)

DB_FILE = "cache.db"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS entries (
    hash TEXT PRIMARY KEY,
    prompt TEXT NOT NULL,
    response TEXT NOT NULL,
    model TEXT NOT NULL DEFAULT 'default',
    created TEXT NOT NULL,
    expires TEXT,
    hits INTEGER NOT NULL DEFAULT 0,
    tokens INTEGER NOT NULL DEFAULT 0,
    tags TEXT
);
CREATE TABLE IF NOT EXISTS stats (
    key TEXT PRIMARY KEY,
    value TEXT
);
CREATE INDEX IF NOT EXISTS idx_model ON entries(model);
CREATE INDEX IF NOT EXISTS idx_created ON entries(created);
"""

_UPSERT = """INSERT OR REPLACE INTO entries
    (hash, prompt, response, model, created, expires, hits, tokens, tags)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)"""

# Entry count is always COUNT(*); only cumulative counters live in `stats`.
_STAT_KEYS = {"total_hits": "totalHits", "total_saved": "totalSaved"}


def _format_ts(value: datetime) -> str:
    """Fixed-width ISO timestamp so text comparison matches time order."""
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _check_schema(conn: sqlite3.Connection) -> None:
    conn.execute("SELECT 1 FROM entries LIMIT 1").fetchall()
    conn.execute("SELECT 1 FROM stats LIMIT 1").fetchall()


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store for larger caches."""

    backend = "sqlite"
    marker_name = DB_FILE

    def __init__(self, cache_root: Path | str) -> None:
        super().__init__(cache_root)
        self._db_path = self._root / DB_FILE
        self._conn: sqlite3.Connection | None = None

    def init(self) -> InitResult:
        """Create the database file, tables and initial stats rows."""
        if self._db_path.exists():
            return InitResult(
                success=False,
                already_exists=True,
                path=str(self._root),
                backend=self.backend,
                message="Cache already exists",
            )
        self._root.mkdir(parents=True, exist_ok=True)
        conn = self._open()
        with conn:
            conn.executescript(_SCHEMA)
            conn.executemany(
                "INSERT OR IGNORE INTO stats (key, value) VALUES (?, ?)",
                [
                    ("totalHits", "0"),
                    ("totalSaved", "0"),
                    ("created", _format_ts(utcnow())),
                ],
            )
        logger.info("Initialized SQLite cache at %s", self._db_path)
        return InitResult(success=True, path=str(self._root), backend=self.backend)

    def is_initialized(self) -> bool:
        conn = self._connect()
        if conn is None:
            return False
        try:
            _check_schema(conn)
        except sqlite3.DatabaseError as e:
            logger.warning("Unreadable cache database %s: %s", self._db_path, e)
            return False
        return True

    def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by hash."""
        rows = self._read("SELECT * FROM entries WHERE hash = ?", (key,))
        if not rows:
            return None
        return self._row_to_entry(rows[0])

    def set(self, key: str, entry: CacheEntry) -> WriteResult:
        """Upsert a single row."""
        conn = self._writer()
        if conn is None:
            return WriteResult(success=False, error=NOT_INITIALIZED)
        with conn:
            exists = conn.execute(
                "SELECT 1 FROM entries WHERE hash = ?", (key,)
            ).fetchone()
            conn.execute(_UPSERT, self._entry_params(key, entry))
        return WriteResult(success=True, is_new=exists is None)

    def delete(self, key: str) -> bool:
        """Remove a cache entry."""
        conn = self._writer()
        if conn is None:
            return False
        with conn:
            cursor = conn.execute("DELETE FROM entries WHERE hash = ?", (key,))
        return cursor.rowcount > 0

    def list_entries(self, options: ListOptions | None = None) -> list[CacheEntry]:
        """List entries; filter, order and limit are applied in SQL."""
        options = options or ListOptions()
        sql = "SELECT * FROM entries"
        params: list[Any] = []

        if options.model:
            sql += " WHERE model = ?"
            params.append(options.model)

        if options.sort == "hits":
            sql += " ORDER BY hits DESC, created DESC"
        else:
            sql += " ORDER BY created DESC"

        if options.limit:
            sql += " LIMIT ?"
            params.append(options.limit)

        entries: list[CacheEntry] = []
        for row in self._read(sql, tuple(params)):
            entry = self._row_to_entry(row)
            if entry is not None:
                entries.append(entry)
        return entries

    def get_stats(self) -> CacheStats | None:
        conn = self._connect()
        if conn is None:
            return None
        try:
            count = conn.execute("SELECT COUNT(*) FROM entries").fetchone()[0]
            counters = self._read_counters(conn)
        except sqlite3.DatabaseError as e:
            logger.warning("Failed to read stats from %s: %s", self._db_path, e)
            return None
        try:
            size = self._db_path.stat().st_size
        except OSError:
            size = 0
        return CacheStats(total_entries=count, cache_size=size, **counters)

    def update_stats(self, **fields: int) -> None:
        self._check_stat_fields(fields)
        conn = self._writer()
        if conn is None:
            return
        rows = [
            (_STAT_KEYS[name], str(int(value)))
            for name, value in fields.items()
            if name in _STAT_KEYS
        ]
        with conn:
            conn.executemany(
                "INSERT OR REPLACE INTO stats (key, value) VALUES (?, ?)", rows
            )

    def clear(self, older_than_days: int | None = None) -> ClearResult:
        """Remove all entries, or only those older than the cutoff."""
        conn = self._writer()
        if conn is None:
            return ClearResult(success=False, message=NOT_INITIALIZED)

        with conn:
            if older_than_days is not None:
                cutoff = _format_ts(cutoff_for(older_than_days))
                cursor = conn.execute("DELETE FROM entries WHERE created < ?", (cutoff,))
                removed = cursor.rowcount
            else:
                removed = conn.execute("SELECT COUNT(*) FROM entries").fetchone()[0]
                conn.execute("DELETE FROM entries")
                conn.executemany(
                    "INSERT OR REPLACE INTO stats (key, value) VALUES (?, ?)",
                    [(key, "0") for key in _STAT_KEYS.values()],
                )

        logger.info("Cleared %d entries from %s", removed, self._db_path)
        return ClearResult(success=True, removed=removed)

    def export_data(self) -> CacheSnapshot | None:
        stats = self.get_stats()
        if stats is None:
            return None
        entries = {e.hash: e for e in self.list_entries()}
        rows = self._read("SELECT value FROM stats WHERE key = 'created'")
        meta = SnapshotMeta(backend="sqlite")
        if rows and rows[0]["value"]:
            meta = SnapshotMeta(backend="sqlite", created=rows[0]["value"])
        return CacheSnapshot(entries=entries, stats=stats, meta=meta)

    def import_data(
        self,
        snapshot: CacheSnapshot | dict[str, Any],
        strategy: str = "merge",
    ) -> ImportResult:
        """Merge entries from a snapshot inside one transaction."""
        resolved = check_import_strategy(strategy)
        incoming = coerce_snapshot(snapshot)
        conn = self._writer()
        if conn is None:
            return ImportResult(success=False, message=NOT_INITIALIZED)

        imported = skipped = 0
        with conn:
            for key, entry in incoming.entries.items():
                exists = conn.execute(
                    "SELECT 1 FROM entries WHERE hash = ?", (key,)
                ).fetchone()
                if should_import(resolved, exists is not None):
                    conn.execute(_UPSERT, self._entry_params(key, entry))
                    imported += 1
                else:
                    skipped += 1

        logger.info(
            "Imported %d entries (%d skipped, strategy=%s)", imported, skipped, resolved
        )
        return ImportResult(success=True, imported=imported, skipped=skipped)

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _connect(self) -> sqlite3.Connection | None:
        """Open the connection; None when the database file does not exist."""
        if self._conn is None and not self._db_path.exists():
            return None
        return self._open()

    def _open(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(str(self._db_path))
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _writer(self) -> sqlite3.Connection | None:
        """Connection for a mutation; None when the database is missing or not a cache.

        A damaged file or missing tables read as uninitialized. Any other
        operational error (locked, read-only, disk I/O) propagates.
        """
        conn = self._connect()
        if conn is None:
            return None
        try:
            _check_schema(conn)
        except sqlite3.OperationalError as e:
            if not str(e).startswith("no such table"):
                raise
            logger.warning("Cache database %s has no cache tables: %s", self._db_path, e)
            return None
        except sqlite3.DatabaseError as e:
            logger.warning("Unreadable cache database %s: %s", self._db_path, e)
            return None
        return conn

    def _read(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        """Run a read query; a missing or corrupt database yields no rows."""
        conn = self._connect()
        if conn is None:
            return []
        try:
            return conn.execute(sql, params).fetchall()
        except sqlite3.DatabaseError as e:
            logger.warning("Failed to query cache database %s: %s", self._db_path, e)
            return []

    @staticmethod
    def _read_counters(conn: sqlite3.Connection) -> dict[str, int]:
        rows = conn.execute("SELECT key, value FROM stats").fetchall()
        values = {row["key"]: row["value"] for row in rows}
        counters: dict[str, int] = {}
        for field, key in _STAT_KEYS.items():
            try:
                counters[field] = int(values.get(key) or 0)
            except ValueError:
                counters[field] = 0
        return counters

    @staticmethod
    def _entry_params(key: str, entry: CacheEntry) -> tuple[Any, ...]:
        return (
            key,
            entry.prompt,
            entry.response,
            entry.model,
            _format_ts(entry.created),
            _format_ts(entry.expires) if entry.expires else None,
            entry.hits,
            entry.tokens,
            json.dumps(entry.tags) if entry.tags else None,
        )

    def _row_to_entry(self, row: sqlite3.Row) -> CacheEntry | None:
        try:
            return CacheEntry(
                hash=row["hash"],
                prompt=row["prompt"],
                response=row["response"],
                model=row["model"],
                created=row["created"],
                expires=row["expires"],
                hits=row["hits"],
                tokens=row["tokens"],
                tags=json.loads(row["tags"]) if row["tags"] else None,
            )
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Skipping unreadable row %s: %s", row["hash"], e)
            return None
