# src/cache/json_store.py - v2
"""JSON file-based cache store (default CACHE_BACKEND=json).

The whole cache lives in a single ``index.json`` document: entries by hash,
aggregate stats and backend metadata. Every mutation loads the document,
changes it in memory and rewrites it in full. A write interrupted halfway
leaves an unparsable document, which then reads as an uninitialized cache
instead of crashing callers. This whole-document rewrite is meant for
free-tier sized caches; use the SQLite backend beyond that.
"""

from __future__ import annotations

import json
import logging
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
)

logger = logging.getLogger(__name__)

INDEX_FILE = "index.json"


class JsonCacheStore(BaseCacheStore):
    """File-based cache store using a single JSON document."""

    backend = "json"
    marker_name = INDEX_FILE

    def __init__(self, cache_root: Path | str) -> None:
        super().__init__(cache_root)
        self._index = self._root / INDEX_FILE

    def init(self) -> InitResult:
        """Create the cache directory and an empty index document."""
        if self._index.exists():
            return InitResult(
                success=False,
                already_exists=True,
                path=str(self._root),
                backend=self.backend,
                message="Cache already exists",
            )
        self._root.mkdir(parents=True, exist_ok=True)
        self._save(CacheSnapshot(meta=SnapshotMeta(backend="json")))
        logger.info("Initialized JSON cache at %s", self._root)
        return InitResult(success=True, path=str(self._root), backend=self.backend)

    def is_initialized(self) -> bool:
        return self._load() is not None

    def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by hash."""
        data = self._load()
        if data is None:
            return None
        return data.entries.get(key)

    def set(self, key: str, entry: CacheEntry) -> WriteResult:
        """Store a cache entry, rewriting the whole document."""
        data = self._load(strict=True)
        if data is None:
            return WriteResult(success=False, error=NOT_INITIALIZED)

        is_new = key not in data.entries
        data.entries[key] = entry.model_copy(update={"hash": key})
        if is_new:
            data.stats.total_entries += 1

        self._save(data)
        return WriteResult(success=True, is_new=is_new)

    def delete(self, key: str) -> bool:
        """Remove a cache entry."""
        data = self._load(strict=True)
        if data is None or key not in data.entries:
            return False
        del data.entries[key]
        data.stats.total_entries = max(0, data.stats.total_entries - 1)
        self._save(data)
        return True

    def list_entries(self, options: ListOptions | None = None) -> list[CacheEntry]:
        """List entries with optional model filter, ordering and cap."""
        data = self._load()
        if data is None:
            return []

        options = options or ListOptions()
        entries = list(data.entries.values())
        if options.model:
            entries = [e for e in entries if e.model == options.model]

        if options.sort == "hits":
            entries.sort(key=lambda e: (e.hits, e.created), reverse=True)
        else:
            entries.sort(key=lambda e: e.created, reverse=True)

        if options.limit:
            entries = entries[: options.limit]
        return entries

    def get_stats(self) -> CacheStats | None:
        data = self._load()
        if data is None:
            return None
        try:
            size = self._index.stat().st_size
        except OSError:
            size = 0
        return data.stats.model_copy(update={"cache_size": size})

    def update_stats(self, **fields: int) -> None:
        self._check_stat_fields(fields)
        data = self._load(strict=True)
        if data is None:
            return
        data.stats = data.stats.model_copy(update=fields)
        self._save(data)

    def clear(self, older_than_days: int | None = None) -> ClearResult:
        """Remove all entries, or only those older than the cutoff."""
        data = self._load(strict=True)
        if data is None:
            return ClearResult(success=False, message=NOT_INITIALIZED)

        if older_than_days is not None:
            cutoff = cutoff_for(older_than_days)
            stale = [k for k, e in data.entries.items() if e.created < cutoff]
            for key in stale:
                del data.entries[key]
            removed = len(stale)
            data.stats.total_entries = max(0, data.stats.total_entries - removed)
        else:
            removed = len(data.entries)
            data.entries = {}
            data.stats = CacheStats()

        self._save(data)
        logger.info("Cleared %d entries from %s", removed, self._root)
        return ClearResult(success=True, removed=removed)

    def export_data(self) -> CacheSnapshot | None:
        data = self._load()
        if data is None:
            return None
        stats = self.get_stats() or data.stats
        return data.model_copy(update={"stats": stats})

    def import_data(
        self,
        snapshot: CacheSnapshot | dict[str, Any],
        strategy: str = "merge",
    ) -> ImportResult:
        """Merge entries from a snapshot according to ``strategy``."""
        resolved = check_import_strategy(strategy)
        incoming = coerce_snapshot(snapshot)
        data = self._load(strict=True)
        if data is None:
            return ImportResult(success=False, message=NOT_INITIALIZED)

        imported = skipped = 0
        for key, entry in incoming.entries.items():
            if should_import(resolved, key in data.entries):
                data.entries[key] = entry.model_copy(update={"hash": key})
                imported += 1
            else:
                skipped += 1

        data.stats.total_entries = len(data.entries)
        self._save(data)
        logger.info(
            "Imported %d entries (%d skipped, strategy=%s)", imported, skipped, resolved
        )
        return ImportResult(success=True, imported=imported, skipped=skipped)

    def _load(self, strict: bool = False) -> CacheSnapshot | None:
        """Read the index document; None when missing or unparsable.

        With ``strict`` (mutations), I/O errors such as a permission failure
        propagate. Reads treat them as an uninitialized cache.
        """
        if not self._index.exists():
            return None
        try:
            text = self._index.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            logger.warning("Failed to read cache index %s: %s", self._index, e)
            return None
        except OSError as e:
            if strict:
                raise
            logger.warning("Failed to read cache index %s: %s", self._index, e)
            return None
        try:
            return CacheSnapshot.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Failed to read cache index %s: %s", self._index, e)
            return None

    def _save(self, data: CacheSnapshot) -> None:
        document = data.to_document(include_size=False)
        self._index.write_text(json.dumps(document, indent=2), encoding="utf-8")
