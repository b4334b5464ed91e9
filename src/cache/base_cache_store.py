# src/cache/base_cache_store.py - v1
"""Abstract cache store interface.

Every backend exposes the same synchronous contract. Reads against a missing
or corrupt store behave as if the store was never initialized (None, empty
list, ``success=False``); mutations propagate I/O failures.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, get_args

from promptcache.cache.errors import InvalidImportStrategyError
from promptcache.cache.models import (
    BackendName,
    CacheEntry,
    CacheSnapshot,
    CacheStats,
    ClearResult,
    ImportResult,
    ImportStrategy,
    InitResult,
    ListOptions,
    WriteResult,
)

IMPORT_STRATEGIES: tuple[str, ...] = get_args(ImportStrategy)

NOT_INITIALIZED = "Cache not initialized"


def check_import_strategy(strategy: str) -> ImportStrategy:
    """Validate an import strategy name."""
    if strategy not in IMPORT_STRATEGIES:
        raise InvalidImportStrategyError(
            f"Unknown import strategy: {strategy!r}. "
            f"Expected one of: {', '.join(IMPORT_STRATEGIES)}"
        )
    return strategy  # type: ignore[return-value]


def should_import(strategy: ImportStrategy, exists: bool) -> bool:
    """Per-key import decision.

    ``merge`` and ``skip-existing`` are the same rule for a single source:
    insert only keys that are not present locally.
    """
    if strategy == "replace":
        return True
    return not exists


def coerce_snapshot(snapshot: CacheSnapshot | dict[str, Any]) -> CacheSnapshot:
    """Accept either a snapshot model or its plain-dict document."""
    if isinstance(snapshot, CacheSnapshot):
        return snapshot
    return CacheSnapshot.model_validate(snapshot)


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    backend: BackendName
    marker_name: str

    def __init__(self, cache_root: Path | str) -> None:
        self._root = Path(cache_root).expanduser()

    @property
    def cache_root(self) -> Path:
        return self._root

    @property
    def marker_path(self) -> Path:
        """File whose presence identifies this backend on disk."""
        return self._root / self.marker_name

    @abstractmethod
    def init(self) -> InitResult:
        """Create persisted structures if absent."""

    @abstractmethod
    def is_initialized(self) -> bool:
        """True when the persisted store exists and is readable."""

    @abstractmethod
    def get(self, key: str) -> CacheEntry | None:
        """Retrieve an entry by hash."""

    @abstractmethod
    def set(self, key: str, entry: CacheEntry) -> WriteResult:
        """Insert or overwrite an entry."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove an entry; True if one existed."""

    @abstractmethod
    def list_entries(self, options: ListOptions | None = None) -> list[CacheEntry]:
        """List entries, newest first unless sorted by hits."""

    @abstractmethod
    def get_stats(self) -> CacheStats | None:
        """Current aggregate counters, including on-disk size."""

    @abstractmethod
    def update_stats(self, **fields: int) -> None:
        """Merge-overwrite aggregate counters."""

    @abstractmethod
    def clear(self, older_than_days: int | None = None) -> ClearResult:
        """Remove all entries, or those created more than N days ago."""

    @abstractmethod
    def export_data(self) -> CacheSnapshot | None:
        """Snapshot of entries, stats and metadata."""

    @abstractmethod
    def import_data(
        self,
        snapshot: CacheSnapshot | dict[str, Any],
        strategy: str = "merge",
    ) -> ImportResult:
        """Merge entries from a snapshot."""

    def close(self) -> None:
        """Release held resources."""

    def __enter__(self) -> BaseCacheStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @staticmethod
    def _check_stat_fields(fields: dict[str, int]) -> None:
        allowed = {"total_entries", "total_hits", "total_saved"}
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"Unknown stats fields: {sorted(unknown)}")
