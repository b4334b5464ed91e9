# src/cache/cache_factory.py - v3
"""Factory and resolver for cache store instantiation.

The backend is chosen once, when the store is built. ``detect_backend`` looks
at marker files in a cache directory (SQLite wins over JSON when both exist);
``create_cache_store`` builds the store for an explicit selector.
"""

from __future__ import annotations

import logging
from pathlib import Path

from promptcache.cache.base_cache_store import BaseCacheStore
from promptcache.cache.errors import UnsupportedBackendError
from promptcache.cache.json_store import INDEX_FILE, JsonCacheStore
from promptcache.cache.sqlite_store import DB_FILE, SqliteCacheStore
from promptcache.config.settings import Settings

logger = logging.getLogger(__name__)

BACKENDS = ("json", "sqlite", "redis")


def detect_backend(cache_root: Path | str) -> str | None:
    """Return the backend governing ``cache_root``, or None if uninitialized."""
    root = Path(cache_root).expanduser()
    if (root / DB_FILE).exists():
        return "sqlite"
    if (root / INDEX_FILE).exists():
        return "json"
    return None


def create_cache_store(
    cache_root: Path | str | None = None,
    backend: str | None = None,
    settings: Settings | None = None,
) -> BaseCacheStore:
    """Instantiate a cache backend.

    Args:
        cache_root: Cache directory. Defaults to ``settings.cache_root``.
        backend: Backend selector. Defaults to ``settings.cache_backend``,
            then to JSON.
        settings: Application settings used for the defaults above.

    Returns:
        Configured BaseCacheStore implementation.

    Raises:
        UnsupportedBackendError: If the selector has no implementation.
    """
    if backend is None:
        backend = "json" if settings is None else settings.cache_backend
    if cache_root is None:
        cache_root = ".promptcache" if settings is None else settings.cache_root

    if backend == "json":
        return JsonCacheStore(cache_root=cache_root)

    if backend == "sqlite":
        return SqliteCacheStore(cache_root=cache_root)

    if backend == "redis":
        raise UnsupportedBackendError("Redis backend not yet implemented")

    raise UnsupportedBackendError(f"Unsupported cache backend: {backend!r}")


def open_cache_store(cache_root: Path | str) -> BaseCacheStore | None:
    """Build the store for an existing cache directory, None if uninitialized."""
    backend = detect_backend(cache_root)
    if backend is None:
        logger.debug("No cache found at %s", cache_root)
        return None
    return create_cache_store(cache_root, backend)
