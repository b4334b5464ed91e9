# tests/conftest.py - v2
"""Shared test fixtures for all unit and integration tests.

Provides temp cache directories, initialized stores for both backends,
entitlement providers and isolated settings. Everything runs on the local
filesystem under pytest's ``tmp_path``.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from promptcache.api.facade import PromptCache
from promptcache.cache.base_cache_store import BaseCacheStore
from promptcache.cache.fingerprint import hash_prompt
from promptcache.cache.json_store import JsonCacheStore
from promptcache.cache.models import CacheEntry
from promptcache.cache.sqlite_store import SqliteCacheStore
from promptcache.config.settings import Settings
from promptcache.license.entitlement import StaticEntitlement
from promptcache.logging.context import clear_context


# === FIXTURES: Sample data ===


def _build_entry(
    prompt: str,
    response: str = "cached answer",
    model: str = "default",
    **kwargs: object,
) -> CacheEntry:
    """Build an entry whose hash matches its (model, prompt) pair."""
    return CacheEntry(
        hash=hash_prompt(prompt, model),
        prompt=prompt,
        response=response,
        model=model,
        **kwargs,  # type: ignore[arg-type]
    )


@pytest.fixture
def sample_entry() -> CacheEntry:
    return _build_entry(
        "What is TF-IDF?",
        "A term weighting scheme used in information retrieval.",
        model="gpt-4o",
    )


@pytest.fixture
def old_entry() -> CacheEntry:
    """Entry created ten days ago."""
    return _build_entry(
        "Explain SQLite indexes",
        "B-tree structures over one or more columns.",
        created=datetime.now(timezone.utc) - timedelta(days=10),
    )


@pytest.fixture
def make_entry():
    """Factory for entries keyed by their (model, prompt) hash."""
    return _build_entry


# === FIXTURES: Stores ===


@pytest.fixture
def tmp_cache_dir(tmp_path: Path) -> Path:
    """Not-yet-initialized cache directory."""
    return tmp_path / ".promptcache"


@pytest.fixture
def json_store(tmp_cache_dir: Path) -> Iterator[JsonCacheStore]:
    store = JsonCacheStore(tmp_cache_dir)
    store.init()
    yield store
    store.close()


@pytest.fixture
def sqlite_store(tmp_cache_dir: Path) -> Iterator[SqliteCacheStore]:
    store = SqliteCacheStore(tmp_cache_dir)
    store.init()
    yield store
    store.close()


@pytest.fixture(params=["json", "sqlite"])
def store(request: pytest.FixtureRequest, tmp_cache_dir: Path) -> Iterator[BaseCacheStore]:
    """Initialized store, once per backend."""
    cls = JsonCacheStore if request.param == "json" else SqliteCacheStore
    s = cls(tmp_cache_dir)
    s.init()
    yield s
    s.close()


# === FIXTURES: Facade ===


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from any .env file and real licence."""
    return Settings(
        _env_file=None,
        cache_root=tmp_path / ".promptcache",
        license_file=tmp_path / "license.json",
    )


@pytest.fixture
def free() -> StaticEntitlement:
    return StaticEntitlement(pro=False)


@pytest.fixture
def pro() -> StaticEntitlement:
    return StaticEntitlement(pro=True)


@pytest.fixture
def free_cache(settings: Settings, free: StaticEntitlement) -> PromptCache:
    cache = PromptCache(entitlement=free, settings=settings)
    cache.init()
    return cache


@pytest.fixture
def pro_cache(settings: Settings, pro: StaticEntitlement) -> PromptCache:
    cache = PromptCache(entitlement=pro, settings=settings)
    cache.init()
    return cache


@pytest.fixture(autouse=True)
def _reset_log_context() -> Iterator[None]:
    yield
    clear_context()
