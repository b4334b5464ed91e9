# src/api/facade.py - v2
"""Public API facade: hashing, limits, TTL and orchestration over a cache store.

Usage:
    from promptcache.api.facade import PromptCache
    cache = PromptCache(".promptcache")
    cache.init()
    cache.set("What is TF-IDF?", "A weighting scheme...", model="gpt-4o")
    hit = cache.get("What is TF-IDF?", model="gpt-4o")

The backend is resolved from marker files on every call, so a facade never
holds a stale store. PRO/FREE decisions go through the injected
``EntitlementProvider``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import timedelta
from pathlib import Path
from typing import Any

from promptcache.api.models import CacheHit, CacheReport, EntrySummary, SetOutcome, preview
from promptcache.cache.base_cache_store import (
    NOT_INITIALIZED,
    BaseCacheStore,
    check_import_strategy,
)
from promptcache.cache.cache_factory import create_cache_store, detect_backend, open_cache_store
from promptcache.cache.fingerprint import hash_prompt, parse_days, parse_ttl
from promptcache.cache.models import (
    CacheEntry,
    CacheSnapshot,
    ClearResult,
    ImportResult,
    InitResult,
    ListOptions,
    SortKey,
    utcnow,
)
from promptcache.config.settings import Settings
from promptcache.core.models import SimilarMatch, SimilaritySearchResult
from promptcache.core.similarity import find_similar, get_best_match
from promptcache.license.entitlement import EntitlementProvider, LicenseFileEntitlement
from promptcache.license.limits import (
    FreeLimits,
    LimitStatus,
    can_add_entry,
    check_response_size,
    get_limit_status,
)
from promptcache.logging.context import set_cache_context, set_operation_context
from promptcache.tracking.cost_calculator import calculate_total_savings, format_cost_report
from promptcache.tracking.models import CostReport

logger = logging.getLogger(__name__)


class PromptCache:
    """Prompt/response cache bound to one directory."""

    def __init__(
        self,
        cache_root: Path | str | None = None,
        entitlement: EntitlementProvider | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or Settings()
        root = cache_root if cache_root is not None else self._settings.cache_root
        self._root = Path(root).expanduser()
        self._entitlement = entitlement or LicenseFileEntitlement(
            self._settings.license_file
        )
        self._limits = FreeLimits(
            max_entries=self._settings.free_max_entries,
            max_response_size=self._settings.free_max_response_size,
        )

    @property
    def path(self) -> Path:
        return self._root

    @property
    def backend(self) -> str | None:
        """Backend detected on disk, None when uninitialized."""
        return detect_backend(self._root)

    def hash(self, prompt: str, model: str | None = None) -> str:
        return hash_prompt(prompt, model or self._settings.default_model)

    # --- lifecycle ---

    def init(self, backend: str | None = None) -> InitResult:
        """Create a cache in the bound directory.

        Raises:
            UnsupportedBackendError: If ``backend`` has no implementation.
        """
        backend = backend or self._settings.cache_backend
        store = create_cache_store(self._root, backend)

        existing = detect_backend(self._root)
        if existing is not None:
            return InitResult(
                success=False,
                already_exists=True,
                path=str(self._root),
                backend=existing,
                message="Cache already exists",
            )

        if backend != "json" and not self._entitlement.is_pro():
            return InitResult(
                success=False, backend=backend,
                message=f"{backend} backend is a PRO feature",
            )

        with store:
            return store.init()

    # --- entries ---

    def set(
        self,
        prompt: str,
        response: str,
        model: str | None = None,
        tokens: int | None = None,
        ttl: str | None = None,
        tags: list[str] | None = None,
    ) -> SetOutcome:
        """Cache ``response`` for (model, prompt).

        Raises:
            InvalidTTLError: If ``ttl`` is malformed.
        """
        model = model or self._settings.default_model
        ttl_ms = parse_ttl(ttl) if ttl is not None else None
        is_pro = self._entitlement.is_pro()

        skipped: list[str] = []
        expires = None
        if ttl_ms is not None:
            if is_pro:
                expires = utcnow() + timedelta(milliseconds=ttl_ms)
            else:
                skipped.append("ttl")
        if tags and not is_pro:
            skipped.append("tags")
            tags = None

        with self._session("set") as store:
            if store is None:
                return SetOutcome(success=False, message=NOT_INITIALIZED)

            stats = store.get_stats()
            entry_check = can_add_entry(
                stats.total_entries if stats else 0, self._entitlement, self._limits
            )
            if not entry_check.allowed:
                return SetOutcome(
                    success=False, limit_exceeded=True, message=entry_check.reason
                )

            size_check = check_response_size(
                len(response.encode("utf-8")), self._entitlement, self._limits
            )
            if not size_check.allowed:
                return SetOutcome(
                    success=False, limit_exceeded=True, message=size_check.reason
                )

            key = hash_prompt(prompt, model)
            entry = CacheEntry(
                hash=key,
                prompt=prompt,
                response=response,
                model=model,
                tokens=tokens,
                expires=expires,
                tags=tags or None,
            )
            result = store.set(key, entry)
            if not result.success:
                return SetOutcome(success=False, message=result.error)

            logger.debug("Stored %s (new=%s)", key, result.is_new)
            return SetOutcome(
                success=True,
                hash=key,
                is_new=result.is_new,
                tokens=entry.tokens,
                skipped_features=skipped,
            )

    def get(self, prompt: str, model: str | None = None) -> CacheHit | None:
        """Return the cached response and count the hit; None on miss or expiry."""
        model = model or self._settings.default_model
        key = hash_prompt(prompt, model)

        with self._session("get") as store:
            if store is None:
                return None
            entry = store.get(key)
            if entry is None:
                return None

            if entry.is_expired():
                store.delete(key)
                logger.debug("Entry %s expired, removed", key)
                return None

            entry = entry.model_copy(update={"hits": entry.hits + 1})
            store.set(key, entry)

            stats = store.get_stats()
            if stats is not None:
                store.update_stats(
                    total_hits=stats.total_hits + 1,
                    total_saved=stats.total_saved + len(entry.response.encode("utf-8")),
                )

            return CacheHit(
                response=entry.response,
                model=entry.model,
                hits=entry.hits,
                created=entry.created,
                tokens=entry.tokens,
            )

    def delete(self, prompt: str, model: str | None = None) -> bool:
        key = self.hash(prompt, model)
        with self._session("delete") as store:
            return store is not None and store.delete(key)

    def list(
        self,
        model: str | None = None,
        sort: SortKey = "created",
        limit: int | None = None,
    ) -> list[EntrySummary]:
        """List entries with prompt previews."""
        options = ListOptions(model=model, sort=sort, limit=limit)
        with self._session("list") as store:
            if store is None:
                return []
            return [_summarize(e) for e in store.list_entries(options)]

    def search(self, query: str) -> list[EntrySummary]:
        """Case-insensitive substring match on prompts."""
        needle = query.lower()
        with self._session("search") as store:
            if store is None:
                return []
            return [
                _summarize(e)
                for e in store.list_entries()
                if needle in e.prompt.lower()
            ]

    def stats(self) -> CacheReport | None:
        with self._session("stats") as store:
            if store is None:
                return None
            stats = store.get_stats()
            if stats is None:
                return None
            created = [e.created for e in store.list_entries()]
            return CacheReport(
                entries=stats.total_entries,
                total_hits=stats.total_hits,
                tokens_saved=round(stats.total_saved / 4),
                cache_size=stats.cache_size,
                backend=store.backend,
                oldest_entry=min(created) if created else None,
                newest_entry=max(created) if created else None,
            )

    def clear(self, older_than: str | int | None = None) -> ClearResult:
        """Remove every entry, or those older than ``older_than`` days."""
        days = parse_days(older_than) if older_than is not None else None
        with self._session("clear") as store:
            if store is None:
                return ClearResult(success=False, message=NOT_INITIALIZED)
            return store.clear(older_than_days=days)

    # --- interchange ---

    def export_data(self) -> CacheSnapshot | None:
        with self._session("export") as store:
            return None if store is None else store.export_data()

    def import_data(
        self, snapshot: CacheSnapshot | dict[str, Any], strategy: str = "merge"
    ) -> ImportResult:
        """Merge a snapshot into this cache.

        Raises:
            InvalidImportStrategyError: If ``strategy`` is unknown.
        """
        check_import_strategy(strategy)
        with self._session("import") as store:
            if store is None:
                return ImportResult(success=False, message=NOT_INITIALIZED)
            return store.import_data(snapshot, strategy)

    # --- PRO features ---

    def find_similar(
        self,
        query: str,
        threshold: float | None = None,
        limit: int | None = None,
    ) -> SimilaritySearchResult:
        if not self._entitlement.is_pro():
            return SimilaritySearchResult(pro_required=True)
        threshold = self._settings.similarity_threshold if threshold is None else threshold
        limit = self._settings.similarity_limit if limit is None else limit
        with self._session("similar") as store:
            if store is None:
                return SimilaritySearchResult()
            return find_similar(query, store, threshold=threshold, limit=limit)

    def best_match(
        self, query: str, min_similarity: float | None = None
    ) -> SimilarMatch | None:
        if not self._entitlement.is_pro():
            return None
        if min_similarity is None:
            min_similarity = self._settings.best_match_threshold
        with self._session("best_match") as store:
            if store is None:
                return None
            return get_best_match(query, store, min_similarity=min_similarity)

    def cost_report(self) -> CostReport | None:
        """Savings per model; None when uninitialized."""
        if not self._entitlement.is_pro():
            return CostReport(pro_required=True)
        with self._session("cost") as store:
            if store is None:
                return None
            return format_cost_report(calculate_total_savings(store.list_entries()))

    def limit_status(self) -> LimitStatus:
        with self._session("limits") as store:
            stats = store.get_stats() if store is not None else None
            count = stats.total_entries if stats else 0
        return get_limit_status(count, self._entitlement, self._limits)

    @contextmanager
    def _session(self, operation: str) -> Iterator[BaseCacheStore | None]:
        """Open the store governing the directory for one operation."""
        set_operation_context(operation)
        store = open_cache_store(self._root)
        if store is not None:
            set_cache_context(str(self._root), store.backend)
        try:
            yield store
        finally:
            if store is not None:
                store.close()
            set_operation_context(None)


def _summarize(entry: CacheEntry) -> EntrySummary:
    return EntrySummary(
        hash=entry.hash,
        model=entry.model,
        hits=entry.hits,
        prompt=preview(entry.prompt),
        created=entry.created,
        tokens=entry.tokens,
        tags=entry.tags,
    )
