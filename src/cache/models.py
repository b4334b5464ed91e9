# src/cache/models.py - v1
"""Cache domain models: CacheEntry, CacheStats, CacheSnapshot and store results.

The snapshot model doubles as the on-disk document of the JSON backend and
as the backend-agnostic export/import interchange format.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

DEFAULT_MODEL = "default"

BackendName = Literal["json", "sqlite"]
ImportStrategy = Literal["replace", "merge", "skip-existing"]
SortKey = Literal["created", "hits"]


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def estimate_tokens(text: str) -> int:
    """Rough token estimate: one token per four characters."""
    return math.ceil(len(text) / 4)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CacheEntry(BaseModel):
    """One cached prompt/response pair."""

    hash: str = ""
    prompt: str
    response: str
    model: str = DEFAULT_MODEL
    created: datetime = Field(default_factory=utcnow)
    hits: int = Field(default=0, ge=0)
    tokens: int = Field(default=0, ge=0)
    expires: datetime | None = None
    tags: list[str] | None = None

    @model_validator(mode="before")
    @classmethod
    def _default_tokens(cls, data: Any) -> Any:
        if (
            isinstance(data, dict)
            and not data.get("tokens")
            and isinstance(data.get("response"), str)
        ):
            data = {**data, "tokens": estimate_tokens(data["response"])}
        return data

    @field_validator("created", "expires")
    @classmethod
    def _normalize_timezone(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        seen: dict[str, None] = {}
        for tag in v:
            tag = tag.strip()
            if tag:
                seen.setdefault(tag, None)
        return list(seen)

    def is_expired(self, now: datetime | None = None) -> bool:
        """True when an expiry is set and lies in the past."""
        if self.expires is None:
            return False
        return self.expires < (now or utcnow())

    def to_record(self) -> dict[str, Any]:
        """Snapshot representation (the hash is the mapping key, not a field)."""
        return self.model_dump(mode="json", exclude={"hash"}, exclude_none=True)


class CacheStats(BaseModel):
    """Aggregate counters kept alongside the entries."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_entries: int = 0
    total_hits: int = 0
    total_saved: int = 0
    cache_size: int = 0


class SnapshotMeta(BaseModel):
    """Backend metadata carried by a snapshot."""

    backend: BackendName
    created: datetime = Field(default_factory=utcnow)

    @field_validator("created")
    @classmethod
    def _normalize_timezone(cls, v: datetime) -> datetime:
        return _as_utc(v)  # type: ignore[return-value]


class CacheSnapshot(BaseModel):
    """Full cache contents: entries by hash, stats and metadata."""

    entries: dict[str, CacheEntry] = Field(default_factory=dict)
    stats: CacheStats = Field(default_factory=CacheStats)
    meta: SnapshotMeta | None = None

    @model_validator(mode="after")
    def _attach_hashes(self) -> CacheSnapshot:
        for key, entry in self.entries.items():
            entry.hash = key
        return self

    def to_document(self, include_size: bool = True) -> dict[str, Any]:
        """Plain JSON-ready dict in the interchange layout."""
        stats_exclude = None if include_size else {"cache_size"}
        document: dict[str, Any] = {
            "entries": {key: e.to_record() for key, e in self.entries.items()},
            "stats": self.stats.model_dump(by_alias=True, exclude=stats_exclude),
        }
        if self.meta is not None:
            document["meta"] = self.meta.model_dump(mode="json")
        return document


class ListOptions(BaseModel):
    """Filtering, ordering and capping for ``list_entries``."""

    model: str | None = None
    sort: SortKey = "created"
    limit: int | None = Field(default=None, ge=1)


class InitResult(BaseModel):
    """Outcome of ``init()``; ``already_exists`` is informational, not an error."""

    success: bool
    already_exists: bool = False
    path: str | None = None
    backend: str | None = None
    message: str | None = None


class WriteResult(BaseModel):
    """Outcome of a single upsert."""

    success: bool
    is_new: bool = False
    error: str | None = None


class ClearResult(BaseModel):
    success: bool
    removed: int = 0
    message: str | None = None


class ImportResult(BaseModel):
    success: bool
    imported: int = 0
    skipped: int = 0
    message: str | None = None


def cutoff_for(days: int, now: datetime | None = None) -> datetime:
    """Creation-time boundary for ``clear(older_than_days=days)``."""
    return (now or utcnow()) - timedelta(days=days)
