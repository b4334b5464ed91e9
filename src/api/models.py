# src/api/models.py - v2
"""API-level models returned by the PromptCache facade."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

PREVIEW_LENGTH = 50


def preview(text: str, length: int = PREVIEW_LENGTH) -> str:
    """Truncate text for listings, marking the cut with an ellipsis."""
    if len(text) <= length:
        return text
    return text[:length] + "..."


class SetOutcome(BaseModel):
    """Result of ``PromptCache.set``.

    ``limit_exceeded`` is set instead of a generic failure when a free-tier
    ceiling blocked the write, so callers can offer an upgrade.
    """

    success: bool
    hash: str | None = None
    is_new: bool = False
    tokens: int = 0
    limit_exceeded: bool = False
    skipped_features: list[str] = Field(default_factory=list)
    message: str | None = None


class CacheHit(BaseModel):
    """A cached response returned by ``PromptCache.get``."""

    response: str
    model: str
    hits: int
    created: datetime
    tokens: int


class EntrySummary(BaseModel):
    """One row of a listing or substring search."""

    hash: str
    model: str
    hits: int
    prompt: str
    created: datetime
    tokens: int = 0
    tags: list[str] | None = None


class CacheReport(BaseModel):
    """Human-facing statistics for a cache directory."""

    entries: int
    total_hits: int
    tokens_saved: int
    cache_size: int
    backend: str
    oldest_entry: datetime | None = None
    newest_entry: datetime | None = None
