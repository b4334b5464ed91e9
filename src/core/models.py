# src/core/models.py - v2
"""Similarity search result models shared by the engine, facade and CLI."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class SimilarMatch(BaseModel):
    """A cached entry ranked against a query."""

    hash: str
    prompt: str
    response: str
    model: str
    hits: int
    created: datetime
    similarity: float = Field(description="Cosine similarity rounded to 2 decimals")


class SimilaritySearchResult(BaseModel):
    """Ranked matches plus the match count before truncation."""

    results: list[SimilarMatch] = Field(default_factory=list)
    total: int = 0
    pro_required: bool = False
