# tests/unit/core/test_models.py - v2
"""Tests for core/models.py: similarity result models."""

from __future__ import annotations

from datetime import datetime, timezone

from promptcache.core.models import SimilarMatch, SimilaritySearchResult


class TestSimilaritySearchResult:
    def test_defaults(self):
        r = SimilaritySearchResult()
        assert r.results == []
        assert r.total == 0
        assert r.pro_required is False

    def test_pro_required_marker(self):
        r = SimilaritySearchResult(pro_required=True)
        assert r.pro_required
        assert r.results == []

    def test_match(self):
        m = SimilarMatch(
            hash="abc123def456",
            prompt="p",
            response="r",
            model="default",
            hits=0,
            created=datetime(2024, 1, 1, tzinfo=timezone.utc),
            similarity=0.42,
        )
        r = SimilaritySearchResult(results=[m], total=3)
        assert r.model_dump()["results"][0]["similarity"] == 0.42
        assert r.total == 3
