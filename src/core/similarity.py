# src/core/similarity.py - v3
"""TF-IDF cosine similarity over cached prompts.

Classic bag-of-words vector space model, recomputed per query:

1. tokenize: lowercase, non-word characters become spaces, tokens of
   length <= 2 are dropped;
2. term frequency: occurrences divided by token count;
3. inverse document frequency: ``ln(N / df)`` over the candidate prompts plus
   the query itself, so a token present everywhere weighs 0;
4. cosine similarity between sparse TF-IDF vectors, 0 when either is empty.

``build_index`` memoises the entry vectors for repeated queries within a
session; it is an in-memory structure and is never persisted.
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

import numpy as np

from promptcache.cache.base_cache_store import BaseCacheStore
from promptcache.cache.models import CacheEntry, utcnow
from promptcache.core.models import SimilarMatch, SimilaritySearchResult

logger = logging.getLogger(__name__)

SparseVector = dict[str, float]

DEFAULT_THRESHOLD = 0.3
DEFAULT_LIMIT = 10
DEFAULT_BEST_MATCH = 0.8

_NON_WORD = re.compile(r"[^\w\s]")
_MIN_TOKEN_LENGTH = 3


def tokenize(text: str) -> list[str]:
    """Split text into lowercase word tokens of at least three characters."""
    cleaned = _NON_WORD.sub(" ", text.lower())
    return [t for t in cleaned.split() if len(t) >= _MIN_TOKEN_LENGTH]


def term_frequency(tokens: Sequence[str]) -> SparseVector:
    """Relative frequency of each distinct token."""
    total = len(tokens)
    if total == 0:
        return {}
    return {token: count / total for token, count in Counter(tokens).items()}


def inverse_document_frequency(documents: Sequence[Sequence[str]]) -> SparseVector:
    """``ln(total documents / documents containing token)`` per token."""
    num_docs = len(documents)
    doc_counts: Counter[str] = Counter()
    for doc in documents:
        doc_counts.update(set(doc))
    return {token: math.log(num_docs / count) for token, count in doc_counts.items()}


def tfidf_vector(tf: SparseVector, idf: SparseVector) -> SparseVector:
    """Weight term frequencies by IDF; unknown tokens weigh 0."""
    return {token: freq * idf.get(token, 0.0) for token, freq in tf.items()}


def cosine_similarity(v1: SparseVector, v2: SparseVector) -> float:
    """Cosine of the angle between two sparse vectors.

    Returns 0.0 when either vector has zero magnitude.
    """
    keys = sorted(v1.keys() | v2.keys())
    if not keys:
        return 0.0
    a = np.fromiter((v1.get(k, 0.0) for k in keys), dtype=np.float64, count=len(keys))
    b = np.fromiter((v2.get(k, 0.0) for k in keys), dtype=np.float64, count=len(keys))
    norm_a = float(np.linalg.norm(a))
    norm_b = float(np.linalg.norm(b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


def rank_entries(
    query: str,
    entries: Sequence[CacheEntry],
    threshold: float = DEFAULT_THRESHOLD,
    limit: int = DEFAULT_LIMIT,
) -> SimilaritySearchResult:
    """Rank entries by TF-IDF cosine similarity of their prompt to ``query``.

    Args:
        query: Free-text query.
        entries: Candidates, in the order used to break score ties.
        threshold: Minimum similarity (inclusive).
        limit: Maximum number of results returned.

    Returns:
        Matches sorted by descending similarity, and the total match count.
    """
    if not entries:
        return SimilaritySearchResult()

    query_tokens = tokenize(query)
    documents = [tokenize(e.prompt) for e in entries]
    idf = inverse_document_frequency([*documents, query_tokens])
    query_vector = tfidf_vector(term_frequency(query_tokens), idf)

    scores = [
        cosine_similarity(query_vector, tfidf_vector(term_frequency(doc), idf))
        for doc in documents
    ]
    return _collect(entries, scores, threshold, limit)


def find_similar(
    query: str,
    store: BaseCacheStore,
    threshold: float = DEFAULT_THRESHOLD,
    limit: int = DEFAULT_LIMIT,
) -> SimilaritySearchResult:
    """Rank every entry of ``store`` against ``query``."""
    return rank_entries(query, store.list_entries(), threshold=threshold, limit=limit)


def get_best_match(
    query: str,
    store: BaseCacheStore,
    min_similarity: float = DEFAULT_BEST_MATCH,
) -> SimilarMatch | None:
    """Top entry if it is similar enough to reuse, else None."""
    found = find_similar(query, store, threshold=min_similarity, limit=1)
    return found.results[0] if found.results else None


@dataclass
class SimilarityIndex:
    """Precomputed TF-IDF vectors for a fixed set of entries.

    IDF is computed over the indexed prompts only, so scores can differ
    slightly from ``find_similar``, which also counts the query document.
    """

    entries: list[CacheEntry]
    idf: SparseVector
    vectors: list[SparseVector]
    built: datetime = field(default_factory=utcnow)
    _vocabulary: dict[str, int] = field(init=False, repr=False)
    _matrix: np.ndarray = field(init=False, repr=False)
    _norms: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._vocabulary = {token: i for i, token in enumerate(sorted(self.idf))}
        self._matrix = np.zeros((len(self.vectors), len(self._vocabulary)))
        for row, vector in enumerate(self.vectors):
            for token, weight in vector.items():
                self._matrix[row, self._vocabulary[token]] = weight
        self._norms = np.linalg.norm(self._matrix, axis=1)

    @property
    def entry_count(self) -> int:
        return len(self.entries)

    def rank(
        self,
        query: str,
        threshold: float = DEFAULT_THRESHOLD,
        limit: int = DEFAULT_LIMIT,
    ) -> SimilaritySearchResult:
        """Score the query against every indexed entry in one matrix product."""
        if not self.entries:
            return SimilaritySearchResult()

        query_vector = tfidf_vector(term_frequency(tokenize(query)), self.idf)
        q = np.zeros(len(self._vocabulary))
        for token, weight in query_vector.items():
            if token in self._vocabulary:
                q[self._vocabulary[token]] = weight

        q_norm = float(np.linalg.norm(q))
        if q_norm == 0.0:
            scores = np.zeros(len(self.entries))
        else:
            denominators = self._norms * q_norm
            dots = self._matrix @ q
            scores = np.divide(
                dots, denominators, out=np.zeros_like(dots), where=denominators > 0
            )
        return _collect(self.entries, [float(s) for s in scores], threshold, limit)


def build_index(store: BaseCacheStore) -> SimilarityIndex:
    """Vectorise every entry of ``store`` for repeated in-session queries."""
    entries = store.list_entries()
    documents = [tokenize(e.prompt) for e in entries]
    idf = inverse_document_frequency(documents)
    vectors = [tfidf_vector(term_frequency(doc), idf) for doc in documents]
    logger.debug("Built similarity index over %d entries", len(entries))
    return SimilarityIndex(entries=entries, idf=idf, vectors=vectors)


def _collect(
    entries: Sequence[CacheEntry],
    scores: Sequence[float],
    threshold: float,
    limit: int,
) -> SimilaritySearchResult:
    """Filter by threshold, sort (stable) on raw scores, truncate, round."""
    matches = [(s, e) for s, e in zip(scores, entries) if s >= threshold]
    matches.sort(key=lambda m: m[0], reverse=True)
    results = [
        SimilarMatch(
            hash=entry.hash,
            prompt=entry.prompt,
            response=entry.response,
            model=entry.model,
            hits=entry.hits,
            created=entry.created,
            similarity=round(score, 2),
        )
        for score, entry in matches[:limit]
    ]
    return SimilaritySearchResult(results=results, total=len(matches))
