# src/cache/fingerprint.py - v1
"""Cache key fingerprinting and duration parsing.

The key is the first 12 hex characters of SHA-256 over ``"<model>:<prompt>"``.
It is case- and whitespace-sensitive on purpose: two prompts that differ only
in spacing are different cache keys.
"""

from __future__ import annotations

import hashlib
import re

from promptcache.cache.errors import CacheValidationError, InvalidTTLError
from promptcache.cache.models import DEFAULT_MODEL

HASH_LENGTH = 12

_TTL_PATTERN = re.compile(r"(\d+)(d|h|m|s)", re.ASCII)
_TTL_MULTIPLIERS_MS = {
    "d": 86_400_000,
    "h": 3_600_000,
    "m": 60_000,
    "s": 1_000,
}
_DAYS_PATTERN = re.compile(r"(\d+)d?", re.ASCII)


def hash_prompt(prompt: str, model: str = DEFAULT_MODEL) -> str:
    """Compute the cache key for a (model, prompt) pair."""
    content = f"{model}:{prompt}"
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def parse_ttl(ttl: str) -> int:
    """Parse a TTL string such as ``"7d"``, ``"24h"``, ``"30m"`` or ``"45s"``.

    Args:
        ttl: Duration string, ``<digits><unit>``.

    Returns:
        Duration in milliseconds.

    Raises:
        InvalidTTLError: If the string does not match the grammar.
    """
    match = _TTL_PATTERN.fullmatch(ttl)
    if not match:
        raise InvalidTTLError(
            f"Invalid TTL: {ttl!r}. Use e.g. '7d', '24h', '30m' or '45s'."
        )
    return int(match.group(1)) * _TTL_MULTIPLIERS_MS[match.group(2)]


def parse_days(value: str | int) -> int:
    """Parse an age in days, accepting ``7`` or ``"7d"``."""
    if isinstance(value, int):
        days = value
    else:
        match = _DAYS_PATTERN.fullmatch(value.strip())
        if not match:
            raise CacheValidationError(f"Invalid day count: {value!r}")
        days = int(match.group(1))
    if days < 0:
        raise CacheValidationError(f"Day count must be >= 0, got {days}")
    return days
