# src/cache/errors.py - v1
"""Exceptions raised for programmer or configuration errors.

Expected runtime states (uninitialized cache, already initialized, limit
exceeded) are reported through result models, not exceptions.
"""

from __future__ import annotations


class PromptCacheError(Exception):
    """Base class for promptcache errors."""


class CacheValidationError(PromptCacheError, ValueError):
    """Raised when a caller passes a malformed value."""


class InvalidTTLError(CacheValidationError):
    """Raised when a TTL string does not match ``<int><d|h|m|s>``."""


class InvalidImportStrategyError(CacheValidationError):
    """Raised on an unknown import strategy name."""


class UnsupportedBackendError(CacheValidationError):
    """Raised when a backend selector has no implementation."""
