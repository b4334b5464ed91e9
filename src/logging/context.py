# src/logging/context.py - v2
"""Contextual logging support: attach cache path, backend and operation to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Set per facade call so every record of a cache operation carries its scope.
_cache_path: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "cache_path", default=None
)
_backend: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "backend", default=None
)
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    cache_path: str | None = None
    backend: str | None = None
    operation: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        cache_path=_cache_path.get(),
        backend=_backend.get(),
        operation=_operation.get(),
    )


def set_cache_context(cache_path: str, backend: str | None = None) -> None:
    """Set cache-level context (called when a facade binds to a directory)."""
    _cache_path.set(cache_path)
    _backend.set(backend)


def set_operation_context(operation: str | None) -> None:
    """Set the operation currently being executed."""
    _operation.set(operation)


def clear_context() -> None:
    """Reset all context variables."""
    _cache_path.set(None)
    _backend.set(None)
    _operation.set(None)
