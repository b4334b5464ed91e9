# src/license/limits.py - v1
"""Free-tier usage limits: entry count and response size ceilings."""

from __future__ import annotations

import math
from typing import Literal

from pydantic import BaseModel

from promptcache.license.entitlement import EntitlementProvider

FREE_MAX_ENTRIES = 50
FREE_MAX_RESPONSE_SIZE = 10 * 1024


class FreeLimits(BaseModel):
    max_entries: int = FREE_MAX_ENTRIES
    max_response_size: int = FREE_MAX_RESPONSE_SIZE


class LimitCheck(BaseModel):
    """Whether an operation fits within the caller's tier."""

    allowed: bool
    reason: str | None = None
    size: int | None = None


class LimitStatus(BaseModel):
    tier: Literal["free", "pro"]
    unlimited: bool
    current_entries: int | None = None
    max_entries: int | None = None
    max_response_size: int | None = None


def can_add_entry(
    current_count: int,
    entitlement: EntitlementProvider,
    limits: FreeLimits | None = None,
) -> LimitCheck:
    """Check the entry-count ceiling."""
    if entitlement.is_pro():
        return LimitCheck(allowed=True)
    limits = limits or FreeLimits()
    if current_count >= limits.max_entries:
        return LimitCheck(
            allowed=False,
            reason=f"FREE version limited to {limits.max_entries} cache entries",
        )
    return LimitCheck(allowed=True)


def check_response_size(
    size: int,
    entitlement: EntitlementProvider,
    limits: FreeLimits | None = None,
) -> LimitCheck:
    """Check the response-size ceiling (size in bytes)."""
    if entitlement.is_pro():
        return LimitCheck(allowed=True, size=size)
    limits = limits or FreeLimits()
    if size > limits.max_response_size:
        max_kb = round(limits.max_response_size / 1024)
        size_kb = round(size / 1024)
        return LimitCheck(
            allowed=False,
            reason=f"FREE version limited to {max_kb}KB responses (found {size_kb}KB)",
            size=size,
        )
    return LimitCheck(allowed=True, size=size)


def get_limit_status(
    current_entries: int,
    entitlement: EntitlementProvider,
    limits: FreeLimits | None = None,
) -> LimitStatus:
    if entitlement.is_pro():
        return LimitStatus(tier="pro", unlimited=True)
    limits = limits or FreeLimits()
    return LimitStatus(
        tier="free",
        unlimited=False,
        current_entries=current_entries,
        max_entries=limits.max_entries,
        max_response_size=limits.max_response_size,
    )


def get_remaining_entries(
    current_count: int,
    entitlement: EntitlementProvider,
    limits: FreeLimits | None = None,
) -> float:
    """Entries left before the ceiling; ``math.inf`` for PRO."""
    if entitlement.is_pro():
        return math.inf
    limits = limits or FreeLimits()
    return max(0, limits.max_entries - current_count)
