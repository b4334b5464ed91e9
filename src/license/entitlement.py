# src/license/entitlement.py - v1
"""PRO/FREE capability providers injected into the cache facade.

Components never read licence state from a global; they receive an
``EntitlementProvider`` and ask it at each decision point.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

LICENSE_PREFIX = "LMC-"


@runtime_checkable
class EntitlementProvider(Protocol):
    """Answers whether PRO features are unlocked."""

    def is_pro(self) -> bool: ...


class StaticEntitlement:
    """Fixed answer, for embedding and tests."""

    def __init__(self, pro: bool = False) -> None:
        self._pro = pro

    def is_pro(self) -> bool:
        return self._pro


class LicenseFileEntitlement:
    """Reads a licence document on every call.

    The document is JSON with a ``key`` starting with ``LMC-`` and an optional
    ``expiresAt`` ISO timestamp. Missing, unreadable, malformed or expired
    licences all mean FREE.
    """

    def __init__(self, license_file: Path | str) -> None:
        self._path = Path(license_file).expanduser()

    def is_pro(self) -> bool:
        if not self._path.exists():
            return False
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Unreadable license file %s: %s", self._path, e)
            return False
        if not isinstance(data, dict):
            return False

        key = data.get("key")
        if not isinstance(key, str) or not key.startswith(LICENSE_PREFIX):
            return False

        expires_at = data.get("expiresAt")
        if expires_at:
            try:
                expiry = datetime.fromisoformat(str(expires_at).replace("Z", "+00:00"))
            except ValueError:
                return False
            if expiry.tzinfo is None:
                expiry = expiry.replace(tzinfo=timezone.utc)
            if expiry < datetime.now(timezone.utc):
                return False
        return True
