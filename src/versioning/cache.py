"""Persistent TTL cache of range -> locator answers."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from constants import Constants, PackageManagers
from common.fs_utils import atomic_write_json, file_lock, read_json
from specs.models import Locator

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A single memoized resolution."""

    locator: Locator
    created_at: float = field(default_factory=time.time)

    def is_expired(self, ttl: int) -> bool:
        """Check if this entry is older than ``ttl`` seconds."""
        return time.time() - self.created_at > ttl

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"reference": self.locator.reference, "timestamp": self.created_at}
        if self.locator.url:
            data["url"] = self.locator.url
        return data


class ResolutionCache:
    """Resolution answers persisted in ``<home>/resolutions.json``.

    The file is only ever replaced whole (temp file + rename) while holding
    its lock, so concurrent writers never interleave.
    """

    def __init__(self, path: str, ttl: Optional[int] = None):
        """Initialize the cache.

        Args:
            path: Location of the JSON file.
            ttl: Freshness window in seconds; defaults to RESOLUTION_CACHE_TTL_SEC.
        """
        self.path = path
        self.ttl = ttl if ttl is not None else Constants.RESOLUTION_CACHE_TTL_SEC

    @staticmethod
    def _make_key(name: PackageManagers, range_: str) -> str:
        return f"{name.value}@{range_}"

    def _load(self) -> Dict[str, Any]:
        try:
            data = read_json(self.path)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable resolution cache %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, name: PackageManagers, range_: str) -> Optional[CacheEntry]:
        """Return the cached entry for ``name@range_`` (fresh or stale), if any."""
        raw = self._load().get(self._make_key(name, range_))
        if not isinstance(raw, dict) or not raw.get("reference"):
            return None
        try:
            created_at = float(raw.get("timestamp", 0))
        except (TypeError, ValueError):
            created_at = 0.0
        locator = Locator(name=name, reference=str(raw["reference"]), url=raw.get("url"))
        return CacheEntry(locator=locator, created_at=created_at)

    def is_fresh(self, entry: CacheEntry) -> bool:
        return not entry.is_expired(self.ttl)

    def set(self, name: PackageManagers, range_: str, locator: Locator) -> None:
        """Record a resolution, keeping every other entry intact."""
        with file_lock(self.path + ".lock"):
            data = self._load()
            data[self._make_key(name, range_)] = CacheEntry(locator=locator).to_json()
            atomic_write_json(self.path, data)
        logger.debug("Cached resolution %s@%s -> %s", name.value, range_, locator.reference)
