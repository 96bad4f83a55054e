"""Persisted "last known good" package manager versions."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from constants import PackageManagers
from definitions import get_definition
from common.fs_utils import atomic_write_json, file_lock, read_json
from specs.models import Descriptor, Locator

logger = logging.getLogger(__name__)


class ActivationState:
    """Name -> version mapping stored in ``<home>/lastKnownGood.json``.

    Reads happen on demand; every write is a locked read-modify-write that
    replaces the file through a rename, so activating one manager never
    clobbers another manager's entry.
    """

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Dict[str, str]:
        """Return the current mapping; an unreadable file counts as empty."""
        try:
            data = read_json(self.path)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring corrupt activation state %s: %s", self.path, exc)
            return {}
        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring activation state %s: not a JSON object", self.path)
            return {}
        return {str(k): str(v) for k, v in data.items() if isinstance(v, str) and v}

    def get(self, name: PackageManagers) -> Optional[str]:
        return self.load().get(name.value)

    def activate(self, locator: Locator) -> None:
        """Record ``locator`` as the last known good version of its manager."""
        value = locator.url or locator.reference
        with file_lock(self.path + ".lock"):
            data = self.load()
            data[locator.name.value] = value
            atomic_write_json(self.path, data)
        logger.info("Activated %s@%s", locator.name.value, value)

    def default_descriptor(self, name: PackageManagers, transparent: bool = False) -> Descriptor:
        """Fallback descriptor for ``name`` when no project pins one.

        Args:
            name: The package manager.
            transparent: Prefer the definition's transparent default, used when
                running a transparent command inside another manager's project.
        """
        definition = get_definition(name)
        if transparent and definition.transparent_default:
            return Descriptor(name, definition.transparent_default, source="transparent default")
        activated = self.get(name)
        if activated:
            return Descriptor(name, activated, source=self.path)
        return Descriptor(name, definition.default, source="embedded defaults")

    def default_descriptors(self) -> List[Descriptor]:
        """One descriptor per supported manager."""
        return [self.default_descriptor(name) for name in PackageManagers]
