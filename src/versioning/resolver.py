"""Range -> version resolution using npm semantic versioning."""

from __future__ import annotations

import dataclasses
import hashlib
import logging
import re
from typing import Dict, Iterable, List, Optional, Tuple

import semantic_version

from constants import PackageManagers
from definitions import RegistrySpec, get_definition, version_in_range
from errors import NetworkDisabledError, ResolutionFailure
from common.logging_utils import extra_context, is_debug_enabled
from registry.client import RegistryClient
from specs.models import Descriptor, Locator
from specs.parser import is_url
from .cache import ResolutionCache

logger = logging.getLogger(__name__)

# A comparator version carrying a pre-release tag, e.g. "2.0.0-rc.1" in "^2.0.0-rc.1"
_PRERELEASE_COMPARATOR = re.compile(r"\d+\.\d+\.\d+-[0-9A-Za-z]")


def is_exact_version(range_: str) -> bool:
    """Return True when ``range_`` names exactly one version."""
    return semantic_version.validate(range_)


def url_reference(url: str) -> str:
    """Stable cache reference for a URL descriptor."""
    return "url-" + hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]


def includes_prerelease(range_: str) -> bool:
    """Return True when the range explicitly opts into pre-release versions."""
    return bool(_PRERELEASE_COMPARATOR.search(range_))


def parse_range(range_: str) -> Optional[semantic_version.NpmSpec]:
    """Parse an npm range, returning None for anything else (e.g. a dist-tag)."""
    try:
        return semantic_version.NpmSpec(range_)
    except ValueError:
        return None


def pick_version(range_: str, candidates: Iterable[str]) -> Optional[str]:
    """Apply semver range and pick the highest matching version.

    Pre-releases are skipped unless the range explicitly admits them, even
    when a pre-release is the highest version the range would match.
    """
    spec = parse_range(range_)
    if spec is None:
        return None
    allow_prerelease = includes_prerelease(range_)

    matching_versions = []
    for v in candidates:
        try:
            ver = semantic_version.Version(v)
        except ValueError:
            continue  # Skip invalid versions
        if ver.prerelease and not allow_prerelease:
            continue
        if spec.match(ver):
            matching_versions.append(ver)

    if not matching_versions:
        return None
    matching_versions.sort(reverse=True)
    return str(matching_versions[0])


class RegistryResolver:
    """Turns descriptors into locators.

    Exact versions and URLs resolve locally. Ranges and dist-tags go through
    the resolution cache, then the registry; with the network disabled the
    highest already-installed matching version is used as a last resort.
    """

    def __init__(self, client: RegistryClient, cache: Optional[ResolutionCache] = None,
                 install_cache=None):
        self.client = client
        self.cache = cache
        self.install_cache = install_cache

    def resolve_descriptor(self, descriptor: Descriptor) -> Locator:
        """Resolve ``descriptor`` to a locator.

        Raises:
            ResolutionFailure: if no release satisfies the range.
            NetworkDisabledError: if the answer needs the network and it is disabled.
        """
        name, range_ = descriptor.name, descriptor.range

        if is_url(range_):
            return Locator(name, url_reference(range_), url=range_, integrity=descriptor.integrity)
        if is_exact_version(range_):
            return Locator(name, range_, integrity=descriptor.integrity)

        network = self.client.network_enabled
        if self.cache is not None:
            entry = self.cache.get(name, range_)
            if entry is not None and (not network or self.cache.is_fresh(entry)):
                logger.debug("Resolution cache hit for %s", descriptor)
                return dataclasses.replace(entry.locator, integrity=descriptor.integrity)

        if not network:
            installed = self._pick_installed(name, range_)
            if installed is not None:
                logger.info("Network disabled; using installed %s@%s", name.value, installed)
                return Locator(name, installed, integrity=descriptor.integrity)
            raise NetworkDisabledError(f"the {name.value} registry to resolve '{range_}'")

        version = self._resolve_online(name, range_)
        locator = Locator(name, version, integrity=descriptor.integrity)
        if self.cache is not None:
            self.cache.set(name, range_, dataclasses.replace(locator, integrity=None))
        return locator

    def fetch_candidates(self, name: PackageManagers) -> Tuple[List[str], Dict[str, str]]:
        """Collect versions and dist-tags from every registry of ``name``.

        Each range definition only contributes versions inside its own range.
        """
        versions: List[str] = []
        tags: Dict[str, str] = {}
        fetched: Dict[RegistrySpec, Tuple[List[str], Dict[str, str]]] = {}
        for definition in get_definition(name).ranges:
            if definition.registry not in fetched:
                fetched[definition.registry] = self.client.fetch_versions(definition.registry)
            registry_versions, registry_tags = fetched[definition.registry]
            for v in registry_versions:
                if v not in versions and version_in_range(v, definition.range):
                    versions.append(v)
            for tag, v in registry_tags.items():
                if isinstance(v, str) and version_in_range(v, definition.range):
                    tags.setdefault(tag, v)
        return versions, tags

    def _resolve_online(self, name: PackageManagers, range_: str) -> str:
        versions, tags = self.fetch_candidates(name)
        if is_debug_enabled(logger):
            logger.debug(
                "Resolving range",
                extra=extra_context(
                    event="resolve",
                    component="resolver",
                    package_manager=name.value,
                    target=range_,
                    candidate_count=len(versions),
                )
            )

        if parse_range(range_) is None:
            tagged = tags.get(range_)
            if tagged is None:
                raise ResolutionFailure(name.value, range_, "unknown dist-tag")
            return tagged

        picked = pick_version(range_, versions)
        if picked is None:
            raise ResolutionFailure(name.value, range_, f"{len(versions)} candidates")
        return picked

    def _pick_installed(self, name: PackageManagers, range_: str) -> Optional[str]:
        if self.install_cache is None or parse_range(range_) is None:
            return None
        return pick_version(range_, self.install_cache.list_installed_versions(name))
