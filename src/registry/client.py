"""Registry client: release listings, version metadata and downloads."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from constants import Constants
from definitions import REGISTRY_NPM, REGISTRY_URL, RegistrySpec
from errors import NetworkDisabledError, RegistryError
from common.http_client import get_bytes, get_json
from common.logging_utils import extra_context, safe_url

logger = logging.getLogger(__name__)

_NPM_ACCEPT = "application/vnd.npm.install-v1+json; q=1.0, application/json; q=0.8, */*"


@dataclass
class DistInfo:
    """Download location and expected integrity of one release."""

    tarball: str
    integrity: Optional[str]


class RegistryClient:
    """Thin facade over the HTTP helpers that honours the network toggle."""

    def __init__(self, network_enabled: bool = True):
        self.network_enabled = network_enabled

    def _require_network(self, target: str) -> None:
        if not self.network_enabled:
            raise NetworkDisabledError(safe_url(target))

    def fetch_versions(self, registry: RegistrySpec) -> Tuple[List[str], Dict[str, str]]:
        """Return ``(versions, dist_tags)`` advertised by ``registry``."""
        if registry.type == REGISTRY_NPM:
            url = f"{Constants.REGISTRY_URL_NPM.rstrip('/')}/{registry.package}"
            self._require_network(url)
            data = get_json(url, context="npm", headers={"Accept": _NPM_ACCEPT})
            versions = list((data.get("versions") or {}).keys())
            tags = dict(data.get("dist-tags") or {})
        elif registry.type == REGISTRY_URL:
            url = registry.url or ""
            self._require_network(url)
            data = get_json(url, context="tags")
            versions = list(data.get(registry.versions_field) or [])
            tags = dict(data.get(registry.tags_field) or {})
        else:
            raise RegistryError(f"Unsupported registry type '{registry.type}'")
        logger.debug(
            "Fetched release list",
            extra=extra_context(
                event="registry_versions",
                component="registry_client",
                target=safe_url(url),
                candidate_count=len(versions),
            )
        )
        return versions, tags

    def fetch_dist(self, package: str, version: str) -> DistInfo:
        """Return the tarball URL and integrity published for ``package@version``."""
        url = f"{Constants.REGISTRY_URL_NPM.rstrip('/')}/{package}/{version}"
        self._require_network(url)
        data = get_json(url, context="npm", headers={"Accept": _NPM_ACCEPT})
        dist = data.get("dist") or {}
        tarball = dist.get("tarball")
        if not tarball:
            raise RegistryError(f"npm registry has no tarball for {package}@{version}")
        integrity = dist.get("integrity")
        if not integrity and dist.get("shasum"):
            integrity = f"sha1.{dist['shasum']}"
        return DistInfo(tarball=tarball, integrity=integrity)

    def download(self, url: str) -> bytes:
        """Download a release payload."""
        self._require_network(url)
        return get_bytes(url, context="download")
