"""Embedded package manager definitions.

Each manager lists its default version, its transparent commands and one or
more semver ranges. A range says where releases in that range are published
(an npm registry package, or a plain JSON tag index) and which binaries the
installed tree exposes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import semantic_version

from constants import Constants, PackageManagers

REGISTRY_NPM = "npm"
REGISTRY_URL = "url"


@dataclass(frozen=True)
class RegistrySpec:
    """Where to list the releases of a range."""

    type: str
    package: Optional[str] = None
    url: Optional[str] = None
    tags_field: str = "latest"
    versions_field: str = "tags"


@dataclass(frozen=True)
class RangeDefinition:
    """Releases of a manager within ``range`` and how to fetch them."""

    range: str
    url: str
    bin: Dict[str, str]
    registry: RegistrySpec

    def download_url(self, version: str) -> str:
        return self.url.replace("{registry}", Constants.REGISTRY_URL_NPM.rstrip("/")).format(version)


@dataclass(frozen=True)
class ManagerDefinition:
    """Static description of one supported package manager."""

    name: PackageManagers
    default: str
    ranges: List[RangeDefinition]
    transparent_commands: List[Tuple[str, ...]] = field(default_factory=list)
    transparent_default: Optional[str] = None


def _npm_registry(package: str) -> RegistrySpec:
    return RegistrySpec(type=REGISTRY_NPM, package=package)


DEFINITIONS: Dict[PackageManagers, ManagerDefinition] = {
    PackageManagers.NPM: ManagerDefinition(
        name=PackageManagers.NPM,
        default="6.14.2",
        transparent_commands=[("npm", "init"), ("npx",)],
        ranges=[
            RangeDefinition(
                range="*",
                url="{registry}/npm/-/npm-{}.tgz",
                bin={"npm": "./bin/npm-cli.js", "npx": "./bin/npx-cli.js"},
                registry=_npm_registry("npm"),
            ),
        ],
    ),
    PackageManagers.YARN: ManagerDefinition(
        name=PackageManagers.YARN,
        default="1.22.4",
        transparent_commands=[("yarn", "init"), ("yarn", "dlx")],
        transparent_default="2.2.2",
        ranges=[
            RangeDefinition(
                range="<2.0.0-0",
                url="{registry}/yarn/-/yarn-{}.tgz",
                bin={"yarn": "./bin/yarn.js", "yarnpkg": "./bin/yarn.js"},
                registry=_npm_registry("yarn"),
            ),
            RangeDefinition(
                range=">=2.0.0-0",
                url="https://repo.yarnpkg.com/{}/packages/yarnpkg-cli/bin/yarn.js",
                bin={"yarn": "./yarn.js", "yarnpkg": "./yarn.js"},
                registry=RegistrySpec(
                    type=REGISTRY_URL,
                    url="https://repo.yarnpkg.com/tags",
                    tags_field="latest",
                    versions_field="tags",
                ),
            ),
        ],
    ),
    PackageManagers.PNPM: ManagerDefinition(
        name=PackageManagers.PNPM,
        default="4.11.6",
        transparent_commands=[("pnpm", "init"), ("pnpm", "dlx"), ("pnpx",)],
        ranges=[
            RangeDefinition(
                range="<6.0.0",
                url="{registry}/pnpm/-/pnpm-{}.tgz",
                bin={"pnpm": "./bin/pnpm.js", "pnpx": "./bin/pnpx.js"},
                registry=_npm_registry("pnpm"),
            ),
            RangeDefinition(
                range=">=6.0.0",
                url="{registry}/pnpm/-/pnpm-{}.tgz",
                bin={"pnpm": "./bin/pnpm.cjs", "pnpx": "./bin/pnpx.cjs"},
                registry=_npm_registry("pnpm"),
            ),
        ],
    ),
}


def get_definition(name: PackageManagers) -> ManagerDefinition:
    """Return the definition of ``name``."""
    return DEFINITIONS[name]


def version_in_range(version: str, range_: str) -> bool:
    """Return True when ``version`` belongs to a definition range.

    Pre-release tags are ignored for this test so that e.g. ``3.0.0-rc.1``
    is routed to the ``>=2.0.0-0`` definition.
    """
    try:
        parsed = semantic_version.Version(version)
        spec = semantic_version.NpmSpec(range_)
    except ValueError:
        return False
    return spec.match(parsed) or spec.match(parsed.truncate("patch"))


def range_definition_for(name: PackageManagers, version: str) -> Optional[RangeDefinition]:
    """Return the range definition that publishes ``version`` of ``name``."""
    for candidate in get_definition(name).ranges:
        if version_in_range(version, candidate.range):
            return candidate
    return None


def manager_for_binary(binary: str) -> Optional[PackageManagers]:
    """Map an invoked binary (``yarn``, ``npx``...) to its package manager."""
    name = Constants.BINARY_ALIASES.get(binary, binary)
    return PackageManagers.from_name(name)


def binaries_for(name: PackageManagers) -> List[str]:
    """Every binary name exposed by any range of ``name``, in definition order."""
    binaries: List[str] = []
    for definition in get_definition(name).ranges:
        for binary in definition.bin:
            if binary not in binaries:
                binaries.append(binary)
    return binaries
