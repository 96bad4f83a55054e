"""Constants used in the project."""

import os
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FAILURE = 1


class PackageManagers(Enum):
    """Package managers supported by the program.

    Args:
        Enum (string): Package managers supported by the program.
    """

    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"

    @classmethod
    def from_name(cls, name):
        """Return the member for ``name`` or None when it is not supported."""
        for member in cls:
            if member.value == name:
                return member
        return None


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REGISTRY_URL_NPM = "https://registry.npmjs.org"
    SUPPORTED_PACKAGES = [
        PackageManagers.NPM.value,
        PackageManagers.YARN.value,
        PackageManagers.PNPM.value,
    ]
    # Binaries shipped by a manager that can be invoked under their own name
    BINARY_ALIASES = {
        "npx": PackageManagers.NPM.value,
        "pnpx": PackageManagers.PNPM.value,
        "yarnpkg": PackageManagers.YARN.value,
    }
    PACKAGE_JSON_FILE = "package.json"
    PACKAGE_MANAGER_FIELD = "packageManager"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests

    # Environment
    ENV_HOME = "COREPACK_HOME"
    ENV_ENABLE_NETWORK = "COREPACK_ENABLE_NETWORK"
    ENV_NPM_REGISTRY = "COREPACK_NPM_REGISTRY"
    ENV_NODE = "COREPACK_NODE"
    ENV_LOG_LEVEL = "COREPACK_LOG_LEVEL"
    ENV_CONFIG = "COREPACK_CONFIG"

    # Cache home layout
    INSTALL_MARKER = ".corepack"
    ACTIVATION_FILE = "lastKnownGood.json"
    RESOLUTION_CACHE_FILE = "resolutions.json"
    CONFIG_FILE = "config.yml"
    LOCKS_DIR = ".locks"
    TEMP_DIR = ".tmp"
    ARCHIVE_PREFIX = "corepack"

    # Tunables (overridable through cli_config)
    NODE_EXECUTABLE = "node"
    RESOLUTION_CACHE_TTL_SEC = 3600
    LOCK_TIMEOUT_SEC = -1  # block until the holder releases
    TEMP_SWEEP_AGE_SEC = 86400
    DISPATCH_LOG_LEVEL = "WARNING"


def default_home() -> str:
    """Return the default cache home, honouring XDG_CACHE_HOME."""
    base = os.environ.get("XDG_CACHE_HOME") or os.path.join(os.path.expanduser("~"), ".cache")
    return os.path.join(base, "node", "corepack")
