"""Engine: wires the resolver, install cache and activation state together."""

from __future__ import annotations

import logging
import os
from typing import List, Optional

from constants import Constants, PackageManagers
from cli_config import get_home, is_network_enabled
from registry.client import RegistryClient
from install.cache import InstallCache
from specs.models import Descriptor, InstallRecord, Locator
from versioning.cache import ResolutionCache
from versioning.resolver import RegistryResolver
from .activation import ActivationState

logger = logging.getLogger(__name__)


class Engine:
    """Entry point to every cache-home operation of one invocation."""

    def __init__(self, home: str, network_enabled: bool = True,
                 client: Optional[RegistryClient] = None):
        """Initialize the engine.

        Args:
            home: Cache home shared with other processes.
            network_enabled: When False, only cached data is used.
            client: Registry client; a default one is built when omitted.
        """
        self.home = home
        self.client = client or RegistryClient(network_enabled=network_enabled)
        self.client.network_enabled = network_enabled
        self.install_cache = InstallCache(home, self.client)
        self.resolution_cache = ResolutionCache(os.path.join(home, Constants.RESOLUTION_CACHE_FILE))
        self.resolver = RegistryResolver(self.client, self.resolution_cache, self.install_cache)
        self.activation = ActivationState(os.path.join(home, Constants.ACTIVATION_FILE))

    @classmethod
    def from_environment(cls, client: Optional[RegistryClient] = None) -> "Engine":
        """Build an engine from COREPACK_HOME / COREPACK_ENABLE_NETWORK."""
        home = get_home()
        network = is_network_enabled()
        logger.debug("Using cache home %s (network %s)", home, "enabled" if network else "disabled")
        return cls(home, network_enabled=network, client=client)

    @property
    def network_enabled(self) -> bool:
        return self.client.network_enabled

    def resolve_descriptor(self, descriptor: Descriptor) -> Locator:
        return self.resolver.resolve_descriptor(descriptor)

    def ensure_package_manager(self, locator: Locator) -> InstallRecord:
        return self.install_cache.ensure_package_manager(locator)

    def activate_package_manager(self, locator: Locator) -> None:
        self.activation.activate(locator)

    def get_default_descriptor(self, name: PackageManagers, transparent: bool = False) -> Descriptor:
        return self.activation.default_descriptor(name, transparent=transparent)

    def get_default_descriptors(self) -> List[Descriptor]:
        return self.activation.default_descriptors()
