"""Registry access for package manager releases.

- client.py: release listings (npm packuments and JSON tag indexes), per-version
  dist metadata and payload downloads.
"""

from .client import DistInfo, RegistryClient

__all__ = ["DistInfo", "RegistryClient"]
