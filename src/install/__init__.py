"""Install cache package.

- cache.py: content-addressed, lock-guarded, atomically published installs
- integrity.py: payload hash checks and install tree digests
- archive.py: export of installs to relocatable archives and hydration
"""

from .cache import InstallCache
from .archive import default_archive_name, export_install, hydrate_archive

__all__ = [
    "InstallCache",
    "default_archive_name",
    "export_install",
    "hydrate_archive",
]
