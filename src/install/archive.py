"""Portable archives of install cache entries.

An archive is a gzip tarball whose member paths are relative to the cache
home (``<name>/<reference>/...``), so it can be hydrated into any home.
"""

from __future__ import annotations

import logging
import os
import tarfile
from typing import List

from constants import Constants, PackageManagers
from errors import CorepackError
from common.fs_utils import remove_tree
from specs.models import InstallRecord, Locator
from .cache import InstallCache

logger = logging.getLogger(__name__)


def default_archive_name(locator: Locator, explicit: bool) -> str:
    """Default file name for an exported archive.

    The version is only part of the name when the caller asked for a specific
    descriptor; exporting "whatever the project uses" yields a version-less name.
    """
    if explicit:
        return f"{Constants.ARCHIVE_PREFIX}-{locator.name.value}-{locator.reference}.tgz"
    return f"{Constants.ARCHIVE_PREFIX}-{locator.name.value}.tgz"


def export_install(record: InstallRecord, home: str, output: str) -> str:
    """Write ``record``'s tree to ``output`` as a relocatable tar.gz archive."""
    arcname = os.path.relpath(record.location, home).replace(os.sep, "/")
    if arcname.startswith(".."):
        raise CorepackError(f"Install {record.location} is not inside the cache home {home}")
    parent = os.path.dirname(os.path.abspath(output))
    os.makedirs(parent, exist_ok=True)
    try:
        with tarfile.open(output, "w:gz") as tf:
            tf.add(record.location, arcname=arcname)
    except (OSError, tarfile.TarError) as exc:
        raise CorepackError(f"Failed to write archive {output}: {exc}") from exc
    logger.info("Packed %s@%s into %s", record.name.value, record.reference, output)
    return output


def _staged_entries(staging: str) -> List[tuple]:
    """List the ``(name, reference, path)`` trees found in an extracted archive."""
    entries = []
    for name_dir in sorted(os.listdir(staging)):
        manager = PackageManagers.from_name(name_dir)
        name_path = os.path.join(staging, name_dir)
        if not os.path.isdir(name_path):
            continue
        if manager is None:
            raise CorepackError(f"Archive contains an unsupported package manager directory '{name_dir}'")
        for reference in sorted(os.listdir(name_path)):
            ref_path = os.path.join(name_path, reference)
            if os.path.isdir(ref_path):
                entries.append((manager, reference, ref_path))
    return entries


def hydrate_archive(archive_path: str, cache: InstallCache) -> List[InstallRecord]:
    """Import an exported archive into ``cache`` without network access.

    Raises:
        CorepackError: if the archive cannot be read or holds nothing usable.
        IntegrityError: if an entry's content does not match its marker.
    """
    if not os.path.isfile(archive_path):
        raise CorepackError(f"Archive not found: {archive_path}")

    staging = cache.new_temp_dir()
    records: List[InstallRecord] = []
    try:
        try:
            with tarfile.open(archive_path, "r:*") as tf:
                tf.extractall(staging, filter="data")
        except (OSError, tarfile.TarError) as exc:
            raise CorepackError(f"Failed to read archive {archive_path}: {exc}") from exc

        entries = _staged_entries(staging)
        if not entries:
            raise CorepackError(f"Archive {archive_path} does not contain any package manager")

        for manager, reference, path in entries:
            record = cache.commit_staged_tree(path, manager, reference)
            logger.info("Hydrated %s@%s", manager.value, reference)
            records.append(record)
    finally:
        remove_tree(staging)
    return records
