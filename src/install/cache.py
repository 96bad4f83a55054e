"""Content-addressed install cache.

Layout: ``<home>/<name>/<reference>/`` holding an extracted package manager
and a ``.corepack`` completion marker. Installs are staged in ``<home>/.tmp``
and published with a single directory rename while holding a per-key
``filelock`` lock, so a directory at the final path is always complete.
"""

from __future__ import annotations

import io
import logging
import os
import tarfile
import tempfile
import time
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

import semantic_version

from constants import Constants, PackageManagers
from definitions import REGISTRY_NPM, binaries_for, range_definition_for
from errors import CorepackError, IntegrityError, ResolutionFailure
from common.fs_utils import atomic_write_json, file_lock, read_json, remove_tree
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from registry.client import RegistryClient
from specs.models import InstallRecord, Locator
from .integrity import tree_digest, verify_integrity

logger = logging.getLogger(__name__)

TARBALL_SUFFIXES = (".tgz", ".tar.gz")


def _strip_first_component(member: tarfile.TarInfo, dest_path: str) -> Optional[tarfile.TarInfo]:
    """Extraction filter dropping the leading ``package/`` directory of npm tarballs."""
    parts = member.name.lstrip("./").split("/", 1)
    if len(parts) < 2 or not parts[1]:
        return None
    changes = {"name": parts[1]}
    if member.islnk():
        link_parts = member.linkname.split("/", 1)
        changes["linkname"] = link_parts[1] if len(link_parts) == 2 else member.linkname
    return tarfile.data_filter(member.replace(**changes, deep=False), dest_path)


def extract_tarball(payload: bytes, target: str, subject: str) -> None:
    """Extract a gzip npm tarball into ``target``, stripping its top directory."""
    try:
        with tarfile.open(fileobj=io.BytesIO(payload), mode="r:gz") as tf:
            tf.extractall(target, filter=_strip_first_component)
    except (OSError, tarfile.TarError) as exc:
        raise CorepackError(f"Failed to extract {subject}: {exc}") from exc


def _bin_from_manifest(target: str, name: PackageManagers) -> Dict[str, str]:
    """Read the ``bin`` field of an extracted package."""
    manifest = read_json(os.path.join(target, Constants.PACKAGE_JSON_FILE)) or {}
    bins = manifest.get("bin") if isinstance(manifest, dict) else None
    if isinstance(bins, str):
        return {name.value: bins}
    if isinstance(bins, dict):
        return {str(k): str(v) for k, v in bins.items()}
    return {}


class InstallCache:
    """Install trees shared by every process using the same home."""

    def __init__(self, home: str, client: RegistryClient):
        self.home = home
        self.client = client

    # ---------- layout ----------

    def install_folder(self, name: PackageManagers, reference: str) -> str:
        return os.path.join(self.home, name.value, reference)

    def lock_path(self, name: PackageManagers, reference: str) -> str:
        return os.path.join(self.home, Constants.LOCKS_DIR, f"{name.value}-{reference}.lock")

    def temp_root(self) -> str:
        return os.path.join(self.home, Constants.TEMP_DIR)

    def new_temp_dir(self) -> str:
        """Create a staging directory on the same filesystem as the cache."""
        os.makedirs(self.temp_root(), exist_ok=True)
        return tempfile.mkdtemp(prefix="install-", dir=self.temp_root())

    # ---------- lookups ----------

    @staticmethod
    def _read_marker(folder: str) -> Optional[dict]:
        try:
            data = read_json(os.path.join(folder, Constants.INSTALL_MARKER))
        except (OSError, ValueError):
            return None
        return data if isinstance(data, dict) else None

    def _record(self, name: PackageManagers, reference: str) -> Optional[InstallRecord]:
        folder = self.install_folder(name, reference)
        marker = self._read_marker(folder)
        if marker is None:
            return None
        return InstallRecord(
            name=name,
            reference=reference,
            location=folder,
            bin=dict(marker.get("bin") or {}),
            hash=str(marker.get("hash", "")),
            complete=True,
        )

    def find_install(self, locator: Locator) -> Optional[InstallRecord]:
        """Fast path: return the record if the install is complete. Takes no lock."""
        return self._record(locator.name, locator.reference)

    def list_installed_versions(self, name: PackageManagers) -> List[str]:
        """Versions of ``name`` with a complete install."""
        base = os.path.join(self.home, name.value)
        try:
            entries = os.listdir(base)
        except FileNotFoundError:
            return []
        return sorted(
            entry for entry in entries
            if semantic_version.validate(entry) and self._record(name, entry) is not None
        )

    # ---------- install ----------

    def ensure_package_manager(self, locator: Locator, archive: Optional[bytes] = None,
                               archive_name: Optional[str] = None) -> InstallRecord:
        """Return a complete install of ``locator``, installing it if needed.

        Args:
            locator: What to install.
            archive: Optional release payload supplied by the caller instead of
                downloading it (a package tarball or single-file bundle).
            archive_name: File name of ``archive``; decides how it is unpacked.

        Raises:
            IntegrityError: the payload does not match its expected hash.
            NetworkDisabledError: a download is needed and the network is off.
        """
        record = self.find_install(locator)
        if record is not None:
            return record

        with file_lock(self.lock_path(locator.name, locator.reference)):
            # Another process may have finished while we were waiting
            record = self.find_install(locator)
            if record is not None:
                logger.debug("Install of %s completed by another process", locator)
                return record

            self.sweep_temp()
            with Timer() as timer:
                record = self._install_locked(locator, archive, archive_name)
            logger.info("Installed %s in %s", locator, record.location)
            if is_debug_enabled(logger):
                logger.debug(
                    "Install complete",
                    extra=extra_context(
                        event="install",
                        component="install_cache",
                        package_manager=locator.name.value,
                        target=locator.reference,
                        duration_ms=timer.duration_ms(),
                    )
                )
            return record

    def _install_locked(self, locator: Locator, archive: Optional[bytes],
                        archive_name: Optional[str]) -> InstallRecord:
        subject = str(locator)
        expected: List[Optional[str]] = [locator.integrity]
        if archive is not None:
            payload = archive
            filename = archive_name or f"{locator.name.value}{TARBALL_SUFFIXES[0]}"
            bin_map = self._definition_bins(locator)
        else:
            payload, filename, bin_map, registry_integrity = self._fetch_payload(locator)
            expected.append(registry_integrity)

        for value in expected:
            verify_integrity(payload, value, subject)

        staging = self.new_temp_dir()
        try:
            if filename.endswith(TARBALL_SUFFIXES):
                extract_tarball(payload, staging, subject)
                if bin_map is None:
                    bin_map = _bin_from_manifest(staging, locator.name)
            else:
                path = os.path.join(staging, filename)
                with open(path, "wb") as fh:
                    fh.write(payload)
                os.chmod(path, 0o755)
                bin_map = {binary: f"./{filename}" for binary in (bin_map or binaries_for(locator.name))}
            for binary, rel in bin_map.items():
                if not os.path.exists(os.path.join(staging, rel)):
                    logger.warning("Binary %s of %s not found at %s", binary, subject, rel)
            self._write_marker(staging, locator.name, locator.reference, bin_map)
            return self._commit(staging, locator.name, locator.reference)
        except BaseException:
            remove_tree(staging)
            raise

    def _definition_bins(self, locator: Locator) -> Optional[Dict[str, str]]:
        if locator.url:
            return None
        definition = range_definition_for(locator.name, locator.reference)
        return dict(definition.bin) if definition else None

    def _fetch_payload(self, locator: Locator) -> Tuple[bytes, str, Optional[Dict[str, str]], Optional[str]]:
        """Download the release payload of ``locator``.

        Returns:
            Tuple of (payload, file name, bin map or None, registry integrity).
        """
        if locator.url:
            url = locator.url
            payload = self.client.download(url)
            filename = os.path.basename(urlparse(url).path) or locator.name.value
            return payload, filename, None, None

        definition = range_definition_for(locator.name, locator.reference)
        if definition is None:
            raise ResolutionFailure(locator.name.value, locator.reference,
                                    "no known distribution channel for this version")
        integrity = None
        if definition.registry.type == REGISTRY_NPM:
            dist = self.client.fetch_dist(definition.registry.package, locator.reference)
            url, integrity = dist.tarball, dist.integrity
        else:
            url = definition.download_url(locator.reference)
        logger.info("Downloading %s from %s", locator, safe_url(url))
        payload = self.client.download(url)
        filename = os.path.basename(urlparse(url).path)
        return payload, filename, dict(definition.bin), integrity

    @staticmethod
    def _write_marker(folder: str, name: PackageManagers, reference: str,
                      bin_map: Dict[str, str]) -> str:
        digest = tree_digest(folder)
        atomic_write_json(os.path.join(folder, Constants.INSTALL_MARKER), {
            "name": name.value,
            "reference": reference,
            "bin": bin_map,
            "hash": digest,
            "installedAt": int(time.time()),
        })
        return digest

    def _commit(self, staging: str, name: PackageManagers, reference: str) -> InstallRecord:
        """Publish a staged tree. Caller holds the key lock."""
        final = self.install_folder(name, reference)
        if os.path.lexists(final):
            # Leftover without a completion marker: never valid, replace it
            logger.warning("Replacing incomplete install at %s", final)
            remove_tree(final)
        os.makedirs(os.path.dirname(final), exist_ok=True)
        os.replace(staging, final)
        record = self._record(name, reference)
        if record is None:
            raise CorepackError(f"Install of {name.value}@{reference} at {final} has no completion marker")
        return record

    def commit_staged_tree(self, staging: str, name: PackageManagers, reference: str) -> InstallRecord:
        """Publish an already extracted tree (e.g. from an archive).

        The tree's content hash is checked against its marker when the marker
        records one; otherwise a marker is written from the manager definition.
        An entry that is already complete is kept and ``staging`` discarded.
        """
        with file_lock(self.lock_path(name, reference)):
            existing = self._record(name, reference)
            if existing is not None:
                remove_tree(staging)
                return existing
            try:
                marker = self._read_marker(staging)
                digest = tree_digest(staging)
                if marker and marker.get("hash"):
                    if marker["hash"] != digest:
                        raise IntegrityError(f"{name.value}@{reference}", str(marker["hash"]), digest)
                    bin_map = dict(marker.get("bin") or {})
                else:
                    definition = range_definition_for(name, reference)
                    bin_map = dict(definition.bin) if definition else _bin_from_manifest(staging, name)
                self._write_marker(staging, name, reference, bin_map)
                return self._commit(staging, name, reference)
            except BaseException:
                remove_tree(staging)
                raise

    def sweep_temp(self, max_age: Optional[int] = None) -> int:
        """Remove staging directories older than ``max_age`` seconds."""
        max_age = Constants.TEMP_SWEEP_AGE_SEC if max_age is None else max_age
        root = self.temp_root()
        try:
            entries = os.listdir(root)
        except FileNotFoundError:
            return 0
        removed = 0
        cutoff = time.time() - max_age
        for entry in entries:
            path = os.path.join(root, entry)
            try:
                if os.path.getmtime(path) >= cutoff:
                    continue
            except OSError:
                continue
            logger.debug("Removing stale staging directory %s", path)
            remove_tree(path)
            removed += 1
        return removed

