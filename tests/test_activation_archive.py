"""Tests for activation state and install archives."""

import os
import tarfile

import pytest

from constants import Constants, PackageManagers
from engine.activation import ActivationState
from engine.core import Engine
from errors import CorepackError, IntegrityError
from fake_registry import FakeRegistryClient
from install.archive import default_archive_name, export_install, hydrate_archive
from specs.models import Descriptor, Locator

NPM = PackageManagers.NPM
YARN = PackageManagers.YARN
PNPM = PackageManagers.PNPM


@pytest.fixture
def state(home):
    return ActivationState(os.path.join(home, Constants.ACTIVATION_FILE))


class TestActivationState:
    def test_embedded_defaults(self, state):
        assert state.default_descriptor(NPM) == Descriptor(NPM, "6.14.2")
        assert state.default_descriptor(YARN) == Descriptor(YARN, "1.22.4")
        assert [d.name for d in state.default_descriptors()] == [NPM, YARN, PNPM]

    def test_transparent_default(self, state):
        assert state.default_descriptor(YARN, transparent=True).range == "2.2.2"
        # npm has no dedicated transparent default
        assert state.default_descriptor(NPM, transparent=True).range == "6.14.2"

    def test_activate_overrides_default(self, state):
        state.activate(Locator(PNPM, "6.1.0"))
        assert state.default_descriptor(PNPM) == Descriptor(PNPM, "6.1.0")

    def test_activate_keeps_other_entries(self, state):
        state.activate(Locator(PNPM, "6.1.0"))
        state.activate(Locator(NPM, "7.1.0"))
        assert state.load() == {"pnpm": "6.1.0", "npm": "7.1.0"}

    def test_url_locator_records_url(self, state):
        state.activate(Locator(YARN, "url-abc", url="https://example.test/yarn.js"))
        assert state.get(YARN) == "https://example.test/yarn.js"

    def test_corrupt_file_falls_back_to_embedded(self, state):
        with open(state.path, "w", encoding="utf-8") as fh:
            fh.write("not json")
        assert state.default_descriptor(NPM).range == "6.14.2"


class TestArchives:
    def test_default_archive_name(self):
        locator = Locator(YARN, "2.2.2")
        assert default_archive_name(locator, explicit=True) == "corepack-yarn-2.2.2.tgz"
        assert default_archive_name(locator, explicit=False) == "corepack-yarn.tgz"

    def test_round_trip_into_offline_home(self, engine, tmp_path):
        record = engine.ensure_package_manager(Locator(NPM, "7.0.0"))
        archive = export_install(record, engine.home, str(tmp_path / "out" / "npm.tgz"))
        with tarfile.open(archive) as tf:
            assert "npm/7.0.0/.corepack" in tf.getnames()

        other_home = tmp_path / "other-home"
        offline = Engine(str(other_home), network_enabled=False,
                         client=FakeRegistryClient(network_enabled=False))
        records = hydrate_archive(archive, offline.install_cache)
        assert [(r.name, r.reference) for r in records] == [(NPM, "7.0.0")]
        assert records[0].hash == record.hash
        assert os.path.isfile(records[0].bin_path("npx"))
        assert offline.install_cache.find_install(Locator(NPM, "7.0.0")) is not None

    def test_hydrate_is_idempotent(self, engine, tmp_path):
        record = engine.ensure_package_manager(Locator(YARN, "2.2.2"))
        archive = export_install(record, engine.home, str(tmp_path / "yarn.tgz"))
        first = hydrate_archive(archive, engine.install_cache)
        second = hydrate_archive(archive, engine.install_cache)
        assert first == second

    def test_tampered_archive_is_rejected(self, engine, tmp_path):
        record = engine.ensure_package_manager(Locator(NPM, "7.0.0"))
        with open(record.bin_path("npm"), "a", encoding="utf-8") as fh:
            fh.write("# tampered\n")
        archive = export_install(record, engine.home, str(tmp_path / "npm.tgz"))

        target = Engine(str(tmp_path / "target"), network_enabled=False,
                        client=FakeRegistryClient(network_enabled=False))
        with pytest.raises(IntegrityError):
            hydrate_archive(archive, target.install_cache)
        assert target.install_cache.find_install(Locator(NPM, "7.0.0")) is None

    def test_missing_archive(self, engine, tmp_path):
        with pytest.raises(CorepackError, match="Archive not found"):
            hydrate_archive(str(tmp_path / "missing.tgz"), engine.install_cache)

    def test_unsupported_directory(self, engine, tmp_path):
        src = tmp_path / "bun" / "1.0.0"
        src.mkdir(parents=True)
        (src / "bun.js").write_text("", encoding="utf-8")
        archive = str(tmp_path / "bun.tgz")
        with tarfile.open(archive, "w:gz") as tf:
            tf.add(str(tmp_path / "bun"), arcname="bun")
        with pytest.raises(CorepackError, match="unsupported package manager"):
            hydrate_archive(archive, engine.install_cache)
