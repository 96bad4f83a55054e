"""Tests for range resolution and the resolution cache."""

import json
import os

import pytest

from constants import Constants, PackageManagers
from errors import NetworkDisabledError, ResolutionFailure
from install.cache import InstallCache
from specs.models import Descriptor, Locator
from versioning.cache import ResolutionCache
from versioning.resolver import RegistryResolver, includes_prerelease, pick_version, url_reference

NPM = PackageManagers.NPM
YARN = PackageManagers.YARN
PNPM = PackageManagers.PNPM


@pytest.fixture
def resolution_cache(home):
    return ResolutionCache(os.path.join(home, Constants.RESOLUTION_CACHE_FILE))


@pytest.fixture
def resolver(registry, resolution_cache, home):
    return RegistryResolver(registry, resolution_cache, InstallCache(home, registry))


def resolve(resolver, name, range_):
    return resolver.resolve_descriptor(Descriptor(name, range_)).reference


class TestPickVersion:
    def test_highest_match(self):
        assert pick_version("^1.0.0", ["1.0.0", "1.2.0", "2.0.0"]) == "1.2.0"

    def test_prerelease_excluded_by_default(self):
        assert pick_version(">=1.0.0", ["1.0.0", "2.0.0-rc.1"]) == "1.0.0"

    def test_prerelease_allowed_when_range_names_one(self):
        assert includes_prerelease("^2.0.0-rc.0")
        assert pick_version("^2.0.0-rc.0", ["1.0.0", "2.0.0-rc.1"]) == "2.0.0-rc.1"

    def test_no_match_and_invalid_candidates(self):
        assert pick_version("^3.0.0", ["1.0.0", "garbage"]) is None
        assert pick_version("latest", ["1.0.0"]) is None


class TestLocalResolution:
    def test_exact_version_needs_no_network(self, registry, resolver):
        registry.network_enabled = False
        locator = resolver.resolve_descriptor(Descriptor(YARN, "1.22.4"))
        assert locator == Locator(YARN, "1.22.4")
        assert registry.version_requests == []

    def test_url(self, registry, resolver):
        registry.network_enabled = False
        url = "https://example.test/yarn.js"
        locator = resolver.resolve_descriptor(Descriptor(YARN, url))
        assert locator.url == url
        assert locator.reference == url_reference(url)
        assert locator.reference.startswith("url-")

    def test_integrity_is_carried(self, resolver):
        descriptor = Descriptor(NPM, "7.0.0", integrity="sha1." + "a" * 40)
        assert resolver.resolve_descriptor(descriptor).integrity == "sha1." + "a" * 40


class TestOnlineResolution:
    def test_range(self, resolver):
        assert resolve(resolver, NPM, "^7.0.0") == "7.1.0"

    def test_star_skips_prereleases(self, resolver):
        assert resolve(resolver, NPM, "*") == "7.1.0"

    def test_dist_tags(self, resolver):
        assert resolve(resolver, NPM, "latest") == "7.1.0"
        assert resolve(resolver, NPM, "next") == "8.0.0-rc.1"

    def test_yarn_merges_both_registries(self, registry, resolver):
        assert resolve(resolver, YARN, "^1.0.0") == "1.22.5"
        assert resolve(resolver, YARN, "^2.0.0") == "2.4.0"
        assert resolve(resolver, YARN, "stable") == "2.2.2"
        assert "https://repo.yarnpkg.com/tags" in registry.version_requests

    def test_pnpm_ranges(self, resolver):
        assert resolve(resolver, PNPM, "^5.0.0") == "5.18.0"
        assert resolve(resolver, PNPM, ">=6.0.0") == "6.1.0"

    def test_unknown_tag(self, resolver):
        with pytest.raises(ResolutionFailure, match="unknown dist-tag"):
            resolve(resolver, NPM, "canary")

    def test_unsatisfiable_range(self, resolver):
        with pytest.raises(ResolutionFailure) as exc_info:
            resolve(resolver, NPM, "^99.0.0")
        assert "'^99.0.0' to a valid npm release" in str(exc_info.value)


class TestResolutionCache:
    def test_fresh_entry_skips_registry(self, registry, resolver, resolution_cache):
        assert resolve(resolver, NPM, "^7.0.0") == "7.1.0"
        requests = len(registry.version_requests)
        assert resolve(resolver, NPM, "^7.0.0") == "7.1.0"
        assert len(registry.version_requests) == requests
        assert resolution_cache.get(NPM, "^7.0.0").locator.reference == "7.1.0"

    def test_stale_entry_is_refreshed_online(self, registry, resolver, resolution_cache):
        resolution_cache.set(NPM, "^7.0.0", Locator(NPM, "7.0.0"))
        resolution_cache.ttl = -1
        assert resolve(resolver, NPM, "^7.0.0") == "7.1.0"
        assert registry.version_requests

    def test_stale_entry_served_offline(self, registry, resolver, resolution_cache):
        resolution_cache.set(NPM, "^7.0.0", Locator(NPM, "7.0.0"))
        resolution_cache.ttl = -1
        registry.network_enabled = False
        assert resolve(resolver, NPM, "^7.0.0") == "7.0.0"

    def test_entries_are_merged_on_write(self, resolution_cache):
        resolution_cache.set(NPM, "^7.0.0", Locator(NPM, "7.1.0"))
        resolution_cache.set(YARN, "stable", Locator(YARN, "2.2.2"))
        with open(resolution_cache.path, encoding="utf-8") as fh:
            data = json.load(fh)
        assert set(data) == {"npm@^7.0.0", "yarn@stable"}

    def test_corrupt_file_is_ignored(self, resolution_cache):
        with open(resolution_cache.path, "w", encoding="utf-8") as fh:
            fh.write("{oops")
        assert resolution_cache.get(NPM, "^7.0.0") is None


class TestOfflineResolution:
    def test_falls_back_to_installed_versions(self, registry, resolver, home):
        InstallCache(home, registry).ensure_package_manager(Locator(NPM, "7.0.0"))
        registry.network_enabled = False
        assert resolve(resolver, NPM, "^7.0.0") == "7.0.0"

    def test_network_disabled_error(self, registry, resolver):
        registry.network_enabled = False
        with pytest.raises(NetworkDisabledError) as exc_info:
            resolve(resolver, PNPM, "^6.0.0")
        assert "Network access disabled by the environment" in str(exc_info.value)
        assert registry.version_requests == []
