"""Tests for the registry client and HTTP helpers (requests mocked)."""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from constants import Constants
from definitions import REGISTRY_URL, RegistrySpec
from errors import NetworkDisabledError, RegistryError
from registry.client import RegistryClient


def _response(status=200, body=None, content=b""):
    res = MagicMock()
    res.status_code = status
    res.text = json.dumps(body) if body is not None else ""
    res.content = content
    return res


NPM_SPEC = RegistrySpec(type="npm", package="pnpm")


class TestFetchVersions:
    @patch("common.http_client.requests.get")
    def test_npm_packument(self, mock_get):
        mock_get.return_value = _response(body={
            "versions": {"6.0.0": {}, "6.1.0": {}},
            "dist-tags": {"latest": "6.1.0"},
        })
        versions, tags = RegistryClient().fetch_versions(NPM_SPEC)
        assert versions == ["6.0.0", "6.1.0"]
        assert tags == {"latest": "6.1.0"}
        url = mock_get.call_args[0][0]
        assert url == f"{Constants.REGISTRY_URL_NPM}/pnpm"
        assert mock_get.call_args[1]["timeout"] == Constants.REQUEST_TIMEOUT

    @patch("common.http_client.requests.get")
    def test_tag_index(self, mock_get):
        mock_get.return_value = _response(body={
            "latest": {"stable": "2.2.2"},
            "tags": ["2.0.0", "2.2.2"],
        })
        spec = RegistrySpec(type=REGISTRY_URL, url="https://repo.test/tags")
        versions, tags = RegistryClient().fetch_versions(spec)
        assert versions == ["2.0.0", "2.2.2"]
        assert tags == {"stable": "2.2.2"}

    @patch("common.http_client.requests.get")
    def test_network_disabled_makes_no_request(self, mock_get):
        with pytest.raises(NetworkDisabledError):
            RegistryClient(network_enabled=False).fetch_versions(NPM_SPEC)
        mock_get.assert_not_called()

    @patch("common.http_client.requests.get")
    def test_http_error(self, mock_get):
        mock_get.return_value = _response(status=404)
        with pytest.raises(RegistryError, match="HTTP 404"):
            RegistryClient().fetch_versions(NPM_SPEC)

    @patch("common.http_client.requests.get")
    def test_invalid_json(self, mock_get):
        res = _response()
        res.text = "<html>"
        mock_get.return_value = res
        with pytest.raises(RegistryError, match="invalid JSON"):
            RegistryClient().fetch_versions(NPM_SPEC)

    @patch("common.http_client.requests.get", side_effect=requests.Timeout("slow"))
    def test_timeout(self, _mock_get):
        with pytest.raises(RegistryError, match="timed out"):
            RegistryClient().fetch_versions(NPM_SPEC)

    @patch("common.http_client.requests.get", side_effect=requests.ConnectionError("refused"))
    def test_connection_error(self, _mock_get):
        with pytest.raises(RegistryError, match="connection error"):
            RegistryClient().fetch_versions(NPM_SPEC)


class TestFetchDist:
    @patch("common.http_client.requests.get")
    def test_integrity(self, mock_get):
        mock_get.return_value = _response(body={"dist": {
            "tarball": "https://registry.test/pnpm/-/pnpm-6.1.0.tgz",
            "integrity": "sha512-abc=",
            "shasum": "f" * 40,
        }})
        dist = RegistryClient().fetch_dist("pnpm", "6.1.0")
        assert dist.tarball.endswith("pnpm-6.1.0.tgz")
        assert dist.integrity == "sha512-abc="

    @patch("common.http_client.requests.get")
    def test_shasum_fallback(self, mock_get):
        mock_get.return_value = _response(body={"dist": {"tarball": "t", "shasum": "f" * 40}})
        assert RegistryClient().fetch_dist("pnpm", "6.1.0").integrity == "sha1." + "f" * 40

    @patch("common.http_client.requests.get")
    def test_missing_tarball(self, mock_get):
        mock_get.return_value = _response(body={"dist": {}})
        with pytest.raises(RegistryError, match="no tarball"):
            RegistryClient().fetch_dist("pnpm", "6.1.0")


class TestDownload:
    @patch("common.http_client.requests.get")
    def test_returns_body(self, mock_get):
        mock_get.return_value = _response(content=b"payload")
        assert RegistryClient().download("https://registry.test/x.tgz") == b"payload"

    @patch("common.http_client.requests.get")
    def test_failure(self, mock_get):
        mock_get.return_value = _response(status=500)
        with pytest.raises(RegistryError, match="HTTP 500"):
            RegistryClient().download("https://registry.test/x.tgz")
