"""Shared fixtures: isolated cache home and an in-memory registry."""

import logging
import sys
from unittest.mock import patch

import pytest

from common import logging_utils
from constants import Constants
from engine.core import Engine
from fake_registry import FakeRegistryClient

_TUNABLES = (
    "REGISTRY_URL_NPM",
    "NODE_EXECUTABLE",
    "RESOLUTION_CACHE_TTL_SEC",
    "LOCK_TIMEOUT_SEC",
    "REQUEST_TIMEOUT",
    "TEMP_SWEEP_AGE_SEC",
)


@pytest.fixture(autouse=True)
def _isolated_constants(monkeypatch):
    """Restore tunables changed by config loading and run bins with Python."""
    saved = {name: getattr(Constants, name) for name in _TUNABLES}
    for var in (Constants.ENV_HOME, Constants.ENV_ENABLE_NETWORK, Constants.ENV_NPM_REGISTRY,
                Constants.ENV_NODE, Constants.ENV_LOG_LEVEL, Constants.ENV_CONFIG):
        monkeypatch.delenv(var, raising=False)
    Constants.NODE_EXECUTABLE = sys.executable
    yield
    for name, value in saved.items():
        setattr(Constants, name, value)
    if logging_utils._HANDLER is not None:  # pylint: disable=protected-access
        logging.getLogger().removeHandler(logging_utils._HANDLER)  # pylint: disable=protected-access
        logging_utils._HANDLER.close()  # pylint: disable=protected-access
        logging_utils._HANDLER = None  # pylint: disable=protected-access


@pytest.fixture
def home(tmp_path, monkeypatch):
    path = tmp_path / "corepack-home"
    path.mkdir()
    monkeypatch.setenv(Constants.ENV_HOME, str(path))
    # Config loading must not replace the interpreter used to run fake bins
    monkeypatch.setenv(Constants.ENV_NODE, sys.executable)
    return str(path)


@pytest.fixture
def project(tmp_path):
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def registry():
    return FakeRegistryClient()


@pytest.fixture
def engine(home, registry):
    return Engine(home, network_enabled=True, client=registry)


@pytest.fixture
def offline_engine(home, registry):
    return Engine(home, network_enabled=False, client=registry)


@pytest.fixture
def patched_client(registry):
    """Make Engine.from_environment build engines around ``registry``."""
    def factory(network_enabled=True):
        registry.network_enabled = network_enabled
        return registry

    with patch("engine.core.RegistryClient", side_effect=factory):
        yield registry
