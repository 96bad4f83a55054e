"""Runtime configuration: cache home, network toggle and tunable overrides.

Precedence, lowest to highest: built-in Constants, YAML config file
(COREPACK_CONFIG or ``<home>/config.yml``), environment variables.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import yaml

from constants import Constants, default_home

logger = logging.getLogger(__name__)

_FALSE_VALUES = ("0", "false", "no", "off")

# YAML key -> (Constants attribute, converter)
_CONFIG_KEYS = {
    "npm_registry": ("REGISTRY_URL_NPM", str),
    "node": ("NODE_EXECUTABLE", str),
    "resolution_cache_ttl": ("RESOLUTION_CACHE_TTL_SEC", int),
    "lock_timeout": ("LOCK_TIMEOUT_SEC", float),
    "request_timeout": ("REQUEST_TIMEOUT", float),
    "temp_sweep_age": ("TEMP_SWEEP_AGE_SEC", int),
}


def get_home() -> str:
    """Return the cache home (COREPACK_HOME, else the per-user default)."""
    override = os.environ.get(Constants.ENV_HOME)
    if override and override.strip():
        return os.path.abspath(os.path.expanduser(override.strip()))
    return default_home()


def is_network_enabled() -> bool:
    """Return False when COREPACK_ENABLE_NETWORK disables network access."""
    value = os.environ.get(Constants.ENV_ENABLE_NETWORK)
    if value is None:
        return True
    return value.strip().lower() not in _FALSE_VALUES


def load_config(path: Optional[str]) -> Dict[str, Any]:
    """Load a YAML config file.

    Returns:
        The parsed mapping, or an empty dict when the file is absent or invalid.
    """
    if not path:
        return {}
    if not os.path.isfile(path):
        logger.debug("Config file not found: %s", path)
        return {}
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Failed to load config %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: expected a mapping", path)
        return {}
    return data


def apply_config(cfg: Dict[str, Any]) -> None:
    """Apply known config keys to Constants; unknown keys are logged and ignored."""
    for key, value in cfg.items():
        target = _CONFIG_KEYS.get(key)
        if target is None:
            logger.warning("Unknown config key '%s' ignored", key)
            continue
        attr, convert = target
        try:
            setattr(Constants, attr, convert(value))
        except (TypeError, ValueError):
            logger.warning("Invalid value for config key '%s': %r", key, value)


def apply_environment_overrides() -> None:
    """Apply COREPACK_* environment overrides to Constants."""
    registry = os.environ.get(Constants.ENV_NPM_REGISTRY)
    if registry:
        Constants.REGISTRY_URL_NPM = registry.rstrip("/")
    node = os.environ.get(Constants.ENV_NODE)
    if node:
        Constants.NODE_EXECUTABLE = node


def configure(config_path: Optional[str] = None) -> None:
    """Load the config file (explicit, env, or home default) then env overrides."""
    path = config_path or os.environ.get(Constants.ENV_CONFIG)
    if not path:
        candidate = os.path.join(get_home(), Constants.CONFIG_FILE)
        path = candidate if os.path.isfile(candidate) else None
    cfg = load_config(path)
    if cfg:
        logger.debug("Loaded config from %s", path)
        apply_config(cfg)
    apply_environment_overrides()
