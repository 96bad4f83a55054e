"""Shared HTTP helpers used by the registry client.

Encapsulates common request/timeout error handling so callers avoid
duplicating try/except blocks. Failures are surfaced once as RegistryError;
no retries are attempted here.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import requests

from constants import Constants
from errors import RegistryError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def safe_get(url: str, *, context: str, **kwargs: Any) -> requests.Response:
    """Perform a GET request with consistent error handling and DEBUG traces."""
    safe_target = safe_url(url)
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_target,
                    context=context
                )
            )
        try:
            res = requests.get(url, timeout=Constants.REQUEST_TIMEOUT, **kwargs)
        except requests.Timeout as exc:
            raise RegistryError(
                f"{context} request to {safe_target} timed out after "
                f"{Constants.REQUEST_TIMEOUT} seconds"
            ) from exc
        except requests.RequestException as exc:  # includes ConnectionError
            raise RegistryError(f"{context} connection error on {safe_target}: {exc}") from exc
    if is_debug_enabled(logger):
        logger.debug(
            "HTTP response",
            extra=extra_context(
                event="http_response",
                component="http_client",
                action="GET",
                status_code=res.status_code,
                duration_ms=t.duration_ms(),
                target=safe_target,
                context=context
            )
        )
    return res


def get_json(
    url: str,
    *,
    context: str,
    headers: Optional[Dict[str, str]] = None,
) -> Any:
    """Fetch ``url`` and decode its JSON body.

    Raises:
        RegistryError: on transport failure, non-200 status or invalid JSON.
    """
    res = safe_get(url, context=context, headers=headers)
    if res.status_code != 200:
        raise RegistryError(
            f"{context} request to {safe_url(url)} failed with HTTP {res.status_code}"
        )
    try:
        return json.loads(res.text)
    except json.JSONDecodeError as exc:
        raise RegistryError(f"{context} returned invalid JSON from {safe_url(url)}") from exc


def get_bytes(url: str, *, context: str) -> bytes:
    """Download ``url`` and return the raw body."""
    res = safe_get(url, context=context)
    if res.status_code != 200:
        raise RegistryError(
            f"{context} download of {safe_url(url)} failed with HTTP {res.status_code}"
        )
    logger.debug("Downloaded %d bytes from %s", len(res.content), safe_url(url))
    return res.content
