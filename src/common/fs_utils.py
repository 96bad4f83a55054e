"""Filesystem primitives: advisory locks and atomic writes.

Everything that mutates the shared cache home goes through these helpers so
that a rename is the only point where a change becomes visible.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import shutil
import tempfile
from typing import Any, Iterator

import filelock

from constants import Constants
from errors import LockTimeoutError

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def file_lock(lock_path: str) -> Iterator[filelock.FileLock]:
    """Hold an exclusive cross-process lock backed by ``lock_path``.

    Raises:
        LockTimeoutError: if LOCK_TIMEOUT_SEC is non-negative and elapses first.
    """
    os.makedirs(os.path.dirname(lock_path), exist_ok=True)
    lock = filelock.FileLock(lock_path, timeout=Constants.LOCK_TIMEOUT_SEC)
    try:
        lock.acquire()
    except filelock.Timeout as exc:
        raise LockTimeoutError(lock_path, Constants.LOCK_TIMEOUT_SEC) from exc
    try:
        yield lock
    finally:
        lock.release()


def atomic_write_json(path: str, data: Any) -> None:
    """Write ``data`` as JSON to a temp file next to ``path`` then rename it over ``path``."""
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=directory, prefix=".", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2, sort_keys=True)
            fh.write("\n")
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            logger.debug("Failed to remove temp file: %s", tmp)
        raise


def read_json(path: str) -> Any:
    """Load a JSON document; returns None when the file does not exist."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)
    except FileNotFoundError:
        return None


def remove_tree(path: str) -> None:
    """Remove a directory tree, logging instead of failing on leftovers."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.debug("Failed to remove %s: %s", path, exc)
