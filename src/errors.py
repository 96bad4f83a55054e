"""Exception hierarchy surfaced by the CLI.

Every error carries the context needed to diagnose it (manager name, range,
offending path) in its message; the CLI prints it once and exits with
``exit_code``.
"""

from __future__ import annotations

from typing import Optional

from constants import Constants, ExitCodes


class CorepackError(Exception):
    """Base class for all expected failures."""

    exit_code = ExitCodes.FAILURE.value
    label = "Error"


class UsageError(CorepackError):
    """Invalid or conflicting command line usage."""

    label = "Usage Error"


class NoProjectError(UsageError):
    """No manifest was found and no descriptor was given."""


class NoSpecError(UsageError):
    """The nearest manifest has no packageManager field."""


class MalformedSpecError(CorepackError):
    """A descriptor string or manifest could not be parsed."""

    def __init__(self, raw: str, source: Optional[str], reason: str):
        self.raw = raw
        self.source = source
        where = f" (from {source})" if source else ""
        super().__init__(f"Invalid package manager specification '{raw}'{where}: {reason}")


class ResolutionFailure(CorepackError):
    """No available release satisfies the requested range."""

    def __init__(self, name: str, range_: str, detail: Optional[str] = None):
        self.name = name
        self.range = range_
        message = f"Failed to successfully resolve '{range_}' to a valid {name} release"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class NetworkDisabledError(CorepackError):
    """Network access is disabled and nothing usable is cached."""

    def __init__(self, target: str):
        self.target = target
        super().__init__(
            f"Network access disabled by the environment; can't reach {target} "
            f"(unset {Constants.ENV_ENABLE_NETWORK} or set it to 1 to allow it)"
        )


class IntegrityError(CorepackError):
    """Downloaded or imported content does not match its expected hash."""

    def __init__(self, subject: str, expected: str, actual: str):
        self.subject = subject
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Mismatched hash for {subject}: expected {expected}, got {actual}"
        )


class WrongPackageManagerError(CorepackError):
    """The project pins another package manager than the one invoked."""

    def __init__(self, invoked: str, pinned: str, manifest: Optional[str] = None):
        self.invoked = invoked
        self.pinned = pinned
        where = f" (see {manifest})" if manifest else ""
        super().__init__(
            f"This project is configured to use {pinned}{where}; "
            f"refusing to run {invoked} on it"
        )


class ExecutionError(CorepackError):
    """The package manager binary could not be started."""


class RegistryError(CorepackError):
    """The registry could not be queried or returned unusable data."""


class LockTimeoutError(CorepackError):
    """A cache lock could not be acquired within LOCK_TIMEOUT_SEC."""

    def __init__(self, lock_path: str, timeout: float):
        self.lock_path = lock_path
        super().__init__(
            f"Timed out after {timeout}s waiting for lock {lock_path}; "
            "another corepack process may be stuck"
        )
