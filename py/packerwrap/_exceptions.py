"""Exception classes for packerwrap.

Hierarchy::

    PackerError
    ├── NotFoundError      (executable missing or not executable)
    ├── ConfigError        (option validation failed, nothing was spawned)
    ├── IoError            (spawn or stream failure at the process level)
    └── ExecutionError     (process ran and failed, timed out or was cancelled)

This module is re-exported as the public ``packerwrap.exceptions`` submodule.
Each class carries a ``kind`` tag so callers can switch on the variant
without ``isinstance`` chains::

    try:
        packer.build('image.pkr.hcl', options)
    except PackerError as e:
        if e.kind == 'execution':
            print(e.returncode, e.stderr)
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from ._runner import ExecutionOutcome


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

class PackerError(Exception):
    """Root base class for all packerwrap exceptions.

    Catching this class will catch any exception raised by the package.
    """

    kind: str = 'packer'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ---------------------------------------------------------------------------
# Location / spawn errors
# ---------------------------------------------------------------------------

class NotFoundError(PackerError):
    """The packer executable could not be resolved.

    Raised by the locator when no candidate exists or a candidate lacks
    execute permission, and by the handle when the resolved binary has
    disappeared before a spawn.
    """

    kind = 'not_found'

    def __init__(
        self,
        message: str,
        *,
        path: str | Path | None = None,
        candidates: Sequence[str | Path] = (),
        errno: int | None = None,
    ):
        super().__init__(message)
        self.path = Path(path) if path is not None else None
        self.candidates = [Path(c) for c in candidates]
        self.errno = errno


class IoError(PackerError):
    """The child process could not be spawned or its output could not be read.

    ``errno`` and ``strerror`` mirror the underlying :class:`OSError` when
    there is one.
    """

    kind = 'io'

    def __init__(
        self,
        message: str,
        *,
        path: str | Path | None = None,
        errno: int | None = None,
        strerror: str | None = None,
    ):
        super().__init__(message)
        self.path = Path(path) if path is not None else None
        self.errno = errno
        self.strerror = strerror


# ---------------------------------------------------------------------------
# Validation errors
# ---------------------------------------------------------------------------

class ConfigError(PackerError):
    """An option value failed validation.

    Raised by :meth:`BuildOptionsBuilder.build` before any process exists.
    ``violations`` lists every ``(field, reason)`` pair found; ``field`` is
    the first offending field.
    """

    kind = 'config'

    def __init__(self, message: str, *, field: str | None = None,
                 violations: Sequence[tuple[str, str]] = ()):
        super().__init__(message)
        self.violations = list(violations)
        if field is None and self.violations:
            field = self.violations[0][0]
        self.field = field

    @classmethod
    def from_violations(cls, violations: Sequence[tuple[str, str]]) -> 'ConfigError':
        """Build a single error summarising every violation."""
        lines = [f"{name}: {reason}" for name, reason in violations]
        if len(lines) == 1:
            message = f"Invalid option {lines[0]}"
        else:
            message = "Invalid options:\n  " + "\n  ".join(lines)
        return cls(message, violations=violations)


# ---------------------------------------------------------------------------
# Process errors
# ---------------------------------------------------------------------------

class ExecutionError(PackerError):
    """The packer process ran but did not succeed.

    Covers a non-zero exit status, an expired timeout and cancellation.
    The captured ``stderr`` is attached verbatim and is never discarded.
    """

    kind = 'execution'

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        stdout: str = '',
        stderr: str = '',
        command: Sequence[str] = (),
        timed_out: bool = False,
        cancelled: bool = False,
        outcome: 'ExecutionOutcome | None' = None,
    ):
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.command = list(command)
        self.timed_out = timed_out
        self.cancelled = cancelled
        self.outcome = outcome
