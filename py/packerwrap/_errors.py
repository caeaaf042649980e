"""Mapping of process outcomes and OS failures onto the packerwrap exceptions."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from ._exceptions import ExecutionError, IoError
from ._invocation import format_invocation

if TYPE_CHECKING:
    from ._runner import ExecutionOutcome


log = logging.getLogger(__name__)


def map_os_error(exc: BaseException, path: str | os.PathLike[str] | None = None) -> IoError:
    """Convert a spawn or pipe failure into an :class:`IoError`.

    The OS error number and text are preserved so the caller can diagnose
    the failure without re-running.
    """
    errno = getattr(exc, 'errno', None)
    strerror = getattr(exc, 'strerror', None) or str(exc)
    target = f" {os.fspath(path)}" if path is not None else ''
    message = f"Failed to run{target}: {strerror}"
    if errno is not None:
        message = f"{message} (errno {errno})"
    return IoError(message, path=path, errno=errno, strerror=strerror)


def check_outcome(outcome: 'ExecutionOutcome') -> 'ExecutionOutcome':
    """Return *outcome* if it succeeded, otherwise raise :class:`ExecutionError`.

    Exit code ``0`` is success.  Anything else, an expired timeout or a
    cancellation raises, with the captured stderr attached verbatim.
    No retry is attempted.
    """
    if outcome.success:
        return outcome

    command = format_invocation(outcome.command)
    if outcome.timed_out:
        message = f"Packer timed out after {outcome.duration:.1f}s\nCommand: {command}"
    elif outcome.cancelled:
        message = f"Packer was cancelled\nCommand: {command}"
    else:
        message = f"Packer exited with code {outcome.returncode}\nCommand: {command}"
    if outcome.stderr:
        message = f"{message}\n{outcome.stderr.rstrip()}"

    log.debug(f"Mapping failed outcome to ExecutionError: {outcome}")
    raise ExecutionError(
        message,
        returncode=outcome.returncode,
        stdout=outcome.stdout,
        stderr=outcome.stderr,
        command=outcome.command,
        timed_out=outcome.timed_out,
        cancelled=outcome.cancelled,
        outcome=outcome,
    )
