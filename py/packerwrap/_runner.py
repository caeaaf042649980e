"""Child process execution for packer invocations.

:class:`ProcessRunner` is the capability the rest of the package depends
on: "run this argument vector in this directory and report what happened".
:class:`SubprocessRunner` is the real implementation; tests substitute
:class:`packerwrap.testing.RecordingRunner`.
"""

from __future__ import annotations

import logging
import os
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Callable, Mapping, Protocol, Sequence

from ._errors import map_os_error
from ._exceptions import IoError
from ._invocation import format_invocation


log = logging.getLogger(__name__)

LineCallback = Callable[[str], None]

# Seconds between cancel/deadline checks while waiting on the child.
_POLL_INTERVAL = 0.1

# Seconds a terminated child gets before it is killed.
_TERMINATE_GRACE = 5.0


@dataclass(frozen=True)
class ExecutionOutcome:
    """Captured result of one packer invocation.

    A non-zero ``returncode`` is reported here, not raised; see
    :func:`packerwrap.check_outcome`.

    Attributes:
        command: Full argument vector including the executable.
        returncode: Exit status (negative when killed by a signal on POSIX).
        stdout: Captured standard output text.
        stderr: Captured standard error text.
        duration: Wall-clock seconds from spawn to exit.
        timed_out: The deadline expired and the child was terminated.
        cancelled: The cancel event fired and the child was terminated.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    duration: float
    timed_out: bool = False
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not (self.timed_out or self.cancelled)

    def __str__(self) -> str:
        if self.timed_out:
            status = 'timed out'
        elif self.cancelled:
            status = 'cancelled'
        else:
            status = f'exit {self.returncode}'
        return f"ExecutionOutcome({status}, {self.duration:.2f}s)"


class ProcessRunner(Protocol):
    """Anything that can spawn an argument vector and report its outcome."""

    def run(
        self,
        executable: str | os.PathLike[str],
        invocation: Sequence[str],
        *,
        cwd: str | os.PathLike[str] | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
        on_stdout: LineCallback | None = None,
        on_stderr: LineCallback | None = None,
    ) -> ExecutionOutcome:
        ...


def _merge_environment(env: Mapping[str, str] | None) -> dict[str, str] | None:
    if env is None:
        return None
    merged = os.environ.copy()
    merged.update(env)
    return merged


class _StreamReader:
    """Drains one child pipe on a background thread."""

    def __init__(self, stream: IO[str], name: str, callback: LineCallback | None):
        self._stream = stream
        self._name = name
        self._callback = callback
        self._chunks: list[str] = []
        self.error: OSError | ValueError | None = None
        self._thread = threading.Thread(
            target=self._pump, name=f'packerwrap-{name}', daemon=True
        )
        self._thread.start()

    def _pump(self) -> None:
        try:
            for line in iter(self._stream.readline, ''):
                self._chunks.append(line)
                if self._callback:
                    try:
                        self._callback(line.rstrip('\r\n'))
                    except Exception as e:
                        log.warning(f"{self._name} callback error: {e}")
        except (OSError, ValueError) as e:
            self.error = e
        finally:
            try:
                self._stream.close()
            except OSError:
                pass

    def join(self, timeout: float | None = None) -> str:
        self._thread.join(timeout)
        if self._thread.is_alive():
            log.warning(f"{self._name} still open after child exit; output may be incomplete")
        return ''.join(self._chunks)


class SubprocessRunner:
    """Runs packer with :class:`subprocess.Popen`, capturing both streams.

    Each call owns its child process and buffers; instances hold no state
    and may be shared between threads.
    """

    def __init__(self, poll_interval: float = _POLL_INTERVAL,
                 terminate_grace: float = _TERMINATE_GRACE):
        self.poll_interval = poll_interval
        self.terminate_grace = terminate_grace

    def __repr__(self) -> str:
        return f"<SubprocessRunner poll={self.poll_interval}s>"

    def _terminate(self, process: subprocess.Popen) -> None:
        """Terminate *process*, killing it if it ignores the request."""
        try:
            process.terminate()
            try:
                process.wait(timeout=self.terminate_grace)
            except subprocess.TimeoutExpired:
                log.warning("Process did not terminate gracefully, forcing kill...")
                process.kill()
                process.wait()
        except OSError as e:
            log.error(f"Error terminating process: {e}")

    def _wait(
        self,
        process: subprocess.Popen,
        deadline: float | None,
        cancel: threading.Event | None,
    ) -> tuple[bool, bool]:
        """Block until exit, deadline or cancellation.

        Returns:
            ``(timed_out, cancelled)``.
        """
        if deadline is None and cancel is None:
            process.wait()
            return False, False

        while True:
            wait_for = self.poll_interval
            if deadline is not None:
                wait_for = max(0.0, min(wait_for, deadline - time.monotonic()))
            try:
                process.wait(timeout=wait_for)
                return False, False
            except subprocess.TimeoutExpired:
                pass
            if cancel is not None and cancel.is_set():
                log.warning(f"Cancelling packer process {process.pid}")
                self._terminate(process)
                return False, True
            if deadline is not None and time.monotonic() >= deadline:
                self._terminate(process)
                return True, False

    def run(
        self,
        executable: str | os.PathLike[str],
        invocation: Sequence[str],
        *,
        cwd: str | os.PathLike[str] | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
        on_stdout: LineCallback | None = None,
        on_stderr: LineCallback | None = None,
    ) -> ExecutionOutcome:
        """Spawn ``[executable, *invocation]`` and wait for it.

        Args:
            executable: Path of the binary to run.
            invocation: Arguments following the executable.
            cwd: Working directory; ``None`` inherits the caller's.
            env: Extra variables layered over the current environment.
            timeout: Seconds before the child is terminated.
            cancel: Event that terminates the child when set.
            on_stdout: Called with each stdout line as it arrives.
            on_stderr: Called with each stderr line as it arrives.

        Returns:
            The outcome, whatever the exit status.

        Raises:
            IoError: The working directory is missing, the process could not
                be spawned, or its output could not be read.
        """
        command = [os.fspath(executable)] + [str(token) for token in invocation]

        if cwd is not None and not Path(cwd).is_dir():
            raise IoError(f"Working directory does not exist: {cwd}", path=cwd)

        log.info(f"Executing: {format_invocation(command)}")
        if cwd is not None:
            log.info(f"Working directory: {cwd}")

        process_kwargs = {
            'cwd': os.fspath(cwd) if cwd is not None else None,
            'env': _merge_environment(env),
            'stdout': subprocess.PIPE,
            'stderr': subprocess.PIPE,
            'text': True,
            'encoding': 'utf-8',
            'errors': 'replace',
        }
        if os.name == 'nt':
            process_kwargs['creationflags'] = subprocess.CREATE_NO_WINDOW

        start = time.monotonic()
        deadline = start + timeout if timeout is not None else None
        try:
            process = subprocess.Popen(command, **process_kwargs)
        except OSError as e:
            raise map_os_error(e, command[0]) from e

        log.debug(f"Process started with PID: {process.pid}")
        stdout_reader = _StreamReader(process.stdout, 'stdout', on_stdout)
        stderr_reader = _StreamReader(process.stderr, 'stderr', on_stderr)

        try:
            timed_out, cancelled = self._wait(process, deadline, cancel)
        except KeyboardInterrupt:
            log.warning("Interrupted, terminating packer process...")
            self._terminate(process)
            raise

        join_timeout = self.terminate_grace if (timed_out or cancelled) else None
        stdout = stdout_reader.join(join_timeout)
        stderr = stderr_reader.join(join_timeout)
        duration = time.monotonic() - start

        for reader in (stdout_reader, stderr_reader):
            if reader.error is not None:
                raise map_os_error(reader.error, command[0])

        if timed_out:
            log.error(f"Process timed out after {timeout}s")

        outcome = ExecutionOutcome(
            command=tuple(command),
            returncode=process.returncode,
            stdout=stdout,
            stderr=stderr,
            duration=duration,
            timed_out=timed_out,
            cancelled=cancelled,
        )
        log.info(f"Process finished: {outcome}")
        return outcome
