"""packerwrap.testing -- Test helpers for code that drives packer through packerwrap.

Provides a fake ``packer`` executable generator, a recording runner that
never spawns anything, and a context manager that points executable lookup
at a directory of your choosing.

Usage example::

    import packerwrap
    import packerwrap.testing as pw_testing

    def test_build_reports_stderr(tmp_path):
        exe = pw_testing.fake_executable(tmp_path, stderr='template invalid', exit_code=1)
        packer = packerwrap.Packer(exe)
        with pytest.raises(packerwrap.ExecutionError) as exc_info:
            packer.build('image.pkr.hcl')
        assert exc_info.value.stderr == 'template invalid'

    def test_tokens_only():
        runner = pw_testing.RecordingRunner()
        with pw_testing.patch_search_path([bin_dir]):
            packerwrap.Packer(runner=runner).build('image.pkr.hcl')
        assert runner.calls[0].invocation == ['build', 'image.pkr.hcl']
"""

from __future__ import annotations

import os
import shlex
import stat
import sys
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Sequence

from ._locator import EXECUTABLE_ENV_VAR, default_executable_name
from ._runner import ExecutionOutcome, LineCallback


_FAKE_SCRIPT = '''\
import json
import os
import sys
import time

time.sleep({sleep!r})
if {echo_args!r}:
    sys.stdout.write(json.dumps({{"args": sys.argv[1:], "cwd": os.getcwd(),
                                 "env": {{k: os.environ.get(k) for k in {echo_env!r}}}}}))
else:
    sys.stdout.write({stdout!r})
sys.stdout.flush()
sys.stderr.write({stderr!r})
sys.stderr.flush()
sys.exit({exit_code!r})
'''


def fake_executable(
    directory: str | Path,
    *,
    stdout: str = '',
    stderr: str = '',
    exit_code: int = 0,
    sleep: float = 0.0,
    echo_args: bool = False,
    echo_env: Sequence[str] = (),
    name: str | None = None,
) -> Path:
    """Write an executable stand-in for ``packer`` into *directory*.

    The stand-in is a ``/bin/sh`` launcher that runs a small Python script
    with the current interpreter, so it is only usable on POSIX systems.

    Args:
        directory: Where to create the executable.
        stdout: Text written to stdout (ignored when *echo_args* is set).
        stderr: Text written to stderr.
        exit_code: Exit status.
        sleep: Seconds to sleep before writing anything.
        echo_args: Write ``{"args": [...], "cwd": ..., "env": {...}}`` as JSON
            to stdout instead of *stdout*.
        echo_env: Variable names included in the echoed ``env`` mapping.
        name: File name; defaults to the platform packer name.

    Returns:
        Path to the executable.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    exe = directory / (name or default_executable_name())
    script = exe.with_name(f'{exe.name}_impl.py')

    script.write_text(
        _FAKE_SCRIPT.format(
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code,
            sleep=sleep,
            echo_args=echo_args,
            echo_env=list(echo_env),
        ),
        encoding='utf-8',
    )
    exe.write_text(
        '#!/bin/sh\n'
        f'exec {shlex.quote(sys.executable)} {shlex.quote(str(script.resolve()))} "$@"\n',
        encoding='utf-8',
    )
    exe.chmod(exe.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return exe


@contextmanager
def patch_search_path(directories: Iterable[str | Path], *, clear_override: bool = True):
    """Context manager that temporarily replaces ``PATH``.

    Executable lookup inside the block only sees *directories*.  By default
    ``PACKERWRAP_EXECUTABLE`` is also cleared so a developer's own override
    does not leak into tests.

    Example::

        with patch_search_path([tmp_path / 'bin']):
            packer = packerwrap.Packer()
    """
    new_value = os.pathsep.join(str(d) for d in directories)

    old_path = os.environ.get('PATH')
    old_override = os.environ.get(EXECUTABLE_ENV_VAR)
    os.environ['PATH'] = new_value
    if clear_override:
        os.environ.pop(EXECUTABLE_ENV_VAR, None)
    try:
        yield
    finally:
        if old_path is None:
            os.environ.pop('PATH', None)
        else:
            os.environ['PATH'] = old_path

        if clear_override and old_override is not None:
            os.environ[EXECUTABLE_ENV_VAR] = old_override


@dataclass
class RecordedCall:
    """One call captured by :class:`RecordingRunner`."""

    executable: str
    invocation: list[str]
    cwd: str | None
    env: dict[str, str]
    timeout: float | None
    streamed: bool


@dataclass
class RecordingRunner:
    """Process runner that records calls instead of spawning processes.

    Each call returns the next entry of *outcomes* (as
    ``(returncode, stdout, stderr)`` tuples); once they run out the
    defaults are used.
    """

    returncode: int = 0
    stdout: str = ''
    stderr: str = ''
    outcomes: list[tuple[int, str, str]] = field(default_factory=list)
    calls: list[RecordedCall] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

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
        with self._lock:
            self.calls.append(RecordedCall(
                executable=os.fspath(executable),
                invocation=list(invocation),
                cwd=os.fspath(cwd) if cwd is not None else None,
                env=dict(env) if env else {},
                timeout=timeout,
                streamed=on_stdout is not None or on_stderr is not None,
            ))
            if self.outcomes:
                returncode, stdout, stderr = self.outcomes.pop(0)
            else:
                returncode, stdout, stderr = self.returncode, self.stdout, self.stderr

        for callback, text in ((on_stdout, stdout), (on_stderr, stderr)):
            if callback:
                for line in text.splitlines():
                    callback(line)

        return ExecutionOutcome(
            command=(os.fspath(executable), *invocation),
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
            duration=0.0,
            cancelled=cancel is not None and cancel.is_set(),
        )

    @property
    def invocations(self) -> list[list[str]]:
        """Argument vectors of every recorded call, in order."""
        return [call.invocation for call in self.calls]
