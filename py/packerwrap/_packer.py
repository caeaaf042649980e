"""The :class:`Packer` handle and its per-subcommand operations."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Mapping, Sequence

from ._errors import check_outcome
from ._exceptions import NotFoundError
from ._invocation import assemble_invocation
from ._locator import is_executable, locate_executable
from ._options import BuildOptions
from ._runner import ExecutionOutcome, LineCallback, ProcessRunner, SubprocessRunner


log = logging.getLogger(__name__)

PathArg = str | os.PathLike[str]


class Packer:
    """Typed wrapper around one verified packer executable.

    The executable is resolved and checked when the handle is created; a
    handle is never built around a path that does not exist or cannot be
    executed.  Handles are immutable: the ``with_*`` methods return new
    handles and the handle owns no process state, so one instance may be
    used from several threads at once.

    Args:
        executable: Explicit executable path or name.  When omitted the
            ``PACKERWRAP_EXECUTABLE`` variable, ``PATH`` and finally the
            current directory are searched.
        working_dir: Directory every invocation runs in (defaults to the
            caller's working directory).
        env: Extra environment variables for the child, layered over the
            current environment (e.g. ``{'PACKER_LOG': '1'}``).
        timeout: Default deadline in seconds for every invocation.
        runner: Process runner; defaults to :class:`SubprocessRunner`.
        search_path: Directories searched instead of ``PATH``.

    Raises:
        NotFoundError: No usable executable was found.

    Examples::

        packer = Packer().with_working_dir('images/base')
        options = BuildOptions.builder().force().var('region', 'eu-west-1').build()
        outcome = packer.build('base.pkr.hcl', options)
        print(outcome.stdout)
    """

    def __init__(
        self,
        executable: PathArg | None = None,
        *,
        working_dir: PathArg | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
        runner: ProcessRunner | None = None,
        search_path: str | None = None,
    ) -> None:
        self._executable = locate_executable(executable, search_path=search_path)
        self._working_dir = Path(working_dir) if working_dir is not None else None
        self._env = dict(env) if env else None
        self._timeout = timeout
        self._runner: ProcessRunner = runner if runner is not None else SubprocessRunner()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def executable(self) -> Path:
        """Absolute path of the verified executable."""
        return self._executable

    @property
    def working_dir(self) -> Path | None:
        """Working directory override, or ``None`` for the caller's."""
        return self._working_dir

    @property
    def env(self) -> dict[str, str]:
        """Copy of the extra child environment variables."""
        return dict(self._env) if self._env else {}

    @property
    def timeout(self) -> float | None:
        return self._timeout

    @property
    def runner(self) -> ProcessRunner:
        return self._runner

    # ------------------------------------------------------------------
    # Dunder methods
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"<Packer {self._executable}>"

    def __repr__(self) -> str:
        cwd = f" cwd={self._working_dir}" if self._working_dir else ""
        return f"<Packer {self._executable}{cwd}>"

    # ------------------------------------------------------------------
    # Derived handles
    # ------------------------------------------------------------------

    def _replace(self, **changes) -> 'Packer':
        clone = object.__new__(Packer)
        clone.__dict__.update(self.__dict__)
        for name, value in changes.items():
            setattr(clone, f'_{name}', value)
        return clone

    def with_working_dir(self, directory: PathArg | None) -> 'Packer':
        """Return a handle that runs packer in *directory*."""
        return self._replace(working_dir=Path(directory) if directory is not None else None)

    def with_env(self, env: Mapping[str, str] | None) -> 'Packer':
        """Return a handle whose children receive the extra variables *env*."""
        return self._replace(env=dict(env) if env else None)

    def with_timeout(self, timeout: float | None) -> 'Packer':
        """Return a handle with a different default deadline."""
        return self._replace(timeout=timeout)

    def with_runner(self, runner: ProcessRunner) -> 'Packer':
        """Return a handle that spawns through *runner*."""
        return self._replace(runner=runner)

    # ------------------------------------------------------------------
    # Generic execution
    # ------------------------------------------------------------------

    def invocation(
        self,
        subcommand: str | Sequence[str],
        options: BuildOptions | None = None,
        *positional: PathArg,
    ) -> list[str]:
        """Return the argument vector for a call without running it."""
        return assemble_invocation(subcommand, options, positional)

    def execute(
        self,
        invocation: Sequence[str],
        *,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
        on_stdout: LineCallback | None = None,
        on_stderr: LineCallback | None = None,
        check: bool = True,
    ) -> ExecutionOutcome:
        """Run a pre-assembled *invocation*.

        Args:
            invocation: Tokens following the executable.
            timeout: Deadline override; defaults to the handle's.
            cancel: Event that terminates the child when set.
            on_stdout: Per-line stdout callback (streaming mode).
            on_stderr: Per-line stderr callback (streaming mode).
            check: Raise :class:`ExecutionError` unless the run succeeded.

        Raises:
            NotFoundError: The executable disappeared since the handle was made.
            IoError: The process could not be spawned or read.
            ExecutionError: Non-zero exit, timeout or cancellation (``check=True``).
        """
        if not is_executable(self._executable):
            raise NotFoundError(
                f"Packer executable is no longer available: {self._executable}",
                path=self._executable,
                candidates=[self._executable],
            )

        outcome = self._runner.run(
            self._executable,
            list(invocation),
            cwd=self._working_dir,
            env=self._env,
            timeout=timeout if timeout is not None else self._timeout,
            cancel=cancel,
            on_stdout=on_stdout,
            on_stderr=on_stderr,
        )
        if check:
            return check_outcome(outcome)
        return outcome

    def run(
        self,
        subcommand: str | Sequence[str],
        options: BuildOptions | None = None,
        *positional: PathArg,
        **kwargs,
    ) -> ExecutionOutcome:
        """Assemble and run one packer call.

        ``kwargs`` are forwarded to :meth:`execute`.
        """
        return self.execute(assemble_invocation(subcommand, options, positional), **kwargs)

    # ------------------------------------------------------------------
    # Subcommands
    # ------------------------------------------------------------------

    def build(self, template: PathArg, options: BuildOptions | None = None,
              **kwargs) -> ExecutionOutcome:
        """Build images from *template* (``packer build``)."""
        return self.run('build', options, template, **kwargs)

    def init(self, template: PathArg, *, upgrade: bool = False, **kwargs) -> ExecutionOutcome:
        """Install the plugins a template requires (``packer init``)."""
        head = ['init', '-upgrade'] if upgrade else ['init']
        return self.run(head, None, template, **kwargs)

    def validate(
        self,
        template: PathArg,
        options: BuildOptions | None = None,
        *,
        syntax_only: bool = False,
        **kwargs,
    ) -> ExecutionOutcome:
        """Check a template (``packer validate``).

        Only ``vars`` and ``var_files`` of *options* apply; packer's
        validate command has no build flags.
        """
        head = ['validate', '-syntax-only'] if syntax_only else ['validate']
        if options is not None:
            options = BuildOptions(vars=options.vars, var_files=options.var_files)
        return self.run(head, options, template, **kwargs)

    def inspect(self, template: PathArg, **kwargs) -> str:
        """Return packer's description of *template*."""
        return self.run('inspect', None, template, **kwargs).stdout

    def fix(self, template: PathArg, **kwargs) -> str:
        """Return the fixed legacy JSON template text."""
        return self.run('fix', None, template, **kwargs).stdout

    def hcl2_upgrade(self, template: PathArg, **kwargs) -> str:
        """Convert a JSON template to HCL2 and return packer's report."""
        return self.run('hcl2_upgrade', None, template, **kwargs).stdout

    def console(self, template: PathArg, **kwargs) -> ExecutionOutcome:
        """Run ``packer console`` against *template*."""
        return self.run('console', None, template, **kwargs)

    def version(self, **kwargs) -> str:
        """Return packer's version text."""
        return self.run('version', **kwargs).stdout.strip()

    # ------------------------------------------------------------------
    # Plugin management
    # ------------------------------------------------------------------

    def plugin_install(self, plugin: str, version: str | None = None,
                       **kwargs) -> ExecutionOutcome:
        """Install *plugin*, optionally pinned to *version*."""
        positional = [plugin] if version is None else [plugin, version]
        return self.run(['plugins', 'install'], None, *positional, **kwargs)

    def plugin_remove(self, plugin: str, **kwargs) -> ExecutionOutcome:
        """Remove all installed versions of *plugin*."""
        return self.run(['plugins', 'remove'], None, plugin, **kwargs)

    def plugin_list(self, **kwargs) -> str:
        """Return the installed plugin listing."""
        return self.run(['plugins', 'installed'], **kwargs).stdout
