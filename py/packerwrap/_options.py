"""Option model for the packer ``build`` (and ``validate``) subcommands.

Options are accumulated on a :class:`BuildOptionsBuilder` without any
checking, then validated all at once by :meth:`BuildOptionsBuilder.build`,
which returns an immutable :class:`BuildOptions` or raises a single
:class:`ConfigError` listing every violation.

Example::

    options = (
        BuildOptions.builder()
        .debug()
        .parallel_builds(2)
        .var('region', 'us-west-2')
        .var_file('prod.pkrvars.hcl')
        .on_error('abort')
        .build()
    )
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Mapping

from ._exceptions import ConfigError


log = logging.getLogger(__name__)


class OnError(str, Enum):
    """Values accepted by packer's ``-on-error`` flag."""

    CLEANUP = 'cleanup'
    ABORT = 'abort'
    ASK = 'ask'
    RUN_CLEANUP_PROVISIONER = 'run-cleanup-provisioner'

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class BuildOptions:
    """Validated, immutable set of flags for one packer invocation.

    Only create instances through :meth:`builder`; unset options hold
    ``None``/``False``/empty and produce no tokens at all.

    Attributes:
        debug: Emit ``--debug``.
        force: Emit ``--force``.
        timestamp_ui: Emit ``--timestamp-ui``.
        parallel_builds: Value for ``-parallel-builds`` (``>= 1``).
        vars: Ordered ``(key, value)`` pairs, one ``-var`` each.
        var_files: Ordered paths, one ``-var-file`` each.
        on_error: Value for ``-on-error``.
        color: ``False`` emits ``-color=false``; ``None``/``True`` emit nothing.
    """

    debug: bool = False
    force: bool = False
    timestamp_ui: bool = False
    parallel_builds: int | None = None
    vars: tuple[tuple[str, str], ...] = ()
    var_files: tuple[Path, ...] = ()
    on_error: OnError | None = None
    color: bool | None = None

    @staticmethod
    def builder(base_dir: str | os.PathLike[str] | None = None) -> 'BuildOptionsBuilder':
        """Return a new, empty builder.

        Args:
            base_dir: Directory relative ``var_files`` are resolved against
                when file checking is enabled (defaults to the process
                working directory at build time).
        """
        return BuildOptionsBuilder(base_dir=base_dir)

    @classmethod
    def default(cls) -> 'BuildOptions':
        """Options with nothing set; packer applies its own defaults."""
        return cls()


class BuildOptionsBuilder:
    """Fluent accumulator for :class:`BuildOptions`.

    Setters never validate; every constraint is checked in :meth:`build`.
    """

    def __init__(self, base_dir: str | os.PathLike[str] | None = None):
        self._base_dir = Path(base_dir) if base_dir is not None else None
        self._debug: Any = False
        self._force: Any = False
        self._timestamp_ui: Any = False
        self._parallel_builds: Any = None
        self._vars: list[tuple[Any, Any]] = []
        self._var_files: list[Any] = []
        self._on_error: Any = None
        self._color: Any = None
        self._check_var_files = False

    # ------------------------------------------------------------------
    # Setters
    # ------------------------------------------------------------------

    def debug(self, value: bool = True) -> 'BuildOptionsBuilder':
        self._debug = value
        return self

    def force(self, value: bool = True) -> 'BuildOptionsBuilder':
        self._force = value
        return self

    def timestamp_ui(self, value: bool = True) -> 'BuildOptionsBuilder':
        self._timestamp_ui = value
        return self

    def parallel_builds(self, value: int | None) -> 'BuildOptionsBuilder':
        self._parallel_builds = value
        return self

    def var(self, key: str, value: str) -> 'BuildOptionsBuilder':
        """Append one ``key=value`` variable."""
        self._vars.append((key, value))
        return self

    def vars(
        self,
        values: Mapping[str, str] | Iterable[tuple[str, str]],
    ) -> 'BuildOptionsBuilder':
        """Replace all variables; mappings keep their insertion order."""
        if isinstance(values, Mapping):
            values = values.items()
        self._vars = list(values)
        return self

    def var_file(self, path: str | os.PathLike[str]) -> 'BuildOptionsBuilder':
        """Append one variable file."""
        self._var_files.append(path)
        return self

    def var_files(self, paths: Iterable[str | os.PathLike[str]]) -> 'BuildOptionsBuilder':
        """Replace all variable files."""
        self._var_files = list(paths)
        return self

    def on_error(self, mode: OnError | str | None) -> 'BuildOptionsBuilder':
        self._on_error = mode
        return self

    def color(self, value: bool | None) -> 'BuildOptionsBuilder':
        self._color = value
        return self

    def check_var_files(self, value: bool = True) -> 'BuildOptionsBuilder':
        """Require ``var_files`` to exist and be readable at :meth:`build` time.

        Off by default: packer reports missing var files itself.
        """
        self._check_var_files = value
        return self

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    def _resolve_var_file(self, path: Path) -> Path:
        if path.is_absolute():
            return path
        base = self._base_dir if self._base_dir is not None else Path.cwd()
        return base / path

    def _validate(self) -> tuple[list[tuple[str, str]], dict[str, Any]]:
        violations: list[tuple[str, str]] = []
        values: dict[str, Any] = {}

        for name in ('debug', 'force', 'timestamp_ui'):
            value = getattr(self, f'_{name}')
            if not isinstance(value, bool):
                violations.append((name, f"must be a bool, got {value!r}"))
            values[name] = value

        parallel = self._parallel_builds
        if parallel is not None:
            if isinstance(parallel, bool) or not isinstance(parallel, int):
                violations.append(('parallel_builds', f"must be an integer, got {parallel!r}"))
            elif parallel < 1:
                violations.append(('parallel_builds', f"must be >= 1, got {parallel}"))
        values['parallel_builds'] = parallel

        pairs: list[tuple[str, str]] = []
        for index, pair in enumerate(self._vars):
            if not isinstance(pair, (tuple, list)) or len(pair) != 2:
                violations.append(('vars', f"entry {index} is not a (key, value) pair: {pair!r}"))
                continue
            key, value = pair
            if not isinstance(key, str) or not key:
                violations.append(('vars', f"entry {index} has an empty or non-string key {key!r}"))
            elif '=' in key:
                violations.append(('vars', f"key {key!r} must not contain '='"))
            if not isinstance(value, str):
                violations.append(('vars', f"value for {key!r} must be a string, got {value!r}"))
            pairs.append((key, value))
        values['vars'] = tuple(pairs)

        files: list[Path] = []
        for index, raw in enumerate(self._var_files):
            try:
                path = Path(raw)
            except TypeError:
                violations.append(('var_files', f"entry {index} is not a path: {raw!r}"))
                continue
            if self._check_var_files:
                resolved = self._resolve_var_file(path)
                if not resolved.is_file():
                    violations.append(('var_files', f"file not found: {resolved}"))
                elif not os.access(resolved, os.R_OK):
                    violations.append(('var_files', f"file is not readable: {resolved}"))
            files.append(path)
        values['var_files'] = tuple(files)

        mode = self._on_error
        if mode is not None:
            try:
                mode = OnError(mode)
            except ValueError:
                allowed = ', '.join(m.value for m in OnError)
                violations.append(('on_error', f"must be one of {allowed}, got {mode!r}"))
        values['on_error'] = mode

        if self._color is not None and not isinstance(self._color, bool):
            violations.append(('color', f"must be a bool, got {self._color!r}"))
        values['color'] = self._color

        return violations, values

    def build(self) -> BuildOptions:
        """Validate every field and return the frozen options.

        Raises:
            ConfigError: One or more fields are invalid.  The error names
                the offending fields.
        """
        violations, values = self._validate()
        if violations:
            error = ConfigError.from_violations(violations)
            log.debug(f"Option validation failed: {error}")
            raise error
        return BuildOptions(**values)
