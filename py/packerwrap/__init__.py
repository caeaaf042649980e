"""
packerwrap -- Typed invocation of the HashiCorp Packer executable.

Locates the ``packer`` binary, turns validated option objects into argument
vectors, runs them in a controlled working directory and reports the
outcome through a closed set of exceptions.

Can be used as a Python library or as a CLI tool::

    python -m packerwrap [--packer PATH] build [--var KEY=VALUE ...] template.pkr.hcl

Quickstart (Python API)::

    import packerwrap

    packer = packerwrap.Packer().with_working_dir('images/base')
    options = (
        packerwrap.BuildOptions.builder()
        .debug()
        .var('region', 'us-west-2')
        .build()
    )

    try:
        outcome = packer.build('base.pkr.hcl', options)
    except packerwrap.ExecutionError as e:
        print(e.returncode, e.stderr)

Submodules:
    exceptions -- all packerwrap exception classes
    testing    -- test helpers (fake executables, recording runner)
"""

from __future__ import annotations

import logging

#: The version of packerwrap.
__version__: str = '0.1.0'

from ._exceptions import (
    PackerError,
    NotFoundError,
    ConfigError,
    IoError,
    ExecutionError,
)
from ._locator import (
    EXECUTABLE_ENV_VAR,
    default_executable_name,
    is_executable,
    locate_executable,
)
from ._options import (
    BuildOptions,
    BuildOptionsBuilder,
    OnError,
)
from ._invocation import (
    assemble_invocation,
    format_invocation,
    option_tokens,
)
from ._runner import (
    ExecutionOutcome,
    ProcessRunner,
    SubprocessRunner,
)
from ._errors import (
    check_outcome,
    map_os_error,
)
from ._packer import Packer
from ._cli import main as cli_main

from . import testing    # noqa: E402
from . import exceptions # noqa: E402


def set_api_verbosity(level: int | str) -> None:
    """Set the logging verbosity for the ``packerwrap`` logger.

    Pass a :mod:`logging` level constant (``logging.DEBUG``, ``logging.INFO``,
    etc.) or its string equivalent (``'DEBUG'``, ``'INFO'``, etc.).

    Example::

        import logging
        import packerwrap

        packerwrap.set_api_verbosity(logging.INFO)
    """
    logging.getLogger('packerwrap').setLevel(level)


__all__ = [
    # ---- Public constants ----
    '__version__',
    'EXECUTABLE_ENV_VAR',

    # ---- Core classes ----
    'Packer',
    'BuildOptions',
    'BuildOptionsBuilder',
    'OnError',
    'ExecutionOutcome',
    'ProcessRunner',
    'SubprocessRunner',

    # ---- Exceptions ----
    'PackerError',
    'NotFoundError',
    'ConfigError',
    'IoError',
    'ExecutionError',

    # ---- Functions ----
    'assemble_invocation',
    'check_outcome',
    'default_executable_name',
    'format_invocation',
    'is_executable',
    'locate_executable',
    'map_os_error',
    'option_tokens',
    'set_api_verbosity',
    'cli_main',

    # ---- Submodules ----
    'testing',
    'exceptions',
]
