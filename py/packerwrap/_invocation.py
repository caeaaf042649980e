"""Translation of options into packer argument vectors.

The token order produced here is part of the public contract; packer's own
parser treats some flag/positional combinations differently depending on
where they appear::

    <subcommand...> [--debug] [--force] [--timestamp-ui]
                    [-var-file=<path>]... [-var=<key>=<value>]...
                    [-parallel-builds=<n>] [-on-error=<mode>] [-color=false]
                    <positional...>
"""

from __future__ import annotations

import os
import shlex
from typing import Iterable, Sequence

from ._exceptions import ConfigError
from ._options import BuildOptions


# Boolean flags in emission order: (attribute, token)
_BOOLEAN_FLAGS: tuple[tuple[str, str], ...] = (
    ('debug', '--debug'),
    ('force', '--force'),
    ('timestamp_ui', '--timestamp-ui'),
)


def option_tokens(options: BuildOptions) -> list[str]:
    """Return the flag tokens for *options*, without subcommand or positionals."""
    tokens: list[str] = []

    for attr, flag in _BOOLEAN_FLAGS:
        if getattr(options, attr):
            tokens.append(flag)

    for path in options.var_files:
        tokens.append(f'-var-file={os.fspath(path)}')

    for key, value in options.vars:
        tokens.append(f'-var={key}={value}')

    if options.parallel_builds is not None:
        tokens.append(f'-parallel-builds={options.parallel_builds}')
    if options.on_error is not None:
        tokens.append(f'-on-error={options.on_error.value}')
    if options.color is False:
        tokens.append('-color=false')

    return tokens


def assemble_invocation(
    subcommand: str | Sequence[str],
    options: BuildOptions | None = None,
    positional: Iterable[str | os.PathLike[str]] = (),
) -> list[str]:
    """Build the ordered argument vector for one packer call.

    Args:
        subcommand: Subcommand name (``'build'``) or a sequence of leading
            tokens (``('plugins', 'install')``).
        options: Validated options; ``None`` adds no flags.
        positional: Trailing arguments such as the template path.  Always
            placed after every flag.

    Returns:
        The argument vector, excluding the executable itself.

    Raises:
        ConfigError: *subcommand* is empty.
    """
    if isinstance(subcommand, str):
        head = [subcommand]
    else:
        head = [str(token) for token in subcommand]
    if not head or not all(head):
        raise ConfigError("Subcommand must be a non-empty string", field='subcommand')

    tokens = list(head)
    if options is not None:
        tokens.extend(option_tokens(options))
    tokens.extend(os.fspath(arg) for arg in positional)
    return tokens


def format_invocation(tokens: Sequence[str]) -> str:
    """Render *tokens* as a shell-quoted string for logs and messages."""
    return ' '.join(shlex.quote(str(token)) for token in tokens)
