"""Command-line interface for packerwrap."""

import argparse
import logging
import sys
from pathlib import Path

from ._exceptions import ExecutionError, PackerError
from ._invocation import format_invocation
from ._options import BuildOptions, OnError
from ._packer import Packer


log = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration.

    Args:
        verbose: Enable verbose logging

    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def _parse_var(text: str) -> tuple[str, str]:
    """Split a ``KEY=VALUE`` command-line variable."""
    key, sep, value = text.partition('=')
    if not sep:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got '{text}'")
    return key, value


def _options_from_args(args: argparse.Namespace) -> BuildOptions:
    """Build validated options from parsed ``build``/``validate`` arguments."""
    builder = BuildOptions.builder().vars(args.var).var_files(args.var_file)
    if getattr(args, 'check_var_files', False):
        builder.check_var_files()
    if args.subcommand == 'build':
        builder.debug(args.debug).force(args.force).timestamp_ui(args.timestamp_ui)
        builder.parallel_builds(args.parallel_builds).on_error(args.on_error)
        if args.no_color:
            builder.color(False)
    return builder.build()


def _is_streamed(args: argparse.Namespace) -> bool:
    """Whether packer's output for this subcommand is echoed while it runs."""
    if args.subcommand == 'plugins':
        return args.action != 'installed'
    return args.subcommand in ('build', 'validate', 'init', 'console')


def _echo(text: str) -> None:
    if text:
        print(text, end='' if text.endswith('\n') else '\n')


def run_subcommand(packer: Packer, args: argparse.Namespace) -> int:
    """Dispatch one parsed subcommand to *packer*.

    Args:
        packer: Handle to run against
        args: Parsed command-line arguments

    Returns:
        Exit code

    """
    stream = {'on_stdout': print, 'on_stderr': lambda line: print(line, file=sys.stderr)}
    sub = args.subcommand

    if sub in ('build', 'validate'):
        options = _options_from_args(args)
        if args.dry_run:
            head = sub
            if sub == 'validate' and args.syntax_only:
                head = ['validate', '-syntax-only']
            print(format_invocation([str(packer.executable)] + packer.invocation(head, options, args.template)))
            return 0
        if sub == 'build':
            packer.build(args.template, options, **stream)
        else:
            packer.validate(args.template, options, syntax_only=args.syntax_only, **stream)
    elif sub == 'init':
        packer.init(args.template, upgrade=args.upgrade, **stream)
    elif sub == 'console':
        packer.console(args.template, **stream)
    elif sub == 'inspect':
        _echo(packer.inspect(args.template))
    elif sub == 'fix':
        _echo(packer.fix(args.template))
    elif sub == 'hcl2_upgrade':
        _echo(packer.hcl2_upgrade(args.template))
    elif sub == 'version':
        _echo(packer.version())
    elif sub == 'plugins':
        if args.action == 'install':
            packer.plugin_install(args.plugin, args.version, **stream)
        elif args.action == 'remove':
            packer.plugin_remove(args.plugin, **stream)
        else:
            _echo(packer.plugin_list())
    return 0


def _add_template(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('template', type=Path, help='Template file or directory')


def _add_variable_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--var',
        action='append',
        type=_parse_var,
        default=[],
        metavar='KEY=VALUE',
        help='Template variable (repeatable, order preserved)'
    )
    parser.add_argument(
        '--var-file',
        action='append',
        type=Path,
        default=[],
        metavar='PATH',
        help='Variable file (repeatable, order preserved)'
    )
    parser.add_argument(
        '--check-var-files',
        action='store_true',
        help='Fail before running packer if a variable file is missing'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Print the packer command line instead of running it'
    )


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for ``python -m packerwrap``."""
    parser = argparse.ArgumentParser(
        prog='packerwrap',
        description='packerwrap: typed invocation of the packer executable'
    )

    parser.add_argument(
        '--packer',
        metavar='PATH',
        help='Packer executable (defaults to PACKERWRAP_EXECUTABLE, PATH, then ./packer)'
    )

    parser.add_argument(
        '--cwd',
        type=Path,
        help='Working directory for packer'
    )

    parser.add_argument(
        '--timeout',
        type=float,
        help='Seconds before packer is terminated'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    subparsers = parser.add_subparsers(dest='subcommand', metavar='SUBCOMMAND')

    build = subparsers.add_parser('build', help='Build images from a template')
    build.add_argument('--debug', action='store_true', help='Debug mode')
    build.add_argument('--force', action='store_true', help='Overwrite existing artifacts')
    build.add_argument('--timestamp-ui', action='store_true', help='Prefix output lines with timestamps')
    build.add_argument('--parallel-builds', type=int, metavar='N', help='Number of builds run in parallel')
    build.add_argument(
        '--on-error',
        choices=[mode.value for mode in OnError],
        help='Behaviour when a build fails'
    )
    build.add_argument('--no-color', action='store_true', help='Disable colored output')
    _add_variable_options(build)
    _add_template(build)

    validate = subparsers.add_parser('validate', help='Check that a template is valid')
    validate.add_argument('--syntax-only', action='store_true', help='Only check syntax')
    _add_variable_options(validate)
    _add_template(validate)

    init = subparsers.add_parser('init', help='Install plugins required by a template')
    init.add_argument('--upgrade', action='store_true', help='Upgrade installed plugins')
    _add_template(init)

    for name, help_text in (
        ('inspect', 'Describe the components of a template'),
        ('fix', 'Fix a legacy JSON template'),
        ('hcl2_upgrade', 'Convert a JSON template to HCL2'),
        ('console', 'Open the packer console for a template'),
    ):
        _add_template(subparsers.add_parser(name, help=help_text))

    subparsers.add_parser('version', help='Print the packer version')

    plugins = subparsers.add_parser('plugins', help='Manage packer plugins')
    actions = plugins.add_subparsers(dest='action', metavar='ACTION', required=True)
    install = actions.add_parser('install', help='Install a plugin')
    install.add_argument('plugin')
    install.add_argument('version', nargs='?')
    remove = actions.add_parser('remove', help='Remove a plugin')
    remove.add_argument('plugin')
    actions.add_parser('installed', help='List installed plugins')

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code

    """
    parser = build_parser()
    if argv is None:
        argv = sys.argv[1:]
    args = parser.parse_args(argv)

    # Setup logging
    setup_logging(args.verbose)

    if not args.subcommand:
        parser.print_help()
        return 0

    try:
        packer = Packer(args.packer, working_dir=args.cwd, timeout=args.timeout)
        return run_subcommand(packer, args)
    except ExecutionError as e:
        log.debug(f"packer failed: {e}")
        if not _is_streamed(args) and e.stderr:
            sys.stderr.write(e.stderr if e.stderr.endswith('\n') else f"{e.stderr}\n")
        if e.timed_out or e.cancelled or e.returncode is None:
            print(f"Error: {e.message.splitlines()[0]}", file=sys.stderr)
            return 1
        return e.returncode if e.returncode > 0 else 1
    except PackerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130


if __name__ == '__main__':
    sys.exit(main())
