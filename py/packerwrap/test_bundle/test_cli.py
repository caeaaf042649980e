"""Tests for the CLI module."""

import json
import os
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from packerwrap._cli import build_parser, main
from packerwrap.testing import fake_executable, patch_search_path


pytestmark = pytest.mark.skipif(
    os.name == 'nt', reason="fake executables are POSIX shell scripts"
)


def test_no_subcommand_prints_help(capsys):
    rc = main([])
    captured = capsys.readouterr()

    assert rc == 0
    assert 'packerwrap' in captured.out


def test_var_requires_equals():
    parser = build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(['build', '--var', 'novalue', 't.pkr.hcl'])


def test_build_dry_run_prints_command(tmp_path, capsys):
    exe = fake_executable(tmp_path)

    rc = main([
        '--packer', str(exe),
        'build', '--debug', '--var', 'region=us-west-2', '--dry-run', 't.pkr.hcl',
    ])
    captured = capsys.readouterr()

    assert rc == 0
    assert captured.out.strip() == f"{exe} build --debug -var=region=us-west-2 t.pkr.hcl"


def test_build_streams_output_and_passes_tokens(tmp_path, capsys):
    exe = fake_executable(tmp_path, echo_args=True)

    rc = main([
        '--packer', str(exe),
        'build', '--force', '--parallel-builds', '2', '--on-error', 'abort',
        '--var-file', 'a.hcl', '--var', 'k=v', 't.pkr.hcl',
    ])
    captured = capsys.readouterr()

    assert rc == 0
    assert json.loads(captured.out)['args'] == [
        'build', '--force', '-var-file=a.hcl', '-var=k=v',
        '-parallel-builds=2', '-on-error=abort', 't.pkr.hcl',
    ]


def test_exit_code_mirrors_packer(tmp_path, capsys):
    exe = fake_executable(tmp_path, stderr='template invalid\n', exit_code=3)

    rc = main(['--packer', str(exe), 'validate', 't.pkr.hcl'])
    captured = capsys.readouterr()

    assert rc == 3
    assert 'template invalid' in captured.err


def test_captured_subcommand_failure_prints_stderr(tmp_path, capsys):
    exe = fake_executable(tmp_path, stderr='no such template', exit_code=1)

    rc = main(['--packer', str(exe), 'inspect', 't.pkr.hcl'])
    captured = capsys.readouterr()

    assert rc == 1
    assert 'no such template' in captured.err


def test_version_prints_stdout(tmp_path, capsys):
    exe = fake_executable(tmp_path, stdout='Packer v1.10.0\n')

    rc = main(['--packer', str(exe), 'version'])
    captured = capsys.readouterr()

    assert rc == 0
    assert captured.out == 'Packer v1.10.0\n'


def test_invalid_option_is_a_config_error(tmp_path, capsys):
    exe = fake_executable(tmp_path, echo_args=True)

    rc = main(['--packer', str(exe), 'build', '--parallel-builds', '0', 't.pkr.hcl'])
    captured = capsys.readouterr()

    assert rc == 1
    assert 'parallel_builds' in captured.err
    assert captured.out == ''


def test_missing_executable(tmp_path, capsys):
    with patch_search_path([tmp_path / 'empty']):
        rc = main(['--packer', str(tmp_path / 'nope'), 'version'])
    captured = capsys.readouterr()

    assert rc == 1
    assert 'Error' in captured.err


def test_plugins_install(tmp_path, capsys):
    exe = fake_executable(tmp_path, echo_args=True)

    rc = main(['--packer', str(exe), 'plugins', 'install', 'github.com/hashicorp/qemu', 'v1.1.0'])
    captured = capsys.readouterr()

    assert rc == 0
    assert json.loads(captured.out)['args'] == [
        'plugins', 'install', 'github.com/hashicorp/qemu', 'v1.1.0'
    ]


def test_cwd_option(tmp_path, capsys):
    exe = fake_executable(tmp_path / 'bin', echo_args=True)
    workdir = tmp_path / 'images'
    workdir.mkdir()

    rc = main(['--packer', str(exe), '--cwd', str(workdir), 'init', 't.pkr.hcl'])
    captured = capsys.readouterr()

    assert rc == 0
    assert Path(json.loads(captured.out)['cwd']).resolve() == workdir.resolve()


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
