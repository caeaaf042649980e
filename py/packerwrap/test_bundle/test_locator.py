"""Tests for packer executable resolution."""
import os
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from packerwrap import (
    EXECUTABLE_ENV_VAR,
    NotFoundError,
    default_executable_name,
    locate_executable,
)
from packerwrap.testing import fake_executable, patch_search_path


posix_only = pytest.mark.skipif(os.name == 'nt', reason="fake executables are POSIX shell scripts")


def test_default_name_matches_platform():
    expected = 'packer.exe' if os.name == 'nt' else 'packer'
    assert default_executable_name() == expected


@posix_only
class TestExplicitPath:

    def test_explicit_path_returned(self, tmp_path):
        exe = fake_executable(tmp_path / 'bin')
        assert locate_executable(exe) == exe.absolute()

    def test_missing_explicit_path_raises(self, tmp_path):
        with pytest.raises(NotFoundError) as exc_info:
            locate_executable(tmp_path / 'nope' / 'packer')
        assert exc_info.value.kind == 'not_found'
        assert exc_info.value.path == tmp_path / 'nope' / 'packer'

    def test_not_executable_raises(self, tmp_path):
        exe = tmp_path / 'packer'
        exe.write_text('#!/bin/sh\n')
        exe.chmod(0o644)

        with pytest.raises(NotFoundError, match="not executable"):
            locate_executable(exe)

    def test_directory_is_not_an_executable(self, tmp_path):
        with pytest.raises(NotFoundError):
            locate_executable(tmp_path)

    def test_explicit_does_not_fall_back_to_path(self, tmp_path):
        fake_executable(tmp_path / 'bin')
        with patch_search_path([tmp_path / 'bin']):
            with pytest.raises(NotFoundError):
                locate_executable(tmp_path / 'other' / 'packer')

    def test_bare_explicit_name_searched_on_path(self, tmp_path):
        exe = fake_executable(tmp_path / 'bin', name='packer-1.10')
        found = locate_executable('packer-1.10', search_path=str(tmp_path / 'bin'))
        assert found == exe

    def test_bare_explicit_name_missing(self, tmp_path):
        with pytest.raises(NotFoundError, match="not found in PATH"):
            locate_executable('packer-9', search_path=str(tmp_path))


@posix_only
class TestDefaultResolution:

    def test_found_on_search_path(self, tmp_path):
        exe = fake_executable(tmp_path / 'bin')
        with patch_search_path([tmp_path / 'bin']):
            assert locate_executable() == exe

    def test_search_path_argument(self, tmp_path):
        exe = fake_executable(tmp_path / 'bin')
        found = locate_executable(search_path=str(tmp_path / 'bin'), cwd=tmp_path / 'empty')
        assert found == exe

    def test_relative_search_path_resolved_to_absolute(self, tmp_path, monkeypatch):
        exe = fake_executable(tmp_path / 'bin')
        monkeypatch.chdir(tmp_path)

        found = locate_executable(search_path='bin', cwd=tmp_path / 'empty')

        assert found.is_absolute()
        assert found == exe.absolute()

    def test_relative_explicit_name_resolved_to_absolute(self, tmp_path, monkeypatch):
        fake_executable(tmp_path / 'bin', name='packer-1.10')
        monkeypatch.chdir(tmp_path)

        found = locate_executable('packer-1.10', search_path='bin')

        assert found == (tmp_path / 'bin' / 'packer-1.10').absolute()

    def test_working_directory_fallback(self, tmp_path):
        exe = fake_executable(tmp_path / 'project')
        with patch_search_path([tmp_path / 'empty']):
            found = locate_executable(cwd=tmp_path / 'project')
        assert found == exe.absolute()

    def test_process_cwd_fallback(self, tmp_path, monkeypatch):
        exe = fake_executable(tmp_path)
        monkeypatch.chdir(tmp_path)
        with patch_search_path([tmp_path / 'empty']):
            found = locate_executable()
        assert found == exe.absolute()

    def test_nothing_found(self, tmp_path):
        with patch_search_path([tmp_path / 'empty']):
            with pytest.raises(NotFoundError) as exc_info:
                locate_executable(cwd=tmp_path)
        assert len(exc_info.value.candidates) == 2

    def test_non_executable_bundled_binary(self, tmp_path):
        (tmp_path / 'packer').write_text('not a program')
        with patch_search_path([tmp_path / 'empty']):
            with pytest.raises(NotFoundError, match="not executable"):
                locate_executable(cwd=tmp_path)

    def test_environment_override(self, tmp_path, monkeypatch):
        exe = fake_executable(tmp_path / 'custom')
        with patch_search_path([tmp_path / 'empty']):
            monkeypatch.setenv(EXECUTABLE_ENV_VAR, str(exe))
            assert locate_executable() == exe.absolute()

    def test_environment_override_missing(self, tmp_path, monkeypatch):
        fake_executable(tmp_path / 'bin')
        with patch_search_path([tmp_path / 'bin']):
            monkeypatch.setenv(EXECUTABLE_ENV_VAR, str(tmp_path / 'gone' / 'packer'))
            with pytest.raises(NotFoundError):
                locate_executable()

    def test_locator_never_runs_candidate(self, tmp_path):
        """A candidate that would fail if executed is still returned."""
        exe = fake_executable(tmp_path, exit_code=3, stderr='boom')
        assert locate_executable(exe) == exe.absolute()


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
