"""Resolution of the packer executable on disk."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from ._exceptions import NotFoundError


log = logging.getLogger(__name__)

#: Environment variable consulted when no explicit executable is given.
EXECUTABLE_ENV_VAR = 'PACKERWRAP_EXECUTABLE'


def default_executable_name() -> str:
    """Return the platform file name of the packer binary."""
    return 'packer.exe' if os.name == 'nt' else 'packer'


def _is_raw_path(spec: str) -> bool:
    """Return ``True`` when *spec* names a path rather than a bare program name.

    Absolute paths and anything containing a directory separator
    (``./packer``, ``bin/packer``) are treated as paths.
    """
    return os.path.isabs(spec) or (os.sep in spec) or ('/' in spec)


def is_executable(path: Path) -> bool:
    """Return ``True`` if *path* is a regular file the current user may execute.

    Only filesystem metadata is inspected; the file is never run.
    """
    return path.is_file() and os.access(path, os.X_OK)


def _check_candidate(path: Path) -> Path:
    if not path.exists():
        raise NotFoundError(f"Packer executable not found: {path}", path=path, candidates=[path])
    if not is_executable(path):
        raise NotFoundError(
            f"Packer executable is not executable: {path}",
            path=path,
            candidates=[path],
        )
    return path.absolute()


def locate_executable(
    explicit: str | os.PathLike[str] | None = None,
    *,
    search_path: str | None = None,
    cwd: str | os.PathLike[str] | None = None,
) -> Path:
    """Find a usable packer executable.

    Resolution order:

    1. *explicit*, or the ``PACKERWRAP_EXECUTABLE`` environment variable.
       A value that looks like a path is checked directly; a bare name is
       looked up on the search path.  An explicit override never falls back
       to the defaults below.
    2. ``packer`` (``packer.exe`` on Windows) on *search_path*, which
       defaults to ``PATH``.
    3. The same file name in *cwd* (defaults to the process working
       directory), for binaries bundled next to a project.

    Args:
        explicit: Optional executable override.
        search_path: ``os.pathsep`` separated directories to search instead
            of ``PATH``.
        cwd: Directory used for the bundled-binary fallback.

    Returns:
        Absolute path to the executable.

    Raises:
        NotFoundError: No candidate exists or the candidate is not executable.
    """
    if explicit is None:
        explicit = os.environ.get(EXECUTABLE_ENV_VAR) or None
        if explicit is not None:
            log.debug(f"Using {EXECUTABLE_ENV_VAR}={explicit}")

    if explicit is not None:
        spec = os.fspath(explicit)
        if _is_raw_path(spec):
            resolved = _check_candidate(Path(spec))
            log.info(f"Resolved packer executable: {resolved}")
            return resolved
        found = shutil.which(spec, path=search_path)
        if found is None:
            raise NotFoundError(
                f"Packer executable '{spec}' not found in PATH",
                candidates=[spec],
            )
        log.info(f"Resolved packer executable: {found}")
        return Path(found).absolute()

    name = default_executable_name()
    candidates: list[Path] = []

    found = shutil.which(name, path=search_path)
    if found:
        log.info(f"Resolved packer executable on PATH: {found}")
        return Path(found).absolute()
    candidates.append(Path(name))
    log.debug(f"'{name}' not found on PATH, trying working directory")

    local = Path(cwd) if cwd is not None else Path.cwd()
    bundled = local / name
    candidates.append(bundled)
    if is_executable(bundled):
        log.info(f"Resolved bundled packer executable: {bundled}")
        return bundled.absolute()

    if bundled.exists():
        reason = f"{bundled} exists but is not executable"
    else:
        reason = f"not on PATH and not present in {local}"
    raise NotFoundError(
        f"Packer executable '{name}' not found: {reason}",
        path=bundled,
        candidates=candidates,
    )
