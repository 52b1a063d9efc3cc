"""Filesystem utilities for the workspace and the release directory.

This module validates that a path is safe to remove before deleting it and
copies artifacts into place atomically. It is used by the Clean and Stage
Artifact pipeline stages.

Functions
---------
- ``create_safe_path``: Validate and stamp a path as safe for removal.
- ``safe_rmtree``: Remove a validated directory tree.
- ``atomic_copy``: Copy a file so the destination is either complete or untouched.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import NewType

logger = logging.getLogger(__name__)

# NewType used as a static "seal" to indicate the path is validated for removal.
_ValidatedPath = NewType("_ValidatedPath", Path)


def create_safe_path(
    path_to_validate: Path, project_root: Path, whitelist: Iterable[Path]
) -> _ValidatedPath:
    r"""Validate and stamp a Path as safe for destructive operations.

    Safety checks:
    - Never allows deletion of ``project_root`` or any of its ancestors.
    - Permits only paths equal to, or inside, one of the ``whitelist`` roots.

    Parameters
    ----------
    path_to_validate : Path
        The directory path to be validated for safe removal.
    project_root : Path
        Root of the project being built.
    whitelist : Iterable[Path]
        Directories the pipeline owns and may delete.

    Returns
    -------
    _ValidatedPath
        The path, stamped for safe usage by removal helpers.

    Raises
    ------
    PermissionError
        If the path is the project root, an ancestor of it, or not whitelisted.

    Examples
    --------
    >>> from pathlib import Path
    >>> root = Path("/work/app")
    >>> create_safe_path(root / "target", root, [root / "target"])
    PosixPath('/work/app/target')
    >>> create_safe_path(root, root, [root / "target"])  # doctest: +IGNORE_EXCEPTION_DETAIL
    Traceback (most recent call last):
      ...
    PermissionError: SECURITY STOP: Attempt to delete the project root was blocked.
    """
    root = Path(project_root).resolve()
    target_path = Path(path_to_validate).resolve()

    if target_path == root or root.is_relative_to(target_path):
        raise PermissionError(
            "SECURITY STOP: Attempt to delete the project root was blocked."
        )

    is_safe_path = any(
        target_path.is_relative_to(Path(safe_root).resolve())
        for safe_root in whitelist
    )
    if not is_safe_path:
        raise PermissionError(
            f"SECURITY STOP: Path '{target_path}' is not in the whitelist."
        )
    return _ValidatedPath(target_path)


def safe_rmtree(
    path: Path, project_root: Path, whitelist: Iterable[Path]
) -> bool:
    r"""Remove a directory tree after validating it with ``create_safe_path``.

    Parameters
    ----------
    path : Path
        Directory to remove.
    project_root : Path
        Root of the project being built.
    whitelist : Iterable[Path]
        Directories the pipeline owns and may delete.

    Returns
    -------
    bool
        True if something was removed, False if the path did not exist.

    Raises
    ------
    PermissionError
        If the path fails validation.
    OSError
        If the removal itself fails (locked file, missing permission).
    """
    validated = create_safe_path(path, project_root, whitelist)
    if not validated.exists():
        logger.info(f"Path '{validated}' does not exist; nothing to remove.")
        return False
    logger.warning(f"Performing safe rmtree on: {validated}")
    if validated.is_dir() and not validated.is_symlink():
        shutil.rmtree(validated)
    else:
        validated.unlink()
    logger.info(f"Removed: {validated}")
    return True


def atomic_copy(source: Path, destination: Path) -> Path:
    r"""Copy ``source`` to ``destination`` without exposing a partial file.

    The data is first written to a temporary file in the destination
    directory and then moved over ``destination`` with ``os.replace``. If
    anything fails the temporary file is removed and the previous
    ``destination`` (if any) is left untouched.

    Parameters
    ----------
    source : Path
        File to copy.
    destination : Path
        Final path of the copy. Its parent directory must exist.

    Returns
    -------
    Path
        The destination path.

    Raises
    ------
    OSError
        If reading, writing or renaming fails.
    """
    destination = Path(destination)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{destination.name}.", suffix=".tmp", dir=destination.parent
    )
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        shutil.copy2(source, tmp_path)
        os.replace(tmp_path, destination)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    logger.debug(f"Copied {source} -> {destination}")
    return destination


__all__ = ["atomic_copy", "create_safe_path", "safe_rmtree"]
