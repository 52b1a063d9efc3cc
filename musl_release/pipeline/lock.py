"""Exclusive run lock for the release pipeline.

Two pipeline runs against the same crate would race on the build and
release directories, so a run holds a lock file for its whole duration.
The file is created with ``O_CREAT | O_EXCL`` and removed on every exit
path. A stale lock left by a killed run must be removed by hand; its
content is the owner's PID.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from musl_release.exceptions import PipelineLockedError
from musl_release.i18n import translate

logger = logging.getLogger(__name__)


@contextmanager
def run_lock(lock_path: Path) -> Iterator[Path]:
    r"""Hold ``lock_path`` for the duration of the ``with`` block.

    Parameters
    ----------
    lock_path : Path
        Lock file to create.

    Yields
    ------
    Path
        The lock file path.

    Raises
    ------
    PipelineLockedError
        If the lock file already exists.

    Examples
    --------
    >>> from pathlib import Path
    >>> with run_lock(Path("/tmp/example.lock")):  # doctest: +SKIP
    ...     pass
    """
    lock_path = Path(lock_path)
    try:
        fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
    except FileExistsError:
        owner = _read_owner(lock_path)
        raise PipelineLockedError(
            translate("locked", path=lock_path),
            context={"lock_path": str(lock_path), "owner": owner},
        ) from None
    try:
        os.write(fd, f"{os.getpid()}\n".encode())
    finally:
        os.close(fd)
    logger.debug(f"Acquired run lock {lock_path}")
    try:
        yield lock_path
    finally:
        lock_path.unlink(missing_ok=True)
        logger.debug(f"Released run lock {lock_path}")


def _read_owner(lock_path: Path) -> str | None:
    try:
        return lock_path.read_text(encoding="utf-8").strip() or None
    except OSError:
        return None


__all__ = ["run_lock"]
