"""Runner for the external tools the pipeline drives.

Every external step (``docker info``, ``rustup``, ``cargo``, ``cross``)
goes through ``run_command``, which never raises for tool failures: it
returns a ``CommandResult`` that records the exit status, the captured
output, and whether the tool was missing or timed out. The stages then
branch on that result explicitly.

Output handling
---------------
- ``stream_output=False`` (default): output is captured and logged only
  when the command fails.
- ``stream_output=True``: output is forwarded line by line to the logger
  while the command runs (used for the compile step).

Examples
--------
>>> from musl_release.pipeline.commands import run_command
>>> result = run_command(["docker", "info"], timeout=30)  # doctest: +SKIP
>>> result.ok  # doctest: +SKIP
True
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# Conventional shell status for "command not found"
NOT_FOUND_RETURNCODE = 127


@dataclass(frozen=True)
class CommandResult:
    r"""Outcome of one external command.

    Attributes
    ----------
    args : tuple[str, ...]
        The command line that was run.
    returncode : int | None
        Exit status; None when the process was killed on timeout.
    output : str
        Combined stdout and stderr (empty when streamed).
    timed_out : bool
        True when the command was killed after exceeding its timeout.
    not_found : bool
        True when the executable could not be started.
    """

    args: tuple[str, ...]
    returncode: int | None
    output: str = ""
    timed_out: bool = False
    not_found: bool = False

    @property
    def ok(self) -> bool:
        """True if the command exited with status 0."""
        return self.returncode == 0 and not self.timed_out

    @property
    def command(self) -> str:
        """The command line as a display string."""
        return " ".join(self.args)

    def describe(self) -> str:
        """Return a one-line diagnostic for logs and error context."""
        if self.not_found:
            return f"'{self.args[0]}' was not found on PATH"
        if self.timed_out:
            return f"'{self.command}' timed out"
        return f"'{self.command}' exited with status {self.returncode}"


def run_command(
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
    stream_output: bool = False,
) -> CommandResult:
    r"""Run an external command and return its typed result.

    Parameters
    ----------
    args : Sequence[str]
        Executable and arguments.
    cwd : Path | None
        Working directory for the command.
    env : Mapping[str, str] | None
        Extra environment variables merged over ``os.environ``.
    timeout : float | None
        Seconds to wait before killing the command; None waits forever.
    stream_output : bool
        Forward output to the log while the command runs.

    Returns
    -------
    CommandResult
        The outcome. Tool failures are reported here, never raised.
    """
    argv = tuple(str(a) for a in args)
    full_env = os.environ.copy()
    if env:
        full_env.update(env)
    logger.info(f"$ {' '.join(argv)}")

    try:
        if stream_output:
            return _run_streaming(argv, cwd, full_env, timeout)
        completed = subprocess.run(
            argv,
            cwd=cwd,
            env=full_env,
            check=False,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except FileNotFoundError:
        logger.error(f"Executable not found: {argv[0]}")
        return CommandResult(argv, NOT_FOUND_RETURNCODE, not_found=True)
    except subprocess.TimeoutExpired as exc:
        output = _as_text(exc.stdout) + _as_text(exc.stderr)
        logger.error(f"Command timed out after {timeout}s: {' '.join(argv)}")
        return CommandResult(argv, None, output=output, timed_out=True)

    output = (completed.stdout or "") + (completed.stderr or "")
    result = CommandResult(argv, completed.returncode, output=output)
    if not result.ok:
        logger.error(result.describe())
        if output.strip():
            logger.error("Command output:\n" + output.rstrip())
    return result


def _run_streaming(
    argv: tuple[str, ...],
    cwd: Path | None,
    env: Mapping[str, str],
    timeout: float | None,
) -> CommandResult:
    # The child leads its own session so the watchdog can kill the whole
    # tree, including the container client cross starts.
    proc = subprocess.Popen(
        argv,
        cwd=cwd,
        env=dict(env),
        encoding="utf-8",
        errors="replace",
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        bufsize=1,
        start_new_session=True,
    )
    expired = threading.Event()

    def _kill() -> None:
        expired.set()
        _kill_process_group(proc)

    watchdog = threading.Timer(timeout, _kill) if timeout else None
    if watchdog is not None:
        watchdog.daemon = True
        watchdog.start()
    try:
        assert proc.stdout is not None
        for raw in proc.stdout:
            line = raw.rstrip("\r\n")
            if line:
                logger.info(line)
    finally:
        if watchdog is not None:
            watchdog.cancel()
        if proc.stdout is not None:
            proc.stdout.close()
        return_code = proc.wait()

    if expired.is_set():
        logger.error(f"Command timed out after {timeout}s: {' '.join(argv)}")
        return CommandResult(argv, None, timed_out=True)
    result = CommandResult(argv, return_code)
    if not result.ok:
        logger.error(result.describe())
    return result


def _kill_process_group(proc: subprocess.Popen) -> None:
    """Kill ``proc`` and every process in its session."""
    if hasattr(os, "killpg"):
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            pass
    proc.kill()


def _as_text(data: str | bytes | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode(errors="replace")
    return data


__all__ = ["CommandResult", "NOT_FOUND_RETURNCODE", "run_command"]
