"""Command line entrypoint for the release pipeline.

Parses arguments, configures logging, loads the ``BuildTarget`` and runs
the pipeline. The process exit status is ``0`` when the artifact was
staged, ``1`` when a stage failed, ``2`` for invalid configuration and
``130`` when interrupted.

Examples
--------
>>> from musl_release import cli
>>> ns = cli.parse_cli_args(["--target", "aarch64-unknown-linux-musl"])
>>> ns.target
'aarch64-unknown-linux-musl'
"""

from __future__ import annotations

import argparse
import logging
import math
import os
import sys
from pathlib import Path

from musl_release import config as _config
from musl_release import i18n
from musl_release.exceptions import ConfigurationError
from musl_release.i18n import translate
from musl_release.pipeline.orchestrator import ReleasePipeline
from musl_release.pipeline.target import load_target
from musl_release.ui import ui_error, ui_warning

logger = logging.getLogger(__name__)


def configure_logging(
    log_level: str = _config.DEFAULT_LOG_LEVEL,
    enable_file: bool = True,
    log_dir: Path | None = None,
) -> None:
    r"""Configure root logging for a pipeline run.

    Sets up a stream handler and, optionally, a file handler at
    ``<log_dir>/musl_release.log``. File handler creation errors are
    ignored so a read-only checkout can still be built.

    Parameters
    ----------
    log_level : str, optional
        The logging level (e.g., "INFO", "DEBUG"). Defaults to "INFO".
    enable_file : bool, optional
        Whether to write logs to a file. Defaults to True.
    log_dir : Path | None, optional
        Directory for the log file; ``./logs`` when None.

    Notes
    -----
    Existing root handlers are removed first, so calling this repeatedly
    is safe.

    Examples
    --------
    >>> configure_logging(log_level="DEBUG", enable_file=False)
    """
    for h in logging.root.handlers[:]:
        logging.root.removeHandler(h)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if enable_file:
        directory = log_dir if log_dir is not None else Path(_config.LOG_DIR_NAME)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            handlers.insert(
                0, logging.FileHandler(directory / _config.LOG_FILENAME, mode="a")
            )
        except OSError:
            pass
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=_config.LOG_FORMAT,
        handlers=handlers,
    )


def _timeout_arg(value: str) -> float:
    try:
        seconds = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from None
    if not math.isfinite(seconds):
        raise argparse.ArgumentTypeError(f"not a finite number: {value!r}")
    if seconds < 0:
        raise argparse.ArgumentTypeError("must not be negative")
    return seconds


def parse_cli_args(argv: list[str] | None = None) -> argparse.Namespace:
    r"""Parse command line arguments.

    Parameters
    ----------
    argv : list[str] | None
        Arguments to parse; ``sys.argv[1:]`` when None.

    Returns
    -------
    argparse.Namespace
        Parsed arguments. Options that were not given are None so the
        environment and ``.env`` values can apply.
    """
    parser = argparse.ArgumentParser(
        prog="musl-release",
        description="Cross-compile a Rust crate for Linux/musl with cross and stage the binary.",
    )
    parser.add_argument(
        "--source-root",
        type=Path,
        default=None,
        help="Crate directory (default: current directory)",
    )
    parser.add_argument("--target", default=None, help="Target triple")
    parser.add_argument("--binary-name", default=None, help="Executable name")
    parser.add_argument("--build-root", type=Path, default=None)
    parser.add_argument("--release-root", type=Path, default=None)
    parser.add_argument("--env-timeout", type=_timeout_arg, default=None)
    parser.add_argument("--provision-timeout", type=_timeout_arg, default=None)
    parser.add_argument("--compile-timeout", type=_timeout_arg, default=None)
    parser.add_argument(
        "--log-level", type=str, default=os.environ.get("LOG_LEVEL", _config.DEFAULT_LOG_LEVEL)
    )
    parser.add_argument("--lang", choices=i18n.SUPPORTED_LANGUAGES, default=_config.LANG)
    parser.add_argument(
        "--no-file-log", action="store_true", help="Do not write logs/musl_release.log"
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    r"""Run the release pipeline and return the process exit status.

    Parameters
    ----------
    argv : list[str] | None
        Command line arguments; ``sys.argv[1:]`` when None.

    Returns
    -------
    int
        ``0`` on success, ``1`` on a stage failure, ``2`` on invalid
        configuration, ``130`` on interrupt.
    """
    args = parse_cli_args(argv)
    i18n.set_language(args.lang)
    source_root = (args.source_root or Path.cwd()).resolve()
    disable_file_logs = bool(
        args.no_file_log
        or os.environ.get("DISABLE_FILE_LOGS")
        or os.environ.get("PYTEST_CURRENT_TEST")
    )
    configure_logging(
        args.log_level,
        enable_file=not disable_file_logs,
        log_dir=source_root / _config.LOG_DIR_NAME,
    )

    try:
        target = load_target(
            source_root,
            overrides={
                "triple": args.target,
                "binary_name": args.binary_name,
                "build_root": args.build_root,
                "release_root": args.release_root,
                "env_timeout": args.env_timeout,
                "provision_timeout": args.provision_timeout,
                "compile_timeout": args.compile_timeout,
            },
        )
    except ConfigurationError as exc:
        logger.error(str(exc))
        ui_error(translate("config_error", detail=exc.message))
        return _config.EXIT_USAGE

    try:
        result = ReleasePipeline(target).run()
    except KeyboardInterrupt:
        logger.warning("Interrupted by operator")
        ui_warning(translate("interrupted"))
        return _config.EXIT_INTERRUPTED
    return result.exit_code


def entry_point() -> None:
    """Console script entrypoint."""
    sys.exit(main())


if __name__ == "__main__":
    entry_point()
