"""Build target configuration.

``BuildTarget`` is the immutable description of one release build: which
triple to compile for, where the crate lives, and where build output and
release artifacts go. ``load_target`` assembles it from command line
overrides, the process environment, a ``.env`` file in the source root and
the crate's ``Cargo.toml``.

Examples
--------
>>> from pathlib import Path
>>> t = BuildTarget(source_root=Path("/work/app"), binary_name="wol-server")
>>> t.compiled_path.as_posix()
'/work/app/target/x86_64-unknown-linux-musl/release/wol-server'
>>> t.release_path.as_posix()
'/work/app/release/linux/wol-server'
"""

from __future__ import annotations

import logging
import math
import os
import re
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import dotenv_values

from musl_release import config as _config
from musl_release.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_TRIPLE_RE = re.compile(r"^[A-Za-z0-9_.]+(-[A-Za-z0-9_.]+){2,}$")


@dataclass(frozen=True)
class StageTimeouts:
    """Timeouts in seconds for the stages that call external tools.

    ``None`` means wait forever.
    """

    environment: float | None = _config.ENV_CHECK_TIMEOUT
    provision: float | None = _config.PROVISION_TIMEOUT
    compile: float | None = _config.COMPILE_TIMEOUT


@dataclass(frozen=True)
class BuildTarget:
    r"""Immutable configuration of a single cross-compiled release.

    Attributes
    ----------
    source_root : Path
        Directory containing the crate's ``Cargo.toml``.
    binary_name : str
        Name of the produced executable.
    triple : str
        Target triple passed to the cross build.
    build_root : Path | None
        Compiler output directory; ``<source_root>/target`` when None.
    release_root : Path | None
        Release directory; ``<source_root>/release`` when None.
    timeouts : StageTimeouts
        Per-stage timeouts for external tools.
    """

    source_root: Path
    binary_name: str = _config.DEFAULT_BINARY_NAME
    triple: str = _config.DEFAULT_TARGET_TRIPLE
    build_root: Path | None = None
    release_root: Path | None = None
    timeouts: StageTimeouts = field(default_factory=StageTimeouts)

    def __post_init__(self) -> None:
        object.__setattr__(self, "source_root", Path(self.source_root))
        if self.build_root is None:
            object.__setattr__(
                self, "build_root", self.source_root / _config.DEFAULT_BUILD_DIR_NAME
            )
        if self.release_root is None:
            object.__setattr__(
                self,
                "release_root",
                self.source_root / _config.DEFAULT_RELEASE_DIR_NAME,
            )
        object.__setattr__(
            self, "build_root", self._under_source(Path(self.build_root))
        )
        object.__setattr__(
            self, "release_root", self._under_source(Path(self.release_root))
        )
        self.validate()

    def _under_source(self, path: Path) -> Path:
        return path if path.is_absolute() else self.source_root / path

    def validate(self) -> None:
        """Raise ``ConfigurationError`` if the triple or binary name is malformed."""
        if not _TRIPLE_RE.match(self.triple):
            raise ConfigurationError(
                f"Invalid target triple: {self.triple!r}",
                context={"triple": self.triple},
            )
        name = self.binary_name
        if (
            not name
            or name in (".", "..")
            or "/" in name
            or "\\" in name
            or Path(name).name != name
        ):
            raise ConfigurationError(
                f"Invalid binary name: {name!r}", context={"binary_name": name}
            )
        build_root = Path(self.build_root)
        if self.source_root.is_relative_to(build_root):
            raise ConfigurationError(
                "Build root must not contain the source root",
                context={"build_root": str(build_root)},
            )
        if Path(self.release_root).is_relative_to(build_root):
            raise ConfigurationError(
                "Release root must not be inside the build root",
                context={
                    "build_root": str(build_root),
                    "release_root": str(self.release_root),
                },
            )

    @property
    def compiled_path(self) -> Path:
        """Deterministic compiler output path of the binary."""
        return (
            Path(self.build_root)
            / self.triple
            / _config.BUILD_PROFILE_DIR
            / self.binary_name
        )

    @property
    def release_dir(self) -> Path:
        """Directory the artifact is staged into."""
        return Path(self.release_root) / _config.RELEASE_PLATFORM_SUBDIR

    @property
    def release_path(self) -> Path:
        """Final path of the staged artifact."""
        return self.release_dir / self.binary_name

    @property
    def lock_path(self) -> Path:
        """Path of the run lock file."""
        return self.source_root / _config.LOCK_FILENAME


def read_crate_name(source_root: Path) -> str | None:
    r"""Return ``[package].name`` from ``<source_root>/Cargo.toml``.

    Returns None when the manifest is missing, unreadable or has no
    package name.
    """
    manifest = Path(source_root) / _config.CARGO_MANIFEST_NAME
    if not manifest.is_file():
        return None
    try:
        with manifest.open("rb") as fh:
            data = tomllib.load(fh)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning(f"Could not read {manifest}: {exc}")
        return None
    package = data.get("package")
    if isinstance(package, dict) and isinstance(package.get("name"), str):
        return package["name"]
    return None


def _parse_timeout(raw: object, name: str) -> float | None:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"Invalid timeout for {name}: {raw!r}", context={name: raw}
        ) from None
    if not math.isfinite(value) or value < 0:
        raise ConfigurationError(
            f"Timeout for {name} must be a finite, non-negative number",
            context={name: raw},
        )
    return None if value == 0 else value


def load_target(
    source_root: Path | None = None,
    overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> BuildTarget:
    r"""Build a ``BuildTarget`` from overrides, environment, ``.env`` and defaults.

    Precedence, highest first: ``overrides`` (command line), ``environ``,
    the ``.env`` file in ``source_root``, ``Cargo.toml`` (binary name only),
    defaults from ``musl_release.config``.

    Parameters
    ----------
    source_root : Path | None
        Crate directory; the current working directory when None.
    overrides : Mapping[str, object] | None
        Values keyed by ``triple``, ``binary_name``, ``build_root``,
        ``release_root``, ``env_timeout``, ``provision_timeout`` and
        ``compile_timeout``. None values are ignored.
    environ : Mapping[str, str] | None
        Environment to read; ``os.environ`` when None.

    Returns
    -------
    BuildTarget
        The validated target.

    Raises
    ------
    ConfigurationError
        If any value is malformed.
    """
    root = Path(source_root) if source_root is not None else Path.cwd()
    root = root.resolve()
    env = dict(os.environ if environ is None else environ)
    dotenv_path = root / _config.DOTENV_FILENAME
    file_values: dict[str, str] = {}
    if dotenv_path.is_file():
        file_values = {
            k: v for k, v in dotenv_values(dotenv_path).items() if v is not None
        }
        logger.debug(f"Loaded {len(file_values)} values from {dotenv_path}")
    opts = {k: v for k, v in (overrides or {}).items() if v is not None}

    def pick(key: str, env_name: str) -> object | None:
        if key in opts:
            return opts[key]
        if env.get(env_name):
            return env[env_name]
        return file_values.get(env_name) or None

    binary_name = pick("binary_name", _config.ENV_BINARY_NAME)
    if binary_name is None:
        binary_name = read_crate_name(root) or _config.DEFAULT_BINARY_NAME

    defaults = StageTimeouts()
    timeouts = {}
    for key, env_name, field_name in (
        ("env_timeout", _config.ENV_ENV_TIMEOUT, "environment"),
        ("provision_timeout", _config.ENV_PROVISION_TIMEOUT, "provision"),
        ("compile_timeout", _config.ENV_COMPILE_TIMEOUT, "compile"),
    ):
        raw = pick(key, env_name)
        timeouts[field_name] = (
            getattr(defaults, field_name) if raw is None else _parse_timeout(raw, key)
        )

    build_root = pick("build_root", _config.ENV_BUILD_ROOT)
    release_root = pick("release_root", _config.ENV_RELEASE_ROOT)
    return BuildTarget(
        source_root=root,
        binary_name=str(binary_name),
        triple=str(pick("triple", _config.ENV_TARGET) or _config.DEFAULT_TARGET_TRIPLE),
        build_root=Path(str(build_root)) if build_root is not None else None,
        release_root=Path(str(release_root)) if release_root is not None else None,
        timeouts=StageTimeouts(**timeouts),
    )


__all__ = ["BuildTarget", "StageTimeouts", "load_target", "read_crate_name"]
