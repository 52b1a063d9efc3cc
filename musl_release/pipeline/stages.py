"""The seven stages of a release run.

Each stage takes the ``BuildTarget``, performs one step, and either returns
a short detail string for the status table or raises the ``StageError``
subclass that names it. External tools are run through
``commands.run_command``; every result is checked here, including the
provisioning commands.

``PIPELINE_STAGES`` lists the stages in execution order together with the
state the run enters when each one succeeds.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from musl_release import config as _config
from musl_release.exceptions import (
    ArtifactMissingError,
    CleanFailedError,
    CompilationFailedError,
    EnvironmentUnavailableError,
    ProvisioningFailedError,
    StageError,
    StagingFailedError,
    TimeoutExceededError,
)
from musl_release.fs_utils import atomic_copy, safe_rmtree
from musl_release.i18n import translate

from .commands import CommandResult, run_command
from .status import PipelineState
from .target import BuildTarget

logger = logging.getLogger(__name__)


def _require(
    result: CommandResult,
    error_cls: type[StageError],
    message: str,
    stage: str,
    timeout: float | None,
) -> None:
    """Raise ``error_cls`` (or ``TimeoutExceededError``) unless ``result`` is ok."""
    if result.ok:
        return
    context = {
        "command": result.command,
        "returncode": result.returncode,
        "detail": result.describe(),
    }
    if result.timed_out:
        raise TimeoutExceededError(
            translate("timed_out", stage=translate(f"stage_{stage}"), seconds=timeout),
            stage=stage,
            context=context,
        )
    raise error_cls(f"{message} ({result.describe()})", stage=stage, context=context)


def check_environment(target: BuildTarget) -> str:
    """Check that the container runtime answers ``docker info``."""
    timeout = target.timeouts.environment
    logger.info(translate("checking_docker"))
    result = run_command([_config.CONTAINER_RUNTIME, "info"], timeout=timeout)
    _require(
        result,
        EnvironmentUnavailableError,
        translate("docker_unavailable"),
        "environment",
        timeout,
    )
    return translate("docker_ok")


def provision_toolchain(target: BuildTarget) -> str:
    r"""Install the rustup target and the ``cross`` helper if missing.

    Both steps are idempotent: ``rustup target add`` is a no-op for an
    installed target, and ``cargo install cross`` only runs when
    ``cross --version`` fails.
    """
    timeout = target.timeouts.provision
    logger.info(translate("adding_target", target=target.triple))
    result = run_command(
        [_config.RUSTUP_TOOL, "target", "add", target.triple], timeout=timeout
    )
    _require(
        result, ProvisioningFailedError, translate("provision_failed"), "provision", timeout
    )

    probe = run_command([_config.CROSS_TOOL, "--version"], timeout=timeout)
    if probe.ok:
        logger.info(translate("cross_present"))
        lines = probe.output.strip().splitlines()
        return f"{target.triple}, {lines[0] if lines else 'cross'}"

    logger.info(translate("installing_cross"))
    result = run_command(
        [_config.CARGO_TOOL, "install", _config.CROSS_TOOL], timeout=timeout
    )
    _require(
        result, ProvisioningFailedError, translate("provision_failed"), "provision", timeout
    )
    return f"{target.triple}, cross installed"


def clean_workspace(target: BuildTarget) -> str:
    """Remove all previous build output under the build root."""
    build_root = target.build_root
    logger.info(translate("cleaning", path=build_root))
    try:
        removed = safe_rmtree(build_root, target.source_root, [build_root])
    except OSError as exc:
        raise CleanFailedError(
            f"{translate('clean_failed')} ({exc})",
            context={"path": str(build_root), "error": str(exc)},
        ) from exc
    return "removed" if removed else "nothing to remove"


def compile_target(target: BuildTarget) -> str:
    """Run the cross build in release mode for the configured triple."""
    timeout = target.timeouts.compile
    logger.info(
        translate("compiling", binary=target.binary_name, target=target.triple)
    )
    result = run_command(
        [_config.CROSS_TOOL, "build", "--release", "--target", target.triple],
        cwd=target.source_root,
        env={"CARGO_TARGET_DIR": str(target.build_root)},
        timeout=timeout,
        stream_output=True,
    )
    _require(
        result, CompilationFailedError, translate("compile_failed"), "compile", timeout
    )
    return translate("compile_ok")


def verify_output(target: BuildTarget) -> str:
    """Confirm the binary exists at the deterministic compiler output path."""
    compiled = target.compiled_path
    if not compiled.is_file():
        raise ArtifactMissingError(
            translate("artifact_missing", path=compiled),
            stage="verify",
            context={"path": str(compiled)},
        )
    logger.info(translate("artifact_found", path=compiled))
    return str(compiled)


def stage_artifact(target: BuildTarget) -> str:
    r"""Create the release directory and copy the verified binary into it.

    The compiled file is checked again right before the copy; the copy
    itself is atomic, so an existing release artifact is either replaced
    entirely or left as it was.
    """
    compiled = target.compiled_path
    destination = target.release_path
    logger.info(translate("staging", path=destination))
    try:
        target.release_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise StagingFailedError(
            f"{translate('staging_failed')} ({exc})",
            context={"path": str(target.release_dir), "error": str(exc)},
        ) from exc
    if not compiled.is_file():
        raise ArtifactMissingError(
            translate("artifact_missing", path=compiled),
            stage="stage",
            context={"path": str(compiled)},
        )
    try:
        atomic_copy(compiled, destination)
    except OSError as exc:
        raise StagingFailedError(
            f"{translate('staging_failed')} ({exc})",
            context={
                "source": str(compiled),
                "destination": str(destination),
                "error": str(exc),
            },
        ) from exc
    return str(destination)


def report_success(target: BuildTarget) -> str:
    """Describe the staged artifact."""
    artifact = target.release_path
    try:
        size = artifact.stat().st_size / (1024 * 1024)
    except OSError as exc:
        raise StagingFailedError(
            f"{translate('staging_failed')} ({exc})",
            stage="report",
            context={"path": str(artifact), "error": str(exc)},
        ) from exc
    message = translate("artifact_ready", path=artifact, size=f"{size:.2f} MB")
    logger.info(message)
    return message


@dataclass(frozen=True)
class Stage:
    """One entry of the stage sequence."""

    name: str
    run: Callable[[BuildTarget], str]
    reaches: PipelineState | None
    streams_output: bool = False


PIPELINE_STAGES: tuple[Stage, ...] = (
    Stage("environment", check_environment, PipelineState.ENV_OK),
    Stage("provision", provision_toolchain, PipelineState.TOOLCHAIN_OK),
    Stage("clean", clean_workspace, PipelineState.CLEANED),
    Stage("compile", compile_target, PipelineState.COMPILED, streams_output=True),
    Stage("verify", verify_output, PipelineState.VERIFIED),
    Stage("stage", stage_artifact, PipelineState.STAGED),
    Stage("report", report_success, None),
)

STAGE_NAMES: tuple[str, ...] = tuple(s.name for s in PIPELINE_STAGES)


__all__ = [
    "PIPELINE_STAGES",
    "STAGE_NAMES",
    "Stage",
    "check_environment",
    "clean_workspace",
    "compile_target",
    "provision_toolchain",
    "report_success",
    "stage_artifact",
    "verify_output",
]
