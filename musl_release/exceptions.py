"""Central application exception hierarchy.

This module defines the base application exception ``AppError`` and the
specialized subclasses raised by the release pipeline. Each pipeline stage
has its own failure type so callers and tests can tell exactly which stage
stopped the run; the failing stage is also recorded in ``context["stage"]``.
"""

from __future__ import annotations

from typing import Any, Mapping


class AppError(Exception):
    """Base exception for all application-level errors.

    Parameters
    ----------
    code : str
        Machine-readable error code (e.g., ``'COMPILATION_FAILED'``).
    message : str
        Human-readable message describing the error.
    context : Mapping[str, Any] | None, optional
        Optional structured context for logging.
    transient : bool, optional
        Whether the error is temporary and may succeed on a later run.

    Examples
    --------
    >>> e = AppError('CODE', 'message', context={'k': 'v'}, transient=True)
    >>> e.code
    'CODE'
    """

    __slots__ = ("code", "message", "context", "transient")

    def __init__(
        self,
        code: str,
        message: str,
        *,
        context: Mapping[str, Any] | None = None,
        transient: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.context = dict(context or {})
        self.transient = bool(transient)

    def __str__(self) -> str:
        """Return a compact string representation of the error."""
        return f"{self.code}: {self.message}"

    @property
    def stage(self) -> str | None:
        """Name of the pipeline stage that raised the error, if any."""
        return self.context.get("stage")

    def to_dict(self) -> dict[str, Any]:
        """Return a log-safe dictionary representation of the error."""
        return {
            "error_code": self.code,
            "message": self.message,
            "context": self.context,
            "is_transient": self.transient,
        }


class StageError(AppError):
    """Base class for failures raised by a named pipeline stage."""

    default_code = "STAGE_FAILED"
    default_stage = ""
    is_transient = False

    def __init__(
        self,
        message: str,
        *,
        stage: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        ctx.setdefault("stage", stage or self.default_stage)
        super().__init__(
            self.default_code, message, context=ctx, transient=self.is_transient
        )


class EnvironmentUnavailableError(StageError):
    """Raised when the container runtime is not reachable."""

    default_code = "ENVIRONMENT_UNAVAILABLE"
    default_stage = "environment"
    is_transient = True


class ProvisioningFailedError(StageError):
    """Raised when the cross target or the cross helper cannot be installed."""

    default_code = "PROVISIONING_FAILED"
    default_stage = "provision"
    is_transient = True


class CleanFailedError(StageError):
    """Raised when previous build output cannot be removed."""

    default_code = "CLEAN_FAILED"
    default_stage = "clean"


class CompilationFailedError(StageError):
    """Raised when the cross build returns a non-zero status."""

    default_code = "COMPILATION_FAILED"
    default_stage = "compile"


class ArtifactMissingError(StageError):
    """Raised when the compiled binary is absent at its expected path."""

    default_code = "ARTIFACT_MISSING"
    default_stage = "verify"


class StagingFailedError(StageError):
    """Raised when the release directory or the artifact copy cannot be written."""

    default_code = "STAGING_FAILED"
    default_stage = "stage"


class TimeoutExceededError(StageError):
    """Raised when an external tool exceeds the stage timeout."""

    default_code = "TIMEOUT_EXCEEDED"
    is_transient = True


class PipelineLockedError(AppError):
    """Raised when another pipeline run holds the run lock."""

    def __init__(
        self, message: str, *, context: Mapping[str, Any] | None = None
    ) -> None:
        ctx = dict(context or {})
        ctx.setdefault("stage", "lock")
        super().__init__("PIPELINE_LOCKED", message, context=ctx, transient=True)


class ConfigurationError(AppError):
    """Raised for invalid or missing configuration."""

    def __init__(
        self, message: str, *, context: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__(
            "CONFIGURATION_ERROR", message, context=context, transient=False
        )


class PipelineStateError(AppError):
    """Raised on an illegal pipeline state transition."""

    def __init__(
        self, message: str, *, context: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__(
            "PIPELINE_STATE_ERROR", message, context=context, transient=False
        )
