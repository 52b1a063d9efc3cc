"""Orchestrator for the release pipeline.

Sequences the stages in ``stages.PIPELINE_STAGES`` for one ``BuildTarget``
while holding the run lock, drives the state machine in ``status``, and
renders progress to the terminal. The first failing stage ends the run;
no later stage is started and nothing is rolled back.

Typical usage::

    from musl_release.pipeline.orchestrator import ReleasePipeline
    from musl_release.pipeline.target import load_target

    result = ReleasePipeline(load_target()).run()
    raise SystemExit(result.exit_code)

"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from contextlib import nullcontext
from dataclasses import dataclass, field
from pathlib import Path

from musl_release import config as _config
from musl_release import i18n
from musl_release.console_helpers import get_console
from musl_release.exceptions import AppError
from musl_release.i18n import translate
from musl_release.ui import ui_error, ui_header, ui_rule, ui_status, ui_success

from .lock import run_lock
from .stages import PIPELINE_STAGES, Stage
from .status import PipelineState, _render_pipeline_table, next_state
from .target import BuildTarget

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageOutcome:
    """Result of one executed stage."""

    stage: str
    ok: bool
    duration: float
    detail: str = ""


@dataclass
class PipelineResult:
    r"""Terminal outcome of a release run.

    Attributes
    ----------
    target : BuildTarget
        The target that was built.
    state : PipelineState
        ``STAGED`` once the artifact is in place, ``FAILED`` when a
        stage before that failed.
    outcomes : list[StageOutcome]
        Executed stages in order.
    error : AppError | None
        The error that stopped the run.
    """

    target: BuildTarget
    state: PipelineState = PipelineState.INIT
    outcomes: list[StageOutcome] = field(default_factory=list)
    error: AppError | None = None

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.STAGED and self.error is None

    @property
    def failed_stage(self) -> str | None:
        """Name of the stage that failed, or None."""
        if self.error is None:
            return None
        return self.error.stage

    @property
    def artifact(self) -> Path | None:
        """Path of the staged artifact on success."""
        return self.target.release_path if self.ok else None

    @property
    def exit_code(self) -> int:
        return _config.EXIT_OK if self.ok else _config.EXIT_FAILURE


class ReleasePipeline:
    r"""Run the release stages for one target, strictly in order.

    Parameters
    ----------
    target : BuildTarget
        What to build and where to put it.
    stages : Sequence[Stage], optional
        Stage sequence; defaults to ``PIPELINE_STAGES``.
    show_ui : bool, optional
        Render rules, spinners and the summary table. Logging happens
        either way.
    on_stage : Callable[[StageOutcome], None] | None, optional
        Called after every executed stage.

    Examples
    --------
    >>> from pathlib import Path
    >>> from musl_release.pipeline.target import BuildTarget
    >>> pipeline = ReleasePipeline(BuildTarget(Path("/work/app")), show_ui=False)
    >>> pipeline.state
    <PipelineState.INIT: 'init'>
    """

    def __init__(
        self,
        target: BuildTarget,
        stages: Sequence[Stage] = PIPELINE_STAGES,
        *,
        show_ui: bool = True,
        on_stage: Callable[[StageOutcome], None] | None = None,
    ) -> None:
        self.target = target
        self.stages = tuple(stages)
        self.show_ui = show_ui
        self.on_stage = on_stage
        self.state = PipelineState.INIT

    def _transition(self, new_state: PipelineState) -> None:
        self.state = next_state(self.state, new_state)
        logger.debug(f"Pipeline state -> {self.state.value}")

    def run(self) -> PipelineResult:
        r"""Execute the pipeline and return its terminal result.

        The run lock is held for the whole sequence and released on every
        exit path, including ``KeyboardInterrupt``, which is re-raised.

        Returns
        -------
        PipelineResult
            ``STAGED`` with the artifact path, or ``FAILED`` with the error.
        """
        self.state = PipelineState.INIT
        result = PipelineResult(target=self.target)
        if self.show_ui:
            ui_header(
                translate(
                    "header", binary=self.target.binary_name, target=self.target.triple
                )
            )
        try:
            with run_lock(self.target.lock_path):
                self._run_stages(result)
        except AppError as exc:
            # Lock contention or an illegal transition.
            self._fail(result, exc)
        result.state = self.state
        self._finish(result)
        return result

    def _run_stages(self, result: PipelineResult) -> None:
        for stage in self.stages:
            label = translate(f"stage_{stage.name}")
            if self.show_ui:
                ui_rule(label)
            spinner = (
                ui_status(label)
                if self.show_ui and not stage.streams_output
                else nullcontext()
            )
            started = time.monotonic()
            try:
                with spinner:
                    detail = stage.run(self.target)
            except AppError as exc:
                outcome = StageOutcome(
                    stage.name, False, time.monotonic() - started, exc.message
                )
                self._record(result, outcome)
                self._fail(result, exc)
                return
            outcome = StageOutcome(stage.name, True, time.monotonic() - started, detail)
            self._record(result, outcome)
            if stage.reaches is not None:
                self._transition(stage.reaches)
            if self.show_ui:
                ui_success(detail)

    def _record(self, result: PipelineResult, outcome: StageOutcome) -> None:
        result.outcomes.append(outcome)
        if self.on_stage is not None:
            self.on_stage(outcome)

    def _fail(self, result: PipelineResult, exc: AppError) -> None:
        result.error = exc
        if not self.state.is_terminal:
            self._transition(PipelineState.FAILED)
        logger.error(f"Stage '{exc.stage}' failed: {exc}", extra={"error": exc.to_dict()})
        if self.show_ui:
            ui_error(exc.message)

    def _finish(self, result: PipelineResult) -> None:
        stage_names = [s.name for s in self.stages]
        if self.show_ui:
            get_console().print(
                _render_pipeline_table(translate, i18n.LANG, stage_names, result.outcomes)
            )
        if result.ok:
            logger.info(f"{translate('build_complete')}: {result.artifact}")
            if self.show_ui:
                ui_rule(translate("build_complete"))
                ui_success(str(result.artifact))
        else:
            stage = result.failed_stage or "unknown"
            label = translate(f"stage_{stage}") if stage in stage_names else stage
            message = translate("failed_at", stage=label)
            logger.error(message)
            if self.show_ui:
                ui_error(message)


def run_release(target: BuildTarget, *, show_ui: bool = True) -> PipelineResult:
    """Run the default pipeline for ``target``."""
    return ReleasePipeline(target, show_ui=show_ui).run()


__all__ = ["PipelineResult", "ReleasePipeline", "StageOutcome", "run_release"]
