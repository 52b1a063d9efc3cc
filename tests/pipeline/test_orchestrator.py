"""Tests for `musl_release/pipeline/orchestrator.py`."""

import pytest

import musl_release.pipeline.orchestrator as orch
from musl_release.exceptions import (
    CompilationFailedError,
    EnvironmentUnavailableError,
    PipelineStateError,
    StagingFailedError,
)
from musl_release.pipeline.stages import PIPELINE_STAGES, Stage
from musl_release.pipeline.status import PipelineState


def _recording_stages(calls, fail_at=None, error=None):
    """Replace every stage body with a recorder; optionally fail one stage."""

    def make(stage):
        def body(target):
            calls.append(stage.name)
            if stage.name == fail_at:
                raise error
            return f"{stage.name} ok"

        return Stage(stage.name, body, stage.reaches, stage.streams_output)

    return [make(s) for s in PIPELINE_STAGES]


def test_all_stages_run_in_order(target):
    calls = []
    result = orch.ReleasePipeline(target, _recording_stages(calls), show_ui=False).run()
    assert calls == [s.name for s in PIPELINE_STAGES]
    assert result.ok
    assert result.state is PipelineState.STAGED
    assert result.exit_code == 0
    assert result.artifact == target.release_path
    assert result.failed_stage is None
    assert [o.stage for o in result.outcomes] == calls


def test_first_failure_stops_the_run(target):
    calls = []
    stages = _recording_stages(
        calls, fail_at="compile", error=CompilationFailedError("Compilation failed.")
    )
    result = orch.ReleasePipeline(target, stages, show_ui=False).run()
    assert calls == ["environment", "provision", "clean", "compile"]
    assert result.state is PipelineState.FAILED
    assert result.exit_code == 1
    assert result.failed_stage == "compile"
    assert result.artifact is None
    assert result.outcomes[-1].ok is False
    assert isinstance(result.error, CompilationFailedError)


def test_environment_failure_runs_nothing_else(target):
    calls = []
    stages = _recording_stages(
        calls,
        fail_at="environment",
        error=EnvironmentUnavailableError("Docker is not available."),
    )
    result = orch.ReleasePipeline(target, stages, show_ui=False).run()
    assert calls == ["environment"]
    assert result.failed_stage == "environment"


def test_lock_held_prevents_any_stage(target):
    target.lock_path.write_text("1\n")
    calls = []
    result = orch.ReleasePipeline(target, _recording_stages(calls), show_ui=False).run()
    assert calls == []
    assert result.state is PipelineState.FAILED
    assert result.failed_stage == "lock"
    assert result.exit_code == 1
    assert target.lock_path.exists()


def test_lock_released_after_success_and_failure(target):
    orch.ReleasePipeline(target, _recording_stages([]), show_ui=False).run()
    assert not target.lock_path.exists()
    stages = _recording_stages([], fail_at="verify", error=CompilationFailedError("x"))
    orch.ReleasePipeline(target, stages, show_ui=False).run()
    assert not target.lock_path.exists()


def test_keyboard_interrupt_releases_lock(target):
    def interrupted(t):
        raise KeyboardInterrupt

    stages = [Stage("environment", interrupted, PipelineState.ENV_OK)]
    with pytest.raises(KeyboardInterrupt):
        orch.ReleasePipeline(target, stages, show_ui=False).run()
    assert not target.lock_path.exists()


def test_programming_errors_propagate(target):
    def broken(t):
        raise ZeroDivisionError

    stages = [Stage("environment", broken, PipelineState.ENV_OK)]
    with pytest.raises(ZeroDivisionError):
        orch.ReleasePipeline(target, stages, show_ui=False).run()
    assert not target.lock_path.exists()


def test_out_of_order_stage_list_fails_with_state_error(target):
    stages = [Stage("compile", lambda t: "ok", PipelineState.COMPILED)]
    result = orch.ReleasePipeline(target, stages, show_ui=False).run()
    assert result.state is PipelineState.FAILED
    assert isinstance(result.error, PipelineStateError)


def test_on_stage_callback_and_rerun(target):
    seen = []
    pipeline = orch.ReleasePipeline(
        target, _recording_stages([]), show_ui=False, on_stage=seen.append
    )
    assert pipeline.run().ok
    assert pipeline.run().ok
    assert len(seen) == 2 * len(PIPELINE_STAGES)


def test_ui_rendering_does_not_change_outcome(target, capsys):
    stages = _recording_stages(
        [], fail_at="compile", error=CompilationFailedError("Compilation failed.")
    )
    result = orch.ReleasePipeline(target, stages, show_ui=True).run()
    out = capsys.readouterr().out
    assert result.exit_code == 1
    assert "Compilation failed." in out
    assert "Release failed at stage: Compile" in out


def test_report_failure_after_staging_exits_nonzero(target):
    calls = []
    stages = _recording_stages(
        calls,
        fail_at="report",
        error=StagingFailedError("Copying the artifact failed.", stage="report"),
    )
    result = orch.ReleasePipeline(target, stages, show_ui=False).run()
    assert calls == [s.name for s in PIPELINE_STAGES]
    assert result.state is PipelineState.STAGED
    assert not result.ok
    assert result.exit_code == 1
    assert result.failed_stage == "report"
    assert result.artifact is None
