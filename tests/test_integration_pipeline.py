"""End-to-end runs of the release pipeline against a fake toolchain."""

from dataclasses import replace
from pathlib import Path

from musl_release.exceptions import (
    ArtifactMissingError,
    CompilationFailedError,
    EnvironmentUnavailableError,
    ProvisioningFailedError,
    TimeoutExceededError,
)
from musl_release.pipeline.orchestrator import ReleasePipeline, run_release
from musl_release.pipeline.status import PipelineState
from musl_release.pipeline.target import StageTimeouts


def _tree(path: Path) -> list[str]:
    if not path.exists():
        return []
    return sorted(str(p.relative_to(path)) for p in path.rglob("*"))


def test_environment_unavailable_touches_nothing(target, toolchain, capsys):
    toolchain.returncodes["docker info"] = 1
    result = run_release(target)
    assert result.exit_code == 1
    assert isinstance(result.error, EnvironmentUnavailableError)
    assert toolchain.calls == [("docker", "info")]
    assert not target.release_root.exists()
    assert not target.build_root.exists()
    assert "Docker is not available" in capsys.readouterr().out


def test_successful_release_stages_binary(target, toolchain):
    result = run_release(target, show_ui=False)
    assert result.exit_code == 0
    assert result.state is PipelineState.STAGED
    assert target.release_path.read_bytes() == toolchain.binary_bytes
    assert [o.stage for o in result.outcomes] == [
        "environment",
        "provision",
        "clean",
        "compile",
        "verify",
        "stage",
        "report",
    ]
    assert not target.lock_path.exists()


def test_compile_failure_leaves_previous_artifact(target, toolchain):
    target.release_dir.mkdir(parents=True)
    target.release_path.write_bytes(b"previous release")
    toolchain.returncodes["cross build"] = 101
    result = run_release(target, show_ui=False)
    assert result.exit_code == 1
    assert isinstance(result.error, CompilationFailedError)
    assert target.release_path.read_bytes() == b"previous release"
    assert _tree(target.release_root) == ["linux", "linux/wol-server"]
    assert "stage" not in [o.stage for o in result.outcomes]


def test_provision_failure_aborts_before_clean(target, toolchain):
    target.compiled_path.parent.mkdir(parents=True)
    target.compiled_path.write_bytes(b"stale")
    toolchain.returncodes["rustup target add"] = 1
    result = run_release(target, show_ui=False)
    assert isinstance(result.error, ProvisioningFailedError)
    assert target.compiled_path.read_bytes() == b"stale"
    assert not toolchain.invoked("cross build")
    assert not target.release_root.exists()


def test_stale_binary_is_never_staged(target, toolchain):
    # A binary from an earlier build exists, but this build produces none.
    target.compiled_path.parent.mkdir(parents=True)
    target.compiled_path.write_bytes(b"stale")
    toolchain.write_binary = False
    result = run_release(target, show_ui=False)
    assert isinstance(result.error, ArtifactMissingError)
    assert result.failed_stage == "verify"
    assert not target.release_path.exists()


def test_two_runs_are_idempotent(target, toolchain):
    first = run_release(target, show_ui=False)
    content_first = target.release_path.read_bytes()
    tree_first = _tree(target.build_root)
    second = run_release(target, show_ui=False)
    assert first.ok and second.ok
    assert target.release_path.read_bytes() == content_first
    assert _tree(target.build_root) == tree_first
    assert _tree(target.release_root) == ["linux", "linux/wol-server"]


def test_concurrent_run_is_refused(target, toolchain):
    target.lock_path.write_text("99999\n")
    result = ReleasePipeline(target, show_ui=False).run()
    assert result.failed_stage == "lock"
    assert toolchain.calls == []


def test_hung_compile_times_out_and_fails_the_run(target, toolchain):
    target.release_dir.mkdir(parents=True)
    target.release_path.write_bytes(b"previous release")
    toolchain.timeouts.add("cross build")
    toolchain.write_binary = False
    short = replace(target, timeouts=StageTimeouts(compile=0.05))
    result = run_release(short, show_ui=False)
    assert isinstance(result.error, TimeoutExceededError)
    assert result.failed_stage == "compile"
    assert result.exit_code == 1
    assert result.state is PipelineState.FAILED
    assert [o.stage for o in result.outcomes][-1] == "compile"
    assert target.release_path.read_bytes() == b"previous release"
    assert not short.lock_path.exists()


def test_provision_timeout_fails_the_run(target, toolchain):
    toolchain.timeouts.add("rustup target add")
    result = run_release(target, show_ui=False)
    assert isinstance(result.error, TimeoutExceededError)
    assert result.failed_stage == "provision"
    assert result.exit_code == 1
    assert not toolchain.invoked("cross build")
