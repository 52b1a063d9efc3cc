"""Tests for `musl_release/pipeline/lock.py`."""

from pathlib import Path

import pytest

from musl_release.exceptions import PipelineLockedError
from musl_release.pipeline.lock import run_lock


def test_lock_created_and_released(tmp_path: Path):
    lock = tmp_path / ".musl-release.lock"
    with run_lock(lock) as held:
        assert held == lock
        assert lock.exists()
        assert lock.read_text().strip().isdigit()
    assert not lock.exists()


def test_lock_released_on_error(tmp_path: Path):
    lock = tmp_path / ".lock"
    with pytest.raises(RuntimeError):
        with run_lock(lock):
            raise RuntimeError("stage blew up")
    assert not lock.exists()


def test_second_holder_is_rejected(tmp_path: Path):
    lock = tmp_path / ".lock"
    with run_lock(lock):
        with pytest.raises(PipelineLockedError) as exc_info:
            with run_lock(lock):
                pass
        # The rejected attempt leaves the holder's lock in place.
        assert lock.exists()
    assert not lock.exists()
    err = exc_info.value
    assert err.code == "PIPELINE_LOCKED"
    assert err.stage == "lock"
    assert err.context["lock_path"] == str(lock)


def test_stale_lock_reports_owner(tmp_path: Path):
    lock = tmp_path / ".lock"
    lock.write_text("4242\n")
    with pytest.raises(PipelineLockedError) as exc_info:
        with run_lock(lock):
            pass
    assert exc_info.value.context["owner"] == "4242"
    assert lock.exists()
