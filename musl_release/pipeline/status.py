"""Pipeline state machine and status rendering.

``PipelineState`` lists the states a run passes through. Transitions follow
the stage order strictly; any state except a terminal one may move to
``FAILED``. ``STAGED`` and ``FAILED`` are terminal.

The rendering helpers produce localized status labels and the Rich table
shown at the end of a run.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from enum import Enum
from typing import TYPE_CHECKING

from musl_release.console_helpers import Table
from musl_release.exceptions import PipelineStateError

if TYPE_CHECKING:
    from .orchestrator import StageOutcome


class PipelineState(str, Enum):
    """States of a release run."""

    INIT = "init"
    ENV_OK = "env_ok"
    TOOLCHAIN_OK = "toolchain_ok"
    CLEANED = "cleaned"
    COMPILED = "compiled"
    VERIFIED = "verified"
    STAGED = "staged"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.STAGED, PipelineState.FAILED)


_ORDER: tuple[PipelineState, ...] = (
    PipelineState.INIT,
    PipelineState.ENV_OK,
    PipelineState.TOOLCHAIN_OK,
    PipelineState.CLEANED,
    PipelineState.COMPILED,
    PipelineState.VERIFIED,
    PipelineState.STAGED,
)


def next_state(current: PipelineState, target: PipelineState) -> PipelineState:
    r"""Validate a transition and return the new state.

    Parameters
    ----------
    current : PipelineState
        State the run is in.
    target : PipelineState
        Requested state.

    Returns
    -------
    PipelineState
        ``target`` when the transition is legal.

    Raises
    ------
    PipelineStateError
        If ``current`` is terminal, or ``target`` is neither the next state
        in order nor ``FAILED``.

    Examples
    --------
    >>> next_state(PipelineState.INIT, PipelineState.ENV_OK)
    <PipelineState.ENV_OK: 'env_ok'>
    >>> next_state(PipelineState.CLEANED, PipelineState.FAILED)
    <PipelineState.FAILED: 'failed'>
    """
    if current.is_terminal:
        raise PipelineStateError(
            f"Pipeline already finished in state {current.value}",
            context={"current": current.value, "target": target.value},
        )
    if target is PipelineState.FAILED:
        return target
    expected = _ORDER[_ORDER.index(current) + 1]
    if target is not expected:
        raise PipelineStateError(
            f"Illegal transition {current.value} -> {target.value}",
            context={"current": current.value, "target": target.value},
        )
    return target


def _status_label(lang: str, base: str) -> str:
    r"""Return a localized status label for a stage outcome key.

    Parameters
    ----------
    lang : str
        Language code (``'en'`` or ``'sv'``).
    base : str
        One of ``'waiting'``, ``'ok'``, ``'fail'`` or ``'skipped'``.

    Examples
    --------
    >>> _status_label("sv", "ok")
    '✅ Klart'
    """
    if lang == "sv":
        labels = {
            "waiting": "⏳ Väntar",
            "ok": "✅ Klart",
            "fail": "❌ Misslyckades",
            "skipped": "⏭  Hoppades över",
        }
    else:
        labels = {
            "waiting": "⏳ Waiting",
            "ok": "✅ Done",
            "fail": "❌ Failed",
            "skipped": "⏭  Skipped",
        }
    return labels.get(base, base)


def _render_pipeline_table(
    translate: Callable[[str], str],
    lang: str,
    stage_names: Sequence[str],
    outcomes: Sequence[StageOutcome],
) -> Table:
    r"""Construct a Rich table summarising every stage of a run.

    Stages with no recorded outcome are shown as skipped.

    Parameters
    ----------
    translate : Callable[[str], str]
        Translation function for message keys.
    lang : str
        Current language code.
    stage_names : Sequence[str]
        All stage names in pipeline order.
    outcomes : Sequence[StageOutcome]
        Outcomes of the stages that ran.
    """
    by_name = {o.stage: o for o in outcomes}
    table = Table(
        title=translate("pipeline_title"),
        show_header=True,
        header_style="bold blue",
    )
    table.add_column("Step", style="bold")
    table.add_column("Status")
    table.add_column("Time", justify="right")
    table.add_column("Detail")
    for name in stage_names:
        outcome = by_name.get(name)
        if outcome is None:
            table.add_row(translate(f"stage_{name}"), _status_label(lang, "skipped"), "", "")
            continue
        table.add_row(
            translate(f"stage_{name}"),
            _status_label(lang, "ok" if outcome.ok else "fail"),
            f"{outcome.duration:.1f}s",
            outcome.detail,
        )
    return table


__all__ = ["PipelineState", "_render_pipeline_table", "_status_label", "next_state"]
