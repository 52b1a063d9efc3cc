"""Terminal output primitives for the release pipeline.

Headers, per-stage rules, a spinner while a stage runs and coloured
info/success/warning/error lines. No logic beyond rendering lives here; the
orchestrator and the command line launcher decide what to show.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager

from rich.markup import escape

from musl_release.console_helpers import Panel, Rule, get_console, rprint


def ui_rule(title: str) -> None:
    r"""Render a horizontal rule used as a stage separator.

    Parameters
    ----------
    title : str
        Caption shown in the rule.

    Examples
    --------
    >>> ui_rule("Compile")  # doctest: +SKIP
    """
    get_console().print(Rule(escape(title), style="bold blue"))


def ui_header(title: str) -> None:
    r"""Render a prominent banner at the start of a run.

    Parameters
    ----------
    title : str
        Banner text to display.
    """
    get_console().print(
        Panel.fit(escape(title), style="bold white on blue", border_style="blue")
    )


def ui_status(message: str) -> AbstractContextManager[None]:
    r"""Provide a context manager that shows a spinner while a stage runs.

    Parameters
    ----------
    message : str
        Status text shown for the duration of the context.

    Returns
    -------
    AbstractContextManager[None]
        Context manager yielding control while the status is active.

    Examples
    --------
    >>> with ui_status("Checking that Docker is running..."):  # doctest: +SKIP
    ...     pass
    """

    @contextmanager
    def _ctx() -> Iterator[None]:
        console = get_console()
        if console.is_terminal:
            with console.status(escape(message), spinner="dots"):
                yield
        else:
            rprint(escape(message))
            yield

    return _ctx()


def ui_info(message: str) -> None:
    """Display an informational message."""
    rprint(f"[cyan]{escape(message)}[/cyan]")


def ui_success(message: str) -> None:
    """Display a success message."""
    rprint(f"[green]✓ {escape(message)}[/green]")


def ui_warning(message: str) -> None:
    """Display a warning message."""
    rprint(f"[yellow]⚠ {escape(message)}[/yellow]")


def ui_error(message: str) -> None:
    """Display an error message."""
    rprint(f"[bold red]✗ {escape(message)}[/bold red]")


__all__ = [
    "ui_error",
    "ui_header",
    "ui_info",
    "ui_rule",
    "ui_status",
    "ui_success",
    "ui_warning",
]
