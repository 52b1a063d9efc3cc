"""Rich integration for terminal output.

This module is the single place that imports Rich. Everything else in the
package renders through the names re-exported here, so tests can patch one
console object.

Canonical Usage
---------------
>>> from musl_release.console_helpers import rprint
>>> rprint("[green]done[/green]")
done
"""

from __future__ import annotations

from typing import IO, Any

from rich import print as rich_print
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table

_RICH_CONSOLE: Console = Console()


def get_console() -> Console:
    """Return the shared Rich console."""
    return _RICH_CONSOLE


def rprint(
    *objects: Any,
    sep: str = " ",
    end: str = "\n",
    file: IO[str] | None = None,
    flush: bool = False,
) -> None:
    r"""Print objects to the terminal with Rich markup support.

    All parameters mirror Python's builtin print.

    Parameters
    ----------
    *objects : Any
        Objects to be printed, separated by sep.
    sep : str, optional
        Separator between objects, default ' '.
    end : str, optional
        Line ending, default newline.
    file : IO[str], optional
        File-like object to print to, default sys.stdout.
    flush : bool, optional
        Forcibly flush output.
    """
    rich_print(*objects, sep=sep, end=end, file=file, flush=flush)


__all__ = [
    "_RICH_CONSOLE",
    "Console",
    "Panel",
    "Rule",
    "Table",
    "get_console",
    "rprint",
]
