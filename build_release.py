"""Minimal runner for the release pipeline.

This file only delegates to ``musl_release.cli``; run it from the crate
directory or pass ``--source-root``.

Usage:
    python build_release.py [--source-root PATH] [--target TRIPLE] [--lang en|sv]

"""

from __future__ import annotations

import sys


def entry_point(argv: list[str] | None = None) -> int:
    """Run the release pipeline and return its exit status.

    The import is performed inside the function so that importing this
    launcher does not load the whole package.
    """
    from musl_release.cli import main

    return main(argv)


if __name__ == "__main__":
    sys.exit(entry_point())
