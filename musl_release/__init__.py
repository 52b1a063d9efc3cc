"""Release pipeline for cross-compiled Linux/musl binaries.

The package drives ``cross`` inside Docker to build a Rust crate for
``x86_64-unknown-linux-musl`` and stages the resulting executable under
``release/linux/``.

Package Structure
-----------------
- `pipeline/`:
    Build target configuration, external command runner, run lock, the
    stage functions, the state machine and the orchestrator.
- `cli.py`: Argument parsing, logging setup and the process exit status.
- `config.py`: Defaults and constants, as UPPER_SNAKE_CASE.
- `exceptions.py`: The error taxonomy, one class per failing stage.
- `console_helpers.py` / `ui.py`: Rich terminal output.

Examples
--------
>>> from musl_release.pipeline.target import load_target
>>> from musl_release.pipeline.orchestrator import run_release
>>> run_release(load_target()).exit_code  # doctest: +SKIP
0
"""

__version__ = "0.1.0"
