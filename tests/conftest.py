"""Pytest configuration and shared fixtures.

- Forces ``DISABLE_FILE_LOGS=1`` to avoid writing log files during tests.
- Ensures the project root is available on ``sys.path`` for imports.
- Provides a fake toolchain that stands in for docker, rustup, cargo and
  cross at the ``subprocess`` seam.
"""

import io
import logging
import os
import subprocess
import sys
import time
from pathlib import Path

import pytest

os.environ.setdefault("DISABLE_FILE_LOGS", "1")

ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

import musl_release.i18n as i18n  # noqa: E402
import musl_release.pipeline.commands as commands  # noqa: E402
from musl_release.pipeline.target import BuildTarget  # noqa: E402

TRIPLE = "x86_64-unknown-linux-musl"
BINARY = "wol-server"


class FakeProc:
    """Minimal ``subprocess.Popen`` stand-in for streamed commands.

    With ``hang=True`` the output never ends until ``kill`` is called.
    """

    def __init__(self, lines, returncode, hang=False):
        self.returncode = returncode
        self.killed = False
        self.stdout = self._hang(lines) if hang else io.StringIO("".join(lines))

    def _hang(self, lines):
        yield from lines
        deadline = time.monotonic() + 10
        while not self.killed and time.monotonic() < deadline:
            time.sleep(0.01)

    def wait(self):
        return -9 if self.killed else self.returncode

    def kill(self):
        self.killed = True


class FakeToolchain:
    """Scriptable replacement for the external tools.

    ``returncodes`` maps a tool invocation key (``"docker info"``,
    ``"rustup target add"``, ``"cross --version"``, ``"cargo install"``,
    ``"cross build"``) to its exit status. A successful ``cross build``
    writes ``binary_bytes`` to the compiler output path.
    """

    def __init__(self):
        self.calls: list[tuple[str, ...]] = []
        self.returncodes: dict[str, int] = {}
        self.missing: set[str] = set()
        self.timeouts: set[str] = set()
        self.binary_bytes = b"\x7fELF fake binary"
        self.write_binary = True

    @staticmethod
    def key(argv):
        if argv[0] == "docker":
            return "docker info"
        if argv[0] == "rustup":
            return "rustup target add"
        if argv[0] == "cargo":
            return "cargo install"
        if argv[0] == "cross" and "--version" in argv:
            return "cross --version"
        if argv[0] == "cross" and "build" in argv:
            return "cross build"
        return " ".join(argv)

    def invoked(self, key):
        return any(self.key(c) == key for c in self.calls)

    def run(self, argv, **kwargs):
        argv = tuple(argv)
        self.calls.append(argv)
        key = self.key(argv)
        if argv[0] in self.missing:
            raise FileNotFoundError(argv[0])
        if key in self.timeouts:
            raise subprocess.TimeoutExpired(argv, kwargs.get("timeout") or 1)
        rc = self.returncodes.get(key, 0)
        out = "cross 0.2.5\n" if key == "cross --version" and rc == 0 else ""
        return subprocess.CompletedProcess(argv, rc, stdout=out, stderr="")

    def popen(self, argv, **kwargs):
        argv = tuple(argv)
        self.calls.append(argv)
        key = self.key(argv)
        if argv[0] in self.missing:
            raise FileNotFoundError(argv[0])
        rc = self.returncodes.get(key, 0)
        if key == "cross build" and rc == 0 and self.write_binary:
            env = kwargs.get("env") or {}
            triple = argv[argv.index("--target") + 1]
            out_dir = Path(env["CARGO_TARGET_DIR"]) / triple / "release"
            out_dir.mkdir(parents=True, exist_ok=True)
            (out_dir / BINARY).write_bytes(self.binary_bytes)
        lines = ["   Compiling wol-server v0.1.0\n", "    Finished release\n"]
        return FakeProc(lines, rc, hang=key in self.timeouts)


@pytest.fixture(autouse=True)
def _english():
    prev = i18n.LANG
    i18n.set_language("en")
    yield
    i18n.LANG = prev


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """Drop handlers installed by ``configure_logging`` during a test."""
    handlers = logging.root.handlers[:]
    level = logging.root.level
    yield
    for h in logging.root.handlers[:]:
        if type(h) in (logging.StreamHandler, logging.FileHandler) and h not in handlers:
            logging.root.removeHandler(h)
            h.close()
    logging.root.setLevel(level)


@pytest.fixture
def crate(tmp_path: Path) -> Path:
    """A crate directory with a Cargo.toml naming the binary."""
    root = tmp_path / "crate"
    root.mkdir()
    (root / "Cargo.toml").write_text(
        f'[package]\nname = "{BINARY}"\nversion = "0.1.0"\n', encoding="utf-8"
    )
    return root


@pytest.fixture
def target(crate: Path) -> BuildTarget:
    return BuildTarget(source_root=crate, binary_name=BINARY, triple=TRIPLE)


@pytest.fixture
def toolchain(monkeypatch) -> FakeToolchain:
    fake = FakeToolchain()
    monkeypatch.setattr(commands.subprocess, "run", fake.run)
    monkeypatch.setattr(commands.subprocess, "Popen", fake.popen)
    monkeypatch.setattr(commands, "_kill_process_group", lambda proc: proc.kill())
    return fake
