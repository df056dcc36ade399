"""Pytest configuration: running emitted programs with a Go toolchain."""

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

import pytest

from pigeon.runtime import runtime_source

GO_MODULE = "pigeonrun"
RUNTIME_IMPORT = GO_MODULE + "/stdlib"


class GoBuildError(Exception):
    """Raised when an emitted program does not compile."""


@dataclass
class GoRun:
    returncode: int
    stdout: str
    stderr: str


class GoToolchain:
    """Builds emitted programs in a scratch module that vendors the runtime."""

    def __init__(self, go: str, workdir: Path):
        self.go: str = go
        self.workdir: Path = workdir

    def run(self, code: str, dynamic: bool = False, stdin: str = "") -> GoRun:
        moddir = self.workdir / ("dynamic" if dynamic else "static")
        (moddir / "stdlib").mkdir(parents=True, exist_ok=True)
        (moddir / "go.mod").write_text("module " + GO_MODULE + "\n\ngo 1.18\n")
        (moddir / "stdlib" / "builtins.go").write_text(runtime_source(dynamic))
        (moddir / "main.go").write_text(code)
        build = subprocess.run(
            [self.go, "build", "-o", "prog", "."],
            cwd=moddir,
            capture_output=True,
            text=True,
            timeout=120,
        )
        if build.returncode != 0:
            raise GoBuildError(build.stderr.strip())
        result = subprocess.run(
            [str(moddir / "prog")],
            input=stdin,
            capture_output=True,
            text=True,
            timeout=30,
        )
        return GoRun(result.returncode, result.stdout, result.stderr)


@pytest.fixture
def go_toolchain(tmp_path: Path) -> GoToolchain:
    """A Go toolchain, or skip when none is on PATH."""
    go = shutil.which("go")
    if go is None:
        pytest.skip("go toolchain not found")
    return GoToolchain(go, tmp_path)
