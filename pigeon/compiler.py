"""Compiler driver: loads source files, resolves imports, sequences the phases."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .ast import Definition, ImportDef
from .build import BuildError, Package, build
from .check import check
from .dynamic import emit_dynamic
from .emit import emit
from .errors import PigeonError
from .parse import parse_tokens
from .runtime import DEFAULT_RUNTIME_PATH
from .tokens import Token, lex

PHASES: list[str] = ["lex", "parse", "build", "check", "emit"]

STDIN_NAME = "<stdin>"


@dataclass
class CompileOptions:
    dynamic: bool = False
    runtime_path: str = DEFAULT_RUNTIME_PATH
    breakpoints: bool = True
    stop_at: str | None = None


@dataclass
class CompileResult:
    """What the pipeline produced, up to the phase it stopped after."""

    phase: str
    tokens: list[Token] = field(default_factory=list)
    definitions: list[Definition] = field(default_factory=list)
    package: Package | None = None
    code: str = ""


def _wrap(e: PigeonError, path: str) -> BuildError:
    return BuildError(path + ": " + e.msg, e.line, e.col)


class Loader:
    """Loads a root package and, transitively, the files it imports.

    Each imported file becomes its own Package with a p1_, p2_, ... prefix;
    a file imported twice is loaded once.
    """

    def __init__(self, options: CompileOptions):
        self.options: CompileOptions = options
        self.loaded: dict[str, Package] = {}
        self.stack: list[str] = []
        self.names: list[str] = []
        self.count: int = 0

    def load_root(self, source: str, path: str, result: CompileResult) -> None:
        dynamic = self.options.dynamic
        result.tokens = lex(source)
        if self.options.stop_at == "lex":
            return
        result.phase = "parse"
        result.definitions = parse_tokens(result.tokens, dynamic)
        if self.options.stop_at == "parse":
            return
        pkg = Package(path, "", result.definitions, dynamic)
        result.package = pkg
        self.stack.append(_key(path))
        self.names.append(path)
        self.load_imports(pkg)
        result.phase = "build"
        build(pkg)
        if self.options.stop_at == "build":
            return
        result.phase = "check"
        check(pkg, entry=True)
        if self.options.stop_at == "check":
            return
        result.phase = "emit"
        if dynamic:
            result.code = emit_dynamic(pkg, self.options.runtime_path, self.options.breakpoints)
        else:
            result.code = emit(pkg, self.options.runtime_path, self.options.breakpoints)

    def load_imports(self, pkg: Package) -> None:
        base = os.path.dirname(pkg.path) if pkg.path != STDIN_NAME else ""
        for d in pkg.definitions:
            if isinstance(d, ImportDef):
                pkg.packages[d.path] = self.load_file(os.path.join(base, d.path), d)

    def load_file(self, path: str, imp: ImportDef) -> Package:
        key = _key(path)
        if key in self.stack:
            chain = self.names[self.stack.index(key) :] + [imp.path]
            raise BuildError("Import cycle: " + " -> ".join(chain), imp.pos.line, imp.pos.col)
        if key in self.loaded:
            return self.loaded[key]
        try:
            with open(path, encoding="utf-8") as f:
                source = f.read()
        except (OSError, ValueError):
            raise BuildError("Cannot read imported file " + imp.path, imp.pos.line, imp.pos.col)
        try:
            definitions = parse_tokens(lex(source), False)
        except PigeonError as e:
            raise _wrap(e, imp.path)
        self.count += 1
        pkg = Package(path, "p" + str(self.count) + "_", definitions)
        self.stack.append(key)
        self.names.append(imp.path)
        self.load_imports(pkg)
        self.stack.pop()
        self.names.pop()
        try:
            build(pkg)
            check(pkg, entry=False)
        except PigeonError as e:
            raise _wrap(e, imp.path)
        self.loaded[key] = pkg
        return pkg


def _key(path: str) -> str:
    if path == STDIN_NAME:
        return path
    return os.path.normcase(os.path.abspath(path))


# ============================================================
# PUBLIC API
# ============================================================


def compile_source(
    source: str, options: CompileOptions | None = None, path: str = STDIN_NAME
) -> CompileResult:
    """Run the pipeline over source text. Raises the first PigeonError."""
    if options is None:
        options = CompileOptions()
    if options.stop_at is not None and options.stop_at not in PHASES:
        raise ValueError("unknown phase: " + options.stop_at)
    result = CompileResult(phase="lex")
    Loader(options).load_root(source, path, result)
    return result


def compile_file(path: str, options: CompileOptions | None = None) -> CompileResult:
    with open(path, encoding="utf-8") as f:
        source = f.read()
    return compile_source(source, options, path)
