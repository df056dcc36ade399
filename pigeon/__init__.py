"""Pigeon compiler: Pigeon source to Go, in a static and a dynamic dialect."""

from .build import BuildError, Package
from .check import CheckError
from .compiler import PHASES, CompileOptions, CompileResult, compile_file, compile_source
from .errors import PigeonError
from .parse import ParseError
from .runtime import runtime_source
from .tokens import LexError

__all__ = [
    "PHASES",
    "BuildError",
    "CheckError",
    "CompileOptions",
    "CompileResult",
    "LexError",
    "Package",
    "ParseError",
    "PigeonError",
    "compile_file",
    "compile_source",
    "runtime_source",
]
