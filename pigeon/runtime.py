"""Runtime library contract: what emitted Go code may call, and the bundled sources."""

from __future__ import annotations

from pathlib import Path

DEFAULT_RUNTIME_PATH = "github.com/BrianWill/pigeon/stdlib"

# Go import aliases used by emitted programs
FMT_ALIAS = "_fmt"
STD_ALIAS = "_std"
LOG_ALIAS = "_log"

# Pigeon operator -> runtime function, for operators that map one-to-one
STATIC_CALLS: dict[str, str] = {
    "randInt": "RandInt",
    "randIntN": "RandIntN",
    "randFloat": "RandFloat",
    "floor": "Floor",
    "ceil": "Ceil",
    "parseInt": "ParseInt",
    "parseFloat": "ParseFloat",
    "formatInt": "FormatInt",
    "formatFloat": "FormatFloat",
    "timeNow": "TimeNow",
    "formatTime": "FormatTime",
    "parseTime": "ParseTime",
    "createFile": "CreateFile",
    "openFile": "OpenFile",
    "closeFile": "CloseFile",
    "readFile": "ReadFile",
    "writeFile": "WriteFile",
    "seekFile": "SeekFile",
    "seekFileStart": "SeekFileStart",
    "seekFileEnd": "SeekFileEnd",
    "getchar": "Getchar",
    "getrune": "Getrune",
    "charlist": "Charlist",
    "runelist": "Runelist",
    "charslice": "Charslice",
    "runeslice": "Runeslice",
    "byteslice": "Byteslice",
    "prompt": "Prompt",
}

# (Str x) conversions keyed by the Pigeon name of x's type
STR_CONVERSIONS: dict[str, str] = {
    "L<I>": "Runelist2string",
    "L<Str>": "Charlist2string",
    "S<I>": "Runeslice2string",
    "S<Str>": "Charslice2string",
    "S<Byte>": "Byteslice2string",
}

# every operator of the dynamic dialect goes through one runtime helper
DYNAMIC_CALLS: dict[str, str] = {
    "add": "Add",
    "sub": "Sub",
    "mul": "Mul",
    "div": "Div",
    "mod": "Mod",
    "inc": "Inc",
    "dec": "Dec",
    "eq": "Eq",
    "neq": "Neq",
    "not": "Not",
    "lt": "Lt",
    "gt": "Gt",
    "lte": "Lte",
    "gte": "Gte",
    "and": "And",
    "or": "Or",
    "get": "Get",
    "set": "Set",
    "push": "Push",
    "print": "Print",
    "println": "Println",
    "prompt": "Prompt",
    "concat": "Concat",
    "len": "Len",
    "floor": "Floor",
    "ceil": "Ceil",
    "randFloat": "RandFloat",
    "charlist": "Charlist",
    "getchar": "Getchar",
}

STDLIB_DIR = Path(__file__).parent / "stdlib"


def runtime_file(dynamic: bool = False) -> Path:
    return STDLIB_DIR / ("dynamic" if dynamic else "static") / "builtins.go"


def runtime_source(dynamic: bool = False) -> str:
    """Go source of the bundled runtime package for one dialect."""
    return runtime_file(dynamic).read_text()
