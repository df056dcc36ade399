"""Command-line entry point."""

from __future__ import annotations

import sys

from .ast import definition_kind, definition_name
from .compiler import PHASES, CompileOptions, CompileResult, compile_source
from .errors import PigeonError
from .runtime import runtime_source

PROG = "pigeon"

USAGE: str = """\
pigeon [OPTIONS] [INPUT] [-o OUTPUT]

Compile a Pigeon source file to a Go program.

Options:
  --dynamic            Compile the dynamic dialect
  --stop-at PHASE      Stop after phase: lex, parse, build, check, emit
                       and print a summary instead of Go code
  -o, --output FILE    Write output to FILE instead of stdout
  --runtime-path PATH  Go import path of the runtime module
                       (default: github.com/BrianWill/pigeon/stdlib)
  --runtime            Print the bundled Go runtime for the dialect and exit
  --no-breakpoints     Omit the breakpoint table from the output
  --help               Show this help message
"""


class Args:
    def __init__(self) -> None:
        self.options: CompileOptions = CompileOptions()
        self.input_file: str | None = None
        self.output_file: str | None = None
        self.print_runtime: bool = False


def error(msg: str) -> None:
    print(PROG + ": error: " + msg, file=sys.stderr)


def usage_error(msg: str) -> None:
    error(msg)
    sys.exit(2)


def parse_args(argv: list[str]) -> Args:
    """Parse command-line arguments; usage errors exit with status 2."""
    parsed = Args()
    options = parsed.options
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            sys.exit(0)
        elif arg == "--dynamic":
            options.dynamic = True
            i += 1
        elif arg == "--no-breakpoints":
            options.breakpoints = False
            i += 1
        elif arg == "--runtime":
            parsed.print_runtime = True
            i += 1
        elif arg in ("--stop-at", "-o", "--output", "--runtime-path"):
            if i + 1 >= len(argv):
                usage_error(arg + " requires an argument")
            value = argv[i + 1]
            if arg == "--stop-at":
                if value not in PHASES:
                    usage_error("unknown phase '" + value + "'")
                options.stop_at = value
            elif arg == "--runtime-path":
                options.runtime_path = value
            else:
                parsed.output_file = value
            i += 2
        elif arg.startswith("-") and arg != "-":
            usage_error("unknown flag '" + arg + "'")
        else:
            if parsed.input_file is not None:
                usage_error("unexpected argument '" + arg + "'")
            parsed.input_file = arg
            i += 1
    return parsed


def read_source(input_file: str | None) -> str | None:
    """Source text from a file or stdin; None after reporting an error."""
    if input_file is None or input_file == "-":
        raw = sys.stdin.buffer.read()
    else:
        try:
            with open(input_file, "rb") as f:
                raw = f.read()
        except OSError:
            error("cannot open '" + input_file + "'")
            return None
    try:
        return raw.decode("utf-8")
    except ValueError:
        error("invalid utf-8 in input")
        return None


def write_output(output: str, output_file: str | None) -> int:
    if output_file is None:
        sys.stdout.write(output)
        return 0
    try:
        with open(output_file, "w") as f:
            f.write(output)
    except OSError:
        error("cannot write '" + output_file + "'")
        return 1
    return 0


# --- Summaries for --stop-at ---


def to_text(obj: object, level: int = 0) -> str:
    """Render a summary dict as indented JSON-like text."""
    pad = "  " * (level + 1)
    if isinstance(obj, bool):
        return "true" if obj else "false"
    if isinstance(obj, int):
        return str(obj)
    if isinstance(obj, str):
        return '"' + obj.replace("\\", "\\\\").replace('"', '\\"') + '"'
    if isinstance(obj, list):
        if len(obj) == 0:
            return "[]"
        return "[" + ", ".join(to_text(v, level + 1) for v in obj) + "]"
    if isinstance(obj, dict):
        if len(obj) == 0:
            return "{}"
        lines: list[str] = []
        for k, v in obj.items():
            lines.append(pad + '"' + str(k) + '": ' + to_text(v, level + 1))
        return "{\n" + ",\n".join(lines) + "\n" + "  " * level + "}"
    return '"' + str(obj) + '"'


def summarize(result: CompileResult) -> str:
    if result.phase == "lex":
        return "tokens: " + str(len(result.tokens)) + "\n"
    if result.phase == "parse":
        lines = ["definitions: " + str(len(result.definitions))]
        for d in result.definitions:
            lines.append("  " + definition_kind(d) + " " + definition_name(d))
        return "\n".join(lines) + "\n"
    if result.phase == "emit":
        return result.code
    assert result.package is not None
    return to_text(result.package.summary()) + "\n"


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(sys.argv[1:] if argv is None else argv)
    if args.print_runtime:
        return write_output(runtime_source(args.options.dynamic), args.output_file)
    source = read_source(args.input_file)
    if source is None:
        return 1
    if len(source) == 0:
        error("no input provided")
        return 2
    path = args.input_file if args.input_file not in (None, "-") else "<stdin>"
    try:
        result = compile_source(source, args.options, path)
    except PigeonError as e:
        error(str(e))
        return 1
    if args.options.stop_at is not None:
        return write_output(summarize(result), args.output_file)
    return write_output(result.code, args.output_file)


if __name__ == "__main__":
    sys.exit(main())
