"""Phase-by-phase test runner driven by the .tests data files."""

import signal
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from pigeon.build import Package, build
from pigeon.check import check
from pigeon.compiler import CompileOptions, compile_source
from pigeon.parse import parse_tokens
from pigeon.tokens import lex
from summaries import describe_definition, describe_token

PHASE_TIMEOUT = 5
TESTS_DIR = Path(__file__).parent

TESTS = {
    "lex": {"dir": "lexer"},
    "parse": {"dir": "parser"},
    "build": {"dir": "builder"},
    "typecheck": {"dir": "checker"},
    "emit": {"dir": "emitter"},
    "dynamic": {"dir": "dynamic"},
}


# ---------------------------------------------------------------------------
# Timeout
# ---------------------------------------------------------------------------


def _timeout_handler(signum, frame):
    raise TimeoutError("phase timed out")


signal.signal(signal.SIGALRM, _timeout_handler)


# ---------------------------------------------------------------------------
# Test file parsing
# ---------------------------------------------------------------------------


def parse_tests_file(path: Path) -> list[tuple[str, str, str]]:
    """Parse a .tests file into (name, input, expected) tuples."""
    lines = path.read_text().split("\n")
    result: list[tuple[str, str, str]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
            i += 1
            input_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                input_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            expected_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                expected_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            test_input = "\n".join(input_lines)
            expected = "\n".join(expected_lines).strip()
            result.append((test_name, test_input, expected))
        else:
            i += 1
    return result


def discover_cases(test_dir: Path) -> list[tuple[str, str, str]]:
    """Glob *.tests in test_dir, return (test_id, input, expected) tuples."""
    results = []
    for test_file in sorted(test_dir.glob("*.tests")):
        for name, input_code, expected in parse_tests_file(test_file):
            results.append((f"{test_file.stem}/{name}", input_code, expected))
    return results


# ---------------------------------------------------------------------------
# Phase result + assertion checker
# ---------------------------------------------------------------------------


@dataclass
class PhaseResult:
    errors: list[str] = field(default_factory=list)
    data: dict | None = None


def resolve_dotpath(obj: object, path: str) -> object:
    """Resolve a dot-separated path against a nested dict/list structure."""
    parts = path.split(".")
    current = obj
    i = 0
    while i < len(parts):
        part = parts[i]
        if part == "length":
            return len(current)
        if isinstance(current, list):
            current = current[int(part)]
        elif isinstance(current, dict):
            current = current[part]
        else:
            raise KeyError(
                f"cannot traverse {type(current).__name__} with key {part!r}"
            )
        i += 1
    return current


def to_comparable(value: object) -> str:
    """Convert a value to its string form for comparison."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return value
    return str(value)


def check_expected(expected: str, result: PhaseResult, phase: str) -> None:
    if expected == "ok":
        if result.errors:
            pytest.fail(f"Expected ok, got error: {result.errors[0]}")
        return
    if expected.startswith("error:"):
        expected_msg = expected[6:].strip()
        if not result.errors:
            pytest.fail(f"Expected error containing '{expected_msg}', got ok")
        found = any(expected_msg.lower() in e.lower() for e in result.errors)
        if not found:
            pytest.fail(
                f"Expected error containing '{expected_msg}', got: {result.errors}"
            )
        return
    if result.errors:
        pytest.fail(f"{phase} failed: {result.errors[0]}")
    assert result.data is not None, f"No data returned from {phase}"
    for line in expected.split("\n"):
        line = line.strip()
        if not line:
            continue
        # Emitted-code assertions
        if line.startswith("contains:"):
            needle = line[9:].strip()
            code = str(result.data.get("code", ""))
            if needle not in code:
                pytest.fail(f"Expected output to contain {needle!r}, got:\n{code}")
            continue
        if line.startswith("lacks:"):
            needle = line[6:].strip()
            code = str(result.data.get("code", ""))
            if needle in code:
                pytest.fail(f"Expected output not to contain {needle!r}, got:\n{code}")
            continue
        # Dotpath assertions
        if "=" not in line:
            pytest.fail(f"Bad assertion (no '='): {line}")
        path, expected_val = line.split("=", 1)
        path = path.strip()
        expected_val = expected_val.strip()
        try:
            actual = resolve_dotpath(result.data, path)
        except (KeyError, IndexError, TypeError) as e:
            pytest.fail(f"Path '{path}' not found in result: {e}")
        actual_str = to_comparable(actual)
        if actual_str != expected_val:
            pytest.fail(
                f"Assertion failed: {path}\n"
                f"  expected: {expected_val!r}\n"
                f"  actual:   {actual_str!r}"
            )


# ---------------------------------------------------------------------------
# Phase runners
# ---------------------------------------------------------------------------


def run_lex(source: str) -> PhaseResult:
    try:
        signal.alarm(PHASE_TIMEOUT)
        tokens = lex(source)
        return PhaseResult(data={"tokens": [describe_token(t) for t in tokens]})
    except Exception as e:
        return PhaseResult(errors=[str(e)])
    finally:
        signal.alarm(0)


def run_parse(source: str) -> PhaseResult:
    try:
        signal.alarm(PHASE_TIMEOUT)
        definitions = parse_tokens(lex(source))
        return PhaseResult(
            data={"definitions": [describe_definition(d) for d in definitions]}
        )
    except Exception as e:
        return PhaseResult(errors=[str(e)])
    finally:
        signal.alarm(0)


def run_build(source: str) -> PhaseResult:
    try:
        signal.alarm(PHASE_TIMEOUT)
        pkg = Package("<test>", "", parse_tokens(lex(source)))
        build(pkg)
        return PhaseResult(data=pkg.summary())
    except Exception as e:
        return PhaseResult(errors=[str(e)])
    finally:
        signal.alarm(0)


def run_check(source: str) -> PhaseResult:
    try:
        signal.alarm(PHASE_TIMEOUT)
        pkg = Package("<test>", "", parse_tokens(lex(source)))
        build(pkg)
        check(pkg)
        return PhaseResult(data=pkg.summary())
    except Exception as e:
        return PhaseResult(errors=[str(e)])
    finally:
        signal.alarm(0)


def _run_compile(source: str, dynamic: bool) -> PhaseResult:
    try:
        signal.alarm(PHASE_TIMEOUT)
        result = compile_source(source, CompileOptions(dynamic=dynamic))
        return PhaseResult(data={"code": result.code})
    except Exception as e:
        return PhaseResult(errors=[str(e)])
    finally:
        signal.alarm(0)


def run_emit(source: str) -> PhaseResult:
    return _run_compile(source, False)


def run_dynamic(source: str) -> PhaseResult:
    return _run_compile(source, True)


RUNNERS = {
    "lex": run_lex,
    "parse": run_parse,
    "build": run_build,
    "typecheck": run_check,
    "emit": run_emit,
    "dynamic": run_dynamic,
}


# ---------------------------------------------------------------------------
# Parametrization
# ---------------------------------------------------------------------------


def pytest_generate_tests(metafunc):
    for name, cfg in TESTS.items():
        fixture = f"{name}_input"
        if fixture in metafunc.fixturenames:
            cases = discover_cases(TESTS_DIR / cfg["dir"])
            params = [pytest.param(inp, exp, id=tid) for tid, inp, exp in cases]
            metafunc.parametrize(f"{fixture},{name}_expected", params)


# ---------------------------------------------------------------------------
# Test functions
# ---------------------------------------------------------------------------


def test_lex(lex_input, lex_expected):
    check_expected(lex_expected, run_lex(lex_input), "lex")


def test_parse(parse_input, parse_expected):
    check_expected(parse_expected, run_parse(parse_input), "parse")


def test_build(build_input, build_expected):
    check_expected(build_expected, run_build(build_input), "build")


def test_typecheck(typecheck_input, typecheck_expected):
    check_expected(typecheck_expected, run_check(typecheck_input), "check")


def test_emit(emit_input, emit_expected):
    check_expected(emit_expected, run_emit(emit_input), "emit")


def test_dynamic(dynamic_input, dynamic_expected):
    check_expected(dynamic_expected, run_dynamic(dynamic_input), "dynamic")
