"""CLI tests for the pigeon entry point.

Test cases live in cli/*.tests files. Format:

    === test name
    args: --stop-at parse
    source code here
    (stdin for the compiler)
    ---
    exit: 0
    stderr: pigeon: error: some message
    stdout-contains: func Main
    stdout-empty: true
    stderr-empty: true
    exit-not: 2
    ---

Special directives in the input section:
    args:           CLI arguments (first line, required)
    stdin-bytes:    hex-encoded raw bytes instead of text (e.g. "ff fe")

Assertion directives in the expected section:
    exit:             exact exit code
    exit-not:         exit code must NOT equal this
    stderr:           exact stderr content (trailing newline added)
    stderr-contains:  stderr must contain substring
    stderr-empty:     stderr must be empty
    stdout-contains:  stdout must contain substring
    stdout-lacks:     stdout must not contain substring
    stdout-empty:     stdout must be empty
"""

import subprocess
import sys
from pathlib import Path

import pytest

CLI_DIR = Path(__file__).parent / "cli"
ROOT_DIR = Path(__file__).parent.parent


def parse_cli_test_file(path: Path) -> list[tuple[str, dict]]:
    """Parse a .tests file into (name, case) tuples.

    Each case dict has keys: args, stdin, stdin_bytes, assertions.
    """
    lines = path.read_text().split("\n")
    result: list[tuple[str, dict]] = []
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
            result.append((test_name, _parse_case(input_lines, expected_lines)))
        else:
            i += 1
    return result


def _parse_case(input_lines: list[str], expected_lines: list[str]) -> dict:
    """Parse input + expected lines into a test case dict."""
    case: dict = {
        "args": [],
        "stdin": None,
        "stdin_bytes": None,
        "assertions": [],
    }
    body_start = 0
    if input_lines and input_lines[0].startswith("args:"):
        args_str = input_lines[0][5:].strip()
        case["args"] = args_str.split() if args_str else []
        body_start = 1
    remaining = input_lines[body_start:]
    if remaining and remaining[0].startswith("stdin-bytes:"):
        hex_str = remaining[0][len("stdin-bytes:") :].strip()
        case["stdin_bytes"] = bytes.fromhex(hex_str)
    else:
        case["stdin"] = "\n".join(remaining)
    for line in expected_lines:
        line = line.strip()
        if not line:
            continue
        if line.startswith("exit:"):
            case["assertions"].append(("exit", int(line[5:].strip())))
        elif line.startswith("exit-not:"):
            case["assertions"].append(("exit-not", int(line[9:].strip())))
        elif line.startswith("stderr:"):
            case["assertions"].append(("stderr", line[7:].strip()))
        elif line.startswith("stderr-contains:"):
            case["assertions"].append(("stderr-contains", line[16:].strip()))
        elif line.startswith("stderr-empty:"):
            case["assertions"].append(("stderr-empty", None))
        elif line.startswith("stdout-contains:"):
            case["assertions"].append(("stdout-contains", line[16:].strip()))
        elif line.startswith("stdout-lacks:"):
            case["assertions"].append(("stdout-lacks", line[13:].strip()))
        elif line.startswith("stdout-empty:"):
            case["assertions"].append(("stdout-empty", None))
    return case


def discover_cli_tests() -> list[tuple[str, dict]]:
    """Find all CLI tests across .tests files."""
    results = []
    for test_file in sorted(CLI_DIR.glob("*.tests")):
        for name, case in parse_cli_test_file(test_file):
            results.append((f"{test_file.stem}/{name}", case))
    return results


def run_cli(case: dict) -> subprocess.CompletedProcess[bytes]:
    """Run the pigeon CLI from a test case."""
    cmd = [sys.executable, "-m", "pigeon", *case["args"]]
    if case["stdin_bytes"] is not None:
        stdin_data = case["stdin_bytes"]
    elif case["stdin"] is not None:
        stdin_data = case["stdin"].encode()
    else:
        stdin_data = b""
    return subprocess.run(
        cmd,
        input=stdin_data,
        capture_output=True,
        cwd=ROOT_DIR,
    )


def check_assertions(
    result: subprocess.CompletedProcess[bytes], assertions: list[tuple]
) -> None:
    """Check all assertions against a CLI result."""
    for kind, value in assertions:
        if kind == "exit":
            assert result.returncode == value, (
                f"expected exit {value}, got {result.returncode}"
                f"\nstderr: {result.stderr.decode(errors='replace')}"
            )
        elif kind == "exit-not":
            assert result.returncode != value, (
                f"expected exit != {value}, got {result.returncode}"
            )
        elif kind == "stderr":
            actual = result.stderr.decode(errors="replace").rstrip("\n")
            assert actual == value, f"expected stderr {value!r}, got {actual!r}"
        elif kind == "stderr-contains":
            actual = result.stderr.decode(errors="replace")
            assert value in actual, (
                f"expected stderr to contain {value!r}, got {actual!r}"
            )
        elif kind == "stderr-empty":
            assert result.stderr == b"", f"expected empty stderr, got {result.stderr!r}"
        elif kind == "stdout-contains":
            actual = result.stdout.decode(errors="replace")
            assert value in actual, (
                f"expected stdout to contain {value!r}, got {actual!r}"
            )
        elif kind == "stdout-lacks":
            actual = result.stdout.decode(errors="replace")
            assert value not in actual, (
                f"expected stdout not to contain {value!r}, got {actual!r}"
            )
        elif kind == "stdout-empty":
            assert result.stdout == b"", (
                f"expected empty stdout, got {result.stdout[:200]!r}"
            )


def pytest_generate_tests(metafunc):
    """Parametrize test_cli over all .tests files."""
    if "cli_case" in metafunc.fixturenames:
        tests = discover_cli_tests()
        params = [pytest.param(case, id=test_id) for test_id, case in tests]
        metafunc.parametrize("cli_case", params)


def test_cli(cli_case: dict) -> None:
    """Run a single CLI test case from .tests file."""
    result = run_cli(cli_case)
    check_assertions(result, cli_case["assertions"])


def test_input_and_output_files(tmp_path: Path) -> None:
    src = tmp_path / "hello.pigeon"
    src.write_text('func main\n    (println "hi")\n')
    out = tmp_path / "hello.go"
    case = {"args": [str(src), "-o", str(out)], "stdin": None, "stdin_bytes": None}
    result = run_cli(case)
    assert result.returncode == 0, result.stderr.decode(errors="replace")
    assert result.stdout == b""
    assert 'func Main() {' in out.read_text()


def test_missing_input_file(tmp_path: Path) -> None:
    missing = str(tmp_path / "nope.pigeon")
    case = {"args": [missing], "stdin": None, "stdin_bytes": None}
    result = run_cli(case)
    assert result.returncode == 1
    assert result.stderr.decode() == "pigeon: error: cannot open '" + missing + "'\n"


def test_error_names_input_file(tmp_path: Path) -> None:
    src = tmp_path / "bad.pigeon"
    src.write_text("func main\n    (println y)\n")
    case = {"args": [str(src)], "stdin": None, "stdin_bytes": None}
    result = run_cli(case)
    assert result.returncode == 1
    assert "Unknown name: y" in result.stderr.decode()
