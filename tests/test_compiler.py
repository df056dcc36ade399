"""Tests for the compiler driver: imports, phase control, bundled runtime."""

from pathlib import Path

import pytest

from pigeon import (
    BuildError,
    CheckError,
    CompileOptions,
    LexError,
    PigeonError,
    compile_file,
    compile_source,
    runtime_source,
)

LIB = """\
struct Box
    v I
func double x I : I
    return (mul x 2)
global base I 10
"""

SOURCE = "func main\n    (println 1)\n"


def write(tmp_path: Path, name: str, text: str) -> str:
    path = tmp_path / name
    path.write_text(text)
    return str(path)


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------


def test_imported_definitions_get_a_prefix(tmp_path):
    write(tmp_path, "lib.pigeon", LIB)
    main = write(
        tmp_path,
        "main.pigeon",
        'import "lib.pigeon"\n'
        "    double twice\n"
        "    Box\n"
        "    base\n"
        "func main\n"
        "    locals b Box\n"
        "    as b (Box (twice base))\n"
        "    (println b.v)\n",
    )
    result = compile_file(main)
    assert "type p1_Box struct {" in result.code
    assert "func p1_Double(_x int64) int64 {" in result.code
    assert "var p1_G_base int64 = int64(10)" in result.code
    assert "_b = p1_Box{V: p1_Double(p1_G_base)}" in result.code
    assert result.package is not None
    assert result.package.summary()["imports"] == ["lib.pigeon"]


def test_shared_import_loaded_once(tmp_path):
    write(tmp_path, "lib.pigeon", LIB)
    write(
        tmp_path,
        "mid.pigeon",
        'import "lib.pigeon"\n    double\nfunc quad x I : I\n    return (double (double x))\n',
    )
    main = write(
        tmp_path,
        "main.pigeon",
        'import "lib.pigeon"\n    double\nimport "mid.pigeon"\n    quad\n'
        "func main\n    (println (double 1) (quad 1))\n",
    )
    code = compile_file(main).code
    assert code.count("func p1_Double(") == 1
    assert "func p2_Quad(" in code


def test_import_cycle(tmp_path):
    write(tmp_path, "a.pigeon", 'import "b.pigeon"\n    g\nfunc f\n    return\n')
    write(tmp_path, "b.pigeon", 'import "a.pigeon"\n    f\nfunc g\n    return\n')
    main = write(tmp_path, "main.pigeon", 'import "a.pigeon"\n    f\nfunc main\n    (f)\n')
    with pytest.raises(BuildError, match="Import cycle: a.pigeon -> b.pigeon -> a.pigeon"):
        compile_file(main)


def test_missing_import(tmp_path):
    main = write(tmp_path, "main.pigeon", 'import "gone.pigeon"\n    f\nfunc main\n    (f)\n')
    with pytest.raises(BuildError) as exc:
        compile_file(main)
    assert exc.value.msg == "Cannot read imported file gone.pigeon"
    assert exc.value.line == 1


def test_error_in_imported_file_names_it(tmp_path):
    write(tmp_path, "lib.pigeon", "func f : I\n    return true\n")
    main = write(tmp_path, "main.pigeon", 'import "lib.pigeon"\n    f\nfunc main\n    (println (f))\n')
    with pytest.raises(BuildError) as exc:
        compile_file(main)
    assert exc.value.msg.startswith("lib.pigeon: ")


def test_imported_name_must_exist(tmp_path):
    write(tmp_path, "lib.pigeon", LIB)
    main = write(tmp_path, "main.pigeon", 'import "lib.pigeon"\n    triple\nfunc main\n    return\n')
    with pytest.raises(BuildError, match="Imported name triple is not defined in lib.pigeon"):
        compile_file(main)


def test_imported_file_needs_no_main(tmp_path):
    write(tmp_path, "lib.pigeon", LIB)
    main = write(tmp_path, "main.pigeon", 'import "lib.pigeon"\n    double\nfunc main\n    (println (double 2))\n')
    assert "func main() {" in compile_file(main).code


# ---------------------------------------------------------------------------
# Phases
# ---------------------------------------------------------------------------


def test_stop_at_lex():
    result = compile_source(SOURCE, CompileOptions(stop_at="lex"))
    assert result.phase == "lex"
    assert len(result.tokens) > 0
    assert result.definitions == []
    assert result.code == ""


def test_stop_at_parse():
    result = compile_source(SOURCE, CompileOptions(stop_at="parse"))
    assert result.phase == "parse"
    assert len(result.definitions) == 1
    assert result.package is None


def test_stop_at_build_and_check():
    built = compile_source(SOURCE, CompileOptions(stop_at="build"))
    assert built.phase == "build"
    assert built.package is not None
    checked = compile_source(SOURCE, CompileOptions(stop_at="check"))
    assert checked.phase == "check"
    assert checked.code == ""


def test_full_pipeline():
    result = compile_source(SOURCE)
    assert result.phase == "emit"
    assert result.code.startswith("package main\n")


def test_unknown_phase():
    with pytest.raises(ValueError):
        compile_source(SOURCE, CompileOptions(stop_at="optimize"))


def test_errors_carry_position():
    with pytest.raises(CheckError) as exc:
        compile_source("func main\n    (println y)\n")
    assert isinstance(exc.value, PigeonError)
    assert (exc.value.line, exc.value.col) == (2, 14)
    assert str(exc.value) == "line 2, column 14: Unknown name: y"


def test_lex_errors_come_first():
    with pytest.raises(LexError):
        compile_source('func main\n    (println "abc\n')


def test_emit_is_deterministic():
    source = "global g I 1\nfunc f : I\n    return g\nfunc main\n    (println (f))\n"
    assert compile_source(source).code == compile_source(source).code


def test_root_package_keeps_code():
    result = compile_source(SOURCE)
    assert result.package is not None
    assert result.package.code == result.code


# ---------------------------------------------------------------------------
# Runtime
# ---------------------------------------------------------------------------


def test_static_runtime():
    src = runtime_source()
    assert src.startswith("package std")
    assert "func NewList(" in src
    assert "func Fmod(" in src


def test_dynamic_runtime():
    src = runtime_source(dynamic=True)
    assert "func Truth(" in src
    assert "func Entries(" in src


def test_runtime_path_option():
    code = compile_source("func main\n    return\n", CompileOptions(runtime_path="x.org/rt")).code
    assert 'import _std "x.org/rt"' in code
