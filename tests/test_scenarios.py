"""End-to-end scenarios: typed package, emitted Go, and (with go) program output."""

import pytest

from conftest import RUNTIME_IMPORT
from pigeon import BuildError, CheckError, CompileOptions, compile_source
from pigeon.ast import FuncDef, Typeswitch
from pigeon.types import type_name

HELLO = """\
func main
    (println "hi")
"""

ANIMAL = """\
interface Animal
    speak : Str
struct Dog
    name Str
method speak d Dog : Str
    return "woof"
func main
    locals a Animal
    as a (Dog "Rex")
    typeswitch a
        case d Dog
            (println (. d name) (.speak d))
"""

CONTAINERS = """\
func main
    locals xs L<I>
    (push xs 1)
    (push xs 2)
    (println (len xs))
"""

MISMATCH = """\
interface Animal
    speak : Str
struct Dog
    name Str
method speak d Dog : I
    return 1
func main
    locals a Animal
    as a (Dog "Rex")
"""

RECURSIVE = """\
struct Node
    next Node
func main
    return
"""

CONTINUED = """\
func main
    locals m M<Str I>
    as m (M<Str I> "a" 1
        , "b" 2)
    (println (get m "b"))
"""

CHAIN = """\
global calls I 0
func tick x I : I
    as calls (inc calls)
    return x
func main
    locals ok Bool
    as ok (lt 1 (tick 2) 3)
    (println ok calls)
    as ok (lt 3 (tick 2) (tick 5))
    (println ok calls)
"""


def run_options() -> CompileOptions:
    return CompileOptions(runtime_path=RUNTIME_IMPORT)


def test_empty_arg_function():
    result = compile_source(HELLO)
    assert result.package is not None
    assert result.package.summary()["funcs"] == {"main": "Fn"}
    assert '_fmt.Println("hi")' in result.code


def test_multi_return_and_typeswitch():
    result = compile_source(ANIMAL)
    pkg = result.package
    assert pkg is not None
    assert pkg.summary()["structs"]["Dog"]["implements"] == {"Animal": True}
    main = pkg.funcs["main"]
    assert isinstance(main, FuncDef)
    switch = main.body[2]
    assert isinstance(switch, Typeswitch)
    assert type_name(switch.cases[0].var.dtype) == "Dog"
    assert "if _d, __ok := __inter.(Dog); __ok {" in result.code
    assert "_fmt.Println(_d.Name, _d.Speak())" in result.code


def test_generic_containers():
    result = compile_source(CONTAINERS)
    main = result.package.funcs["main"]
    println = main.body[3].expr
    assert type_name(println.operands[0].types[0]) == "I"
    assert "_fmt.Println(int64(len(*_xs)))" in result.code


def test_interface_mismatch():
    built = compile_source(MISMATCH, CompileOptions(stop_at="build"))
    assert built.package.summary()["structs"]["Dog"]["implements"] == {"Animal": False}
    with pytest.raises(CheckError, match="expected Animal, got Dog"):
        compile_source(MISMATCH)


def test_recursive_struct_rejection():
    with pytest.raises(BuildError, match="Struct cannot recursively contain itself"):
        compile_source(RECURSIVE)
    accepted = compile_source(RECURSIVE.replace("next Node", "next P<Node>"))
    assert accepted.package.summary()["structs"]["Node"]["members"] == {"next": "P<Node>"}


def test_indentation_continued_literal():
    result = compile_source(CONTINUED)
    assert '_m = map[string]int64{"a": int64(1), "b": int64(2)}' in result.code
    assert '_fmt.Println(_m["b"])' in result.code


@pytest.mark.parametrize(
    "source,expected",
    [
        (HELLO, "hi\n"),
        (ANIMAL, "Rex woof\n"),
        (CONTAINERS, "2\n"),
        (CONTINUED, "2\n"),
        (CHAIN, "true 1\nfalse 2\n"),
    ],
    ids=["hello", "animal", "containers", "continued", "chain"],
)
def test_programs_run(go_toolchain, source, expected):
    code = compile_source(source, run_options()).code
    run = go_toolchain.run(code)
    assert run.returncode == 0, run.stderr
    assert run.stdout == expected


def test_dynamic_program_runs(go_toolchain):
    source = """\
func fib n
    if (lt n 2)
        return n
    return (add (fib (sub n 1)) (fib (sub n 2)))
func main
    locals m
    as m (M "k" (fib 10))
    (println m.k)
"""
    options = CompileOptions(dynamic=True, runtime_path=RUNTIME_IMPORT)
    run = go_toolchain.run(compile_source(source, options).code, dynamic=True)
    assert run.returncode == 0, run.stderr
    assert run.stdout == "55\n"
