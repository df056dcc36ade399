"""DynamicEmitter: the dynamic dialect as a configuration of the Go emitter.

Every value is boxed as interface{}, numbers are float64, and operators are
runtime helper calls that dispatch on the value's tag.
"""

from __future__ import annotations

from .ast import (
    Assignment,
    BoolLit,
    Expr,
    Foreach,
    Forinc,
    FuncDef,
    FunctionCall,
    GlobalDef,
    Identifier,
    Locals,
    NilLit,
    NumberLit,
    Operation,
    Return,
    StringLit,
    TypeExpression,
)
from .build import Package
from .emit import GoEmitter, _title
from .runtime import DEFAULT_RUNTIME_PATH, DYNAMIC_CALLS, FMT_ALIAS, LOG_ALIAS, STD_ALIAS

BOXED_FUNC = "func(...interface{}) interface{}"

NIL = STD_ALIAS + ".Nil(0)"


class DynamicEmitter(GoEmitter):
    def _emit_header(self, packages: list[Package]) -> None:
        self._line("package main")
        self._line("")
        self._line(f'import {FMT_ALIAS} "fmt"')
        self._line(f'import {LOG_ALIAS} "log"')
        self._line(f'import {STD_ALIAS} "{self.runtime_path}"')
        self._line("")
        self._line(f"var _ = {FMT_ALIAS}.Sprint")
        self._line(f"var _ = {LOG_ALIAS}.Fatalln")
        self._line("")

    def _emit_package(self, pkg: Package) -> None:
        for d in pkg.definitions:
            if isinstance(d, GlobalDef):
                self._emit_global(d)
        for d in pkg.definitions:
            if isinstance(d, FuncDef):
                self._emit_function(d)

    def _emit_global(self, g: GlobalDef) -> None:
        self._record(g.pos.line)
        self._line(f"var G_{g.name} interface{{}} = {self._emit_expr(g.value)}")
        self._line("")

    def _emit_function(self, fn: FuncDef) -> None:
        n = len(fn.params)
        self._line(f"func {_title(fn.name)}(__args ...interface{{}}) interface{{}} {{")
        self.indent += 1
        self._line(f"if len(__args) != {n} {{")
        self.indent += 1
        self._line(f'{LOG_ALIAS}.Fatalln("function {fn.name} expects {n} argument(s)")')
        self.indent -= 1
        self._line("}")
        i = 0
        while i < n:
            name = fn.params[i].name
            self._line(f"var _{name} interface{{}} = __args[{i}]")
            self._line(f"{STD_ALIAS}.NoOp(_{name})")
            i += 1
        for stmt in fn.body:
            self._emit_stmt(stmt)
        self._line(f"return {NIL}")
        self.indent -= 1
        self._line("}")
        self._line("")

    # ============================================================
    # STATEMENT EMISSION
    # ============================================================

    def _emit_stmt_Locals(self, stmt: Locals) -> None:
        names: list[str] = []
        for var in stmt.variables:
            self._line(f"var _{var.name} interface{{}} = {NIL}")
            names.append("_" + var.name)
        self._line(f"{STD_ALIAS}.NoOp({', '.join(names)})")

    def _emit_stmt_Assignment(self, stmt: Assignment) -> None:
        target = stmt.targets[0]
        value = self._emit_expr(stmt.value)
        if isinstance(target, Operation) and target.op == "get":
            container = self._emit_expr(target.operands[0])
            key = self._emit_expr(target.operands[1])
            self._line(f"{STD_ALIAS}.Set({container}, {key}, {value})")
            return
        self._line(f"{self._emit_expr(target)} = {value}")

    def _emit_stmt_Return(self, stmt: Return) -> None:
        if len(stmt.values) == 0:
            self._line(f"return {NIL}")
            return
        self._line(f"return {self._emit_expr(stmt.values[0])}")

    def _emit_stmt_Foreach(self, stmt: Foreach) -> None:
        coll = self._emit_expr(stmt.collection)
        self._line(f"for _, __e := range {STD_ALIAS}.Entries({coll}) {{")
        self.indent += 1
        self._line(f"var _{stmt.index.name} interface{{}} = __e.Key")
        self._line(f"var _{stmt.val.name} interface{{}} = __e.Val")
        self._line(f"{STD_ALIAS}.NoOp(_{stmt.index.name}, _{stmt.val.name})")
        for s in stmt.body:
            self._emit_stmt(s)
        self.indent -= 1
        self._line("}")

    def _emit_stmt_Forinc(self, stmt: Forinc) -> None:
        start = f"{STD_ALIAS}.Num({self._emit_expr(stmt.start)})"
        end = f"{STD_ALIAS}.Num({self._emit_expr(stmt.end)})"
        if stmt.dec:
            self._line(f"for __i := {start} - 1; __i >= {end}; __i-- {{")
        else:
            self._line(f"for __i := {start}; __i < {end}; __i++ {{")
        self.indent += 1
        self._line(f"var _{stmt.index.name} interface{{}} = __i")
        self._line(f"{STD_ALIAS}.NoOp(_{stmt.index.name})")
        for s in stmt.body:
            self._emit_stmt(s)
        self.indent -= 1
        self._line("}")

    # ============================================================
    # EXPRESSION EMISSION
    # ============================================================

    def _cond(self, expr: Expr) -> str:
        return f"{STD_ALIAS}.Truth({self._emit_expr(expr)})"

    def _emit_expr(self, expr: Expr) -> str:
        if isinstance(expr, NumberLit):
            return f"float64({expr.raw})"
        if isinstance(expr, NilLit):
            return NIL
        if isinstance(expr, (StringLit, BoolLit)):
            return super()._emit_expr(expr)
        if isinstance(expr, Identifier):
            if expr.annotations.get("kind") == "global":
                return "G_" + expr.name
            if expr.annotations.get("kind") == "func":
                return _title(expr.name)
            return "_" + expr.name
        if isinstance(expr, Operation):
            args = ", ".join(self._emit_expr(o) for o in expr.operands)
            return f"{STD_ALIAS}.{DYNAMIC_CALLS[expr.op]}({args})"
        if isinstance(expr, TypeExpression):
            args = ", ".join(self._emit_expr(a) for a in expr.args)
            if expr.typ.name == "L":
                return f"{STD_ALIAS}.List({args})"
            return f"{STD_ALIAS}.Map({args})"
        if isinstance(expr, FunctionCall):
            return self._emit_call(expr)
        raise ValueError("cannot emit " + type(expr).__name__ + " in the dynamic dialect")

    def _emit_call(self, expr: FunctionCall) -> str:
        args = ", ".join(self._emit_expr(a) for a in expr.args)
        callee = expr.callee
        if isinstance(callee, Identifier) and callee.annotations.get("kind") == "func":
            return f"{_title(callee.name)}({args})"
        return f"{self._emit_expr(callee)}.({BOXED_FUNC})({args})"


# ============================================================
# PUBLIC API
# ============================================================


def emit_dynamic(
    pkg: Package, runtime_path: str = DEFAULT_RUNTIME_PATH, breakpoints: bool = True
) -> str:
    """Render a checked dynamic-dialect package as a Go program."""
    return DynamicEmitter(runtime_path, breakpoints).emit(pkg)
