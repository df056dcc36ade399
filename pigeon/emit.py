"""GoEmitter: typed Pigeon packages -> Go source.

Pure syntax emission, no analysis. Every decision is driven by the types and
annotations the checker attached to the tree.

Naming in the emitted program:
- functions: package prefix + title-cased name (main -> Main)
- globals: package prefix + G_ + name
- structs and interfaces: package prefix + name
- members and methods: title-cased
- parameters and locals: _name
- compiler temporaries: double underscore (__i, __v, __inter, __ok, __c0)
"""

from __future__ import annotations

from .ast import (
    Assignment,
    BoolLit,
    Break,
    Continue,
    Expr,
    ExprStmt,
    Foreach,
    Forinc,
    FuncDef,
    FunctionCall,
    GlobalDef,
    Go,
    Identifier,
    If,
    InterfaceDef,
    LocalFunc,
    Locals,
    MethodCall,
    MethodDef,
    NilLit,
    NumberLit,
    Operation,
    Return,
    Select,
    SendClause,
    Stmt,
    StringLit,
    StructDef,
    TypeExpression,
    Typeswitch,
    Variable,
    While,
)
from .build import Package
from .runtime import DEFAULT_RUNTIME_PATH, FMT_ALIAS, STATIC_CALLS, STD_ALIAS, STR_CONVERSIONS
from .types import (
    ArrayType,
    BuiltinType,
    DataType,
    FunctionType,
    InterfaceType,
    StructType,
    is_any,
    is_builtin,
    is_list,
    is_map,
    is_str,
    struct_of,
    type_name,
)

GO_SCALARS: dict[str, str] = {
    "I": "int64",
    "F": "float64",
    "Byte": "byte",
    "Bool": "bool",
    "Str": "string",
    "Err": "error",
    "Any": "interface{}",
}

INFIX: dict[str, str] = {
    "add": "+",
    "sub": "-",
    "mul": "*",
    "div": "/",
    "and": "&&",
    "or": "||",
    "band": "&",
    "bor": "|",
    "bxor": "^",
    "concat": "+",
}

COMPARISONS: dict[str, str] = {
    "eq": "==",
    "neq": "!=",
    "lt": "<",
    "gt": ">",
    "lte": "<=",
    "gte": ">=",
}


def _title(name: str) -> str:
    return name[0].upper() + name[1:]


def _prefix(d: object) -> str:
    return getattr(getattr(d, "package", None), "prefix", "")


def go_string(value: str) -> str:
    """Quote a decoded string as a Go interpreted string literal."""
    parts: list[str] = []
    for c in value:
        if c == "\\":
            parts.append("\\\\")
        elif c == '"':
            parts.append('\\"')
        elif c == "\n":
            parts.append("\\n")
        elif c == "\t":
            parts.append("\\t")
        elif c == "\r":
            parts.append("\\r")
        elif ord(c) < 32 or ord(c) == 127:
            parts.append("\\x%02x" % ord(c))
        else:
            parts.append(c)
    return '"' + "".join(parts) + '"'


def go_type(t: DataType) -> str:
    if isinstance(t, BuiltinType):
        if t.name in GO_SCALARS:
            return GO_SCALARS[t.name]
        if t.name == "L":
            return "*" + STD_ALIAS + ".List"
        if t.name == "S":
            return "[]" + go_type(t.params[0])
        if t.name == "Ch":
            return "chan " + go_type(t.params[0])
        if t.name == "M":
            return "map[" + go_type(t.params[0]) + "]" + go_type(t.params[1])
        if t.name == "P":
            return "*" + go_type(t.params[0])
    if isinstance(t, ArrayType):
        return "[" + str(t.size) + "]" + go_type(t.element)
    if isinstance(t, FunctionType):
        params = ", ".join(go_type(p) for p in t.params)
        return "func(" + params + ")" + go_returns(t.returns)
    if isinstance(t, (StructType, InterfaceType)):
        return _prefix(t) + t.name
    raise ValueError("no Go type for " + type_name(t))


def go_returns(returns: list[DataType]) -> str:
    """Result list of a Go signature, with its leading space."""
    if len(returns) == 0:
        return ""
    if len(returns) == 1:
        return " " + go_type(returns[0])
    return " (" + ", ".join(go_type(r) for r in returns) + ")"


def _is_simple(e: Expr) -> bool:
    return isinstance(e, (Identifier, NumberLit, StringLit, BoolLit, NilLit))


def package_order(root: Package) -> list[Package]:
    """Root and every imported package, dependencies first."""
    order: list[Package] = []
    seen: set[int] = set()

    def visit(pkg: Package) -> None:
        if id(pkg) in seen:
            return
        seen.add(id(pkg))
        for dep in pkg.packages.values():
            visit(dep)
        order.append(pkg)

    visit(root)
    return order


class GoEmitter:
    """Emit one Go program from a checked root package and its imports."""

    def __init__(self, runtime_path: str = DEFAULT_RUNTIME_PATH, breakpoints: bool = True) -> None:
        self.runtime_path: str = runtime_path
        self.breakpoints: bool = breakpoints
        self.output: list[str] = []
        self.indent: int = 0
        self.pkg: Package | None = None

    def emit(self, root: Package) -> str:
        self.output = []
        packages = package_order(root)
        for pkg in packages:
            self.pkg = pkg
            self._emit_package(pkg)
        self.pkg = root
        self._emit_entry()
        body = "\n".join(self.output)
        self.output = []
        self._emit_header(packages)
        if self.breakpoints:
            self._emit_breakpoint_table(root)
        code = "\n".join(self.output) + "\n" + body + "\n"
        root.code = code
        return code

    def _line(self, text: str) -> None:
        """Emit a line with current indentation."""
        self.output.append("\t" * self.indent + text)

    def _record(self, line: int) -> None:
        assert self.pkg is not None
        self.pkg.valid_breakpoints.add(line)

    # ============================================================
    # DECLARATIONS
    # ============================================================

    def _emit_header(self, packages: list[Package]) -> None:
        self._line("package main")
        self._line("")
        self._line(f'import {FMT_ALIAS} "fmt"')
        self._line(f'import {STD_ALIAS} "{self.runtime_path}"')
        seen: set[tuple[str, str]] = set()
        for pkg in packages:
            for ni in pkg.native_imports:
                key = (ni.alias, ni.path)
                if key in seen:
                    continue
                seen.add(key)
                self._line(f"import {ni.alias} {go_string(ni.path)}")
        self._line("")
        self._line(f"var _ = {FMT_ALIAS}.Sprint")
        self._line("")

    def _emit_breakpoint_table(self, root: Package) -> None:
        lines = sorted(root.valid_breakpoints)
        entries = ", ".join(f"{n}: true" for n in lines)
        self._line(f"var _validBreakpoints = map[int]bool{{{entries}}}")
        self._line("")

    def _emit_package(self, pkg: Package) -> None:
        for d in pkg.definitions:
            if isinstance(d, InterfaceDef):
                self._emit_interface(pkg.interfaces[d.name])
            elif isinstance(d, StructDef):
                self._emit_struct(pkg.structs[d.name])
        for d in pkg.definitions:
            if isinstance(d, GlobalDef):
                self._emit_global(d)
        for d in pkg.definitions:
            if isinstance(d, FuncDef):
                self._emit_function(d)
            elif isinstance(d, MethodDef):
                self._emit_method(d)

    def _emit_interface(self, iface: InterfaceType) -> None:
        self._line(f"type {go_type(iface)} interface {{")
        self.indent += 1
        for name, ft in iface.methods.items():
            params = ", ".join(go_type(p) for p in ft.params)
            self._line(f"{_title(name)}({params}){go_returns(ft.returns)}")
        self.indent -= 1
        self._line("}")
        self._line("")

    def _emit_struct(self, st: StructType) -> None:
        self._line(f"type {go_type(st)} struct {{")
        self.indent += 1
        i = 0
        while i < len(st.member_names):
            self._line(f"{_title(st.member_names[i])} {go_type(st.member_types[i])}")
            i += 1
        self.indent -= 1
        if st.native_code != "":
            for text in st.native_code.split("\n"):
                self.output.append(text)
        self._line("}")
        self._line("")

    def _emit_global(self, g: GlobalDef) -> None:
        assert self.pkg is not None
        self._record(g.pos.line)
        t = self.pkg.global_types[g.name]
        self._line(f"var {_prefix(g)}G_{g.name} {go_type(t)} = {self._emit_expr(g.value)}")
        self._line("")

    def _params(self, params: list[Variable]) -> str:
        parts: list[str] = []
        for p in params:
            assert isinstance(p.dtype, DataType)
            parts.append(f"_{p.name} {go_type(p.dtype)}")
        return ", ".join(parts)

    def _emit_function(self, fn: FuncDef) -> None:
        assert self.pkg is not None
        ft = self.pkg.func_types[fn.name]
        name = _prefix(fn) + _title(fn.name)
        self._line(f"func {name}({self._params(fn.params)}){go_returns(ft.returns)} {{")
        if fn.native_code is not None:
            for text in fn.native_code.split("\n"):
                self.output.append(text)
        else:
            self._emit_block(fn.body)
        self._line("}")
        self._line("")

    def _emit_method(self, m: MethodDef) -> None:
        st = m.receiver.dtype
        assert isinstance(st, StructType)
        ft = st.methods[m.name]
        recv = f"_{m.receiver.name} {go_type(st)}"
        self._line(
            f"func ({recv}) {_title(m.name)}({self._params(m.params)}){go_returns(ft.returns)} {{"
        )
        self._emit_block(m.body)
        self._line("}")
        self._line("")

    def _emit_entry(self) -> None:
        self._line("func main() {")
        self.indent += 1
        self._line(f"{STD_ALIAS}.NoOp()")
        if self.breakpoints:
            self._line(f"{STD_ALIAS}.Breakpoints = _validBreakpoints")
        self._line("Main()")
        self.indent -= 1
        self._line("}")

    # ============================================================
    # STATEMENT EMISSION
    # ============================================================

    def _emit_block(self, body: list[Stmt]) -> None:
        self.indent += 1
        for stmt in body:
            self._emit_stmt(stmt)
        self.indent -= 1

    def _emit_stmt(self, stmt: Stmt) -> None:
        self._record(stmt.pos.line)
        if isinstance(stmt, Locals):
            self._emit_stmt_Locals(stmt)
        elif isinstance(stmt, LocalFunc):
            self._emit_stmt_LocalFunc(stmt)
        elif isinstance(stmt, ExprStmt):
            self._line(self._emit_expr(stmt.expr))
        elif isinstance(stmt, Assignment):
            self._emit_stmt_Assignment(stmt)
        elif isinstance(stmt, Return):
            self._emit_stmt_Return(stmt)
        elif isinstance(stmt, If):
            self._emit_stmt_If(stmt)
        elif isinstance(stmt, While):
            self._line(f"for {self._cond(stmt.cond)} {{")
            self._emit_block(stmt.body)
            self._line("}")
        elif isinstance(stmt, Foreach):
            self._emit_stmt_Foreach(stmt)
        elif isinstance(stmt, Forinc):
            self._emit_stmt_Forinc(stmt)
        elif isinstance(stmt, Typeswitch):
            self._emit_stmt_Typeswitch(stmt)
        elif isinstance(stmt, Select):
            self._emit_stmt_Select(stmt)
        elif isinstance(stmt, Break):
            self._line("break")
        elif isinstance(stmt, Continue):
            self._line("continue")
        elif isinstance(stmt, Go):
            self._line(f"go {self._emit_expr(stmt.call)}")

    def _declare(self, var: Variable, value: str) -> None:
        """var _name T = value, then a NoOp use."""
        assert isinstance(var.dtype, DataType)
        self._line(f"var _{var.name} {go_type(var.dtype)} = {value}")
        self._line(f"{STD_ALIAS}.NoOp(_{var.name})")

    def _emit_stmt_Locals(self, stmt: Locals) -> None:
        names: list[str] = []
        for var in stmt.variables:
            t = var.dtype
            assert isinstance(t, DataType)
            if is_list(t):
                self._line(f"var _{var.name} {go_type(t)} = new({STD_ALIAS}.List)")
            elif is_map(t) or is_builtin(t, "Ch"):
                self._line(f"var _{var.name} {go_type(t)} = make({go_type(t)})")
            else:
                self._line(f"var _{var.name} {go_type(t)}")
            names.append("_" + var.name)
        self._line(f"{STD_ALIAS}.NoOp({', '.join(names)})")

    def _emit_stmt_LocalFunc(self, stmt: LocalFunc) -> None:
        ft = stmt.dtype
        assert isinstance(ft, FunctionType)
        self._line(f"var _{stmt.name} {go_type(ft)}")
        self._line(f"_{stmt.name} = func({self._params(stmt.params)}){go_returns(ft.returns)} {{")
        self._emit_block(stmt.body)
        self._line("}")
        self._line(f"{STD_ALIAS}.NoOp(_{stmt.name})")

    def _emit_stmt_Assignment(self, stmt: Assignment) -> None:
        value = self._emit_expr(stmt.value)
        target = stmt.targets[0]
        if isinstance(target, Operation) and target.op == "ref":
            self._line(f"{self._emit_expr(target.operands[0])} = *{value}")
            return
        targets = ", ".join(self._emit_target(t) for t in stmt.targets)
        self._line(f"{targets} = {value}")

    def _emit_target(self, target: Expr) -> str:
        if isinstance(target, Operation) and target.op == "dr":
            return "*" + self._emit_expr(target.operands[0])
        return self._emit_expr(target)

    def _emit_stmt_Return(self, stmt: Return) -> None:
        if len(stmt.values) == 0:
            self._line("return")
            return
        self._line("return " + ", ".join(self._emit_expr(v) for v in stmt.values))

    def _emit_stmt_If(self, stmt: If) -> None:
        self._line(f"if {self._cond(stmt.cond)} {{")
        self._emit_block(stmt.body)
        for clause in stmt.elseifs:
            self._record(clause.pos.line)
            self._line(f"}} else if {self._cond(clause.cond)} {{")
            self._emit_block(clause.body)
        if stmt.else_body is not None:
            self._line("} else {")
            self._emit_block(stmt.else_body)
        self._line("}")

    def _emit_stmt_Foreach(self, stmt: Foreach) -> None:
        coll_t = stmt.collection.types[0]
        coll = self._emit_expr(stmt.collection)
        index_t = stmt.index.dtype
        assert isinstance(index_t, DataType)
        if is_map(coll_t):
            self._line(f"for __i, __v := range {coll} {{")
            self.indent += 1
            self._declare(stmt.index, "__i")
            self._declare(stmt.val, "__v")
        else:
            if is_list(coll_t):
                assert isinstance(coll_t, BuiltinType)
                self._line(f"for __i, __v := range *{coll} {{")
                value = self._assert("__v", coll_t.params[0])
            else:
                self._line(f"for __i, __v := range {coll} {{")
                value = "__v"
            self.indent += 1
            self._declare(stmt.index, f"{go_type(index_t)}(__i)")
            self._declare(stmt.val, value)
        for s in stmt.body:
            self._emit_stmt(s)
        self.indent -= 1
        self._line("}")

    def _emit_stmt_Forinc(self, stmt: Forinc) -> None:
        start = self._emit_expr(stmt.start)
        end = self._emit_expr(stmt.end)
        if stmt.dec:
            self._line(f"for __i := int64({start}) - 1; __i >= int64({end}); __i-- {{")
        else:
            self._line(f"for __i := int64({start}); __i < int64({end}); __i++ {{")
        self.indent += 1
        self._declare(stmt.index, "__i")
        for s in stmt.body:
            self._emit_stmt(s)
        self.indent -= 1
        self._line("}")

    def _emit_stmt_Typeswitch(self, stmt: Typeswitch) -> None:
        self._line("{")
        self.indent += 1
        self._line(f"__inter := {self._emit_expr(stmt.value)}")
        self._line(f"{STD_ALIAS}.NoOp(__inter)")
        keyword = "if"
        for case in stmt.cases:
            self._record(case.pos.line)
            assert isinstance(case.var.dtype, DataType)
            case_t = go_type(case.var.dtype)
            self._line(f"{keyword} _{case.var.name}, __ok := __inter.({case_t}); __ok {{")
            self.indent += 1
            self._line(f"{STD_ALIAS}.NoOp(_{case.var.name})")
            for s in case.body:
                self._emit_stmt(s)
            self.indent -= 1
            keyword = "} else if"
        if stmt.default_body is not None:
            self._line("} else {")
            self.indent += 1
            if stmt.default_name is not None:
                self._line(f"_{stmt.default_name} := __inter")
                self._line(f"{STD_ALIAS}.NoOp(_{stmt.default_name})")
            for s in stmt.default_body:
                self._emit_stmt(s)
            self.indent -= 1
        self._line("}")
        self.indent -= 1
        self._line("}")

    def _emit_stmt_Select(self, stmt: Select) -> None:
        self._line("select {")
        for clause in stmt.clauses:
            self._record(clause.pos.line)
            channel = self._emit_expr(clause.channel)
            if isinstance(clause, SendClause):
                self._line(f"case {channel} <- {self._emit_expr(clause.value)}:")
                self.indent += 1
            else:
                self._line(f"case __r := <-{channel}:")
                self.indent += 1
                self._declare(clause.var, "__r")
            for s in clause.body:
                self._emit_stmt(s)
            self.indent -= 1
        if stmt.default_body is not None:
            self._line("default:")
            self._emit_block(stmt.default_body)
        self._line("}")

    # ============================================================
    # EXPRESSION EMISSION
    # ============================================================

    def _cond(self, expr: Expr) -> str:
        return self._emit_expr(expr)

    def _assert(self, code: str, t: DataType) -> str:
        """Unbox a List element."""
        if is_any(t):
            return code
        return f"{code}.({go_type(t)})"

    def _emit_expr(self, expr: Expr) -> str:
        if isinstance(expr, NumberLit):
            if expr.is_float:
                return f"float64({expr.raw})"
            return f"int64({expr.raw})"
        if isinstance(expr, StringLit):
            return self._emit_expr_StringLit(expr)
        if isinstance(expr, BoolLit):
            return "true" if expr.value else "false"
        if isinstance(expr, NilLit):
            return "nil"
        if isinstance(expr, Identifier):
            return self._emit_expr_Identifier(expr)
        if isinstance(expr, Operation):
            return self._emit_expr_Operation(expr)
        if isinstance(expr, FunctionCall):
            args = ", ".join(self._emit_expr(a) for a in expr.args)
            return f"{self._emit_expr(expr.callee)}({args})"
        if isinstance(expr, MethodCall):
            args = ", ".join(self._emit_expr(a) for a in expr.args)
            return f"{self._emit_expr(expr.receiver)}.{_title(expr.name)}({args})"
        if isinstance(expr, TypeExpression):
            return self._emit_expr_TypeExpression(expr)
        raise ValueError("cannot emit " + type(expr).__name__)

    def _emit_expr_StringLit(self, expr: StringLit) -> str:
        if expr.multiline and "`" not in expr.value and "\r" not in expr.value:
            return "`" + expr.value + "`"
        return go_string(expr.value)

    def _emit_expr_Identifier(self, expr: Identifier) -> str:
        assert self.pkg is not None
        kind = expr.annotations.get("kind")
        if kind == "global":
            g = self.pkg.globals[expr.name]
            return f"{_prefix(g)}G_{g.name}"
        if kind == "func":
            fn = self.pkg.funcs[expr.name]
            return _prefix(fn) + _title(fn.name)
        return "_" + expr.name

    def _emit_expr_TypeExpression(self, expr: TypeExpression) -> str:
        t = expr.types[0]
        args = [self._emit_expr(a) for a in expr.args]
        if isinstance(t, StructType):
            fields: list[str] = []
            i = 0
            while i < len(args):
                fields.append(f"{_title(t.member_names[i])}: {args[i]}")
                i += 1
            return f"{go_type(t)}{{{', '.join(fields)}}}"
        if isinstance(t, ArrayType):
            return f"{go_type(t)}{{{', '.join(args)}}}"
        assert isinstance(t, BuiltinType)
        if t.name == "Str":
            conv = STR_CONVERSIONS[type_name(expr.args[0].types[0])]
            return f"{STD_ALIAS}.{conv}({args[0]})"
        if t.name in ("I", "F", "Byte"):
            return f"{go_type(t)}({args[0]})"
        if t.name == "L":
            return f"{STD_ALIAS}.NewList({', '.join(args)})"
        if t.name == "S":
            return f"{go_type(t)}{{{', '.join(args)}}}"
        if t.name == "Ch":
            if len(args) == 1:
                return f"make({go_type(t)}, {args[0]})"
            return f"make({go_type(t)})"
        pairs: list[str] = []
        i = 0
        while i < len(args):
            pairs.append(f"{args[i]}: {args[i + 1]}")
            i += 2
        return f"{go_type(t)}{{{', '.join(pairs)}}}"

    def _emit_expr_Operation(self, expr: Operation) -> str:
        op = expr.op
        operands = expr.operands
        if op in INFIX:
            return "(" + f" {INFIX[op]} ".join(self._emit_expr(o) for o in operands) + ")"
        if op in COMPARISONS:
            return self._emit_comparison(expr)
        if op == "get":
            return self._emit_get(expr)
        if op == "set":
            return self._emit_set(expr)
        if op == "make":
            return self._emit_make(expr)
        if op == "istype":
            t = go_type(operands[0].types[0])
            value = self._emit_expr(operands[1])
            return f"func() ({t}, bool) {{ __v, __ok := {value}.({t}); return __v, __ok }}()"
        args = [self._emit_expr(o) for o in operands]
        if op == "mod":
            if is_builtin(operands[0].types[0], "F"):
                return f"{STD_ALIAS}.Fmod({args[0]}, {args[1]})"
            return f"({args[0]} % {args[1]})"
        if op == "inc":
            return f"({args[0]} + 1)"
        if op == "dec":
            return f"({args[0]} - 1)"
        if op == "not":
            return f"(!{args[0]})"
        if op == "bnot":
            return f"(^{args[0]})"
        if op == "push":
            return f"{args[0]}.Append({args[1]})"
        if op == "append":
            return f"append({args[0]}, {args[1]})"
        if op == "slice":
            return f"{args[0]}[{args[1]}:{args[2]}]"
        if op == "len":
            t = operands[0].types[0]
            if is_str(t):
                return f"{STD_ALIAS}.StrLen({args[0]})"
            if is_list(t):
                return f"int64(len(*{args[0]}))"
            return f"int64(len({args[0]}))"
        if op == "ref":
            return f"&{args[0]}"
        if op == "dr":
            return f"(*{args[0]})"
        if op == "print":
            return f"{FMT_ALIAS}.Print({', '.join(args)})"
        if op == "println":
            return f"{FMT_ALIAS}.Println({', '.join(args)})"
        if op == "send" or op == "sr":
            return f"{args[0]} <- {args[1]}"
        if op == "rcv":
            return f"(<-{args[0]})"
        if op in STATIC_CALLS:
            return f"{STD_ALIAS}.{STATIC_CALLS[op]}({', '.join(args)})"
        raise ValueError("cannot emit operator " + op)

    def _emit_comparison(self, expr: Operation) -> str:
        """Chains compare adjacent operands: (lt a b c) is a < b && b < c.

        Each operand is evaluated once, left to right, and later operands are
        skipped once a pair fails. When a middle operand is more than a name
        or literal, the chain becomes a func literal holding __cN temporaries.
        """
        sym = COMPARISONS[expr.op]
        operands = expr.operands
        if all(_is_simple(o) for o in operands[1:-1]):
            codes = [self._emit_expr(o) for o in operands]
            pairs: list[str] = []
            i = 0
            while i + 1 < len(codes):
                pairs.append(f"{codes[i]} {sym} {codes[i + 1]}")
                i += 1
            return "(" + " && ".join(pairs) + ")"
        stmts: list[str] = []
        refs: list[str] = []
        for i, o in enumerate(operands):
            code = self._emit_expr(o)
            if _is_simple(o):
                refs.append(code)
            else:
                stmts.append(f"__c{i} := {code}")
                refs.append(f"__c{i}")
            if 0 < i < len(operands) - 1:
                stmts.append(f"if !({refs[i - 1]} {sym} {refs[i]}) {{ return false }}")
        stmts.append(f"return {refs[-2]} {sym} {refs[-1]}")
        return "func() bool { " + "; ".join(stmts) + " }()"

    def _emit_get(self, expr: Operation) -> str:
        container_t = expr.operands[0].types[0]
        container = self._emit_expr(expr.operands[0])
        if struct_of(container_t) is not None:
            return f"{container}.{_title(str(expr.annotations['member']))}"
        index = self._emit_expr(expr.operands[1])
        if is_list(container_t):
            if expr.annotations.get("target"):
                return f"(*{container})[int64({index})]"
            return self._assert(f"{container}.Get(int64({index}))", expr.types[0])
        return f"{container}[{index}]"

    def _emit_set(self, expr: Operation) -> str:
        container_t = expr.operands[0].types[0]
        container = self._emit_expr(expr.operands[0])
        value = self._emit_expr(expr.operands[2])
        if struct_of(container_t) is not None:
            return f"{container}.{_title(str(expr.annotations['member']))} = {value}"
        index = self._emit_expr(expr.operands[1])
        if is_list(container_t):
            return f"{container}.Set(int64({index}), {value})"
        return f"{container}[{index}] = {value}"

    def _emit_make(self, expr: Operation) -> str:
        t = expr.operands[0].types[0]
        assert isinstance(t, BuiltinType)
        if len(expr.operands) == 2:
            n = self._emit_expr(expr.operands[1])
            if t.name == "L":
                return f"{STD_ALIAS}.MakeList(int64({n}), *new({go_type(t.params[0])}))"
            return f"make({go_type(t)}, {n})"
        return f"make({go_type(t)})"


# ============================================================
# PUBLIC API
# ============================================================


def emit(pkg: Package, runtime_path: str = DEFAULT_RUNTIME_PATH, breakpoints: bool = True) -> str:
    """Render a checked root package, and the packages it imports, as one Go program."""
    return GoEmitter(runtime_path, breakpoints).emit(pkg)
