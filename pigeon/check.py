"""Pigeon typechecker: assigns result types to every expression of a built package."""

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
    LocalFunc,
    Locals,
    MethodCall,
    MethodDef,
    NilLit,
    NumberLit,
    Operation,
    Pos,
    RcvClause,
    Return,
    Select,
    SendClause,
    Stmt,
    StringLit,
    TypeExpression,
    TypeRef,
    Typeswitch,
    Variable,
    While,
)
from .build import Package, resolve_function_type, resolve_type
from .errors import PigeonError
from .types import (
    ANY_T,
    BOOL_T,
    BYTE_T,
    ERR_T,
    FLOAT_T,
    INT_T,
    STR_T,
    ArrayType,
    BuiltinType,
    DataType,
    FunctionType,
    InterfaceType,
    StructType,
    builtin,
    is_bool,
    is_chan,
    is_integer,
    is_list,
    is_map,
    is_nilable,
    is_number,
    is_pointer,
    is_slice,
    is_str,
    is_comparable,
    is_type,
    struct_of,
    type_eq,
    type_name,
)

# Go package aliases used by emitted code; locals are emitted as _name
RUNTIME_NAMES: set[str] = {"fmt", "std", "log"}

STATEMENT_OPS: set[str] = {"set", "push", "print", "println", "prompt", "send", "sr"}

DYNAMIC_STATEMENT_OPS: set[str] = {"set", "push", "print", "println", "prompt"}

# operator -> (min operands, max operands); -1 means unbounded
DYNAMIC_OPS: dict[str, tuple[int, int]] = {
    "add": (2, -1),
    "sub": (2, -1),
    "mul": (2, -1),
    "div": (2, -1),
    "mod": (2, 2),
    "inc": (1, 1),
    "dec": (1, 1),
    "eq": (2, -1),
    "neq": (2, -1),
    "not": (1, 1),
    "lt": (2, -1),
    "gt": (2, -1),
    "lte": (2, -1),
    "gte": (2, -1),
    "and": (2, -1),
    "or": (2, -1),
    "get": (2, 2),
    "set": (3, 3),
    "push": (2, 2),
    "print": (1, -1),
    "println": (0, -1),
    "prompt": (0, -1),
    "concat": (2, -1),
    "len": (1, 1),
    "floor": (1, 1),
    "ceil": (1, 1),
    "randFloat": (0, 0),
    "charlist": (1, 1),
    "getchar": (2, 2),
}

# operator -> (operand types, result types) for the fixed-signature runtime operators
SIGNATURES: dict[str, tuple[list[DataType], list[DataType]]] = {
    "randInt": ([], [INT_T]),
    "randIntN": ([INT_T], [INT_T]),
    "randFloat": ([], [FLOAT_T]),
    "floor": ([FLOAT_T], [FLOAT_T]),
    "ceil": ([FLOAT_T], [FLOAT_T]),
    "parseInt": ([STR_T], [INT_T, ERR_T]),
    "parseFloat": ([STR_T], [FLOAT_T, ERR_T]),
    "formatInt": ([INT_T], [STR_T]),
    "formatFloat": ([FLOAT_T], [STR_T]),
    "timeNow": ([], [INT_T]),
    "formatTime": ([INT_T], [STR_T]),
    "parseTime": ([STR_T], [INT_T, ERR_T]),
    "createFile": ([STR_T], [INT_T, STR_T]),
    "openFile": ([STR_T], [INT_T, STR_T]),
    "closeFile": ([INT_T], [STR_T]),
    "readFile": ([INT_T, builtin("S", [BYTE_T])], [INT_T, STR_T]),
    "writeFile": ([INT_T, builtin("S", [BYTE_T])], [INT_T, STR_T]),
    "seekFile": ([INT_T, INT_T], [INT_T, STR_T]),
    "seekFileStart": ([INT_T, INT_T], [INT_T, STR_T]),
    "seekFileEnd": ([INT_T, INT_T], [INT_T, STR_T]),
    "getchar": ([STR_T, INT_T], [STR_T]),
    "getrune": ([STR_T, INT_T], [INT_T]),
    "charlist": ([STR_T], [builtin("L", [STR_T])]),
    "runelist": ([STR_T], [builtin("L", [INT_T])]),
    "charslice": ([STR_T], [builtin("S", [STR_T])]),
    "runeslice": ([STR_T], [builtin("S", [INT_T])]),
    "byteslice": ([STR_T], [builtin("S", [BYTE_T])]),
}

# argument types (L<I> L<Str> S<I> S<Byte> S<Str>) accepted by (Str x)
STR_CONVERSIONS: list[DataType] = [
    builtin("L", [INT_T]),
    builtin("L", [STR_T]),
    builtin("S", [INT_T]),
    builtin("S", [BYTE_T]),
    builtin("S", [STR_T]),
]


class CheckError(PigeonError):
    """Type error with location info."""


def _member_name(e: Expr) -> str | None:
    if isinstance(e, Identifier):
        return e.name
    if isinstance(e, StringLit) and not e.multiline:
        return e.value
    return None


def _addressable(e: Expr) -> bool:
    """True if e denotes storage Go can write through: a variable, a
    dereference, a slice element, or a member or array element of one.
    List elements, map values and call results are copies."""
    if isinstance(e, Identifier):
        return e.annotations.get("kind") in ("local", "global")
    if not isinstance(e, Operation):
        return False
    if e.op == "dr":
        return True
    if e.op != "get":
        return False
    container = e.operands[0].types[0]
    if is_pointer(container) or is_slice(container):
        return True
    if isinstance(container, (StructType, ArrayType)):
        return _addressable(e.operands[0])
    return False


# ============================================================
# CHECKER
# ============================================================


class Checker:
    def __init__(self, pkg: Package) -> None:
        self.pkg: Package = pkg
        self.dynamic: bool = pkg.dynamic
        self.scopes: list[dict[str, DataType]] = []
        self.params: set[str] = set()
        self.ret_types: list[DataType] = []
        # one entry per enclosing loop or select clause; False marks a select clause
        self.breakable: list[bool] = []

    def error(self, msg: str, pos: Pos) -> CheckError:
        return CheckError(msg, pos.line, pos.col)

    # ── Scope management ──────────────────────────────────────

    def enter_scope(self) -> None:
        self.scopes.append({})

    def exit_scope(self) -> None:
        self.scopes.pop()

    def find_local(self, name: str) -> DataType | None:
        i = len(self.scopes) - 1
        while i >= 0:
            if name in self.scopes[i]:
                return self.scopes[i][name]
            i -= 1
        return None

    def declare(self, name: str, dtype: DataType, pos: Pos) -> None:
        if name in RUNTIME_NAMES:
            raise self.error("Variable name '" + name + "' is reserved.", pos)
        if self.find_local(name) is not None:
            if name in self.params:
                raise self.error(
                    "Local variable " + name + " is already defined as a parameter.", pos
                )
            raise self.error("Variable " + name + " is already defined.", pos)
        self.scopes[-1][name] = dtype

    def declare_var(self, var: Variable) -> DataType:
        if self.dynamic or var.typ is None:
            dtype: DataType = ANY_T
        else:
            dtype = resolve_type(var.typ, self.pkg)
        var.dtype = dtype
        self.declare(var.name, dtype, var.pos)
        return dtype

    def declare_param(self, var: Variable) -> None:
        if var.name in self.params:
            raise self.error("Duplicate parameter name: " + var.name, var.pos)
        dtype = var.dtype if var.dtype is not None else ANY_T
        assert isinstance(dtype, DataType)
        self.declare(var.name, dtype, var.pos)
        self.params.add(var.name)

    # ── Declarations ──────────────────────────────────────────

    def check_package(self) -> None:
        pkg = self.pkg
        for d in pkg.definitions:
            if isinstance(d, GlobalDef):
                self.check_global(d)
        for d in pkg.definitions:
            if isinstance(d, FuncDef) and d.native_code is None:
                ft = pkg.func_types[d.name]
                self.check_function(d.params, ft.returns, d.body, d.pos, None)
            elif isinstance(d, MethodDef):
                st = d.receiver.dtype
                assert isinstance(st, StructType)
                ft = st.methods[d.name]
                self.check_function(d.params, ft.returns, d.body, d.pos, d.receiver)

    def check_global(self, g: GlobalDef) -> None:
        self.scopes = [{}]
        t = self.single(g.value)
        expected = self.pkg.global_types[g.name]
        if not self.dynamic and not self.assignable(g.value, t, expected):
            raise self.error("Initial value of global does not match the declared type.", g.value.pos)
        self.scopes = []

    def check_function(
        self,
        params: list[Variable],
        ret_types: list[DataType],
        body: list[Stmt],
        pos: Pos,
        receiver: Variable | None,
    ) -> None:
        saved_params = self.params
        saved_ret = self.ret_types
        saved_breakable = self.breakable
        self.params = set()
        self.ret_types = ret_types
        self.breakable = []
        self.enter_scope()
        if receiver is not None:
            self.declare_param(receiver)
        for p in params:
            self.declare_param(p)
        self.check_function_body(body, pos)
        self.exit_scope()
        self.params = saved_params
        self.ret_types = saved_ret
        self.breakable = saved_breakable

    def check_function_body(self, body: list[Stmt], pos: Pos) -> None:
        if len(body) == 0:
            raise self.error("Function should contain at least one statement.", pos)
        i = 0
        if isinstance(body[0], Locals):
            for var in body[0].variables:
                self.declare_var(var)
            i = 1
        while i < len(body) and isinstance(body[i], LocalFunc):
            lf = body[i]
            assert isinstance(lf, LocalFunc)
            self.check_localfunc(lf)
            i += 1
        while i < len(body):
            self.check_stmt(body[i])
            i += 1
        if len(self.ret_types) > 0 and not self.dynamic:
            last = body[len(body) - 1]
            if not isinstance(last, Return):
                raise self.error("this function must end with a return statement.", last.pos)

    def check_localfunc(self, lf: LocalFunc) -> None:
        ft = resolve_function_type(lf.params, lf.returns, self.pkg)
        lf.dtype = ft
        self.declare(lf.name, ft, lf.pos)
        self.check_function(lf.params, ft.returns, lf.body, lf.pos, None)

    # ── Statements ────────────────────────────────────────────

    def check_body(self, body: list[Stmt]) -> None:
        self.enter_scope()
        for stmt in body:
            self.check_stmt(stmt)
        self.exit_scope()

    def check_stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, ExprStmt):
            self.check_expr_stmt(stmt)
        elif isinstance(stmt, Assignment):
            self.check_assignment(stmt)
        elif isinstance(stmt, Return):
            self.check_return(stmt)
        elif isinstance(stmt, If):
            self.check_condition(stmt.cond, "if")
            self.check_body(stmt.body)
            for clause in stmt.elseifs:
                self.check_condition(clause.cond, "elseif")
                self.check_body(clause.body)
            if stmt.else_body is not None:
                self.check_body(stmt.else_body)
        elif isinstance(stmt, While):
            self.check_condition(stmt.cond, "while")
            self.check_loop_body(stmt.body)
        elif isinstance(stmt, Foreach):
            self.check_foreach(stmt)
        elif isinstance(stmt, Forinc):
            self.check_forinc(stmt)
        elif isinstance(stmt, Typeswitch):
            self.check_typeswitch(stmt)
        elif isinstance(stmt, Select):
            self.check_select(stmt)
        elif isinstance(stmt, Break):
            if len(self.breakable) == 0:
                raise self.error("cannot have break statement outside a loop.", stmt.pos)
            if not self.breakable[len(self.breakable) - 1]:
                raise self.error("cannot have break statement directly inside a select clause.", stmt.pos)
        elif isinstance(stmt, Continue):
            if True not in self.breakable:
                raise self.error("cannot have continue statement outside a loop.", stmt.pos)
        elif isinstance(stmt, Go):
            self.check_expr(stmt.call)
        elif isinstance(stmt, Locals):
            raise self.error(
                "only the first statement of a function can be a locals statement.", stmt.pos
            )
        elif isinstance(stmt, LocalFunc):
            raise self.error(
                "localfunc must come before all other statements except locals.", stmt.pos
            )
        else:
            raise self.error("unknown statement", stmt.pos)

    def check_loop_body(self, body: list[Stmt]) -> None:
        self.breakable.append(True)
        self.check_body(body)
        self.breakable.pop()

    def check_condition(self, cond: Expr, what: str) -> None:
        t = self.single(cond)
        if self.dynamic:
            return
        if not is_bool(t):
            raise self.error(what + " condition must be a boolean, got " + type_name(t) + ".", cond.pos)

    def check_expr_stmt(self, stmt: ExprStmt) -> None:
        expr = stmt.expr
        if isinstance(expr, (FunctionCall, MethodCall)):
            self.check_expr(expr)
            return
        if isinstance(expr, Operation):
            allowed = DYNAMIC_STATEMENT_OPS if self.dynamic else STATEMENT_OPS
            if expr.op not in allowed:
                raise self.error(
                    "the result of a " + expr.op + " operation cannot be discarded.", expr.pos
                )
            self.check_expr(expr)
            return
        raise self.error("expression cannot be used as a statement.", expr.pos)

    def check_assignment(self, stmt: Assignment) -> None:
        targets = stmt.targets
        if self.dynamic and len(targets) != 1:
            raise self.error("Wrong number of targets in assignment.", stmt.pos)
        target_types: list[DataType] = []
        for target in targets:
            if len(targets) > 1 and isinstance(target, Operation) and target.op == "ref":
                raise self.error("A ref target must be the only target of an assignment.", target.pos)
            target_types.append(self.check_target(target))
        value_types = self.check_expr(stmt.value)
        if len(value_types) != len(targets):
            raise self.error("Wrong number of targets in assignment.", stmt.pos)
        if self.dynamic:
            return
        i = 0
        while i < len(targets):
            if not self.assignable(stmt.value, value_types[i], target_types[i]):
                raise self.error(
                    "Value in assignment does not match expected type: expected "
                    + type_name(target_types[i])
                    + ", got "
                    + type_name(value_types[i])
                    + ".",
                    stmt.value.pos,
                )
            i += 1

    def check_target(self, target: Expr) -> DataType:
        if isinstance(target, Identifier):
            t = self.check_expr(target)[0]
            if target.annotations.get("kind") == "func":
                raise self.error("Cannot assign to function " + target.name + ".", target.pos)
            return t
        if isinstance(target, Operation) and target.op == "get":
            target.annotations["target"] = True
            t = self.single(target)
            self.expect_addressable(target.operands[0])
            return t
        if isinstance(target, Operation) and target.op == "dr" and not self.dynamic:
            return self.single(target)
        if isinstance(target, Operation) and target.op == "ref" and not self.dynamic:
            inner = target.operands[0] if len(target.operands) == 1 else None
            if not isinstance(inner, Identifier):
                raise self.error("Assignment to ref requires a variable operand.", target.pos)
            target.annotations["target"] = True
            return self.single(target)
        raise self.error("Invalid assignment target.", target.pos)

    def check_return(self, stmt: Return) -> None:
        if self.dynamic:
            if len(stmt.values) > 1:
                raise self.error("return takes at most one value.", stmt.pos)
            if len(stmt.values) == 1:
                self.single(stmt.values[0])
            return
        expected = self.ret_types
        if len(stmt.values) == 1 and len(expected) > 1:
            actual = self.check_expr(stmt.values[0])
            if len(actual) != len(expected):
                raise self.error("Wrong number of return values.", stmt.pos)
            i = 0
            while i < len(expected):
                if not is_type(actual[i], expected[i]):
                    raise self.error(
                        "Return value does not match the function's return type.",
                        stmt.values[0].pos,
                    )
                i += 1
            return
        if len(stmt.values) != len(expected):
            raise self.error(
                "Wrong number of return values: expected "
                + str(len(expected))
                + ", got "
                + str(len(stmt.values))
                + ".",
                stmt.pos,
            )
        i = 0
        while i < len(expected):
            t = self.single(stmt.values[i])
            if not self.assignable(stmt.values[i], t, expected[i]):
                raise self.error(
                    "Return value does not match the function's return type.",
                    stmt.values[i].pos,
                )
            i += 1

    def check_foreach(self, stmt: Foreach) -> None:
        coll = self.single(stmt.collection)
        self.enter_scope()
        index_t = self.declare_var(stmt.index)
        val_t = self.declare_var(stmt.val)
        if not self.dynamic:
            if is_list(coll) or is_slice(coll) or isinstance(coll, ArrayType):
                elem = coll.element if isinstance(coll, ArrayType) else coll.params[0]
                if not is_number(index_t):
                    raise self.error("foreach index variable must be a number.", stmt.index.pos)
                if not is_type(elem, val_t):
                    raise self.error(
                        "foreach value variable has wrong type for the collection's elements.",
                        stmt.val.pos,
                    )
            elif is_map(coll):
                assert isinstance(coll, BuiltinType)
                if not is_type(coll.params[0], index_t):
                    raise self.error("foreach index variable has wrong type for map keys.", stmt.index.pos)
                if not is_type(coll.params[1], val_t):
                    raise self.error("foreach value variable has wrong type for map values.", stmt.val.pos)
            else:
                raise self.error(
                    "foreach collection must be a list, slice, array or map.", stmt.collection.pos
                )
        self.check_loop_body(stmt.body)
        self.exit_scope()

    def check_forinc(self, stmt: Forinc) -> None:
        what = "fordec" if stmt.dec else "forinc"
        start = self.single(stmt.start)
        end = self.single(stmt.end)
        self.enter_scope()
        index_t = self.declare_var(stmt.index)
        if not self.dynamic:
            if not type_eq(index_t, INT_T):
                raise self.error(what + " index must be an integer (I).", stmt.index.pos)
            if not is_integer(start):
                raise self.error(what + " start value must be an integer.", stmt.start.pos)
            if not is_integer(end):
                raise self.error(what + " end value must be an integer.", stmt.end.pos)
        self.check_loop_body(stmt.body)
        self.exit_scope()

    def check_typeswitch(self, stmt: Typeswitch) -> None:
        t = self.single(stmt.value)
        if not isinstance(t, InterfaceType):
            raise self.error("typeswitch value must be an interface, got " + type_name(t) + ".", stmt.value.pos)
        for case in stmt.cases:
            self.enter_scope()
            case_t = self.declare_var(case.var)
            if not isinstance(case_t, (StructType, InterfaceType)):
                raise self.error("typeswitch case type must be a struct or interface.", case.var.pos)
            if not is_type(case_t, t):
                raise self.error(
                    "typeswitch case type " + type_name(case_t) + " does not implement " + t.name + ".",
                    case.var.pos,
                )
            for s in case.body:
                self.check_stmt(s)
            self.exit_scope()
        if stmt.default_body is not None:
            self.enter_scope()
            if stmt.default_name is not None:
                self.declare(stmt.default_name, t, stmt.pos)
            for s in stmt.default_body:
                self.check_stmt(s)
            self.exit_scope()

    def check_select(self, stmt: Select) -> None:
        for clause in stmt.clauses:
            self.enter_scope()
            if isinstance(clause, SendClause):
                elem = self.channel_element(clause.channel)
                vt = self.single(clause.value)
                if not self.assignable(clause.value, vt, elem):
                    raise self.error("sending value does not match the channel's element type.", clause.value.pos)
            else:
                assert isinstance(clause, RcvClause)
                elem = self.channel_element(clause.channel)
                var_t = self.declare_var(clause.var)
                if not is_type(elem, var_t):
                    raise self.error(
                        "rcving variable does not match the channel's element type.", clause.var.pos
                    )
            self.breakable.append(False)
            for s in clause.body:
                self.check_stmt(s)
            self.breakable.pop()
            self.exit_scope()
        if stmt.default_body is not None:
            self.breakable.append(False)
            self.check_body(stmt.default_body)
            self.breakable.pop()

    def channel_element(self, e: Expr) -> DataType:
        t = self.single(e)
        if not is_chan(t):
            raise self.error("expected a channel, got " + type_name(t) + ".", e.pos)
        assert isinstance(t, BuiltinType)
        return t.params[0]

    # ── Expressions ───────────────────────────────────────────

    def single(self, e: Expr) -> DataType:
        ts = self.check_expr(e)
        if len(ts) != 1:
            raise self.error("Expression must return exactly one value.", e.pos)
        return ts[0]

    def assignable(self, e: Expr, actual: DataType, target: DataType) -> bool:
        if isinstance(e, NilLit):
            return is_nilable(target)
        return is_type(actual, target)

    def check_expr(self, e: Expr) -> list[DataType]:
        ts = self._check_expr(e)
        e.types = ts
        return ts

    def _check_expr(self, e: Expr) -> list[DataType]:
        if isinstance(e, NumberLit):
            if self.dynamic:
                return [ANY_T]
            return [FLOAT_T if e.is_float else INT_T]
        if isinstance(e, StringLit):
            return [ANY_T if self.dynamic else STR_T]
        if isinstance(e, BoolLit):
            return [ANY_T if self.dynamic else BOOL_T]
        if isinstance(e, NilLit):
            return [ANY_T]
        if isinstance(e, Identifier):
            return self.check_identifier(e)
        if isinstance(e, Operation):
            if self.dynamic:
                return self.check_dynamic_operation(e)
            return self.check_operation(e)
        if isinstance(e, FunctionCall):
            return self.check_call(e)
        if isinstance(e, MethodCall):
            return self.check_method_call(e)
        if isinstance(e, TypeExpression):
            return self.check_type_expression(e)
        if isinstance(e, TypeRef):
            raise self.error("Type " + e.typ.name + " cannot be used as a value.", e.pos)
        raise self.error("unknown expression", e.pos)

    def check_identifier(self, e: Identifier) -> list[DataType]:
        t = self.find_local(e.name)
        if t is not None:
            e.annotations["kind"] = "local"
            return [t]
        if e.name in self.pkg.globals:
            e.annotations["kind"] = "global"
            return [self.pkg.global_types[e.name]]
        if e.name in self.pkg.funcs:
            e.annotations["kind"] = "func"
            return [self.pkg.func_types[e.name]]
        raise self.error("Unknown name: " + e.name, e.pos)

    # ── Calls ─────────────────────────────────────────────────

    def check_args(self, e: Expr, ft: FunctionType, args: list[Expr]) -> None:
        if len(args) != len(ft.params):
            raise self.error(
                "wrong number of arguments: expected "
                + str(len(ft.params))
                + ", got "
                + str(len(args))
                + ".",
                e.pos,
            )
        i = 0
        while i < len(args):
            t = self.single(args[i])
            if not self.dynamic and not self.assignable(args[i], t, ft.params[i]):
                raise self.error(
                    "Argument "
                    + str(i + 1)
                    + " has wrong type: expected "
                    + type_name(ft.params[i])
                    + ", got "
                    + type_name(t)
                    + ".",
                    args[i].pos,
                )
            i += 1

    def check_call(self, e: FunctionCall) -> list[DataType]:
        callee_t = self.single(e.callee)
        if self.dynamic:
            if isinstance(e.callee, Identifier) and e.callee.annotations.get("kind") == "func":
                assert isinstance(callee_t, FunctionType)
                self.check_args(e, callee_t, e.args)
            else:
                for arg in e.args:
                    self.single(arg)
            return [ANY_T]
        if not isinstance(callee_t, FunctionType):
            raise self.error("Cannot call a value of type " + type_name(callee_t) + ".", e.callee.pos)
        self.check_args(e, callee_t, e.args)
        return list(callee_t.returns)

    def check_method_call(self, e: MethodCall) -> list[DataType]:
        if self.dynamic:
            raise self.error("method calls are not available in the dynamic dialect.", e.pos)
        recv = self.single(e.receiver)
        methods: dict[str, FunctionType]
        st = struct_of(recv)
        if st is not None:
            methods = st.methods
        elif isinstance(recv, InterfaceType):
            methods = recv.methods
        else:
            raise self.error("Cannot call a method on a value of type " + type_name(recv) + ".", e.receiver.pos)
        if e.name not in methods:
            raise self.error("Type " + type_name(recv) + " has no method " + e.name + ".", e.pos)
        ft = methods[e.name]
        self.check_args(e, ft, e.args)
        return list(ft.returns)

    # ── Type expressions ──────────────────────────────────────

    def check_type_expression(self, e: TypeExpression) -> list[DataType]:
        if self.dynamic:
            return self.check_dynamic_type_expression(e)
        t = resolve_type(e.typ, self.pkg)
        args = e.args
        if isinstance(t, BuiltinType):
            name = t.name
            if name in ("I", "F", "Byte"):
                if len(args) != 1:
                    raise self.error(name + " conversion requires exactly one operand.", e.pos)
                at = self.single(args[0])
                if not is_number(at):
                    raise self.error(name + " conversion requires a number operand.", args[0].pos)
                return [t]
            if name == "Str":
                if len(args) != 1:
                    raise self.error("Str conversion requires exactly one operand.", e.pos)
                at = self.single(args[0])
                for conv in STR_CONVERSIONS:
                    if type_eq(at, conv):
                        return [t]
                raise self.error(
                    "Str conversion requires L<I>, L<Str>, S<I>, S<Byte> or S<Str>, got "
                    + type_name(at)
                    + ".",
                    args[0].pos,
                )
            if name == "L" or name == "S":
                for arg in args:
                    self.expect_assignable(arg, t.params[0], "element")
                return [t]
            if name == "M":
                if len(args) % 2 != 0:
                    raise self.error("Map expression requires an even number of operands.", e.pos)
                i = 0
                while i < len(args):
                    self.expect_assignable(args[i], t.params[0], "key")
                    self.expect_assignable(args[i + 1], t.params[1], "value")
                    i += 2
                return [t]
            if name == "Ch":
                if len(args) > 1:
                    raise self.error("Channel expression takes at most one operand (the buffer size).", e.pos)
                if len(args) == 1 and not is_integer(self.single(args[0])):
                    raise self.error("Channel buffer size must be an integer.", args[0].pos)
                return [t]
            raise self.error("Cannot construct a value of type " + type_name(t) + ".", e.pos)
        if isinstance(t, ArrayType):
            if len(args) != t.size:
                raise self.error(
                    "Array expression requires exactly " + str(t.size) + " operands.", e.pos
                )
            for arg in args:
                self.expect_assignable(arg, t.element, "element")
            return [t]
        if isinstance(t, StructType):
            if len(args) != len(t.member_types):
                raise self.error(
                    "Struct "
                    + t.name
                    + " requires "
                    + str(len(t.member_types))
                    + " operands, got "
                    + str(len(args))
                    + ".",
                    e.pos,
                )
            i = 0
            while i < len(args):
                self.expect_assignable(args[i], t.member_types[i], "member " + t.member_names[i])
                i += 1
            return [t]
        raise self.error("Cannot construct a value of type " + type_name(t) + ".", e.pos)

    def expect_assignable(self, arg: Expr, target: DataType, what: str) -> None:
        at = self.single(arg)
        if not self.assignable(arg, at, target):
            raise self.error(
                what + " has wrong type: expected " + type_name(target) + ", got " + type_name(at) + ".",
                arg.pos,
            )

    def check_dynamic_type_expression(self, e: TypeExpression) -> list[DataType]:
        name = e.typ.name
        if name != "L" and name != "M":
            raise self.error(
                "only L and M type expressions are available in the dynamic dialect.", e.pos
            )
        if name == "M" and len(e.args) % 2 != 0:
            raise self.error("Map expression requires an even number of operands.", e.pos)
        for arg in e.args:
            self.single(arg)
        return [ANY_T]

    # ── Operations ────────────────────────────────────────────

    def require_arity(self, e: Operation, lo: int, hi: int) -> None:
        n = len(e.operands)
        if lo == hi and n != lo:
            raise self.error(e.op + " operation requires exactly " + str(lo) + " operand(s).", e.pos)
        if n < lo:
            raise self.error(e.op + " operation requires at least " + str(lo) + " operands.", e.pos)
        if hi >= 0 and n > hi:
            raise self.error(e.op + " operation takes at most " + str(hi) + " operands.", e.pos)

    def same_typed(self, e: Operation, pred, what: str) -> DataType:
        """Check that every operand satisfies pred and shares the first operand's type."""
        first: DataType | None = None
        for operand in e.operands:
            t = self.single(operand)
            if not pred(t):
                raise self.error(e.op + " operation has non-" + what + " operand.", operand.pos)
            if first is None:
                first = t
            elif not type_eq(t, first):
                raise self.error(e.op + " operation has mismatched operand types.", operand.pos)
        assert first is not None
        return first

    def check_dynamic_operation(self, e: Operation) -> list[DataType]:
        if e.op not in DYNAMIC_OPS:
            raise self.error("'" + e.op + "' is not available in the dynamic dialect.", e.pos)
        lo, hi = DYNAMIC_OPS[e.op]
        self.require_arity(e, lo, hi)
        for operand in e.operands:
            self.single(operand)
        if e.op in ("set", "push", "print", "println"):
            return []
        return [ANY_T]

    def check_operation(self, e: Operation) -> list[DataType]:
        op = e.op
        ops = e.operands
        if op in ("add", "sub", "mul", "div"):
            self.require_arity(e, 2, -1)
            return [self.same_typed(e, is_number, "number")]
        if op == "mod":
            self.require_arity(e, 2, 2)
            return [self.same_typed(e, is_number, "number")]
        if op == "inc" or op == "dec":
            self.require_arity(e, 1, 1)
            return [self.same_typed(e, is_number, "number")]
        if op in ("lt", "gt", "lte", "gte"):
            self.require_arity(e, 2, -1)
            self.same_typed(e, is_number, "number")
            return [BOOL_T]
        if op == "eq" or op == "neq":
            self.require_arity(e, 2, -1)
            self.check_equality(e)
            return [BOOL_T]
        if op == "not":
            self.require_arity(e, 1, 1)
            self.same_typed(e, is_bool, "boolean")
            return [BOOL_T]
        if op == "and" or op == "or":
            self.require_arity(e, 2, -1)
            self.same_typed(e, is_bool, "boolean")
            return [BOOL_T]
        if op in ("band", "bor", "bxor"):
            self.require_arity(e, 2, -1)
            return [self.same_typed(e, is_integer, "integer")]
        if op == "bnot":
            self.require_arity(e, 1, 1)
            return [self.same_typed(e, is_integer, "integer")]
        if op == "get":
            self.require_arity(e, 2, 2)
            return [self.check_get(e)]
        if op == "set":
            self.require_arity(e, 3, 3)
            self.check_set(e)
            return []
        if op == "push":
            self.require_arity(e, 2, 2)
            lt = self.single(ops[0])
            if not is_list(lt):
                raise self.error("push requires a list, got " + type_name(lt) + ".", ops[0].pos)
            assert isinstance(lt, BuiltinType)
            self.expect_assignable(ops[1], lt.params[0], "pushed item")
            return []
        if op == "append":
            self.require_arity(e, 2, 2)
            st = self.single(ops[0])
            if not is_slice(st):
                raise self.error("append requires a slice, got " + type_name(st) + ".", ops[0].pos)
            assert isinstance(st, BuiltinType)
            self.expect_assignable(ops[1], st.params[0], "appended item")
            return [st]
        if op == "slice":
            return [self.check_slice(e)]
        if op == "make":
            return [self.check_make(e)]
        if op == "len":
            self.require_arity(e, 1, 1)
            t = self.single(ops[0])
            if not (is_str(t) or is_list(t) or is_slice(t) or is_map(t) or is_chan(t) or isinstance(t, ArrayType)):
                raise self.error("len requires a string or collection, got " + type_name(t) + ".", ops[0].pos)
            return [INT_T]
        if op == "ref":
            self.require_arity(e, 1, 1)
            return [self.check_ref(e)]
        if op == "dr":
            self.require_arity(e, 1, 1)
            t = self.single(ops[0])
            if not is_pointer(t):
                raise self.error("dr requires a pointer, got " + type_name(t) + ".", ops[0].pos)
            assert isinstance(t, BuiltinType)
            return [t.params[0]]
        if op == "print":
            self.require_arity(e, 1, -1)
            for operand in ops:
                self.single(operand)
            return []
        if op == "println":
            for operand in ops:
                self.single(operand)
            return []
        if op == "prompt":
            for operand in ops:
                self.single(operand)
            return [STR_T]
        if op == "concat":
            self.require_arity(e, 2, -1)
            self.same_typed(e, is_str, "string")
            return [STR_T]
        if op == "istype":
            return self.check_istype(e)
        if op == "send" or op == "sr":
            self.require_arity(e, 2, 2)
            elem = self.channel_element(ops[0])
            self.expect_assignable(ops[1], elem, "sent value")
            return []
        if op == "rcv":
            self.require_arity(e, 1, 1)
            return [self.channel_element(ops[0])]
        if op in SIGNATURES:
            params, returns = SIGNATURES[op]
            self.require_arity(e, len(params), len(params))
            i = 0
            while i < len(params):
                t = self.single(ops[i])
                if not type_eq(t, params[i]):
                    raise self.error(
                        op + " operand " + str(i + 1) + " must be " + type_name(params[i]) + ", got " + type_name(t) + ".",
                        ops[i].pos,
                    )
                i += 1
            return list(returns)
        raise self.error("Unknown operator: " + op, e.pos)

    def check_equality(self, e: Operation) -> None:
        types: list[DataType] = []
        for operand in e.operands:
            types.append(self.single(operand))
        nils = 0
        for operand in e.operands:
            if isinstance(operand, NilLit):
                nils += 1
        if nils == len(e.operands):
            raise self.error(e.op + " operation cannot compare nil to nil.", e.pos)
        has_nil = nils > 0
        first: DataType | None = None
        i = 0
        while i < len(e.operands):
            operand = e.operands[i]
            t = types[i]
            i += 1
            if isinstance(operand, NilLit):
                continue
            if has_nil:
                if not is_nilable(t):
                    raise self.error(type_name(t) + " cannot be compared to nil.", operand.pos)
                continue
            if is_slice(t) or is_map(t) or isinstance(t, FunctionType):
                raise self.error("Slices, maps and functions can only be compared to nil.", operand.pos)
            if not is_comparable(t):
                raise self.error(type_name(t) + " cannot be compared: it holds a slice, map or function.", operand.pos)
            if first is None:
                first = t
            elif not type_eq(t, first):
                raise self.error(e.op + " operation has mismatched operand types.", operand.pos)

    def container_element(self, e: Operation, container: DataType, key: Expr) -> DataType:
        """Element type for container[key], checking the key."""
        if is_list(container) or is_slice(container) or isinstance(container, ArrayType):
            kt = self.single(key)
            if not is_integer(kt):
                raise self.error("Index must be an integer, got " + type_name(kt) + ".", key.pos)
            if isinstance(container, ArrayType):
                return container.element
            assert isinstance(container, BuiltinType)
            return container.params[0]
        if is_map(container):
            assert isinstance(container, BuiltinType)
            kt = self.single(key)
            if not self.assignable(key, kt, container.params[0]):
                raise self.error(
                    "Map key has wrong type: expected " + type_name(container.params[0]) + ", got " + type_name(kt) + ".",
                    key.pos,
                )
            return container.params[1]
        raise self.error(
            e.op + " requires a struct, list, slice, map or array, got " + type_name(container) + ".",
            e.operands[0].pos,
        )

    def check_get(self, e: Operation) -> DataType:
        container = self.single(e.operands[0])
        key = e.operands[1]
        st = struct_of(container)
        if st is not None:
            return self.check_member(e, st, key)
        return self.container_element(e, container, key)

    def check_member(self, e: Operation, st: StructType, key: Expr) -> DataType:
        name = _member_name(key)
        if name is None:
            raise self.error("Struct member must be named by an identifier.", key.pos)
        if name not in st.member_names:
            raise self.error("Struct " + st.name + " has no member named " + name + ".", key.pos)
        e.annotations["member"] = name
        return st.member_types[st.member_names.index(name)]

    def check_set(self, e: Operation) -> None:
        container = self.single(e.operands[0])
        key = e.operands[1]
        st = struct_of(container)
        if st is not None:
            elem = self.check_member(e, st, key)
        else:
            elem = self.container_element(e, container, key)
        self.expect_addressable(e.operands[0])
        self.expect_assignable(e.operands[2], elem, "set value")

    def expect_addressable(self, container: Expr) -> None:
        """Writing a member or array element needs container to be addressable."""
        t = container.types[0]
        if isinstance(t, (StructType, ArrayType)) and not _addressable(container):
            raise self.error(
                "Cannot write to a member or element of " + type_name(t) + ": it is not addressable.",
                container.pos,
            )

    def check_slice(self, e: Operation) -> DataType:
        self.require_arity(e, 3, 3)
        t = self.single(e.operands[0])
        for bound in e.operands[1:]:
            bt = self.single(bound)
            if not is_integer(bt):
                raise self.error("slice bounds must be integers.", bound.pos)
        if is_str(t) or is_slice(t):
            return t
        if isinstance(t, ArrayType):
            return builtin("S", [t.element])
        raise self.error("slice requires a string, slice or array, got " + type_name(t) + ".", e.operands[0].pos)

    def check_make(self, e: Operation) -> DataType:
        self.require_arity(e, 1, 2)
        tref = e.operands[0]
        if not isinstance(tref, TypeRef):
            raise self.error("make requires a type as its first operand.", tref.pos)
        t = resolve_type(tref.typ, self.pkg)
        tref.types = [t]
        if is_list(t) or is_slice(t):
            if len(e.operands) != 2:
                raise self.error("make of a list or slice requires a length.", e.pos)
        elif is_map(t):
            if len(e.operands) != 1:
                raise self.error("make of a map takes no length.", e.pos)
        elif not is_chan(t):
            raise self.error("make requires a list, slice, map or channel type.", tref.pos)
        if len(e.operands) == 2:
            nt = self.single(e.operands[1])
            if not is_integer(nt):
                raise self.error("make length must be an integer.", e.operands[1].pos)
        return t

    def check_ref(self, e: Operation) -> DataType:
        inner = e.operands[0]
        if isinstance(inner, Identifier):
            t = self.single(inner)
            if inner.annotations.get("kind") == "func":
                raise self.error("Cannot reference a function.", inner.pos)
            return builtin("P", [t])
        if isinstance(inner, Operation) and inner.op == "get":
            t = self.single(inner)
            container = inner.operands[0].types[0]
            if is_list(container) or is_map(container):
                raise self.error("Cannot reference an element of a list or map.", inner.pos)
            if not _addressable(inner):
                raise self.error("Cannot reference a member or element of a value that is not addressable.", inner.pos)
            return builtin("P", [t])
        raise self.error("ref requires a variable, struct member, or slice or array element.", inner.pos)

    def check_istype(self, e: Operation) -> list[DataType]:
        self.require_arity(e, 2, 2)
        tref = e.operands[0]
        if not isinstance(tref, TypeRef):
            raise self.error("istype requires a type as its first operand.", tref.pos)
        t = resolve_type(tref.typ, self.pkg)
        tref.types = [t]
        vt = self.single(e.operands[1])
        if not isinstance(vt, InterfaceType):
            raise self.error("istype requires an interface value, got " + type_name(vt) + ".", e.operands[1].pos)
        if not is_type(t, vt):
            raise self.error(type_name(t) + " does not implement " + vt.name + ".", tref.pos)
        return [t, BOOL_T]


# ============================================================
# PUBLIC API
# ============================================================


def check(pkg: Package, entry: bool = True) -> Package:
    """Type-check a built package. entry requires a valid main function."""
    checker = Checker(pkg)
    checker.check_package()
    if entry:
        _check_main(pkg)
    return pkg


def _check_main(pkg: Package) -> None:
    if "main" not in pkg.funcs or not pkg.owns(pkg.funcs["main"]):
        raise CheckError("Missing main function.", 1, 1)
    fn = pkg.funcs["main"]
    ft = pkg.func_types["main"]
    if len(fn.params) != 0 or (len(ft.returns) != 0 and not pkg.dynamic):
        raise CheckError(
            "main function must have no parameters and no return types.", fn.pos.line, fn.pos.col
        )
