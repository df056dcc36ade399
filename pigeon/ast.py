"""Pigeon AST: parse-time node definitions."""

from __future__ import annotations

from dataclasses import dataclass, field


# ============================================================
# Annotation type alias (not a runtime construct, just for brevity)
# ============================================================

Ann = dict[str, bool | int | str]


# ============================================================
# POSITION
# ============================================================


@dataclass
class Pos:
    """Source position, 1-indexed."""

    line: int
    col: int


# ============================================================
# TYPES (parse-time, unresolved)
# ============================================================


@dataclass
class ParsedDataType:
    """Name<Params... : Returns...> as written in source."""

    pos: Pos
    name: str
    params: list[ParsedDataType]
    returns: list[ParsedDataType]
    resolved: object = field(default=None, init=False, repr=False, compare=False)


@dataclass
class Variable:
    """A named, typed binding: parameter, local, member, or loop variable.

    typ is None only in the dynamic dialect.
    """

    pos: Pos
    name: str
    typ: ParsedDataType | None
    dtype: object = field(default=None, init=False, repr=False, compare=False)


# ============================================================
# DEFINITIONS
# ============================================================


@dataclass
class Definition:
    """Base for all top-level definitions."""

    pos: Pos
    package: object = field(default=None, init=False, repr=False, compare=False)


@dataclass
class ImportedName:
    """name [alias] line inside an import block."""

    pos: Pos
    name: str
    alias: str


@dataclass
class ImportDef(Definition):
    """import "path" followed by imported names."""

    path: str
    names: list[ImportedName]


@dataclass
class NativeImportDef(Definition):
    """nativeimport "go/path" alias."""

    path: str
    alias: str


@dataclass
class StructDef(Definition):
    """struct Name with members; nativestruct adds a verbatim blob."""

    name: str
    members: list[Variable]
    native_code: str


@dataclass
class Signature:
    """Interface method line: name ParamTypes : ReturnTypes."""

    pos: Pos
    name: str
    param_types: list[ParsedDataType]
    returns: list[ParsedDataType]


@dataclass
class InterfaceDef(Definition):
    """interface Name with method signatures."""

    name: str
    methods: list[Signature]


@dataclass
class FuncDef(Definition):
    """func Name params : returns. native_code is set for nativefunc."""

    name: str
    params: list[Variable]
    returns: list[ParsedDataType]
    body: list[Stmt]
    native_code: str | None = None


@dataclass
class MethodDef(Definition):
    """method name receiver params : returns."""

    name: str
    receiver: Variable
    params: list[Variable]
    returns: list[ParsedDataType]
    body: list[Stmt]


@dataclass
class GlobalDef(Definition):
    """global name Type EXPR."""

    name: str
    typ: ParsedDataType | None
    value: Expr


# ============================================================
# STATEMENTS
# ============================================================


@dataclass
class Stmt:
    """Base for all statements."""

    pos: Pos


@dataclass
class Locals(Stmt):
    """locals (name Type)*."""

    variables: list[Variable]


@dataclass
class LocalFunc(Stmt):
    """localfunc name params : returns, closing over enclosing locals."""

    name: str
    params: list[Variable]
    returns: list[ParsedDataType]
    body: list[Stmt]
    dtype: object = field(default=None, init=False, repr=False, compare=False)


@dataclass
class ElseifClause:
    pos: Pos
    cond: Expr
    body: list[Stmt]


@dataclass
class If(Stmt):
    cond: Expr
    body: list[Stmt]
    elseifs: list[ElseifClause]
    else_body: list[Stmt] | None


@dataclass
class While(Stmt):
    cond: Expr
    body: list[Stmt]


@dataclass
class Foreach(Stmt):
    """foreach idx Type val Type collection."""

    index: Variable
    val: Variable
    collection: Expr
    body: list[Stmt]


@dataclass
class Forinc(Stmt):
    """forinc / fordec idx Type start end; dec counts down from start-1 to end."""

    index: Variable
    start: Expr
    end: Expr
    dec: bool
    body: list[Stmt]


@dataclass
class Case:
    pos: Pos
    var: Variable
    body: list[Stmt]


@dataclass
class Typeswitch(Stmt):
    """typeswitch EXPR with case children and optional default [name]."""

    value: Expr
    cases: list[Case]
    default_name: str | None
    default_body: list[Stmt] | None


@dataclass
class SendClause:
    """sending CHANNEL VALUE."""

    pos: Pos
    channel: Expr
    value: Expr
    body: list[Stmt]


@dataclass
class RcvClause:
    """rcving name Type CHANNEL."""

    pos: Pos
    var: Variable
    channel: Expr
    body: list[Stmt]


@dataclass
class Select(Stmt):
    clauses: list[SendClause | RcvClause]
    default_body: list[Stmt] | None


@dataclass
class Assignment(Stmt):
    """as TARGETS VALUE."""

    targets: list[Expr]
    value: Expr


@dataclass
class Return(Stmt):
    values: list[Expr]


@dataclass
class Break(Stmt):
    pass


@dataclass
class Continue(Stmt):
    pass


@dataclass
class Go(Stmt):
    call: Expr


@dataclass
class ExprStmt(Stmt):
    expr: Expr


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass
class Expr:
    """Base for all expressions.

    types is filled by the checker with the DataTypes the expression yields.
    """

    pos: Pos
    types: list = field(default_factory=list, init=False, repr=False, compare=False)
    annotations: Ann = field(default_factory=dict, init=False, repr=False, compare=False)


@dataclass
class Identifier(Expr):
    name: str


@dataclass
class NumberLit(Expr):
    raw: str
    is_float: bool


@dataclass
class StringLit(Expr):
    """String literal. value is decoded; raw keeps the source text."""

    raw: str
    value: str
    multiline: bool


@dataclass
class BoolLit(Expr):
    value: bool


@dataclass
class NilLit(Expr):
    pass


@dataclass
class Operation(Expr):
    """(op operands...)."""

    op: str
    operands: list[Expr]


@dataclass
class FunctionCall(Expr):
    callee: Expr
    args: list[Expr]


@dataclass
class MethodCall(Expr):
    """(.name receiver args...)."""

    name: str
    receiver: Expr
    args: list[Expr]


@dataclass
class TypeExpression(Expr):
    """(Type args...): constructs a value of the named type."""

    typ: ParsedDataType
    args: list[Expr]


@dataclass
class TypeRef(Expr):
    """A type written in value position, e.g. the first operand of istype."""

    typ: ParsedDataType


# ============================================================
# SUMMARIES
# ============================================================


def definition_name(d: Definition) -> str:
    if isinstance(d, (StructDef, InterfaceDef, FuncDef, MethodDef, GlobalDef)):
        return d.name
    if isinstance(d, NativeImportDef):
        return d.alias
    if isinstance(d, ImportDef):
        return d.path
    return ""


def definition_kind(d: Definition) -> str:
    if isinstance(d, StructDef):
        if d.native_code != "":
            return "nativestruct"
        return "struct"
    if isinstance(d, InterfaceDef):
        return "interface"
    if isinstance(d, FuncDef):
        if d.native_code is not None:
            return "nativefunc"
        return "func"
    if isinstance(d, MethodDef):
        return "method"
    if isinstance(d, GlobalDef):
        return "global"
    if isinstance(d, NativeImportDef):
        return "nativeimport"
    return "import"


def type_to_str(t: ParsedDataType) -> str:
    """Render a parsed type back to Pigeon syntax."""
    if len(t.params) == 0 and len(t.returns) == 0:
        return t.name
    parts: list[str] = []
    for p in t.params:
        parts.append(type_to_str(p))
    if len(t.returns) > 0:
        parts.append(":")
        for r in t.returns:
            parts.append(type_to_str(r))
    return t.name + "<" + " ".join(parts) + ">"
