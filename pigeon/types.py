"""Pigeon semantic types: the DataType sum and the relations over it."""

from __future__ import annotations

from dataclasses import dataclass, field


# Built-in type names
TY_INT: str = "I"
TY_FLOAT: str = "F"
TY_BYTE: str = "Byte"
TY_BOOL: str = "Bool"
TY_STR: str = "Str"
TY_ERR: str = "Err"
TY_ANY: str = "Any"
TY_LIST: str = "L"
TY_SLICE: str = "S"
TY_CHAN: str = "Ch"
TY_MAP: str = "M"
TY_PTR: str = "P"
TY_FN: str = "Fn"
TY_ARRAY: str = "A"

NUMBER_NAMES: set[str] = {TY_INT, TY_FLOAT, TY_BYTE}

INTEGER_NAMES: set[str] = {TY_INT, TY_BYTE}

NILABLE_NAMES: set[str] = {TY_PTR, TY_LIST, TY_SLICE, TY_MAP, TY_CHAN, TY_ERR, TY_ANY}


@dataclass
class DataType:
    kind: str


@dataclass
class BuiltinType(DataType):
    """I F Byte Bool Str Err Any, and the parametric L S Ch M P."""

    name: str
    params: list[DataType]


@dataclass
class ArrayType(DataType):
    size: int
    element: DataType


@dataclass
class FunctionType(DataType):
    params: list[DataType]
    returns: list[DataType]


@dataclass(eq=False)
class InterfaceType(DataType):
    """Nominal: two interfaces are the same type only if they are the same object."""

    name: str
    methods: dict[str, FunctionType]
    package: object = field(default=None, repr=False)


@dataclass(eq=False)
class StructType(DataType):
    """A materialized struct. implements is keyed by interface name, prefixed
    with the owning package's prefix when the interface lives elsewhere."""

    name: str
    member_names: list[str]
    member_types: list[DataType]
    implements: dict[str, bool]
    methods: dict[str, FunctionType]
    native_code: str
    package: object = field(default=None, repr=False)


def builtin(name: str, params: list[DataType] | None = None) -> BuiltinType:
    return BuiltinType(kind="builtin", name=name, params=params if params is not None else [])


def function_type(params: list[DataType], returns: list[DataType]) -> FunctionType:
    return FunctionType(kind="fn", params=params, returns=returns)


def array_type(size: int, element: DataType) -> ArrayType:
    return ArrayType(kind="array", size=size, element=element)


# Scalar singletons
INT_T: BuiltinType = builtin(TY_INT)
FLOAT_T: BuiltinType = builtin(TY_FLOAT)
BYTE_T: BuiltinType = builtin(TY_BYTE)
BOOL_T: BuiltinType = builtin(TY_BOOL)
STR_T: BuiltinType = builtin(TY_STR)
ERR_T: BuiltinType = builtin(TY_ERR)
ANY_T: BuiltinType = builtin(TY_ANY)


# ============================================================
# TYPE EQUALITY
# ============================================================


def type_eq(a: DataType, b: DataType) -> bool:
    """Deep structural equality; identity for structs and interfaces."""
    if a.kind != b.kind:
        return False
    if isinstance(a, BuiltinType) and isinstance(b, BuiltinType):
        return a.name == b.name and types_eq(a.params, b.params)
    if isinstance(a, ArrayType) and isinstance(b, ArrayType):
        return a.size == b.size and type_eq(a.element, b.element)
    if isinstance(a, FunctionType) and isinstance(b, FunctionType):
        return types_eq(a.params, b.params) and types_eq(a.returns, b.returns)
    return a is b


def types_eq(a: list[DataType], b: list[DataType]) -> bool:
    if len(a) != len(b):
        return False
    i = 0
    while i < len(a):
        if not type_eq(a[i], b[i]):
            return False
        i += 1
    return True


# ============================================================
# ASSIGNABILITY
# ============================================================


def implements_key(st: StructType, iface: InterfaceType) -> str:
    """Key under which st records that it implements iface."""
    if iface.package is None or iface.package is st.package:
        return iface.name
    return getattr(iface.package, "prefix", "") + "." + iface.name


def struct_implements(st: StructType, iface: InterfaceType) -> bool:
    return st.implements.get(implements_key(st, iface), False)


def is_nilable(t: DataType) -> bool:
    if isinstance(t, BuiltinType):
        return t.name in NILABLE_NAMES
    return isinstance(t, (FunctionType, InterfaceType))


def is_type(child: DataType, parent: DataType) -> bool:
    """True if a value of type child may be stored where parent is expected."""
    if type_eq(child, parent):
        return True
    if isinstance(child, StructType) and isinstance(parent, InterfaceType):
        return struct_implements(child, parent)
    return is_any(parent)


# ============================================================
# PREDICATES
# ============================================================


def is_builtin(t: DataType, name: str) -> bool:
    return isinstance(t, BuiltinType) and t.name == name


def is_number(t: DataType) -> bool:
    return isinstance(t, BuiltinType) and t.name in NUMBER_NAMES


def is_integer(t: DataType) -> bool:
    return isinstance(t, BuiltinType) and t.name in INTEGER_NAMES


def is_any(t: DataType) -> bool:
    return is_builtin(t, TY_ANY)


def is_str(t: DataType) -> bool:
    return is_builtin(t, TY_STR)


def is_bool(t: DataType) -> bool:
    return is_builtin(t, TY_BOOL)


def is_list(t: DataType) -> bool:
    return is_builtin(t, TY_LIST)


def is_slice(t: DataType) -> bool:
    return is_builtin(t, TY_SLICE)


def is_map(t: DataType) -> bool:
    return is_builtin(t, TY_MAP)


def is_chan(t: DataType) -> bool:
    return is_builtin(t, TY_CHAN)


def is_pointer(t: DataType) -> bool:
    return is_builtin(t, TY_PTR)


def struct_of(t: DataType) -> StructType | None:
    """The struct reached by member access on t (directly or through P)."""
    if isinstance(t, StructType):
        return t
    if is_pointer(t) and isinstance(t, BuiltinType) and isinstance(t.params[0], StructType):
        return t.params[0]
    return None


def is_comparable(t: DataType) -> bool:
    """Go == applies to t: no slice, map or function, however deeply nested by value."""
    if is_slice(t) or is_map(t) or isinstance(t, FunctionType):
        return False
    if isinstance(t, ArrayType):
        return is_comparable(t.element)
    if isinstance(t, StructType):
        for member in t.member_types:
            if not is_comparable(member):
                return False
    return True


# ============================================================
# TYPE NAMES
# ============================================================


def type_name(t: DataType) -> str:
    """Pigeon-syntax name for a type, for error messages and summaries."""
    if isinstance(t, BuiltinType):
        if len(t.params) == 0:
            return t.name
        parts: list[str] = []
        for p in t.params:
            parts.append(type_name(p))
        return t.name + "<" + " ".join(parts) + ">"
    if isinstance(t, ArrayType):
        return "A<" + type_name(t.element) + " " + str(t.size) + ">"
    if isinstance(t, FunctionType):
        parts2: list[str] = []
        for p in t.params:
            parts2.append(type_name(p))
        if len(t.returns) > 0:
            parts2.append(":")
            for r in t.returns:
                parts2.append(type_name(r))
        if len(parts2) == 0:
            return "Fn"
        return "Fn<" + " ".join(parts2) + ">"
    if isinstance(t, (StructType, InterfaceType)):
        return t.name
    return t.kind
