"""Pigeon semantic model builder: packages, structs, methods, implementors."""

from __future__ import annotations

from .ast import (
    Definition,
    FuncDef,
    GlobalDef,
    ImportDef,
    InterfaceDef,
    MethodDef,
    NativeImportDef,
    ParsedDataType,
    StructDef,
    Variable,
)
from .errors import PigeonError
from .types import (
    ANY_T,
    DataType,
    ArrayType,
    FunctionType,
    InterfaceType,
    StructType,
    array_type,
    builtin,
    function_type,
    implements_key,
    type_name,
    types_eq,
)


class BuildError(PigeonError):
    """Semantic error found while building a package."""


class Package:
    """The unit of compilation: one source file and everything it declares."""

    def __init__(
        self,
        path: str,
        prefix: str,
        definitions: list[Definition],
        dynamic: bool = False,
    ):
        self.path: str = path
        self.prefix: str = prefix
        self.definitions: list[Definition] = definitions
        self.dynamic: bool = dynamic
        self.globals: dict[str, GlobalDef] = {}
        self.global_types: dict[str, DataType] = {}
        self.types: dict[str, DataType] = {}
        self.struct_defs: dict[str, StructDef] = {}
        self.structs: dict[str, StructType] = {}
        self.funcs: dict[str, FuncDef] = {}
        self.func_types: dict[str, FunctionType] = {}
        self.methods: dict[tuple[str, str], MethodDef] = {}
        self.interfaces: dict[str, InterfaceType] = {}
        self.imports: list[ImportDef] = []
        self.native_imports: list[NativeImportDef] = []
        # imported packages by import path, filled in by the compiler driver
        self.packages: dict[str, Package] = {}
        self.valid_breakpoints: set[int] = set()
        self.code: str = ""

    def __repr__(self) -> str:
        return "Package(" + repr(self.path) + ", prefix=" + repr(self.prefix) + ")"

    def owns(self, d: object) -> bool:
        return getattr(d, "package", None) is self

    def summary(self) -> dict[str, object]:
        """Plain-data view of the package for tests and --stop-at output."""
        structs: dict[str, object] = {}
        for name, st in self.structs.items():
            members: dict[str, str] = {}
            i = 0
            while i < len(st.member_names):
                members[st.member_names[i]] = type_name(st.member_types[i])
                i += 1
            methods: dict[str, str] = {}
            for mname, ft in st.methods.items():
                methods[mname] = type_name(ft)
            implements: dict[str, bool] = {}
            for iname, ok in st.implements.items():
                implements[iname] = ok
            structs[name] = {"members": members, "methods": methods, "implements": implements}
        interfaces: dict[str, object] = {}
        for name, iface in self.interfaces.items():
            sigs: dict[str, str] = {}
            for mname, ft in iface.methods.items():
                sigs[mname] = type_name(ft)
            interfaces[name] = {"methods": sigs}
        funcs: dict[str, str] = {}
        for name, ft in self.func_types.items():
            funcs[name] = type_name(ft)
        globals_: dict[str, str] = {}
        for name, gt in self.global_types.items():
            globals_[name] = type_name(gt)
        breakpoints = sorted(self.valid_breakpoints)
        return {
            "path": self.path,
            "prefix": self.prefix,
            "structs": structs,
            "interfaces": interfaces,
            "funcs": funcs,
            "globals": globals_,
            "imports": list(self.packages.keys()),
            "breakpoints": breakpoints,
        }


# ============================================================
# TYPE RESOLUTION
# ============================================================


def resolve_type(parsed: ParsedDataType, pkg: Package) -> DataType:
    """Resolve a parsed type against pkg, caching the result on the node."""
    dt = _resolve(parsed, pkg)
    parsed.resolved = dt
    return dt


def _err(parsed: ParsedDataType, msg: str) -> BuildError:
    return BuildError(msg, parsed.pos.line, parsed.pos.col)


def _resolve(parsed: ParsedDataType, pkg: Package) -> DataType:
    name = parsed.name
    if name == "A":
        if len(parsed.params) != 2 or len(parsed.returns) != 0:
            raise _err(parsed, "Array type must have two type parameters.")
        size_name = parsed.params[1].name
        if not size_name.isdigit():
            raise _err(parsed, "Array type must have integer as second type parameter.")
        element = resolve_type(parsed.params[0], pkg)
        return array_type(int(size_name), element)
    params: list[DataType] = []
    for p in parsed.params:
        params.append(resolve_type(p, pkg))
    returns: list[DataType] = []
    for r in parsed.returns:
        returns.append(resolve_type(r, pkg))
    if name == "Fn":
        return function_type(params, returns)
    if len(returns) > 0:
        raise _err(parsed, "Type " + name + " should not have return types.")
    if name == "L":
        if len(params) != 1:
            raise _err(parsed, "List type has wrong number of type parameters.")
        return builtin(name, params)
    if name == "S":
        if len(params) != 1:
            raise _err(parsed, "Slice type has wrong number of type parameters.")
        return builtin(name, params)
    if name == "Ch":
        if len(params) != 1:
            raise _err(parsed, "Channel type has wrong number of type parameters.")
        return builtin(name, params)
    if name == "M":
        if len(params) != 2:
            raise _err(parsed, "Map type has wrong number of type parameters.")
        return builtin(name, params)
    if name == "P":
        if len(params) != 1:
            raise _err(parsed, "Pointer type has wrong number of type parameters.")
        return builtin(name, params)
    if name in ("I", "F", "Byte", "Str", "Bool", "Err", "Any"):
        if len(params) != 0:
            raise _err(parsed, "Type " + name + " should not have any type parameters.")
        return builtin(name)
    if name == "Type":
        raise _err(parsed, "Type cannot be used as a value type.")
    if name not in pkg.types:
        raise _err(parsed, "Unknown type: " + name)
    if len(params) > 0:
        raise _err(parsed, "Type " + name + " should not have any type parameters.")
    return pkg.types[name]


def resolve_function_type(
    params: list[Variable], returns: list[ParsedDataType], pkg: Package
) -> FunctionType:
    """Resolve a header, annotating each parameter with its DataType."""
    param_types: list[DataType] = []
    for p in params:
        if pkg.dynamic or p.typ is None:
            p.dtype = ANY_T
        else:
            p.dtype = resolve_type(p.typ, pkg)
        param_types.append(p.dtype)
    return_types: list[DataType] = []
    if pkg.dynamic:
        return_types.append(ANY_T)
    else:
        for r in returns:
            return_types.append(resolve_type(r, pkg))
    return function_type(param_types, return_types)


def _contained_struct(t: DataType) -> StructType | None:
    """The struct held by value in a member of type t, if any."""
    while isinstance(t, ArrayType):
        t = t.element
    if isinstance(t, StructType):
        return t
    return None


# ============================================================
# BUILDER
# ============================================================


class Builder:
    def __init__(self, pkg: Package):
        self.pkg: Package = pkg
        self.lower_names: dict[str, str] = {}

    def error(self, msg: str, d: object) -> BuildError:
        pos = getattr(d, "pos")
        return BuildError(msg, pos.line, pos.col)

    def run(self) -> Package:
        self.populate()
        if not self.pkg.dynamic:
            self.resolve_imports()
            self.declare_types()
            self.materialize_structs()
            self.check_recursion()
            self.resolve_interfaces()
            self.attach_methods()
            self.compute_implementors()
        self.resolve_signatures()
        return self.pkg

    # ── Namespace ────────────────────────────────────────────

    def claim(self, name: str, d: object) -> None:
        key = name.lower()
        if key in self.lower_names:
            raise self.error("Duplicate top-level name: " + name, d)
        self.lower_names[key] = name

    def populate(self) -> None:
        pkg = self.pkg
        for d in pkg.definitions:
            d.package = pkg
            if isinstance(d, FuncDef):
                self.claim(d.name, d)
                pkg.funcs[d.name] = d
            elif isinstance(d, GlobalDef):
                self.claim(d.name, d)
                pkg.globals[d.name] = d
            elif isinstance(d, StructDef):
                self.claim(d.name, d)
                pkg.struct_defs[d.name] = d
            elif isinstance(d, InterfaceDef):
                self.claim(d.name, d)
            elif isinstance(d, MethodDef):
                key = (d.name, _receiver_name(d))
                if key in pkg.methods:
                    raise self.error(
                        "Duplicate method " + d.name + " on " + _receiver_name(d), d
                    )
                pkg.methods[key] = d
            elif isinstance(d, ImportDef):
                pkg.imports.append(d)
                for imported in d.names:
                    self.claim(imported.alias, imported)
            elif isinstance(d, NativeImportDef):
                pkg.native_imports.append(d)

    def resolve_imports(self) -> None:
        pkg = self.pkg
        for imp in pkg.imports:
            if imp.path not in pkg.packages:
                raise self.error("Import not loaded: " + imp.path, imp)
            other = pkg.packages[imp.path]
            for imported in imp.names:
                name = imported.name
                alias = imported.alias
                if name in other.funcs and other.owns(other.funcs[name]):
                    pkg.funcs[alias] = other.funcs[name]
                    pkg.func_types[alias] = other.func_types[name]
                elif name in other.globals and other.owns(other.globals[name]):
                    pkg.globals[alias] = other.globals[name]
                    pkg.global_types[alias] = other.global_types[name]
                elif name in other.structs:
                    pkg.types[alias] = other.structs[name]
                elif name in other.interfaces:
                    pkg.types[alias] = other.interfaces[name]
                else:
                    raise self.error(
                        "Imported name " + name + " is not defined in " + imp.path, imported
                    )

    # ── Structs and interfaces ───────────────────────────────

    def declare_types(self) -> None:
        pkg = self.pkg
        for d in pkg.definitions:
            if isinstance(d, StructDef):
                st = StructType(
                    kind="struct",
                    name=d.name,
                    member_names=[],
                    member_types=[],
                    implements={},
                    methods={},
                    native_code=d.native_code,
                    package=pkg,
                )
                pkg.structs[d.name] = st
                pkg.types[d.name] = st
            elif isinstance(d, InterfaceDef):
                iface = InterfaceType(kind="interface", name=d.name, methods={}, package=pkg)
                pkg.interfaces[d.name] = iface
                pkg.types[d.name] = iface

    def materialize_structs(self) -> None:
        pkg = self.pkg
        for name, sd in pkg.struct_defs.items():
            st = pkg.structs[name]
            for member in sd.members:
                if member.name in st.member_names:
                    raise self.error("Duplicate member name: " + member.name, member)
                assert member.typ is not None
                member.dtype = resolve_type(member.typ, pkg)
                st.member_names.append(member.name)
                st.member_types.append(member.dtype)

    def check_recursion(self) -> None:
        """Reject structs that contain themselves by value.

        Only struct and array-of-struct members extend the search; pointers,
        lists, slices, maps, channels and functions break the chain.
        """
        pkg = self.pkg
        verified: set[int] = set()
        for name in pkg.struct_defs:
            self.visit_struct(pkg.structs[name], [pkg.structs[name]], verified)

    def visit_struct(
        self, st: StructType, stack: list[StructType], verified: set[int]
    ) -> None:
        if id(st) in verified:
            return
        for t in st.member_types:
            inner = _contained_struct(t)
            if inner is None or inner.package is not self.pkg:
                continue
            for outer in stack:
                if outer is inner:
                    raise self.error(
                        "Struct cannot recursively contain itself.",
                        self.pkg.struct_defs[inner.name],
                    )
            self.visit_struct(inner, stack + [inner], verified)
        verified.add(id(st))

    def resolve_interfaces(self) -> None:
        pkg = self.pkg
        for d in pkg.definitions:
            if not isinstance(d, InterfaceDef):
                continue
            iface = pkg.interfaces[d.name]
            for sig in d.methods:
                if sig.name in iface.methods:
                    raise self.error("Duplicate method in interface: " + sig.name, sig)
                params: list[DataType] = []
                for p in sig.param_types:
                    params.append(resolve_type(p, pkg))
                returns: list[DataType] = []
                for r in sig.returns:
                    returns.append(resolve_type(r, pkg))
                iface.methods[sig.name] = function_type(params, returns)

    def attach_methods(self) -> None:
        pkg = self.pkg
        for meth in pkg.methods.values():
            receiver = meth.receiver
            assert receiver.typ is not None
            dt = resolve_type(receiver.typ, pkg)
            if not isinstance(dt, StructType):
                raise self.error("Method has non-struct receiver.", meth)
            if dt.package is not pkg:
                raise self.error(
                    "Method receiver must be a struct defined in this package.", meth
                )
            if meth.name in dt.member_names:
                raise self.error(
                    "Method " + meth.name + " has the same name as a member of " + dt.name,
                    meth,
                )
            receiver.dtype = dt
            dt.methods[meth.name] = resolve_function_type(meth.params, meth.returns, pkg)

    def compute_implementors(self) -> None:
        """Struct implements interface iff every signature matches exactly."""
        structs: list[StructType] = []
        interfaces: list[InterfaceType] = []
        for t in self.pkg.types.values():
            if isinstance(t, StructType):
                structs.append(t)
            elif isinstance(t, InterfaceType):
                interfaces.append(t)
        for st in structs:
            for iface in interfaces:
                ok = True
                for mname, sig in iface.methods.items():
                    ft = st.methods.get(mname)
                    if ft is None:
                        ok = False
                        break
                    if not (types_eq(ft.params, sig.params) and types_eq(ft.returns, sig.returns)):
                        ok = False
                        break
                st.implements[implements_key(st, iface)] = ok

    # ── Signatures ───────────────────────────────────────────

    def resolve_signatures(self) -> None:
        pkg = self.pkg
        for name, fn in pkg.funcs.items():
            if pkg.owns(fn):
                pkg.func_types[name] = resolve_function_type(fn.params, fn.returns, pkg)
        for name, g in pkg.globals.items():
            if not pkg.owns(g):
                continue
            if pkg.dynamic or g.typ is None:
                pkg.global_types[name] = ANY_T
            else:
                pkg.global_types[name] = resolve_type(g.typ, pkg)


def _receiver_name(m: MethodDef) -> str:
    if m.receiver.typ is None:
        return ""
    return m.receiver.typ.name


# ============================================================
# PUBLIC API
# ============================================================


def build(pkg: Package) -> Package:
    """Populate pkg from its definitions. Imported packages must be built first."""
    return Builder(pkg).run()

