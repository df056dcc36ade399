"""Plain-data views of tokens and parsed definitions for dotpath assertions."""

from pigeon.ast import (
    Definition,
    FuncDef,
    GlobalDef,
    InterfaceDef,
    MethodDef,
    StructDef,
    Variable,
    definition_kind,
    definition_name,
    type_to_str,
)
from pigeon.tokens import Token


def describe_token(t: Token) -> dict:
    return {"type": t.type, "value": t.value, "line": t.line, "col": t.col}


def describe_variables(variables: list[Variable]) -> str:
    """name Type pairs joined by commas; untyped (dynamic) names stand alone."""
    parts: list[str] = []
    for v in variables:
        if v.typ is None:
            parts.append(v.name)
        else:
            parts.append(v.name + " " + type_to_str(v.typ))
    return ", ".join(parts)


def _signature(info: dict, d: FuncDef | MethodDef) -> None:
    info["params"] = describe_variables(d.params)
    info["returns"] = ", ".join(type_to_str(r) for r in d.returns)
    info["body"] = ", ".join(type(s).__name__ for s in d.body)


def describe_definition(d: Definition) -> dict:
    info: dict = {"kind": definition_kind(d), "name": definition_name(d)}
    if isinstance(d, FuncDef):
        _signature(info, d)
    elif isinstance(d, MethodDef):
        info["receiver"] = describe_variables([d.receiver])
        _signature(info, d)
    elif isinstance(d, StructDef):
        info["members"] = describe_variables(d.members)
    elif isinstance(d, InterfaceDef):
        info["methods"] = ", ".join(sig.name for sig in d.methods)
    elif isinstance(d, GlobalDef):
        info["type"] = "" if d.typ is None else type_to_str(d.typ)
    return info
