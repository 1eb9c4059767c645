#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass
from typing import Dict, Optional

# ========================================
# The semantic type system for C--.
# ========================================

CMM_PRIMITIVE_TYPES = ("int", "bool", "void", "string")


class Type:
    """
    Base class for all semantic types.
    Used only as a common marker; concrete types are dataclasses below.
    """
    pass


@dataclass(frozen=True)
class BuiltinType(Type):
    name: str  # "int", "bool", "void" or "string"


@dataclass(frozen=True)
class StructType(Type):
    """Type of a struct instance, e.g. the `p` in `struct Point p;`."""
    name: str


@dataclass(frozen=True)
class FuncType(Type):
    """Type of an identifier bound to a function."""
    pass


@dataclass(frozen=True)
class StructDefType(Type):
    """Type of an identifier bound to a struct name."""
    pass


@dataclass(frozen=True, eq=False)
class ErrorType(Type):
    """
    Sentinel for an already-reported error.

    Never equal to anything, itself included, so that any comparison
    involving it fails without a second report: callers test `is_error`
    first and stay silent.
    """

    def __eq__(self, other: object) -> bool:
        return False

    def __ne__(self, other: object) -> bool:
        return True

    def __hash__(self) -> int:
        return id(self)


# --- canonical instances ---

_BUILTIN_CACHE: Dict[str, BuiltinType] = {}
_FUNC_TYPE = FuncType()
_STRUCT_DEF_TYPE = StructDefType()
_ERROR_TYPE = ErrorType()


def get_builtin_type(name: str) -> BuiltinType:
    """
    Get (or create) a canonical BuiltinType for a given name.
    """
    if name not in _BUILTIN_CACHE:
        _BUILTIN_CACHE[name] = BuiltinType(name)
    return _BUILTIN_CACHE[name]


def int_type() -> BuiltinType:
    return get_builtin_type("int")


def bool_type() -> BuiltinType:
    return get_builtin_type("bool")


def void_type() -> BuiltinType:
    return get_builtin_type("void")


def string_type() -> BuiltinType:
    return get_builtin_type("string")


def func_type() -> FuncType:
    return _FUNC_TYPE


def struct_def_type() -> StructDefType:
    return _STRUCT_DEF_TYPE


def error_type() -> ErrorType:
    return _ERROR_TYPE


# --- predicates ---

def _is_builtin(t: Type, name: str) -> bool:
    return isinstance(t, BuiltinType) and t.name == name


def is_int(t: Type) -> bool:
    return _is_builtin(t, "int")


def is_bool(t: Type) -> bool:
    return _is_builtin(t, "bool")


def is_void(t: Type) -> bool:
    return _is_builtin(t, "void")


def is_string(t: Type) -> bool:
    return _is_builtin(t, "string")


def is_error(t: Type) -> bool:
    return isinstance(t, ErrorType)


def is_func(t: Type) -> bool:
    return isinstance(t, FuncType)


def is_struct_def(t: Type) -> bool:
    return isinstance(t, StructDefType)


def is_struct(t: Type) -> bool:
    return isinstance(t, StructType)


# --- type stringification for debugging ---

def format_type(t: Optional[Type]) -> str:
    if t is None:
        return "<none>"
    elif isinstance(t, BuiltinType):
        return t.name
    elif isinstance(t, StructType):
        return f"struct {t.name}"
    elif isinstance(t, FuncType):
        return "function"
    elif isinstance(t, StructDefType):
        return "struct definition"
    elif isinstance(t, ErrorType):
        return "<error>"
    else:
        # Fallback (should not happen)
        return repr(t)
