#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, List, Optional

from cmm_ast import Node
from cmm_types import Type, StructType, format_type, func_type, struct_def_type

# Width in bytes of one stack or data slot.
SLOT_SIZE = 4


class SymbolKind(Enum):
    VARIABLE = auto()
    FUNCTION = auto()
    STRUCT_INSTANCE = auto()
    STRUCT_DEFINITION = auto()


@dataclass(eq=False)
class Symbol:
    """
    A declared entity, created by name resolution and referenced by the
    identifier nodes bound to it.
    """
    name: str
    node: Optional[Node]  # AST node that declared this symbol

    @property
    def kind(self) -> SymbolKind:
        raise NotImplementedError

    @property
    def type(self) -> Type:
        raise NotImplementedError


@dataclass(eq=False)
class StorageSymbol(Symbol):
    """
    Common storage data for variables and struct instances.

    `offset` is the displacement below the frame pointer of the lowest
    word of the storage; `None` for globals and struct fields.
    """
    offset: Optional[int] = None
    is_global: bool = False

    @property
    def size(self) -> int:
        return SLOT_SIZE


@dataclass(eq=False)
class VarSymbol(StorageSymbol):
    var_type: Type = None

    @property
    def kind(self) -> SymbolKind:
        return SymbolKind.VARIABLE

    @property
    def type(self) -> Type:
        return self.var_type


@dataclass(eq=False)
class FnSymbol(Symbol):
    return_type: Type = None
    num_params: int = 0
    # Filled in once the formals have been processed.
    param_types: List[Type] = field(default_factory=list)

    @property
    def kind(self) -> SymbolKind:
        return SymbolKind.FUNCTION

    @property
    def type(self) -> Type:
        return func_type()


@dataclass(eq=False)
class StructDefSymbol(Symbol):
    fields: Dict[str, Symbol] = field(default_factory=dict)
    field_offsets: Dict[str, int] = field(default_factory=dict)
    size: int = 0

    @property
    def kind(self) -> SymbolKind:
        return SymbolKind.STRUCT_DEFINITION

    @property
    def type(self) -> Type:
        return struct_def_type()


@dataclass(eq=False)
class StructInstanceSymbol(StorageSymbol):
    struct_def: StructDefSymbol = None

    @property
    def kind(self) -> SymbolKind:
        return SymbolKind.STRUCT_INSTANCE

    @property
    def type(self) -> Type:
        return StructType(self.struct_def.name)

    @property
    def size(self) -> int:
        return self.struct_def.size


@dataclass
class FrameLayout:
    """Frame areas of one function, in bytes."""
    formals_size: int = 0
    locals_size: int = 0


def format_symbol(sym: Symbol) -> str:
    if isinstance(sym, FnSymbol):
        params = ",".join(format_type(t) for t in sym.param_types)
        return f"{params}->{format_type(sym.return_type)}"
    if isinstance(sym, StructDefSymbol):
        body = "; ".join(f"{name}: {format_symbol(f)}" for name, f in sym.fields.items())
        return f"struct {{{body}}} (size {sym.size})"
    if isinstance(sym, StorageSymbol):
        where = "global" if sym.is_global else (f"fp-{sym.offset}" if sym.offset is not None else "field")
        return f"{format_type(sym.type)} [{where}]"
    return repr(sym)
