"""
Scope stack

Nested lexical scopes used by name resolution. Each level maps names to
symbols; the innermost level is searched first.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from enum import Enum, auto
from typing import Dict, Iterator, List, Optional, Tuple

from cmm_internal_error import InternalCompilerError
from cmm_symbols import Symbol


class DeclareOutcome(Enum):
    DECLARED = auto()
    DUPLICATE = auto()  # name already present in the innermost scope


class ScopeStack:
    """
    Stack of name -> Symbol mappings, innermost scope last in `_scopes`.

    Duplicates and missing names are ordinary outcomes returned to the
    caller. Operating on an empty stack is a pass sequencing bug and
    raises an InternalCompilerError.
    """

    def __init__(self) -> None:
        self._scopes: List[Dict[str, Symbol]] = []

    def __len__(self) -> int:
        return len(self._scopes)

    def enter_scope(self) -> None:
        self._scopes.append({})

    def exit_scope(self) -> Dict[str, Symbol]:
        if not self._scopes:
            raise InternalCompilerError("[ICE-1010] scope stack underflow")
        return self._scopes.pop()

    def declare(self, name: str, sym: Symbol) -> DeclareOutcome:
        scope = self._innermost("declare")
        if name in scope:
            return DeclareOutcome.DUPLICATE
        scope[name] = sym
        return DeclareOutcome.DECLARED

    def resolve_local(self, name: str) -> Optional[Symbol]:
        return self._innermost("resolve_local").get(name)

    def resolve_lexical(self, name: str) -> Optional[Symbol]:
        self._innermost("resolve_lexical")
        for scope in reversed(self._scopes):
            sym = scope.get(name)
            if sym is not None:
                return sym
        return None

    def resolve_global(self, name: str) -> Optional[Symbol]:
        """Look `name` up in the outermost scope only."""
        self._innermost("resolve_global")
        return self._scopes[0].get(name)

    def innermost_items(self) -> Iterator[Tuple[str, Symbol]]:
        return iter(self._innermost("innermost_items").items())

    def _innermost(self, op: str) -> Dict[str, Symbol]:
        if not self._scopes:
            raise InternalCompilerError(f"[ICE-1011] {op} on an empty scope stack")
        return self._scopes[-1]
