#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from cmm_ast import Program
from cmm_context import CompilationContext
from cmm_diagnostics import Diagnostic
from cmm_symbols import Symbol
from cmm_types import Type


@dataclass
class AnalysisResult:
    """
    State of one compilation, passed by reference to every pass.

    Contains:
      - the parsed program (None when reading/lexing/parsing failed)
      - compilation context (cross-cutting compiler options)
      - global symbols, as left by name resolution
      - expression types computed by the type checker
      - whether a `main` function was declared
      - the function the code generator is currently emitting
      - diagnostics accumulated from all passes
    """
    program: Optional[Program] = None
    context: CompilationContext = field(default_factory=CompilationContext.default)
    filename: Optional[str] = None

    globals: Dict[str, Symbol] = field(default_factory=dict)

    # Expression types keyed by id(expr_node)
    expr_types: Dict[int, Type] = field(default_factory=dict)

    has_main: bool = False
    current_function: Optional[str] = None

    diagnostics: List[Diagnostic] = field(default_factory=list)

    def has_errors(self) -> bool:
        return any(d.kind == "error" for d in self.diagnostics)

    def has_warnings(self) -> bool:
        return any(d.kind == "warning" for d in self.diagnostics)

    def error_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.kind == "error")
