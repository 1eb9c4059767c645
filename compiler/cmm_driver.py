#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from pathlib import Path
from typing import List, Optional

from cmm_analysis import AnalysisResult
from cmm_ast import Program
from cmm_backend import Backend
from cmm_context import CompilationContext
from cmm_diagnostics import Diagnostic, diag_from_token
from cmm_instructions import AsmItem
from cmm_lexer import LexerError, Lexer, Token
from cmm_logger import log_info, log_debug, log_stage
from cmm_name_resolver import NameResolver
from cmm_parser import Parser, ParseError
from cmm_type_checker import TypeChecker


class CmmDriver:
    """
    Pipeline driver:
      - read file
      - tokenize
      - parse
      - resolve names
      - type check
      - generate code (only for programs without errors)

    Entry points:
      - analyze_file(path) / analyze_source(text): front end up to type checking.
      - generate(result): instruction stream for an analyzed program.
      - compile_source(text): both, returning the rendered assembly or None.
    """

    def __init__(self, context: CompilationContext | None = None):
        self.context = context or CompilationContext.default()

    # --- Public API ---

    def analyze_file(self, path: str | Path) -> AnalysisResult:
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            result = AnalysisResult(context=self.context, filename=str(path))
            result.diagnostics.append(
                Diagnostic(kind="error", message=f"[DRV-0010] cannot read source file: {e}")
            )
            return result
        return self.analyze_source(text, filename=str(path))

    def analyze_source(self, text: str, filename: Optional[str] = None) -> AnalysisResult:
        """
        Front-end pipeline:

          1. Lex and parse the program.
          2. Run NameResolver (scopes, bindings, frame layouts).
          3. Run TypeChecker (expression types, statement rules, `main`).

        Returns an AnalysisResult with every diagnostic of every pass.
        On a syntax error the program is None and nothing else runs.
        """
        log_info(self.context, f"Starting analysis of '{filename or '<input>'}'")
        result = AnalysisResult(context=self.context, filename=filename)

        log_stage(self.context, "Parsing", filename)
        try:
            result.program = self.parse_source(text, filename)
        except LexerError as e:
            result.diagnostics.append(
                Diagnostic(
                    kind="error",
                    message=e.message,
                    filename=filename,
                    line=e.line,
                    column=e.column,
                )
            )
            return result
        except ParseError as e:
            result.diagnostics.append(
                diag_from_token(kind="error", message=e.message, filename=e.filename, token=e.token)
            )
            return result

        log_stage(self.context, "Resolving names")
        nr = NameResolver(result)
        nr.resolve()
        log_debug(self.context, f"Name resolution found {len(result.globals)} global symbol(s)")

        log_stage(self.context, "Type checking")
        TypeChecker(result).check()

        log_info(self.context, f"Analysis complete: {len(result.diagnostics)} total diagnostic(s), "
                               f"{result.error_count()} error(s)")
        return result

    def generate(self, result: AnalysisResult) -> Optional[List[AsmItem]]:
        """Instruction stream for `result`, or None when analysis reported errors."""
        if result.program is None or result.has_errors():
            log_info(self.context, "Skipping code generation: program has errors")
            return None
        return Backend(result).generate()

    def compile_source(self, text: str, filename: Optional[str] = None) -> tuple[AnalysisResult, Optional[str]]:
        result = self.analyze_source(text, filename)
        if result.program is None or result.has_errors():
            return result, None
        return result, Backend(result).generate_text()

    # --- Front-end helpers ---

    def tokenize(self, text: str, filename: Optional[str] = None) -> List[Token]:
        log_debug(self.context, f"Lexing {filename or '<input>'}")
        tokens = Lexer(text, filename=filename or "<input>").tokenize()
        log_debug(self.context, f"Lexed {len(tokens)} token(s)")
        return tokens

    def parse_source(self, text: str, filename: Optional[str] = None) -> Program:
        tokens = self.tokenize(text, filename)
        log_debug(self.context, f"Parsing {filename or '<input>'}")
        program = Parser(tokens, filename).parse_program()
        log_debug(self.context, f"Parsed {len(program.decl_list.decls)} top-level declaration(s)")
        return program
