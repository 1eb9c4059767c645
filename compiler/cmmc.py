#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import argparse
from pathlib import Path
from typing import Dict, List

from cmm_analysis import AnalysisResult
from cmm_ast import FnDecl
from cmm_ast_printer import format_program
from cmm_backend import Backend
from cmm_context import CompilationContext, LogLevel
from cmm_diagnostics import Diagnostic
from cmm_driver import CmmDriver
from cmm_instructions import render
from cmm_internal_error import InternalCompilerError
from cmm_lexer import LexerError, TokenKind
from cmm_logger import log_info, log_error
from cmm_parser import ParseError
from cmm_symbols import format_symbol
from cmm_unparser import unparse


def _load_file_lines(path: str, cache: Dict[str, List[str]]) -> List[str]:
    if path not in cache:
        text = Path(path).read_text(encoding="utf-8")
        cache[path] = text.splitlines()
    return cache[path]


def print_diagnostics(result: AnalysisResult, context: CompilationContext) -> None:
    file_cache: Dict[str, List[str]] = {}

    for diag in result.diagnostics:
        print_diagnostic_with_snippet(diag, file_cache, context)


def print_diagnostic_with_snippet(diag: Diagnostic, file_cache: Dict[str, List[str]],
                                  context: CompilationContext = None) -> None:
    # First line: header
    log_error(context, diag.format())

    if not diag.filename or not diag.line:
        return

    try:
        lines = _load_file_lines(diag.filename, file_cache)
    except OSError:
        # Can't read file; fall back to header only
        return

    line_idx = diag.line - 1
    if not (0 <= line_idx < len(lines)):
        return

    src_line = lines[line_idx]

    # Pretty "N | ..." formatting (calculate width so multi-digit line numbers align)
    width = max(5, len(str(diag.line)))
    gutter = f"{diag.line:>{width}} | "

    log_error(context, gutter + src_line)

    if diag.column is None:
        return

    # Determine caret span (simple case: same line)
    start_col = max(1, diag.column)
    if diag.end_line is None or diag.end_column is None:
        end_col = start_col
    else:
        if diag.end_line == diag.line:
            end_col = max(start_col, diag.end_column)
        else:
            end_col = len(src_line) + 1

    caret_width = max(1, end_col - start_col)
    caret_prefix = " " * width + " | " + " " * (start_col - 1)
    carets = "^" * caret_width
    log_error(context, caret_prefix + carets)


def build_compilation_context(args: argparse.Namespace) -> CompilationContext:
    """Build a CompilationContext from command-line arguments."""
    log_rich_format = getattr(args, 'log', False)

    # Convert verbosity count to LogLevel
    verbosity = getattr(args, 'verbosity', 0)
    if verbosity >= 3:
        log_level = LogLevel.DEBUG
    elif verbosity >= 1:
        log_level = LogLevel.INFO
    else:
        log_level = LogLevel.ERROR

    return CompilationContext(
        emit_comments=not getattr(args, 'no_comments', False),
        pool_strings=getattr(args, 'pool_strings', False),
        log_rich_format=log_rich_format,
        log_level=log_level,
    )


def _run_analysis(args):
    """Run the analysis pipeline, returning (result, context, exit_code)."""
    context = build_compilation_context(args)
    driver = CmmDriver(context=context)
    try:
        result = driver.analyze_file(args.source)
    except InternalCompilerError as e:
        log_error(context, e.format())
        return None, context, 1
    print_diagnostics(result, context=context)
    exit_code = 1 if (result.program is None or result.has_errors()) else 0
    return result, context, exit_code


def cmd_check(args: argparse.Namespace) -> int:
    _, _, exit_code = _run_analysis(args)
    return exit_code


def cmd_codegen(args: argparse.Namespace) -> int:
    """Generate stack-machine assembly for a program."""
    result, context, exit_code = _run_analysis(args)
    if exit_code != 0:
        return exit_code

    backend = Backend(result)
    try:
        asm = render(backend.generate())
    except InternalCompilerError as e:
        log_error(context, e.format())
        return 1

    # Write to output file or stdout
    if args.output:
        Path(args.output).write_text(asm)
        log_info(context, f"Wrote assembly to {args.output}")
    else:
        print(asm, end="")

    return 0


def _parse_only(args: argparse.Namespace):
    context = build_compilation_context(args)
    driver = CmmDriver(context=context)
    path = Path(args.source)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        log_error(context, f"error: [CMC-0010] cannot read {path}: {e}")
        return None, context
    try:
        return driver.parse_source(text, filename=str(path)), context
    except LexerError as e:
        log_error(context, f"{path}:{e.line}:{e.column}: error: {e.message}")
    except ParseError as e:
        where = f"{path}:{e.token.line}:{e.token.column}" if e.token is not None else str(path)
        log_error(context, f"{where}: error: {e.message}")
    return None, context


def cmd_ast(args: argparse.Namespace) -> int:
    """Pretty-print the parsed AST."""
    program, _ = _parse_only(args)
    if program is None:
        return 1
    print(format_program(program))
    return 0


def cmd_unparse(args: argparse.Namespace) -> int:
    """Print the program back as normalized, fully parenthesized source."""
    program, _ = _parse_only(args)
    if program is None:
        return 1
    print(unparse(program), end="")
    return 0


def cmd_tok(args: argparse.Namespace) -> int:
    """Dump lexer tokens."""
    context = build_compilation_context(args)
    driver = CmmDriver(context=context)
    path = Path(args.source)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        log_error(context, f"error: [CMC-0010] cannot read {path}: {e}")
        return 1

    try:
        tokens = driver.tokenize(text, filename=str(path))
    except LexerError as e:
        log_error(context, f"{path}:{e.line}:{e.column}: error: {e.message}")
        return 1

    for tok in tokens:
        if not args.include_eof and tok.kind is TokenKind.EOF:
            continue
        # Format: file:line:col: KIND  'text'
        print(
            f"{path}:{tok.line}:{tok.column}:\t"
            f"{tok.kind.name:<12} {tok.text!r}"
        )
    return 0


def cmd_sym(args: argparse.Namespace) -> int:
    """Dump the global symbol table and the frame layout of each function."""
    result, _, _ = _run_analysis(args)
    if result is None or result.program is None:
        return 1

    print("globals:")
    if result.globals:
        for name in sorted(result.globals.keys()):
            sym = result.globals[name]
            print(f"  {sym.kind.name:<18} {name}: {format_symbol(sym)}")
    else:
        print("  <none>")

    print("frames:")
    any_frames = False
    for decl in result.program.decl_list.decls:
        if isinstance(decl, FnDecl) and decl.frame is not None:
            any_frames = True
            print(f"  {decl.id.name}: formals={decl.frame.formals_size} locals={decl.frame.locals_size}")
    if not any_frames:
        print("  <none>")

    return 0


def _add_source_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("source", help="C-- source file")


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(prog="cmmc", description="C-- compiler")
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    parser.add_argument("-v", "--verbose",
                        action='count',
                        default=0,
                        dest='verbosity',
                        help="Increase verbosity: -v=INFO, -vvv=DEBUG")
    parser.add_argument("-l", "--log",
                        action='store_true',
                        default=False,
                        help="Enable rich log formatting (timestamps, levels)")

    ###########################
    # check command
    ###########################
    p_check = subparsers.add_parser("check", help="Parse and analyze a program", aliases=["analyze"])
    _add_source_arg(p_check)
    p_check.set_defaults(func=cmd_check)

    ###########################
    # codegen command
    ###########################
    p_gen = subparsers.add_parser("codegen", help="Generate assembly", aliases=["gen"])
    p_gen.add_argument("--output", "-o", help="Output assembly file (default: stdout)")
    p_gen.add_argument("--no-comments", action="store_true",
                       help="Do not annotate emitted instructions with comments")
    p_gen.add_argument("--pool-strings", action="store_true",
                       help="Share one static constant between identical string literals")
    _add_source_arg(p_gen)
    p_gen.set_defaults(func=cmd_codegen)

    ###########################
    # tok command
    ###########################
    p_tok = subparsers.add_parser("tok", help="Dump lexer tokens", aliases=["tokens"])
    p_tok.add_argument("--include-eof", "-I", action="store_true",
                       help="Include the EOF token in the output")
    _add_source_arg(p_tok)
    p_tok.set_defaults(func=cmd_tok)

    ###########################
    # ast command
    ###########################
    p_ast = subparsers.add_parser("ast", help="Pretty-print the parsed AST")
    _add_source_arg(p_ast)
    p_ast.set_defaults(func=cmd_ast)

    ###########################
    # unparse command
    ###########################
    p_unparse = subparsers.add_parser("unparse", help="Print the program as normalized source")
    _add_source_arg(p_unparse)
    p_unparse.set_defaults(func=cmd_unparse)

    ###########################
    # sym command
    ###########################
    p_sym = subparsers.add_parser("sym", help="Dump global symbols and frame layouts", aliases=["symbols"])
    _add_source_arg(p_sym)
    p_sym.set_defaults(func=cmd_sym)

    args = parser.parse_args(argv)

    rc = args.func(args)
    raise SystemExit(rc)


if __name__ == "__main__":
    main()
