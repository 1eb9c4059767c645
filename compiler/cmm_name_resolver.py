#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass
from typing import Dict, List, Optional

from cmm_analysis import AnalysisResult
from cmm_ast import (
    Node, Program, DeclList, StmtList, Decl, VarDecl, FormalDecl, FnDecl, StructDecl, TypeNode, IntTypeNode,
    BoolTypeNode, VoidTypeNode, StructTypeNode, Stmt, AssignStmt, PostIncStmt, PostDecStmt, ReadStmt, WriteStmt,
    IfStmt, IfElseStmt, WhileStmt, CallStmt, ReturnStmt, Exp, IntLit, StringLit, TrueLit, FalseLit, IdNode,
    DotAccessExp, AssignExp, CallExp, UnaryMinusExp, NotExp, BinaryExp, Resolution,
)
from cmm_diagnostics import diag_from_node
from cmm_internal_error import raise_ice
from cmm_logger import log_debug
from cmm_scopes import DeclareOutcome, ScopeStack
from cmm_symbols import (
    SLOT_SIZE, Symbol, StorageSymbol, VarSymbol, FnSymbol, StructDefSymbol, StructInstanceSymbol, FrameLayout,
)
from cmm_types import Type, StructType, error_type, get_builtin_type


def type_of_type_node(node: TypeNode) -> Type:
    """Semantic type named by a type node."""
    if isinstance(node, IntTypeNode):
        return get_builtin_type("int")
    if isinstance(node, BoolTypeNode):
        return get_builtin_type("bool")
    if isinstance(node, VoidTypeNode):
        return get_builtin_type("void")
    if isinstance(node, StructTypeNode):
        return StructType(node.id.name)
    raise_ice(f"[ICE-1040] unknown type node {type(node).__name__}", node=node)


@dataclass
class _FrameAllocator:
    """
    Assigns frame offsets within one function.

    Formal i lives at fp-4*i; the return address and the caller's frame
    pointer follow, then locals at increasing offsets.
    """
    formals_size: int = 0
    locals_size: int = 0

    def allocate_formal(self) -> int:
        offset = self.formals_size
        self.formals_size += SLOT_SIZE
        return offset

    def allocate_local(self, size: int) -> int:
        # offset of the lowest word of the storage
        offset = self.formals_size + 2 * SLOT_SIZE + self.locals_size + size - SLOT_SIZE
        self.locals_size += size
        return offset

    def layout(self) -> FrameLayout:
        return FrameLayout(formals_size=self.formals_size, locals_size=self.locals_size)


class NameResolver:
    """
    Binds every identifier occurrence to its declaration.

    - Maintains a ScopeStack: the global scope, one scope per function
      (formals and body locals) and one per if/else/while block.
    - Reports void variables, unknown struct types, duplicates within a
      scope, undeclared identifiers and bad dot-accesses.
    - Bad declarations are not inserted, so later uses report "undeclared"
      once instead of cascading.
    - Assigns frame offsets and records each function's FrameLayout.
    """

    def __init__(self, analysis: AnalysisResult):
        self.analysis = analysis
        self.filename = analysis.filename
        self.diagnostics = analysis.diagnostics
        self.scopes = ScopeStack()
        self._frame: Optional[_FrameAllocator] = None

    def resolve(self) -> Dict[str, Symbol]:
        """
        Main entry point: resolve the whole program and return its global symbols.
        """
        program = self.analysis.program
        assert isinstance(program, Program)

        self.scopes.enter_scope()
        for decl in program.decl_list.decls:
            self._resolve_top_level_decl(decl)
        globals_ = self.scopes.exit_scope()
        if len(self.scopes) != 0:
            raise_ice("[ICE-1012] unbalanced scopes after name resolution", self.filename, program)

        self.analysis.globals = dict(globals_)
        return self.analysis.globals

    def _error(self, node: Optional[Node], message: str) -> None:
        self.diagnostics.append(diag_from_node("error", message, filename=self.filename, node=node))

    # ============================================================================
    # Declarations
    # ============================================================================

    def _resolve_top_level_decl(self, decl: Decl) -> None:
        if isinstance(decl, VarDecl):
            sym = self._declare_var(decl, self.scopes, "[RES-0030] multiply declared identifier")
            if sym is not None:
                sym.is_global = True
        elif isinstance(decl, FnDecl):
            self._resolve_fn_decl(decl)
        elif isinstance(decl, StructDecl):
            self._resolve_struct_decl(decl)
        else:
            raise_ice(f"[ICE-1040] unexpected top-level declaration {type(decl).__name__}", self.filename, decl)

    def _storage_symbol_for(self, decl: Decl) -> Optional[StorageSymbol]:
        """
        Build the symbol a variable-like declaration introduces, or report
        why it cannot be declared and return None.
        """
        assert isinstance(decl, (VarDecl, FormalDecl))
        name = decl.id.name
        type_node = decl.type

        if isinstance(type_node, VoidTypeNode):
            self._error(decl.id, "[RES-0010] non-function declared void")
            return None

        if isinstance(type_node, StructTypeNode):
            found = self.scopes.resolve_global(type_node.id.name)
            if not isinstance(found, StructDefSymbol):
                self._error(type_node.id, f"[RES-0020] invalid name of struct type '{type_node.id.name}'")
                type_node.id.mark_unresolved()
                return None
            type_node.id.bind(found)
            return StructInstanceSymbol(name, decl, struct_def=found)

        return VarSymbol(name, decl, var_type=type_of_type_node(type_node))

    def _declare_var(self, decl: Decl, scopes: ScopeStack, duplicate_message: str) -> Optional[StorageSymbol]:
        assert isinstance(decl, (VarDecl, FormalDecl))
        name = decl.id.name
        sym = self._storage_symbol_for(decl)

        if sym is None:
            if scopes.resolve_local(name) is not None:
                self._error(decl.id, f"{duplicate_message} '{name}'")
            decl.id.mark_unresolved()
            return None

        if scopes.declare(name, sym) is DeclareOutcome.DUPLICATE:
            self._error(decl.id, f"{duplicate_message} '{name}'")
            decl.id.mark_unresolved()
            return None

        decl.id.bind(sym)
        return sym

    def _declare_local(self, decl: Decl) -> None:
        if self._frame is None:
            raise_ice("[ICE-1013] local declaration outside of a function", self.filename, decl)
        sym = self._declare_var(decl, self.scopes, "[RES-0030] multiply declared identifier")
        if sym is not None:
            sym.offset = self._frame.allocate_local(sym.size)
            log_debug(self.analysis.context, f"local '{sym.name}' at fp-{sym.offset}")

    def _resolve_decl_list(self, decl_list: DeclList) -> None:
        for decl in decl_list.decls:
            self._declare_local(decl)

    def _resolve_fn_decl(self, decl: FnDecl) -> None:
        name = decl.id.name
        if name == "main":
            self.analysis.has_main = True

        formals = decl.formals.formals
        fn_sym = FnSymbol(name, decl, return_type=type_of_type_node(decl.return_type), num_params=len(formals))

        # Declared in the enclosing scope first so the body can call it recursively.
        if self.scopes.declare(name, fn_sym) is DeclareOutcome.DUPLICATE:
            self._error(decl.id, f"[RES-0030] multiply declared identifier '{name}'")
            decl.id.mark_unresolved()
        else:
            decl.id.bind(fn_sym)

        log_debug(self.analysis.context, f"resolving function '{name}'")
        self.scopes.enter_scope()
        self._frame = _FrameAllocator()

        param_types: List[Type] = []
        for formal in formals:
            offset = self._frame.allocate_formal()
            sym = self._declare_var(formal, self.scopes, "[RES-0030] multiply declared identifier")
            if sym is not None:
                sym.offset = offset
            if isinstance(formal.type, VoidTypeNode):
                param_types.append(error_type())
            else:
                param_types.append(type_of_type_node(formal.type))
        fn_sym.param_types = param_types

        self._resolve_decl_list(decl.body.decl_list)
        self._resolve_stmt_list(decl.body.stmt_list)

        self.scopes.exit_scope()
        decl.frame = self._frame.layout()
        self._frame = None

    def _resolve_struct_decl(self, decl: StructDecl) -> None:
        name = decl.id.name
        is_duplicate = self.scopes.resolve_local(name) is not None
        if is_duplicate:
            self._error(decl.id, f"[RES-0030] multiply declared identifier '{name}'")

        # Fields live in their own isolated scope; struct types they name
        # are still looked up among the globals.
        field_scopes = ScopeStack()
        field_scopes.enter_scope()
        field_offsets: Dict[str, int] = {}
        size = 0
        for field_decl in decl.decl_list.decls:
            sym = self._declare_var(field_decl, field_scopes, "[RES-0031] multiply declared struct field")
            if sym is not None:
                field_offsets[sym.name] = size
                size += sym.size
        fields = field_scopes.exit_scope()

        if is_duplicate:
            decl.id.mark_unresolved()
            return

        struct_sym = StructDefSymbol(name, decl, fields=dict(fields), field_offsets=field_offsets, size=size)
        self.scopes.declare(name, struct_sym)
        decl.id.bind(struct_sym)
        log_debug(self.analysis.context, f"struct '{name}' has size {size}")

    # ============================================================================
    # Statements
    # ============================================================================

    def _resolve_stmt_list(self, stmt_list: StmtList) -> None:
        for stmt in stmt_list.stmts:
            self._resolve_stmt(stmt)

    def _resolve_block(self, decl_list: DeclList, stmt_list: StmtList) -> None:
        self.scopes.enter_scope()
        self._resolve_decl_list(decl_list)
        self._resolve_stmt_list(stmt_list)
        self.scopes.exit_scope()

    def _resolve_stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, AssignStmt):
            self._resolve_exp(stmt.assign)
        elif isinstance(stmt, (PostIncStmt, PostDecStmt, ReadStmt, WriteStmt)):
            self._resolve_exp(stmt.exp)
        elif isinstance(stmt, IfStmt):
            self._resolve_exp(stmt.exp)
            self._resolve_block(stmt.decl_list, stmt.stmt_list)
        elif isinstance(stmt, IfElseStmt):
            self._resolve_exp(stmt.exp)
            self._resolve_block(stmt.then_decls, stmt.then_stmts)
            self._resolve_block(stmt.else_decls, stmt.else_stmts)
        elif isinstance(stmt, WhileStmt):
            self._resolve_exp(stmt.exp)
            self._resolve_block(stmt.decl_list, stmt.stmt_list)
        elif isinstance(stmt, CallStmt):
            self._resolve_exp(stmt.call)
        elif isinstance(stmt, ReturnStmt):
            if stmt.exp is not None:
                self._resolve_exp(stmt.exp)
        else:
            raise_ice(f"[ICE-1040] unexpected statement {type(stmt).__name__}", self.filename, stmt)

    # ============================================================================
    # Expressions
    # ============================================================================

    def _resolve_exp(self, exp: Exp) -> None:
        if isinstance(exp, (IntLit, StringLit, TrueLit, FalseLit)):
            return
        if isinstance(exp, IdNode):
            sym = self.scopes.resolve_lexical(exp.name)
            if sym is None:
                self._error(exp, f"[RES-0040] undeclared identifier '{exp.name}'")
                exp.mark_unresolved()
            else:
                exp.bind(sym)
        elif isinstance(exp, DotAccessExp):
            self._resolve_dot_access(exp)
        elif isinstance(exp, AssignExp):
            self._resolve_exp(exp.lhs)
            self._resolve_exp(exp.rhs)
        elif isinstance(exp, CallExp):
            self._resolve_exp(exp.id)
            for arg in exp.args.exps:
                self._resolve_exp(arg)
        elif isinstance(exp, (UnaryMinusExp, NotExp)):
            self._resolve_exp(exp.exp)
        elif isinstance(exp, BinaryExp):
            self._resolve_exp(exp.left)
            self._resolve_exp(exp.right)
        else:
            raise_ice(f"[ICE-1040] unexpected expression {type(exp).__name__}", self.filename, exp)

    def _resolve_dot_access(self, exp: DotAccessExp) -> None:
        """
        Resolve `loc.field` against the field table of the struct `loc` denotes.

        A failure anywhere in the chain marks every enclosing link bad
        without further reports.
        """
        exp.owner = exp.struct_def = None
        exp.bad = False
        loc = exp.loc
        self._resolve_exp(loc)

        struct_def: Optional[StructDefSymbol] = None
        if isinstance(loc, IdNode):
            if loc.resolution is Resolution.UNRESOLVED:
                exp.bad = True
            elif isinstance(loc.sym, StructInstanceSymbol):
                struct_def = loc.sym.struct_def
            else:
                self._error(loc, "[RES-0050] dot-access of non-struct type")
                exp.bad = True
        elif isinstance(loc, DotAccessExp):
            if loc.bad:
                exp.bad = True
            elif loc.struct_def is not None:
                struct_def = loc.struct_def
            else:
                self._error(loc.id, "[RES-0050] dot-access of non-struct type")
                exp.bad = True
        else:
            raise_ice(f"[ICE-1020] dot-access on unexpected node kind {type(loc).__name__}", self.filename, loc)

        if exp.bad:
            exp.id.mark_unresolved()
            return

        field_sym = struct_def.fields.get(exp.id.name)
        if field_sym is None:
            self._error(exp.id, f"[RES-0060] invalid struct field name '{exp.id.name}'")
            exp.bad = True
            exp.id.mark_unresolved()
            return

        exp.owner = struct_def
        exp.id.bind(field_sym)
        if isinstance(field_sym, StructInstanceSymbol):
            exp.struct_def = field_sym.struct_def
