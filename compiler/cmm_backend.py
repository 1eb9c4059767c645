"""
C-- Code Generation Backend

Orchestrates code generation from a fully-analyzed C-- program.

The backend handles the "WHAT" and "WHEN" of code generation, while the
"HOW" (register conventions, push/pop protocol, frame set-up, directives)
is delegated to the AsmEmitter.

Responsibilities:
- Emit globals into the static data area and functions into the text area
- Lower expressions onto the evaluation stack, leaving exactly one value
- Lower control flow onto fresh labels and branches
- Compute addresses of variables and (nested) struct fields
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from typing import Dict, List, NoReturn, Optional, Tuple

from cmm_analysis import AnalysisResult
from cmm_asm_emitter import (
    AsmEmitter, SYSCALL_PRINT_INT, SYSCALL_PRINT_STRING, SYSCALL_READ_INT,
)
from cmm_ast import (
    Node, VarDecl, FnDecl, StructDecl, StmtList, Stmt, AssignStmt, PostIncStmt, PostDecStmt, ReadStmt, WriteStmt,
    IfStmt, IfElseStmt, WhileStmt, CallStmt, ReturnStmt, Exp, IntLit, StringLit, TrueLit, FalseLit, IdNode,
    DotAccessExp, AssignExp, CallExp, UnaryMinusExp, NotExp, BinaryExp, Resolution, ARITHMETIC_OPS, LOGICAL_OPS,
    RELATIONAL_OPS, EQUALITY_OPS,
)
from cmm_instructions import AsmItem, Imm, Indexed, LabelRef, FP, T0, T1, T2, V0, ZERO, render
from cmm_internal_error import raise_ice
from cmm_logger import log_debug, log_stage
from cmm_symbols import StorageSymbol, StructInstanceSymbol
from cmm_types import is_string

_ARITH_OPCODES = {"+": "add", "-": "sub", "*": "mul", "/": "div"}
_EQUALITY_OPCODES = {"==": "seq", "!=": "sne"}
_RELATIONAL_BRANCHES = {"<": "blt", ">": "bgt", "<=": "ble", ">=": "bge"}


def function_label(name: str) -> str:
    return "main" if name == "main" else f"_{name}"


def exit_label(name: str) -> str:
    # identifiers cannot contain '.', so this never clashes with a global
    return f"{function_label(name)}.exit"


def global_label(name: str) -> str:
    return f"_{name}"


@dataclass
class Backend:
    """
    Walks the analyzed AST and drives the emitter.

    Expects a program that passed name resolution and type checking
    without errors; a missing binding or frame layout is an internal error.
    """

    analysis: AnalysisResult

    # Target-specific emitter (handles all instruction emission)
    emitter: Optional[AsmEmitter] = None

    # Pooled string constants: literal text -> label
    _string_labels: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.emitter is None:
            self.emitter = AsmEmitter(emit_comments=self.analysis.context.emit_comments)

    def ice(self, message: str, node: Optional[Node] = None) -> NoReturn:
        raise_ice(message, self.analysis.filename, node)

    # ============================================================================
    # Entry points
    # ============================================================================

    def generate(self) -> List[AsmItem]:
        """Generate the instruction stream for the whole program."""
        program = self.analysis.program
        if program is None:
            self.ice("[ICE-1060] no program to generate code for")

        log_stage(self.analysis.context, "Generating code for", self.analysis.filename)
        for decl in program.decl_list.decls:
            if isinstance(decl, VarDecl):
                self._emit_global(decl)
            elif isinstance(decl, FnDecl):
                self._emit_function(decl)
            elif isinstance(decl, StructDecl):
                continue  # layout only, nothing to emit
            else:
                self.ice(f"[ICE-1040] unexpected top-level declaration {type(decl).__name__}", decl)
        return self.emitter.get_output()

    def generate_text(self) -> str:
        return render(self.generate())

    # ============================================================================
    # Declarations
    # ============================================================================

    def _emit_global(self, decl: VarDecl) -> None:
        sym = self._storage(decl.id)
        self.emitter.global_slot(global_label(sym.name), sym.size)

    def _emit_function(self, decl: FnDecl) -> None:
        name = decl.id.name
        if decl.frame is None:
            self.ice(f"[ICE-1062] function '{name}' has no frame layout", decl)
        log_debug(self.analysis.context, f"generating function '{name}'")

        self.analysis.current_function = name
        is_main = name == "main"
        self.emitter.function_entry(function_label(name), is_main)
        self.emitter.prologue(decl.frame.formals_size, decl.frame.locals_size)
        self._emit_stmt_list(decl.body.stmt_list)
        self.emitter.epilogue(exit_label(name), decl.frame.formals_size, is_main)
        self.analysis.current_function = None

    # ============================================================================
    # Statements
    # ============================================================================

    def _emit_stmt_list(self, stmt_list: StmtList) -> None:
        for stmt in stmt_list.stmts:
            self._emit_stmt(stmt)

    def _emit_stmt(self, stmt: Stmt) -> None:
        em = self.emitter

        if isinstance(stmt, AssignStmt):
            self._emit_exp(stmt.assign)
            em.pop(T0, comment="discard assignment value")

        elif isinstance(stmt, (PostIncStmt, PostDecStmt)):
            self._emit_address(stmt.exp)
            em.load_word(T1, Indexed(T0, 0))
            em.op3("addu" if isinstance(stmt, PostIncStmt) else "subu", T1, T1, Imm(1))
            em.store_word(T1, Indexed(T0, 0))

        elif isinstance(stmt, ReadStmt):
            em.syscall(SYSCALL_READ_INT, comment="read int")
            self._emit_address(stmt.exp)
            em.store_word(V0, Indexed(T0, 0))

        elif isinstance(stmt, WriteStmt):
            self._emit_exp(stmt.exp)
            em.pop(T0)
            t = self.analysis.expr_types.get(id(stmt.exp))
            if t is None:
                self.ice("[ICE-1066] write operand has no recorded type", stmt.exp)
            service = SYSCALL_PRINT_STRING if is_string(t) else SYSCALL_PRINT_INT
            em.print_value(service)

        elif isinstance(stmt, IfStmt):
            end = em.next_label()
            self._emit_condition(stmt.exp, end)
            self._emit_stmt_list(stmt.stmt_list)
            em.label(end)

        elif isinstance(stmt, IfElseStmt):
            else_label = em.next_label()
            end = em.next_label()
            self._emit_condition(stmt.exp, else_label)
            self._emit_stmt_list(stmt.then_stmts)
            em.branch(end)
            em.label(else_label)
            self._emit_stmt_list(stmt.else_stmts)
            em.label(end)

        elif isinstance(stmt, WhileStmt):
            top = em.next_label()
            end = em.next_label()
            em.label(top, comment="loop top")
            self._emit_condition(stmt.exp, end)
            self._emit_stmt_list(stmt.stmt_list)
            em.branch(top)
            em.label(end)

        elif isinstance(stmt, CallStmt):
            self._emit_exp(stmt.call)
            em.pop(T0, comment="discard return value")

        elif isinstance(stmt, ReturnStmt):
            if self.analysis.current_function is None:
                self.ice("[ICE-1050] return statement outside of a function", stmt)
            if stmt.exp is not None:
                self._emit_exp(stmt.exp)
                em.pop(V0, comment="return value")
            em.branch(exit_label(self.analysis.current_function))

        else:
            self.ice(f"[ICE-1040] unexpected statement {type(stmt).__name__}", stmt)

    def _emit_condition(self, cond: Exp, false_label: str) -> None:
        self._emit_exp(cond)
        self.emitter.pop(T0)
        self.emitter.branch_if_equal(T0, ZERO, false_label, comment="branch if false")

    # ============================================================================
    # Expressions
    # ============================================================================

    def _emit_exp(self, exp: Exp) -> None:
        """Emit code leaving exactly one value pushed on the stack."""
        em = self.emitter

        if isinstance(exp, IntLit):
            em.load_imm(T0, exp.value)
            em.push(T0)

        elif isinstance(exp, (TrueLit, FalseLit)):
            em.load_imm(T0, 1 if isinstance(exp, TrueLit) else 0)
            em.push(T0)

        elif isinstance(exp, StringLit):
            em.load_address(T0, LabelRef(self._string_label(exp.value)))
            em.push(T0)

        elif isinstance(exp, IdNode):
            sym = self._storage(exp)
            if isinstance(sym, StructInstanceSymbol):
                self.ice(f"[ICE-1063] struct '{exp.name}' used as a scalar value", exp)
            if sym.is_global:
                em.load_word(T0, LabelRef(global_label(sym.name)), comment=exp.name)
            else:
                em.load_word(T0, Indexed(FP, -sym.offset), comment=exp.name)
            em.push(T0)

        elif isinstance(exp, DotAccessExp):
            self._emit_address(exp)
            em.load_word(T0, Indexed(T0, 0))
            em.push(T0)

        elif isinstance(exp, AssignExp):
            self._emit_exp(exp.rhs)
            self._emit_address(exp.lhs)
            em.pop(T1)
            em.store_word(T1, Indexed(T0, 0))
            em.push(T1)

        elif isinstance(exp, CallExp):
            for arg in exp.args.exps:
                self._emit_exp(arg)
            self._require_bound(exp.id)
            em.call(function_label(exp.id.name))
            em.push(V0)

        elif isinstance(exp, UnaryMinusExp):
            self._emit_exp(exp.exp)
            em.pop(T0)
            em.op3("sub", T0, ZERO, T0)
            em.push(T0)

        elif isinstance(exp, NotExp):
            self._emit_exp(exp.exp)
            em.pop(T0)
            em.op3("xori", T0, T0, Imm(1))
            em.push(T0)

        elif isinstance(exp, BinaryExp):
            self._emit_binary(exp)

        else:
            self.ice(f"[ICE-1040] unexpected expression {type(exp).__name__}", exp)

    def _emit_binary(self, exp: BinaryExp) -> None:
        em = self.emitter
        # right operand first, so the left one ends on top of the stack
        self._emit_exp(exp.right)
        self._emit_exp(exp.left)
        em.pop(T0)
        em.pop(T1)

        op = exp.op
        if op in ARITHMETIC_OPS:
            em.op3(_ARITH_OPCODES[op], T0, T0, T1)
            em.push(T0)
        elif op in EQUALITY_OPS:
            em.op3(_EQUALITY_OPCODES[op], T0, T0, T1)
            em.push(T0)
        elif op in RELATIONAL_OPS:
            done = em.next_label()
            em.load_imm(T2, 1)
            em.branch_cond(_RELATIONAL_BRANCHES[op], T0, T1, done)
            em.load_imm(T2, 0)
            em.label(done)
            em.push(T2)
        elif op in LOGICAL_OPS:
            # Both operands are already evaluated; only the combine step is skipped.
            short = em.next_label()
            end = em.next_label()
            if op == "&&":
                em.branch_cond("beq", T0, ZERO, short)
                em.op3("and", T0, T0, T1)
            else:
                em.branch_cond("bne", T0, ZERO, short)
                em.op3("or", T0, T0, T1)
            em.push(T0)
            em.branch(end)
            em.label(short)
            em.push(T0)
            em.label(end)
        else:
            self.ice(f"[ICE-1041] unknown binary operator '{op}'", exp)

    # ============================================================================
    # Addresses
    # ============================================================================

    def _emit_address(self, exp: Exp) -> None:
        """Load the address of a location expression into $t0."""
        em = self.emitter
        root, offset = self._field_path(exp)
        sym = self._storage(root)
        if sym.is_global:
            em.load_address(T0, LabelRef(global_label(sym.name)), comment=f"&{root.name}")
        else:
            em.load_address(T0, Indexed(FP, -sym.offset), comment=f"&{root.name}")
        if offset:
            em.op3("addu", T0, T0, Imm(offset))

    def _field_path(self, exp: Exp) -> Tuple[IdNode, int]:
        """Root identifier of a location and the byte offset of the field it names."""
        offset = 0
        node = exp
        while isinstance(node, DotAccessExp):
            self._require_bound(node.id)
            if node.owner is None:
                self.ice("[ICE-1020] dot-access without a resolved struct", node)
            offset += node.owner.field_offsets[node.id.name]
            node = node.loc
        if not isinstance(node, IdNode):
            self.ice(f"[ICE-1020] location rooted at unexpected node kind {type(node).__name__}", node)
        return node, offset

    def _require_bound(self, id_node: IdNode) -> None:
        if id_node.resolution is not Resolution.BOUND:
            self.ice(f"[ICE-1030] identifier '{id_node.name}' has no resolved binding", id_node)

    def _storage(self, id_node: IdNode) -> StorageSymbol:
        self._require_bound(id_node)
        sym = id_node.sym
        if not isinstance(sym, StorageSymbol):
            self.ice(f"[ICE-1064] identifier '{id_node.name}' does not denote storage", id_node)
        if not sym.is_global and sym.offset is None:
            self.ice(f"[ICE-1065] variable '{id_node.name}' has no frame offset", id_node)
        return sym

    def _string_label(self, text: str) -> str:
        if self.analysis.context.pool_strings and text in self._string_labels:
            return self._string_labels[text]
        label = self.emitter.next_label()
        self.emitter.string_constant(label, text)
        self._string_labels[text] = label
        return label
