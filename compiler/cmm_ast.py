#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from cmm_symbols import FrameLayout, StructDefSymbol, Symbol


# ==========================
# AST definitions
# ==========================


@dataclass
class Span:
    start_line: int
    start_column: int
    end_line: int
    end_column: int


@dataclass
class Node:
    span: Optional[Span] = field(default=None, repr=False, compare=False, kw_only=True)


# Node categories: plain marker bases, concrete nodes are dataclasses.

class Decl(Node):
    pass


class TypeNode(Node):
    pass


class Stmt(Node):
    pass


class Exp(Node):
    pass


ARITHMETIC_OPS = ("+", "-", "*", "/")
LOGICAL_OPS = ("&&", "||")
RELATIONAL_OPS = ("<", ">", "<=", ">=")
EQUALITY_OPS = ("==", "!=")


class Resolution(Enum):
    """State of an identifier's binding slot."""
    PENDING = auto()     # name resolution has not visited the node
    BOUND = auto()       # `sym` holds the declaration's symbol
    UNRESOLVED = auto()  # a diagnostic was reported; `sym` stays empty


# --- identifiers ---

@dataclass
class IdNode(Exp):
    name: str
    sym: Optional[Symbol] = field(default=None, repr=False, compare=False)
    resolution: Resolution = field(default=Resolution.PENDING, repr=False, compare=False)

    def bind(self, sym: Symbol) -> None:
        self.sym = sym
        self.resolution = Resolution.BOUND

    def mark_unresolved(self) -> None:
        self.sym = None
        self.resolution = Resolution.UNRESOLVED


# --- types ---

@dataclass
class IntTypeNode(TypeNode):
    pass


@dataclass
class BoolTypeNode(TypeNode):
    pass


@dataclass
class VoidTypeNode(TypeNode):
    pass


@dataclass
class StructTypeNode(TypeNode):
    id: IdNode


# --- lists ---

@dataclass
class DeclList(Node):
    decls: List[Decl]


@dataclass
class FormalsList(Node):
    formals: List[FormalDecl]


@dataclass
class StmtList(Node):
    stmts: List[Stmt]


@dataclass
class ExpList(Node):
    exps: List[Exp]


@dataclass
class FnBody(Node):
    decl_list: DeclList
    stmt_list: StmtList


@dataclass
class Program(Node):
    decl_list: DeclList
    filename: Optional[str] = field(default=None, compare=False)


# --- declarations ---

@dataclass
class VarDecl(Decl):
    type: TypeNode
    id: IdNode


@dataclass
class FormalDecl(Decl):
    type: TypeNode
    id: IdNode


@dataclass
class FnDecl(Decl):
    return_type: TypeNode
    id: IdNode
    formals: FormalsList
    body: FnBody
    # Filled in by name resolution
    frame: Optional[FrameLayout] = field(default=None, repr=False, compare=False)


@dataclass
class StructDecl(Decl):
    id: IdNode
    decl_list: DeclList


# --- statements ---

@dataclass
class AssignStmt(Stmt):
    assign: AssignExp


@dataclass
class PostIncStmt(Stmt):
    exp: Exp


@dataclass
class PostDecStmt(Stmt):
    exp: Exp


@dataclass
class ReadStmt(Stmt):
    exp: Exp


@dataclass
class WriteStmt(Stmt):
    exp: Exp


@dataclass
class IfStmt(Stmt):
    exp: Exp
    decl_list: DeclList
    stmt_list: StmtList


@dataclass
class IfElseStmt(Stmt):
    exp: Exp
    then_decls: DeclList
    then_stmts: StmtList
    else_decls: DeclList
    else_stmts: StmtList


@dataclass
class WhileStmt(Stmt):
    exp: Exp
    decl_list: DeclList
    stmt_list: StmtList


@dataclass
class CallStmt(Stmt):
    call: CallExp


@dataclass
class ReturnStmt(Stmt):
    exp: Optional[Exp] = None


# --- expressions ---

@dataclass
class IntLit(Exp):
    value: int


@dataclass
class StringLit(Exp):
    value: str  # body without the surrounding quotes; escapes kept verbatim


@dataclass
class TrueLit(Exp):
    pass


@dataclass
class FalseLit(Exp):
    pass


@dataclass
class DotAccessExp(Exp):
    loc: Exp
    id: IdNode
    # Filled in by name resolution:
    #   owner      - struct whose field table `id` was looked up in
    #   struct_def - struct of the accessed field, when it is itself a struct
    #   bad        - some link of the chain failed to resolve
    owner: Optional[StructDefSymbol] = field(default=None, repr=False, compare=False)
    struct_def: Optional[StructDefSymbol] = field(default=None, repr=False, compare=False)
    bad: bool = field(default=False, repr=False, compare=False)


@dataclass
class AssignExp(Exp):
    lhs: Exp
    rhs: Exp


@dataclass
class CallExp(Exp):
    id: IdNode
    args: ExpList


@dataclass
class UnaryMinusExp(Exp):
    exp: Exp


@dataclass
class NotExp(Exp):
    exp: Exp


@dataclass
class BinaryExp(Exp):
    op: str
    left: Exp
    right: Exp


def is_loc(exp: Exp) -> bool:
    """True for expressions that denote a storage location."""
    return isinstance(exp, (IdNode, DotAccessExp))


def diagnostic_anchor(exp: Exp) -> Node:
    """
    The leaf whose position locates diagnostics about `exp`.

    Composite expressions borrow the position of their leftmost operand,
    dot-accesses and calls that of the identifier they name.
    """
    if isinstance(exp, BinaryExp):
        return diagnostic_anchor(exp.left)
    if isinstance(exp, AssignExp):
        return diagnostic_anchor(exp.lhs)
    if isinstance(exp, (UnaryMinusExp, NotExp)):
        return diagnostic_anchor(exp.exp)
    if isinstance(exp, (DotAccessExp, CallExp)):
        return exp.id
    return exp
