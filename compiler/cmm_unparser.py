"""
Source-level pretty printer.

Turns a Program back into C-- text that parses to an equivalent tree:
binary and unary expressions are fully parenthesized, blocks are indented
by four spaces.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from typing import List

from cmm_ast import (
    Program, DeclList, StmtList, Decl, VarDecl, FormalDecl, FnDecl, StructDecl, TypeNode, IntTypeNode, BoolTypeNode,
    VoidTypeNode, StructTypeNode, Stmt, AssignStmt, PostIncStmt, PostDecStmt, ReadStmt, WriteStmt, IfStmt,
    IfElseStmt, WhileStmt, CallStmt, ReturnStmt, Exp, IntLit, StringLit, TrueLit, FalseLit, IdNode, DotAccessExp,
    AssignExp, CallExp, UnaryMinusExp, NotExp, BinaryExp,
)

INDENT = "    "


def unparse(program: Program) -> str:
    unparser = Unparser()
    unparser.program(program)
    return "\n".join(unparser.lines) + "\n"


def unparse_exp(exp: Exp) -> str:
    return _exp(exp, top=True)


class Unparser:
    def __init__(self) -> None:
        self.lines: List[str] = []
        self.level = 0

    def _line(self, text: str) -> None:
        self.lines.append(INDENT * self.level + text)

    def program(self, program: Program) -> None:
        for decl in program.decl_list.decls:
            self.decl(decl)
            if isinstance(decl, (FnDecl, StructDecl)):
                self.lines.append("")
        # no trailing blank line
        while self.lines and self.lines[-1] == "":
            self.lines.pop()

    def decl(self, decl: Decl) -> None:
        if isinstance(decl, VarDecl):
            self._line(f"{_type(decl.type)} {decl.id.name};")
        elif isinstance(decl, StructDecl):
            self._line(f"struct {decl.id.name} {{")
            self.level += 1
            self.decl_list(decl.decl_list)
            self.level -= 1
            self._line("};")
        elif isinstance(decl, FnDecl):
            formals = ", ".join(_formal(f) for f in decl.formals.formals)
            self._line(f"{_type(decl.return_type)} {decl.id.name}({formals}) {{")
            self.block_body(decl.body.decl_list, decl.body.stmt_list)
            self._line("}")
        else:
            raise TypeError(f"cannot unparse declaration {type(decl).__name__}")

    def decl_list(self, decl_list: DeclList) -> None:
        for decl in decl_list.decls:
            self.decl(decl)

    def block_body(self, decl_list: DeclList, stmt_list: StmtList) -> None:
        self.level += 1
        self.decl_list(decl_list)
        for stmt in stmt_list.stmts:
            self.stmt(stmt)
        self.level -= 1

    def stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, AssignStmt):
            self._line(f"{_exp(stmt.assign, top=True)};")
        elif isinstance(stmt, PostIncStmt):
            self._line(f"{_exp(stmt.exp)}++;")
        elif isinstance(stmt, PostDecStmt):
            self._line(f"{_exp(stmt.exp)}--;")
        elif isinstance(stmt, ReadStmt):
            self._line(f"cin >> {_exp(stmt.exp)};")
        elif isinstance(stmt, WriteStmt):
            self._line(f"cout << {_exp(stmt.exp, top=True)};")
        elif isinstance(stmt, IfStmt):
            self._line(f"if ({_exp(stmt.exp, top=True)}) {{")
            self.block_body(stmt.decl_list, stmt.stmt_list)
            self._line("}")
        elif isinstance(stmt, IfElseStmt):
            self._line(f"if ({_exp(stmt.exp, top=True)}) {{")
            self.block_body(stmt.then_decls, stmt.then_stmts)
            self._line("}")
            self._line("else {")
            self.block_body(stmt.else_decls, stmt.else_stmts)
            self._line("}")
        elif isinstance(stmt, WhileStmt):
            self._line(f"while ({_exp(stmt.exp, top=True)}) {{")
            self.block_body(stmt.decl_list, stmt.stmt_list)
            self._line("}")
        elif isinstance(stmt, CallStmt):
            self._line(f"{_exp(stmt.call)};")
        elif isinstance(stmt, ReturnStmt):
            if stmt.exp is None:
                self._line("return;")
            else:
                self._line(f"return {_exp(stmt.exp, top=True)};")
        else:
            raise TypeError(f"cannot unparse statement {type(stmt).__name__}")


def _type(node: TypeNode) -> str:
    if isinstance(node, IntTypeNode):
        return "int"
    if isinstance(node, BoolTypeNode):
        return "bool"
    if isinstance(node, VoidTypeNode):
        return "void"
    if isinstance(node, StructTypeNode):
        return f"struct {node.id.name}"
    raise TypeError(f"cannot unparse type {type(node).__name__}")


def _formal(formal: FormalDecl) -> str:
    return f"{_type(formal.type)} {formal.id.name}"


def _exp(exp: Exp, top: bool = False) -> str:
    if isinstance(exp, IntLit):
        return str(exp.value)
    if isinstance(exp, StringLit):
        return f'"{exp.value}"'
    if isinstance(exp, TrueLit):
        return "true"
    if isinstance(exp, FalseLit):
        return "false"
    if isinstance(exp, IdNode):
        return exp.name
    if isinstance(exp, DotAccessExp):
        return f"{_exp(exp.loc)}.{exp.id.name}"
    if isinstance(exp, AssignExp):
        text = f"{_exp(exp.lhs)} = {_exp(exp.rhs, top=True)}"
        return text if top else f"({text})"
    if isinstance(exp, CallExp):
        args = ", ".join(_exp(arg, top=True) for arg in exp.args.exps)
        return f"{exp.id.name}({args})"
    if isinstance(exp, UnaryMinusExp):
        return f"(-{_exp(exp.exp)})"
    if isinstance(exp, NotExp):
        return f"(!{_exp(exp.exp)})"
    if isinstance(exp, BinaryExp):
        return f"({_exp(exp.left)} {exp.op} {_exp(exp.right)})"
    raise TypeError(f"cannot unparse expression {type(exp).__name__}")
