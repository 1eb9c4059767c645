#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from typing import List, Optional

from cmm_analysis import AnalysisResult
from cmm_ast import (
    Node, FnDecl, StmtList, Stmt, AssignStmt, PostIncStmt, PostDecStmt, ReadStmt, WriteStmt, IfStmt, IfElseStmt,
    WhileStmt, CallStmt, ReturnStmt, Exp, IntLit, StringLit, TrueLit, FalseLit, IdNode, DotAccessExp, AssignExp,
    CallExp, UnaryMinusExp, NotExp, BinaryExp, Resolution, ARITHMETIC_OPS, LOGICAL_OPS, RELATIONAL_OPS,
    EQUALITY_OPS, diagnostic_anchor,
)
from cmm_diagnostics import Diagnostic, diag_from_node
from cmm_internal_error import raise_ice
from cmm_logger import log_debug
from cmm_name_resolver import type_of_type_node
from cmm_symbols import FnSymbol
from cmm_types import (
    Type, bool_type, error_type, int_type, string_type, is_bool, is_error, is_func, is_int, is_struct,
    is_struct_def, is_void,
)


@dataclass
class TypeChecker:
    """
    Computes the type of every expression and validates every statement.

    Error-typed operands never produce a second report: the enclosing
    expression silently evaluates to Error as well.

    Usage:
        checker = TypeChecker(analysis)
        checker.check()
        # inspect analysis.expr_types / analysis.diagnostics
    """

    analysis: AnalysisResult

    diagnostics: List[Diagnostic] = field(init=False)
    filename: Optional[str] = field(init=False)

    # Declared return type of the function being checked
    _current_return: Optional[Type] = None

    def __post_init__(self) -> None:
        self.diagnostics = self.analysis.diagnostics
        self.filename = self.analysis.filename

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def check(self) -> None:
        program = self.analysis.program
        for decl in program.decl_list.decls:
            if isinstance(decl, FnDecl):
                self._check_function(decl)

        if not self.analysis.has_main:
            self.diagnostics.append(
                Diagnostic(kind="error", message="[TYP-0120] no main function", filename=self.filename,
                           line=0, column=0)
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _error(self, node: Optional[Node], message: str) -> None:
        self.diagnostics.append(diag_from_node("error", message, filename=self.filename, node=node))

    def _error_at(self, exp: Exp, message: str) -> Type:
        self._error(diagnostic_anchor(exp), message)
        return error_type()

    # ------------------------------------------------------------------
    # Functions and statements
    # ------------------------------------------------------------------

    def _check_function(self, decl: FnDecl) -> None:
        log_debug(self.analysis.context, f"type checking function '{decl.id.name}'")
        self._current_return = type_of_type_node(decl.return_type)
        self._check_stmt_list(decl.body.stmt_list)
        self._current_return = None

    def _check_stmt_list(self, stmt_list: StmtList) -> None:
        for stmt in stmt_list.stmts:
            self._check_stmt(stmt)

    def _check_stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, AssignStmt):
            self._infer_exp(stmt.assign)

        elif isinstance(stmt, (PostIncStmt, PostDecStmt)):
            t = self._infer_exp(stmt.exp)
            if not is_error(t) and not is_int(t):
                self._error_at(stmt.exp, "[TYP-0010] arithmetic operator applied to non-numeric operand")

        elif isinstance(stmt, ReadStmt):
            t = self._infer_exp(stmt.exp)
            if is_func(t):
                self._error_at(stmt.exp, "[TYP-0090] attempt to read a function")
            elif is_struct_def(t):
                self._error_at(stmt.exp, "[TYP-0091] attempt to read a struct name")
            elif is_struct(t):
                self._error_at(stmt.exp, "[TYP-0092] attempt to read a struct variable")
            elif is_void(t):
                self._error_at(stmt.exp, "[TYP-0093] attempt to read void")

        elif isinstance(stmt, WriteStmt):
            t = self._infer_exp(stmt.exp)
            if is_func(t):
                self._error_at(stmt.exp, "[TYP-0100] attempt to write a function")
            elif is_struct_def(t):
                self._error_at(stmt.exp, "[TYP-0101] attempt to write a struct name")
            elif is_struct(t):
                self._error_at(stmt.exp, "[TYP-0102] attempt to write a struct variable")
            elif is_void(t):
                self._error_at(stmt.exp, "[TYP-0103] attempt to write void")

        elif isinstance(stmt, IfStmt):
            self._check_condition(stmt.exp, "[TYP-0080] non-bool expression used as an if condition")
            self._check_stmt_list(stmt.stmt_list)

        elif isinstance(stmt, IfElseStmt):
            self._check_condition(stmt.exp, "[TYP-0080] non-bool expression used as an if condition")
            self._check_stmt_list(stmt.then_stmts)
            self._check_stmt_list(stmt.else_stmts)

        elif isinstance(stmt, WhileStmt):
            self._check_condition(stmt.exp, "[TYP-0081] non-bool expression used as a while condition")
            self._check_stmt_list(stmt.stmt_list)

        elif isinstance(stmt, CallStmt):
            self._infer_exp(stmt.call)

        elif isinstance(stmt, ReturnStmt):
            self._check_return(stmt)

        else:
            raise_ice(f"[ICE-1040] unexpected statement {type(stmt).__name__}", self.filename, stmt)

    def _check_condition(self, cond: Exp, message: str) -> None:
        t = self._infer_exp(cond)
        if not is_error(t) and not is_bool(t):
            self._error_at(cond, message)

    def _check_return(self, stmt: ReturnStmt) -> None:
        expected = self._current_return
        if expected is None:
            raise_ice("[ICE-1050] return statement outside of a function", self.filename, stmt)

        if stmt.exp is None:
            if not is_void(expected):
                self._error(stmt, "[TYP-0112] missing return value")
            return

        actual = self._infer_exp(stmt.exp)
        if is_void(expected):
            self._error_at(stmt.exp, "[TYP-0110] return with a value in a void function")
        elif not is_error(actual) and actual != expected:
            self._error_at(stmt.exp, "[TYP-0111] bad return value")

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def _infer_exp(self, exp: Exp) -> Type:
        t = self._infer_exp_uncached(exp)
        self.analysis.expr_types[id(exp)] = t
        return t

    def _infer_exp_uncached(self, exp: Exp) -> Type:
        if isinstance(exp, IntLit):
            return int_type()
        if isinstance(exp, StringLit):
            return string_type()
        if isinstance(exp, (TrueLit, FalseLit)):
            return bool_type()
        if isinstance(exp, IdNode):
            return self._infer_id(exp)
        if isinstance(exp, DotAccessExp):
            self._infer_exp(exp.loc)
            return self._infer_exp(exp.id)
        if isinstance(exp, AssignExp):
            return self._infer_assign(exp)
        if isinstance(exp, CallExp):
            return self._infer_call(exp)
        if isinstance(exp, UnaryMinusExp):
            return self._unary_expect(exp.exp, is_int, int_type(),
                                      "[TYP-0010] arithmetic operator applied to non-numeric operand")
        if isinstance(exp, NotExp):
            return self._unary_expect(exp.exp, is_bool, bool_type(),
                                      "[TYP-0020] logical operator applied to non-bool operand")
        if isinstance(exp, BinaryExp):
            return self._infer_binary(exp)
        raise_ice(f"[ICE-1040] unexpected expression {type(exp).__name__}", self.filename, exp)

    def _infer_id(self, exp: IdNode) -> Type:
        if exp.resolution is Resolution.BOUND:
            return exp.sym.type
        if exp.resolution is Resolution.UNRESOLVED:
            return error_type()
        raise_ice(f"[ICE-1031] identifier '{exp.name}' was never resolved", self.filename, exp)

    def _unary_expect(self, operand: Exp, accepts, result: Type, message: str) -> Type:
        t = self._infer_exp(operand)
        if is_error(t):
            return error_type()
        if not accepts(t):
            return self._error_at(operand, message)
        return result

    def _binary_expect_both(self, exp: BinaryExp, accepts, result: Type, message: str) -> Type:
        """Check each operand independently; both may be reported."""
        lt = self._infer_exp(exp.left)
        rt = self._infer_exp(exp.right)
        ok = True
        if is_error(lt):
            ok = False
        elif not accepts(lt):
            self._error_at(exp.left, message)
            ok = False
        if is_error(rt):
            ok = False
        elif not accepts(rt):
            self._error_at(exp.right, message)
            ok = False
        return result if ok else error_type()

    def _infer_binary(self, exp: BinaryExp) -> Type:
        op = exp.op
        if op in ARITHMETIC_OPS:
            return self._binary_expect_both(exp, is_int, int_type(),
                                            "[TYP-0010] arithmetic operator applied to non-numeric operand")
        if op in LOGICAL_OPS:
            return self._binary_expect_both(exp, is_bool, bool_type(),
                                            "[TYP-0020] logical operator applied to non-bool operand")
        if op in RELATIONAL_OPS:
            return self._binary_expect_both(exp, is_int, bool_type(),
                                            "[TYP-0030] relational operator applied to non-numeric operand")
        if op in EQUALITY_OPS:
            return self._infer_equality(exp)
        raise_ice(f"[ICE-1041] unknown binary operator '{op}'", self.filename, exp)

    def _infer_equality(self, exp: BinaryExp) -> Type:
        lt = self._infer_exp(exp.left)
        rt = self._infer_exp(exp.right)
        if is_error(lt) or is_error(rt):
            return error_type()
        if is_void(lt) and is_void(rt):
            return self._error_at(exp, "[TYP-0040] equality operator applied to void functions")
        if is_func(lt) and is_func(rt):
            return self._error_at(exp, "[TYP-0041] equality operator applied to functions")
        if is_struct_def(lt) and is_struct_def(rt):
            return self._error_at(exp, "[TYP-0042] equality operator applied to struct names")
        if is_struct(lt) and is_struct(rt):
            return self._error_at(exp, "[TYP-0043] equality operator applied to struct variables")
        if lt != rt:
            return self._error_at(exp, "[TYP-0050] type mismatch")
        return bool_type()

    def _infer_assign(self, exp: AssignExp) -> Type:
        lt = self._infer_exp(exp.lhs)
        rt = self._infer_exp(exp.rhs)
        if is_error(lt) or is_error(rt):
            return error_type()
        if is_func(lt) and is_func(rt):
            return self._error_at(exp, "[TYP-0060] function assignment")
        if is_struct_def(lt) and is_struct_def(rt):
            return self._error_at(exp, "[TYP-0061] struct name assignment")
        if is_struct(lt) and is_struct(rt):
            return self._error_at(exp, "[TYP-0062] struct variable assignment")
        if lt != rt:
            return self._error_at(exp, "[TYP-0050] type mismatch")
        return lt

    def _infer_call(self, exp: CallExp) -> Type:
        callee_t = self._infer_exp(exp.id)
        # arguments are checked for their own errors whatever the callee is
        arg_types = [self._infer_exp(arg) for arg in exp.args.exps]

        if is_error(callee_t):
            return error_type()
        if not is_func(callee_t):
            return self._error_at(exp, "[TYP-0070] attempt to call a non-function")

        fn_sym = exp.id.sym
        assert isinstance(fn_sym, FnSymbol)
        if len(arg_types) != fn_sym.num_params:
            self._error_at(exp, "[TYP-0071] function call with wrong number of args")
            return fn_sym.return_type

        for arg, actual, formal in zip(exp.args.exps, arg_types, fn_sym.param_types):
            if is_error(actual) or is_error(formal):
                continue
            if actual != formal:
                self._error_at(arg, "[TYP-0072] type of actual does not match type of formal")
        return fn_sym.return_type
