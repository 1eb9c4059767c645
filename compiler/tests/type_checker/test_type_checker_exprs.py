"""
Tests for expression typing: operators, equality, assignment, calls.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import pytest

from conftest import error_codes
from cmm_ast import FnDecl
from cmm_types import bool_type, int_type, is_error, string_type


def _body(result, name="main"):
    fn = next(d for d in result.program.decl_list.decls if isinstance(d, FnDecl) and d.id.name == name)
    return fn.body.stmt_list.stmts


def _wrap(decls: str, stmts: str) -> str:
    return f"""
{decls}
void main() {{
    int i;
    bool b;
{stmts}
}}
"""


# ============================================================================
# Well-typed expressions
# ============================================================================


def test_expression_types_are_recorded(analyze_source):
    result = analyze_source(_wrap("", "    i = 1 + 2 * 3;\n    b = i < 4 && !b;\n    cout << \"hi\";"))

    assert not result.has_errors()
    stmts = _body(result)
    assert result.expr_types[id(stmts[0].assign.rhs)] == int_type()
    assert result.expr_types[id(stmts[1].assign.rhs)] == bool_type()
    assert result.expr_types[id(stmts[2].exp)] == string_type()


def test_assignment_type_is_lhs_type(analyze_source):
    result = analyze_source(_wrap("", "    i = i = 3;"))

    assert not result.has_errors()
    assign = _body(result)[0].assign
    assert result.expr_types[id(assign)] == int_type()


@pytest.mark.parametrize("exp", ["i == 1", "b != true", "i + 1 == 2 * i"])
def test_equality_of_same_types(analyze_source, exp):
    result = analyze_source(_wrap("", f"    b = {exp};"))

    assert not result.has_errors()


def test_unary_minus_and_not(analyze_source):
    result = analyze_source(_wrap("", "    i = -i;\n    b = !b;"))

    assert not result.has_errors()


# ============================================================================
# Operator errors
# ============================================================================


@pytest.mark.parametrize(
    "stmt, code",
    [
        ("i = b + 1;", "TYP-0010"),
        ("i = -b;", "TYP-0010"),
        ("b = i && b;", "TYP-0020"),
        ("b = !i;", "TYP-0020"),
        ("b = b < 1;", "TYP-0030"),
        ("b = i == b;", "TYP-0050"),
        ("i = b;", "TYP-0050"),
        ("i = \"s\";", "TYP-0050"),
    ],
)
def test_operator_errors(analyze_source, stmt, code):
    result = analyze_source(_wrap("", f"    {stmt}"))

    assert error_codes(result.diagnostics) == [code]


def test_both_bad_operands_are_reported(analyze_source):
    result = analyze_source(_wrap("", "    i = b + b;"))

    assert error_codes(result.diagnostics) == ["TYP-0010", "TYP-0010"]


def test_error_operand_suppresses_enclosing_reports(analyze_source):
    """An undeclared name is reported once; nothing cascades upwards."""
    result = analyze_source(_wrap("", "    i = (nope + 1) * 2 - i;\n    b = !(nope < 3);"))

    assert error_codes(result.diagnostics) == ["RES-0040", "RES-0040"]


def test_mismatch_does_not_cascade_to_later_uses(analyze_source):
    result = analyze_source(
        """
        void main() {
            bool b;
            int y;
            y = b;
            y = y + 1;
            b = !b;
            cout << y;
        }
        """
    )

    assert error_codes(result.diagnostics) == ["TYP-0050"]


def test_error_type_propagates_through_expression(analyze_source):
    result = analyze_source(_wrap("", "    i = nope + 1;"))

    rhs = _body(result)[0].assign.rhs
    assert is_error(result.expr_types[id(rhs)])


# ============================================================================
# Equality and assignment on non-values
# ============================================================================


FNS_AND_STRUCTS = """
void v() { }
void w() { }
int f() { return 1; }
int g() { return 2; }
struct P { int x; };
struct Q { int y; };
"""


@pytest.mark.parametrize(
    "stmt, code",
    [
        ("b = v() == w();", "TYP-0040"),
        ("b = f == g;", "TYP-0041"),
        ("b = P == Q;", "TYP-0042"),
        ("b = p == q;", "TYP-0043"),
        ("f = g;", "TYP-0060"),
        ("P = Q;", "TYP-0061"),
        ("p = p;", "TYP-0062"),
    ],
)
def test_non_value_operands(analyze_source, stmt, code):
    src = FNS_AND_STRUCTS + f"""
void main() {{
    bool b;
    struct P p;
    struct Q q;
    {stmt}
}}
"""
    result = analyze_source(src)

    assert error_codes(result.diagnostics) == [code]


def test_equality_error_is_anchored_at_left_operand(analyze_source):
    result = analyze_source(
        """
        void main() {
            bool b;
            int i;
            b =      i == b;
        }
        """
    )

    (diag,) = result.diagnostics
    assert (diag.line, diag.column) == (5, 14)


def test_assignment_error_is_anchored_at_lhs(analyze_source):
    result = analyze_source(
        """
        void main() {
            bool b;
            int i;
              i = b;
        }
        """
    )

    (diag,) = result.diagnostics
    assert (diag.line, diag.column) == (5, 7)


# ============================================================================
# Calls
# ============================================================================


CALLEES = """
int add(int a, int b) { return a + b; }
void hello() { }
"""


def test_well_typed_call(analyze_source):
    result = analyze_source(CALLEES + _wrap("", "    i = add(1, i);\n    hello();"))

    assert not result.has_errors()
    assert result.expr_types[id(_body(result)[0].assign.rhs)] == int_type()


def test_call_of_non_function(analyze_source):
    result = analyze_source(_wrap("", "    i = i(1);"))

    assert error_codes(result.diagnostics) == ["TYP-0070"]


def test_call_of_non_function_still_checks_arguments(analyze_source):
    result = analyze_source(_wrap("", "    i(b + 1);"))

    assert error_codes(result.diagnostics) == ["TYP-0010", "TYP-0070"]


def test_wrong_argument_count_keeps_return_type(analyze_source):
    result = analyze_source(CALLEES + _wrap("", "    i = add(1) + 1;"))

    assert error_codes(result.diagnostics) == ["TYP-0071"]
    assert result.expr_types[id(_body(result)[0].assign.rhs)] == int_type()


def test_each_bad_argument_is_reported(analyze_source):
    result = analyze_source(CALLEES + _wrap("", "    i = add(true, b);"))

    assert error_codes(result.diagnostics) == ["TYP-0072", "TYP-0072"]


def test_bad_argument_does_not_poison_result(analyze_source):
    result = analyze_source(CALLEES + _wrap("", "    b = add(b, 1) < 3;"))

    assert error_codes(result.diagnostics) == ["TYP-0072"]


def test_call_of_undeclared_function_is_silent_after_resolution(analyze_source):
    result = analyze_source(_wrap("", "    i = missing(b + 1);"))

    assert error_codes(result.diagnostics) == ["RES-0040", "TYP-0010"]


def test_void_formal_is_silent_at_call_sites(analyze_source):
    result = analyze_source(
        """
        int f(void x) { return 1; }
        void main() {
            int i;
            i = f(3);
        }
        """
    )

    assert error_codes(result.diagnostics) == ["RES-0010"]


def test_struct_field_access_types(analyze_source):
    result = analyze_source(
        """
        struct P {
            int x;
            bool ok;
        };
        void main() {
            struct P p;
            p.x = p.x + 1;
            p.ok = !p.ok;
            if (p.ok) {
                cout << p.x;
            }
        }
        """
    )

    assert not result.has_errors()
