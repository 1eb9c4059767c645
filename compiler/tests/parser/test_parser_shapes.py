#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from cmm_ast import (
    AssignExp, AssignStmt, BinaryExp, BoolTypeNode, CallExp, CallStmt, DotAccessExp, ExpList, FnDecl, IdNode,
    IfElseStmt, IfStmt, IntLit, IntTypeNode, NotExp, PostDecStmt, PostIncStmt, ReadStmt, ReturnStmt, Span,
    StringLit, StructDecl, StructTypeNode, TrueLit, UnaryMinusExp, VarDecl, VoidTypeNode, WhileStmt, WriteStmt,
)
from cmm_parser import Parser


def _parse(src: str):
    return Parser.from_source(src).parse_program()


def _exp(text: str):
    """Parse `text` as the right-hand side of an assignment inside main."""
    program = _parse(f"void main() {{ x = {text}; }}")
    return program.decl_list.decls[0].body.stmt_list.stmts[0].assign.rhs


def _stmts(body: str):
    program = _parse(f"void main() {{ {body} }}")
    return program.decl_list.decls[0].body.stmt_list.stmts


# ============================================================================
# Declarations
# ============================================================================


def test_top_level_declarations():
    program = _parse(
        """
        int g;
        struct P { int x; bool y; };
        struct P p;
        bool f(int a, bool b) { return b; }
        void main() { }
        """
    )
    g, pdef, p, f, main = program.decl_list.decls

    assert isinstance(g, VarDecl) and isinstance(g.type, IntTypeNode)
    assert isinstance(pdef, StructDecl) and [d.id.name for d in pdef.decl_list.decls] == ["x", "y"]
    assert isinstance(p, VarDecl) and p.type == StructTypeNode(IdNode("P"))
    assert isinstance(f, FnDecl) and isinstance(f.return_type, BoolTypeNode)
    assert [(type(fd.type), fd.id.name) for fd in f.formals.formals] == [(IntTypeNode, "a"), (BoolTypeNode, "b")]
    assert isinstance(main.return_type, VoidTypeNode) and main.formals.formals == []


def test_function_body_splits_decls_and_stmts():
    program = _parse("void main() { int a; struct P p; a = 1; cout << a; }")
    body = program.decl_list.decls[0].body

    assert [d.id.name for d in body.decl_list.decls] == ["a", "p"]
    assert [type(s) for s in body.stmt_list.stmts] == [AssignStmt, WriteStmt]


def test_nested_struct_field():
    program = _parse("struct A { int x; }; struct B { struct A a; int y; };")
    b = program.decl_list.decls[1]

    assert b.decl_list.decls[0].type == StructTypeNode(IdNode("A"))


# ============================================================================
# Expressions
# ============================================================================


def test_multiplication_binds_tighter_than_addition():
    assert _exp("1 + 2 * 3") == BinaryExp("+", IntLit(1), BinaryExp("*", IntLit(2), IntLit(3)))


def test_arithmetic_is_left_associative():
    assert _exp("1 - 2 - 3") == BinaryExp("-", BinaryExp("-", IntLit(1), IntLit(2)), IntLit(3))
    assert _exp("8 / 4 / 2") == BinaryExp("/", BinaryExp("/", IntLit(8), IntLit(4)), IntLit(2))


def test_logical_precedence():
    a, b, c = IdNode("a"), IdNode("b"), IdNode("c")

    assert _exp("a || b && c") == BinaryExp("||", a, BinaryExp("&&", b, c))
    assert _exp("a && b || c") == BinaryExp("||", BinaryExp("&&", a, b), c)


def test_comparison_precedence():
    assert _exp("1 + 1 < 3 == true") == BinaryExp(
        "==", BinaryExp("<", BinaryExp("+", IntLit(1), IntLit(1)), IntLit(3)), TrueLit()
    )


def test_unary_operators():
    assert _exp("-a * 2") == BinaryExp("*", UnaryMinusExp(IdNode("a")), IntLit(2))
    assert _exp("!!b") == NotExp(NotExp(IdNode("b")))
    assert _exp("- -1") == UnaryMinusExp(UnaryMinusExp(IntLit(1)))


def test_parentheses_group():
    assert _exp("(1 + 2) * 3") == BinaryExp("*", BinaryExp("+", IntLit(1), IntLit(2)), IntLit(3))


def test_assignment_is_right_associative():
    (stmt,) = _stmts("a = b = 3;")

    assert stmt.assign == AssignExp(IdNode("a"), AssignExp(IdNode("b"), IntLit(3)))


def test_dot_chain_nests_leftwards():
    assert _exp("a.b.c") == DotAccessExp(DotAccessExp(IdNode("a"), IdNode("b")), IdNode("c"))


def test_calls():
    assert _exp("f()") == CallExp(IdNode("f"), ExpList([]))
    call = _exp("g(1, a + 1, h(2))")
    assert [type(arg) for arg in call.args.exps] == [IntLit, BinaryExp, CallExp]


def test_string_literal():
    (stmt,) = _stmts('cout << "a\\n";')

    assert stmt.exp == StringLit("a\\n")


# ============================================================================
# Statements
# ============================================================================


def test_statement_kinds():
    stmts = _stmts(
        """
        x++;
        p.y--;
        cin >> p.y;
        cout << x + 1;
        f(x);
        return;
        """
    )

    assert [type(s) for s in stmts] == [PostIncStmt, PostDecStmt, ReadStmt, WriteStmt, CallStmt, ReturnStmt]
    assert stmts[1].exp == DotAccessExp(IdNode("p"), IdNode("y"))
    assert stmts[-1].exp is None


def test_if_else_and_while_blocks():
    stmts = _stmts(
        """
        if (a) { int t; t = 1; }
        if (a) { } else { bool u; u = true; }
        while (a) { int w; w = 2; f(w); }
        """
    )
    if_stmt, if_else, loop = stmts

    assert isinstance(if_stmt, IfStmt) and [d.id.name for d in if_stmt.decl_list.decls] == ["t"]
    assert isinstance(if_else, IfElseStmt)
    assert if_else.then_stmts.stmts == [] and [d.id.name for d in if_else.else_decls.decls] == ["u"]
    assert isinstance(loop, WhileStmt) and len(loop.stmt_list.stmts) == 2


def test_spans_point_at_source():
    program = _parse("int main() {\n    x = 1 + y;\n}")
    stmt = program.decl_list.decls[0].body.stmt_list.stmts[0]

    assert stmt.span == Span(2, 5, 2, 15)
    assert stmt.assign.rhs.right.span == Span(2, 13, 2, 14)


def test_empty_lists_have_zero_width_spans():
    fn = _parse("void main() { }").decl_list.decls[0]

    assert fn.formals.span == Span(1, 10, 1, 12)
    assert fn.body.decl_list.span == Span(1, 15, 1, 15)
    assert fn.body.stmt_list.span == Span(1, 15, 1, 15)


def test_equality_ignores_spans():
    assert _exp("1 +   2") == _exp("1 + 2")
