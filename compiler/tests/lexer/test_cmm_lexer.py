#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import pytest

from cmm_lexer import Lexer, LexerError, TokenKind


def _kinds(src):
    return [t.kind for t in Lexer(src).tokenize()]


def _lex_error(src) -> LexerError:
    with pytest.raises(LexerError) as exc:
        Lexer(src, filename="t.cmm").tokenize()
    return exc.value


def test_keywords_and_identifiers():
    toks = Lexer("int bool void struct cin cout if else while return true false main _x x1").tokenize()

    assert [t.kind for t in toks] == [
        TokenKind.INT, TokenKind.BOOL, TokenKind.VOID, TokenKind.STRUCT, TokenKind.CIN, TokenKind.COUT,
        TokenKind.IF, TokenKind.ELSE, TokenKind.WHILE, TokenKind.RETURN, TokenKind.TRUE, TokenKind.FALSE,
        TokenKind.ID, TokenKind.ID, TokenKind.ID, TokenKind.EOF,
    ]
    assert [t.text for t in toks[-4:-1]] == ["main", "_x", "x1"]


def test_keywords_are_case_sensitive():
    assert _kinds("Int WHILE") == [TokenKind.ID, TokenKind.ID, TokenKind.EOF]


def test_two_character_operators_win():
    assert _kinds("<< >> ++ -- && || == != <= >= < > = !") == [
        TokenKind.WRITE, TokenKind.READ, TokenKind.PLUSPLUS, TokenKind.MINUSMINUS, TokenKind.AND, TokenKind.OR,
        TokenKind.EQUALS, TokenKind.NOTEQUALS, TokenKind.LESSEQ, TokenKind.GREATEREQ, TokenKind.LESS,
        TokenKind.GREATER, TokenKind.ASSIGN, TokenKind.NOT, TokenKind.EOF,
    ]


def test_punctuation():
    assert _kinds("{ } ( ) ; , . + - * /") == [
        TokenKind.LCURLY, TokenKind.RCURLY, TokenKind.LPAREN, TokenKind.RPAREN, TokenKind.SEMI, TokenKind.COMMA,
        TokenKind.DOT, TokenKind.PLUS, TokenKind.MINUS, TokenKind.TIMES, TokenKind.DIVIDE, TokenKind.EOF,
    ]


def test_positions_are_one_based():
    toks = Lexer("int x;\n  x = 42;").tokenize()

    assert [(t.text, t.line, t.column) for t in toks[:-1]] == [
        ("int", 1, 1), ("x", 1, 5), (";", 1, 6),
        ("x", 2, 3), ("=", 2, 5), ("42", 2, 7), (";", 2, 9),
    ]


def test_comments_are_skipped():
    src = "# hash comment\nint x; // trailing\n// last line"

    assert _kinds(src) == [TokenKind.INT, TokenKind.ID, TokenKind.SEMI, TokenKind.EOF]


def test_string_literal_keeps_escapes():
    (tok, _eof) = Lexer(r'"a\tb\"c\\"').tokenize()

    assert tok.kind is TokenKind.STRINGLIT
    assert tok.text == r'a\tb\"c\\'


def test_largest_int_literal():
    (tok, _eof) = Lexer("2147483647").tokenize()

    assert tok.kind is TokenKind.INTLIT
    assert tok.text == "2147483647"


def test_empty_source_is_just_eof():
    toks = Lexer("").tokenize()

    assert [t.kind for t in toks] == [TokenKind.EOF]
    assert repr(toks[0]) == "end-of-file"


# ============================================================================
# Errors
# ============================================================================


def test_unterminated_string():
    err = _lex_error('cout << "abc\n";')

    assert err.message.startswith("[LEX-0010]")
    assert (err.line, err.column) == (1, 9)


def test_string_cannot_run_to_end_of_file():
    assert _lex_error('"abc').message.startswith("[LEX-0010]")


def test_unknown_escape():
    err = _lex_error(r'"a\qb"')

    assert err.message.startswith("[LEX-0020]")
    assert (err.line, err.column) == (1, 4)


def test_int_literal_out_of_range():
    err = _lex_error("x = 2147483648;")

    assert err.message.startswith("[LEX-0030]")
    assert (err.line, err.column) == (1, 5)


def test_letter_after_int_literal():
    assert _lex_error("12ab").message.startswith("[LEX-0031]")


@pytest.mark.parametrize("src", ["@", "x $ y", "a & b", "a | b", "'c'"])
def test_unexpected_character(src):
    err = _lex_error(src)

    assert err.message.startswith("[LEX-0040]")
    assert err.filename == "t.cmm"
