#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass
from enum import Enum, auto
from typing import List


# ==========================
# Tokens and lexer
# ==========================

class TokenKind(Enum):
    # Special
    EOF = auto()

    ID = auto()  # identifier, e.g. i, count, etc.
    INTLIT = auto()  # integer literal, e.g. 42
    STRINGLIT = auto()  # string literal, e.g. "hello\n"

    # Keywords
    INT = auto()
    BOOL = auto()
    VOID = auto()
    TRUE = auto()
    FALSE = auto()
    STRUCT = auto()
    CIN = auto()
    COUT = auto()
    IF = auto()
    ELSE = auto()
    WHILE = auto()
    RETURN = auto()

    # Punctuation / operators
    LCURLY = auto()  # {
    RCURLY = auto()  # }
    LPAREN = auto()  # (
    RPAREN = auto()  # )
    SEMI = auto()  # ;
    COMMA = auto()  # ,
    DOT = auto()  # .
    WRITE = auto()  # <<
    READ = auto()  # >>
    PLUSPLUS = auto()  # ++
    MINUSMINUS = auto()  # --
    PLUS = auto()  # +
    MINUS = auto()  # -
    TIMES = auto()  # *
    DIVIDE = auto()  # /
    NOT = auto()  # !
    AND = auto()  # &&
    OR = auto()  # ||
    EQUALS = auto()  # ==
    NOTEQUALS = auto()  # !=
    LESS = auto()  # <
    GREATER = auto()  # >
    LESSEQ = auto()  # <=
    GREATEREQ = auto()  # >=
    ASSIGN = auto()  # =


KEYWORDS = {
    "int": TokenKind.INT,
    "bool": TokenKind.BOOL,
    "void": TokenKind.VOID,
    "true": TokenKind.TRUE,
    "false": TokenKind.FALSE,
    "struct": TokenKind.STRUCT,
    "cin": TokenKind.CIN,
    "cout": TokenKind.COUT,
    "if": TokenKind.IF,
    "else": TokenKind.ELSE,
    "while": TokenKind.WHILE,
    "return": TokenKind.RETURN,
}

# Two-character operators first so that "<<" wins over "<".
_OPERATORS = [
    ("<<", TokenKind.WRITE),
    (">>", TokenKind.READ),
    ("++", TokenKind.PLUSPLUS),
    ("--", TokenKind.MINUSMINUS),
    ("&&", TokenKind.AND),
    ("||", TokenKind.OR),
    ("==", TokenKind.EQUALS),
    ("!=", TokenKind.NOTEQUALS),
    ("<=", TokenKind.LESSEQ),
    (">=", TokenKind.GREATEREQ),
    ("{", TokenKind.LCURLY),
    ("}", TokenKind.RCURLY),
    ("(", TokenKind.LPAREN),
    (")", TokenKind.RPAREN),
    (";", TokenKind.SEMI),
    (",", TokenKind.COMMA),
    (".", TokenKind.DOT),
    ("+", TokenKind.PLUS),
    ("-", TokenKind.MINUS),
    ("*", TokenKind.TIMES),
    ("/", TokenKind.DIVIDE),
    ("!", TokenKind.NOT),
    ("<", TokenKind.LESS),
    (">", TokenKind.GREATER),
    ("=", TokenKind.ASSIGN),
]

# Characters allowed after a backslash in string literals
STRING_ESCAPES = ("n", "t", "'", '"', "?", "\\")

INT_MAX = 2 ** 31 - 1


@dataclass
class Token:
    kind: TokenKind
    text: str
    line: int
    column: int

    def __repr__(self) -> str:
        return f"{self.text!r}" if self.kind != TokenKind.EOF else "end-of-file"


@dataclass
class LexerError(Exception):
    message: str
    filename: str
    line: int
    column: int


class Lexer:
    def __init__(self, source: str, filename: str = "<input>") -> None:
        self.source = source
        self.filename = filename
        self.length = len(source)
        self.index = 0
        self.line = 1
        self.column = 1

    # --- low-level char utilities ---

    def _at_end(self) -> bool:
        return self.index >= self.length

    def _peek(self) -> str:
        if self._at_end():
            return "\0"
        return self.source[self.index]

    def _peek_next(self) -> str:
        if self.index + 1 >= self.length:
            return "\0"
        return self.source[self.index + 1]

    def _advance(self) -> str:
        c = self._peek()
        if not self._at_end():
            self.index += 1
            if c == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        return c

    # --- main API ---

    def tokenize(self) -> List[Token]:
        tokens: List[Token] = []
        while True:
            tok = self._next_token()
            tokens.append(tok)
            if tok.kind is TokenKind.EOF:
                break
        return tokens

    def _next_token(self) -> Token:
        self._skip_ws_and_comments()
        start_line, start_col = self.line, self.column

        if self._at_end():
            return Token(TokenKind.EOF, "", start_line, start_col)

        c = self._peek()

        # identifiers / keywords
        if c.isalpha() or c == "_":
            ident = [self._advance()]
            while self._peek().isalnum() or self._peek() == "_":
                ident.append(self._advance())
            text = "".join(ident)
            return Token(KEYWORDS.get(text, TokenKind.ID), text, start_line, start_col)

        if c.isdigit():
            text = self._read_number(start_line, start_col)
            return Token(TokenKind.INTLIT, text, start_line, start_col)

        if c == '"':
            self._advance()
            text = self._read_string_literal(start_line, start_col)
            return Token(TokenKind.STRINGLIT, text, start_line, start_col)

        for op, kind in _OPERATORS:
            if self.source.startswith(op, self.index):
                for _ in op:
                    self._advance()
                return Token(kind, op, start_line, start_col)

        raise LexerError(f"[LEX-0040] unexpected character {c!r}", self.filename, start_line, start_col)

    def _read_string_literal(self, start_line: int, start_col: int) -> str:
        chars: List[str] = []
        while True:
            ch = self._peek()
            if ch == "\0" or ch == "\n":
                raise LexerError("[LEX-0010] unterminated string literal", self.filename, start_line, start_col)
            if ch == "\\":
                self._advance()
                esc = self._peek()
                if esc not in STRING_ESCAPES:
                    raise LexerError(f"[LEX-0020] unknown escape sequence \\{esc}", self.filename, self.line,
                                     self.column)
                chars.append("\\")
                chars.append(self._advance())
                continue
            if ch == '"':
                self._advance()
                break
            chars.append(self._advance())
        return "".join(chars)

    def _read_number(self, start_line: int, start_col: int) -> str:
        digits: List[str] = []
        while self._peek().isdigit():
            digits.append(self._advance())
        text = "".join(digits)
        if self._peek().isalpha() or self._peek() == "_":
            raise LexerError(f"[LEX-0031] invalid character '{self._peek()}' after integer literal",
                             self.filename, self.line, self.column)
        if int(text) > INT_MAX:
            raise LexerError(f"[LEX-0030] integer literal '{text}' exceeds 32-bit signed range",
                             self.filename, start_line, start_col)
        return text

    def _skip_ws_and_comments(self) -> None:
        while True:
            c = self._peek()
            if c in (" ", "\t", "\r", "\n"):
                self._advance()
                continue
            if c == "#" or (c == "/" and self._peek_next() == "/"):
                # line comment
                while self._peek() not in ("\n", "\0"):
                    self._advance()
                continue
            break
