#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass
from typing import List, Optional, Tuple

from cmm_ast import (
    Span, Program, DeclList, FormalsList, FnBody, StmtList, ExpList, Decl, VarDecl, FormalDecl, FnDecl, StructDecl,
    TypeNode, IntTypeNode, BoolTypeNode, VoidTypeNode, StructTypeNode, Stmt, AssignStmt, PostIncStmt, PostDecStmt,
    ReadStmt, WriteStmt, IfStmt, IfElseStmt, WhileStmt, CallStmt, ReturnStmt, Exp, IntLit, StringLit, TrueLit,
    FalseLit, IdNode, DotAccessExp, AssignExp, CallExp, UnaryMinusExp, NotExp, BinaryExp, is_loc,
)
from cmm_lexer import TokenKind, Token, Lexer


# ==========================
# Parser
# ==========================

@dataclass
class ParseError(Exception):
    message: str
    token: Optional[Token] = None
    filename: Optional[str] = None


_TYPE_KEYWORDS = (TokenKind.INT, TokenKind.BOOL, TokenKind.VOID)

_EQUALITY_TOKENS = (TokenKind.EQUALS, TokenKind.NOTEQUALS)
_RELATIONAL_TOKENS = (TokenKind.LESS, TokenKind.GREATER, TokenKind.LESSEQ, TokenKind.GREATEREQ)


class Parser:
    def __init__(self, tokens: List[Token], filename: Optional[str] = None) -> None:
        self.tokens = tokens
        self.index = 0
        self.filename = filename

    @classmethod
    def from_source(cls, source: str, filename: Optional[str] = None) -> "Parser":
        lexer = Lexer(source, filename=filename or "<input>")
        tokens = lexer.tokenize()
        return cls(tokens, filename)

    # --- token utilities ---

    def _peek(self, ahead: int = 0) -> Token:
        pos = min(self.index + ahead, len(self.tokens) - 1)
        return self.tokens[pos]

    def _last(self) -> Token:
        return self.tokens[self.index - 1 if self.index > 0 else 0]

    def _at_end(self) -> bool:
        return self._peek().kind is TokenKind.EOF

    def _advance(self) -> Token:
        tok = self._peek()
        if not self._at_end():
            self.index += 1
        return tok

    def _check(self, *kinds: TokenKind) -> bool:
        return self._peek().kind in kinds

    def _match(self, *kinds: TokenKind) -> bool:
        if self._peek().kind in kinds:
            self._advance()
            return True
        return False

    def _expect(self, kind: TokenKind, msg: str) -> Token:
        if not self._check(kind):
            raise ParseError(f"{msg}, got {self._peek()} instead", self._peek(), self.filename)
        return self._advance()

    def _error(self, msg: str) -> ParseError:
        return ParseError(msg, self._peek(), self.filename)

    def _span_start(self) -> Span:
        here = self._peek()
        return Span(here.line, here.column, here.line, here.column)

    def _extend_span(self, start: Span) -> Span:
        here = self._last()
        if (here.line, here.column) < (start.start_line, start.start_column):
            # nothing consumed since start: empty construct
            return start
        return Span(
            start.start_line,
            start.start_column,
            here.line,
            here.column + len(here.text),
        )

    def _token_span(self, tok: Token) -> Span:
        return Span(tok.line, tok.column, tok.line, tok.column + len(tok.text))

    def _expect_id(self, msg: str) -> IdNode:
        tok = self._expect(TokenKind.ID, msg)
        return IdNode(tok.text, span=self._token_span(tok))

    def _is_decl_start(self) -> bool:
        return self._check(TokenKind.STRUCT, *_TYPE_KEYWORDS)

    # --- entry point ---

    def parse_program(self, filename: Optional[str] = None) -> Program:
        # program ::= decl*
        if filename is not None:
            self.filename = filename

        start = self._span_start()
        decls: List[Decl] = []
        while not self._at_end():
            decls.append(self._parse_top_level_decl())
        decl_list = DeclList(decls, span=self._extend_span(start))
        return Program(decl_list, filename=self.filename, span=self._extend_span(start))

    # --- declarations ---

    def _parse_top_level_decl(self) -> Decl:
        if self._check(TokenKind.STRUCT):
            # struct ID '{' ... is a definition, struct ID ID ';' a variable
            if self._peek(2).kind is TokenKind.LCURLY:
                return self._parse_struct_decl()
            return self._parse_var_decl()
        if self._check(*_TYPE_KEYWORDS):
            if self._peek(2).kind is TokenKind.LPAREN:
                return self._parse_fn_decl()
            return self._parse_var_decl()
        raise self._error(f"[PAR-0010] unexpected token at top level: {self._peek()}")

    def _parse_type(self) -> TypeNode:
        start = self._span_start()
        if self._match(TokenKind.INT):
            return IntTypeNode(span=self._extend_span(start))
        if self._match(TokenKind.BOOL):
            return BoolTypeNode(span=self._extend_span(start))
        if self._match(TokenKind.VOID):
            return VoidTypeNode(span=self._extend_span(start))
        raise self._error(f"[PAR-0020] expected type name, got {self._peek()} instead")

    def _parse_var_decl(self) -> VarDecl:
        # varDecl ::= type ID ';' | 'struct' ID ID ';'
        start = self._span_start()
        if self._match(TokenKind.STRUCT):
            struct_id = self._expect_id("[PAR-0030] expected struct name")
            type_node: TypeNode = StructTypeNode(struct_id, span=self._extend_span(start))
        else:
            type_node = self._parse_type()
        var_id = self._expect_id("[PAR-0031] expected variable name")
        self._expect(TokenKind.SEMI, "[PAR-0032] expected ';' after variable declaration")
        return VarDecl(type_node, var_id, span=self._extend_span(start))

    def _parse_var_decl_list(self) -> DeclList:
        start = self._span_start()
        decls: List[Decl] = []
        while self._is_decl_start():
            decls.append(self._parse_var_decl())
        return DeclList(decls, span=self._extend_span(start))

    def _parse_struct_decl(self) -> StructDecl:
        # structDecl ::= 'struct' ID '{' varDecl+ '}' ';'
        start = self._span_start()
        self._expect(TokenKind.STRUCT, "[PAR-0040] expected 'struct'")
        struct_id = self._expect_id("[PAR-0041] expected struct name")
        self._expect(TokenKind.LCURLY, "[PAR-0042] expected '{' after struct name")
        fields = self._parse_var_decl_list()
        if not fields.decls:
            raise self._error("[PAR-0043] struct must declare at least one field")
        self._expect(TokenKind.RCURLY, "[PAR-0044] expected '}' after struct body")
        self._expect(TokenKind.SEMI, "[PAR-0045] expected ';' after struct declaration")
        return StructDecl(struct_id, fields, span=self._extend_span(start))

    def _parse_fn_decl(self) -> FnDecl:
        # fnDecl ::= type ID '(' [formalDecl (',' formalDecl)*] ')' fnBody
        start = self._span_start()
        ret_type = self._parse_type()
        fn_id = self._expect_id("[PAR-0050] expected function name")

        formals_start = self._span_start()
        self._expect(TokenKind.LPAREN, "[PAR-0051] expected '(' after function name")
        formals: List[FormalDecl] = []
        if not self._check(TokenKind.RPAREN):
            while True:
                formal_start = self._span_start()
                formal_type = self._parse_type()
                formal_id = self._expect_id("[PAR-0052] expected parameter name")
                formals.append(FormalDecl(formal_type, formal_id, span=self._extend_span(formal_start)))
                if not self._match(TokenKind.COMMA):
                    break
        self._expect(TokenKind.RPAREN, "[PAR-0053] expected ')' after parameters")
        formals_list = FormalsList(formals, span=self._extend_span(formals_start))

        body_start = self._span_start()
        decl_list, stmt_list = self._parse_block("[PAR-0054] expected '{' to start function body")
        body = FnBody(decl_list, stmt_list, span=self._extend_span(body_start))
        return FnDecl(ret_type, fn_id, formals_list, body, span=self._extend_span(start))

    # --- blocks and statements ---

    def _parse_block(self, open_msg: str) -> Tuple[DeclList, StmtList]:
        # '{' varDecl* stmt* '}'
        self._expect(TokenKind.LCURLY, open_msg)
        decl_list = self._parse_var_decl_list()
        start = self._span_start()
        stmts: List[Stmt] = []
        while not self._check(TokenKind.RCURLY):
            if self._at_end():
                raise self._error("[PAR-0060] expected '}' before end of file")
            if self._is_decl_start():
                raise self._error("[PAR-0061] declarations must precede statements in a block")
            stmts.append(self._parse_stmt())
        stmt_list = StmtList(stmts, span=self._extend_span(start))
        self._expect(TokenKind.RCURLY, "[PAR-0062] expected '}' after block")
        return decl_list, stmt_list

    def _parse_stmt(self) -> Stmt:
        if self._check(TokenKind.CIN):
            return self._parse_read_stmt()
        if self._check(TokenKind.COUT):
            return self._parse_write_stmt()
        if self._check(TokenKind.IF):
            return self._parse_if_stmt()
        if self._check(TokenKind.WHILE):
            return self._parse_while_stmt()
        if self._check(TokenKind.RETURN):
            return self._parse_return_stmt()

        start = self._span_start()
        exp = self._parse_exp()
        if self._check(TokenKind.PLUSPLUS, TokenKind.MINUSMINUS):
            op_tok = self._advance()
            if not is_loc(exp):
                raise ParseError(f"[PAR-0070] operand of '{op_tok.text}' must be a location", op_tok,
                                 self.filename)
            self._expect(TokenKind.SEMI, "[PAR-0071] expected ';' after statement")
            if op_tok.kind is TokenKind.PLUSPLUS:
                return PostIncStmt(exp, span=self._extend_span(start))
            return PostDecStmt(exp, span=self._extend_span(start))

        self._expect(TokenKind.SEMI, "[PAR-0071] expected ';' after statement")
        if isinstance(exp, AssignExp):
            return AssignStmt(exp, span=self._extend_span(start))
        if isinstance(exp, CallExp):
            return CallStmt(exp, span=self._extend_span(start))
        raise ParseError("[PAR-0072] expression statement must be an assignment or a call",
                         self._last(), self.filename)

    def _parse_read_stmt(self) -> ReadStmt:
        start = self._span_start()
        self._expect(TokenKind.CIN, "[PAR-0080] expected 'cin'")
        self._expect(TokenKind.READ, "[PAR-0081] expected '>>' after 'cin'")
        target = self._parse_loc()
        self._expect(TokenKind.SEMI, "[PAR-0082] expected ';' after input statement")
        return ReadStmt(target, span=self._extend_span(start))

    def _parse_write_stmt(self) -> WriteStmt:
        start = self._span_start()
        self._expect(TokenKind.COUT, "[PAR-0090] expected 'cout'")
        self._expect(TokenKind.WRITE, "[PAR-0091] expected '<<' after 'cout'")
        value = self._parse_exp()
        self._expect(TokenKind.SEMI, "[PAR-0092] expected ';' after output statement")
        return WriteStmt(value, span=self._extend_span(start))

    def _parse_condition(self, keyword: str) -> Exp:
        self._expect(TokenKind.LPAREN, f"[PAR-0100] expected '(' after '{keyword}'")
        cond = self._parse_exp()
        self._expect(TokenKind.RPAREN, "[PAR-0101] expected ')' after condition")
        return cond

    def _parse_if_stmt(self) -> Stmt:
        start = self._span_start()
        self._expect(TokenKind.IF, "[PAR-0110] expected 'if'")
        cond = self._parse_condition("if")
        then_decls, then_stmts = self._parse_block("[PAR-0111] expected '{' after if condition")
        if self._match(TokenKind.ELSE):
            else_decls, else_stmts = self._parse_block("[PAR-0112] expected '{' after 'else'")
            return IfElseStmt(cond, then_decls, then_stmts, else_decls, else_stmts, span=self._extend_span(start))
        return IfStmt(cond, then_decls, then_stmts, span=self._extend_span(start))

    def _parse_while_stmt(self) -> WhileStmt:
        start = self._span_start()
        self._expect(TokenKind.WHILE, "[PAR-0120] expected 'while'")
        cond = self._parse_condition("while")
        decl_list, stmt_list = self._parse_block("[PAR-0121] expected '{' after while condition")
        return WhileStmt(cond, decl_list, stmt_list, span=self._extend_span(start))

    def _parse_return_stmt(self) -> ReturnStmt:
        start = self._span_start()
        self._expect(TokenKind.RETURN, "[PAR-0130] expected 'return'")
        if self._match(TokenKind.SEMI):
            return ReturnStmt(None, span=self._extend_span(start))
        value = self._parse_exp()
        self._expect(TokenKind.SEMI, "[PAR-0131] expected ';' after return value")
        return ReturnStmt(value, span=self._extend_span(start))

    # --- expressions ---

    def _parse_exp(self) -> Exp:
        # assignment is right-associative and binds loosest
        start = self._span_start()
        expr = self._parse_or_exp()
        if self._check(TokenKind.ASSIGN):
            eq_tok = self._advance()
            if not is_loc(expr):
                raise ParseError("[PAR-0200] left-hand side of '=' must be a location", eq_tok, self.filename)
            value = self._parse_exp()
            return AssignExp(expr, value, span=self._extend_span(start))
        return expr

    def _parse_or_exp(self) -> Exp:
        start = self._span_start()
        expr = self._parse_and_exp()
        while self._match(TokenKind.OR):
            right = self._parse_and_exp()
            expr = BinaryExp("||", expr, right, span=self._extend_span(start))
        return expr

    def _parse_and_exp(self) -> Exp:
        start = self._span_start()
        expr = self._parse_equality_exp()
        while self._match(TokenKind.AND):
            right = self._parse_equality_exp()
            expr = BinaryExp("&&", expr, right, span=self._extend_span(start))
        return expr

    def _parse_equality_exp(self) -> Exp:
        start = self._span_start()
        expr = self._parse_rel_exp()
        if self._match(*_EQUALITY_TOKENS):
            op_tok = self._last()
            right = self._parse_rel_exp()
            expr = BinaryExp(op_tok.text, expr, right, span=self._extend_span(start))
            if self._check(*_EQUALITY_TOKENS):
                raise self._error("[PAR-0210] equality operators are non-associative; use parentheses")
        return expr

    def _parse_rel_exp(self) -> Exp:
        start = self._span_start()
        expr = self._parse_add_exp()
        if self._match(*_RELATIONAL_TOKENS):
            op_tok = self._last()
            right = self._parse_add_exp()
            expr = BinaryExp(op_tok.text, expr, right, span=self._extend_span(start))
            if self._check(*_RELATIONAL_TOKENS):
                raise self._error("[PAR-0211] relational operators are non-associative; use parentheses")
        return expr

    def _parse_add_exp(self) -> Exp:
        start = self._span_start()
        expr = self._parse_mul_exp()
        while self._match(TokenKind.PLUS, TokenKind.MINUS):
            op_tok = self._last()
            right = self._parse_mul_exp()
            expr = BinaryExp(op_tok.text, expr, right, span=self._extend_span(start))
        return expr

    def _parse_mul_exp(self) -> Exp:
        start = self._span_start()
        expr = self._parse_unary_exp()
        while self._match(TokenKind.TIMES, TokenKind.DIVIDE):
            op_tok = self._last()
            right = self._parse_unary_exp()
            expr = BinaryExp(op_tok.text, expr, right, span=self._extend_span(start))
        return expr

    def _parse_unary_exp(self) -> Exp:
        start = self._span_start()
        if self._match(TokenKind.NOT):
            operand = self._parse_unary_exp()
            return NotExp(operand, span=self._extend_span(start))
        if self._match(TokenKind.MINUS):
            operand = self._parse_unary_exp()
            return UnaryMinusExp(operand, span=self._extend_span(start))
        return self._parse_primary_exp()

    def _parse_loc(self) -> Exp:
        # loc ::= ID ('.' ID)*
        start = self._span_start()
        loc: Exp = self._expect_id("[PAR-0220] expected identifier")
        while self._match(TokenKind.DOT):
            field_id = self._expect_id("[PAR-0221] expected field name after '.'")
            loc = DotAccessExp(loc, field_id, span=self._extend_span(start))
        return loc

    def _parse_primary_exp(self) -> Exp:
        start = self._span_start()
        tok = self._peek()

        if self._match(TokenKind.INTLIT):
            return IntLit(int(tok.text), span=self._token_span(tok))
        if self._match(TokenKind.STRINGLIT):
            return StringLit(tok.text, span=Span(tok.line, tok.column, tok.line, tok.column + len(tok.text) + 2))
        if self._match(TokenKind.TRUE):
            return TrueLit(span=self._token_span(tok))
        if self._match(TokenKind.FALSE):
            return FalseLit(span=self._token_span(tok))

        if self._match(TokenKind.LPAREN):
            inner = self._parse_exp()
            self._expect(TokenKind.RPAREN, "[PAR-0230] expected ')' after expression")
            return inner

        if self._check(TokenKind.ID):
            if self._peek(1).kind is TokenKind.LPAREN:
                return self._parse_call(start)
            return self._parse_loc()

        raise ParseError(f"[PAR-0240] unexpected token in expression: {tok}", tok, self.filename)

    def _parse_call(self, start: Span) -> CallExp:
        # call ::= ID '(' [exp (',' exp)*] ')'
        fn_id = self._expect_id("[PAR-0250] expected function name")
        args_start = self._span_start()
        self._expect(TokenKind.LPAREN, "[PAR-0251] expected '(' in call")
        args: List[Exp] = []
        if not self._check(TokenKind.RPAREN):
            while True:
                args.append(self._parse_exp())
                if not self._match(TokenKind.COMMA):
                    break
        self._expect(TokenKind.RPAREN, "[PAR-0252] expected ')' after arguments")
        return CallExp(fn_id, ExpList(args, span=self._extend_span(args_start)), span=self._extend_span(start))
