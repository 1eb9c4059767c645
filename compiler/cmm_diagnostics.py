#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import os
from dataclasses import dataclass
from typing import Optional

from cmm_ast import Node
from cmm_lexer import Token


DIAGNOSTIC_CODE_FAMILIES = {
    "LEX": [
        "LEX-0010",  # unterminated string literal
        "LEX-0020",  # unknown escape sequence
        "LEX-0030",  # integer literal out of range
        "LEX-0031",  # bad character after integer literal
        "LEX-0040",  # unexpected character
    ],
    "PAR": [
        "PAR-0010", "PAR-0020", "PAR-0030", "PAR-0031", "PAR-0032",
        "PAR-0040", "PAR-0041", "PAR-0042", "PAR-0043", "PAR-0044",
        "PAR-0045", "PAR-0050", "PAR-0051", "PAR-0052", "PAR-0053",
        "PAR-0054", "PAR-0060", "PAR-0061", "PAR-0062", "PAR-0070",
        "PAR-0071", "PAR-0072", "PAR-0080", "PAR-0081", "PAR-0082",
        "PAR-0090", "PAR-0091", "PAR-0092", "PAR-0100", "PAR-0101",
        "PAR-0110", "PAR-0111", "PAR-0112", "PAR-0120", "PAR-0121",
        "PAR-0130", "PAR-0131", "PAR-0200", "PAR-0210", "PAR-0211",
        "PAR-0220", "PAR-0221", "PAR-0230", "PAR-0240", "PAR-0250",
        "PAR-0251", "PAR-0252",
    ],
    "DRV": [
        "DRV-0010",  # cannot read source file
    ],
    "CMC": [
        "CMC-0010",  # cannot read source file (command-line tools)
    ],
    "RES": [
        "RES-0010",  # non-function declared void
        "RES-0020",  # invalid name of struct type
        "RES-0030",  # multiply declared identifier
        "RES-0031",  # multiply declared struct field
        "RES-0040",  # undeclared identifier
        "RES-0050",  # dot-access of non-struct type
        "RES-0060",  # invalid struct field name
    ],
    # ICE codes are internal compiler errors raised as exceptions,
    # not user-facing diagnostics; they are excluded from this registry.
    "TYP": [
        "TYP-0010", "TYP-0020", "TYP-0030",
        "TYP-0040", "TYP-0041", "TYP-0042", "TYP-0043", "TYP-0050",
        "TYP-0060", "TYP-0061", "TYP-0062",
        "TYP-0070", "TYP-0071", "TYP-0072",
        "TYP-0080", "TYP-0081",
        "TYP-0090", "TYP-0091", "TYP-0092", "TYP-0093",
        "TYP-0100", "TYP-0101", "TYP-0102", "TYP-0103",
        "TYP-0110", "TYP-0111", "TYP-0112",
        "TYP-0120",
    ],
}


@dataclass
class Diagnostic:
    kind: str  # "error" (fatal) or "warning"
    message: str
    filename: Optional[str] = None  # file path

    # Primary location (start of the span)
    line: Optional[int] = None
    column: Optional[int] = None

    # Optional end of span (exclusive)
    end_line: Optional[int] = None
    end_column: Optional[int] = None

    @property
    def is_fatal(self) -> bool:
        return self.kind == "error"

    # Return the one-line header; snippets will be printed at the call site
    def format(self) -> str:
        loc = ""
        if self.filename is not None:
            loc += f"{os.path.abspath(str(self.filename))}"
        if self.line is not None:
            loc += f":{self.line}"
            if self.column is not None:
                loc += f":{self.column}"
        if loc:
            loc += ": "
        return f"{loc}{self.kind}: {self.message}"


def diag_from_node(
        kind: str,
        message: str,
        *,
        filename: Optional[str],
        node: Optional[Node],
) -> Diagnostic:
    line = column = end_line = end_column = None
    if node is not None and node.span is not None:
        s = node.span
        line = s.start_line
        column = s.start_column
        end_line = s.end_line
        end_column = s.end_column
    return Diagnostic(
        kind=kind,
        message=message,
        filename=filename,
        line=line,
        column=column,
        end_line=end_line,
        end_column=end_column,
    )


def diag_from_token(
        kind: str,
        message: str,
        *,
        filename: Optional[str],
        token: Optional[Token],
) -> Diagnostic:
    line = column = None
    if token is not None:
        line = token.line
        column = token.column
    return Diagnostic(kind=kind, message=message, filename=filename, line=line, column=column)
