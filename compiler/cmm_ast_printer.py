#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import is_dataclass, fields
from typing import Any, List, Optional

from cmm_ast import Span, Node, Program


def _format_span(span: Optional[Span]) -> str:
    if span is None:
        return ""
    return f" @{span.start_line}:{span.start_column}-{span.end_line}:{span.end_column}"


def format_node(node: Any, indent: int = 0) -> List[str]:
    """
    Generic, reflection-based AST pretty-printer.

    - Shows the node class name.
    - Prints simple scalar fields inline (excluding `span` and the
      annotations left by semantic analysis).
    - Recursively prints child Node / list-of-Node fields on new indented lines.
    - Appends a concise span annotation like `@1:1-7:1` when available.
    """
    ind = "  " * indent

    if isinstance(node, list):
        lines: List[str] = []
        for elem in node:
            lines.extend(format_node(elem, indent))
        return lines

    if isinstance(node, Node) and is_dataclass(node):
        # annotation fields (symbols, frames) are declared with repr=False
        data_fields = [f for f in fields(node) if f.name != "span" and f.repr]
        simple_parts = []
        child_fields = []

        for f in data_fields:
            value = getattr(node, f.name)
            if isinstance(value, (Node, list)):
                child_fields.append((f.name, value))
            else:
                simple_parts.append((f.name, value))

        header = node.__class__.__name__
        shown = [(name, value) for name, value in simple_parts if value is not None]
        if shown:
            inner = ", ".join(f"{name}={value!r}" for name, value in shown)
            header = f"{header}({inner})"
        header += _format_span(node.span)

        lines = [ind + header]

        for name, value in child_fields:
            if isinstance(value, list):
                if not value:
                    continue
                lines.append(ind + "  " + f"{name}:")
                for elem in value:
                    lines.extend(format_node(elem, indent + 2))
            else:
                lines.append(ind + "  " + f"{name}:")
                lines.extend(format_node(value, indent + 2))

        return lines

    return [ind + repr(node)]


def format_program(program: Program) -> str:
    """
    Convenience: pretty-print a whole Program as a string.
    """
    return "\n".join(format_node(program, indent=0))
