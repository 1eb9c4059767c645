"""
Target instruction model

The code generator produces an ordered list of items, each one of:
  - Instruction: an opcode with register / immediate / label / indexed operands
  - LabelDef:    a label definition
  - Directive:   a raw assembler directive (data area, alignment, string constants)

`render` turns the list into MIPS-style assembly text.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union


# --- operands ---

@dataclass(frozen=True)
class Reg:
    name: str

    def render(self) -> str:
        return f"${self.name}"


@dataclass(frozen=True)
class Imm:
    value: int

    def render(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class LabelRef:
    name: str

    def render(self) -> str:
        return self.name


@dataclass(frozen=True)
class Indexed:
    """Memory operand `offset(base)`."""
    base: Reg
    offset: int

    def render(self) -> str:
        return f"{self.offset}({self.base.render()})"


Operand = Union[Reg, Imm, LabelRef, Indexed]


# Fixed register convention
FP = Reg("fp")
SP = Reg("sp")
RA = Reg("ra")
V0 = Reg("v0")
A0 = Reg("a0")
T0 = Reg("t0")
T1 = Reg("t1")
T2 = Reg("t2")
ZERO = Reg("zero")


# --- items ---

@dataclass(frozen=True)
class Instruction:
    opcode: str
    operands: Tuple[Operand, ...] = ()
    comment: Optional[str] = None


@dataclass(frozen=True)
class LabelDef:
    name: str
    comment: Optional[str] = None


@dataclass(frozen=True)
class Directive:
    name: str  # without the leading dot, e.g. "data", "space", "asciiz"
    args: Tuple[str, ...] = ()


AsmItem = Union[Instruction, LabelDef, Directive]


def render_item(item: AsmItem) -> str:
    if isinstance(item, Instruction):
        line = f"\t{item.opcode}"
        if item.operands:
            line += "\t" + ", ".join(op.render() for op in item.operands)
        if item.comment:
            line += f"\t\t# {item.comment}"
        return line
    if isinstance(item, LabelDef):
        line = f"{item.name}:"
        if item.comment:
            line += f"\t\t# {item.comment}"
        return line
    if isinstance(item, Directive):
        line = f"\t.{item.name}"
        if item.args:
            line += " " + ", ".join(item.args)
        return line
    raise TypeError(f"not an assembly item: {item!r}")


def render(items: Sequence[AsmItem]) -> str:
    lines: List[str] = [render_item(item) for item in items]
    return "\n".join(lines) + "\n"
