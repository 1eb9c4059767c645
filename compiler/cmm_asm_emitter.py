"""
Stack-machine assembly emitter

Handles target-specific emission: register conventions, the push/pop
protocol, frame set-up and tear-down, data directives. Knows HOW to emit
each construct, but not why or when; those decisions live in the Backend.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from typing import List, Optional

from cmm_instructions import (
    AsmItem, Directive, Imm, Indexed, Instruction, LabelDef, LabelRef, Operand, Reg, A0, FP, RA, SP, T0, V0,
)
from cmm_symbols import SLOT_SIZE

# System-call service numbers
SYSCALL_PRINT_INT = 1
SYSCALL_PRINT_STRING = 4
SYSCALL_READ_INT = 5
SYSCALL_EXIT = 10


@dataclass
class AsmBuilder:
    """
    Ordered list of emitted assembly items.
    """
    items: List[AsmItem] = field(default_factory=list)

    def emit(self, item: AsmItem) -> None:
        self.items.append(item)


@dataclass
class AsmEmitter:
    """
    Emitter for a MIPS-like stack machine.

    Conventions:
    - $sp points to the next free stack word; pushing stores then decrements.
    - $t0-$t2 are scratch registers, $v0 carries return values and
      system-call numbers, $a0 the system-call argument.
    - Labels come from a monotonically increasing counter and are never reused.
    """

    emit_comments: bool = True

    # Output builder
    out: AsmBuilder = field(default_factory=AsmBuilder)

    # Counter for generating unique labels
    _label_counter: int = 0

    def get_output(self) -> List[AsmItem]:
        return list(self.out.items)

    def next_label(self) -> str:
        label = f".L{self._label_counter}"
        self._label_counter += 1
        return label

    # ============================================================================
    # Raw emission
    # ============================================================================

    def instr(self, opcode: str, *operands: Operand, comment: Optional[str] = None) -> None:
        self.out.emit(Instruction(opcode, tuple(operands), comment if self.emit_comments else None))

    def label(self, name: str, comment: Optional[str] = None) -> None:
        self.out.emit(LabelDef(name, comment if self.emit_comments else None))

    def directive(self, name: str, *args: str) -> None:
        self.out.emit(Directive(name, tuple(args)))

    # ============================================================================
    # Evaluation stack
    # ============================================================================

    def push(self, reg: Reg, comment: Optional[str] = None) -> None:
        self.instr("sw", reg, Indexed(SP, 0), comment=comment or f"push ${reg.name}")
        self.instr("subu", SP, SP, Imm(SLOT_SIZE))

    def pop(self, reg: Reg, comment: Optional[str] = None) -> None:
        self.instr("lw", reg, Indexed(SP, SLOT_SIZE), comment=comment or f"pop ${reg.name}")
        self.instr("addu", SP, SP, Imm(SLOT_SIZE))

    # ============================================================================
    # Loads, stores, arithmetic
    # ============================================================================

    def load_imm(self, reg: Reg, value: int, comment: Optional[str] = None) -> None:
        self.instr("li", reg, Imm(value), comment=comment)

    def load_word(self, reg: Reg, addr: Operand, comment: Optional[str] = None) -> None:
        self.instr("lw", reg, addr, comment=comment)

    def store_word(self, reg: Reg, addr: Operand, comment: Optional[str] = None) -> None:
        self.instr("sw", reg, addr, comment=comment)

    def load_address(self, reg: Reg, addr: Operand, comment: Optional[str] = None) -> None:
        self.instr("la", reg, addr, comment=comment)

    def op3(self, opcode: str, dst: Reg, src1: Reg, src2: Operand) -> None:
        self.instr(opcode, dst, src1, src2)

    def move(self, dst: Reg, src: Reg) -> None:
        self.instr("move", dst, src)

    # ============================================================================
    # Control flow
    # ============================================================================

    def branch(self, target: str) -> None:
        self.instr("b", LabelRef(target))

    def branch_if_equal(self, a: Reg, b: Reg, target: str, comment: Optional[str] = None) -> None:
        self.instr("beq", a, b, LabelRef(target), comment=comment)

    def branch_cond(self, opcode: str, a: Reg, b: Reg, target: str) -> None:
        self.instr(opcode, a, b, LabelRef(target))

    def call(self, target: str) -> None:
        self.instr("jal", LabelRef(target))

    def syscall(self, service: int, comment: Optional[str] = None) -> None:
        self.load_imm(V0, service, comment=comment)
        self.instr("syscall")

    # ============================================================================
    # Data area
    # ============================================================================

    def global_slot(self, label: str, size: int) -> None:
        self.directive("data")
        self.directive("align", "2")
        self.label(label)
        self.directive("space", str(size))

    def string_constant(self, label: str, text: str) -> None:
        """Emit a static string; `text` keeps its source escapes."""
        self.directive("data")
        self.label(label)
        self.directive("asciiz", f'"{text}"')
        self.directive("text")

    # ============================================================================
    # Functions
    # ============================================================================

    def function_entry(self, label: str, is_main: bool) -> None:
        self.directive("text")
        if is_main:
            self.directive("globl", "main")
            self.label("main")
            self.label("__start")
        else:
            self.label(label)

    def prologue(self, formals_size: int, locals_size: int) -> None:
        """
        Frame after the prologue (addresses grow upwards):

            fp - 0 .. fp - (formals-4)   formals, pushed by the caller
            fp - formals                 return address
            fp - formals - 4             caller's frame pointer
            below                        locals
        """
        self.push(RA, comment="save return address")
        self.push(FP, comment="save caller's frame pointer")
        self.instr("addu", FP, SP, Imm(formals_size + 2 * SLOT_SIZE), comment="set frame pointer")
        if locals_size:
            self.instr("subu", SP, SP, Imm(locals_size), comment="reserve locals")

    def epilogue(self, exit_label: str, formals_size: int, is_main: bool) -> None:
        self.label(exit_label, comment="function epilogue")
        self.load_word(RA, Indexed(FP, -formals_size), comment="restore return address")
        self.move(T0, FP)
        self.load_word(FP, Indexed(FP, -(formals_size + SLOT_SIZE)), comment="restore frame pointer")
        self.move(SP, T0)
        if is_main:
            self.syscall(SYSCALL_EXIT, comment="exit")
        else:
            self.instr("jr", RA)

    def print_value(self, service: int) -> None:
        self.instr("move", A0, T0)
        self.syscall(service)
