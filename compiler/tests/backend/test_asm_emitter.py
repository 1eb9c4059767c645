#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import pytest

from cmm_asm_emitter import AsmEmitter, SYSCALL_PRINT_INT
from cmm_instructions import (
    Directive, Imm, Indexed, Instruction, LabelDef, LabelRef, A0, FP, RA, SP, T0, T1, V0, render, render_item,
)


def _plain(items):
    return [Instruction(i.opcode, i.operands) if isinstance(i, Instruction) else i for i in items]


def test_push_and_pop_protocol():
    em = AsmEmitter(emit_comments=False)
    em.push(T0)
    em.pop(T1)

    assert em.get_output() == [
        Instruction("sw", (T0, Indexed(SP, 0))),
        Instruction("subu", (SP, SP, Imm(4))),
        Instruction("lw", (T1, Indexed(SP, 4))),
        Instruction("addu", (SP, SP, Imm(4))),
    ]


def test_labels_are_fresh():
    em = AsmEmitter()

    labels = [em.next_label() for _ in range(3)]

    assert labels == [".L0", ".L1", ".L2"]


def test_prologue_skips_empty_locals():
    em = AsmEmitter(emit_comments=False)
    em.prologue(formals_size=8, locals_size=0)

    assert em.get_output()[-1] == Instruction("addu", (FP, SP, Imm(16)))


def test_epilogue_restores_saved_registers():
    em = AsmEmitter(emit_comments=False)
    em.epilogue("_f.exit", formals_size=8, is_main=False)

    assert em.get_output() == [
        LabelDef("_f.exit"),
        Instruction("lw", (RA, Indexed(FP, -8))),
        Instruction("move", (T0, FP)),
        Instruction("lw", (FP, Indexed(FP, -12))),
        Instruction("move", (SP, T0)),
        Instruction("jr", (RA,)),
    ]


def test_print_value_uses_a0():
    em = AsmEmitter()
    em.print_value(SYSCALL_PRINT_INT)

    assert _plain(em.get_output()) == [
        Instruction("move", (A0, T0)),
        Instruction("li", (V0, Imm(1))),
        Instruction("syscall"),
    ]


def test_global_slot_and_string_constant():
    em = AsmEmitter()
    em.global_slot("_g", 12)
    em.string_constant(".L0", "hi\\n")

    assert em.get_output() == [
        Directive("data"),
        Directive("align", ("2",)),
        LabelDef("_g"),
        Directive("space", ("12",)),
        Directive("data"),
        LabelDef(".L0"),
        Directive("asciiz", ('"hi\\n"',)),
        Directive("text"),
    ]


@pytest.mark.parametrize(
    "item, text",
    [
        (Instruction("sw", (T0, Indexed(SP, 0)), "push $t0"), "\tsw\t$t0, 0($sp)\t\t# push $t0"),
        (Instruction("lw", (T0, LabelRef("_g"))), "\tlw\t$t0, _g"),
        (Instruction("syscall"), "\tsyscall"),
        (LabelDef("main"), "main:"),
        (Directive("space", ("4",)), "\t.space 4"),
        (Directive("text"), "\t.text"),
    ],
)
def test_render_item(item, text):
    assert render_item(item) == text


def test_render_joins_lines():
    assert render([LabelDef("main"), Instruction("jr", (RA,))]) == "main:\n\tjr\t$ra\n"


def test_render_rejects_unknown_items():
    with pytest.raises(TypeError):
        render_item("nop")
