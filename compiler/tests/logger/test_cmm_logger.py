#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import pytest

from cmm_context import CompilationContext, LogLevel
from cmm_logger import log_debug, log_error, log_info, log_stage, log_warning


@pytest.mark.parametrize(
    "level, expected",
    [
        (LogLevel.SILENT, []),
        (LogLevel.ERROR, ["e"]),
        (LogLevel.WARNING, ["e", "w"]),
        (LogLevel.INFO, ["e", "w", "i"]),
        (LogLevel.DEBUG, ["e", "w", "i", "d"]),
    ],
)
def test_level_gates_messages(capsys, level, expected):
    context = CompilationContext(log_level=level)

    log_error(context, "e")
    log_warning(context, "w")
    log_info(context, "i")
    log_debug(context, "d")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.splitlines() == expected


def test_no_context_always_prints(capsys):
    log_debug(None, "hello")

    assert capsys.readouterr().err == "hello\n"


def test_rich_format_tags_level(capsys):
    log_warning(CompilationContext(log_level=LogLevel.WARNING, log_rich_format=True), "careful")

    assert capsys.readouterr().err.rstrip().endswith("[WARNING] careful")


def test_stage_messages(capsys):
    context = CompilationContext(log_level=LogLevel.INFO)

    log_stage(context, "Parsing", "a.cmm")
    log_stage(context, "Type checking")

    assert capsys.readouterr().err.splitlines() == ["Parsing 'a.cmm'", "Type checking..."]
