"""
Logging utilities for the C-- compiler.

Messages go to stderr when the CompilationContext's log level admits them.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import sys
import time
from typing import Optional

from cmm_context import CompilationContext, LogLevel

_LEVEL_TAGS = {
    LogLevel.ERROR: "ERROR",
    LogLevel.WARNING: "WARNING",
    LogLevel.INFO: "INFO",
    LogLevel.DEBUG: "DEBUG",
}


def log(context: Optional[CompilationContext], log_level: LogLevel, message: str) -> None:
    """
    Print `message` to stderr if the context's level is at least `log_level`.

    Without a context the message is printed unconditionally.
    """
    if context is None:
        print(message, file=sys.stderr)
        return
    if context.log_level < log_level:
        return
    prefix = ""
    if context.log_rich_format and log_level in _LEVEL_TAGS:
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())
        prefix = f"{timestamp} [{_LEVEL_TAGS[log_level]}] "
    print(f"{prefix}{message}", file=sys.stderr)


def log_error(context: Optional[CompilationContext], message: str) -> None:
    log(context, LogLevel.ERROR, message)


def log_warning(context: Optional[CompilationContext], message: str) -> None:
    log(context, LogLevel.WARNING, message)


def log_info(context: Optional[CompilationContext], message: str) -> None:
    log(context, LogLevel.INFO, message)


def log_debug(context: Optional[CompilationContext], message: str) -> None:
    log(context, LogLevel.DEBUG, message)


def log_stage(context: Optional[CompilationContext], stage: str, filename: Optional[str] = None) -> None:
    """
    Log the start of a compilation stage.

    Args:
        context: The compilation context containing logging flags.
        stage: The name of the compilation stage (e.g., "Lexing", "Type checking").
        filename: Optional source file being processed.
    """
    if filename:
        log(context, LogLevel.INFO, f"{stage} '{filename}'")
    else:
        log(context, LogLevel.INFO, f"{stage}...")
