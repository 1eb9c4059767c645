#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from __future__ import annotations

import sys
from pathlib import Path
from textwrap import dedent
from typing import List

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from cmm_backend import Backend
from cmm_context import CompilationContext
from cmm_driver import CmmDriver


@pytest.fixture
def repo_root() -> Path:
    return PROJECT_ROOT


@pytest.fixture
def write_cmm_file(tmp_path: Path):
    def _write(name: str, content: str) -> Path:
        file_path = tmp_path / name
        file_path.write_text(dedent(content))
        return file_path

    return _write


@pytest.fixture
def analyze_source():
    """Run the front end on a C-- source string.

    Usage:
        def test_something(analyze_source):
            result = analyze_source('''
                int main() { return 0; }
            ''')
            assert not result.has_errors()
    """

    def _analyze(src: str, context: CompilationContext | None = None):
        driver = CmmDriver(context=context)
        return driver.analyze_source(dedent(src))

    return _analyze


@pytest.fixture
def codegen_source(analyze_source):
    """Analyze and generate code for a C-- source string.

    Returns (items, diagnostics). items is None if analysis failed.
    """

    def _codegen(src: str, context: CompilationContext | None = None):
        result = analyze_source(src, context)

        if result.has_errors():
            return None, result.diagnostics

        items = Backend(result).generate()
        return items, []

    return _codegen


def has_error_code(diagnostics, code: str) -> bool:
    """Check if any diagnostic contains the given error code.

    Args:
        diagnostics: List of Diagnostic objects
        code: Error code string like "TYP-0050" or "[TYP-0050]"

    Returns:
        True if any diagnostic message contains the error code
    """
    if not code.startswith("["):
        code = f"[{code}]"
    return any(code in d.message for d in diagnostics)


def error_codes(diagnostics) -> List[str]:
    """Codes of all diagnostics, in report order."""
    codes = []
    for d in diagnostics:
        if d.message.startswith("[") and "]" in d.message:
            codes.append(d.message[1:d.message.index("]")])
    return codes
