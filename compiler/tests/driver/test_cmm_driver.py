#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

from conftest import error_codes
from cmm_context import CompilationContext, LogLevel
from cmm_driver import CmmDriver
from cmm_lexer import TokenKind


def test_analyze_file(write_cmm_file):
    path = write_cmm_file(
        "ok.cmm",
        """
        int main() {
            return 0;
        }
        """,
    )

    result = CmmDriver().analyze_file(path)

    assert not result.has_errors()
    assert result.filename == str(path)
    assert result.program.filename == str(path)
    assert result.has_main


def test_diagnostics_carry_the_filename(write_cmm_file):
    path = write_cmm_file("bad.cmm", "void main() { x = 1; }\n")

    result = CmmDriver().analyze_file(path)

    (diag,) = result.diagnostics
    assert diag.filename == str(path)
    assert (diag.line, diag.column) == (1, 15)


def test_missing_file(tmp_path):
    result = CmmDriver().analyze_file(tmp_path / "missing.cmm")

    assert result.program is None
    assert error_codes(result.diagnostics) == ["DRV-0010"]


def test_semantic_passes_all_run():
    result = CmmDriver().analyze_source(
        """
        int f;
        int f;
        void g() { return 1; }
        """
    )

    assert error_codes(result.diagnostics) == ["RES-0030", "TYP-0110", "TYP-0120"]
    assert result.error_count() == 3
    assert not result.has_warnings()


def test_generate_and_compile_source():
    driver = CmmDriver()
    src = "void main() { cout << 1; }"

    items = driver.generate(driver.analyze_source(src))
    result, asm = driver.compile_source(src, filename="one.cmm")

    assert items
    assert not result.has_errors()
    assert asm.startswith("\t.text\n")
    assert "\tsyscall" in asm


def test_compile_source_with_errors():
    result, asm = CmmDriver().compile_source("int main() { return true; }")

    assert asm is None
    assert error_codes(result.diagnostics) == ["TYP-0111"]


def test_context_reaches_every_pass():
    context = CompilationContext(emit_comments=False, log_level=LogLevel.SILENT)
    driver = CmmDriver(context=context)

    result = driver.analyze_source("void main() { }")

    assert result.context is context
    assert all(getattr(item, "comment", None) is None for item in driver.generate(result))


def test_default_context():
    assert CmmDriver().context == CompilationContext.default()


def test_tokenize():
    tokens = CmmDriver().tokenize("x = 1;")

    assert [t.kind for t in tokens] == [
        TokenKind.ID, TokenKind.ASSIGN, TokenKind.INTLIT, TokenKind.SEMI, TokenKind.EOF,
    ]


def test_verbose_logging_goes_to_stderr(capsys):
    driver = CmmDriver(CompilationContext(log_level=LogLevel.DEBUG, log_rich_format=True))

    driver.analyze_source("void main() { }", filename="v.cmm")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "[INFO] Starting analysis of 'v.cmm'" in captured.err
    assert "[DEBUG]" in captured.err
