#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

"""Every Python source file carries the license and copyright notice."""

import re
from pathlib import Path

COPYRIGHT_RE = re.compile(r"Copyright\s*\(c\)\s*\d{4}(?:-\d{4})?\b")
SPDX_RE = re.compile(r"SPDX-License-Identifier:\s*MIT OR Apache-2\.0")
MAX_SCAN_LINES = 20


def _read_head(path: Path, max_lines: int) -> str:
    with path.open("r", encoding="utf-8", errors="replace") as f:
        return "".join(line for _, line in zip(range(max_lines), f))


def _sources(root: Path):
    yield from sorted(root.glob("*.py"))
    yield from sorted((root / "tests").rglob("*.py"))


def test_sources_have_license_header(repo_root):
    missing = []
    scanned = 0
    for path in _sources(repo_root):
        scanned += 1
        head = _read_head(path, MAX_SCAN_LINES)
        if not (COPYRIGHT_RE.search(head) and SPDX_RE.search(head)):
            missing.append(path.relative_to(repo_root).as_posix())

    assert scanned > 0
    assert missing == []
