# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""Verify riskglobe source files carry the standard 2-line MIT license header."""

from pathlib import Path

SRC_ROOT = Path(__file__).resolve().parent.parent / "src" / "riskglobe"

EXPECTED_HEADER_LINES = [
    "# Copyright (c) 2026 Jeroen Visser. All rights reserved.",
    "# Licensed under the MIT License — see LICENSE.",
]

# Package root docstring stands alone.
EXEMPT = {SRC_ROOT / "__init__.py"}


def _collect_py_files():
    return sorted(p for p in SRC_ROOT.rglob("*.py") if p not in EXEMPT)


def test_all_source_files_have_mit_header():
    """Every module under src/riskglobe/ must start with the 2-line header."""
    files = _collect_py_files()
    assert len(files) > 0, "No .py files found in riskglobe package"

    violations = []
    for py_file in files:
        lines = py_file.read_text(encoding="utf-8").splitlines()
        if len(lines) < 2:
            violations.append((py_file, "File has fewer than 2 lines"))
            continue
        for i, expected in enumerate(EXPECTED_HEADER_LINES):
            if lines[i] != expected:
                violations.append((py_file, f"Line {i + 1}: expected {expected!r}, got {lines[i]!r}"))
                break

    if violations:
        msg_parts = [f"\n{len(violations)} file(s) with non-standard headers:"]
        for path, reason in violations:
            msg_parts.append(f"  {path.relative_to(SRC_ROOT.parent)}: {reason}")
        raise AssertionError("\n".join(msg_parts))
