"""Output formatters for lint results."""

from __future__ import annotations

import json
from itertools import groupby
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from archlint.engine.coordinator import LintResult
    from archlint.engine.diagnostics import Diagnostic

_SEVERITY_MARKS = {"error": "✗", "warn": "!"}


def _summary_line(result: LintResult) -> str:
    elapsed_str = f"{result.elapsed_ms / 1000:.1f}s"
    stats = f"{result.files_analyzed} files analyzed, {elapsed_str}"
    if not result.diagnostics:
        text = f"No problems found ({stats})"
    else:
        total = len(result.diagnostics)
        noun = "problem" if total == 1 else "problems"
        text = (
            f"{total} {noun} ({result.error_count} errors, "
            f"{result.warning_count} warnings) ({stats})"
        )
    if result.partial:
        text += f" [partial: {result.files_skipped} files not analyzed]"
    return text


def format_rich(result: LintResult) -> str:
    """Format a LintResult as human-readable text grouped by file.

    Example output with diagnostics::

        Rules: 12 configured
        Files: 25 analyzed

        src/renderer/App.tsx
          ✗ 14:7  no-localstorage  Use the settings store instead of localStorage.

        1 problem (1 errors, 0 warnings) (25 files analyzed, 0.4s)

    Example output without diagnostics::

        Rules: 12 configured
        Files: 25 analyzed

        No problems found (25 files analyzed, 0.4s)
    """
    lines: list[str] = []

    lines.append(f"Rules: {result.rules_configured} configured")
    lines.append(f"Files: {result.files_analyzed} analyzed")
    lines.append("")

    for file_path, group in groupby(result.diagnostics, key=lambda d: d.file):
        lines.append(file_path)
        for d in group:
            mark = _SEVERITY_MARKS.get(d.severity, "?")
            lines.append(f"  {mark} {d.line}:{d.column}  {d.rule_id}  {d.message}")
        lines.append("")

    lines.append(_summary_line(result))
    return "\n".join(lines)


def diagnostic_dict(d: Diagnostic) -> dict[str, object]:
    return {
        "file": d.file,
        "line": d.line,
        "column": d.column,
        "rule_id": d.rule_id,
        "severity": d.severity,
        "message": d.message,
    }


def format_json(result: LintResult) -> str:
    """Format a LintResult as structured JSON.

    Returns a JSON string with a ``diagnostics`` array and a ``summary``
    object.  The ``diagnostics`` array is identical across runs on unchanged
    input; ``summary.elapsed_ms`` is not.
    """
    output: dict[str, object] = {
        "diagnostics": [diagnostic_dict(d) for d in result.diagnostics],
        "summary": {
            "errors": result.error_count,
            "warnings": result.warning_count,
            "files_analyzed": result.files_analyzed,
            "files_skipped": result.files_skipped,
            "rules_configured": result.rules_configured,
            "partial": result.partial,
            "passed": result.passed,
            "elapsed_ms": result.elapsed_ms,
        },
    }

    return json.dumps(output, indent=2)


def format_porcelain(result: LintResult) -> str:
    """Format a LintResult as machine-readable one-line-per-diagnostic output.

    Format: ``file:line:column:severity:rule_id:message``

    Newlines inside messages are folded into spaces.  Returns an empty
    string when there are no diagnostics.
    """
    if not result.diagnostics:
        return ""

    lines: list[str] = []
    for d in result.diagnostics:
        message = " ".join(d.message.splitlines())
        lines.append(f"{d.file}:{d.line}:{d.column}:{d.severity}:{d.rule_id}:{message}")

    return "\n".join(lines)

