"""Tests for archlint.engine.report — rich, json and porcelain output."""

from __future__ import annotations

import json

from archlint.engine.coordinator import LintResult
from archlint.engine.diagnostics import Diagnostic
from archlint.engine.report import format_json, format_porcelain, format_rich


def _result(**overrides: object) -> LintResult:
    defaults: dict[str, object] = {
        "diagnostics": [
            Diagnostic("src/main/ipc.ts", 3, 1, "no-restricted-imports", "error", "Use the backend."),
            Diagnostic("src/renderer/App.tsx", 14, 7, "no-localstorage", "warn", "Avoid it."),
        ],
        "files_analyzed": 25,
        "rules_configured": 12,
        "elapsed_ms": 420.0,
    }
    defaults.update(overrides)
    return LintResult(**defaults)  # type: ignore[arg-type]


class TestFormatRich:
    def test_groups_by_file(self) -> None:
        output = format_rich(_result())
        assert "Rules: 12 configured" in output
        assert "Files: 25 analyzed" in output
        assert "src/main/ipc.ts\n  ✗ 3:1  no-restricted-imports  Use the backend." in output
        assert "src/renderer/App.tsx\n  ! 14:7  no-localstorage  Avoid it." in output
        assert "2 problems (1 errors, 1 warnings) (25 files analyzed, 0.4s)" in output

    def test_clean(self) -> None:
        output = format_rich(_result(diagnostics=[]))
        assert output.endswith("No problems found (25 files analyzed, 0.4s)")

    def test_partial(self) -> None:
        output = format_rich(_result(diagnostics=[], partial=True, files_skipped=4))
        assert "[partial: 4 files not analyzed]" in output


class TestFormatJson:
    def test_structure(self) -> None:
        data = json.loads(format_json(_result()))
        assert data["diagnostics"][0] == {
            "file": "src/main/ipc.ts",
            "line": 3,
            "column": 1,
            "rule_id": "no-restricted-imports",
            "severity": "error",
            "message": "Use the backend.",
        }
        summary = data["summary"]
        assert summary["errors"] == 1
        assert summary["warnings"] == 1
        assert summary["files_analyzed"] == 25
        assert summary["partial"] is False
        assert summary["passed"] is False


class TestFormatPorcelain:
    def test_one_line_per_diagnostic(self) -> None:
        assert format_porcelain(_result()).splitlines() == [
            "src/main/ipc.ts:3:1:error:no-restricted-imports:Use the backend.",
            "src/renderer/App.tsx:14:7:warn:no-localstorage:Avoid it.",
        ]

    def test_multiline_message_folded(self) -> None:
        diag = Diagnostic("a.ts", 1, 1, "no-restricted-syntax", "error", "Line one.\nLine two.")
        assert format_porcelain(_result(diagnostics=[diag])) == (
            "a.ts:1:1:error:no-restricted-syntax:Line one. Line two."
        )

    def test_empty(self) -> None:
        assert format_porcelain(_result(diagnostics=[])) == ""
