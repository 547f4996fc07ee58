"""Tests for the archlint CLI: lint, rules and check-config commands."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
from click.testing import CliRunner

from archlint import __version__
from archlint.cli import main
from archlint.engine.coordinator import LintResult

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

CONFIG_YAML = (
    "version: 1\n"
    "blocks:\n"
    "  - name: renderer\n"
    "    files: ['src/**/*.{ts,tsx}']\n"
    "    rules:\n"
    "      no-localstorage: warn\n"
    "      no-direct-file-open: error\n"
)


@pytest.fixture()
def cli_project(write: Callable[[str, str], Path], tmp_path: Path) -> Path:
    write("archlint.yml", CONFIG_YAML)
    write("src/settings.ts", "export const theme = localStorage.getItem('theme');\n")
    return tmp_path


class TestLintCommand:
    def test_warnings_only_exit_zero(self, cli_project: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["lint", "--project", str(cli_project), "--format", "porcelain"])
        assert result.exit_code == 0, result.output
        assert result.stdout.strip() == (
            "src/settings.ts:1:22:warn:no-localstorage:"
            "Avoid localStorage directly. Use the centralized storage module, "
            "which handles serialization, namespacing and migration."
        )

    def test_errors_exit_one(
        self, cli_project: Path, write: Callable[[str, str], Path]
    ) -> None:
        write("src/open.ts", "shell.openPath('/tmp/x');\n")
        runner = CliRunner()
        result = runner.invoke(main, ["lint", "--project", str(cli_project), "--format", "porcelain"])
        assert result.exit_code == 1
        lines = result.stdout.strip().splitlines()
        assert [line.split(":")[0] for line in lines] == ["src/open.ts", "src/settings.ts"]

    def test_clean_project(self, tmp_path: Path, write: Callable[[str, str], Path]) -> None:
        write("archlint.yml", CONFIG_YAML)
        write("src/ok.ts", "export const x = 1;\n")
        runner = CliRunner()
        result = runner.invoke(main, ["lint", "--project", str(tmp_path)])
        assert result.exit_code == 0
        assert result.stdout == ""

    def test_json_format(self, cli_project: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["lint", "--project", str(cli_project), "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["diagnostics"][0]["rule_id"] == "no-localstorage"
        assert data["summary"]["passed"] is True

    def test_rich_format(self, cli_project: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["lint", "--project", str(cli_project), "--format", "rich"])
        assert result.exit_code == 0
        assert "src/settings.ts" in result.stdout
        assert "1 problem (0 errors, 1 warnings)" in result.stdout

    def test_paths_argument(self, cli_project: Path, write: Callable[[str, str], Path]) -> None:
        write("src/other.ts", "localStorage.clear();\n")
        runner = CliRunner()
        result = runner.invoke(
            main,
            ["lint", "src/other.ts", "--project", str(cli_project), "--format", "porcelain"],
        )
        assert result.exit_code == 0
        assert result.stdout.startswith("src/other.ts:1:1:warn:no-localstorage:")

    def test_explicit_config(self, tmp_path: Path, write: Callable[[str, str], Path]) -> None:
        config = write("policy/arch.yml", CONFIG_YAML)
        write("src/open.ts", "shell.showItemInFolder(p);\n")
        runner = CliRunner()
        result = runner.invoke(
            main,
            ["lint", "--project", str(tmp_path), "--config", str(config), "--jobs", "2"],
        )
        assert result.exit_code == 1

    def test_configuration_error_exit_two(
        self, tmp_path: Path, write: Callable[[str, str], Path]
    ) -> None:
        write("archlint.yml", "version: 1\nblocks:\n  - files: ['src/**']\n    rules:\n      nope: error\n")
        write("src/a.ts", "localStorage.clear();\n")
        runner = CliRunner()
        result = runner.invoke(main, ["lint", "--project", str(tmp_path), "--format", "porcelain"])
        assert result.exit_code == 2
        assert "unknown rule id" in result.output
        assert result.stdout == ""

    def test_missing_config_exit_two(self, tmp_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["lint", "--project", str(tmp_path)])
        assert result.exit_code == 2
        assert "No archlint configuration" in result.output

    def test_partial_run_exit_three(
        self, cli_project: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def fake_lint(*args: object, **kwargs: object) -> LintResult:
            return LintResult(partial=True, files_skipped=2)

        monkeypatch.setattr("archlint.engine.coordinator.lint", fake_lint)
        runner = CliRunner()
        result = runner.invoke(main, ["lint", "--project", str(cli_project), "--format", "json"])
        assert result.exit_code == 3
        assert "partial" in result.output


class TestRulesCommand:
    def test_lists_builtin_rules(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["rules"])
        assert result.exit_code == 0
        for rule_id in (
            "no-restricted-imports",
            "no-restricted-syntax",
            "no-direct-navigation-state",
            "no-localstorage",
            "no-direct-platform-check",
            "no-hardcoded-path-separator",
            "no-direct-file-open",
            "no-inline-source-auth-check",
        ):
            assert rule_id in result.output

    def test_json(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["rules", "--json"])
        data = json.loads(result.stdout)
        assert data[0] == {
            "rule_id": "no-restricted-imports",
            "description": "Ban imports of specific module specifiers.",
        }


class TestCheckConfigCommand:
    def test_valid(self, cli_project: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["check-config", "--project", str(cli_project)])
        assert result.exit_code == 0
        assert "archlint.yml: OK (1 blocks, 2 rule entries)" in result.output

    def test_verbose_lists_blocks(self, cli_project: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["-v", "check-config", "--project", str(cli_project)])
        assert "renderer: src/**/*.{ts,tsx} -> no-localstorage, no-direct-file-open" in result.output

    def test_invalid(self, tmp_path: Path, write: Callable[[str, str], Path]) -> None:
        write("archlint.yml", "version: 1\nblocks:\n  - files: ['src/**.ts']\n")
        runner = CliRunner()
        result = runner.invoke(main, ["check-config", "--project", str(tmp_path)])
        assert result.exit_code == 2
        assert "Error:" in result.output


class TestVersion:
    def test_version(self) -> None:
        runner = CliRunner()
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output
