"""End-to-end checks of the sample Electron app policy."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from archlint.engine.coordinator import lint
from archlint.engine.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable

SAMPLE_CONFIG = Path(__file__).resolve().parents[1] / "examples" / "electron-app.archlint.yml"


@pytest.fixture()
def electron_app(tmp_path: Path) -> Path:
    """Empty app root carrying the sample policy as ``archlint.yml``."""
    shutil.copyfile(SAMPLE_CONFIG, tmp_path / "archlint.yml")
    return tmp_path


class TestElectronPolicy:
    def test_main_process_imports_provider_sdk(
        self, electron_app: Path, write: Callable[[str, str], Path]
    ) -> None:
        write("src/main/ipc.ts", "import { CopilotClient } from '@github/copilot-sdk';\n")
        result = lint(electron_app)
        assert len(result.diagnostics) == 1
        diag = result.diagnostics[0]
        assert (diag.file, diag.rule_id, diag.severity) == (
            "src/main/ipc.ts",
            "no-restricted-imports",
            "error",
        )
        assert "@craft-agent/shared/agent/backend" in diag.message

    def test_model_fetcher_calls_fetch(
        self, electron_app: Path, write: Callable[[str, str], Path]
    ) -> None:
        write(
            "src/main/model-fetchers/openai.ts",
            "export async function fetchModels() {\n"
            "  const res = await fetch('https://api.example.com/v1/models');\n"
            "  return res.json();\n"
            "}\n",
        )
        result = lint(electron_app)
        assert [(d.rule_id, d.severity, d.line) for d in result.diagnostics] == [
            ("no-restricted-syntax", "error", 2)
        ]
        assert "fetchBackendModels()" in result.diagnostics[0].message

    def test_model_fetcher_imports_provider_sdk(
        self, electron_app: Path, write: Callable[[str, str], Path]
    ) -> None:
        write(
            "src/main/model-fetchers/copilot.ts",
            "import { CopilotClient } from '@github/copilot-sdk';\n",
        )
        result = lint(electron_app)
        assert [(d.rule_id, d.line, d.column) for d in result.diagnostics] == [
            ("no-restricted-imports", 1, 1),
            ("no-restricted-syntax", 1, 1),
        ]
        imports, syntax = result.diagnostics
        assert "model discovery/validation APIs" in imports.message
        assert "backend drivers" in syntax.message

    def test_renderer_imports_hotkeys_library(
        self, electron_app: Path, write: Callable[[str, str], Path]
    ) -> None:
        write(
            "src/renderer/hooks/useShortcuts.ts",
            "import { useHotkeys } from 'react-hotkeys-hook';\n",
        )
        result = lint(electron_app)
        assert len(result.diagnostics) == 1
        assert result.diagnostics[0].severity == "error"
        assert result.diagnostics[0].message.startswith("Use useAction from @/actions")

    def test_inline_platform_comparison(
        self, electron_app: Path, write: Callable[[str, str], Path]
    ) -> None:
        write("src/renderer/lib/keys.ts", "export const isMacLike = process.platform === 'darwin';\n")
        result = lint(electron_app)
        assert [(d.rule_id, d.severity) for d in result.diagnostics] == [
            ("no-direct-platform-check", "error")
        ]

    def test_storage_access_is_only_a_warning(
        self, electron_app: Path, write: Callable[[str, str], Path]
    ) -> None:
        write("src/renderer/settings.ts", "export const theme = localStorage.getItem('theme');\n")
        result = lint(electron_app)
        assert [(d.rule_id, d.severity) for d in result.diagnostics] == [
            ("no-localstorage", "warn")
        ]
        assert not result.has_errors
        assert result.passed

    def test_conflicting_block_declaration_aborts(
        self, tmp_path: Path, write: Callable[[str, str], Path]
    ) -> None:
        write("src/renderer/settings.ts", "export const theme = localStorage.getItem('theme');\n")
        write(
            "archlint.yml",
            "version: 1\n"
            "blocks:\n"
            "  - name: renderer\n"
            "    files: ['src/**']\n"
            "    rules:\n"
            "      no-localstorage: warn\n"
            "  - name: renderer\n"
            "    files: ['src/renderer/**']\n"
            "    rules:\n"
            "      no-localstorage: error\n",
        )
        with pytest.raises(ConfigurationError, match="duplicate block name"):
            lint(tmp_path)

    def test_ignored_build_output(
        self, electron_app: Path, write: Callable[[str, str], Path]
    ) -> None:
        write("dist/main.js", "localStorage.clear();\n")
        write("node_modules/lib/index.ts", "import 'react-hotkeys-hook';\n")
        result = lint(electron_app)
        assert result.diagnostics == []
