"""Tests for archlint.engine.config — YAML loading and schema validation."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from archlint.engine.config import find_config, load_config, parse_config
from archlint.engine.errors import ConfigurationError, SelectorSyntaxError
from archlint.engine.restrictions import BannedImport

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from archlint.engine.registry import RuleRegistry


def _config(*blocks: dict[str, object], **extra: object) -> dict[str, object]:
    return {"version": 1, "blocks": list(blocks), **extra}


# ---------------------------------------------------------------------------
# parse_config
# ---------------------------------------------------------------------------


class TestParseConfig:
    def test_minimal(self, registry: RuleRegistry) -> None:
        config = parse_config(
            _config({"name": "app", "files": ["src/**"], "rules": {"no-localstorage": "warn"}}),
            registry,
        )
        assert config.version == 1
        assert len(config.blocks) == 1
        block = config.blocks[0]
        assert block.name == "app"
        assert block.rules[0].rule_id == "no-localstorage"
        assert block.rules[0].severity == "warn"
        assert block.rules[0].block_name == "app"
        assert config.rule_count == 1

    def test_default_block_name(self, registry: RuleRegistry) -> None:
        config = parse_config(
            _config({"files": "src/**", "rules": {"no-localstorage": "warn"}}), registry
        )
        assert config.blocks[0].name == "block-0"
        assert config.blocks[0].files.patterns == ("src/**",)

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("error", "error"), ("warn", "warn"), ("off", "off"), (2, "error"), (1, "warn"),
         (0, "off"), (False, "off"), (["warn"], "warn")],
    )
    def test_severity_forms(self, registry: RuleRegistry, raw: object, expected: str) -> None:
        config = parse_config(
            _config({"files": ["src/**"], "rules": {"no-localstorage": raw}}), registry
        )
        assert config.blocks[0].rules[0].severity == expected

    @pytest.mark.parametrize("raw", ["fatal", 3, True, [], None])
    def test_invalid_severity(self, registry: RuleRegistry, raw: object) -> None:
        with pytest.raises(ConfigurationError):
            parse_config(_config({"files": ["src/**"], "rules": {"no-localstorage": raw}}), registry)

    def test_default_ignores_always_present(self, registry: RuleRegistry) -> None:
        config = parse_config(_config(ignores=["dist/**"]), registry)
        assert "**/node_modules/**" in config.ignores.patterns
        assert "dist/**" in config.ignores.patterns

    def test_restricted_imports_options(self, registry: RuleRegistry) -> None:
        config = parse_config(
            _config(
                {
                    "files": ["src/**"],
                    "rules": {
                        "no-restricted-imports": [
                            "error",
                            {"paths": [{"name": "react-hotkeys-hook", "message": "Use useAction."}]},
                            "lodash",
                        ]
                    },
                }
            ),
            registry,
        )
        assert config.blocks[0].rules[0].options == (
            BannedImport("react-hotkeys-hook", "Use useAction."),
            BannedImport("lodash", "'lodash' import is restricted from being used."),
        )

    def test_restricted_syntax_eslint_form(self, registry: RuleRegistry) -> None:
        config = parse_config(
            _config(
                {
                    "files": ["src/**"],
                    "rules": {
                        "no-restricted-syntax": [
                            "error",
                            {"selector": "CallExpression[callee.name='fetch']", "message": "a"},
                            {"selector": "ImportDeclaration[source.value='x']", "message": "b"},
                        ]
                    },
                }
            ),
            registry,
        )
        options = config.blocks[0].rules[0].options
        assert [item.message for item in options] == ["a", "b"]  # type: ignore[attr-defined]

    def test_off_without_options_is_valid(self, registry: RuleRegistry) -> None:
        config = parse_config(
            _config({"files": ["src/**"], "rules": {"no-restricted-imports": "off"}}), registry
        )
        assert config.blocks[0].rules[0].options is None


class TestParseConfigErrors:
    def test_not_a_mapping(self, registry: RuleRegistry) -> None:
        with pytest.raises(ConfigurationError, match="must be a mapping"):
            parse_config(["version", 1], registry)

    def test_missing_version(self, registry: RuleRegistry) -> None:
        with pytest.raises(ConfigurationError, match="version"):
            parse_config({"blocks": []}, registry)

    def test_unsupported_version(self, registry: RuleRegistry) -> None:
        with pytest.raises(ConfigurationError, match="unsupported version"):
            parse_config({"version": 2, "blocks": []}, registry)

    def test_unknown_rule_id(self, registry: RuleRegistry) -> None:
        with pytest.raises(ConfigurationError, match="unknown rule id"):
            parse_config(_config({"files": ["src/**"], "rules": {"no-such-rule": "error"}}), registry)

    def test_malformed_glob(self, registry: RuleRegistry) -> None:
        with pytest.raises(ConfigurationError, match="glob"):
            parse_config(_config({"files": ["src/**.ts"], "rules": {}}), registry)

    def test_missing_files(self, registry: RuleRegistry) -> None:
        with pytest.raises(ConfigurationError, match="files"):
            parse_config(_config({"rules": {"no-localstorage": "warn"}}), registry)

    def test_duplicate_block_names(self, registry: RuleRegistry) -> None:
        block = {"name": "main", "files": ["src/**"], "rules": {"no-localstorage": "warn"}}
        with pytest.raises(ConfigurationError, match="duplicate block name 'main'"):
            parse_config(_config(block, dict(block)), registry)

    def test_unknown_block_key(self, registry: RuleRegistry) -> None:
        with pytest.raises(ConfigurationError, match="unknown keys"):
            parse_config(_config({"files": ["src/**"], "rule": {}}), registry)

    def test_selector_syntax_error(self, registry: RuleRegistry) -> None:
        data = _config(
            {"files": ["src/**"], "rules": {"no-restricted-syntax": ["error", "CallExpression["]}}
        )
        with pytest.raises(SelectorSyntaxError):
            parse_config(data, registry)

    def test_misspelled_node_kind(self, registry: RuleRegistry) -> None:
        selector = "call_expresion[function.name='fetch']"
        data = _config(
            {"files": ["src/**"], "rules": {"no-restricted-syntax": ["error", selector]}}
        )
        with pytest.raises(ConfigurationError, match="unknown node kind 'call_expresion'"):
            parse_config(data, registry)

    def test_restricted_imports_needs_paths(self, registry: RuleRegistry) -> None:
        data = _config({"files": ["src/**"], "rules": {"no-restricted-imports": "error"}})
        with pytest.raises(ConfigurationError, match="at least one banned path"):
            parse_config(data, registry)

    def test_builtin_rule_rejects_options(self, registry: RuleRegistry) -> None:
        data = _config({"files": ["src/**"], "rules": {"no-localstorage": ["warn", {"x": 1}]}})
        with pytest.raises(ConfigurationError, match="does not accept options"):
            parse_config(data, registry)


# ---------------------------------------------------------------------------
# load_config / find_config
# ---------------------------------------------------------------------------


class TestLoadConfig:
    def test_yaml_file(self, registry: RuleRegistry, write: Callable[[str, str], Path]) -> None:
        path = write(
            "archlint.yml",
            "version: 1\n"
            "blocks:\n"
            "  - name: app\n"
            "    files: ['src/**/*.{ts,tsx}']\n"
            "    rules:\n"
            "      no-localstorage: warn\n"
            "      no-direct-file-open: off\n",
        )
        config = load_config(path, registry)
        severities = [entry.severity for entry in config.blocks[0].rules]
        assert severities == ["warn", "off"]

    def test_json_file(self, registry: RuleRegistry, write: Callable[[str, str], Path]) -> None:
        path = write(
            "archlint.json",
            '{"version": 1, "blocks": [{"files": ["src/**"], "rules": {"no-localstorage": 1}}]}',
        )
        assert load_config(path, registry).blocks[0].rules[0].severity == "warn"

    def test_duplicate_rule_key_in_block(
        self, registry: RuleRegistry, write: Callable[[str, str], Path]
    ) -> None:
        path = write(
            "archlint.yml",
            "version: 1\n"
            "blocks:\n"
            "  - files: ['src/**']\n"
            "    rules:\n"
            "      no-localstorage: warn\n"
            "      no-localstorage: error\n",
        )
        with pytest.raises(ConfigurationError, match="Duplicate key 'no-localstorage'"):
            load_config(path, registry)

    def test_invalid_yaml(self, registry: RuleRegistry, write: Callable[[str, str], Path]) -> None:
        path = write("archlint.yml", "version: 1\nblocks: [\n")
        with pytest.raises(ConfigurationError, match="invalid YAML"):
            load_config(path, registry)

    def test_missing_file(self, registry: RuleRegistry, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="Cannot read"):
            load_config(tmp_path / "nope.yml", registry)

    def test_find_config(self, tmp_path: Path, write: Callable[[str, str], Path]) -> None:
        assert find_config(tmp_path) is None
        hidden = write(".archlint.yml", "version: 1\n")
        assert find_config(tmp_path) == hidden
        primary = write("archlint.yml", "version: 1\n")
        assert find_config(tmp_path) == primary
