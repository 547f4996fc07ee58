"""Configuration loader: parse archlint.yml into immutable policy blocks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import yaml

from archlint.engine.diagnostics import NUMERIC_SEVERITIES, SEVERITY_OFF, VALID_SEVERITIES
from archlint.engine.errors import ConfigurationError
from archlint.engine.registry import RuleEntry
from archlint.engine.scope import DEFAULT_IGNORES, GlobSet, PolicyBlock, ScopeResolver

if TYPE_CHECKING:
    from pathlib import Path

    from archlint.engine.registry import RuleRegistry

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SUPPORTED_SCHEMA_VERSIONS: frozenset[int] = frozenset({1})
DEFAULT_CONFIG_NAMES: tuple[str, ...] = ("archlint.yml", "archlint.yaml", ".archlint.yml")


@dataclass(frozen=True)
class LintConfig:
    """Validated configuration: policy blocks plus global ignores."""

    version: int
    blocks: tuple[PolicyBlock, ...]
    ignores: GlobSet
    registry: RuleRegistry

    def scope_resolver(self) -> ScopeResolver:
        return ScopeResolver(self.blocks, self.ignores)

    @property
    def rule_count(self) -> int:
        return sum(len(block.rules) for block in self.blocks)


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------


class _UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that rejects duplicate mapping keys instead of overwriting."""


def _construct_unique_mapping(
    loader: yaml.SafeLoader, node: yaml.MappingNode
) -> dict[object, object]:
    seen: set[object] = set()
    for key_node, _value_node in node.value:
        key = loader.construct_object(key_node)  # type: ignore[no-untyped-call]
        if key in seen:
            msg = f"Duplicate key '{key}' (line {key_node.start_mark.line + 1})"
            raise ConfigurationError(msg)
        seen.add(key)
    return loader.construct_mapping(node)  # type: ignore[no-untyped-call]


_UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG, _construct_unique_mapping
)


def find_config(project_root: Path) -> Path | None:
    """Return the first default configuration file present in *project_root*."""
    for name in DEFAULT_CONFIG_NAMES:
        candidate = project_root / name
        if candidate.is_file():
            return candidate
    return None


def load_config(config_path: Path, registry: RuleRegistry) -> LintConfig:
    """Read and validate a YAML (or JSON) configuration file.

    Raises :class:`ConfigurationError` on any schema problem.
    """
    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.load(fh, Loader=_UniqueKeyLoader)  # noqa: S506
    except OSError as exc:
        msg = f"Cannot read configuration {config_path}: {exc}"
        raise ConfigurationError(msg) from exc
    except yaml.YAMLError as exc:
        msg = f"{config_path.name}: invalid YAML: {exc}"
        raise ConfigurationError(msg) from exc
    return parse_config(data, registry)


# ---------------------------------------------------------------------------
# Schema validation
# ---------------------------------------------------------------------------


def _parse_globs(raw: object, context: str, *, required: bool) -> GlobSet:
    if raw is None and not required:
        return GlobSet.compile(())
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list) or (required and not raw):
        msg = f"{context} must be a non-empty list of glob patterns"
        raise ConfigurationError(msg)
    for pattern in raw:
        if not isinstance(pattern, str):
            msg = f"{context}: glob patterns must be strings, got {pattern!r}"
            raise ConfigurationError(msg)
    return GlobSet.compile(raw)


def _parse_severity(raw: object, context: str) -> str:
    # YAML 1.1 reads a bare `off` as False.
    if raw is False:
        return SEVERITY_OFF
    if isinstance(raw, bool):
        msg = f"{context}: invalid severity {raw!r}"
        raise ConfigurationError(msg)
    if isinstance(raw, int):
        if raw not in NUMERIC_SEVERITIES:
            msg = f"{context}: invalid severity {raw}, must be 0, 1 or 2"
            raise ConfigurationError(msg)
        return NUMERIC_SEVERITIES[raw]
    severity = str(raw)
    if severity not in VALID_SEVERITIES:
        msg = f"{context}: invalid severity '{severity}', must be one of {sorted(VALID_SEVERITIES)}"
        raise ConfigurationError(msg)
    return severity


def _parse_rule_entry(
    rule_id: str,
    raw: object,
    registry: RuleRegistry,
    *,
    block_index: int,
    block_name: str,
) -> RuleEntry:
    context = f"Block '{block_name}' rule '{rule_id}'"
    module = registry.get(rule_id)
    if module is None:
        msg = f"{context}: unknown rule id (registered: {', '.join(registry.ids())})"
        raise ConfigurationError(msg)

    if isinstance(raw, list):
        if not raw:
            msg = f"{context}: rule setting list must start with a severity"
            raise ConfigurationError(msg)
        severity = _parse_severity(raw[0], context)
        raw_options = list(raw[1:])
    else:
        severity = _parse_severity(raw, context)
        raw_options = []

    # Options given alongside "off" are still validated.
    options: object = None
    if raw_options or severity != SEVERITY_OFF:
        options = module.parse_options(raw_options, context)
    return RuleEntry(
        rule_id=rule_id,
        severity=severity,
        options=options,
        block_index=block_index,
        block_name=block_name,
    )


def _parse_block(index: int, data: object, registry: RuleRegistry) -> PolicyBlock:
    if not isinstance(data, dict):
        msg = f"Block at index {index} must be a mapping"
        raise ConfigurationError(msg)

    raw_name = data.get("name", f"block-{index}")
    if not isinstance(raw_name, str) or not raw_name.strip():
        msg = f"Block at index {index}: 'name' must be a non-empty string"
        raise ConfigurationError(msg)
    name = raw_name

    unknown_keys = set(data) - {"name", "files", "ignores", "rules"}
    if unknown_keys:
        msg = f"Block '{name}': unknown keys {sorted(str(k) for k in unknown_keys)}"
        raise ConfigurationError(msg)

    files = _parse_globs(data.get("files"), f"Block '{name}': 'files'", required=True)
    ignores = _parse_globs(data.get("ignores"), f"Block '{name}': 'ignores'", required=False)

    rules_data = data.get("rules", {})
    if not isinstance(rules_data, dict):
        msg = f"Block '{name}': 'rules' must be a mapping of rule id to severity"
        raise ConfigurationError(msg)

    entries: list[RuleEntry] = []
    for rule_id, raw in rules_data.items():
        entries.append(
            _parse_rule_entry(str(rule_id), raw, registry, block_index=index, block_name=name)
        )

    return PolicyBlock(index=index, name=name, files=files, ignores=ignores, rules=tuple(entries))


def parse_config(data: object, registry: RuleRegistry) -> LintConfig:
    """Validate already-loaded configuration data.

    Raises :class:`ConfigurationError` on malformed globs, unknown rule ids,
    duplicate block names, invalid severities, or bad rule options (including
    selector syntax errors).
    """
    if not isinstance(data, dict):
        msg = "Configuration must be a mapping"
        raise ConfigurationError(msg)

    version = data.get("version")
    if version is None:
        msg = "Configuration: missing required 'version' field"
        raise ConfigurationError(msg)
    if version not in SUPPORTED_SCHEMA_VERSIONS:
        expected = sorted(SUPPORTED_SCHEMA_VERSIONS)
        msg = f"Configuration: unsupported version {version}, expected one of {expected}"
        raise ConfigurationError(msg)

    ignore_patterns = data.get("ignores", [])
    if isinstance(ignore_patterns, str):
        ignore_patterns = [ignore_patterns]
    if not isinstance(ignore_patterns, list):
        msg = "Configuration: 'ignores' must be a list"
        raise ConfigurationError(msg)
    ignores = _parse_globs(
        [*DEFAULT_IGNORES, *ignore_patterns], "Configuration: 'ignores'", required=True
    )

    blocks_data = data.get("blocks", [])
    if not isinstance(blocks_data, list):
        msg = "Configuration: 'blocks' must be a list"
        raise ConfigurationError(msg)

    seen_names: set[str] = set()
    blocks: list[PolicyBlock] = []
    for index, block_data in enumerate(blocks_data):
        block = _parse_block(index, block_data, registry)
        if block.name in seen_names:
            msg = f"Configuration: duplicate block name '{block.name}'"
            raise ConfigurationError(msg)
        seen_names.add(block.name)
        blocks.append(block)

    return LintConfig(
        version=int(version),
        blocks=tuple(blocks),
        ignores=ignores,
        registry=registry,
    )
