"""Lint engine: syntax adapter, selectors, scope, configuration, and run coordinator.

Built-in rules live in ``archlint.rules``, which depends on this package;
they are deliberately not re-exported here.
"""

from archlint.engine.config import (
    DEFAULT_CONFIG_NAMES,
    LintConfig,
    find_config,
    load_config,
    parse_config,
)
from archlint.engine.coordinator import (
    LintResult,
    RunCoordinator,
    RunState,
    collect_files,
    lint,
)
from archlint.engine.diagnostics import (
    SEVERITY_ERROR,
    SEVERITY_OFF,
    SEVERITY_WARN,
    Diagnostic,
    DiagnosticAggregator,
)
from archlint.engine.errors import (
    ArchlintError,
    ConfigurationError,
    ParseUnavailableError,
    RuleExecutionError,
    SelectorSyntaxError,
)
from archlint.engine.registry import NodeRule, RuleEntry, RuleModule, RuleRegistry
from archlint.engine.report import format_json, format_porcelain, format_rich
from archlint.engine.scope import GlobSet, PolicyBlock, ScopeResolver, compile_glob
from archlint.engine.selectors import Selector, parse_selector
from archlint.engine.syntax import ParsedSource, parse_source

__all__ = [
    "DEFAULT_CONFIG_NAMES",
    "SEVERITY_ERROR",
    "SEVERITY_OFF",
    "SEVERITY_WARN",
    "ArchlintError",
    "ConfigurationError",
    "Diagnostic",
    "DiagnosticAggregator",
    "GlobSet",
    "LintConfig",
    "LintResult",
    "NodeRule",
    "ParseUnavailableError",
    "ParsedSource",
    "PolicyBlock",
    "RuleEntry",
    "RuleExecutionError",
    "RuleModule",
    "RuleRegistry",
    "RunCoordinator",
    "RunState",
    "ScopeResolver",
    "Selector",
    "SelectorSyntaxError",
    "collect_files",
    "compile_glob",
    "find_config",
    "format_json",
    "format_porcelain",
    "format_rich",
    "lint",
    "load_config",
    "parse_config",
    "parse_selector",
    "parse_source",
]
