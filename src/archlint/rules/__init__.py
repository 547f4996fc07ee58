"""Built-in rule modules and the default registry."""

from __future__ import annotations

from archlint.engine.registry import RuleModule, RuleRegistry
from archlint.engine.restrictions import RestrictedImportsRule, RestrictedSyntaxRule
from archlint.rules.file_open import NoDirectFileOpen
from archlint.rules.local_storage import NoLocalStorage
from archlint.rules.navigation_state import NoDirectNavigationState
from archlint.rules.path_separator import NoHardcodedPathSeparator
from archlint.rules.platform_check import NoDirectPlatformCheck
from archlint.rules.source_auth import NoInlineSourceAuthCheck

# Static registration table; order is the order `archlint rules` lists them.
BUILTIN_RULES: tuple[type[RuleModule], ...] = (
    RestrictedImportsRule,
    RestrictedSyntaxRule,
    NoDirectNavigationState,
    NoLocalStorage,
    NoDirectPlatformCheck,
    NoHardcodedPathSeparator,
    NoDirectFileOpen,
    NoInlineSourceAuthCheck,
)


def default_registry() -> RuleRegistry:
    """Build a registry holding one instance of every built-in rule."""
    return RuleRegistry.from_modules(rule_cls() for rule_cls in BUILTIN_RULES)


__all__ = [
    "BUILTIN_RULES",
    "NoDirectFileOpen",
    "NoDirectNavigationState",
    "NoDirectPlatformCheck",
    "NoHardcodedPathSeparator",
    "NoInlineSourceAuthCheck",
    "NoLocalStorage",
    "RestrictedImportsRule",
    "RestrictedSyntaxRule",
    "default_registry",
]
