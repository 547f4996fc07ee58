"""Restriction table: data-driven banned-import and banned-syntax rules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from archlint.engine.errors import ConfigurationError
from archlint.engine.registry import report
from archlint.engine.selectors import parse_selector
from archlint.engine.syntax import iter_nodes, literal_value

if TYPE_CHECKING:
    from tree_sitter import Node as TSNode

    from archlint.engine.diagnostics import Diagnostic
    from archlint.engine.registry import RuleEntry
    from archlint.engine.selectors import Selector
    from archlint.engine.syntax import ParsedSource


@dataclass(frozen=True)
class BannedImport:
    """An exact module specifier and the message reported for it."""

    specifier: str
    message: str


@dataclass(frozen=True)
class BannedSyntax:
    """A compiled selector and the message reported for every match."""

    selector: Selector
    message: str


# ---------------------------------------------------------------------------
# Banned import specifiers
# ---------------------------------------------------------------------------


def import_source(node: TSNode) -> TSNode | None:
    """Return the source string node of an import or re-export declaration."""
    if node.type not in ("import_statement", "export_statement"):
        return None
    source = node.child_by_field_name("source")
    if source is not None:
        return source
    if node.type == "import_statement":
        # TypeScript: import x = require("y")
        for child in node.named_children:
            if child.type == "import_require_clause":
                return child.child_by_field_name("source")
    return None


def _parse_banned_import(item: object, context: str) -> BannedImport:
    if isinstance(item, str):
        specifier, message = item, ""
    elif isinstance(item, dict):
        raw_spec = item.get("name", item.get("specifier"))
        if not isinstance(raw_spec, str):
            msg = f"{context}: each path needs a string 'name'"
            raise ConfigurationError(msg)
        specifier = raw_spec
        raw_message = item.get("message", "")
        if not isinstance(raw_message, str):
            msg = f"{context}: message for '{specifier}' must be a string"
            raise ConfigurationError(msg)
        message = raw_message
    else:
        msg = f"{context}: path entries must be strings or mappings, got {type(item).__name__}"
        raise ConfigurationError(msg)

    if not specifier.strip():
        msg = f"{context}: import specifier must be non-empty"
        raise ConfigurationError(msg)
    if not message:
        message = f"'{specifier}' import is restricted from being used."
    return BannedImport(specifier=specifier, message=message)


class RestrictedImportsRule:
    """Flag import declarations whose source equals a banned specifier.

    The binding style does not matter: default, named, namespace,
    side-effect, type-only and ``import x = require()`` imports are all
    caught, as are ``export ... from`` re-exports.  A specifier that merely
    contains a banned one is not flagged.
    """

    rule_id = "no-restricted-imports"
    description = "Ban imports of specific module specifiers."

    def parse_options(self, raw: list[object], context: str) -> tuple[BannedImport, ...]:
        banned: list[BannedImport] = []
        for option in raw:
            if isinstance(option, dict) and "paths" in option:
                paths = option["paths"]
                if not isinstance(paths, list):
                    msg = f"{context}: 'paths' must be a list"
                    raise ConfigurationError(msg)
                banned.extend(_parse_banned_import(item, context) for item in paths)
            else:
                banned.append(_parse_banned_import(option, context))
        if not banned:
            msg = f"{context}: '{self.rule_id}' needs at least one banned path"
            raise ConfigurationError(msg)
        return tuple(banned)

    def evaluate(self, source: ParsedSource, entry: RuleEntry) -> list[Diagnostic]:
        banned: tuple[BannedImport, ...] = entry.options  # type: ignore[assignment]
        diagnostics: list[Diagnostic] = []
        for node in iter_nodes(source.root):
            source_node = import_source(node)
            if source_node is None:
                continue
            specifier = literal_value(source_node)
            for item in banned:
                if item.specifier == specifier:
                    diagnostics.append(report(source, node, entry, item.message))
                    break
        return diagnostics


# ---------------------------------------------------------------------------
# Banned syntax selectors
# ---------------------------------------------------------------------------


def _parse_banned_syntax(item: object, context: str) -> BannedSyntax:
    if isinstance(item, str):
        expression, message = item, ""
    elif isinstance(item, dict):
        expression = item.get("selector")
        if not isinstance(expression, str):
            msg = f"{context}: each selector entry needs a string 'selector'"
            raise ConfigurationError(msg)
        raw_message = item.get("message", "")
        if not isinstance(raw_message, str):
            msg = f"{context}: message for selector '{expression}' must be a string"
            raise ConfigurationError(msg)
        message = raw_message
    else:
        msg = f"{context}: selector entries must be strings or mappings"
        raise ConfigurationError(msg)

    selector = parse_selector(expression)
    if not message:
        message = f"Using '{expression}' is not allowed."
    return BannedSyntax(selector=selector, message=message)


class RestrictedSyntaxRule:
    """Flag every node matching a configured selector."""

    rule_id = "no-restricted-syntax"
    description = "Ban syntax matched by structural selectors."

    def parse_options(self, raw: list[object], context: str) -> tuple[BannedSyntax, ...]:
        banned: list[BannedSyntax] = []
        for option in raw:
            if isinstance(option, dict) and "selectors" in option:
                selectors = option["selectors"]
                if not isinstance(selectors, list):
                    msg = f"{context}: 'selectors' must be a list"
                    raise ConfigurationError(msg)
                banned.extend(_parse_banned_syntax(item, context) for item in selectors)
            else:
                banned.append(_parse_banned_syntax(option, context))
        if not banned:
            msg = f"{context}: '{self.rule_id}' needs at least one selector"
            raise ConfigurationError(msg)
        return tuple(banned)

    def evaluate(self, source: ParsedSource, entry: RuleEntry) -> list[Diagnostic]:
        banned: tuple[BannedSyntax, ...] = entry.options  # type: ignore[assignment]
        subjects = [item.selector.subject_types for item in banned]
        diagnostics: list[Diagnostic] = []
        for node in iter_nodes(source.root):
            for item, types in zip(banned, subjects):
                if types is not None and node.type not in types:
                    continue
                if item.selector.matches(node):
                    diagnostics.append(report(source, node, entry, item.message))
        return diagnostics
