"""Rule: source usability is decided by isSourceUsable() alone."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from archlint.engine.registry import NodeRule
from archlint.engine.syntax import (
    enclosing_function_name,
    iter_nodes,
    member_chain,
)

if TYPE_CHECKING:
    from tree_sitter import Node as TSNode

    from archlint.engine.syntax import ParsedSource

CANONICAL_PREDICATE = "isSourceUsable"
SOURCE_FIELDS: frozenset[str] = frozenset(
    {"enabled", "isAuthenticated", "authType", "needsAuth", "requiresAuth"}
)
LOGICAL_OPERATORS: frozenset[str] = frozenset({"&&", "||"})

_SOURCE_NAME_RE = re.compile(r"source", re.IGNORECASE)


def _is_logical(node: TSNode | None) -> bool:
    if node is None or node.type != "binary_expression":
        return False
    operator = node.child_by_field_name("operator")
    return operator is not None and operator.type in LOGICAL_OPERATORS


def _source_field(node: TSNode) -> str | None:
    """Return the field name if *node* reads a usability field of a source object."""
    chain = member_chain(node)
    if chain is None or len(chain) < 2 or chain[-1] not in SOURCE_FIELDS:
        return None
    owners = chain[:-1]
    if "config" in owners or any(_SOURCE_NAME_RE.search(part) for part in owners):
        return chain[-1]
    return None


class NoInlineSourceAuthCheck(NodeRule):
    """Flag hand-written ``enabled && isAuthenticated`` style checks.

    Only the outermost ``&&``/``||`` expression is reported, and only when it
    reads two or more distinct usability fields.
    """

    rule_id = "no-inline-source-auth-check"
    description = "Decide source usability with isSourceUsable()."
    message = (
        "Do not inspect source auth/enabled fields inline. "
        "Call isSourceUsable(source) so the usability logic lives in one place."
    )
    node_types = frozenset({"binary_expression"})

    def match(self, node: TSNode, source: ParsedSource) -> bool:
        if not _is_logical(node):
            return False
        parent = node.parent
        while parent is not None and parent.type == "parenthesized_expression":
            parent = parent.parent
        if _is_logical(parent):
            return False

        fields: set[str] = set()
        for child in iter_nodes(node):
            if child.type == "member_expression":
                field = _source_field(child)
                if field is not None:
                    fields.add(field)
        if len(fields) < 2:
            return False
        return enclosing_function_name(node) != CANONICAL_PREDICATE
