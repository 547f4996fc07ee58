"""Rule: no direct use of the browser's persistent key-value storage."""

from __future__ import annotations

from typing import TYPE_CHECKING

from archlint.engine.registry import NodeRule
from archlint.engine.syntax import IDENTIFIER_TYPES, node_text, unwrap_parens

if TYPE_CHECKING:
    from tree_sitter import Node as TSNode

    from archlint.engine.syntax import ParsedSource

STORAGE_GLOBAL = "localStorage"
GLOBAL_OBJECTS: frozenset[str] = frozenset({"window", "globalThis", "self"})


class NoLocalStorage(NodeRule):
    """Flag ``localStorage.x`` and ``window.localStorage`` accesses."""

    rule_id = "no-localstorage"
    description = "Persist data through the storage module, not localStorage."
    message = (
        "Avoid localStorage directly. Use the centralized storage module, "
        "which handles serialization, namespacing and migration."
    )
    node_types = frozenset({"member_expression", "subscript_expression"})

    def match(self, node: TSNode, source: ParsedSource) -> bool:
        obj = unwrap_parens(node.child_by_field_name("object"))
        if obj is None:
            return False
        if obj.type == "identifier" and node_text(obj) == STORAGE_GLOBAL:
            return True
        if node.type != "member_expression":
            return False
        prop = node.child_by_field_name("property")
        return (
            prop is not None
            and prop.type in IDENTIFIER_TYPES
            and node_text(prop) == STORAGE_GLOBAL
            and obj.type == "identifier"
            and node_text(obj) in GLOBAL_OBJECTS
        )
