"""Rule: navigation state may only be mutated through its accessor functions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from archlint.engine.registry import NodeRule
from archlint.engine.syntax import (
    IDENTIFIER_TYPES,
    enclosing_function_name,
    member_chain,
    node_text,
    unwrap_parens,
)

if TYPE_CHECKING:
    from tree_sitter import Node as TSNode

    from archlint.engine.syntax import ParsedSource

STATE_OBJECT = "navigationState"
ACCESSORS: frozenset[str] = frozenset({"navigate", "setNavigationState", "updateNavigationState"})


class NoDirectNavigationState(NodeRule):
    """Flag writes to ``navigationState`` outside ``navigate()`` and friends.

    Catches plain and compound assignment, ``++``/``--`` and ``delete`` on the
    state object or any member of it.  Writes through an alias
    (``const s = navigationState; s.x = 1``) are not detected.
    """

    rule_id = "no-direct-navigation-state"
    description = "Mutate navigation state only through navigate()."
    message = (
        "Do not mutate navigationState directly. "
        "Use navigate() so routing, history and deep links stay in sync."
    )
    node_types = frozenset(
        {
            "assignment_expression",
            "augmented_assignment_expression",
            "update_expression",
            "unary_expression",
        }
    )

    def match(self, node: TSNode, source: ParsedSource) -> bool:
        if node.type == "update_expression":
            target = node.child_by_field_name("argument")
        elif node.type == "unary_expression":
            operator = node.child_by_field_name("operator")
            if operator is None or operator.type != "delete":
                return False
            target = node.child_by_field_name("argument")
        else:
            target = node.child_by_field_name("left")

        if not _targets_state(target):
            return False
        return enclosing_function_name(node) not in ACCESSORS


def _targets_state(target: TSNode | None) -> bool:
    target = unwrap_parens(target)
    if target is None:
        return False
    if target.type in IDENTIFIER_TYPES:
        return node_text(target) == STATE_OBJECT
    # navigationState["tab"] = ...
    while target is not None and target.type == "subscript_expression":
        target = unwrap_parens(target.child_by_field_name("object"))
    chain = member_chain(target)
    return chain is not None and STATE_OBJECT in chain
