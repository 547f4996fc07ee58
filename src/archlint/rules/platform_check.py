"""Rule: platform detection goes through the platform helpers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from archlint.engine.registry import NodeRule
from archlint.engine.syntax import call_target, member_chain, node_text, unwrap_parens

if TYPE_CHECKING:
    from tree_sitter import Node as TSNode

    from archlint.engine.syntax import ParsedSource

PLATFORM_MEMBERS: frozenset[tuple[str, ...]] = frozenset(
    {
        ("process", "platform"),
        ("navigator", "platform"),
        ("navigator", "userAgent"),
        ("window", "navigator", "platform"),
        ("window", "navigator", "userAgent"),
        ("navigator", "userAgentData", "platform"),
    }
)
PLATFORM_CALLS: frozenset[tuple[str, ...]] = frozenset({("os", "platform"), ("os", "type")})
EQUALITY_OPERATORS: frozenset[str] = frozenset({"===", "!==", "==", "!="})
STRING_PROBES: frozenset[str] = frozenset(
    {"includes", "startsWith", "endsWith", "indexOf", "match", "test"}
)


def is_platform_source(node: TSNode | None) -> bool:
    """True for ``process.platform``, ``navigator.userAgent``, ``os.platform()`` etc."""
    node = unwrap_parens(node)
    if node is None:
        return False
    if node.type == "as_expression" and node.named_children:
        return is_platform_source(node.named_children[0])
    if node.type == "call_expression":
        chain = call_target(node)
        return chain is not None and tuple(chain) in PLATFORM_CALLS
    chain = member_chain(node)
    return chain is not None and tuple(chain) in PLATFORM_MEMBERS


class NoDirectPlatformCheck(NodeRule):
    """Flag inline checks of the platform identifier.

    Detected shapes: equality comparisons against a platform source,
    ``switch (process.platform)``, and string probes such as
    ``navigator.userAgent.includes("Mac")``.  Reading the value into a
    variable first is not detected.
    """

    rule_id = "no-direct-platform-check"
    description = "Check the platform through the platform helpers."
    message = (
        "Do not check the platform inline. "
        "Use isMac(), isWindows() or isLinux() from the platform module."
    )
    node_types = frozenset({"binary_expression", "switch_statement", "call_expression"})

    def match(self, node: TSNode, source: ParsedSource) -> bool:
        if node.type == "binary_expression":
            operator = node.child_by_field_name("operator")
            if operator is None or operator.type not in EQUALITY_OPERATORS:
                return False
            return is_platform_source(node.child_by_field_name("left")) or is_platform_source(
                node.child_by_field_name("right")
            )
        if node.type == "switch_statement":
            return is_platform_source(node.child_by_field_name("value"))

        callee = unwrap_parens(node.child_by_field_name("function"))
        if callee is None or callee.type != "member_expression":
            return False
        prop = callee.child_by_field_name("property")
        if prop is None or node_text(prop) not in STRING_PROBES:
            return False
        if is_platform_source(callee.child_by_field_name("object")):
            return True
        # /mac/i.test(navigator.userAgent)
        args = node.child_by_field_name("arguments")
        return args is not None and any(is_platform_source(arg) for arg in args.named_children)
