"""Rule: build filesystem paths with path.join(), not string separators."""

from __future__ import annotations

from typing import TYPE_CHECKING

from archlint.engine.registry import NodeRule
from archlint.engine.syntax import is_path_like, literal_value, unwrap_parens

if TYPE_CHECKING:
    from tree_sitter import Node as TSNode

    from archlint.engine.syntax import ParsedSource

SEPARATORS = ("/", "\\")
_URL_MARKERS = ("://", "http:", "https:", "file:", "data:")


def _has_separator(text: str) -> bool:
    if any(marker in text for marker in _URL_MARKERS):
        return False
    return any(sep in text for sep in SEPARATORS)


class NoHardcodedPathSeparator(NodeRule):
    """Flag separators hard-coded into path construction.

    Two contexts count as path construction: ``+`` concatenation of a string
    literal containing ``/`` or ``\\`` with a path-like operand, and a
    template literal with a separator directly next to a path-like
    substitution (``${dir}/${name}``).  URLs are ignored.
    """

    rule_id = "no-hardcoded-path-separator"
    description = "Join path segments with path.join()."
    message = (
        "Do not hardcode path separators. "
        "Use path.join() or path.resolve() so paths work on every platform."
    )
    node_types = frozenset({"string", "template_string"})

    def match(self, node: TSNode, source: ParsedSource) -> bool:
        if node.type == "template_string":
            return self._match_template(node, source)

        if not _has_separator(literal_value(node)):
            return False
        parent = node.parent
        if parent is None or parent.type != "binary_expression":
            return False
        operator = parent.child_by_field_name("operator")
        if operator is None or operator.type != "+":
            return False
        left = unwrap_parens(parent.child_by_field_name("left"))
        right = unwrap_parens(parent.child_by_field_name("right"))
        other = right if left == node else left
        return is_path_like(other) or _concat_has_path(other)

    def _match_template(self, node: TSNode, source: ParsedSource) -> bool:
        text = source.source
        if any(marker.encode() in text[node.start_byte : node.end_byte] for marker in _URL_MARKERS):
            return False
        separators = {sep.encode() for sep in SEPARATORS}
        for sub in node.named_children:
            if sub.type != "template_substitution":
                continue
            before = text[sub.start_byte - 1 : sub.start_byte]
            after = text[sub.end_byte : sub.end_byte + 1]
            if before not in separators and after not in separators:
                continue
            expressions = [c for c in sub.named_children if c.type != "comment"]
            if expressions and is_path_like(expressions[0]):
                return True
        return False


def _concat_has_path(node: TSNode | None) -> bool:
    """True if a ``+`` chain (``dir + "/" + name``) contains a path-like operand."""
    node = unwrap_parens(node)
    if node is None or node.type != "binary_expression":
        return False
    operator = node.child_by_field_name("operator")
    if operator is None or operator.type != "+":
        return False
    return any(
        is_path_like(side) or _concat_has_path(side)
        for side in (node.child_by_field_name("left"), node.child_by_field_name("right"))
    )
