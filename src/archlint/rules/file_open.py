"""Rule: file opens go through the link interceptor."""

from __future__ import annotations

from typing import TYPE_CHECKING

from archlint.engine.registry import NodeRule
from archlint.engine.syntax import call_target

if TYPE_CHECKING:
    from tree_sitter import Node as TSNode

    from archlint.engine.syntax import ParsedSource

OPEN_PRIMITIVES: frozenset[str] = frozenset({"openPath", "showItemInFolder"})


class NoDirectFileOpen(NodeRule):
    """Flag ``shell.openPath()`` / ``shell.showItemInFolder()`` calls.

    The interceptor module itself is exempted by configuration scope.
    """

    rule_id = "no-direct-file-open"
    description = "Open files through the link interceptor."
    message = (
        "Do not call shell.openPath() or shell.showItemInFolder() directly. "
        "Route file opens through the link interceptor so in-app preview can handle them."
    )
    node_types = frozenset({"call_expression"})

    def match(self, node: TSNode, source: ParsedSource) -> bool:
        chain = call_target(node)
        if chain is None or len(chain) < 2:
            return False
        return chain[-1] in OPEN_PRIMITIVES and chain[-2] == "shell"
