"""Syntax adapter: tree-sitter grammars, parsing, and node helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tree_sitter import Language, Parser

from archlint.engine.errors import ParseUnavailableError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from tree_sitter import Node as TSNode
    from tree_sitter import Tree


@dataclass(frozen=True)
class LangConfig:
    """Tree-sitter configuration for one source dialect."""

    name: str
    language: Language


# ---- Language loaders (lazy, handle ImportError) ----


def _load_typescript() -> LangConfig:
    import tree_sitter_typescript as tstypescript

    return LangConfig(name="typescript", language=Language(tstypescript.language_typescript()))


def _load_tsx() -> LangConfig:
    import tree_sitter_typescript as tstypescript

    return LangConfig(name="tsx", language=Language(tstypescript.language_tsx()))


# Extension -> loader function mapping.
# JavaScript files may contain JSX, which only the TSX grammar accepts.
_EXTENSION_LOADERS: dict[str, Callable[[], LangConfig]] = {
    ".ts": _load_typescript,
    ".mts": _load_typescript,
    ".cts": _load_typescript,
    ".js": _load_tsx,
    ".mjs": _load_tsx,
    ".cjs": _load_tsx,
    ".tsx": _load_tsx,
    ".jsx": _load_tsx,
}

# Cache for loaded languages (None means "tried and failed / unsupported").
_LANG_CACHE: dict[str, LangConfig | None] = {}


def get_lang_config(extension: str) -> LangConfig | None:
    """Get language config for a file extension, or ``None`` if unsupported/unavailable."""
    if extension in _LANG_CACHE:
        return _LANG_CACHE[extension]

    loader = _EXTENSION_LOADERS.get(extension)
    if loader is None:
        _LANG_CACHE[extension] = None
        return None

    try:
        config = loader()
    except ImportError:
        _LANG_CACHE[extension] = None
        return None

    _LANG_CACHE[extension] = config
    return config


def supported_extensions() -> frozenset[str]:
    """Return the set of file extensions the linter knows how to parse."""
    return frozenset(_EXTENSION_LOADERS)


def clear_cache() -> None:
    """Clear the language config cache (useful for testing)."""
    _LANG_CACHE.clear()


def is_known_node_kind(kind: str) -> bool:
    """Return True if a named node *kind* exists in the TypeScript or TSX grammar.

    When neither grammar is installed nothing can be checked and every kind
    is accepted; such files are reported as unparsable anyway.
    """
    languages = [
        config.language
        for config in (get_lang_config(".ts"), get_lang_config(".tsx"))
        if config is not None
    ]
    if not languages:
        return True
    return any(language.id_for_node_kind(kind, True) is not None for language in languages)


# ---------------------------------------------------------------------------
# Parsed source
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParsedSource:
    """A parsed file: project-relative path, raw bytes, and its syntax tree."""

    path: str
    source: bytes
    tree: Tree

    @property
    def root(self) -> TSNode:
        return self.tree.root_node

    def position(self, node: TSNode) -> tuple[int, int]:
        """Return the 1-based ``(line, column)`` of *node*.

        tree-sitter reports byte columns; the column here counts characters.
        """
        row = node.start_point.row
        byte_col = node.start_point.column
        line_start = node.start_byte - byte_col
        prefix = self.source[line_start : node.start_byte].decode("utf-8", errors="replace")
        return row + 1, len(prefix) + 1


def parse_source(path: str, content: bytes) -> ParsedSource:
    """Parse *content* with the grammar chosen by *path*'s extension.

    Raises :class:`ParseUnavailableError` when the extension is unsupported,
    the grammar package is not installed, or the tree contains syntax errors.
    """
    suffix = _suffix(path)
    config = get_lang_config(suffix)
    if config is None:
        if suffix in _EXTENSION_LOADERS:
            reason = f"grammar for '{suffix}' files is not installed"
        else:
            reason = f"unsupported file type '{suffix or path}'"
        raise ParseUnavailableError(path, reason)

    parser = Parser(config.language)
    tree = parser.parse(content)
    parsed = ParsedSource(path=path, source=content, tree=tree)

    if tree.root_node.has_error:
        error_node = first_error_node(tree.root_node)
        line, column = parsed.position(error_node) if error_node is not None else (1, 1)
        raise ParseUnavailableError(path, "syntax error", line=line, column=column)

    return parsed


def _suffix(path: str) -> str:
    name = path.rsplit("/", 1)[-1]
    dot = name.rfind(".")
    return name[dot:] if dot > 0 else ""


# ---------------------------------------------------------------------------
# Node helpers
# ---------------------------------------------------------------------------

IDENTIFIER_TYPES: frozenset[str] = frozenset(
    {
        "identifier",
        "property_identifier",
        "shorthand_property_identifier",
        "shorthand_property_identifier_pattern",
        "type_identifier",
        "private_property_identifier",
    }
)
STRING_TYPES: frozenset[str] = frozenset({"string", "template_string"})
LITERAL_TYPES: frozenset[str] = STRING_TYPES | {"number", "true", "false", "null", "regex"}

FUNCTION_TYPES: frozenset[str] = frozenset(
    {
        "function_declaration",
        "function_expression",
        "function",
        "arrow_function",
        "method_definition",
        "generator_function_declaration",
        "generator_function",
    }
)

_QUOTES = ("'", '"', "`")


def first_error_node(root: TSNode) -> TSNode | None:
    """Return the first ``ERROR`` or missing node in document order."""
    for node in iter_nodes(root):
        if node.type == "ERROR" or node.is_missing:
            return node
    return None


def iter_nodes(root: TSNode) -> Iterator[TSNode]:
    """Yield *root* and all its descendants in pre-order (document order)."""
    stack: list[TSNode] = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def node_text(node: TSNode | None) -> str:
    """Return the source text of *node* (empty string for ``None``)."""
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def literal_value(node: TSNode) -> str:
    """Return the value of a literal node; string quotes are stripped."""
    text = node_text(node)
    if node.type in STRING_TYPES and len(text) >= 2 and text[0] in _QUOTES:
        return text[1:-1]
    return text


def unwrap_parens(node: TSNode | None) -> TSNode | None:
    """Strip any ``parenthesized_expression`` wrappers around *node*."""
    while node is not None and node.type == "parenthesized_expression":
        inner = [c for c in node.named_children if c.type != "comment"]
        if len(inner) != 1:
            return node
        node = inner[0]
    return node


def member_chain(node: TSNode | None) -> list[str] | None:
    """Flatten a member access like ``window.localStorage.getItem``.

    Returns ``["window", "localStorage", "getItem"]``, or ``None`` when the
    chain contains anything other than identifiers, ``this``, and plain
    property accesses (calls, computed subscripts, ...).
    """
    parts: list[str] = []
    current = unwrap_parens(node)
    while current is not None and current.type in ("member_expression", "non_null_expression"):
        if current.type == "non_null_expression":
            current = unwrap_parens(current.named_children[0]) if current.named_children else None
            continue
        prop = current.child_by_field_name("property")
        if prop is None or prop.type not in IDENTIFIER_TYPES:
            return None
        parts.append(node_text(prop))
        current = unwrap_parens(current.child_by_field_name("object"))
    if current is None:
        return None
    if current.type in IDENTIFIER_TYPES or current.type == "this":
        parts.append(node_text(current))
        parts.reverse()
        return parts
    return None


def call_target(node: TSNode) -> list[str] | None:
    """Return the member chain of a call expression's callee."""
    if node.type != "call_expression":
        return None
    return member_chain(node.child_by_field_name("function"))


def enclosing_function_name(node: TSNode) -> str | None:
    """Return the name of the nearest named function enclosing *node*.

    Arrow functions and function expressions take the name of the variable,
    property, or class field they are assigned to.
    """
    current = node.parent
    while current is not None:
        if current.type in FUNCTION_TYPES:
            name = _function_name(current)
            if name is not None:
                return name
        current = current.parent
    return None


def _function_name(func: TSNode) -> str | None:
    name_node = func.child_by_field_name("name")
    if name_node is not None:
        return node_text(name_node)
    parent = func.parent
    if parent is None:
        return None
    if parent.type in ("variable_declarator", "public_field_definition", "field_definition"):
        target = parent.child_by_field_name("name") or parent.child_by_field_name("property")
        return node_text(target) if target is not None else None
    if parent.type == "pair":
        key = parent.child_by_field_name("key")
        return literal_value(key) if key is not None else None
    if parent.type == "assignment_expression":
        chain = member_chain(parent.child_by_field_name("left"))
        return chain[-1] if chain else None
    return None


_PATH_NAME_RE = re.compile(r"(path|dir|folder|file|root|home|cwd)", re.IGNORECASE)


def is_path_like(node: TSNode | None) -> bool:
    """Heuristically decide whether an expression evaluates to a filesystem path."""
    node = unwrap_parens(node)
    if node is None:
        return False
    if node.type == "call_expression":
        chain = call_target(node)
        if chain is None:
            return False
        return chain[0] == "path" or bool(_PATH_NAME_RE.search(chain[-1]))
    chain = member_chain(node)
    if chain is None:
        return False
    return bool(_PATH_NAME_RE.search(chain[-1]))
