"""Selector engine: parse ESLint-style selectors and match them against tree-sitter nodes.

Supported syntax::

    selector   := complex ("," complex)*
    complex    := compound (combinator compound)*
    combinator := ">" | whitespace
    compound   := (kind | "*")? attribute*
    attribute  := "[" path (("=" | "!=") value)? "]"
    path       := ident ("." ident)*
    value      := 'quoted' | "quoted" | /regex/flags | bareword

Kinds are tree-sitter node types (``call_expression``) or ESTree names
(``CallExpression``), so configurations written for ESLint's
``no-restricted-syntax`` work unchanged.  tree-sitter kinds must exist in
the TypeScript or TSX grammar.

As in esquery, ``[path=value]`` is false and ``[path!=value]`` is true when
*path* does not resolve on the node.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from archlint.engine.errors import SelectorSyntaxError
from archlint.engine.syntax import (
    IDENTIFIER_TYPES,
    LITERAL_TYPES,
    is_known_node_kind,
    literal_value,
    node_text,
)

if TYPE_CHECKING:
    from tree_sitter import Node as TSNode


@dataclass(frozen=True)
class KindSpec:
    """tree-sitter node types an ESTree kind maps to (optionally operator-constrained)."""

    types: frozenset[str]
    operators: frozenset[str] | None = None


def _kind(*types: str, operators: tuple[str, ...] | None = None) -> KindSpec:
    return KindSpec(frozenset(types), frozenset(operators) if operators else None)


ESTREE_KINDS: dict[str, KindSpec] = {
    "ArrowFunctionExpression": _kind("arrow_function"),
    "AssignmentExpression": _kind("assignment_expression", "augmented_assignment_expression"),
    "AwaitExpression": _kind("await_expression"),
    "BinaryExpression": _kind("binary_expression"),
    "CallExpression": _kind("call_expression"),
    "ClassDeclaration": _kind("class_declaration"),
    "ConditionalExpression": _kind("ternary_expression"),
    "ExportAllDeclaration": _kind("export_statement"),
    "ExportNamedDeclaration": _kind("export_statement"),
    "FunctionDeclaration": _kind("function_declaration"),
    "FunctionExpression": _kind("function_expression", "function"),
    "Identifier": _kind(*sorted(IDENTIFIER_TYPES)),
    "IfStatement": _kind("if_statement"),
    "ImportDeclaration": _kind("import_statement"),
    "JSXAttribute": _kind("jsx_attribute"),
    "JSXElement": _kind("jsx_element", "jsx_self_closing_element"),
    "Literal": _kind(*sorted(LITERAL_TYPES - {"template_string"})),
    "LogicalExpression": _kind("binary_expression", operators=("&&", "||", "??")),
    "MemberExpression": _kind("member_expression", "subscript_expression"),
    "MethodDefinition": _kind("method_definition"),
    "NewExpression": _kind("new_expression"),
    "ObjectExpression": _kind("object"),
    "Property": _kind("pair"),
    "ReturnStatement": _kind("return_statement"),
    "SwitchStatement": _kind("switch_statement"),
    "TemplateLiteral": _kind("template_string"),
    "ThrowStatement": _kind("throw_statement"),
    "UnaryExpression": _kind("unary_expression"),
    "UpdateExpression": _kind("update_expression"),
    "VariableDeclaration": _kind("lexical_declaration", "variable_declaration"),
    "VariableDeclarator": _kind("variable_declarator"),
}

ESTREE_FIELDS: dict[str, str] = {
    "callee": "function",
    "init": "value",
    "id": "name",
    "test": "condition",
    "discriminant": "value",
}

_ABSENT = object()


# ---------------------------------------------------------------------------
# Selector model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AttributeTest:
    """``[path]``, ``[path=value]`` or ``[path!=value]``."""

    path: tuple[str, ...]
    operator: str | None = None  # None (presence) | "=" | "!="
    value: str | None = None
    pattern: re.Pattern[str] | None = None

    def test(self, node: TSNode) -> bool:
        resolved = resolve_path(node, self.path)
        if resolved is _ABSENT:
            return self.operator == "!="
        if self.operator is None:
            return True
        if self.pattern is not None:
            hit = self.pattern.search(str(resolved)) is not None
        else:
            hit = resolved == self.value
        return hit if self.operator == "=" else not hit


@dataclass(frozen=True)
class CompoundSelector:
    """A node kind (or wildcard) plus a conjunction of attribute tests."""

    kind: KindSpec | None
    attributes: tuple[AttributeTest, ...] = ()

    def test(self, node: TSNode) -> bool:
        if self.kind is not None:
            if node.type not in self.kind.types:
                return False
            if self.kind.operators is not None:
                operator = node.child_by_field_name("operator")
                if operator is None or operator.type not in self.kind.operators:
                    return False
        return all(attr.test(node) for attr in self.attributes)


@dataclass(frozen=True)
class ComplexSelector:
    """Compounds joined by child (``>``) or descendant (`` ``) combinators."""

    compounds: tuple[CompoundSelector, ...]
    combinators: tuple[str, ...]  # len == len(compounds) - 1

    def test(self, node: TSNode) -> bool:
        return self._match_at(node, len(self.compounds) - 1)

    def _match_at(self, node: TSNode, index: int) -> bool:
        if not self.compounds[index].test(node):
            return False
        if index == 0:
            return True
        combinator = self.combinators[index - 1]
        ancestor = node.parent
        if combinator == ">":
            return ancestor is not None and self._match_at(ancestor, index - 1)
        while ancestor is not None:
            if self._match_at(ancestor, index - 1):
                return True
            ancestor = ancestor.parent
        return False


@dataclass(frozen=True)
class Selector:
    """A compiled selector: logical OR of complex selectors."""

    source: str
    alternatives: tuple[ComplexSelector, ...]

    def matches(self, node: TSNode) -> bool:
        return any(alt.test(node) for alt in self.alternatives)

    @property
    def subject_types(self) -> frozenset[str] | None:
        """Node types the selector can match, or ``None`` if any type can match."""
        types: set[str] = set()
        for alt in self.alternatives:
            subject = alt.compounds[-1].kind
            if subject is None:
                return None
            types |= subject.types
        return frozenset(types)


def matches(selector: Selector, node: TSNode) -> bool:
    """Return True if *node* satisfies *selector*.

    Pure function of the node and its ancestors; absent fields make the
    predicate false instead of raising.
    """
    return selector.matches(node)


# ---------------------------------------------------------------------------
# Field path resolution
# ---------------------------------------------------------------------------


def resolve_path(node: TSNode, path: tuple[str, ...]) -> object:
    """Follow *path* from *node*; return a string, or ``_ABSENT``.

    Each step first tries a grammar field (with ESTree aliases), then the
    pseudo-fields ``name``, ``value``, ``type`` and ``text``.
    """
    current: object = node
    for step in path:
        if isinstance(current, str):
            return _ABSENT
        current = _step(current, step)  # type: ignore[arg-type]
        if current is _ABSENT:
            return _ABSENT
    if isinstance(current, str):
        return current
    return _terminal_value(current)  # type: ignore[arg-type]


def _step(node: TSNode, step: str) -> object:
    child = node.child_by_field_name(ESTREE_FIELDS.get(step, step))
    if child is not None:
        return child
    if step == "name":
        return node_text(node) if node.type in IDENTIFIER_TYPES else _ABSENT
    if step == "value":
        return literal_value(node) if node.type in LITERAL_TYPES else _ABSENT
    if step == "type":
        return node.type
    if step == "text":
        return node_text(node)
    return _ABSENT


def _terminal_value(node: TSNode) -> str:
    if node.type in LITERAL_TYPES:
        return literal_value(node)
    if not node.is_named:
        return node.type
    return node_text(node)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

_IDENT_RE = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")
_SNAKE_KIND_RE = re.compile(r"[a-z_][a-z0-9_]*")
_BAREWORD_RE = re.compile(r"[^\]\s]+")
_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}


class _SelectorParser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def error(self, reason: str) -> SelectorSyntaxError:
        return SelectorSyntaxError(self.text, self.pos, reason)

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def skip_ws(self) -> bool:
        start = self.pos
        while self.peek().isspace():
            self.pos += 1
        return self.pos > start

    def parse(self) -> Selector:
        alternatives: list[ComplexSelector] = []
        self.skip_ws()
        if not self.peek():
            raise self.error("empty selector")
        while True:
            alternatives.append(self.parse_complex())
            self.skip_ws()
            if self.peek() == ",":
                self.pos += 1
                self.skip_ws()
                continue
            if self.peek():
                raise self.error(f"unexpected character {self.peek()!r}")
            break
        return Selector(source=self.text, alternatives=tuple(alternatives))

    def parse_complex(self) -> ComplexSelector:
        compounds = [self.parse_compound()]
        combinators: list[str] = []
        while True:
            had_ws = self.skip_ws()
            char = self.peek()
            if char == ">":
                self.pos += 1
                self.skip_ws()
                combinators.append(">")
            elif had_ws and char and char != ",":
                combinators.append(" ")
            else:
                break
            compounds.append(self.parse_compound())
        return ComplexSelector(tuple(compounds), tuple(combinators))

    def parse_compound(self) -> CompoundSelector:
        kind: KindSpec | None = None
        start = self.pos
        if self.peek() == "*":
            self.pos += 1
        else:
            match = _IDENT_RE.match(self.text, self.pos)
            if match is not None:
                kind = self._resolve_kind(match.group())
                self.pos = match.end()
        attributes: list[AttributeTest] = []
        while self.peek() == "[":
            attributes.append(self.parse_attribute())
        if self.pos == start:
            char = self.peek()
            raise self.error(f"unexpected character {char!r}" if char else "unexpected end")
        return CompoundSelector(kind=kind, attributes=tuple(attributes))

    def _resolve_kind(self, name: str) -> KindSpec:
        if name in ESTREE_KINDS:
            return ESTREE_KINDS[name]
        if _SNAKE_KIND_RE.fullmatch(name) and is_known_node_kind(name):
            return KindSpec(frozenset({name}))
        raise self.error(f"unknown node kind '{name}'")

    def parse_attribute(self) -> AttributeTest:
        self.pos += 1  # '['
        self.skip_ws()
        path: list[str] = []
        while True:
            match = _IDENT_RE.match(self.text, self.pos)
            if match is None:
                raise self.error("expected attribute name")
            path.append(match.group())
            self.pos = match.end()
            if self.peek() != ".":
                break
            self.pos += 1
        self.skip_ws()

        operator: str | None = None
        value: str | None = None
        pattern: re.Pattern[str] | None = None
        if self.text.startswith("!=", self.pos):
            operator = "!="
            self.pos += 2
        elif self.peek() == "=":
            operator = "="
            self.pos += 1
        if operator is not None:
            self.skip_ws()
            value, pattern = self.parse_value()
            self.skip_ws()

        if self.peek() != "]":
            raise self.error("expected ']'")
        self.pos += 1
        return AttributeTest(path=tuple(path), operator=operator, value=value, pattern=pattern)

    def parse_value(self) -> tuple[str | None, re.Pattern[str] | None]:
        char = self.peek()
        if char in ("'", '"'):
            end = self.text.find(char, self.pos + 1)
            if end == -1:
                raise self.error("unterminated string")
            value = self.text[self.pos + 1 : end]
            self.pos = end + 1
            return value, None
        if char == "/":
            end = self.text.find("/", self.pos + 1)
            while end != -1 and self.text[end - 1] == "\\":
                end = self.text.find("/", end + 1)
            if end == -1:
                raise self.error("unterminated regular expression")
            body = self.text[self.pos + 1 : end]
            self.pos = end + 1
            flags = 0
            while self.peek() and self.peek() in _REGEX_FLAGS:
                flags |= _REGEX_FLAGS[self.peek()]
                self.pos += 1
            try:
                return None, re.compile(body, flags)
            except re.error as exc:
                raise self.error(f"invalid regular expression: {exc}") from exc
        match = _BAREWORD_RE.match(self.text, self.pos)
        if match is None:
            raise self.error("expected attribute value")
        self.pos = match.end()
        return match.group(), None


def parse_selector(text: str) -> Selector:
    """Compile a selector expression.

    Raises :class:`SelectorSyntaxError` on malformed input or unknown ESTree
    node kinds.
    """
    if not isinstance(text, str):
        raise SelectorSyntaxError(str(text), 0, "selector must be a string")
    return _SelectorParser(text).parse()
