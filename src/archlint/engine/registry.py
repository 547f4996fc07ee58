"""Rule module contract and the immutable rule registry."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from archlint.engine.diagnostics import Diagnostic
from archlint.engine.errors import ConfigurationError
from archlint.engine.syntax import iter_nodes

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from tree_sitter import Node as TSNode

    from archlint.engine.syntax import ParsedSource


@dataclass(frozen=True)
class RuleEntry:
    """One configured rule inside a policy block."""

    rule_id: str
    severity: str  # "error" | "warn" | "off"
    options: object = None  # parsed by the rule module at load time
    block_index: int = 0
    block_name: str = ""


@runtime_checkable
class RuleModule(Protocol):
    """A unit implementing one architectural invariant.

    Rule modules are stateless: the same instance evaluates every file,
    possibly from several threads at once.
    """

    rule_id: str
    description: str

    def parse_options(self, raw: list[object], context: str) -> object:
        """Validate the options that follow the severity; raise ``ConfigurationError``."""
        ...

    def evaluate(self, source: ParsedSource, entry: RuleEntry) -> list[Diagnostic]:
        """Return the diagnostics for one parsed file."""
        ...


def report(source: ParsedSource, node: TSNode, entry: RuleEntry, message: str) -> Diagnostic:
    """Build a :class:`Diagnostic` located at *node*."""
    line, column = source.position(node)
    return Diagnostic(
        file=source.path,
        line=line,
        column=column,
        rule_id=entry.rule_id,
        severity=entry.severity,
        message=message,
    )


class NodeRule:
    """Base class for rules that test nodes one by one.

    Subclasses set ``rule_id``, ``description``, ``message`` and
    ``node_types`` and implement :meth:`match`.
    """

    rule_id: str = ""
    description: str = ""
    message: str = ""
    node_types: frozenset[str] = frozenset()

    def parse_options(self, raw: list[object], context: str) -> object:
        if raw:
            msg = f"{context}: rule '{self.rule_id}' does not accept options"
            raise ConfigurationError(msg)
        return None

    def match(self, node: TSNode, source: ParsedSource) -> bool:
        raise NotImplementedError

    def candidates(self, source: ParsedSource) -> Iterator[TSNode]:
        for node in iter_nodes(source.root):
            if node.type in self.node_types:
                yield node

    def evaluate(self, source: ParsedSource, entry: RuleEntry) -> list[Diagnostic]:
        return [
            report(source, node, entry, self.message)
            for node in self.candidates(source)
            if self.match(node, source)
        ]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.rule_id!r})"


@dataclass(frozen=True)
class RuleRegistry:
    """Immutable mapping from rule id to rule module.

    Built once at startup and passed explicitly to the configuration loader
    and run coordinator.
    """

    _modules: Mapping[str, RuleModule] = field(default_factory=dict)

    @classmethod
    def from_modules(cls, modules: Iterable[RuleModule]) -> RuleRegistry:
        """Build a registry, rejecting duplicate or empty rule ids."""
        table: dict[str, RuleModule] = {}
        for module in modules:
            rule_id = getattr(module, "rule_id", "")
            if not isinstance(rule_id, str) or not rule_id.strip():
                msg = f"Rule module {module!r} has no rule_id"
                raise ConfigurationError(msg)
            if rule_id in table:
                msg = f"Duplicate rule id '{rule_id}' registered"
                raise ConfigurationError(msg)
            table[rule_id] = module
        return cls(MappingProxyType(table))

    def get(self, rule_id: str) -> RuleModule | None:
        return self._modules.get(rule_id)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._modules

    def __len__(self) -> int:
        return len(self._modules)

    def ids(self) -> list[str]:
        """Registered rule ids, in registration order."""
        return list(self._modules)

    def modules(self) -> list[RuleModule]:
        return list(self._modules.values())

    def replace(self, module: RuleModule) -> RuleRegistry:
        """Return a new registry with *module* swapped in under its rule id."""
        table = dict(self._modules)
        table[module.rule_id] = module
        return RuleRegistry(MappingProxyType(table))
