"""Scope resolver: map a file path to the policy blocks that apply to it."""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

from archlint.engine.diagnostics import SEVERITY_OFF
from archlint.engine.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from archlint.engine.registry import RuleEntry

DEFAULT_IGNORES: tuple[str, ...] = ("**/node_modules/**", "**/.git/**")


# ---------------------------------------------------------------------------
# Glob compilation
# ---------------------------------------------------------------------------


def _translate(pattern: str, start: int, stop_chars: str) -> tuple[str, int]:
    """Translate ``pattern[start:]`` into a regex until one of *stop_chars*.

    Returns the regex text and the index of the stop character (or the end).
    """
    out: list[str] = []
    i = start
    n = len(pattern)
    while i < n:
        char = pattern[i]
        if char in stop_chars:
            return "".join(out), i
        if char == "*":
            if pattern.startswith("**", i):
                at_segment_start = i == 0 or pattern[i - 1] == "/"
                after = i + 2
                if at_segment_start and (after == n or pattern[after] == "/"):
                    if after == n:
                        out.append(".*")
                        i = after
                    else:
                        out.append("(?:[^/]*/)*")
                        i = after + 1
                    continue
                msg = f"'**' must be a whole path segment in glob '{pattern}'"
                raise ConfigurationError(msg)
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "[":
            end = pattern.find("]", i + 2 if pattern.startswith("[!", i) else i + 1)
            if end == -1:
                msg = f"Unterminated character class in glob '{pattern}'"
                raise ConfigurationError(msg)
            body = pattern[i + 1 : end]
            if body.startswith("!"):
                body = "^" + body[1:]
            if "/" in body:
                msg = f"Character class may not contain '/' in glob '{pattern}'"
                raise ConfigurationError(msg)
            out.append(f"[{body}]")
            i = end
        elif char == "{":
            alternatives: list[str] = []
            i += 1
            while True:
                part, i = _translate(pattern, i, ",}")
                alternatives.append(part)
                if i >= n:
                    msg = f"Unbalanced '{{' in glob '{pattern}'"
                    raise ConfigurationError(msg)
                if pattern[i] == "}":
                    break
                i += 1
            out.append("(?:" + "|".join(alternatives) + ")")
        elif char == "}":
            msg = f"Unbalanced '}}' in glob '{pattern}'"
            raise ConfigurationError(msg)
        else:
            out.append(re.escape(char))
        i += 1
    return "".join(out), i


def compile_glob(pattern: str) -> re.Pattern[str]:
    """Compile a case-sensitive path glob.

    ``*`` and ``?`` never cross ``/``; ``**`` as a whole segment matches
    zero or more directories; ``[...]`` and ``{a,b}`` are supported.
    Raises :class:`ConfigurationError` for malformed patterns.
    """
    if not isinstance(pattern, str) or not pattern.strip():
        msg = f"Glob pattern must be a non-empty string, got {pattern!r}"
        raise ConfigurationError(msg)
    normalized = pattern[2:] if pattern.startswith("./") else pattern
    if normalized.startswith("/"):
        msg = f"Glob '{pattern}' must be relative to the project root"
        raise ConfigurationError(msg)
    body, _ = _translate(normalized, 0, "")
    try:
        return re.compile(f"(?s:{body})\\Z")
    except re.error as exc:
        msg = f"Invalid glob '{pattern}': {exc}"
        raise ConfigurationError(msg) from exc


@dataclass(frozen=True)
class GlobSet:
    """An ordered set of compiled globs; a path matches if any glob matches."""

    patterns: tuple[str, ...]
    compiled: tuple[re.Pattern[str], ...]
    directories: tuple[re.Pattern[str], ...] = ()

    @classmethod
    def compile(cls, patterns: Sequence[str]) -> GlobSet:
        compiled = tuple(compile_glob(p) for p in patterns)
        # ``dir/**`` globs match everything below ``dir``.
        directories = tuple(
            compile_glob(p[:-3]) for p in patterns if p.endswith("/**") and p[:-3]
        )
        return cls(tuple(patterns), compiled, directories)

    def matches(self, path: str) -> bool:
        return any(regex.match(path) for regex in self.compiled)

    def covers_directory(self, path: str) -> bool:
        """Return True if every file below directory *path* matches."""
        return any(regex.match(path) for regex in self.directories)


# ---------------------------------------------------------------------------
# Policy blocks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PolicyBlock:
    """A configuration unit binding a glob scope to a set of rule entries."""

    index: int
    name: str
    files: GlobSet
    ignores: GlobSet
    rules: tuple[RuleEntry, ...]

    def applies_to(self, path: str) -> bool:
        return self.files.matches(path) and not self.ignores.matches(path)


class ScopeResolver:
    """Resolve file paths to the union of matching policy blocks.

    Results are cached per path; the resolver itself is a pure function of
    ``(path, blocks)`` and safe to share between worker threads.
    """

    def __init__(self, blocks: Sequence[PolicyBlock], ignores: GlobSet | None = None) -> None:
        self._blocks = tuple(sorted(blocks, key=lambda b: b.index))
        self._ignores = ignores if ignores is not None else GlobSet.compile(DEFAULT_IGNORES)
        self._cache: dict[str, tuple[PolicyBlock, ...]] = {}
        self._lock = threading.Lock()

    @property
    def blocks(self) -> tuple[PolicyBlock, ...]:
        return self._blocks

    def is_ignored(self, path: str) -> bool:
        return self._ignores.matches(path)

    def resolve(self, path: str) -> tuple[PolicyBlock, ...]:
        """Return every block whose globs match *path*, in declaration order."""
        with self._lock:
            cached = self._cache.get(path)
        if cached is not None:
            return cached
        if self.is_ignored(path):
            result: tuple[PolicyBlock, ...] = ()
        else:
            result = tuple(block for block in self._blocks if block.applies_to(path))
        with self._lock:
            self._cache[path] = result
        return result

    def active_entries(self, path: str) -> list[tuple[PolicyBlock, RuleEntry]]:
        """Return the effective rule entries for *path*.

        Entries from all matching blocks apply, in block order then rule
        order.  A rule set to ``off`` disables that rule id in every matching
        block declared before it.
        """
        entries: list[tuple[PolicyBlock, RuleEntry]] = []
        for block in self.resolve(path):
            for entry in block.rules:
                if entry.severity == SEVERITY_OFF:
                    entries = [(b, e) for b, e in entries if e.rule_id != entry.rule_id]
                else:
                    entries.append((block, entry))
        return entries
