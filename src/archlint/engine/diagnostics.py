"""Diagnostics and the thread-safe aggregator that orders them."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SEVERITY_ERROR = "error"
SEVERITY_WARN = "warn"
SEVERITY_OFF = "off"

VALID_SEVERITIES: frozenset[str] = frozenset({SEVERITY_ERROR, SEVERITY_WARN, SEVERITY_OFF})

# ESLint numeric severities.
NUMERIC_SEVERITIES: dict[int, str] = {0: SEVERITY_OFF, 1: SEVERITY_WARN, 2: SEVERITY_ERROR}

UNPARSABLE_FILE_RULE = "unparsable-file"
RULE_CRASHED_MESSAGE = "rule crashed"


@dataclass(frozen=True)
class Diagnostic:
    """A single reported violation."""

    file: str
    line: int  # 1-based
    column: int  # 1-based
    rule_id: str
    severity: str  # "error" | "warn"
    message: str

    @property
    def sort_key(self) -> tuple[str, int, int, str]:
        return (self.file, self.line, self.column, self.rule_id)

    @property
    def is_error(self) -> bool:
        return self.severity == SEVERITY_ERROR


class DiagnosticAggregator:
    """Collect diagnostics from concurrent producers.

    Producers call :meth:`add` with the full diagnostic list of one file; no
    coordination between producers is needed.  Submitting the same file twice
    replaces the earlier list.  :meth:`results` performs the final stable sort
    by ``(file, line, column, rule_id)``, so ties keep the order in which the
    producer emitted them (block order, then rule order).
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_file: dict[str, list[Diagnostic]] = {}

    def add(self, file_path: str, diagnostics: Iterable[Diagnostic]) -> None:
        items = list(diagnostics)
        with self._lock:
            self._by_file[file_path] = items

    @property
    def file_count(self) -> int:
        with self._lock:
            return len(self._by_file)

    def results(self) -> list[Diagnostic]:
        with self._lock:
            files = sorted(self._by_file)
            merged = [d for path in files for d in self._by_file[path]]
        merged.sort(key=lambda d: d.sort_key)
        return merged


def has_errors(diagnostics: Iterable[Diagnostic]) -> bool:
    """Return True if any diagnostic has error severity."""
    return any(d.is_error for d in diagnostics)
