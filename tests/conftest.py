"""Shared test fixtures for archlint."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from archlint.engine.syntax import parse_source
from archlint.rules import default_registry

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from archlint.engine.registry import RuleRegistry
    from archlint.engine.syntax import ParsedSource


@pytest.fixture()
def registry() -> RuleRegistry:
    """The built-in rule registry."""
    return default_registry()


@pytest.fixture()
def parse() -> Callable[..., ParsedSource]:
    """Parse a TypeScript snippet; ``path`` picks the grammar (default ``src/a.ts``)."""

    def _parse(code: str, path: str = "src/a.ts") -> ParsedSource:
        return parse_source(path, code.encode("utf-8"))

    return _parse


@pytest.fixture()
def write(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a file under ``tmp_path``, creating parent directories."""

    def _write(rel_path: str, content: str) -> Path:
        path = tmp_path / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
