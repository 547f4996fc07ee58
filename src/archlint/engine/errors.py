"""Error taxonomy for configuration, rule execution, and parsing failures."""

from __future__ import annotations


class ArchlintError(Exception):
    """Base class for all archlint errors."""


class ConfigurationError(ArchlintError):
    """Raised when the lint configuration is invalid.

    Fatal: the run aborts before any file is analyzed.
    """


class SelectorSyntaxError(ConfigurationError):
    """Raised when a selector expression cannot be parsed."""

    def __init__(self, selector: str, position: int, reason: str) -> None:
        self.selector = selector
        self.position = position
        self.reason = reason
        super().__init__(f"Invalid selector {selector!r} at position {position}: {reason}")


class RuleExecutionError(ArchlintError):
    """A rule module raised while evaluating a file."""

    def __init__(self, rule_id: str, file_path: str, cause: BaseException) -> None:
        self.rule_id = rule_id
        self.file_path = file_path
        self.cause = cause
        super().__init__(f"Rule '{rule_id}' crashed on {file_path}: {cause!r}")


class ParseUnavailableError(ArchlintError):
    """The parser could not produce a usable tree for a file."""

    def __init__(self, file_path: str, reason: str, *, line: int = 1, column: int = 1) -> None:
        self.file_path = file_path
        self.reason = reason
        self.line = line
        self.column = column
        super().__init__(f"{file_path}: {reason}")
