"""Archlint - declarative architectural-boundary linter."""

__version__ = "0.4.0"
