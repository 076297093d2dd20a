# nullcheck/errors.py
"""
Exception hierarchy for the nullcheck tool.

Contract violations found in analysed code are *not* exceptions: they are
:class:`~nullcheck.diagnostics.Violation` records handed to a reporter.
The exceptions below cover infrastructure failures only.

Error Hierarchy:
────────────────
    NullcheckError (base)
    ├── DumpError          - malformed resolved-tree dump
    ├── FilterSyntaxError  - filter pattern that does not parse
    └── ConfigError        - inconsistent analysis options
"""

from __future__ import annotations

from typing import Optional

from nullcheck.diagnostics import SourceLocation


class NullcheckError(Exception):
    """Base class for every error raised by the nullcheck package."""

    def __init__(self, message: str, loc: Optional[SourceLocation] = None) -> None:
        super().__init__(message)
        self.message = message
        self.loc = loc

    def __str__(self) -> str:
        if self.loc is not None and self.loc.line:
            return f"{self.loc}: {self.message}"
        return self.message


class DumpError(NullcheckError):
    """Raised when an S-expression cannot be mapped to a resolved tree node."""


class FilterSyntaxError(NullcheckError):
    """Raised when a declaration filter pattern cannot be parsed."""


class ConfigError(NullcheckError):
    """Raised for invalid or contradictory analysis options."""


__all__ = [
    "NullcheckError",
    "DumpError",
    "FilterSyntaxError",
    "ConfigError",
]
