"""
nullcheck/diagnostics.py
════════════════════════

Violation model and reporter sinks.

The analysis core is agnostic to how findings are rendered: every check
calls :meth:`Reporter.report` with a location and a message.  The
:class:`ViolationCollector` keeps the findings in emission order and
renders them in the two formats the command line offers (GCC-style text
and one-JSON-object-per-line).

Error ids
─────────
  nullabilityDeclMismatch     local declaration initializer
  nullabilityAssignMismatch   assignment to a variable
  nullabilityReturnMismatch   return statement
  nonnullArgument             message-send argument
  nullableArrayElement        array literal element
  nullableDictionaryKey       dictionary literal key
  nullableDictionaryValue     dictionary literal value
  nullabilityCastChangesType  cast that also changes the base type
  uninitializedNonnullIvar    initializer leaves a non-null ivar unset
  variableNullability         debug remark
"""

from __future__ import annotations

import json
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Protocol, runtime_checkable


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 - LOCATIONS & SEVERITIES
# ═════════════════════════════════════════════════════════════════════════

class Severity(Enum):
    """Diagnostic severity, mirroring the host compiler's levels."""
    WARNING = "warning"
    REMARK = "remark"


@dataclass(frozen=True)
class SourceLocation:
    """A specific point in source code."""
    file: str = ""
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        if self.column:
            return f"{self.file}:{self.line}:{self.column}"
        return f"{self.file}:{self.line}"


#: Location of synthesised nodes with no source position.
NO_LOCATION = SourceLocation()


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 - VIOLATION
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Violation:
    """
    A single finding.

    Attributes
    ----------
    location : where the offending expression or declaration starts
    message  : human-readable description
    error_id : stable identifier (see module docstring)
    severity : WARNING for contract violations, REMARK for debug traces
    """
    location: SourceLocation
    message: str
    error_id: str = ""
    severity: Severity = Severity.WARNING

    def to_json(self) -> Dict[str, Any]:
        return {
            "file": self.location.file,
            "linenr": self.location.line,
            "column": self.location.column,
            "severity": self.severity.value,
            "message": self.message,
            "errorId": self.error_id,
        }

    def to_json_str(self) -> str:
        """Single-line JSON string."""
        return json.dumps(self.to_json())

    def to_gcc_format(self) -> str:
        """GCC-style diagnostic string: file:line:col: severity: message."""
        text = f"{self.location}: {self.severity.value}: {self.message}"
        if self.error_id:
            text += f" [{self.error_id}]"
        return text


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 - REPORTER SINKS
# ═════════════════════════════════════════════════════════════════════════

@runtime_checkable
class Reporter(Protocol):
    """Sink consumed by the checker, the initializer pass and the driver."""

    def report(
        self,
        location: SourceLocation,
        message: str,
        *,
        error_id: str = "",
        severity: Severity = Severity.WARNING,
    ) -> None:
        ...


class ViolationCollector:
    """
    Reporter that records violations in emission order.

    Usage
    -----
    >>> sink = ViolationCollector()
    >>> sink.report(SourceLocation("a.m", 3, 7), "Nullability mismatch on return")
    >>> [v.message for v in sink]
    ['Nullability mismatch on return']
    """

    def __init__(self) -> None:
        self._violations: List[Violation] = []

    def report(
        self,
        location: SourceLocation,
        message: str,
        *,
        error_id: str = "",
        severity: Severity = Severity.WARNING,
    ) -> None:
        self._violations.append(Violation(
            location=location,
            message=message,
            error_id=error_id,
            severity=severity,
        ))

    @property
    def violations(self) -> List[Violation]:
        return list(self._violations)

    def __iter__(self) -> Iterator[Violation]:
        return iter(list(self._violations))

    def __len__(self) -> int:
        return len(self._violations)

    @property
    def warning_count(self) -> int:
        return sum(1 for v in self._violations if v.severity is Severity.WARNING)

    @property
    def remark_count(self) -> int:
        return sum(1 for v in self._violations if v.severity is Severity.REMARK)

    def by_error_id(self) -> Dict[str, List[Violation]]:
        grouped: Dict[str, List[Violation]] = defaultdict(list)
        for v in self._violations:
            grouped[v.error_id].append(v)
        return dict(grouped)

    def to_json_lines(self) -> str:
        return "\n".join(v.to_json_str() for v in self._violations)

    def to_gcc_format(self) -> str:
        return "\n".join(v.to_gcc_format() for v in self._violations)

    def summary(self) -> str:
        """Human-readable summary."""
        lines = [
            f"Nullability check complete: {self.warning_count} warnings, "
            f"{self.remark_count} remarks",
        ]
        for error_id, items in sorted(self.by_error_id().items()):
            lines.append(f"  {error_id or '<none>'}: {len(items)}")
        return "\n".join(lines)


__all__ = [
    "Severity",
    "SourceLocation",
    "NO_LOCATION",
    "Violation",
    "Reporter",
    "ViolationCollector",
]
