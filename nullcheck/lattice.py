"""
nullcheck.lattice
=================

The three-valued nullability kind and the compatibility predicates used by
every other module.

Lattice
-------
::

    UNSPECIFIED   "unknown, assume safe" -- un-annotated code
    NONNULL       the value is never absent
    NULLABLE      the value may be absent

The only forbidden pairing for a contract boundary is a ``NULLABLE`` value
flowing into a ``NONNULL`` slot.  ``UNSPECIFIED`` is compatible on both
sides so that un-annotated code does not drown the user in warnings.

Collection literals use a stricter rule: their members must be proven
``NONNULL``; both ``UNSPECIFIED`` and ``NULLABLE`` are rejected.

Public API
----------
    NullabilityKind       - enum of the three kinds
    compatible            - contract-boundary predicate
    is_collection_safe    - strict predicate for literal members
    join                  - least upper bound used by merges
    parse_kind            - spelling -> kind (``"nonnull"``, ``"_Nullable"``...)
"""

from __future__ import annotations

import enum
from typing import Dict, Iterable


class NullabilityKind(enum.Enum):
    """Nullability facet of a type or of an evaluated expression."""
    UNSPECIFIED = "unspecified"
    NONNULL = "nonnull"
    NULLABLE = "nullable"

    def __str__(self) -> str:
        return self.value


UNSPECIFIED = NullabilityKind.UNSPECIFIED
NONNULL = NullabilityKind.NONNULL
NULLABLE = NullabilityKind.NULLABLE


# Spellings accepted in dumps and on the command line.
_SPELLINGS: Dict[str, NullabilityKind] = {
    "unspecified": UNSPECIFIED,
    "null_unspecified": UNSPECIFIED,
    "_null_unspecified": UNSPECIFIED,
    "nonnull": NONNULL,
    "_nonnull": NONNULL,
    "nullable": NULLABLE,
    "_nullable": NULLABLE,
}


def compatible(required: NullabilityKind, actual: NullabilityKind) -> bool:
    """Return ``True`` unless a ``NULLABLE`` value meets a ``NONNULL`` slot."""
    return not (required is NONNULL and actual is NULLABLE)


def is_collection_safe(actual: NullabilityKind) -> bool:
    """Array elements and dictionary keys/values must be proven non-null."""
    return actual is NONNULL


def join(a: NullabilityKind, b: NullabilityKind) -> NullabilityKind:
    """Merge two kinds observed on different paths.

    ``NULLABLE`` absorbs everything, two ``NONNULL`` stay ``NONNULL``,
    anything else is ``UNSPECIFIED``.
    """
    if a is NULLABLE or b is NULLABLE:
        return NULLABLE
    if a is NONNULL and b is NONNULL:
        return NONNULL
    return UNSPECIFIED


def join_all(kinds: Iterable[NullabilityKind]) -> NullabilityKind:
    """Fold :func:`join` over *kinds*; the empty fold is ``UNSPECIFIED``."""
    result = None
    for kind in kinds:
        result = kind if result is None else join(result, kind)
    return UNSPECIFIED if result is None else result


def parse_kind(spelling: str) -> NullabilityKind:
    """Map an annotation spelling to its kind.

    Raises
    ------
    ValueError
        If *spelling* is not a recognised nullability annotation.
    """
    try:
        return _SPELLINGS[spelling.strip().lower()]
    except KeyError:
        raise ValueError(
            f"Unknown nullability spelling: {spelling!r}. "
            f"Expected one of: {sorted(set(_SPELLINGS))}"
        ) from None


__all__ = [
    "NullabilityKind",
    "UNSPECIFIED",
    "NONNULL",
    "NULLABLE",
    "compatible",
    "is_collection_safe",
    "join",
    "join_all",
    "parse_kind",
]
