"""
nullcheck.environment
=====================

Variable → nullability mapping with copy-on-fork narrowing.

An :class:`Environment` is an immutable value.  Narrowing a variable
returns a *new* environment; the receiver is untouched, so a branch or an
AND chain that narrows its own fork can never change what a sibling
branch, or the statement after an ``if``, observes.

Lookups of variables the environment has never seen fall back to the
variable's declared nullability, which makes an empty environment a valid
starting point for closure bodies and hand-built trees.
"""

from __future__ import annotations

import types
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple

from nullcheck.ast_nodes import VarDecl
from nullcheck.lattice import NONNULL, NullabilityKind


class Environment(Mapping[VarDecl, NullabilityKind]):
    """Immutable mapping from variable declaration identity to kind.

    Usage
    -----
    >>> env = Environment.from_declarations([x, y])
    >>> inner = env.narrow(x)
    >>> inner.lookup(x), env.lookup(x)
    (NullabilityKind.NONNULL, NullabilityKind.NULLABLE)
    """

    __slots__ = ("_kinds",)

    def __init__(
        self, kinds: Optional[Mapping[VarDecl, NullabilityKind]] = None
    ) -> None:
        self._kinds: Mapping[VarDecl, NullabilityKind] = types.MappingProxyType(
            dict(kinds or {})
        )

    # ── construction ──────────────────────────────────────────────

    @classmethod
    def from_declarations(cls, decls: Iterable[VarDecl]) -> Environment:
        """Seed an environment from declared nullability."""
        return cls({decl: decl.declared_nullability for decl in decls})

    # ── Mapping protocol ──────────────────────────────────────────

    def __getitem__(self, decl: VarDecl) -> NullabilityKind:
        return self._kinds[decl]

    def __iter__(self) -> Iterator[VarDecl]:
        return iter(self._kinds)

    def __len__(self) -> int:
        return len(self._kinds)

    # ── queries ───────────────────────────────────────────────────

    def lookup(self, decl: VarDecl) -> NullabilityKind:
        """Current kind of *decl*, or its declared kind if never seeded."""
        kind = self._kinds.get(decl)
        if kind is None:
            return decl.declared_nullability
        return kind

    # ── functional updates ────────────────────────────────────────

    def bind(self, decl: VarDecl, kind: NullabilityKind) -> Environment:
        if self._kinds.get(decl) is kind:
            return self
        updated: Dict[VarDecl, NullabilityKind] = dict(self._kinds)
        updated[decl] = kind
        return Environment(updated)

    def narrow(self, decl: VarDecl) -> Environment:
        """Fork with *decl* proven non-null."""
        return self.bind(decl, NONNULL)

    def items_by_name(self) -> Tuple[Tuple[str, NullabilityKind], ...]:
        return tuple((decl.name, kind) for decl, kind in self._kinds.items())

    def __repr__(self) -> str:
        inner = ", ".join(f"{name}: {kind}" for name, kind in self.items_by_name())
        return f"Environment({{{inner}}})"


__all__ = ["Environment"]
