"""
nullcheck.initializer
=====================

Definite-initialization analysis for initializer methods.

A designated initializer must leave every ``nonnull`` ivar assigned on
every path that reaches a ``return`` (including falling off the end of
the body).  This is a forward *must* analysis over the statement tree:

* the fact at a point is the set of ivars assigned on **all** paths that
  reach it;
* sequencing adds the ivars assigned by each statement;
* control-flow joins take the **intersection** (meet) of the incoming
  facts;
* code after a ``return`` is unreachable (``None``), the identity of the
  meet.

Conditionally evaluated code never contributes: loop bodies (zero trips
are possible), the right operand of ``&&``/``||``, both arms of a ternary
beyond their meet, and closure bodies.

Only direct assignments ``ivar = …`` / ``self->ivar = …`` count.  Calls to
other initializers or helpers are treated like any other expression.

Initializer selection
---------------------
Instance methods with a body whose selector is in the ``init`` family
(``init`` or ``init`` followed by an upper-case letter).  When the class
lists designated initializers, only those are analyzed.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Set, Tuple

from nullcheck.ast_nodes import (
    Assign,
    BinaryOp,
    BlockLiteral,
    Compound,
    Conditional,
    DeclStmt,
    Expr,
    ExprStmt,
    If,
    ImplementationDecl,
    IvarDecl,
    IvarRef,
    MethodDecl,
    Return,
    Stmt,
    While,
    iter_children,
    strip_parens,
)

logger = logging.getLogger(__name__)

MSG_UNINITIALIZED = "Nonnull ivar should be initialized"

_INIT_FAMILY = re.compile(r"^init(?:$|[A-Z:])")

# ``None`` marks an unreachable program point.
State = Optional[FrozenSet[IvarDecl]]


def meet(a: State, b: State) -> State:
    """Intersection with ``None`` (unreachable) as identity."""
    if a is None:
        return b
    if b is None:
        return a
    return a & b


def is_init_family(selector: str) -> bool:
    return _INIT_FAMILY.match(selector) is not None


def is_initializer(method: MethodDecl, impl: ImplementationDecl) -> bool:
    """Whether *method* is subject to the definite-initialization check."""
    if method.is_class_method or not method.has_body:
        return False
    if impl.designated_initializers:
        return method.selector in impl.designated_initializers
    return is_init_family(method.selector)


@dataclass(frozen=True)
class InitializerResult:
    """Outcome of analysing one initializer.

    Attributes
    ----------
    method      : the analysed initializer
    missing     : non-null ivars unassigned on some path, in declaration order
    exit_points : number of returns examined (explicit plus the implicit one)
    """
    method: MethodDecl
    missing: Tuple[IvarDecl, ...] = ()
    exit_points: int = 0

    @property
    def ok(self) -> bool:
        return not self.missing

    @property
    def missing_names(self) -> Tuple[str, ...]:
        return tuple(ivar.name for ivar in self.missing)

    @property
    def message(self) -> str:
        return f"{MSG_UNINITIALIZED}: {', '.join(self.missing_names)}"


class InitializerChecker:
    """Runs the must-initialize analysis for the methods of one class."""

    def __init__(self, impl: ImplementationDecl) -> None:
        self.impl = impl
        self._required: Tuple[IvarDecl, ...] = impl.nonnull_ivars
        self._tracked: FrozenSet[IvarDecl] = frozenset(impl.ivars)
        self._missing: Set[IvarDecl] = set()
        self._exit_points = 0

    def check(self, method: MethodDecl) -> List[IvarDecl]:
        """Return the unassigned non-null ivars of *method* (empty if none,
        or if *method* is not an initializer)."""
        if not is_initializer(method, self.impl):
            return []
        return list(self.analyze(method).missing)

    def analyze(self, method: MethodDecl) -> InitializerResult:
        self._missing = set()
        self._exit_points = 0
        if method.body is None:
            return InitializerResult(method=method)

        state = self._stmt(method.body, frozenset())
        if state is not None:
            self._at_exit(state)

        missing = tuple(iv for iv in self._required if iv in self._missing)
        logger.debug(
            "initializer %s: %d exit point(s), missing=%s",
            method.qualified_name, self._exit_points,
            [iv.name for iv in missing],
        )
        return InitializerResult(
            method=method, missing=missing, exit_points=self._exit_points,
        )

    # ── transfer over statements ──────────────────────────────────

    def _stmt(self, stmt: Stmt, state: State) -> State:
        if state is None:
            return None
        if isinstance(stmt, Compound):
            for child in stmt.body:
                state = self._stmt(child, state)
            return state
        if isinstance(stmt, DeclStmt):
            for decl in stmt.decls:
                if decl.init is not None:
                    state = self._expr(decl.init, state)
            return state
        if isinstance(stmt, ExprStmt):
            return self._expr(stmt.expr, state)
        if isinstance(stmt, If):
            state = self._expr(stmt.cond, state)
            then_state = self._stmt(stmt.then, state)
            if stmt.otherwise is None:
                return meet(then_state, state)
            return meet(then_state, self._stmt(stmt.otherwise, state))
        if isinstance(stmt, While):
            state = self._expr(stmt.cond, state)
            self._stmt(stmt.body, state)
            return state
        if isinstance(stmt, Return):
            if stmt.value is not None:
                state = self._expr(stmt.value, state)
            if state is not None:
                self._at_exit(state)
            return None
        return state

    # ── transfer over expressions ─────────────────────────────────

    def _expr(self, expr: Expr, state: State) -> State:
        if state is None:
            return None
        if isinstance(expr, Assign):
            state = self._expr(expr.rhs, state)
            target = strip_parens(expr.lhs)
            if isinstance(target, IvarRef):
                if target.base is not None:
                    state = self._expr(target.base, state)
                if target.ivar in self._tracked and state is not None:
                    return state | {target.ivar}
                return state
            return self._expr(expr.lhs, state)
        if isinstance(expr, BinaryOp) and (expr.is_logical_and or expr.is_logical_or):
            return self._expr(expr.lhs, state)
        if isinstance(expr, Conditional):
            state = self._expr(expr.cond, state)
            return meet(self._expr(expr.then, state), self._expr(expr.otherwise, state))
        if isinstance(expr, BlockLiteral):
            return state
        for child in iter_children(expr):
            state = self._expr(child, state)
        return state

    def _at_exit(self, state: FrozenSet[IvarDecl]) -> None:
        self._exit_points += 1
        for ivar in self._required:
            if ivar not in state:
                self._missing.add(ivar)


__all__ = [
    "MSG_UNINITIALIZED",
    "meet",
    "is_init_family",
    "is_initializer",
    "InitializerResult",
    "InitializerChecker",
]
