"""
nullcheck.calculator
====================

Expression nullability calculator.

``classify(expr, env)`` projects an expression onto the nullability
lattice.  It is a pure function of the expression and the environment: no
caching, no side effects, the same answer every time for the same pair.

Rules
-----
==========================  =================================================
Expression                  Kind
==========================  =================================================
variable reference          environment, else the declared kind
ivar reference              declared kind of the ivar
literal, self/super, cast   nullability of the static type
resolved message send       declared return kind of the matched method
parenthesised expression    kind of the inner expression
``&&``  ``||``  ``!``       NONNULL (boolean result)
comparison                  NONNULL (boolean result)
ternary                     NULLABLE if a branch is, NONNULL if both are
anything else               nullability of the static type
==========================  =================================================
"""

from __future__ import annotations

import logging

from nullcheck.ast_nodes import (
    COMPARISON_OPS,
    LOGICAL_AND,
    LOGICAL_NOT,
    LOGICAL_OR,
    BinaryOp,
    Cast,
    Conditional,
    Expr,
    IvarRef,
    MessageSend,
    Paren,
    UnaryOp,
    VarDecl,
    VarRef,
)
from nullcheck.environment import Environment
from nullcheck.lattice import NONNULL, NULLABLE, NullabilityKind

logger = logging.getLogger(__name__)

_BOOLEAN_BINARY_OPS = frozenset({LOGICAL_AND, LOGICAL_OR}) | COMPARISON_OPS


class NullabilityCalculator:
    """Classifies expressions against an :class:`Environment`.

    The calculator itself is stateless; the environment is an argument so
    a single instance serves every fork of a method body.
    """

    def classify(self, expr: Expr, env: Environment) -> NullabilityKind:
        if isinstance(expr, Paren):
            return self.classify(expr.inner, env)
        if isinstance(expr, VarRef):
            return env.lookup(expr.decl)
        if isinstance(expr, IvarRef):
            return expr.ivar.type.nullability
        if isinstance(expr, Cast):
            return expr.target.nullability
        if isinstance(expr, MessageSend):
            if expr.method is not None:
                return expr.method.return_type.nullability
            return expr.type.nullability
        if isinstance(expr, UnaryOp) and expr.op == LOGICAL_NOT:
            return NONNULL
        if isinstance(expr, BinaryOp) and expr.op in _BOOLEAN_BINARY_OPS:
            return NONNULL
        if isinstance(expr, Conditional):
            return self._classify_conditional(expr, env)
        return expr.type.nullability

    def classify_declaration(self, decl: VarDecl) -> NullabilityKind:
        """Declared kind of a variable; declarations are never narrowed."""
        return decl.declared_nullability

    def _classify_conditional(
        self, expr: Conditional, env: Environment
    ) -> NullabilityKind:
        then_kind = self.classify(expr.then, env)
        else_kind = self.classify(expr.otherwise, env)
        if then_kind is NULLABLE or else_kind is NULLABLE:
            return NULLABLE
        if then_kind is NONNULL and else_kind is NONNULL:
            return NONNULL
        return expr.type.nullability


def classify(expr: Expr, env: Environment) -> NullabilityKind:
    """Module-level convenience wrapper around :class:`NullabilityCalculator`."""
    return _DEFAULT_CALCULATOR.classify(expr, env)


_DEFAULT_CALCULATOR = NullabilityCalculator()


__all__ = ["NullabilityCalculator", "classify"]
