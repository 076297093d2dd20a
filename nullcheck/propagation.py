"""
nullcheck.propagation
=====================

Seeds the environment of one method body.

Every parameter and local variable declared in the body (closure
parameters and locals included) enters the environment with its declared
nullability.

With ``infer_locals`` enabled, un-annotated locals additionally take the
join of the kinds of every value stored into them: the explicit
initializer and the right-hand side of every plain assignment.  Locals can
feed each other (``a = b; b = @"x";``), so the inference is iterated to a
fixpoint, bounded by ``max_iterations``.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from nullcheck.ast_nodes import (
    Assign,
    BlockLiteral,
    DeclStmt,
    Expr,
    MethodDecl,
    VarDecl,
    VarKind,
    VarRef,
    walk,
)
from nullcheck.calculator import NullabilityCalculator
from nullcheck.environment import Environment
from nullcheck.lattice import UNSPECIFIED, NullabilityKind, join_all

logger = logging.getLogger(__name__)


@dataclass
class PropagationResult:
    """Seeded environment plus bookkeeping for the debug trace.

    Attributes
    ----------
    env        : environment handed to the checker
    variables  : every variable seeded, in declaration order
    inferred   : un-annotated locals whose kind came from their values
    iterations : fixpoint rounds performed (0 when inference is off)
    converged  : whether the fixpoint was reached within the bound
    """
    env: Environment
    variables: List[VarDecl] = field(default_factory=list)
    inferred: Dict[VarDecl, NullabilityKind] = field(default_factory=dict)
    iterations: int = 0
    converged: bool = True


def collect_variables(method: MethodDecl) -> List[VarDecl]:
    """Parameters followed by every variable declared in the body."""
    seen: List[VarDecl] = list(method.params)
    if method.body is None:
        return seen
    for node in walk(method.body):
        if isinstance(node, DeclStmt):
            seen.extend(node.decls)
        elif isinstance(node, BlockLiteral):
            seen.extend(node.params)
    return seen


def collect_stored_values(method: MethodDecl) -> Dict[VarDecl, List[Expr]]:
    """Map each local to the expressions stored into it."""
    stored: Dict[VarDecl, List[Expr]] = defaultdict(list)
    if method.body is None:
        return stored
    for node in walk(method.body):
        if isinstance(node, DeclStmt):
            for decl in node.decls:
                if decl.has_explicit_init:
                    stored[decl].append(decl.init)
        elif isinstance(node, Assign) and isinstance(node.lhs, VarRef):
            stored[node.lhs.decl].append(node.rhs)
    return stored


class VariableNullabilityPropagation:
    """Builds the initial :class:`Environment` for a method body."""

    def __init__(
        self,
        calculator: Optional[NullabilityCalculator] = None,
        *,
        infer_locals: bool = False,
        max_iterations: Optional[int] = None,
    ) -> None:
        self.calculator = calculator or NullabilityCalculator()
        self.infer_locals = infer_locals
        self.max_iterations = max_iterations

    def propagate(self, method: MethodDecl) -> PropagationResult:
        variables = collect_variables(method)
        env = Environment.from_declarations(variables)
        result = PropagationResult(env=env, variables=variables)
        if not self.infer_locals:
            return result

        stored = collect_stored_values(method)
        candidates = [
            decl for decl in variables
            if decl.kind is VarKind.LOCAL
            and decl.declared_nullability is UNSPECIFIED
            and stored.get(decl)
        ]
        if not candidates:
            return result

        bound = self.max_iterations or len(candidates) + 2
        converged = False
        iterations = 0
        while iterations < bound:
            iterations += 1
            changed = False
            for decl in candidates:
                kind = join_all(
                    self.calculator.classify(value, env) for value in stored[decl]
                )
                if env.lookup(decl) is not kind:
                    env = env.bind(decl, kind)
                    changed = True
            if not changed:
                converged = True
                break

        if not converged:
            logger.warning(
                "local nullability inference for %s did not converge after %d rounds",
                method.qualified_name, iterations,
            )
        result.env = env
        result.inferred = {decl: env.lookup(decl) for decl in candidates}
        result.iterations = iterations
        result.converged = converged
        return result


__all__ = [
    "PropagationResult",
    "collect_variables",
    "collect_stored_values",
    "VariableNullabilityPropagation",
]
