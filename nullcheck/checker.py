"""
nullcheck/checker.py
════════════════════

The checking visitor: walks one method or closure body and reports every
nullability contract violation it finds.

Contract boundaries
───────────────────
  local declaration   declared kind  vs. initializer
  message send        parameter kind vs. argument, for resolved targets
  assignment          current kind of the target variable vs. value
  return              enclosing return kind vs. returned value
  array literal       every element must be NONNULL
  dictionary literal  every key and every value must be NONNULL
  cast                NONNULL target may not also change the base type
  closure literal     body checked by a fresh visitor, own return kind

A failed check never stops the walk: the visitor reports and then descends
into the sub-nodes, so one violation never hides another.

Narrowing
─────────
The walk carries an explicit narrowing mode:

  PLAIN   ordinary traversal.  The environment is read, never changed.
  CHAIN   inside an ``&&`` chain or an ``if`` condition.  A bare
          variable operand is proven non-null for everything to its right
          (and, for a condition, for the ``then`` branch).  Nested ``&&``
          operands extend the chain; any other operand is checked in PLAIN
          mode, which is how ``||`` and ``!`` end the guarantee.

Environments are immutable, so every fork is by value: the narrowed
environment exists only for the sub-walk that received it.
"""

from __future__ import annotations

import enum
import logging
from typing import Callable, Dict, Optional, Type

from nullcheck.ast_nodes import (
    ArrayLiteral,
    Assign,
    BinaryOp,
    BlockLiteral,
    Cast,
    DeclStmt,
    DictLiteral,
    Expr,
    If,
    MessageSend,
    Node,
    QualType,
    Return,
    VarRef,
    bare_var_ref,
    is_logical_and,
    iter_children,
    node_location,
    strip_parens,
)
from nullcheck.calculator import NullabilityCalculator
from nullcheck.diagnostics import Reporter
from nullcheck.environment import Environment
from nullcheck.lattice import NONNULL, compatible, is_collection_safe

logger = logging.getLogger(__name__)


MSG_DECLARATION = "Nullability mismatch on variable declaration"
MSG_ASSIGNMENT = "Nullability mismatch on assignment"
MSG_RETURN = "Nullability mismatch on return"
MSG_ARRAY_ELEMENT = "Array element should be nonnull"
MSG_DICT_KEY = "Dictionary key should be nonnull"
MSG_DICT_VALUE = "Dictionary value should be nonnull"
MSG_CAST = "Cast on nullability cannot change base type"
MSG_ARGUMENT_SUFFIX = "expects nonnull argument"


class Narrowing(enum.Enum):
    """Traversal mode of :class:`MethodBodyChecker`."""
    PLAIN = "plain"
    CHAIN = "chain"


_Handler = Callable[["MethodBodyChecker", Node, Environment], None]
_HANDLERS: Dict[Type, _Handler] = {}


def _handles(node_type: Type):
    """Decorator: register a PLAIN-mode handler for *node_type*."""
    def deco(fn):
        _HANDLERS[node_type] = fn
        return fn
    return deco


class MethodBodyChecker:
    """
    Checks one body against one declaration context.

    Parameters
    ----------
    reporter    : sink for violations
    return_type : declared return type of the enclosing method or closure;
                  ``None`` disables return checks
    env         : environment owned by this checker
    calculator  : expression classifier (shared, stateless)
    """

    def __init__(
        self,
        reporter: Reporter,
        return_type: Optional[QualType],
        env: Optional[Environment] = None,
        calculator: Optional[NullabilityCalculator] = None,
    ) -> None:
        self.reporter = reporter
        self.return_type = return_type
        self.env = env if env is not None else Environment()
        self.calculator = calculator or NullabilityCalculator()

    # ── entry point ───────────────────────────────────────────────

    def check(self, body: Node) -> None:
        """Walk *body* with this checker's environment."""
        self._visit(body, self.env, Narrowing.PLAIN)

    # ── traversal ─────────────────────────────────────────────────

    def _visit(self, node: Node, env: Environment, mode: Narrowing) -> Environment:
        """Walk *node*; return the environment as narrowed by the walk.

        In PLAIN mode the result is always *env* itself.
        """
        if mode is Narrowing.CHAIN:
            return self._visit_chain(node, env)
        handler = _HANDLERS.get(type(node))
        if handler is not None:
            handler(self, node, env)
        else:
            self._visit_children(node, env)
        return env

    def _visit_children(self, node: Node, env: Environment) -> None:
        for child in iter_children(node):
            self._visit(child, env, Narrowing.PLAIN)

    def _visit_chain(self, node: Node, env: Environment) -> Environment:
        decl = bare_var_ref(node)
        if decl is not None:
            # Referencing a variable is not a contract site.
            return env.narrow(decl)
        if is_logical_and(node):
            land = strip_parens(node)
            env = self._visit_chain(land.lhs, env)
            return self._visit_chain(land.rhs, env)
        self._visit(node, env, Narrowing.PLAIN)
        return env

    # ── helpers ───────────────────────────────────────────────────

    def classify(self, expr: Expr, env: Environment):
        return self.calculator.classify(expr, env)

    def warn(self, node: Node, message: str, error_id: str) -> None:
        self.reporter.report(node_location(node), message, error_id=error_id)


# ═════════════════════════════════════════════════════════════════════════
#  PLAIN-mode handlers
# ═════════════════════════════════════════════════════════════════════════

@_handles(DeclStmt)
def _check_decl_stmt(checker: MethodBodyChecker, stmt: DeclStmt, env: Environment) -> None:
    for decl in stmt.decls:
        if not decl.has_explicit_init:
            continue
        required = checker.calculator.classify_declaration(decl)
        if not compatible(required, checker.classify(decl.init, env)):
            checker.warn(decl.init, MSG_DECLARATION, "nullabilityDeclMismatch")
        checker._visit(decl.init, env, Narrowing.PLAIN)


@_handles(MessageSend)
def _check_message_send(checker: MethodBodyChecker, send: MessageSend, env: Environment) -> None:
    method = send.method
    if method is not None:
        for param, arg in zip(method.params, send.args):
            if not compatible(param.declared_nullability, checker.classify(arg, env)):
                message = (
                    f"{send.receiver_kind.sign}[{method.container} {method.selector}] "
                    f"{MSG_ARGUMENT_SUFFIX}"
                )
                checker.warn(arg, message, "nonnullArgument")
    checker._visit_children(send, env)


@_handles(Assign)
def _check_assign(checker: MethodBodyChecker, assign: Assign, env: Environment) -> None:
    if isinstance(assign.lhs, VarRef):
        required = checker.classify(assign.lhs, env)
        if not compatible(required, checker.classify(assign.rhs, env)):
            checker.warn(assign.rhs, MSG_ASSIGNMENT, "nullabilityAssignMismatch")
    checker._visit_children(assign, env)


@_handles(Return)
def _check_return(checker: MethodBodyChecker, ret: Return, env: Environment) -> None:
    if ret.value is not None and checker.return_type is not None:
        required = checker.return_type.nullability
        if not compatible(required, checker.classify(ret.value, env)):
            checker.warn(ret.value, MSG_RETURN, "nullabilityReturnMismatch")
    checker._visit_children(ret, env)


@_handles(ArrayLiteral)
def _check_array_literal(checker: MethodBodyChecker, literal: ArrayLiteral, env: Environment) -> None:
    for element in literal.elements:
        if not is_collection_safe(checker.classify(element, env)):
            checker.warn(element, MSG_ARRAY_ELEMENT, "nullableArrayElement")
    checker._visit_children(literal, env)


@_handles(DictLiteral)
def _check_dict_literal(checker: MethodBodyChecker, literal: DictLiteral, env: Environment) -> None:
    for key, value in literal.pairs:
        if not is_collection_safe(checker.classify(key, env)):
            checker.warn(key, MSG_DICT_KEY, "nullableDictionaryKey")
        if not is_collection_safe(checker.classify(value, env)):
            checker.warn(value, MSG_DICT_VALUE, "nullableDictionaryValue")
    checker._visit_children(literal, env)


@_handles(BlockLiteral)
def _check_block_literal(checker: MethodBodyChecker, block: BlockLiteral, env: Environment) -> None:
    return_type = block.type.block_return
    if return_type is None:
        logger.debug("closure at %s has no block type; skipped", block.loc)
        return
    nested = MethodBodyChecker(
        checker.reporter, return_type, env, checker.calculator
    )
    nested.check(block.body)


@_handles(Cast)
def _check_cast(checker: MethodBodyChecker, cast: Cast, env: Environment) -> None:
    source = cast.operand.type
    target = cast.target
    if (
        target.nullability is NONNULL
        and source.nullability is not NONNULL
        and not source.same_base(target)
        and not source.is_any_object
    ):
        checker.warn(cast, MSG_CAST, "nullabilityCastChangesType")
    checker._visit_children(cast, env)


@_handles(If)
def _check_if(checker: MethodBodyChecker, stmt: If, env: Environment) -> None:
    # The condition runs in CHAIN mode on a fork; a bare-reference or
    # &&-chain condition leaves its narrowing in ``guarded``.
    guarded = checker._visit(stmt.cond, env, Narrowing.CHAIN)
    checker._visit(stmt.then, guarded, Narrowing.PLAIN)
    if stmt.otherwise is not None:
        checker._visit(stmt.otherwise, env, Narrowing.PLAIN)


@_handles(BinaryOp)
def _check_binary(checker: MethodBodyChecker, expr: BinaryOp, env: Environment) -> None:
    if expr.is_logical_and:
        checker._visit(expr, env, Narrowing.CHAIN)
    else:
        checker._visit_children(expr, env)


def check_body(
    body: Node,
    reporter: Reporter,
    return_type: Optional[QualType],
    env: Optional[Environment] = None,
) -> None:
    """Convenience wrapper: run a fresh :class:`MethodBodyChecker` over *body*."""
    MethodBodyChecker(reporter, return_type, env).check(body)


__all__ = [
    "Narrowing",
    "MethodBodyChecker",
    "check_body",
    "MSG_DECLARATION",
    "MSG_ASSIGNMENT",
    "MSG_RETURN",
    "MSG_ARRAY_ELEMENT",
    "MSG_DICT_KEY",
    "MSG_DICT_VALUE",
    "MSG_CAST",
    "MSG_ARGUMENT_SUFFIX",
]
