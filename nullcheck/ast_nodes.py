# nullcheck/ast_nodes.py
"""
Resolved syntax tree consumed by the nullability checker.

The tree is produced by an external front end (or by
:mod:`nullcheck.loader` from an S-expression dump): every expression
already carries its static type, every variable reference points at its
declaration and every message send whose target is statically known
points at the matched method.

Design invariants
-----------------
* Every node is a frozen dataclass; children are tuples.
* Declarations (variables, ivars, methods) compare by identity
  (``eq=False``) so they can key environments.
* Every node records its ``SourceLocation`` for diagnostics.
* Expression nodes expose ``.type`` (a :class:`QualType`); for references
  and wrappers it is derived from the referenced declaration or child.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Iterator, Optional, Tuple, Union

from nullcheck.diagnostics import NO_LOCATION, SourceLocation
from nullcheck.lattice import NONNULL, UNSPECIFIED, NullabilityKind


# ── Types ────────────────────────────────────────────────────────

_POINTER_SPACING = re.compile(r"\s*\*")
_OBJECT_POINTER = re.compile(r"^([A-Za-z_]\w*)\s*(?:<([^>]*)>)?\s*\*$")
_QUALIFIED_ID = re.compile(r"^id\s*<([^>]*)>$")


def normalize_spelling(spelling: str) -> str:
    """Collapse whitespace so ``NSString*`` and ``NSString *`` compare equal."""
    text = " ".join(spelling.split())
    return _POINTER_SPACING.sub(" *", text).strip()


@dataclass(frozen=True)
class QualType:
    """A desugared static type plus its nullability facet.

    ``spelling`` is the base type without nullability qualifiers, e.g.
    ``"NSString *"``, ``"id"``, ``"id<NSCopying>"`` or ``"BOOL"``.
    Closure (block) types carry the closure's own return type in
    ``block_return``.
    """
    spelling: str
    nullability: NullabilityKind = UNSPECIFIED
    block_return: Optional[QualType] = None

    @property
    def base(self) -> str:
        return normalize_spelling(self.spelling)

    @property
    def is_block(self) -> bool:
        return self.block_return is not None

    @property
    def is_any_object(self) -> bool:
        """``id`` and ``id<P>``: the fully generic object type."""
        base = self.base
        return base == "id" or _QUALIFIED_ID.match(base) is not None

    @property
    def interface_name(self) -> Optional[str]:
        """``NSString`` for ``NSString *``; ``None`` for non-class types."""
        m = _OBJECT_POINTER.match(self.base)
        if m is None:
            return None
        return m.group(1)

    @property
    def protocols(self) -> Tuple[str, ...]:
        base = self.base
        m = _QUALIFIED_ID.match(base)
        if m is not None:
            raw = m.group(1)
        else:
            m = _OBJECT_POINTER.match(base)
            if m is None or m.group(2) is None:
                return ()
            raw = m.group(2)
        return tuple(p.strip() for p in raw.split(",") if p.strip())

    def same_base(self, other: QualType) -> bool:
        """Identical modulo nullability qualifiers."""
        if self.base != other.base:
            return False
        if self.is_block or other.is_block:
            return (
                self.block_return is not None
                and other.block_return is not None
                and self.block_return.same_base(other.block_return)
            )
        return True

    def with_nullability(self, kind: NullabilityKind) -> QualType:
        return replace(self, nullability=kind)

    def __str__(self) -> str:
        if self.nullability is UNSPECIFIED:
            return self.base
        return f"{self.base} _{self.nullability.value.capitalize()}"


def object_type(
    interface: str, nullability: NullabilityKind = UNSPECIFIED
) -> QualType:
    """``Interface *`` with the given nullability."""
    return QualType(f"{interface} *", nullability)


def block_type(
    returns: QualType, nullability: NullabilityKind = UNSPECIFIED
) -> QualType:
    return QualType(f"{returns.base} (^)()", nullability, block_return=returns)


ID_TYPE = QualType("id")
BOOL_TYPE = QualType("BOOL")
VOID_TYPE = QualType("void")


# ── Declarations ─────────────────────────────────────────────────

class VarKind(Enum):
    LOCAL = auto()
    PARAM = auto()
    BLOCK_PARAM = auto()


@dataclass(frozen=True, eq=False)
class VarDecl:
    """A local variable or parameter.  Compared by identity."""
    name: str
    type: QualType
    kind: VarKind = VarKind.LOCAL
    init: Optional[Expr] = None
    implicit_init: bool = False
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)

    @property
    def declared_nullability(self) -> NullabilityKind:
        return self.type.nullability

    @property
    def has_explicit_init(self) -> bool:
        return self.init is not None and not self.implicit_init


@dataclass(frozen=True, eq=False)
class IvarDecl:
    """An instance field of a class implementation."""
    name: str
    type: QualType
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)

    @property
    def is_nonnull(self) -> bool:
        return self.type.nullability is NONNULL


@dataclass(frozen=True, eq=False)
class MethodDecl:
    """A method declaration, optionally with a body.

    ``container`` is the name of the interface or protocol that declares
    the method; it is what message-send diagnostics print.  A variadic
    method (``stringWithFormat:``) accepts arguments past its parameters.
    """
    selector: str
    return_type: QualType = VOID_TYPE
    params: Tuple[VarDecl, ...] = ()
    is_class_method: bool = False
    container: str = ""
    body: Optional[Compound] = None
    is_variadic: bool = False
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)

    @property
    def is_instance_method(self) -> bool:
        return not self.is_class_method

    @property
    def has_body(self) -> bool:
        return self.body is not None

    @property
    def qualified_name(self) -> str:
        sign = "+" if self.is_class_method else "-"
        return f"{sign}[{self.container} {self.selector}]"


class ContainerKind(Enum):
    INTERFACE = auto()
    PROTOCOL = auto()


@dataclass(frozen=True, eq=False)
class ContainerDecl:
    """An ``@interface`` or ``@protocol`` with its declared methods."""
    name: str
    kind: ContainerKind = ContainerKind.INTERFACE
    superclass: Optional[str] = None
    protocols: Tuple[str, ...] = ()
    methods: Tuple[MethodDecl, ...] = ()
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)

    def lookup(self, selector: str, *, class_method: bool) -> Optional[MethodDecl]:
        for method in self.methods:
            if method.selector == selector and method.is_class_method == class_method:
                return method
        return None


@dataclass(frozen=True, eq=False)
class ImplementationDecl:
    """An ``@implementation``: ivars and method bodies of one class."""
    name: str
    ivars: Tuple[IvarDecl, ...] = ()
    methods: Tuple[MethodDecl, ...] = ()
    designated_initializers: Tuple[str, ...] = ()
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)

    @property
    def nonnull_ivars(self) -> Tuple[IvarDecl, ...]:
        return tuple(iv for iv in self.ivars if iv.is_nonnull)


@dataclass(frozen=True)
class TranslationUnit:
    file: str = "<unknown>"
    containers: Tuple[ContainerDecl, ...] = ()
    implementations: Tuple[ImplementationDecl, ...] = ()


# ── Expressions ──────────────────────────────────────────────────

@dataclass(frozen=True)
class VarRef:
    decl: VarDecl
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)

    @property
    def type(self) -> QualType:
        return self.decl.type


@dataclass(frozen=True)
class IvarRef:
    """``ivar`` or ``self->ivar``; ``base`` is the explicit receiver, if any."""
    ivar: IvarDecl
    base: Optional[Expr] = None
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)

    @property
    def type(self) -> QualType:
        return self.ivar.type


@dataclass(frozen=True)
class SelfRef:
    type: QualType = ID_TYPE
    is_super: bool = False
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)


@dataclass(frozen=True)
class Literal:
    """``nil``, string, number and other constants."""
    type: QualType
    value: object = None
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)


@dataclass(frozen=True)
class Paren:
    inner: Expr
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)

    @property
    def type(self) -> QualType:
        return self.inner.type


@dataclass(frozen=True)
class Cast:
    """An explicit C-style cast ``(target)operand``."""
    target: QualType
    operand: Expr
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)

    @property
    def type(self) -> QualType:
        return self.target


class ReceiverKind(Enum):
    INSTANCE = auto()
    SUPER_INSTANCE = auto()
    CLASS = auto()
    SUPER_CLASS = auto()

    @property
    def sign(self) -> str:
        if self in (ReceiverKind.INSTANCE, ReceiverKind.SUPER_INSTANCE):
            return "-"
        return "+"


@dataclass(frozen=True)
class MessageSend:
    """``[receiver selector:args...]``.

    ``method`` is the statically matched declaration, or ``None`` when the
    target is only known at run time.  ``receiver`` is ``None`` for class
    and super sends.
    """
    receiver_kind: ReceiverKind
    selector: str
    args: Tuple[Expr, ...] = ()
    receiver: Optional[Expr] = None
    method: Optional[MethodDecl] = None
    type: QualType = ID_TYPE
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)


@dataclass(frozen=True)
class FunctionCall:
    """A plain C function call; arguments are traversed but not checked."""
    name: str
    args: Tuple[Expr, ...] = ()
    type: QualType = ID_TYPE
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)


LOGICAL_NOT = "!"
LOGICAL_AND = "&&"
LOGICAL_OR = "||"
COMPARISON_OPS = frozenset({"==", "!=", "<", ">", "<=", ">="})


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: Expr
    type: QualType = BOOL_TYPE
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)


@dataclass(frozen=True)
class BinaryOp:
    op: str
    lhs: Expr
    rhs: Expr
    type: QualType = BOOL_TYPE
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)

    @property
    def is_logical_and(self) -> bool:
        return self.op == LOGICAL_AND

    @property
    def is_logical_or(self) -> bool:
        return self.op == LOGICAL_OR


@dataclass(frozen=True)
class Assign:
    lhs: Expr
    rhs: Expr
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)

    @property
    def type(self) -> QualType:
        return self.lhs.type


@dataclass(frozen=True)
class Conditional:
    """Ternary ``cond ? then : otherwise``."""
    cond: Expr
    then: Expr
    otherwise: Expr
    type: QualType = ID_TYPE
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)


@dataclass(frozen=True)
class ArrayLiteral:
    elements: Tuple[Expr, ...] = ()
    type: QualType = QualType("NSArray *", NONNULL)
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)


@dataclass(frozen=True)
class DictLiteral:
    pairs: Tuple[Tuple[Expr, Expr], ...] = ()
    type: QualType = QualType("NSDictionary *", NONNULL)
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)


@dataclass(frozen=True)
class BlockLiteral:
    """A closure literal ``^ReturnType (params) { body }``."""
    type: QualType
    body: Compound
    params: Tuple[VarDecl, ...] = ()
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)


Expr = Union[
    VarRef, IvarRef, SelfRef, Literal, Paren, Cast, MessageSend,
    FunctionCall, UnaryOp, BinaryOp, Assign, Conditional,
    ArrayLiteral, DictLiteral, BlockLiteral,
]


# ── Statements ───────────────────────────────────────────────────

@dataclass(frozen=True)
class Compound:
    body: Tuple[Stmt, ...] = ()
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)


@dataclass(frozen=True)
class DeclStmt:
    decls: Tuple[VarDecl, ...]
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)


@dataclass(frozen=True)
class ExprStmt:
    expr: Expr
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)


@dataclass(frozen=True)
class If:
    cond: Expr
    then: Stmt
    otherwise: Optional[Stmt] = None
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)


@dataclass(frozen=True)
class While:
    cond: Expr
    body: Stmt
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)


@dataclass(frozen=True)
class Return:
    value: Optional[Expr] = None
    loc: SourceLocation = field(default=NO_LOCATION, repr=False)


Stmt = Union[Compound, DeclStmt, ExprStmt, If, While, Return]
Node = Union[Expr, Stmt]


# ── Helpers ──────────────────────────────────────────────────────

def strip_parens(expr: Expr) -> Expr:
    while isinstance(expr, Paren):
        expr = expr.inner
    return expr


def bare_var_ref(expr: Expr) -> Optional[VarDecl]:
    """The variable an expression names directly (parentheses ignored)."""
    inner = strip_parens(expr)
    if isinstance(inner, VarRef):
        return inner.decl
    return None


def is_logical_and(expr: Expr) -> bool:
    inner = strip_parens(expr)
    return isinstance(inner, BinaryOp) and inner.is_logical_and


def iter_children(node: Node) -> Iterator[Node]:
    """Yield the direct sub-nodes of *node* in evaluation order.

    Closure bodies are yielded as a single :class:`Compound`; variable
    initializers are yielded for :class:`DeclStmt`.
    """
    if isinstance(node, Compound):
        yield from node.body
    elif isinstance(node, DeclStmt):
        for decl in node.decls:
            if decl.init is not None:
                yield decl.init
    elif isinstance(node, ExprStmt):
        yield node.expr
    elif isinstance(node, If):
        yield node.cond
        yield node.then
        if node.otherwise is not None:
            yield node.otherwise
    elif isinstance(node, While):
        yield node.cond
        yield node.body
    elif isinstance(node, Return):
        if node.value is not None:
            yield node.value
    elif isinstance(node, IvarRef):
        if node.base is not None:
            yield node.base
    elif isinstance(node, Paren):
        yield node.inner
    elif isinstance(node, Cast):
        yield node.operand
    elif isinstance(node, MessageSend):
        if node.receiver is not None:
            yield node.receiver
        yield from node.args
    elif isinstance(node, FunctionCall):
        yield from node.args
    elif isinstance(node, UnaryOp):
        yield node.operand
    elif isinstance(node, BinaryOp):
        yield node.lhs
        yield node.rhs
    elif isinstance(node, Assign):
        yield node.lhs
        yield node.rhs
    elif isinstance(node, Conditional):
        yield node.cond
        yield node.then
        yield node.otherwise
    elif isinstance(node, ArrayLiteral):
        yield from node.elements
    elif isinstance(node, DictLiteral):
        for key, value in node.pairs:
            yield key
            yield value
    elif isinstance(node, BlockLiteral):
        yield node.body


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal of *node* and all of its descendants."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(list(iter_children(current))))


def node_location(node: Node) -> SourceLocation:
    return getattr(node, "loc", NO_LOCATION)


__all__ = [
    "normalize_spelling",
    "QualType",
    "object_type",
    "block_type",
    "ID_TYPE",
    "BOOL_TYPE",
    "VOID_TYPE",
    "VarKind",
    "VarDecl",
    "IvarDecl",
    "MethodDecl",
    "ContainerKind",
    "ContainerDecl",
    "ImplementationDecl",
    "TranslationUnit",
    "VarRef",
    "IvarRef",
    "SelfRef",
    "Literal",
    "Paren",
    "Cast",
    "ReceiverKind",
    "MessageSend",
    "FunctionCall",
    "LOGICAL_NOT",
    "LOGICAL_AND",
    "LOGICAL_OR",
    "COMPARISON_OPS",
    "UnaryOp",
    "BinaryOp",
    "Assign",
    "Conditional",
    "ArrayLiteral",
    "DictLiteral",
    "BlockLiteral",
    "Expr",
    "Compound",
    "DeclStmt",
    "ExprStmt",
    "If",
    "While",
    "Return",
    "Stmt",
    "Node",
    "strip_parens",
    "bare_var_ref",
    "is_logical_and",
    "iter_children",
    "walk",
    "node_location",
]
