"""nullcheck/loader.py – S-expression dump → resolved syntax tree.

Converts the output of ``sexpdata.loads`` (nested Python lists,
:class:`sexpdata.Symbol`, strings, ints, floats) into the frozen nodes of
:mod:`nullcheck.ast_nodes`.

The dump is written by a front end that has already resolved names and
types, so the loader does no type inference.  It does two things a raw
tree walk cannot: it binds every variable reference to its declaration
through lexical scopes, and it resolves message sends to the method
declared on the receiver's interface, its protocols or its superclasses.

Design principles
-----------------
* **Head-symbol dispatch** – every list ``(tag ...)`` is dispatched on
  ``tag`` to a handler registered with ``@_register``.
* **Fail-fast with location** – :class:`~nullcheck.errors.DumpError`
  carries the ``SourceLocation`` of the enclosing form when known.
* **No implicit coercions** – unknown tags, missing operands and
  unresolvable variable names are errors.

Surface syntax
--------------
::

    (unit "File.m" <decl>...)

    ;; declarations
    (interface Name (super Base)? (protocols P...)? <method-decl>...)
    (protocol Name (protocols P...)? <method-decl>...)
    (implementation Name
        (ivar name TYPE)...
        (designated "selector")...
        <method>...)
    (method - "selector:" (returns TYPE)? (params (param name TYPE)...)?
        (variadic)? (body <stmt>...)?)           ;; + for class methods

    ;; types
    "NSString *"                                 ;; unspecified
    (type "NSString *" nonnull|nullable|unspecified)
    (block RETURN-TYPE nullability?)             ;; closure type

    ;; statements
    (decl name TYPE (init <expr>)?)   (decls (decl ...)...)
    (if <expr> <stmt> <stmt>?)        (while <expr> <stmt>)
    (return <expr>?)                  (compound <stmt>...)
    (expr <expr>)                     <expr>

    ;; expressions
    (ref name)  (ivar name <expr>?)  (self)  (nil)
    (string "text")  (number 42)  (int 0)  (literal TYPE value?)
    (send <receiver> "selector:" <expr>...)
        ;; receiver: <expr> | (class Name) | (super)
    (call name <expr>...)
    (cast TYPE <expr>)  (paren <expr>)
    (not <expr>)  (and <expr> <expr>)  (or <expr> <expr>)
    (binop "==" <expr> <expr>)  (cond <expr> <expr> <expr>)
    (assign <expr> <expr>)
    (array <expr>...)  (dict (pair <expr> <expr>)...)
    (block (returns TYPE)? (params (param name TYPE)...)? (body <stmt>...))

Any form may carry ``(at LINE COL)``.  Sends, calls, conditionals,
binary operators and closures accept ``(as TYPE)`` to override the
static type.

Public API
----------
``load_string(text, *, filename="<string>") -> TranslationUnit``
``load_file(path) -> TranslationUnit``
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import sexpdata
from sexpdata import Symbol

from nullcheck.ast_nodes import (
    BOOL_TYPE,
    ID_TYPE,
    LOGICAL_AND,
    LOGICAL_NOT,
    LOGICAL_OR,
    VOID_TYPE,
    ArrayLiteral,
    Assign,
    BinaryOp,
    BlockLiteral,
    Cast,
    Compound,
    Conditional,
    ContainerDecl,
    ContainerKind,
    DeclStmt,
    DictLiteral,
    Expr,
    ExprStmt,
    FunctionCall,
    If,
    ImplementationDecl,
    IvarDecl,
    IvarRef,
    Literal,
    MessageSend,
    MethodDecl,
    Paren,
    QualType,
    ReceiverKind,
    Return,
    SelfRef,
    Stmt,
    TranslationUnit,
    UnaryOp,
    VarDecl,
    VarKind,
    VarRef,
    While,
    block_type,
    object_type,
)
from nullcheck.diagnostics import SourceLocation
from nullcheck.errors import DumpError
from nullcheck.lattice import NONNULL, NULLABLE, UNSPECIFIED, parse_kind

logger = logging.getLogger(__name__)

Sexp = Any  # Union[list, Symbol, str, int, float]

NIL_TYPE = QualType("id", NULLABLE)
STRING_TYPE = object_type("NSString", NONNULL)
NUMBER_TYPE = object_type("NSNumber", NONNULL)
INT_TYPE = QualType("int")
CLASS_TYPE = QualType("Class")


# ═══════════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════════

def _sym_name(s: Sexp) -> str:
    """Extract the name of a ``sexpdata.Symbol``, or raise."""
    if isinstance(s, Symbol):
        return str(s)
    raise DumpError(f"Expected symbol, got {type(s).__name__}: {s!r}")


def _as_str(s: Sexp) -> str:
    """Accept a symbol or a string literal."""
    if isinstance(s, Symbol):
        return str(s)
    if isinstance(s, str):
        return s
    raise DumpError(f"Expected string or symbol, got {type(s).__name__}: {s!r}")


def _as_int(s: Sexp) -> int:
    if isinstance(s, int) and not isinstance(s, bool):
        return s
    raise DumpError(f"Expected integer, got {type(s).__name__}: {s!r}")


def _is_form(s: Sexp, tag: str) -> bool:
    return (
        isinstance(s, list) and bool(s)
        and isinstance(s[0], Symbol) and str(s[0]) == tag
    )


def _expect_list(s: Sexp, *, min_len: int = 0, tag: Optional[str] = None) -> list:
    """Assert that *s* is a list, optionally with a minimum length and head tag."""
    if not isinstance(s, list):
        raise DumpError(
            f"Expected list{f' ({tag} ...)' if tag else ''}, "
            f"got {type(s).__name__}: {s!r}"
        )
    if len(s) < min_len:
        raise DumpError(
            f"List too short: expected at least {min_len} elements, "
            f"got {len(s)}: {s!r}"
        )
    if tag is not None and not _is_form(s, tag):
        raise DumpError(f"Expected ({tag} ...), got {s!r}")
    return s


def _head(s: list) -> str:
    if not s:
        raise DumpError("Unexpected empty list")
    return _sym_name(s[0])


def _take(items: List[Sexp], tag: str) -> List[list]:
    """Remove every ``(tag ...)`` sub-form from *items*; return them."""
    taken = [item for item in items if _is_form(item, tag)]
    if taken:
        items[:] = [item for item in items if not _is_form(item, tag)]
    return taken


def _take_one(items: List[Sexp], tag: str) -> Optional[list]:
    taken = _take(items, tag)
    if len(taken) > 1:
        raise DumpError(f"Duplicate ({tag} ...) form")
    return taken[0] if taken else None


def _arguments_fit(method: MethodDecl, count: int) -> bool:
    """Variadic methods take any number of arguments past their parameters."""
    if method.is_variadic:
        return count >= len(method.params)
    return count == len(method.params)


def _arity(tag: str, args: Sequence[Sexp], low: int, high: Optional[int] = None) -> None:
    high = low if high is None else high
    if not low <= len(args) <= high:
        expected = str(low) if low == high else f"{low}..{high}"
        raise DumpError(f"({tag} ...) takes {expected} operand(s), got {len(args)}")


# ═══════════════════════════════════════════════════════════════════════
#  Dispatch registry
# ═══════════════════════════════════════════════════════════════════════

# Handlers take (loader, args, loc); ``args`` excludes the head and any
# ``(at ...)`` / ``(as ...)`` sub-forms.
_Handler = Callable[..., Any]

_DECL_DISPATCH: Dict[str, _Handler] = {}
_STMT_DISPATCH: Dict[str, _Handler] = {}
_EXPR_DISPATCH: Dict[str, _Handler] = {}


def _register(table: dict, tag: str):
    """Decorator: register a loader function under *tag* in *table*."""
    def deco(fn):
        table[tag] = fn
        return fn
    return deco


# ═══════════════════════════════════════════════════════════════════════
#  Scopes & method resolution
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class _Scope:
    names: Dict[str, VarDecl] = field(default_factory=dict)
    parent: Optional[_Scope] = None

    def lookup(self, name: str) -> Optional[VarDecl]:
        scope: Optional[_Scope] = self
        while scope is not None:
            decl = scope.names.get(name)
            if decl is not None:
                return decl
            scope = scope.parent
        return None


class MethodIndex:
    """Method lookup over the interfaces and protocols of one unit.

    Lookup order for ``Name *``: the interface, then its protocols, then
    the superclass chain.  An unqualified ``id`` receiver resolves to the
    first declaration of the selector in dump order.
    """

    def __init__(self, containers: Sequence[ContainerDecl]) -> None:
        self.interfaces: Dict[str, ContainerDecl] = {}
        self.protocols: Dict[str, ContainerDecl] = {}
        self._order: List[ContainerDecl] = list(containers)
        for container in containers:
            table = (
                self.interfaces if container.kind is ContainerKind.INTERFACE
                else self.protocols
            )
            if container.name in table:
                raise DumpError(
                    f"Duplicate declaration of {container.name}", container.loc
                )
            table[container.name] = container

    def lookup(
        self,
        selector: str,
        *,
        class_method: bool,
        interface: Optional[str] = None,
        protocols: Sequence[str] = (),
    ) -> Optional[MethodDecl]:
        seen = set()
        pending: List[Tuple[str, str]] = []
        if interface is not None:
            pending.append(("interface", interface))
        pending.extend(("protocol", p) for p in protocols)
        while pending:
            kind, name = pending.pop(0)
            if (kind, name) in seen:
                continue
            seen.add((kind, name))
            table = self.interfaces if kind == "interface" else self.protocols
            container = table.get(name)
            if container is None:
                continue
            method = container.lookup(selector, class_method=class_method)
            if method is not None:
                return method
            pending.extend(("protocol", p) for p in container.protocols)
            if container.superclass:
                pending.append(("interface", container.superclass))
        return None

    def lookup_any(self, selector: str, *, class_method: bool) -> Optional[MethodDecl]:
        for container in self._order:
            method = container.lookup(selector, class_method=class_method)
            if method is not None:
                return method
        return None

    def superclass_of(self, name: str) -> Optional[str]:
        container = self.interfaces.get(name)
        return container.superclass if container is not None else None


# ═══════════════════════════════════════════════════════════════════════
#  Loader
# ═══════════════════════════════════════════════════════════════════════

class DumpLoader:
    """Single-use loader for one translation unit."""

    def __init__(self, filename: str = "<string>") -> None:
        self.file = filename
        self.index = MethodIndex(())
        self._scope = _Scope()
        self._class_name: Optional[str] = None
        self._ivars: Dict[str, IvarDecl] = {}
        self._in_class_method = False

    # ── locations ─────────────────────────────────────────────────

    def _loc(self, form: Sexp = None) -> SourceLocation:
        if form is None:
            return SourceLocation(file=self.file)
        at = _expect_list(form, min_len=2, tag="at")
        line = _as_int(at[1])
        column = _as_int(at[2]) if len(at) > 2 else 0
        return SourceLocation(file=self.file, line=line, column=column)

    def _split(self, s: Sexp) -> Tuple[str, List[Sexp], SourceLocation]:
        """``(tag args... (at L C)?)`` → (tag, args, loc)."""
        lst = _expect_list(s, min_len=1)
        tag = _head(lst)
        args = list(lst[1:])
        return tag, args, self._loc(_take_one(args, "at"))

    def _fail(self, message: str, loc: SourceLocation) -> DumpError:
        return DumpError(message, loc if loc.line else None)

    # ── unit ──────────────────────────────────────────────────────

    def load(self, root: Sexp) -> TranslationUnit:
        tag, items, _ = self._split(root)
        if tag != "unit":
            raise DumpError(f"Expected (unit ...) at top level, got ({tag} ...)")
        if items and isinstance(items[0], str) and not isinstance(items[0], Symbol):
            self.file = items.pop(0)

        containers: List[ContainerDecl] = []
        impl_forms: List[list] = []
        for item in items:
            form = _expect_list(item, min_len=2)
            tag = _head(form)
            if tag == "implementation":
                impl_forms.append(form)
                continue
            handler = _DECL_DISPATCH.get(tag)
            if handler is None:
                raise DumpError(f"Unknown declaration form: ({tag} ...)")
            containers.append(handler(self, form))

        self.index = MethodIndex(containers)
        implementations = tuple(self._implementation(form) for form in impl_forms)
        logger.debug(
            "loaded %s: %d container(s), %d implementation(s)",
            self.file, len(containers), len(implementations),
        )
        return TranslationUnit(
            file=self.file,
            containers=tuple(containers),
            implementations=implementations,
        )

    # ── types ─────────────────────────────────────────────────────

    def parse_type(self, s: Sexp) -> QualType:
        if isinstance(s, str):
            return QualType(str(s))
        tag, args, loc = self._split(s)
        if tag == "type":
            _arity(tag, args, 1, 2)
            kind = self._kind(args[1], loc) if len(args) > 1 else UNSPECIFIED
            return QualType(_as_str(args[0]), kind)
        if tag == "block":
            _arity(tag, args, 1, 2)
            kind = self._kind(args[1], loc) if len(args) > 1 else UNSPECIFIED
            return block_type(self.parse_type(args[0]), kind)
        raise self._fail(f"Unknown type form: ({tag} ...)", loc)

    def _kind(self, s: Sexp, loc: SourceLocation):
        try:
            return parse_kind(_as_str(s))
        except ValueError as exc:
            raise self._fail(str(exc), loc) from exc

    # ── declarations ──────────────────────────────────────────────

    def _container(self, s: Sexp, kind: ContainerKind) -> ContainerDecl:
        tag, items, loc = self._split(s)
        name = _as_str(items.pop(0))
        super_form = _take_one(items, "super")
        protocol_form = _take_one(items, "protocols")
        superclass = _as_str(super_form[1]) if super_form and len(super_form) > 1 else None
        protocols = tuple(_as_str(p) for p in protocol_form[1:]) if protocol_form else ()
        methods = []
        for item in items:
            if not _is_form(item, "method"):
                raise self._fail(f"Unexpected form in ({tag} {name}): {item!r}", loc)
            methods.append(self._method(item, container=name, with_body=False))
        return ContainerDecl(
            name=name, kind=kind, superclass=superclass,
            protocols=protocols, methods=tuple(methods), loc=loc,
        )

    def _implementation(self, s: Sexp) -> ImplementationDecl:
        _, items, loc = self._split(s)
        name = _as_str(items.pop(0))
        ivars = tuple(self._ivar_decl(form) for form in _take(items, "ivar"))
        designated = tuple(
            _as_str(form[1]) for form in _take(items, "designated") if len(form) > 1
        )

        self._class_name = name
        self._ivars = {ivar.name: ivar for ivar in ivars}
        try:
            methods = []
            for item in items:
                if not _is_form(item, "method"):
                    raise self._fail(
                        f"Unexpected form in (implementation {name}): {item!r}", loc
                    )
                methods.append(self._method(item, container=name, with_body=True))
        finally:
            self._class_name = None
            self._ivars = {}

        return ImplementationDecl(
            name=name, ivars=ivars, methods=tuple(methods),
            designated_initializers=designated, loc=loc,
        )

    def _ivar_decl(self, s: Sexp) -> IvarDecl:
        _, args, loc = self._split(s)
        _arity("ivar", args, 2)
        return IvarDecl(name=_as_str(args[0]), type=self.parse_type(args[1]), loc=loc)

    def _method(self, s: Sexp, *, container: str, with_body: bool) -> MethodDecl:
        _, items, loc = self._split(s)
        if len(items) < 2:
            raise self._fail("(method ...) needs a sign and a selector", loc)
        sign = _as_str(items.pop(0))
        if sign in ("-", "instance"):
            is_class_method = False
        elif sign in ("+", "class"):
            is_class_method = True
        else:
            raise self._fail(f"Unknown method sign {sign!r}", loc)
        selector = _as_str(items.pop(0))

        returns = _take_one(items, "returns")
        return_type = self.parse_type(returns[1]) if returns and len(returns) > 1 else VOID_TYPE
        params_form = _take_one(items, "params")
        variadic_form = _take_one(items, "variadic")
        body_form = _take_one(items, "body")
        if items:
            raise self._fail(f"Unexpected forms in method {selector}: {items!r}", loc)

        params = self._params(params_form, VarKind.PARAM)
        body = None
        if body_form is not None:
            if not with_body:
                raise self._fail(f"Method {selector} declared with a body", loc)
            self._in_class_method = is_class_method
            try:
                body = self._with_scope(params, lambda: self._compound(body_form[1:], loc))
            finally:
                self._in_class_method = False

        return MethodDecl(
            selector=selector, return_type=return_type, params=params,
            is_class_method=is_class_method, container=container,
            body=body, is_variadic=variadic_form is not None, loc=loc,
        )

    def _params(self, form: Optional[list], kind: VarKind) -> Tuple[VarDecl, ...]:
        if form is None:
            return ()
        params = []
        for item in form[1:]:
            _, args, loc = self._split(_expect_list(item, tag="param"))
            _arity("param", args, 2)
            params.append(VarDecl(
                name=_as_str(args[0]), type=self.parse_type(args[1]),
                kind=kind, loc=loc,
            ))
        return tuple(params)

    def _with_scope(self, decls: Sequence[VarDecl], fn: Callable[[], Any]) -> Any:
        self._scope = _Scope(parent=self._scope)
        try:
            for decl in decls:
                self._scope.names[decl.name] = decl
            return fn()
        finally:
            self._scope = self._scope.parent

    # ── statements ────────────────────────────────────────────────

    def stmt(self, s: Sexp) -> Stmt:
        lst = _expect_list(s, min_len=1)
        tag = _head(lst)
        handler = _STMT_DISPATCH.get(tag)
        if handler is None:
            expr = self.expr(lst)
            return ExprStmt(expr=expr, loc=expr.loc)
        _, args, loc = self._split(lst)
        return handler(self, args, loc)

    def _compound(self, items: Sequence[Sexp], loc: SourceLocation) -> Compound:
        return Compound(body=tuple(self.stmt(item) for item in items), loc=loc)

    @_register(_STMT_DISPATCH, "compound")
    def _stmt_compound(self, args, loc) -> Compound:
        return self._with_scope((), lambda: self._compound(args, loc))

    @_register(_STMT_DISPATCH, "decl")
    def _stmt_decl(self, args, loc) -> DeclStmt:
        return DeclStmt(decls=(self._var_decl(args, loc),), loc=loc)

    @_register(_STMT_DISPATCH, "decls")
    def _stmt_decls(self, args, loc) -> DeclStmt:
        decls = []
        for item in args:
            _, sub, sub_loc = self._split(_expect_list(item, tag="decl"))
            decls.append(self._var_decl(sub, sub_loc))
        return DeclStmt(decls=tuple(decls), loc=loc)

    def _var_decl(self, args: List[Sexp], loc: SourceLocation) -> VarDecl:
        init_form = _take_one(args, "init")
        implicit_form = _take_one(args, "implicit")
        _arity("decl", args, 2)
        if init_form is not None and implicit_form is not None:
            raise self._fail("(decl ...) has both (init ...) and (implicit ...)", loc)
        init: Optional[Expr] = None
        if init_form is not None:
            init = self.expr(_expect_list(init_form, min_len=2)[1])
        elif implicit_form is not None:
            init = self.expr(_expect_list(implicit_form, min_len=2)[1])
        decl = VarDecl(
            name=_as_str(args[0]), type=self.parse_type(args[1]),
            kind=VarKind.LOCAL, init=init,
            implicit_init=implicit_form is not None, loc=loc,
        )
        self._scope.names[decl.name] = decl
        return decl

    @_register(_STMT_DISPATCH, "if")
    def _stmt_if(self, args, loc) -> If:
        _arity("if", args, 2, 3)
        cond = self.expr(args[0])
        then = self.stmt(args[1])
        otherwise = self.stmt(args[2]) if len(args) > 2 else None
        return If(cond=cond, then=then, otherwise=otherwise, loc=loc)

    @_register(_STMT_DISPATCH, "while")
    def _stmt_while(self, args, loc) -> While:
        _arity("while", args, 2)
        return While(cond=self.expr(args[0]), body=self.stmt(args[1]), loc=loc)

    @_register(_STMT_DISPATCH, "return")
    def _stmt_return(self, args, loc) -> Return:
        _arity("return", args, 0, 1)
        return Return(value=self.expr(args[0]) if args else None, loc=loc)

    @_register(_STMT_DISPATCH, "expr")
    def _stmt_expr(self, args, loc) -> ExprStmt:
        _arity("expr", args, 1)
        return ExprStmt(expr=self.expr(args[0]), loc=loc)

    # ── expressions ───────────────────────────────────────────────

    def expr(self, s: Sexp) -> Expr:
        if not isinstance(s, list) or not s:
            raise DumpError(f"Expected expression form (tag ...), got: {s!r}")
        tag, args, loc = self._split(s)
        handler = _EXPR_DISPATCH.get(tag)
        if handler is None:
            raise self._fail(f"Unknown expression form: ({tag} ...)", loc)
        return handler(self, args, loc)

    def _as_type(self, args: List[Sexp]) -> Optional[QualType]:
        form = _take_one(args, "as")
        if form is None:
            return None
        _expect_list(form, min_len=2)
        return self.parse_type(form[1])

    @_register(_EXPR_DISPATCH, "ref")
    def _expr_ref(self, args, loc) -> Expr:
        _arity("ref", args, 1)
        name = _as_str(args[0])
        decl = self._scope.lookup(name)
        if decl is not None:
            return VarRef(decl=decl, loc=loc)
        ivar = self._ivars.get(name)
        if ivar is not None:
            return IvarRef(ivar=ivar, loc=loc)
        raise self._fail(f"Unknown variable {name!r}", loc)

    @_register(_EXPR_DISPATCH, "ivar")
    def _expr_ivar(self, args, loc) -> IvarRef:
        _arity("ivar", args, 1, 2)
        name = _as_str(args[0])
        ivar = self._ivars.get(name)
        if ivar is None:
            raise self._fail(f"Unknown ivar {name!r}", loc)
        base = self.expr(args[1]) if len(args) > 1 else None
        return IvarRef(ivar=ivar, base=base, loc=loc)

    def _self_type(self) -> QualType:
        if self._in_class_method or self._class_name is None:
            return CLASS_TYPE
        return object_type(self._class_name)

    @_register(_EXPR_DISPATCH, "self")
    def _expr_self(self, args, loc) -> SelfRef:
        _arity("self", args, 0)
        return SelfRef(type=self._self_type(), loc=loc)

    @_register(_EXPR_DISPATCH, "nil")
    def _expr_nil(self, args, loc) -> Literal:
        _arity("nil", args, 0)
        return Literal(type=NIL_TYPE, value=None, loc=loc)

    @_register(_EXPR_DISPATCH, "string")
    def _expr_string(self, args, loc) -> Literal:
        _arity("string", args, 1)
        return Literal(type=STRING_TYPE, value=_as_str(args[0]), loc=loc)

    @_register(_EXPR_DISPATCH, "number")
    def _expr_number(self, args, loc) -> Literal:
        _arity("number", args, 1)
        return Literal(type=NUMBER_TYPE, value=args[0], loc=loc)

    @_register(_EXPR_DISPATCH, "int")
    def _expr_int(self, args, loc) -> Literal:
        _arity("int", args, 1)
        return Literal(type=INT_TYPE, value=_as_int(args[0]), loc=loc)

    @_register(_EXPR_DISPATCH, "literal")
    def _expr_literal(self, args, loc) -> Literal:
        _arity("literal", args, 1, 2)
        value = args[1] if len(args) > 1 else None
        return Literal(type=self.parse_type(args[0]), value=value, loc=loc)

    @_register(_EXPR_DISPATCH, "paren")
    def _expr_paren(self, args, loc) -> Paren:
        _arity("paren", args, 1)
        return Paren(inner=self.expr(args[0]), loc=loc)

    @_register(_EXPR_DISPATCH, "cast")
    def _expr_cast(self, args, loc) -> Cast:
        _arity("cast", args, 2)
        return Cast(target=self.parse_type(args[0]), operand=self.expr(args[1]), loc=loc)

    @_register(_EXPR_DISPATCH, "not")
    def _expr_not(self, args, loc) -> UnaryOp:
        _arity("not", args, 1)
        return UnaryOp(op=LOGICAL_NOT, operand=self.expr(args[0]), loc=loc)

    @_register(_EXPR_DISPATCH, "and")
    def _expr_and(self, args, loc) -> BinaryOp:
        _arity("and", args, 2)
        return BinaryOp(op=LOGICAL_AND, lhs=self.expr(args[0]), rhs=self.expr(args[1]), loc=loc)

    @_register(_EXPR_DISPATCH, "or")
    def _expr_or(self, args, loc) -> BinaryOp:
        _arity("or", args, 2)
        return BinaryOp(op=LOGICAL_OR, lhs=self.expr(args[0]), rhs=self.expr(args[1]), loc=loc)

    @_register(_EXPR_DISPATCH, "binop")
    def _expr_binop(self, args, loc) -> BinaryOp:
        static = self._as_type(args)
        _arity("binop", args, 3)
        return BinaryOp(
            op=_as_str(args[0]), lhs=self.expr(args[1]), rhs=self.expr(args[2]),
            type=static or BOOL_TYPE, loc=loc,
        )

    @_register(_EXPR_DISPATCH, "cond")
    def _expr_cond(self, args, loc) -> Conditional:
        static = self._as_type(args)
        _arity("cond", args, 3)
        cond = self.expr(args[0])
        then, otherwise = self.expr(args[1]), self.expr(args[2])
        if static is None:
            static = then.type.with_nullability(UNSPECIFIED)
        return Conditional(
            cond=cond, then=then, otherwise=otherwise,
            type=static, loc=loc,
        )

    @_register(_EXPR_DISPATCH, "assign")
    def _expr_assign(self, args, loc) -> Assign:
        _arity("assign", args, 2)
        return Assign(lhs=self.expr(args[0]), rhs=self.expr(args[1]), loc=loc)

    @_register(_EXPR_DISPATCH, "array")
    def _expr_array(self, args, loc) -> ArrayLiteral:
        return ArrayLiteral(elements=tuple(self.expr(a) for a in args), loc=loc)

    @_register(_EXPR_DISPATCH, "dict")
    def _expr_dict(self, args, loc) -> DictLiteral:
        pairs = []
        for item in args:
            pair = _expect_list(item, min_len=3, tag="pair")
            pairs.append((self.expr(pair[1]), self.expr(pair[2])))
        return DictLiteral(pairs=tuple(pairs), loc=loc)

    @_register(_EXPR_DISPATCH, "call")
    def _expr_call(self, args, loc) -> FunctionCall:
        static = self._as_type(args)
        if not args:
            raise self._fail("(call ...) needs a function name", loc)
        return FunctionCall(
            name=_as_str(args[0]),
            args=tuple(self.expr(a) for a in args[1:]),
            type=static or ID_TYPE,
            loc=loc,
        )

    @_register(_EXPR_DISPATCH, "block")
    def _expr_block(self, args, loc) -> BlockLiteral:
        static = self._as_type(args)
        returns = _take_one(args, "returns")
        params_form = _take_one(args, "params")
        body_form = _take_one(args, "body")
        if body_form is None or args:
            raise self._fail("(block ...) needs exactly one (body ...)", loc)
        return_type = self.parse_type(returns[1]) if returns and len(returns) > 1 else VOID_TYPE
        params = self._params(params_form, VarKind.BLOCK_PARAM)
        body = self._with_scope(params, lambda: self._compound(body_form[1:], loc))
        return BlockLiteral(
            type=static or block_type(return_type, NONNULL),
            body=body, params=params, loc=loc,
        )

    @_register(_EXPR_DISPATCH, "send")
    def _expr_send(self, args, loc) -> MessageSend:
        static = self._as_type(args)
        if len(args) < 2:
            raise self._fail("(send ...) needs a receiver and a selector", loc)
        receiver_form, selector = args[0], _as_str(args[1])
        call_args = tuple(self.expr(a) for a in args[2:])

        receiver: Optional[Expr] = None
        if _is_form(receiver_form, "class"):
            kind = ReceiverKind.CLASS
            name = _as_str(_expect_list(receiver_form, min_len=2)[1])
            method = self.index.lookup(selector, class_method=True, interface=name)
            receiver_type = object_type(name)
        elif _is_form(receiver_form, "super"):
            if self._class_name is None:
                raise self._fail("(super) outside an implementation", loc)
            class_send = self._in_class_method
            kind = ReceiverKind.SUPER_CLASS if class_send else ReceiverKind.SUPER_INSTANCE
            base = self.index.superclass_of(self._class_name)
            method = None
            if base is not None:
                method = self.index.lookup(selector, class_method=class_send, interface=base)
            receiver_type = object_type(base or "NSObject")
        else:
            kind = ReceiverKind.INSTANCE
            receiver = self.expr(receiver_form)
            method = self._resolve_instance_send(receiver, selector)
            receiver_type = receiver.type

        if method is not None and not _arguments_fit(method, len(call_args)):
            raise self._fail(
                f"{method.qualified_name} takes {len(method.params)} argument(s), "
                f"got {len(call_args)}",
                loc,
            )
        if static is None:
            static = self._send_type(method, receiver_type)
        return MessageSend(
            receiver_kind=kind, selector=selector, args=call_args,
            receiver=receiver, method=method, type=static, loc=loc,
        )

    def _resolve_instance_send(self, receiver: Expr, selector: str) -> Optional[MethodDecl]:
        rtype = receiver.type
        # ``self`` in a class method is the class object.
        class_method = isinstance(receiver, SelfRef) and self._in_class_method
        if class_method and self._class_name is not None:
            return self.index.lookup(selector, class_method=True, interface=self._class_name)
        if rtype.base == "id":
            return self.index.lookup_any(selector, class_method=False)
        return self.index.lookup(
            selector, class_method=False,
            interface=rtype.interface_name, protocols=rtype.protocols,
        )

    @staticmethod
    def _send_type(method: Optional[MethodDecl], receiver_type: QualType) -> QualType:
        if method is None:
            return ID_TYPE
        returns = method.return_type
        if returns.base == "instancetype" and receiver_type.interface_name:
            return object_type(receiver_type.interface_name, returns.nullability)
        return returns


# ═══════════════════════════════════════════════════════════════════════
#  Top-level declaration handlers
# ═══════════════════════════════════════════════════════════════════════

@_register(_DECL_DISPATCH, "interface")
def _decl_interface(loader: DumpLoader, s: list) -> ContainerDecl:
    return loader._container(s, ContainerKind.INTERFACE)


@_register(_DECL_DISPATCH, "protocol")
def _decl_protocol(loader: DumpLoader, s: list) -> ContainerDecl:
    return loader._container(s, ContainerKind.PROTOCOL)


# ═══════════════════════════════════════════════════════════════════════
#  Public API
# ═══════════════════════════════════════════════════════════════════════

def load_string(text: str, *, filename: str = "<string>") -> TranslationUnit:
    """Load a translation unit from dump text.

    Raises
    ------
    DumpError
        If the text is not well-formed or contains unrecognized forms.
    """
    try:
        root = sexpdata.loads(text, nil=None, true=None, false=None)
    except Exception as exc:
        raise DumpError(f"Failed to parse S-expression: {exc}") from exc
    return DumpLoader(filename).load(root)


def load_file(path: Union[str, Path]) -> TranslationUnit:
    """Load a translation unit from a dump file on disk."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DumpError(f"Cannot read {path}: {exc}") from exc
    return load_string(text, filename=str(path))


__all__ = [
    "MethodIndex",
    "DumpLoader",
    "load_string",
    "load_file",
]
