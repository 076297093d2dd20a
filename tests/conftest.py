# tests/conftest.py
"""
Shared builders for hand-made resolved trees and sample dumps.
"""

from typing import Optional

import pytest

from nullcheck.ast_nodes import (
    VOID_TYPE,
    ArrayLiteral,
    Assign,
    BinaryOp,
    Compound,
    DeclStmt,
    DictLiteral,
    ExprStmt,
    If,
    IvarDecl,
    IvarRef,
    Literal,
    MessageSend,
    MethodDecl,
    QualType,
    ReceiverKind,
    Return,
    UnaryOp,
    VarDecl,
    VarKind,
    VarRef,
    object_type,
)
from nullcheck.checker import MethodBodyChecker
from nullcheck.diagnostics import SourceLocation, ViolationCollector
from nullcheck.environment import Environment
from nullcheck.lattice import NONNULL, NULLABLE, UNSPECIFIED

FILE = "Widget.m"

NONNULL_STR = object_type("NSString", NONNULL)
NULLABLE_STR = object_type("NSString", NULLABLE)
PLAIN_STR = object_type("NSString")


def loc(line: int, col: int = 1) -> SourceLocation:
    return SourceLocation(FILE, line, col)


def var(name, kind=UNSPECIFIED, *, init=None, var_kind=VarKind.LOCAL,
        spelling="NSString *", line=0, implicit=False) -> VarDecl:
    return VarDecl(
        name=name, type=QualType(spelling, kind), kind=var_kind,
        init=init, implicit_init=implicit, loc=loc(line),
    )


def param(name, kind=UNSPECIFIED, line=0) -> VarDecl:
    return var(name, kind, var_kind=VarKind.PARAM, line=line)


def ref(decl: VarDecl, line: int = 0) -> VarRef:
    return VarRef(decl=decl, loc=loc(line))


def nil(line: int = 0) -> Literal:
    return Literal(type=QualType("id", NULLABLE), loc=loc(line))


def string(text: str = "x", line: int = 0) -> Literal:
    return Literal(type=NONNULL_STR, value=text, loc=loc(line))


def unannotated(line: int = 0) -> Literal:
    return Literal(type=PLAIN_STR, loc=loc(line))


def land(lhs, rhs, line: int = 0) -> BinaryOp:
    return BinaryOp(op="&&", lhs=lhs, rhs=rhs, loc=loc(line))


def lor(lhs, rhs, line: int = 0) -> BinaryOp:
    return BinaryOp(op="||", lhs=lhs, rhs=rhs, loc=loc(line))


def lnot(operand, line: int = 0) -> UnaryOp:
    return UnaryOp(op="!", operand=operand, loc=loc(line))


def assign(lhs, rhs, line: int = 0) -> ExprStmt:
    return ExprStmt(expr=Assign(lhs=lhs, rhs=rhs, loc=loc(line)))


def decl_stmt(*decls: VarDecl) -> DeclStmt:
    return DeclStmt(decls=decls)


def block(*stmts) -> Compound:
    return Compound(body=tuple(stmts))


def if_(cond, then, otherwise=None) -> If:
    return If(cond=cond, then=then, otherwise=otherwise)


def ret(value=None, line: int = 0) -> Return:
    return Return(value=value, loc=loc(line))


def array(*elements, line: int = 0) -> ArrayLiteral:
    return ArrayLiteral(elements=elements, loc=loc(line))


def dictionary(*pairs, line: int = 0) -> DictLiteral:
    return DictLiteral(pairs=pairs, loc=loc(line))


def method(selector, params=(), *, returns=VOID_TYPE, container="Widget",
           body: Optional[Compound] = None, class_method=False, variadic=False,
           line=0) -> MethodDecl:
    return MethodDecl(
        selector=selector, return_type=returns, params=tuple(params),
        is_class_method=class_method, container=container, body=body,
        is_variadic=variadic, loc=loc(line),
    )


def takes_nonnull(selector="setName:", container="Widget", class_method=False) -> MethodDecl:
    """A one-argument method whose parameter is nonnull."""
    return method(selector, [param("name", NONNULL)],
                  container=container, class_method=class_method)


def send(target: Optional[MethodDecl], *args, kind=ReceiverKind.INSTANCE,
         receiver=None, line=0) -> MessageSend:
    selector = target.selector if target is not None else "unknown:"
    rtype = target.return_type if target is not None else QualType("id")
    return MessageSend(
        receiver_kind=kind, selector=selector, args=args, receiver=receiver,
        method=target, type=rtype, loc=loc(line),
    )


def ivar(name, kind=NONNULL, spelling="NSString *") -> IvarDecl:
    return IvarDecl(name=name, type=QualType(spelling, kind))


def ivar_ref(decl: IvarDecl, base=None) -> IvarRef:
    return IvarRef(ivar=decl, base=base)


def run_checker(body, return_type=None, env=None) -> ViolationCollector:
    sink = ViolationCollector()
    MethodBodyChecker(sink, return_type, env if env is not None else Environment()).check(body)
    return sink


def seeded(*decls: VarDecl) -> Environment:
    return Environment.from_declarations(decls)


# ---------------------------------------------------------------------------
#  Sample dumps
# ---------------------------------------------------------------------------

WIDGET_DUMP = '''
(unit "Widget.m"
  (interface NSObject
    (method - "init" (returns (type "instancetype" nonnull))))
  (protocol Named
    (method - "setLabel:" (params (param label (type "NSString *" nonnull)))))
  (interface Widget (super NSObject) (protocols Named)
    (method - "setName:" (params (param name (type "NSString *" nonnull))))
    (method - "title" (returns (type "NSString *" nullable)))
    (method + "widgetNamed:" (returns (type "Widget *" nullable))
      (params (param name (type "NSString *" nonnull)))))
  (implementation Widget
    (ivar _name (type "NSString *" nonnull) (at 3 14))
    (ivar _tag (type "NSString *" nullable) (at 4 14))
    (method - "init" (returns (type "instancetype" nonnull)) (at 10 1)
      (body
        (decl ok BOOL (init (int 1)) (at 11 5))
        (if (ref ok)
          (assign (ivar _name) (string "w")))
        (return (self))))
    (method - "rename:" (at 20 1)
      (params (param maybe (type "NSString *" nullable) (at 20 20)))
      (body
        (send (self) "setName:" (ref maybe (at 21 24)))
        (if (ref maybe)
          (send (self) "setName:" (ref maybe (at 23 28))))
        (send (self) "setLabel:" (ref maybe (at 24 25)))
        (send (class Widget) "widgetNamed:" (nil (at 25 40)))))
    (method - "title" (returns (type "NSString *" nonnull)) (at 30 1)
      (body
        (return (send (self) "title" (at 31 12)))))))
'''

#: (location, message) of every warning WIDGET_DUMP produces, in order.
WIDGET_WARNINGS = [
    ("Widget.m:21:24", "-[Widget setName:] expects nonnull argument"),
    ("Widget.m:24:25", "-[Named setLabel:] expects nonnull argument"),
    ("Widget.m:25:40", "+[Widget widgetNamed:] expects nonnull argument"),
    ("Widget.m:31:12", "Nullability mismatch on return"),
    ("Widget.m:10:1", "Nonnull ivar should be initialized: _name"),
]

CLEAN_DUMP = '''
(unit "Clean.m"
  (interface Clean
    (method - "setName:" (params (param name (type "NSString *" nonnull)))))
  (implementation Clean
    (method - "touch:" (params (param s (type "NSString *" nullable)))
      (body
        (if (and (ref s) (not (ref s)))
          (send (self) "setName:" (ref s)))))))
'''


@pytest.fixture
def widget_dump():
    return WIDGET_DUMP


@pytest.fixture
def dump_file(tmp_path):
    """Write WIDGET_DUMP to disk and return its path."""
    path = tmp_path / "Widget.m.sexp"
    path.write_text(WIDGET_DUMP, encoding="utf-8")
    return path
