# tests/test_calculator.py
"""
Tests for expression nullability classification.
"""

import pytest

from nullcheck.ast_nodes import (
    BinaryOp,
    Cast,
    Conditional,
    FunctionCall,
    Paren,
    QualType,
    SelfRef,
)
from nullcheck.calculator import NullabilityCalculator, classify
from nullcheck.environment import Environment
from nullcheck.lattice import NONNULL, NULLABLE, UNSPECIFIED
from tests.conftest import (
    NONNULL_STR,
    NULLABLE_STR,
    PLAIN_STR,
    ivar,
    ivar_ref,
    land,
    lnot,
    lor,
    method,
    nil,
    ref,
    seeded,
    send,
    string,
    unannotated,
    var,
)


@pytest.fixture
def calc():
    return NullabilityCalculator()


class TestReferences:

    def test_variable_uses_environment(self, calc):
        x = var("x", NULLABLE)
        env = seeded(x)
        assert calc.classify(ref(x), env) is NULLABLE
        assert calc.classify(ref(x), env.narrow(x)) is NONNULL

    def test_unseeded_variable_uses_declaration(self, calc):
        assert calc.classify(ref(var("x", NONNULL)), Environment()) is NONNULL

    def test_ivar_uses_declaration(self, calc):
        assert calc.classify(ivar_ref(ivar("_a", NULLABLE)), Environment()) is NULLABLE

    def test_parens_are_transparent(self, calc):
        x = var("x", NULLABLE)
        env = seeded(x).narrow(x)
        assert calc.classify(Paren(Paren(ref(x))), env) is NONNULL


class TestStaticTypes:

    def test_literals(self, calc):
        env = Environment()
        assert calc.classify(nil(), env) is NULLABLE
        assert calc.classify(string(), env) is NONNULL
        assert calc.classify(unannotated(), env) is UNSPECIFIED

    def test_cast_uses_target(self, calc):
        assert calc.classify(Cast(NONNULL_STR, nil()), Environment()) is NONNULL

    def test_self(self, calc):
        assert calc.classify(SelfRef(type=QualType("Widget *")), Environment()) is UNSPECIFIED

    def test_function_call_uses_static_type(self, calc):
        call = FunctionCall(name="lookup", type=NULLABLE_STR)
        assert calc.classify(call, Environment()) is NULLABLE


class TestMessageSend:

    def test_resolved_send_uses_declared_return(self, calc):
        title = method("title", returns=NULLABLE_STR)
        assert calc.classify(send(title), Environment()) is NULLABLE

    def test_unresolved_send_uses_static_type(self, calc):
        assert calc.classify(send(None), Environment()) is UNSPECIFIED


class TestBooleans:

    def test_logical_operators_are_nonnull(self, calc):
        x = var("x", NULLABLE)
        env = seeded(x)
        assert calc.classify(land(ref(x), ref(x)), env) is NONNULL
        assert calc.classify(lor(ref(x), nil()), env) is NONNULL
        assert calc.classify(lnot(ref(x)), env) is NONNULL

    def test_comparison_is_nonnull(self, calc):
        cmp = BinaryOp(op="==", lhs=nil(), rhs=nil())
        assert calc.classify(cmp, Environment()) is NONNULL

    def test_arithmetic_uses_static_type(self, calc):
        add = BinaryOp(op="+", lhs=nil(), rhs=nil(), type=QualType("int"))
        assert calc.classify(add, Environment()) is UNSPECIFIED


class TestConditional:

    def test_nullable_branch_wins(self, calc):
        expr = Conditional(cond=nil(), then=string(), otherwise=nil(), type=PLAIN_STR)
        assert calc.classify(expr, Environment()) is NULLABLE

    def test_both_nonnull(self, calc):
        expr = Conditional(cond=nil(), then=string(), otherwise=string(), type=PLAIN_STR)
        assert calc.classify(expr, Environment()) is NONNULL

    def test_otherwise_static_type(self, calc):
        expr = Conditional(cond=nil(), then=string(), otherwise=unannotated(), type=PLAIN_STR)
        assert calc.classify(expr, Environment()) is UNSPECIFIED


class TestPurity:

    def test_same_answer_every_time(self):
        x = var("x", NULLABLE)
        env = seeded(x)
        results = {classify(ref(x), env) for _ in range(3)}
        assert results == {NULLABLE}

    def test_declaration_kind_ignores_narrowing(self, calc):
        x = var("x", NULLABLE)
        assert calc.classify_declaration(x) is NULLABLE
