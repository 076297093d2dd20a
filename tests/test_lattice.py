# tests/test_lattice.py
"""
Tests for the nullability kinds and the compatibility predicates.
"""

import pytest

from nullcheck.lattice import (
    NONNULL,
    NULLABLE,
    UNSPECIFIED,
    NullabilityKind,
    compatible,
    is_collection_safe,
    join,
    join_all,
    parse_kind,
)

ALL_KINDS = [UNSPECIFIED, NONNULL, NULLABLE]


class TestCompatible:

    def test_only_nullable_into_nonnull_is_rejected(self):
        for required in ALL_KINDS:
            for actual in ALL_KINDS:
                expected = not (required is NONNULL and actual is NULLABLE)
                assert compatible(required, actual) is expected

    def test_unspecified_is_compatible_both_ways(self):
        assert compatible(UNSPECIFIED, NULLABLE)
        assert compatible(NONNULL, UNSPECIFIED)


class TestCollectionSafe:

    def test_only_nonnull_is_safe(self):
        assert is_collection_safe(NONNULL)
        assert not is_collection_safe(UNSPECIFIED)
        assert not is_collection_safe(NULLABLE)


class TestJoin:

    @pytest.mark.parametrize("other", ALL_KINDS)
    def test_nullable_absorbs(self, other):
        assert join(NULLABLE, other) is NULLABLE
        assert join(other, NULLABLE) is NULLABLE

    def test_nonnull_needs_both(self):
        assert join(NONNULL, NONNULL) is NONNULL
        assert join(NONNULL, UNSPECIFIED) is UNSPECIFIED

    def test_join_all(self):
        assert join_all([]) is UNSPECIFIED
        assert join_all([NONNULL]) is NONNULL
        assert join_all([NONNULL, NONNULL, NULLABLE]) is NULLABLE
        assert join_all(iter([NONNULL, UNSPECIFIED])) is UNSPECIFIED


class TestParseKind:

    @pytest.mark.parametrize("spelling,kind", [
        ("nonnull", NONNULL),
        ("_Nonnull", NONNULL),
        ("nullable", NULLABLE),
        ("_Nullable", NULLABLE),
        ("null_unspecified", UNSPECIFIED),
        ("_Null_unspecified", UNSPECIFIED),
        ("  unspecified ", UNSPECIFIED),
    ])
    def test_spellings(self, spelling, kind):
        assert parse_kind(spelling) is kind

    def test_unknown_spelling(self):
        with pytest.raises(ValueError, match="Unknown nullability spelling"):
            parse_kind("maybe")

    def test_str_is_lowercase_name(self):
        assert str(NullabilityKind.NONNULL) == "nonnull"
        assert [str(k) for k in ALL_KINDS] == ["unspecified", "nonnull", "nullable"]
