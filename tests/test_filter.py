# tests/test_filter.py
"""
Tests for the class-name filter and the analysis options built on it.
"""

import argparse

import pytest

from nullcheck.config import DEFAULT_CONFIG, AnalysisConfig
from nullcheck.errors import ConfigError, FilterSyntaxError
from nullcheck.filter import ACCEPT_ALL, Filter, FilterTerm


class TestParse:

    @pytest.mark.parametrize("text", ["", "   "])
    def test_empty_filter(self, text):
        f = Filter.parse(text)
        assert f.terms == ()
        assert f.accepts_all

    def test_terms_in_order(self):
        f = Filter.parse("MyApp*, !*Tests,Legacy?Controller")
        assert f.terms == (
            FilterTerm("MyApp*"),
            FilterTerm("*Tests", exclude=True),
            FilterTerm("Legacy?Controller"),
        )
        assert [t.glob for t in f.includes] == ["MyApp*", "Legacy?Controller"]
        assert [t.glob for t in f.excludes] == ["*Tests"]

    def test_space_after_negation(self):
        assert Filter.parse("! Widget").terms == (FilterTerm("Widget", exclude=True),)

    def test_str_round_trips_the_terms(self):
        f = Filter.parse(" A* ,  !B ")
        assert str(f) == "A*, !B"
        assert Filter.parse(str(f)) == f

    @pytest.mark.parametrize("text", ["a,,b", "a,", "!", "a b", ",a", "a;b"])
    def test_malformed(self, text):
        with pytest.raises(FilterSyntaxError) as info:
            Filter.parse(text)
        assert repr(text) in str(info.value)


class TestMatching:

    def test_empty_filter_accepts_everything(self):
        assert ACCEPT_ALL.test_class_name({"Anything"})
        assert Filter().test_class_name(set())

    def test_includes(self):
        f = Filter.parse("App*")
        assert f.test_class_name({"AppDelegate"})
        assert not f.test_class_name({"Widget"})

    def test_exclude_wins_over_include(self):
        f = Filter.parse("App*, !*Tests")
        assert not f.test_class_name({"AppTests"})
        assert f.test_class_name({"AppModel"})

    def test_only_excludes(self):
        f = Filter.parse("!*Tests")
        assert f.test_class_name({"Widget"})
        assert not f.test_class_name({"WidgetTests"})

    def test_any_candidate_name(self):
        f = Filter.parse("Widget")
        assert f.test_class_name({"Gadget", "Widget"})
        assert not Filter.parse("!Widget").test_class_name({"Gadget", "Widget"})

    def test_matching_is_case_sensitive(self):
        assert not Filter.parse("widget").test_class_name({"Widget"})

    def test_select(self):
        f = Filter.parse("W*, !*Tests")
        assert f.select(["Widget", "WidgetTests", "Gadget", "Wheel"]) == ["Widget", "Wheel"]


class TestAnalysisConfig:

    def test_defaults(self):
        assert DEFAULT_CONFIG.filter.accepts_all
        assert not DEFAULT_CONFIG.debug
        assert not DEFAULT_CONFIG.infer_locals
        assert DEFAULT_CONFIG.output == "gcc"

    def test_unknown_output_format(self):
        with pytest.raises(ConfigError):
            AnalysisConfig(output="xml")

    @pytest.mark.parametrize("bound", [0, -3])
    def test_iteration_bound_must_be_positive(self, bound):
        with pytest.raises(ConfigError):
            AnalysisConfig(max_iterations=bound)

    def test_from_args(self):
        ns = argparse.Namespace(
            filter="App*", debug=True, infer_locals=True,
            max_iterations=5, format="json",
        )
        config = AnalysisConfig.from_args(ns)
        assert config.filter == Filter((FilterTerm("App*"),))
        assert config.debug and config.infer_locals
        assert config.max_iterations == 5
        assert config.output == "json"

    def test_from_args_bad_filter(self):
        with pytest.raises(FilterSyntaxError):
            AnalysisConfig.from_args(argparse.Namespace(filter="a,,b"))
