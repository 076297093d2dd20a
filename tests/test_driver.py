# tests/test_driver.py
"""
End-to-end tests: dump text → loader → analyzer → violations.
"""

import pytest

from nullcheck.config import AnalysisConfig
from nullcheck.diagnostics import Severity, ViolationCollector
from nullcheck.driver import MSG_VARIABLE_NULLABILITY, NullabilityAnalyzer, analyze_unit
from nullcheck.filter import Filter
from nullcheck.loader import load_string
from tests.conftest import CLEAN_DUMP, WIDGET_WARNINGS

INFER_DUMP = '''
(unit "Infer.m"
  (interface Infer
    (method - "take:" (params (param s (type "NSString *" nonnull)))))
  (implementation Infer
    (method - "run" (at 2 1)
      (body
        (decl s "NSString *" (init (nil)) (at 3 5))
        (send (self) "take:" (ref s (at 4 20)))))))
'''

TWO_CLASSES_DUMP = '''
(unit "Two.m"
  (interface AppModel
    (method - "use:" (params (param s (type "NSString *" nonnull)))))
  (interface AppModelTests
    (method - "use:" (params (param s (type "NSString *" nonnull)))))
  (implementation AppModel
    (method - "run" (body (send (self) "use:" (nil (at 5 9))))))
  (implementation AppModelTests
    (method - "run" (body (send (self) "use:" (nil (at 9 9)))))))
'''


def findings(sink):
    return [(str(v.location), v.message) for v in sink]


class TestWidgetDump:

    def test_expected_warnings_in_order(self, widget_dump):
        sink = NullabilityAnalyzer().run(load_string(widget_dump))
        assert findings(sink) == WIDGET_WARNINGS
        assert sink.remark_count == 0

    def test_error_ids(self, widget_dump):
        sink = NullabilityAnalyzer().run(load_string(widget_dump))
        assert [v.error_id for v in sink] == [
            "nonnullArgument",
            "nonnullArgument",
            "nonnullArgument",
            "nullabilityReturnMismatch",
            "uninitializedNonnullIvar",
        ]

    def test_run_stats(self, widget_dump):
        stats = NullabilityAnalyzer().analyze(load_string(widget_dump), ViolationCollector())
        assert stats.implementations == 1
        assert stats.filtered_out == 0
        assert stats.methods == 3
        assert stats.initializers == 1

    def test_clean_dump(self):
        assert len(NullabilityAnalyzer().run(load_string(CLEAN_DUMP))) == 0

    def test_analysis_is_repeatable(self, widget_dump):
        unit = load_string(widget_dump)
        analyzer = NullabilityAnalyzer()
        assert analyzer.run(unit).violations == analyzer.run(unit).violations


class TestDebugTrace:

    def test_remarks_precede_each_method(self, widget_dump):
        sink = NullabilityAnalyzer(AnalysisConfig(debug=True)).run(load_string(widget_dump))
        remarks = [
            (str(v.location), v.message) for v in sink if v.severity is Severity.REMARK
        ]
        assert remarks == [
            ("Widget.m:11:5", f"{MSG_VARIABLE_NULLABILITY}: unspecified"),
            ("Widget.m:20:20", f"{MSG_VARIABLE_NULLABILITY}: nullable"),
        ]
        assert sink.violations[1].severity is Severity.REMARK
        assert sink.violations[2].message == WIDGET_WARNINGS[0][1]
        assert sink.warning_count == len(WIDGET_WARNINGS)

    def test_remark_format(self, widget_dump):
        sink = NullabilityAnalyzer(AnalysisConfig(debug=True)).run(load_string(widget_dump))
        first = sink.violations[0]
        assert first.error_id == "variableNullability"
        assert first.to_gcc_format() == (
            "Widget.m:11:5: remark: Variable nullability: unspecified [variableNullability]"
        )


class TestFilter:

    @pytest.mark.parametrize("pattern,expected", [
        ("", ["Two.m:5:9", "Two.m:9:9"]),
        ("App*", ["Two.m:5:9", "Two.m:9:9"]),
        ("App*, !*Tests", ["Two.m:5:9"]),
        ("Other", []),
    ])
    def test_filter_selects_implementations(self, pattern, expected):
        config = AnalysisConfig(filter=Filter.parse(pattern))
        sink = NullabilityAnalyzer(config).run(load_string(TWO_CLASSES_DUMP))
        assert [str(v.location) for v in sink] == expected

    def test_filtered_out_count(self):
        config = AnalysisConfig(filter=Filter.parse("!*Tests"))
        stats = NullabilityAnalyzer(config).analyze(
            load_string(TWO_CLASSES_DUMP), ViolationCollector()
        )
        assert (stats.implementations, stats.filtered_out) == (1, 1)

    def test_filter_also_skips_initializer_pass(self, widget_dump):
        config = AnalysisConfig(filter=Filter.parse("!Widget"))
        assert len(NullabilityAnalyzer(config).run(load_string(widget_dump))) == 0


class TestInferLocals:

    def test_off_by_default(self):
        assert len(NullabilityAnalyzer().run(load_string(INFER_DUMP))) == 0

    def test_inferred_nullable_local(self):
        config = AnalysisConfig(infer_locals=True)
        sink = NullabilityAnalyzer(config).run(load_string(INFER_DUMP))
        assert findings(sink) == [("Infer.m:4:20", "-[Infer take:] expects nonnull argument")]

    def test_debug_shows_inferred_kind(self):
        config = AnalysisConfig(infer_locals=True, debug=True)
        sink = NullabilityAnalyzer(config).run(load_string(INFER_DUMP))
        assert sink.violations[0].message == f"{MSG_VARIABLE_NULLABILITY}: nullable"


class TestMultipleUnits:

    def test_run_all_accumulates(self, widget_dump):
        units = [load_string(widget_dump), load_string(CLEAN_DUMP), load_string(TWO_CLASSES_DUMP)]
        sink = NullabilityAnalyzer().run_all(units)
        assert len(sink) == len(WIDGET_WARNINGS) + 2
        assert {v.location.file for v in sink} == {"Widget.m", "Two.m"}

    def test_analyze_unit_helper(self, widget_dump):
        sink = ViolationCollector()
        returned = analyze_unit(load_string(widget_dump), reporter=sink)
        assert returned is sink
        assert len(sink) == len(WIDGET_WARNINGS)
        assert len(analyze_unit(load_string(CLEAN_DUMP))) == 0
