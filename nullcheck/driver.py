"""
nullcheck/driver.py
═══════════════════

Per-translation-unit driver.

For every class implementation accepted by the configured filter:

  1. every method with a body gets a seeded environment
     (:mod:`nullcheck.propagation`), an optional debug trace of that
     environment, and one pass of :class:`~nullcheck.checker.MethodBodyChecker`;
  2. every initializer is then run through
     :class:`~nullcheck.initializer.InitializerChecker`, and unassigned
     non-null ivars are reported at the method.

Usage
─────
    >>> unit = load_file("Widget.m.sexp")
    >>> analyzer = NullabilityAnalyzer(AnalysisConfig(debug=True))
    >>> violations = analyzer.run(unit)
    >>> print(violations.summary())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from nullcheck.ast_nodes import ImplementationDecl, MethodDecl, TranslationUnit
from nullcheck.calculator import NullabilityCalculator
from nullcheck.checker import MethodBodyChecker
from nullcheck.config import DEFAULT_CONFIG, AnalysisConfig
from nullcheck.diagnostics import Reporter, Severity, ViolationCollector
from nullcheck.initializer import InitializerChecker, is_initializer
from nullcheck.propagation import PropagationResult, VariableNullabilityPropagation

logger = logging.getLogger(__name__)

MSG_VARIABLE_NULLABILITY = "Variable nullability"


@dataclass
class RunStats:
    """Counters for one :meth:`NullabilityAnalyzer.analyze` call."""
    implementations: int = 0
    filtered_out: int = 0
    methods: int = 0
    initializers: int = 0


class NullabilityAnalyzer:
    """
    Runs both analyses over translation units.

    Parameters
    ----------
    config     : per-run options; defaults to :data:`DEFAULT_CONFIG`
    calculator : expression classifier shared by every method
    """

    def __init__(
        self,
        config: Optional[AnalysisConfig] = None,
        calculator: Optional[NullabilityCalculator] = None,
    ) -> None:
        self.config = config or DEFAULT_CONFIG
        self.calculator = calculator or NullabilityCalculator()
        self.propagation = VariableNullabilityPropagation(
            self.calculator,
            infer_locals=self.config.infer_locals,
            max_iterations=self.config.max_iterations,
        )

    # ── entry points ──────────────────────────────────────────────

    def run(self, unit: TranslationUnit) -> ViolationCollector:
        """Analyze *unit* into a fresh collector."""
        collector = ViolationCollector()
        self.analyze(unit, collector)
        return collector

    def run_all(self, units: Sequence[TranslationUnit]) -> ViolationCollector:
        collector = ViolationCollector()
        for unit in units:
            self.analyze(unit, collector)
        return collector

    def analyze(self, unit: TranslationUnit, reporter: Reporter) -> RunStats:
        stats = RunStats()
        for impl in unit.implementations:
            if not self.config.filter.test_class_name({impl.name}):
                logger.debug("skipping %s: rejected by filter", impl.name)
                stats.filtered_out += 1
                continue
            stats.implementations += 1
            self._analyze_implementation(impl, reporter, stats)
        logger.info(
            "%s: %d implementation(s) analyzed, %d filtered out, "
            "%d method(s), %d initializer(s)",
            unit.file, stats.implementations, stats.filtered_out,
            stats.methods, stats.initializers,
        )
        return stats

    # ── per declaration ───────────────────────────────────────────

    def _analyze_implementation(
        self, impl: ImplementationDecl, reporter: Reporter, stats: RunStats
    ) -> None:
        for method in impl.methods:
            if method.has_body:
                self.check_method(method, reporter)
                stats.methods += 1

        initializers = InitializerChecker(impl)
        for method in impl.methods:
            if not is_initializer(method, impl):
                continue
            stats.initializers += 1
            result = initializers.analyze(method)
            if not result.ok:
                reporter.report(
                    method.loc, result.message, error_id="uninitializedNonnullIvar",
                )

    def check_method(self, method: MethodDecl, reporter: Reporter) -> PropagationResult:
        """Seed, optionally trace, and check the body of *method*."""
        logger.debug("checking %s", method.qualified_name)
        seeded = self.propagation.propagate(method)
        if self.config.debug:
            self._trace(seeded, reporter)
        checker = MethodBodyChecker(
            reporter, method.return_type, seeded.env, self.calculator
        )
        checker.check(method.body)
        return seeded

    def _trace(self, seeded: PropagationResult, reporter: Reporter) -> None:
        logger.debug("environment: %r", seeded.env)
        for decl in seeded.variables:
            kind = seeded.env.lookup(decl)
            reporter.report(
                decl.loc,
                f"{MSG_VARIABLE_NULLABILITY}: {kind}",
                error_id="variableNullability",
                severity=Severity.REMARK,
            )


def analyze_unit(
    unit: TranslationUnit,
    config: Optional[AnalysisConfig] = None,
    reporter: Optional[Reporter] = None,
) -> Reporter:
    """Convenience wrapper: analyze *unit* into *reporter* (a new collector
    if omitted) and return the reporter."""
    reporter = reporter if reporter is not None else ViolationCollector()
    NullabilityAnalyzer(config).analyze(unit, reporter)
    return reporter


__all__ = [
    "MSG_VARIABLE_NULLABILITY",
    "RunStats",
    "NullabilityAnalyzer",
    "analyze_unit",
]
