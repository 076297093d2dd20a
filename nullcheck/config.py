"""
nullcheck.config
================

Per-run analysis options.

The options are an explicit value handed to the driver; no module keeps
global switches.  Build one directly, or from parsed command-line
arguments with :meth:`AnalysisConfig.from_args`.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from typing import Optional

from nullcheck.errors import ConfigError
from nullcheck.filter import Filter

OUTPUT_FORMATS = ("gcc", "json", "summary")


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Options for one analysis run.

    Attributes
    ----------
    debug          : emit a ``Variable nullability`` remark per seeded variable
    filter         : restricts the analyzed class implementations by name
    infer_locals   : let un-annotated locals take the join of their values
    max_iterations : bound for the local inference fixpoint (``None``: automatic)
    output         : ``gcc``, ``json`` or ``summary``
    """
    debug: bool = False
    filter: Filter = field(default_factory=Filter)
    infer_locals: bool = False
    max_iterations: Optional[int] = None
    output: str = "gcc"

    def __post_init__(self) -> None:
        if self.output not in OUTPUT_FORMATS:
            raise ConfigError(
                f"Unknown output format {self.output!r}; "
                f"expected one of {', '.join(OUTPUT_FORMATS)}"
            )
        if self.max_iterations is not None and self.max_iterations < 1:
            raise ConfigError("max_iterations must be at least 1")

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> AnalysisConfig:
        """Build from the namespace produced by the command-line parser."""
        filter_text = getattr(args, "filter", None) or ""
        return cls(
            debug=bool(getattr(args, "debug", False)),
            filter=Filter.parse(filter_text),
            infer_locals=bool(getattr(args, "infer_locals", False)),
            max_iterations=getattr(args, "max_iterations", None),
            output=getattr(args, "format", "gcc"),
        )


DEFAULT_CONFIG = AnalysisConfig()


__all__ = ["OUTPUT_FORMATS", "AnalysisConfig", "DEFAULT_CONFIG"]
