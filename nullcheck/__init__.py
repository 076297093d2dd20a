"""
nullcheck - Flow-sensitive Nullability Checker
==============================================

Checks Objective-C method bodies, given as resolved syntax trees, against
the ``nonnull`` / ``nullable`` contracts of the declarations they touch.

Core modules
------------
lattice
    The three nullability kinds and the compatibility predicates.
ast_nodes
    Resolved syntax tree: types, declarations, expressions, statements.
environment
    Immutable variable → nullability mapping with narrowing forks.
calculator
    Nullability of an expression under an environment.
checker
    The checking visitor for method and closure bodies.
initializer
    Definite-initialization of non-null ivars in initializers.
propagation
    Environment seeding for one method body.
driver
    Runs both analyses over a translation unit.

Addon modules
-------------
loader
    S-expression dump → resolved tree (requires ``sexpdata``).

Quick start
-----------
>>> from nullcheck import load_string, NullabilityAnalyzer
>>> unit = load_string(open("Widget.m.sexp").read())
>>> print(NullabilityAnalyzer().run(unit).to_gcc_format())

Package layout
--------------
::

    nullcheck/
    ├── __init__.py            ← this file
    ├── __main__.py
    ├── lattice.py
    ├── diagnostics.py
    ├── errors.py
    ├── ast_nodes.py
    ├── environment.py
    ├── calculator.py
    ├── checker.py
    ├── initializer.py
    ├── propagation.py
    ├── filter.py
    ├── config.py
    ├── driver.py
    ├── loader.py
    └── main.py
"""

from __future__ import annotations

import importlib
import logging
import sys
import warnings
from typing import List

# ---------------------------------------------------------------------------
# Package metadata
# ---------------------------------------------------------------------------

__version__ = "0.4.0"
__all__: List[str] = []          # populated incrementally below

_log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Internal registry: (module_name, list_of_names_to_import)
#
#   CORE  - always imported; failure is fatal
#   ADDON - imported eagerly but failure only warns (package still usable)
# ---------------------------------------------------------------------------

_CORE_MODULES = {
    "lattice": [
        "NullabilityKind",
        "UNSPECIFIED",
        "NONNULL",
        "NULLABLE",
        "compatible",
        "is_collection_safe",
        "parse_kind",
    ],
    "diagnostics": [
        "Severity",
        "SourceLocation",
        "Violation",
        "Reporter",
        "ViolationCollector",
    ],
    "errors": [
        "NullcheckError",
        "DumpError",
        "FilterSyntaxError",
        "ConfigError",
    ],
    "ast_nodes": [
        "QualType",
        "MethodDecl",
        "ImplementationDecl",
        "TranslationUnit",
    ],
    "environment": [
        "Environment",
    ],
    "calculator": [
        "NullabilityCalculator",
    ],
    "checker": [
        "MethodBodyChecker",
        "check_body",
    ],
    "initializer": [
        "InitializerChecker",
        "InitializerResult",
    ],
    "propagation": [
        "VariableNullabilityPropagation",
    ],
    "filter": [
        "Filter",
    ],
    "config": [
        "AnalysisConfig",
    ],
    "driver": [
        "NullabilityAnalyzer",
        "analyze_unit",
    ],
}

_ADDON_MODULES = {
    "loader": [
        "load_string",
        "load_file",
    ],
}

# ---------------------------------------------------------------------------
# Import helper
# ---------------------------------------------------------------------------

def _import_names(
    module_rel_name: str,
    names: List[str],
    *,
    fatal: bool = True,
) -> None:
    """Import *names* from a submodule and bind them in the package namespace.

    If *fatal* is ``False`` an ``ImportError`` only warns and the names are
    skipped.
    """
    fq_name = f"{__name__}.{module_rel_name}"
    try:
        mod = importlib.import_module(fq_name)
    except ImportError as exc:
        if fatal:
            raise ImportError(
                f"nullcheck: required submodule '{module_rel_name}' "
                f"failed to import: {exc}"
            ) from exc
        warnings.warn(
            f"nullcheck: optional submodule '{module_rel_name}' could not be "
            f"imported ({exc}); related symbols will be unavailable.",
            ImportWarning,
            stacklevel=2,
        )
        _log.debug("Skipped optional module %s: %s", module_rel_name, exc)
        return

    current_module = sys.modules[__name__]
    for name in names:
        obj = getattr(mod, name, None)
        if obj is None:
            msg = f"nullcheck.{module_rel_name} does not export '{name}'"
            if fatal:
                raise AttributeError(msg)
            _log.warning(msg)
            continue
        setattr(current_module, name, obj)
        __all__.append(name)

    setattr(current_module, module_rel_name, mod)
    if module_rel_name not in __all__:
        __all__.append(module_rel_name)


for _mod, _names in _CORE_MODULES.items():
    _import_names(_mod, _names, fatal=True)

for _mod, _names in _ADDON_MODULES.items():
    _import_names(_mod, _names, fatal=False)

del _mod, _names
