"""
nullcheck/filter.py
═══════════════════

Class-name filter deciding which implementations are analyzed.

Pattern language
────────────────
A filter is a comma-separated list of shell-style globs.  A glob prefixed
with ``!`` excludes; any other glob includes::

    MyApp*, !*Tests, Legacy?Controller

A set of candidate names passes when

* no exclude glob matches any candidate, and
* there are no include globs, or at least one include glob matches a
  candidate.

The empty filter accepts everything.
"""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass
from typing import AbstractSet, Iterable, List, Tuple

from parsimonious.exceptions import ParseError, VisitationError
from parsimonious.grammar import Grammar
from parsimonious.nodes import NodeVisitor

from nullcheck.errors import FilterSyntaxError

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  PART 1 - FILTER GRAMMAR (Parsimonious PEG)
# ═══════════════════════════════════════════════════════════════════

FILTER_GRAMMAR = Grammar(r'''
    filter      = _ term_list? _
    term_list   = term more_terms
    more_terms  = (_ "," _ term)*
    term        = negation? glob
    negation    = "!" _
    glob        = ~r"[A-Za-z0-9_$.:*?\[\]\-]+"
    _           = ~r"\s*"
''')


# ═══════════════════════════════════════════════════════════════════
#  PART 2 - FILTER MODEL
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FilterTerm:
    glob: str
    exclude: bool = False

    def matches(self, name: str) -> bool:
        return fnmatch.fnmatchcase(name, self.glob)

    def __str__(self) -> str:
        return f"!{self.glob}" if self.exclude else self.glob


@dataclass(frozen=True)
class Filter:
    """Parsed class-name filter.  ``Filter()`` accepts every class."""
    terms: Tuple[FilterTerm, ...] = ()

    @classmethod
    def parse(cls, text: str) -> Filter:
        """Parse *text*; raise :class:`FilterSyntaxError` if malformed."""
        try:
            tree = FILTER_GRAMMAR.parse(text)
            terms = _FilterBuilder().visit(tree)
        except (ParseError, VisitationError) as exc:
            raise FilterSyntaxError(f"invalid filter {text!r}: {exc}") from exc
        logger.debug("filter %r parsed into %d term(s)", text, len(terms))
        return cls(tuple(terms))

    @property
    def includes(self) -> Tuple[FilterTerm, ...]:
        return tuple(t for t in self.terms if not t.exclude)

    @property
    def excludes(self) -> Tuple[FilterTerm, ...]:
        return tuple(t for t in self.terms if t.exclude)

    @property
    def accepts_all(self) -> bool:
        return not self.terms

    def test_class_name(self, names: AbstractSet[str]) -> bool:
        """Whether a class known by any of *names* should be analyzed."""
        if any(t.matches(n) for t in self.excludes for n in names):
            return False
        includes = self.includes
        if not includes:
            return True
        return any(t.matches(n) for t in includes for n in names)

    def select(self, names: Iterable[str]) -> List[str]:
        """The subset of *names* that pass, each tested on its own."""
        return [n for n in names if self.test_class_name({n})]

    def __str__(self) -> str:
        return ", ".join(str(t) for t in self.terms)


# ═══════════════════════════════════════════════════════════════════
#  PART 3 - PARSE TREE → FILTER TERMS
# ═══════════════════════════════════════════════════════════════════

class _FilterBuilder(NodeVisitor):

    def generic_visit(self, node, visited_children):
        return visited_children or node

    def visit_filter(self, node, visited_children):
        _, terms, _ = visited_children
        # an absent optional comes back as the bare node
        return terms[0] if isinstance(terms, list) else []

    def visit_term_list(self, node, visited_children):
        first, rest = visited_children
        return [first] + rest

    def visit_more_terms(self, node, visited_children):
        # each repetition is [_, ",", _, term]
        return [child[-1] for child in visited_children]

    def visit_term(self, node, visited_children):
        negation, glob = visited_children
        return FilterTerm(glob=glob, exclude=isinstance(negation, list))

    def visit_negation(self, node, visited_children):
        return True

    def visit_glob(self, node, visited_children):
        return node.text


ACCEPT_ALL = Filter()


__all__ = [
    "FILTER_GRAMMAR",
    "FilterTerm",
    "Filter",
    "ACCEPT_ALL",
]
