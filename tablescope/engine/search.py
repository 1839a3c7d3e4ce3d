"""Accent- and case-insensitive full-row substring search."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from .text import escape_like, fold_text, quote_ident


@dataclass(frozen=True)
class SearchPredicate:
    """A folded ``LIKE`` pattern applied to every listed column (OR-ed).

    The pattern is bound once as parameter 1; statements that add their own
    parameters place them after it.

    An empty pattern matches every row and renders to no SQL at all.
    """
    pattern: str | None = None
    columns: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_match_all(self) -> bool:
        return self.pattern is None or not self.columns

    def condition(self) -> str:
        if self.is_match_all:
            return ""
        parts = [
            f"unaccent_lower(CAST({quote_ident(c)} AS TEXT)) LIKE ?1 ESCAPE '\\'"
            for c in self.columns
        ]
        return "(" + " OR ".join(parts) + ")"

    @property
    def parameters(self) -> list[Any]:
        if self.is_match_all:
            return []
        return [self.pattern]

    def where(self, *extra: str) -> str:
        """Render a ``WHERE`` clause, AND-ing any extra conditions."""
        clauses = [c for c in (self.condition(), *extra) if c]
        if not clauses:
            return ""
        return "WHERE " + " AND ".join(clauses)


MATCH_ALL = SearchPredicate()


def build_search_predicate(columns: Sequence[str], query: str | None) -> SearchPredicate:
    query = (query or "").strip()
    if not query:
        return MATCH_ALL
    pattern = "%" + escape_like(fold_text(query)) + "%"
    return SearchPredicate(pattern=pattern, columns=tuple(columns))
