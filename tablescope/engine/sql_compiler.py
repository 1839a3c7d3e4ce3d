"""Compile table views into parameterized SQL + params.

Key invariant: identifiers are only ever interpolated through
``quote_ident``; every literal travels as a bound parameter.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Sequence

from .models import PageWindow, SortSpec
from .search import MATCH_ALL, SearchPredicate
from .styles import detect_numeric_style, numeric_key_expr
from .text import quote_ident

if TYPE_CHECKING:
    from ..repositories.dataset_repository import DatasetRepository


@dataclass(frozen=True)
class CompiledSql:
    sql: str
    parameters: list[Any]


# ------------------------------------------------------------------
# Ordering
# ------------------------------------------------------------------

def build_order_clause(
    repo: DatasetRepository,
    table: str,
    sort: SortSpec,
    predicate: SearchPredicate = MATCH_ALL,
) -> str:
    """``ORDER BY`` for ``sort``, numeric when the visible values are numbers.

    The style is re-detected under the active predicate, so a column that is
    mixed across the whole table still sorts numerically inside a filtered
    subset that is consistent.
    """
    if not sort.column:
        return ""
    style = detect_numeric_style(repo, table, sort.column, predicate)
    return f"ORDER BY {numeric_key_expr(sort.column, style)} {sort.direction}"


# ------------------------------------------------------------------
# Statements
# ------------------------------------------------------------------

def compile_count(table: str, predicate: SearchPredicate = MATCH_ALL) -> CompiledSql:
    sql = f"SELECT COUNT(*) FROM {quote_ident(table)} {predicate.where()};"
    return CompiledSql(sql=sql, parameters=predicate.parameters)


def compile_select(
    table: str,
    columns: Sequence[str],
    predicate: SearchPredicate = MATCH_ALL,
    order_clause: str = "",
    window: PageWindow | None = None,
) -> CompiledSql:
    """Select ``columns`` in order; ``window`` of None selects every matching row."""
    select_clause = ", ".join(quote_ident(c) for c in columns) or "*"
    parts = [f"SELECT {select_clause} FROM {quote_ident(table)}", predicate.where(), order_clause]
    params = list(predicate.parameters)
    if window is not None:
        parts.append("LIMIT ? OFFSET ?")
        params.extend([window.limit, window.offset])
    sql = " ".join(p for p in parts if p) + ";"
    return CompiledSql(sql=sql, parameters=params)
