"""Distinct-value counts for a single column of a single table."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .errors import TablescopeError
from .models import DEFAULT_HISTOGRAM_LIMIT, HistogramEntry, HistogramResult
from .numbers import format_locale_number
from .schema import SchemaIntrospector
from .search import MATCH_ALL, SearchPredicate
from .styles import detect_numeric_style, numeric_key_expr
from .text import quote_ident

if TYPE_CHECKING:
    from ..repositories.dataset_repository import DatasetRepository

logger = logging.getLogger(__name__)


def compute_histogram(
    repo: DatasetRepository,
    table: str,
    column: str | None,
    predicate: SearchPredicate = MATCH_ALL,
    limit: int = DEFAULT_HISTOGRAM_LIMIT,
    descending: bool = False,
    text_ranking: bool = True,
    known_columns: list[str] | None = None,
) -> HistogramResult:
    """Count rows per distinct value of ``column``.

    Numeric columns group by parsed value (NULLs dropped), order by value and
    carry the bucket sum in ``total``.
    Text columns keep NULL/blank as an empty label and order by count
    (``text_ranking``) or by value. Any failure yields an unavailable result.
    """
    if not column:
        return HistogramResult.unavailable(column)
    if known_columns is None:
        try:
            known_columns = SchemaIntrospector(repo).column_names(table)
        except TablescopeError as exc:
            logger.warning("Histogram failed for %s.%s: %s", table, column, exc)
            return HistogramResult.unavailable(column)
    if column not in known_columns:
        logger.warning("Histogram requested for unknown column %s.%s", table, column)
        return HistogramResult.unavailable(column)

    direction = "DESC" if descending else "ASC"
    limit = max(1, int(limit))
    tname = quote_ident(table)
    style = detect_numeric_style(repo, table, column, predicate)

    if style.is_numeric:
        sql = (
            f"WITH vals AS (SELECT {numeric_key_expr(column, style)} AS k FROM {tname} {predicate.where()}) "
            f"SELECT k, COUNT(*) AS c, SUM(k) AS total FROM vals WHERE k IS NOT NULL "
            f"GROUP BY k ORDER BY k {direction} LIMIT {limit};"
        )
    else:
        col = quote_ident(column)
        order_sql = "2 DESC, 1 ASC" if text_ranking else f"1 {direction}"
        sql = (
            f"SELECT {col}, COUNT(*), NULL FROM {tname} {predicate.where()} "
            f"GROUP BY 1 ORDER BY {order_sql} LIMIT {limit};"
        )

    try:
        rows = repo.fetch_all(sql, predicate.parameters)
    except TablescopeError as exc:
        logger.warning("Histogram failed for %s.%s: %s", table, column, exc)
        return HistogramResult.unavailable(column)

    entries: list[HistogramEntry] = []
    for key, count, total in rows:
        if style.is_numeric:
            label = format_locale_number(float(key))
        else:
            label = "" if key is None else str(key)
        entries.append(HistogramEntry(
            label=label,
            count=int(count),
            total=None if total is None else float(total),
        ))
    return HistogramResult(column=column, style=style, entries=entries)
