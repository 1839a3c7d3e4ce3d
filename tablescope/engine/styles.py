"""Detect how a column writes its numbers, from a sample of visible rows."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from .errors import QueryError
from .models import MAX_STYLE_SAMPLES, CellValue, NumericStyle
from .numbers import DOT_NUMBER_RE, EURO_NUMBER_RE
from .search import MATCH_ALL, SearchPredicate
from .text import quote_ident

if TYPE_CHECKING:
    from ..repositories.dataset_repository import DatasetRepository

logger = logging.getLogger(__name__)


def classify_samples(values: Iterable[CellValue]) -> NumericStyle:
    """Pick the dominant convention among sampled values.

    Ties go to the euro convention: short integers such as ``"123"`` satisfy
    both patterns and the dataset's source locale writes decimal commas.
    """
    euro = dot = 0
    for value in values:
        if value is None:
            continue
        text = str(value).strip()
        if EURO_NUMBER_RE.match(text):
            euro += 1
        if DOT_NUMBER_RE.match(text):
            dot += 1
    if euro == 0 and dot == 0:
        return NumericStyle.NONE
    if euro >= dot:
        return NumericStyle.EURO
    return NumericStyle.DOT


def detect_numeric_style(
    repo: DatasetRepository,
    table: str,
    column: str,
    predicate: SearchPredicate = MATCH_ALL,
    sample_size: int = MAX_STYLE_SAMPLES,
) -> NumericStyle:
    """Classify ``column`` using only rows the active predicate lets through.

    A failing sample query is not fatal: the column is treated as text.
    """
    col = quote_ident(column)
    where = predicate.where(f"{col} IS NOT NULL AND TRIM({col}) <> ''")
    sql = f"SELECT {col} FROM {quote_ident(table)} {where} LIMIT {int(sample_size)};"
    try:
        rows = repo.fetch_all(sql, predicate.parameters)
    except QueryError as exc:
        logger.warning("Numeric style detection failed for %s.%s: %s", table, column, exc)
        return NumericStyle.NONE
    return classify_samples(r[0] for r in rows)


def numeric_key_expr(column: str, style: NumericStyle) -> str:
    """SQL expression yielding the parsed number for ``column`` (NULL if unparseable)."""
    col = quote_ident(column)
    if not style.is_numeric:
        return col
    return f"locale_number({col}, '{style.value}')"
