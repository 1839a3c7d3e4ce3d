"""Resolve, compile and execute single-table page requests."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .errors import QueryError
from .models import CellValue, SortSpec, TablePage
from .pagination import page_window
from .schema import SchemaIntrospector
from .search import build_search_predicate
from .sql_compiler import build_order_clause, compile_count, compile_select

if TYPE_CHECKING:
    from ..repositories.dataset_repository import DatasetRepository

logger = logging.getLogger(__name__)


class TableQueryExecutor:
    """Filter, sort and paginate one table.

    Metadata is looked up through a fresh introspector on every call so the
    executor itself holds no schema state.
    """

    def __init__(self, repo: DatasetRepository) -> None:
        self._repo = repo

    @property
    def repo(self) -> DatasetRepository:
        return self._repo

    def _resolve(self, table: str, sort: SortSpec | None) -> tuple[list[str], SortSpec]:
        columns = SchemaIntrospector(self._repo).column_names(table)
        sort = sort or SortSpec()
        if sort.column and sort.column not in columns:
            raise QueryError(f"Unknown sort column {sort.column!r} for table {table!r}")
        return columns, sort

    def fetch_page(
        self,
        table: str,
        query: str | None = None,
        sort: SortSpec | None = None,
        page: int | None = 1,
        page_size: int | None = None,
    ) -> TablePage:
        columns, sort = self._resolve(table, sort)
        predicate = build_search_predicate(columns, query)

        counted = compile_count(table, predicate)
        total = int(self._repo.fetch_scalar(counted.sql, counted.parameters) or 0)
        window = page_window(total, page_size, page)

        order_clause = build_order_clause(self._repo, table, sort, predicate)
        compiled = compile_select(table, columns, predicate, order_clause, window)
        rows = self._repo.fetch_mappings(compiled.sql, compiled.parameters, columns)

        logger.debug(
            "Fetched %s rows of %s (page %s/%s, total %s)",
            len(rows), table, window.page, window.pages, total,
        )
        return TablePage(
            table=table,
            columns=columns,
            rows=rows,
            total=total,
            page=window.page,
            pages=window.pages,
            page_size=window.page_size,
        )

    def fetch_all_rows(
        self,
        table: str,
        query: str | None = None,
        sort: SortSpec | None = None,
    ) -> tuple[list[str], list[tuple[CellValue, ...]]]:
        """Every row matching ``query``, in view order, for exports."""
        columns, sort = self._resolve(table, sort)
        predicate = build_search_predicate(columns, query)
        order_clause = build_order_clause(self._repo, table, sort, predicate)
        compiled = compile_select(table, columns, predicate, order_clause)
        return columns, self._repo.fetch_all(compiled.sql, compiled.parameters)
