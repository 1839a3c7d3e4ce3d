"""
Dataset exploration service.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from ..domain import EXPORT_CSV_MEDIA_TYPE, EXPORT_XLSX_MEDIA_TYPE
from ..engine import (
    CrossTableAggregate,
    HistogramResult,
    RoleConfig,
    SchemaIntrospector,
    SortSpec,
    TablePage,
    TableQueryExecutor,
    aggregate_all_tables,
    aggregate_table,
    build_search_predicate,
    compute_histogram,
    load_roles,
)
from ..export import export_filename, rows_to_csv, rows_to_xlsx
from ..repositories import DatasetRepository

logger = logging.getLogger(__name__)

ExportFormat = Literal["csv", "xlsx"]


@dataclass(frozen=True)
class TableListing:
    tables: list[str]
    base_tables: list[str]


@dataclass(frozen=True)
class TableView:
    page: TablePage
    sort: SortSpec
    chart: HistogramResult


@dataclass(frozen=True)
class ExportFile:
    filename: str
    media_type: str
    content: bytes


class ExplorerService:
    """Browse, chart, summarise and export tables of one dataset."""

    def __init__(
        self,
        repo: DatasetRepository,
        per_page: int = 50,
        chart_limit: int = 50,
        roles: RoleConfig | None = None,
    ) -> None:
        self._repo = repo
        self._per_page = per_page
        self._chart_limit = chart_limit
        self._roles = roles or load_roles()
        self._executor = TableQueryExecutor(repo)

    def _introspector(self) -> SchemaIntrospector:
        return SchemaIntrospector(self._repo, self._roles.attachment_suffixes)

    def columns(self, table: str) -> list[str]:
        return self._introspector().column_names(table)

    def list_tables(self) -> TableListing:
        introspector = self._introspector()
        return TableListing(tables=introspector.list_tables(), base_tables=introspector.list_base_tables())

    def table_view(
        self,
        table: str,
        query: str | None = None,
        order: str | None = None,
        descending: bool = False,
        page: int | None = 1,
        chart_by: str | None = None,
        chart_limit: int | None = None,
    ) -> TableView:
        sort = SortSpec(column=order or None, descending=descending)
        result = self._executor.fetch_page(table, query, sort, page, self._per_page)
        predicate = build_search_predicate(result.columns, query)
        chart = compute_histogram(
            self._repo,
            table,
            chart_by or None,
            predicate,
            limit=chart_limit or self._chart_limit,
            descending=descending,
            known_columns=result.columns,
        )
        return TableView(page=result, sort=sort, chart=chart)

    def summary(self, table: str, query: str | None = None) -> CrossTableAggregate:
        return aggregate_table(self._repo, table, query, self._roles)

    def summary_all(self, query: str | None = None) -> CrossTableAggregate:
        return aggregate_all_tables(self._repo, query, self._roles)

    def export(
        self,
        table: str,
        fmt: ExportFormat,
        query: str | None = None,
        order: str | None = None,
        descending: bool = False,
    ) -> ExportFile:
        sort = SortSpec(column=order or None, descending=descending)
        columns, rows = self._executor.fetch_all_rows(table, query, sort)
        logger.info("Exporting %s rows of %s as %s", len(rows), table, fmt)
        if fmt == "xlsx":
            return ExportFile(export_filename(table, "xlsx"), EXPORT_XLSX_MEDIA_TYPE, rows_to_xlsx(columns, rows))
        return ExportFile(export_filename(table, "csv"), EXPORT_CSV_MEDIA_TYPE, rows_to_csv(columns, rows))
