"""Schema-agnostic, read-only query and aggregation engine over SQLite tables."""
from .errors import (
    TablescopeError,
    MetadataError,
    TableNotFoundError,
    QueryError,
)
from .models import (
    CellValue,
    Column,
    NumericStyle,
    SortSpec,
    PageWindow,
    TablePage,
    HistogramEntry,
    HistogramResult,
    StackSeries,
    RankedMetric,
    MonthlyMetric,
    TopRecords,
    AttachmentCoverage,
    CrossTableAggregate,
)
from .numbers import (
    parse_euro_number,
    parse_locale_number,
    format_locale_number,
    parse_with_style,
)
from .text import fold_text, quote_ident
from .schema import SchemaIntrospector, is_attachment_table
from .search import SearchPredicate, MATCH_ALL, build_search_predicate
from .styles import classify_samples, detect_numeric_style, numeric_key_expr
from .sql_compiler import CompiledSql, build_order_clause, compile_count, compile_select
from .pagination import page_window
from .executor import TableQueryExecutor
from .histogram import compute_histogram
from .roles import RoleConfig, load_roles, pick_first_column
from .aggregation import (
    TableAggregate,
    collect_table_aggregate,
    merge_aggregates,
    aggregate_all_tables,
    aggregate_table,
)

__all__ = [
    "TablescopeError",
    "MetadataError",
    "TableNotFoundError",
    "QueryError",
    "CellValue",
    "Column",
    "NumericStyle",
    "SortSpec",
    "PageWindow",
    "TablePage",
    "HistogramEntry",
    "HistogramResult",
    "StackSeries",
    "RankedMetric",
    "MonthlyMetric",
    "TopRecords",
    "AttachmentCoverage",
    "CrossTableAggregate",
    "parse_euro_number",
    "parse_locale_number",
    "format_locale_number",
    "parse_with_style",
    "fold_text",
    "quote_ident",
    "SchemaIntrospector",
    "is_attachment_table",
    "SearchPredicate",
    "MATCH_ALL",
    "build_search_predicate",
    "classify_samples",
    "detect_numeric_style",
    "numeric_key_expr",
    "CompiledSql",
    "build_order_clause",
    "compile_count",
    "compile_select",
    "page_window",
    "TableQueryExecutor",
    "compute_histogram",
    "RoleConfig",
    "load_roles",
    "pick_first_column",
    "TableAggregate",
    "collect_table_aggregate",
    "merge_aggregates",
    "aggregate_all_tables",
    "aggregate_table",
]
