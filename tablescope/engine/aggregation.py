"""
Summary aggregates over one or many base tables.

Each table yields an immutable ``TableAggregate`` computed on its own;
``merge_aggregates`` folds a list of them into global rankings plus per-table
series aligned to the same label order (for stacked charts).
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Mapping, Sequence, TypeVar

from .errors import MetadataError, QueryError
from .models import (
    AttachmentCoverage,
    CrossTableAggregate,
    MonthlyMetric,
    RankedMetric,
    StackSeries,
    TopRecords,
)
from .roles import RoleConfig, RoleLabels, load_roles, pick_first_column
from .schema import SchemaIntrospector
from .search import SearchPredicate, build_search_predicate
from .styles import detect_numeric_style, numeric_key_expr
from .text import fold_text, quote_ident, truncate_label

if TYPE_CHECKING:
    from ..repositories.dataset_repository import DatasetRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

AWARDEES_PER_TABLE = 100
TOP_AWARDEES = 10
TOP_RECORDS = 20


# ============================================================================
# Partial results
# ============================================================================

@dataclass(frozen=True)
class RecordAmount:
    label: str
    amount: float
    record_id: str = ""
    description: str = ""
    table: str = ""


@dataclass(frozen=True)
class TableAggregate:
    """Per-table partial aggregate. ``None`` means the metric does not apply."""
    table: str
    type_counts: Mapping[str, int] | None = None
    type_amounts: Mapping[str, float] | None = None
    awardee_counts: Mapping[str, int] | None = None  # folded name -> count
    awardee_names: Mapping[str, str] = field(default_factory=dict)  # folded name -> display
    monthly_counts: Mapping[str, int] | None = None
    monthly_amounts: Mapping[str, float] | None = None
    top_records: tuple[RecordAmount, ...] = ()
    with_attachment: int = 0
    total_rows: int = 0


# ============================================================================
# Per-table collection
# ============================================================================

class _TableCollector:
    """Runs the metric queries for one table under one search predicate."""

    def __init__(
        self,
        repo: DatasetRepository,
        introspector: SchemaIntrospector,
        table: str,
        columns: list[str],
        predicate: SearchPredicate,
        roles: RoleConfig,
        strict: bool,
    ) -> None:
        self.repo = repo
        self.introspector = introspector
        self.table = table
        self.tname = quote_ident(table)
        self.predicate = predicate
        self.roles = roles
        self.strict = strict

        self.type_col = pick_first_column(columns, roles.type)
        self.amount_col = pick_first_column(columns, roles.amount)
        self.awardee_col = pick_first_column(columns, roles.awardee)
        self.rid_col = pick_first_column(columns, roles.record_id)
        self.desc_col = pick_first_column(columns, roles.description)
        date_col = roles.date_column_for(table)
        self.date_col = pick_first_column(columns, [date_col]) if date_col else None

        self.amount_expr: str | None = None
        if self.amount_col:
            style = detect_numeric_style(repo, table, self.amount_col, predicate)
            if style.is_numeric:
                self.amount_expr = numeric_key_expr(self.amount_col, style)
            else:
                logger.info("Amount column %s.%s is not numeric; amount metrics disabled",
                            table, self.amount_col)

    def guarded(self, metric: str, fn: Callable[[], T]) -> T | None:
        try:
            return fn()
        except QueryError as exc:
            if self.strict:
                raise
            logger.warning("Skipping %s for table %s: %s", metric, self.table, exc)
            return None

    def _type_key(self) -> tuple[str, list[object]]:
        """Type expression and parameters; the missing-type label follows the search pattern."""
        params = [*self.predicate.parameters, self.roles.labels.missing_type]
        col = quote_ident(self.type_col)
        return f"COALESCE(NULLIF(TRIM(CAST({col} AS TEXT)), ''), ?{len(params)})", params

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    def type_counts(self) -> dict[str, int]:
        key, params = self._type_key()
        sql = (
            f"SELECT {key}, COUNT(*) FROM {self.tname} "
            f"{self.predicate.where()} GROUP BY 1;"
        )
        return {str(k): int(c) for k, c in self.repo.fetch_all(sql, params)}

    def type_amounts(self) -> dict[str, float]:
        key, params = self._type_key()
        sql = (
            f"SELECT {key}, SUM({self.amount_expr}) FROM {self.tname} "
            f"{self.predicate.where()} GROUP BY 1;"
        )
        return {str(k): float(total or 0.0) for k, total in self.repo.fetch_all(sql, params)}

    def awardees(self) -> tuple[dict[str, int], dict[str, str]]:
        sql = f"SELECT {quote_ident(self.awardee_col)} FROM {self.tname} {self.predicate.where()};"
        counts: Counter[str] = Counter()
        names: dict[str, str] = {}
        for (value,) in self.repo.iterate(sql, self.predicate.parameters):
            raw = "" if value is None else str(value).strip()
            key = fold_text(raw)
            counts[key] += 1
            if key not in names:
                names[key] = raw or self.roles.labels.missing_awardee
        top = sorted(counts.items(), key=lambda kv: (-kv[1], names[kv[0]]))[:AWARDEES_PER_TABLE]
        return dict(top), {k: names[k] for k, _ in top}

    def monthly(self) -> tuple[dict[str, int], dict[str, float] | None]:
        col = quote_ident(self.date_col)
        amount_sql = f"SUM({self.amount_expr})" if self.amount_expr else "0"
        sql = (
            f"SELECT SUBSTR({col}, -4, 4) AS y, SUBSTR({col}, -7, 2) AS m, "
            f"COUNT(*) AS c, {amount_sql} AS total FROM {self.tname} "
            f"{self.predicate.where()} GROUP BY 1, 2;"
        )
        counts: dict[str, int] = {}
        amounts: dict[str, float] = {}
        for year, month, count, total in self.repo.fetch_all(sql, self.predicate.parameters):
            year, month = str(year or ""), str(month or "")
            if not (len(year) == 4 and year.isdigit() and len(month) == 2 and month.isdigit()):
                continue
            key = f"{year}-{month}"
            counts[key] = counts.get(key, 0) + int(count)
            amounts[key] = amounts.get(key, 0.0) + float(total or 0.0)
        return counts, (amounts if self.amount_expr else None)

    def top_records(self) -> tuple[RecordAmount, ...]:
        def col_or_empty(name: str | None) -> str:
            return quote_ident(name) if name else "''"

        sql = (
            f"SELECT {col_or_empty(self.rid_col)}, {col_or_empty(self.desc_col)}, "
            f"{col_or_empty(self.awardee_col)}, {self.amount_expr} AS amount FROM {self.tname} "
            f"{self.predicate.where(f'{self.amount_expr} IS NOT NULL')} "
            f"ORDER BY 4 DESC LIMIT {TOP_RECORDS};"
        )
        records = []
        for rid, desc, awardee, amount in self.repo.fetch_all(sql, self.predicate.parameters):
            rid = "" if rid is None else str(rid).strip()
            desc = "" if desc is None else str(desc).strip()
            awardee = "" if awardee is None else str(awardee).strip()
            label = desc or rid or awardee or self.table
            records.append(RecordAmount(
                label=truncate_label(label),
                amount=float(amount),
                record_id=rid,
                description=desc,
                table=self.table,
            ))
        return tuple(records)

    def total_rows(self) -> int:
        sql = f"SELECT COUNT(*) FROM {self.tname} {self.predicate.where()};"
        return int(self.repo.fetch_scalar(sql, self.predicate.parameters) or 0)

    def with_attachment(self) -> int:
        if not self.rid_col:
            return 0
        files = self.introspector.find_attachment_table(self.table)
        if files is None:
            return 0
        files_rid = pick_first_column(self.introspector.column_names(files), self.roles.record_id)
        if files_rid is None:
            return 0
        rid = quote_ident(self.rid_col)
        exists = f"{rid} IN (SELECT {quote_ident(files_rid)} FROM {quote_ident(files)})"
        sql = f"SELECT COUNT(DISTINCT {rid}) FROM {self.tname} {self.predicate.where(exists)};"
        return int(self.repo.fetch_scalar(sql, self.predicate.parameters) or 0)


def collect_table_aggregate(
    repo: DatasetRepository,
    introspector: SchemaIntrospector,
    table: str,
    query: str | None,
    roles: RoleConfig,
    strict: bool = False,
) -> TableAggregate:
    """Compute every applicable metric for one table.

    In lenient mode a failing metric query is logged and that metric is left
    out; in strict mode the ``QueryError`` propagates.
    """
    columns = introspector.column_names(table)
    predicate = build_search_predicate(columns, query)
    c = _TableCollector(repo, introspector, table, columns, predicate, roles, strict)

    type_counts = c.guarded("type counts", c.type_counts) if c.type_col else None
    type_amounts = None
    if c.type_col and c.amount_expr:
        type_amounts = c.guarded("type amounts", c.type_amounts)

    awardee_counts, awardee_names = None, {}
    if c.awardee_col:
        found = c.guarded("awardees", c.awardees)
        if found is not None:
            awardee_counts, awardee_names = found

    monthly_counts = monthly_amounts = None
    if c.date_col:
        found = c.guarded("monthly totals", c.monthly)
        if found is not None:
            monthly_counts, monthly_amounts = found

    top_records = ()
    if c.amount_expr:
        top_records = c.guarded("top records", c.top_records) or ()

    try:
        with_attachment = c.guarded("attachment coverage", c.with_attachment) or 0
    except MetadataError as exc:
        if strict:
            raise
        logger.warning("Skipping attachment coverage for table %s: %s", table, exc)
        with_attachment = 0
    total_rows = c.guarded("row count", c.total_rows) or 0

    return TableAggregate(
        table=table,
        type_counts=type_counts,
        type_amounts=type_amounts,
        awardee_counts=awardee_counts,
        awardee_names=awardee_names,
        monthly_counts=monthly_counts,
        monthly_amounts=monthly_amounts,
        top_records=top_records,
        with_attachment=with_attachment,
        total_rows=total_rows,
    )


# ============================================================================
# Merge
# ============================================================================

def _ranked(
    partials: Sequence[TableAggregate],
    values_of: Callable[[TableAggregate], Mapping[str, float] | None],
    limit: int | None = None,
    display: Mapping[str, str] | None = None,
) -> RankedMetric:
    totals: dict[str, float] = {}
    contributing = []
    for part in partials:
        values = values_of(part)
        if values is None:
            continue
        contributing.append((part.table, values))
        for key, value in values.items():
            totals[key] = totals.get(key, 0) + value

    def label(key: str) -> str:
        return display.get(key, key) if display else key

    ordered = sorted(totals.items(), key=lambda kv: (-kv[1], label(kv[0])))
    if limit is not None:
        ordered = ordered[:limit]
    keys = [k for k, _ in ordered]
    return RankedMetric(
        labels=[label(k) for k in keys],
        values=[v for _, v in ordered],
        series=[StackSeries(table=t, values=[vals.get(k, 0) for k in keys]) for t, vals in contributing],
    )


def _monthly(partials: Sequence[TableAggregate]) -> MonthlyMetric:
    counts: dict[str, int] = {}
    amounts: dict[str, float] = {}
    for part in partials:
        for key, count in (part.monthly_counts or {}).items():
            counts[key] = counts.get(key, 0) + count
            amounts.setdefault(key, 0.0)
        for key, amount in (part.monthly_amounts or {}).items():
            amounts[key] = amounts.get(key, 0.0) + amount
    labels = sorted(counts)
    return MonthlyMetric(
        labels=labels,
        counts=[counts[k] for k in labels],
        amounts=[amounts.get(k, 0.0) for k in labels],
        count_series=[
            StackSeries(table=p.table, values=[p.monthly_counts.get(k, 0) for k in labels])
            for p in partials if p.monthly_counts is not None
        ],
        amount_series=[
            StackSeries(table=p.table, values=[p.monthly_amounts.get(k, 0.0) for k in labels])
            for p in partials if p.monthly_amounts is not None
        ],
    )


def merge_aggregates(
    partials: Sequence[TableAggregate],
    awardee_limit: int = TOP_AWARDEES,
    record_limit: int = TOP_RECORDS,
    query: str = "",
    labels: RoleLabels | None = None,
) -> CrossTableAggregate:
    """Fold per-table partials into global rankings and aligned per-table series."""
    labels = labels or RoleLabels()
    names: dict[str, str] = {}
    for part in partials:
        for key, name in part.awardee_names.items():
            names.setdefault(key, name)

    records = sorted(
        (r for p in partials for r in p.top_records),
        key=lambda r: (-r.amount, r.label),
    )[:record_limit]

    with_attachment = sum(p.with_attachment for p in partials)
    total_rows = sum(p.total_rows for p in partials)

    return CrossTableAggregate(
        query=query,
        tables=[p.table for p in partials],
        type_counts=_ranked(partials, lambda p: p.type_counts),
        type_amounts=_ranked(partials, lambda p: p.type_amounts),
        awardees=_ranked(partials, lambda p: p.awardee_counts, limit=awardee_limit, display=names),
        monthly=_monthly(partials),
        top_records=TopRecords(
            labels=[r.label for r in records],
            amounts=[r.amount for r in records],
            record_ids=[r.record_id for r in records],
            descriptions=[r.description for r in records],
            tables=[r.table for r in records],
        ),
        attachments=AttachmentCoverage(
            with_attachment=with_attachment,
            without_attachment=max(0, total_rows - with_attachment),
            with_label=labels.with_attachment,
            without_label=labels.without_attachment,
        ),
    )


# ============================================================================
# Entry points
# ============================================================================

def aggregate_all_tables(
    repo: DatasetRepository,
    query: str | None = None,
    roles: RoleConfig | None = None,
) -> CrossTableAggregate:
    """Aggregate every base table; tables whose metadata cannot be read are skipped."""
    roles = roles or load_roles()
    introspector = SchemaIntrospector(repo, roles.attachment_suffixes)
    partials = []
    for table in introspector.list_base_tables():
        try:
            partials.append(collect_table_aggregate(repo, introspector, table, query, roles))
        except MetadataError as exc:
            logger.warning("Skipping table %s in cross-table summary: %s", table, exc)
    return merge_aggregates(partials, query=(query or "").strip(), labels=roles.labels)


def aggregate_table(
    repo: DatasetRepository,
    table: str,
    query: str | None = None,
    roles: RoleConfig | None = None,
) -> CrossTableAggregate:
    """Single-table summary; any metadata or query failure propagates."""
    roles = roles or load_roles()
    introspector = SchemaIntrospector(repo, roles.attachment_suffixes)
    partial = collect_table_aggregate(repo, introspector, table, query, roles, strict=True)
    return merge_aggregates([partial], query=(query or "").strip(), labels=roles.labels)
