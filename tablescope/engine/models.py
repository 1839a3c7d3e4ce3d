from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, Field


CellValue = Union[str, int, float, None]

SortDirection = Literal["ASC", "DESC"]

MAX_STYLE_SAMPLES = 50
DEFAULT_PAGE_SIZE = 50
DEFAULT_HISTOGRAM_LIMIT = 50


class NumericStyle(str, Enum):
    """Number-writing convention detected for a column."""
    NONE = "none"
    EURO = "euro"  # "12.345,67"
    DOT = "dot"  # "12345.67"

    @property
    def is_numeric(self) -> bool:
        return self is not NumericStyle.NONE


@dataclass(frozen=True)
class Column:
    """Column descriptor as reported by the store. ``declared_type`` is advisory."""
    name: str
    declared_type: str = ""


@dataclass(frozen=True)
class SortSpec:
    column: str | None = None
    descending: bool = False

    @property
    def direction(self) -> SortDirection:
        return "DESC" if self.descending else "ASC"


@dataclass(frozen=True)
class PageWindow:
    page: int
    pages: int
    page_size: int
    offset: int
    limit: int
    total: int

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


# ------------------------------------------------------------------
# Results
# ------------------------------------------------------------------

class TablePage(BaseModel):
    """One page of rows from a single table."""
    table: str
    columns: list[str]
    rows: list[dict[str, CellValue]] = Field(default_factory=list)
    total: int
    page: int
    pages: int
    page_size: int


class HistogramEntry(BaseModel):
    label: str
    count: int
    total: float | None = None


class HistogramResult(BaseModel):
    """Distinct-value counts for one column.

    ``available`` is False when the histogram could not be computed; callers
    must treat that as "no data", not as a histogram of zeros.
    """
    column: str | None = None
    style: NumericStyle = NumericStyle.NONE
    available: bool = True
    entries: list[HistogramEntry] = Field(default_factory=list)

    @classmethod
    def unavailable(cls, column: str | None) -> "HistogramResult":
        return cls(column=column, available=False)

    @property
    def labels(self) -> list[str]:
        return [e.label for e in self.entries]

    @property
    def counts(self) -> list[int]:
        return [e.count for e in self.entries]

    @property
    def totals(self) -> list[float | None]:
        return [e.total for e in self.entries]


class StackSeries(BaseModel):
    """Per-table values aligned to the owning metric's labels."""
    table: str
    values: list[Union[int, float]]


class RankedMetric(BaseModel):
    labels: list[str] = Field(default_factory=list)
    values: list[Union[int, float]] = Field(default_factory=list)
    series: list[StackSeries] = Field(default_factory=list)


class MonthlyMetric(BaseModel):
    labels: list[str] = Field(default_factory=list)
    counts: list[int] = Field(default_factory=list)
    amounts: list[float] = Field(default_factory=list)
    count_series: list[StackSeries] = Field(default_factory=list)
    amount_series: list[StackSeries] = Field(default_factory=list)


class TopRecords(BaseModel):
    labels: list[str] = Field(default_factory=list)
    amounts: list[float] = Field(default_factory=list)
    record_ids: list[str] = Field(default_factory=list)
    descriptions: list[str] = Field(default_factory=list)
    tables: list[str] = Field(default_factory=list)


class AttachmentCoverage(BaseModel):
    """Matching rows with and without an attachment record, with display labels."""
    with_attachment: int = 0
    without_attachment: int = 0
    with_label: str = ""
    without_label: str = ""


class CrossTableAggregate(BaseModel):
    """Merged aggregates across one or more base tables."""
    query: str = ""
    tables: list[str] = Field(default_factory=list)
    type_counts: RankedMetric = Field(default_factory=RankedMetric)
    type_amounts: RankedMetric = Field(default_factory=RankedMetric)
    awardees: RankedMetric = Field(default_factory=RankedMetric)
    monthly: MonthlyMetric = Field(default_factory=MonthlyMetric)
    top_records: TopRecords = Field(default_factory=TopRecords)
    attachments: AttachmentCoverage = Field(default_factory=AttachmentCoverage)
