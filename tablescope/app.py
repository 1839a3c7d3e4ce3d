"""
FastAPI application for tablescope.

Routes delegate business logic to the services layer.
"""
from __future__ import annotations

import asyncio
import datetime as dt
import logging
from typing import Callable, Literal, TypeVar

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel, Field

from . import __version__
from .config import get_settings
from .domain import ErrorCode
from .engine import (
    CellValue,
    CrossTableAggregate,
    MetadataError,
    NumericStyle,
    QueryError,
    TableNotFoundError,
    load_roles,
)
from .repositories import DatasetRepository
from .services import ExplorerService

logger = logging.getLogger(__name__)

T = TypeVar("T")

app = FastAPI(title="tablescope", version=__version__, docs_url="/docs", redoc_url="/redoc", openapi_url="/openapi.json")


# ============================================================================
# Pydantic Models
# ============================================================================

class HealthResponse(BaseModel):
    status: Literal["ok", "unavailable"]
    db_path: str
    tables: int | None = None
    message: str | None = None


class TablesResponse(BaseModel):
    tables: list[str]
    base_tables: list[str]


class TableViewResponse(BaseModel):
    table: str
    columns: list[str]
    rows: list[dict[str, CellValue]] = Field(default_factory=list)
    total: int
    page: int
    pages: int
    per_page: int
    order: str | None = None
    desc: bool = False
    chart_by: str | None = None
    chart_available: bool = False
    chart_style: NumericStyle = NumericStyle.NONE
    chart_labels: list[str] = Field(default_factory=list)
    chart_counts: list[int] = Field(default_factory=list)
    chart_totals: list[float | None] = Field(default_factory=list)


# ============================================================================
# Dataset lifecycle
# ============================================================================

_repo: DatasetRepository | None = None


def _explorer() -> ExplorerService:
    if _repo is None:
        raise HTTPException(503, {"code": ErrorCode.DATASET_UNAVAILABLE, "message": "Dataset is not open"})
    s = get_settings()
    return ExplorerService(_repo, per_page=s.per_page, chart_limit=s.chart_limit, roles=load_roles(s.roles_config))


async def _run(fn: Callable[..., T], *args, **kwargs) -> T:
    """Run a blocking engine call off the event loop, mapping engine errors to HTTP errors."""
    try:
        return await asyncio.to_thread(fn, *args, **kwargs)
    except TableNotFoundError as e:
        raise HTTPException(404, {"code": ErrorCode.TABLE_NOT_FOUND, "message": str(e)})
    except QueryError as e:
        raise HTTPException(400, {"code": ErrorCode.QUERY_ERROR, "message": str(e)})
    except MetadataError as e:
        logger.error("Metadata error: %s", e)
        raise HTTPException(500, {"code": ErrorCode.METADATA_ERROR, "message": str(e)})


def _is_desc(direction: str | None) -> bool:
    return (direction or "").strip().upper() == "DESC"


@app.on_event("startup")
async def startup() -> None:
    global _repo
    s = get_settings()
    try:
        _repo = DatasetRepository.open(s.db_path)
    except MetadataError as exc:
        logger.error("Cannot open dataset %s: %s", s.db_path, exc)
        _repo = None


@app.on_event("shutdown")
async def shutdown() -> None:
    global _repo
    if _repo is not None:
        _repo.close()
        _repo = None


# ============================================================================
# Routes
# ============================================================================

@app.get("/")
async def root() -> dict:
    s = get_settings()
    return {"service": "tablescope", "status": "ok", "version": __version__, "timestamp": dt.datetime.utcnow().isoformat(), "db_path": s.db_path}


@app.get("/api/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    s = get_settings()
    if _repo is None:
        return HealthResponse(status="unavailable", db_path=s.db_path, message="Dataset is not open")
    listing = await _run(_explorer().list_tables)
    return HealthResponse(status="ok", db_path=s.db_path, tables=len(listing.tables))


@app.get("/api/tables", response_model=TablesResponse)
async def list_tables() -> TablesResponse:
    listing = await _run(_explorer().list_tables)
    return TablesResponse(tables=listing.tables, base_tables=listing.base_tables)


@app.get("/api/table/{name}", response_model=TableViewResponse)
async def table_view(
    name: str,
    q: str = Query(""),
    order: str = Query(""),
    dir: str = Query("ASC"),
    page: int = Query(1),
    chartBy: str = Query(""),
) -> TableViewResponse:
    view = await _run(_explorer().table_view, name, q, order or None, _is_desc(dir), page, chartBy or None)
    p = view.page
    return TableViewResponse(
        table=p.table, columns=p.columns, rows=p.rows, total=p.total, page=p.page, pages=p.pages,
        per_page=p.page_size, order=view.sort.column, desc=view.sort.descending, chart_by=view.chart.column,
        chart_available=view.chart.available, chart_style=view.chart.style,
        chart_labels=view.chart.labels, chart_counts=view.chart.counts, chart_totals=view.chart.totals,
    )


@app.get("/api/summary", response_model=CrossTableAggregate)
async def summary(table: str = Query(..., min_length=1), q: str = Query("")) -> CrossTableAggregate:
    return await _run(_explorer().summary, table, q)


@app.get("/api/summary_all", response_model=CrossTableAggregate)
async def summary_all(q: str = Query("")) -> CrossTableAggregate:
    return await _run(_explorer().summary_all, q)


async def _export(fmt: Literal["csv", "xlsx"], table: str, q: str, order: str, dir: str) -> Response:
    export = await _run(_explorer().export, table, fmt, q, order or None, _is_desc(dir))
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f"attachment; filename={export.filename}"},
    )


@app.get("/export/csv")
async def export_csv(table: str = Query(..., min_length=1), q: str = Query(""), order: str = Query(""), dir: str = Query("ASC")) -> Response:
    return await _export("csv", table, q, order, dir)


@app.get("/export/xlsx")
async def export_xlsx(table: str = Query(..., min_length=1), q: str = Query(""), order: str = Query(""), dir: str = Query("ASC")) -> Response:
    return await _export("xlsx", table, q, order, dir)
