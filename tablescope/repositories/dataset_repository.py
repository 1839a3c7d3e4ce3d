"""
Read-only access to the explored SQLite dataset.

Every value leaving this module is one of ``None``, ``str``, ``int`` or
``float``; BLOBs are decoded to text here so the engine never sees bytes.
"""
from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any, Iterator, Sequence

from ..engine.errors import MetadataError, QueryError
from ..engine.models import CellValue
from ..engine.numbers import parse_with_style
from ..engine.text import fold_text

logger = logging.getLogger(__name__)


def _to_cell(value: Any) -> CellValue:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def _unaccent_lower(value: Any) -> str:
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    return fold_text(value)


def _locale_number(value: Any, style: Any) -> float | None:
    try:
        return parse_with_style(value, str(style))
    except ValueError:
        return None


def register_functions(conn: sqlite3.Connection) -> None:
    """Install the SQL helpers the query builders rely on."""
    conn.create_function("unaccent_lower", 1, _unaccent_lower, deterministic=True)
    conn.create_function("locale_number", 2, _locale_number, deterministic=True)


class DatasetRepository:
    """Row-oriented query interface over a read-only SQLite connection."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        register_functions(conn)
        conn.execute("PRAGMA query_only = ON;")

    @classmethod
    def open(cls, db_path: str | Path) -> "DatasetRepository":
        path = Path(db_path).expanduser().resolve()
        if not path.is_file():
            raise MetadataError(f"Dataset not found: {path}")
        try:
            conn = sqlite3.connect(
                f"{path.as_uri()}?mode=ro", uri=True, check_same_thread=False
            )
        except sqlite3.Error as exc:
            raise MetadataError(f"Cannot open dataset {path}: {exc}") from exc
        logger.info("Opened dataset %s (read-only)", path)
        return cls(conn)

    def close(self) -> None:
        self._conn.close()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def fetch_all(self, sql: str, parameters: Sequence[object] = ()) -> list[tuple[CellValue, ...]]:
        try:
            cursor = self._conn.execute(sql, tuple(parameters))
            return [tuple(_to_cell(v) for v in row) for row in cursor.fetchall()]
        except sqlite3.Error as exc:
            raise QueryError(str(exc)) from exc

    def fetch_one(self, sql: str, parameters: Sequence[object] = ()) -> tuple[CellValue, ...] | None:
        try:
            row = self._conn.execute(sql, tuple(parameters)).fetchone()
        except sqlite3.Error as exc:
            raise QueryError(str(exc)) from exc
        return None if row is None else tuple(_to_cell(v) for v in row)

    def fetch_scalar(self, sql: str, parameters: Sequence[object] = ()) -> CellValue:
        row = self.fetch_one(sql, parameters)
        return None if row is None else row[0]

    def iterate(self, sql: str, parameters: Sequence[object] = ()) -> Iterator[tuple[CellValue, ...]]:
        """Stream rows through a cursor instead of materialising them."""
        try:
            cursor = self._conn.execute(sql, tuple(parameters))
            for row in cursor:
                yield tuple(_to_cell(v) for v in row)
        except sqlite3.Error as exc:
            raise QueryError(str(exc)) from exc

    def fetch_mappings(
        self, sql: str, parameters: Sequence[object], names: Sequence[str]
    ) -> list[dict[str, CellValue]]:
        """Rows as ordered ``name -> value`` dicts, keyed by ``names`` positionally."""
        return [dict(zip(names, row)) for row in self.fetch_all(sql, parameters)]
