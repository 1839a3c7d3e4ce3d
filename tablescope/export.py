"""
CSV and XLSX encoders for a filtered, sorted table view.

Text cells written in the euro convention ("1.234,50") are exported as numbers:
CSV gets a two-decimal, decimal-point rendering and XLSX gets numeric cells.
Native numbers pass through; other text is written unchanged.
"""
from __future__ import annotations

import io
import re
from typing import Sequence

import pandas as pd

from .engine.models import CellValue
from .engine.numbers import parse_euro_number

_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9_.-]")


def safe_filename(name: str) -> str:
    """Reduce ``name`` to ``[A-Za-z0-9_.-]``; spaces become underscores."""
    cleaned = _UNSAFE_FILENAME_RE.sub("", name.strip().replace(" ", "_"))
    return cleaned or "export"


def export_filename(table: str, extension: str) -> str:
    return f"_{safe_filename(table)}_export.{extension}"


def _cell_text(value: CellValue) -> str:
    return "" if value is None else str(value)


def _to_frame(
    columns: Sequence[str],
    rows: Sequence[Sequence[CellValue]],
    as_text: bool,
) -> pd.DataFrame:
    records = []
    for row in rows:
        out: list[object] = []
        for value in row:
            if isinstance(value, (int, float)):
                out.append(str(value) if as_text else value)
                continue
            text = _cell_text(value)
            number = parse_euro_number(text)
            if number is None:
                out.append(text)
            elif as_text:
                out.append(f"{number:.2f}")
            else:
                out.append(number)
        records.append(out)
    # object dtype keeps pandas from re-inferring numeric columns
    return pd.DataFrame.from_records(records, columns=list(columns)).astype(object)


def rows_to_csv(columns: Sequence[str], rows: Sequence[Sequence[CellValue]]) -> bytes:
    frame = _to_frame(columns, rows, as_text=True)
    return frame.to_csv(index=False).encode("utf-8")


def rows_to_xlsx(
    columns: Sequence[str],
    rows: Sequence[Sequence[CellValue]],
    sheet_name: str = "Sheet1",
) -> bytes:
    frame = _to_frame(columns, rows, as_text=False)
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=sheet_name, index=False)
    return buffer.getvalue()
