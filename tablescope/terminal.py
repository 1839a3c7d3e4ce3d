"""
Interactive terminal browser: table list, search, sort, paging, exports and
an ASCII histogram of one column.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable

from .engine import HistogramResult, TablescopeError
from .export import safe_filename
from .services import ExplorerService

logger = logging.getLogger(__name__)

BAR_WIDTH = 40
LABEL_WIDTH = 18
CELL_WIDTH = 30
TERMINAL_CHART_LIMIT = 20

HELP = (
    "[t N|name] open  [/text] search  [o col] order  [d] asc/desc  [n/p] page  "
    "[c] chart column  [e] CSV  [x] XLSX  [l] tables  [q] quit"
)


def _clip(text: str, width: int) -> str:
    if len(text) > width:
        return text[: width - 3] + "…"
    return text


def render_histogram(chart: HistogramResult, bar_width: int = BAR_WIDTH) -> str:
    if not chart.available or not chart.entries:
        return "(no data)"
    peak = max(chart.counts) or 1
    lines = []
    for entry in chart.entries:
        bar = "█" * int(entry.count / peak * bar_width)
        label = _clip(entry.label or "(NULL)", LABEL_WIDTH)
        lines.append(f"{label:<{LABEL_WIDTH}} | {bar:<{bar_width}} {entry.count}")
    return "\n".join(lines)


def render_rows(columns: list[str], rows: list[dict], max_lines: int = 10) -> str:
    if not columns:
        return "(no columns)"
    header = " | ".join(columns)
    lines = [header, "-" * len(header)]
    for row in rows[:max_lines]:
        cells = ["" if row.get(c) is None else str(row.get(c)) for c in columns]
        lines.append(" | ".join(_clip(v, CELL_WIDTH) for v in cells))
    return "\n".join(lines)


class TerminalBrowser:
    """Line-oriented browser state machine; one command per input line."""

    def __init__(
        self,
        service: ExplorerService,
        output: Callable[[str], None] = print,
        export_dir: Path | str = ".",
    ) -> None:
        self._service = service
        self._out = output
        self._export_dir = Path(export_dir)
        self.tables: list[str] = []
        self.table: str | None = None
        self.columns: list[str] = []
        self.query = ""
        self.order: str | None = None
        self.descending = False
        self.page = 1
        self.chart_by: str | None = None
        self.status = ""

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def load_tables(self) -> None:
        self.tables = self._service.list_tables().tables

    def open_table(self, ref: str) -> None:
        name = ref
        if ref.isdigit() and 1 <= int(ref) <= len(self.tables):
            name = self.tables[int(ref) - 1]
        columns = self._service.columns(name)
        self.table = name
        self.columns = columns
        self.page = 1
        self.order = None
        self.chart_by = columns[0] if columns else None

    def cycle_chart(self) -> None:
        if not self.columns:
            return
        idx = self.columns.index(self.chart_by) + 1 if self.chart_by in self.columns else 0
        self.chart_by = self.columns[idx % len(self.columns)]

    def export(self, fmt: str) -> Path:
        exported = self._service.export(self.table, fmt, self.query, self.order, self.descending)
        path = self._export_dir / f"{safe_filename(self.table)}_export_{int(time.time())}.{fmt}"
        path.write_bytes(exported.content)
        return path

    def handle(self, line: str) -> bool:
        """Apply one command; returns False when the browser should exit."""
        line = line.strip()
        cmd, _, arg = line.partition(" ")
        arg = arg.strip()
        try:
            if line.startswith("/"):
                self.query = line[1:].strip()
                self.page = 1
            elif cmd in {"q", "quit", "exit"}:
                return False
            elif cmd == "l":
                self.load_tables()
                self.table = None
            elif cmd == "t" and arg:
                self.open_table(arg)
            elif cmd == "o" and arg:
                self.order = arg
            elif cmd == "d":
                self.descending = not self.descending
            elif cmd == "n":
                self.page += 1
            elif cmd == "p":
                self.page = max(1, self.page - 1)
            elif cmd == "c":
                self.cycle_chart()
            elif cmd in {"e", "x"} and self.table:
                path = self.export("csv" if cmd == "e" else "xlsx")
                self.status = f"Exported {path}"
            elif line:
                self.status = HELP
        except TablescopeError as exc:
            logger.warning("Terminal command %r failed: %s", line, exc)
            self.status = str(exc)
        return True

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self) -> str:
        if self.table is None:
            listing = "\n".join(f"{i:>3}. {t}" for i, t in enumerate(self.tables, 1))
            return f"Tables:\n{listing or '(none)'}\n\n{HELP}\n{self.status}"

        try:
            view = self._service.table_view(
                self.table, self.query, self.order, self.descending, self.page,
                self.chart_by, chart_limit=TERMINAL_CHART_LIMIT,
            )
        except TablescopeError as exc:
            self.status = str(exc)
            return f"Table: {self.table}\n{self.status}\n\n{HELP}"

        page = view.page
        self.columns = page.columns
        self.page = page.page

        direction = "DESC" if self.descending else "ASC"
        parts = [
            f"Table: {self.table}",
            f"Search [/]: {self.query}",
            f"Order [o]: {self.order or '-'} {direction}  · Page [n/p]: {page.page}/{page.pages}  · {page.total} rows",
            render_rows(page.columns, page.rows),
            "",
            f"Histogram [c] by {self.chart_by}",
            render_histogram(view.chart),
            "",
            HELP,
            self.status,
        ]
        return "\n".join(parts)

    def run(self, read_line: Callable[[str], str] = input) -> None:
        self.load_tables()
        self._out(self.render())
        while True:
            try:
                line = read_line("\n> ")
            except EOFError:
                break
            if not self.handle(line):
                break
            self._out(self.render())
