"""Discover tables, columns and attachment companions at runtime."""
from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from .errors import MetadataError, QueryError, TableNotFoundError
from .models import Column
from .text import quote_ident

if TYPE_CHECKING:
    from ..repositories.dataset_repository import DatasetRepository

ATTACHMENT_SUFFIXES: tuple[str, ...] = ("_files", "_file")


def is_attachment_table(name: str, suffixes: Sequence[str] = ATTACHMENT_SUFFIXES) -> bool:
    return any(name.endswith(suffix) for suffix in suffixes)


class SchemaIntrospector:
    """Read table and column metadata from ``sqlite_master``.

    Column lists are cached for the lifetime of the instance only; create one
    per request so a swapped dataset is picked up on the next request.
    """

    def __init__(
        self,
        repo: DatasetRepository,
        attachment_suffixes: Sequence[str] = ATTACHMENT_SUFFIXES,
    ) -> None:
        self._repo = repo
        self._suffixes = tuple(attachment_suffixes)
        self._columns: dict[str, list[Column]] = {}

    @property
    def repo(self) -> DatasetRepository:
        return self._repo

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def list_tables(self) -> list[str]:
        try:
            rows = self._repo.fetch_all(
                "SELECT name FROM sqlite_master "
                "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' "
                "ORDER BY name;"
            )
        except QueryError as exc:
            raise MetadataError(f"Cannot list tables: {exc}") from exc
        return [str(r[0]) for r in rows]

    def list_base_tables(self) -> list[str]:
        """Tables holding primary records (attachment companions excluded)."""
        return [t for t in self.list_tables() if not is_attachment_table(t, self._suffixes)]

    def table_exists(self, name: str) -> bool:
        try:
            n = self._repo.fetch_scalar(
                "SELECT COUNT(*) FROM sqlite_master WHERE type = 'table' AND name = ?;",
                (name,),
            )
        except QueryError as exc:
            raise MetadataError(f"Cannot check table {name!r}: {exc}") from exc
        return bool(n)

    def find_attachment_table(self, base: str) -> str | None:
        """First existing ``base + suffix`` in suffix priority order."""
        for suffix in self._suffixes:
            candidate = base + suffix
            if self.table_exists(candidate):
                return candidate
        return None

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    def columns(self, table: str) -> list[Column]:
        cached = self._columns.get(table)
        if cached is not None:
            return cached
        try:
            rows = self._repo.fetch_all(f"PRAGMA table_info({quote_ident(table)});")
        except QueryError as exc:
            raise MetadataError(f"Cannot read columns of {table!r}: {exc}") from exc
        if not rows:
            raise TableNotFoundError(f"Unknown table: {table}")
        # cid, name, type, notnull, dflt_value, pk
        cols = [Column(name=str(r[1]), declared_type=str(r[2] or "")) for r in rows]
        self._columns[table] = cols
        return cols

    def column_names(self, table: str) -> list[str]:
        return [c.name for c in self.columns(table)]
