from __future__ import annotations


class TablescopeError(Exception):
    """Base error class for the query engine."""


class MetadataError(TablescopeError):
    """Raised when table or column enumeration fails."""


class TableNotFoundError(MetadataError):
    """Raised when a requested table does not exist in the dataset."""


class QueryError(TablescopeError):
    """Raised when a built filter/sort/aggregate statement fails to execute."""
