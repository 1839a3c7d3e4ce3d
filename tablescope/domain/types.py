"""
Core type definitions and constants.
"""
from __future__ import annotations

EXPORT_CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
EXPORT_XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class ErrorCode:
    TABLE_NOT_FOUND = "TABLE_NOT_FOUND"
    QUERY_ERROR = "QUERY_ERROR"
    METADATA_ERROR = "METADATA_ERROR"
    DATASET_UNAVAILABLE = "DATASET_UNAVAILABLE"
