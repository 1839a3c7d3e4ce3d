"""Domain layer for tablescope."""
from .types import ErrorCode, EXPORT_CSV_MEDIA_TYPE, EXPORT_XLSX_MEDIA_TYPE

__all__ = ["ErrorCode", "EXPORT_CSV_MEDIA_TYPE", "EXPORT_XLSX_MEDIA_TYPE"]
