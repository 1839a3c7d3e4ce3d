"""Services layer for tablescope."""
from .explorer_service import ExplorerService, ExportFile, TableListing, TableView

__all__ = ["ExplorerService", "ExportFile", "TableListing", "TableView"]
