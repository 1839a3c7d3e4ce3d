"""tablescope: browse, search and summarise a read-only SQLite dataset."""

__version__ = "0.1.0"
