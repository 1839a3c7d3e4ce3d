"""Repository layer for tablescope."""
from .dataset_repository import DatasetRepository, register_functions

__all__ = ["DatasetRepository", "register_functions"]
