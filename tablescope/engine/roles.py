"""
Semantic column roles for the aggregation views.

Tables are schema-agnostic, so each role (type, amount, awardee, ...) is a
list of candidate column names loaded from ``roles.yaml``. A deployment may
point ``ROLES_CONFIG`` at its own file.
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence

import yaml
from pydantic import BaseModel, Field, field_validator

from .schema import ATTACHMENT_SUFFIXES


# ============================================================================
# Models
# ============================================================================

class RoleLabels(BaseModel):
    """Display labels for placeholder buckets."""
    missing_type: str = "(Sen tipo)"
    missing_awardee: str = "(sen nome)"
    with_attachment: str = "Con PDF"
    without_attachment: str = "Sen PDF"


class RoleConfig(BaseModel):
    """Candidate column names per role, in priority order."""
    type: list[str] = Field(default_factory=list)
    amount: list[str] = Field(default_factory=list)
    awardee: list[str] = Field(default_factory=list)
    record_id: list[str] = Field(default_factory=list)
    description: list[str] = Field(default_factory=list)
    date_columns: dict[str, str] = Field(default_factory=dict)
    attachment_suffixes: list[str] = Field(default_factory=lambda: list(ATTACHMENT_SUFFIXES))
    labels: RoleLabels = Field(default_factory=RoleLabels)

    @field_validator("date_columns")
    @classmethod
    def lower_suffixes(cls, v: dict[str, str]) -> dict[str, str]:
        return {suffix.lower(): column for suffix, column in v.items()}

    @field_validator("attachment_suffixes")
    @classmethod
    def require_suffixes(cls, v: list[str]) -> list[str]:
        if not v or any(not s for s in v):
            raise ValueError("attachment_suffixes must be a non-empty list of non-empty strings")
        return v

    def date_column_for(self, table: str) -> str | None:
        """Date column name by table-name suffix (case-insensitive), if any."""
        low = table.lower()
        for suffix, column in self.date_columns.items():
            if low.endswith(suffix):
                return column
        return None


def pick_first_column(columns: Iterable[str], candidates: Sequence[str]) -> str | None:
    """First candidate present in ``columns``, returned with its stored spelling."""
    by_lower: dict[str, str] = {}
    for name in columns:
        by_lower.setdefault(name.lower(), name)
    for candidate in candidates:
        found = by_lower.get(candidate.lower())
        if found is not None:
            return found
    return None


# ============================================================================
# Loading
# ============================================================================

DEFAULT_ROLES_PATH = Path(__file__).parent / "roles.yaml"

_ROLES_CACHE: dict[Path, RoleConfig] = {}


def load_roles(path: str | Path | None = None, force_reload: bool = False) -> RoleConfig:
    """Load and validate a role file; the bundled ``roles.yaml`` by default."""
    config_path = Path(path) if path else DEFAULT_ROLES_PATH
    if not force_reload and config_path in _ROLES_CACHE:
        return _ROLES_CACHE[config_path]

    if not config_path.exists():
        raise FileNotFoundError(f"Role configuration not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        raw_config = yaml.safe_load(f) or {}

    roles = RoleConfig(**raw_config)
    _ROLES_CACHE[config_path] = roles
    return roles
