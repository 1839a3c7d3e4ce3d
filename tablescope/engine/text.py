"""Text folding and SQL identifier quoting."""
from __future__ import annotations

import unicodedata
from typing import Any


def fold_text(value: Any) -> str:
    """Casefold and strip diacritics (``"Café"`` -> ``"cafe"``).

    ``None`` folds to the empty string; any other value is folded through
    its ``str()`` form.
    """
    if value is None:
        return ""
    text = value if isinstance(value, str) else str(value)
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return stripped.casefold()


def quote_ident(name: str) -> str:
    """Quote a table/column name for interpolation into SQL text."""
    return '"' + name.replace('"', '""') + '"'


def escape_like(text: str, escape: str = "\\") -> str:
    return (
        text.replace(escape, escape + escape)
        .replace("%", escape + "%")
        .replace("_", escape + "_")
    )


def truncate_label(label: str, limit: int = 50) -> str:
    if len(label) > limit:
        return label[:limit] + "…"
    return label
