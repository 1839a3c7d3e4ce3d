"""Parse and format numbers written in the euro ("12.345,67") or dot convention.

The disambiguation rules for text that is not strictly euro-formatted are a
policy, not a general locale parser:

- both ``.`` and ``,`` present: whichever appears last is the decimal separator;
- only ``,`` present: decimal iff exactly two digits follow the last comma;
- only ``.`` present: decimal iff exactly two digits follow the last dot.
"""
from __future__ import annotations

import re
from typing import Any

from .models import NumericStyle

EURO_NUMBER_RE = re.compile(r"^\s*\d{1,3}(\.\d{3})*(,\d+)?\s*$")
DOT_NUMBER_RE = re.compile(r"^\s*\d+(\.\d+)?\s*$")

_NOISE_RE = re.compile(r"[\s€$£¥]")
_CANONICAL_RE = re.compile(r"^[+-]?\d+(\.\d+)?$")


def parse_euro_number(text: str) -> float | None:
    """Strict parse of ``"12.345,67"``-style text. No heuristics."""
    if not EURO_NUMBER_RE.match(text):
        return None
    return float(text.strip().replace(".", "").replace(",", "."))


def parse_locale_number(text: str) -> float | None:
    """Parse a human-written number; ``None`` when it is not a number."""
    if text is None:
        return None
    cleaned = _NOISE_RE.sub("", str(text))
    if not cleaned:
        return None

    strict = parse_euro_number(cleaned)
    if strict is not None:
        return strict

    sign = ""
    if cleaned[0] in "+-":
        sign, cleaned = cleaned[0], cleaned[1:]

    last_dot = cleaned.rfind(".")
    last_comma = cleaned.rfind(",")
    if last_dot >= 0 and last_comma >= 0:
        decimal, grouping = (",", ".") if last_comma > last_dot else (".", ",")
        cleaned = cleaned.replace(grouping, "").replace(decimal, ".")
    elif last_comma >= 0:
        cleaned = _resolve_single_separator(cleaned, ",")
    elif last_dot >= 0:
        cleaned = _resolve_single_separator(cleaned, ".")

    candidate = sign + cleaned
    if not _CANONICAL_RE.match(candidate):
        return None
    return float(candidate)


def _resolve_single_separator(text: str, sep: str) -> str:
    head, _, tail = text.rpartition(sep)
    if len(tail) == 2 and tail.isdigit():
        return head.replace(sep, "") + "." + tail
    return text.replace(sep, "")


def format_locale_number(value: float) -> str:
    """Format as ``"12.345,67"``: two decimals, comma decimal, dot grouping."""
    dot_style = f"{value:,.2f}"
    return dot_style.translate(str.maketrans({",": ".", ".": ","}))


def parse_with_style(value: Any, style: NumericStyle | str) -> float | None:
    """Interpret a stored cell under a detected numeric style."""
    style = NumericStyle(style)
    if style is NumericStyle.NONE or value is None:
        return None
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    text = str(value).strip()
    if not text:
        return None
    if style is NumericStyle.DOT:
        if _CANONICAL_RE.match(text):
            return float(text)
        return parse_locale_number(text)
    return parse_locale_number(text)
