from __future__ import annotations

import re
from typing import Any

import pandas as pd

# -----------------------------------------------------------------------------
def coerce_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        return text or None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    text = str(value).strip()
    return text or None


# -----------------------------------------------------------------------------
def normalize_whitespace(value: str) -> str:
    if not value:
        return ""
    return re.sub(r"\s+", " ", value).strip()


# -----------------------------------------------------------------------------
def normalize_term(value: Any) -> str:
    """Lower-case and trim a term; blank or missing input becomes ''."""
    text = coerce_text(value)
    if text is None:
        return ""
    return text.lower()


# -----------------------------------------------------------------------------
def is_blank(value: Any) -> bool:
    return not normalize_term(value)


__all__ = [
    "coerce_text",
    "is_blank",
    "normalize_term",
    "normalize_whitespace",
]
