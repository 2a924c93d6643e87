from __future__ import annotations

from typing import Any


# -----------------------------------------------------------------------------
def extract_positive_int(value: Any) -> int | None:
    """Positive integer from a config or query value, else None.

    Strings must hold digits only; booleans are rejected even though they
    are ints.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text.isdigit():
            return None
        candidate = int(text)
    else:
        try:
            candidate = int(value)
        except (TypeError, ValueError, OverflowError):
            return None
    return candidate if candidate > 0 else None


# -----------------------------------------------------------------------------
def coerce_positive_int(value: Any, default: int = 1) -> int:
    candidate = extract_positive_int(value)
    return default if candidate is None else candidate


# -----------------------------------------------------------------------------
def coerce_int(
    value: Any,
    default: int = 0,
    *,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    candidate = default
    if not isinstance(value, bool):
        try:
            candidate = int(value)
        except (TypeError, ValueError, OverflowError):
            candidate = default
    if minimum is not None:
        candidate = max(candidate, minimum)
    if maximum is not None:
        candidate = min(candidate, maximum)
    return candidate


# -----------------------------------------------------------------------------
def coerce_str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    text = value.strip() if isinstance(value, str) else str(value).strip()
    return text or default


# -----------------------------------------------------------------------------
def coerce_choice(value: Any, choices: set[str] | frozenset[str]) -> str | None:
    text = coerce_str(value).lower()
    return text if text in choices else None


__all__ = [
    "coerce_choice",
    "coerce_int",
    "coerce_positive_int",
    "coerce_str",
    "extract_positive_int",
]
