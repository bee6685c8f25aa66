from __future__ import annotations

from typing import Any


def _clean_token(value: Any, *, name: str) -> str:
    """Normalize an optional bearer token; empty means "not configured"."""
    if value in (None, ""):
        return ""
    token = str(value).strip()
    if len(token) > 500:
        msg = f"{name} appears to be too long"
        raise ValueError(msg)
    if any(char in token for char in (" ", "\n", "\t")):
        msg = f"{name} contains invalid characters"
        raise ValueError(msg)
    return token


def _parse_bounded_int(value: Any, *, default: int, low: int, high: int, label: str) -> int:
    if value in (None, ""):
        return default
    try:
        parsed = int(str(value))
    except ValueError as exc:
        msg = f"{label} must be a valid integer"
        raise ValueError(msg) from exc
    if parsed < low or parsed > high:
        msg = f"{label} must be between {low} and {high}"
        raise ValueError(msg)
    return parsed


def _parse_bounded_float(
    value: Any, *, default: float, low: float, high: float, label: str
) -> float:
    if value in (None, ""):
        return default
    try:
        parsed = float(str(value))
    except ValueError as exc:
        msg = f"{label} must be a valid number"
        raise ValueError(msg) from exc
    if parsed < low or parsed > high:
        msg = f"{label} must be between {low} and {high}"
        raise ValueError(msg)
    return parsed
