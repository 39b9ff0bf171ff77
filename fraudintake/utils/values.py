"""Coercion helpers for untrusted scalar input."""

from __future__ import annotations

import math


def coerce_positive_int(value: object) -> int | None:
    """Parse a positive integer id from a number or numeric string."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    if isinstance(value, float):
        value = int(value) if math.isfinite(value) else 0
    try:
        parsed = int(str(value).strip(), 10)
    except ValueError:
        return None
    return parsed if parsed > 0 else None
