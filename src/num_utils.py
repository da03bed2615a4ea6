"""
Shared numeric helpers.
Single source of truth for float coercion, rounding and clamping used by
the records, the aggregator, the weather client and the risk scorer.
"""

from __future__ import annotations

import math
from typing import Any, Optional


def finite_float(value: Any) -> Optional[float]:
    """Coerce to a finite float, or None (bools, NaN and ±inf included)."""
    if value is None or isinstance(value, bool):
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(out) or math.isinf(out):
        return None
    return out


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3)."""
    if value >= 0:
        return int(math.floor(value + 0.5))
    return -int(math.floor(-value + 0.5))


def clamp(value, lower, upper):
    return max(lower, min(upper, value))
