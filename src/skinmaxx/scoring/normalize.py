"""Attribute normalization: raw provider values to bounded 0-100 metrics."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from skinmaxx.scoring.utils import clamp, is_missing, round_half_up


def extract_value(field: Any) -> float | None:
    """Unwrap a provider field that is a bare number or ``{"value": n}``.

    Returns None for anything else (missing, null, strings, booleans).
    """
    if isinstance(field, Mapping):
        field = field.get("value")
    if isinstance(field, bool) or not isinstance(field, (int, float)):
        return None
    value = float(field)
    if math.isnan(value):
        return None
    return value


def normalize(
    raw_value: float | None,
    max_value: float = 100.0,
    inverse: bool = False,
    fallback: int = 50,
) -> int:
    """Map a raw attribute onto an integer 0-100 metric.

    Args:
        raw_value: Provider value on its native scale, or None if absent.
        max_value: Value on the native scale that maps to 100.
        inverse: If True, high raw values mean worse skin (100 - scaled).
        fallback: Returned unchanged when raw_value is missing.

    Returns:
        Integer in [0, 100] (or fallback).
    """
    if is_missing(raw_value):
        return fallback
    scaled = clamp(raw_value / max_value * 100.0)  # type: ignore[operator]
    if inverse:
        return round_half_up(100.0 - scaled)
    return round_half_up(scaled)
