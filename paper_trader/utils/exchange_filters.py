"""Lot size rounding for paper fills."""

from __future__ import annotations
import math


def round_quantity(qty: float, min_qty: float = 0.0, step_size: float = 0.0) -> float:
    """
    Round down to step size; return 0 if below min_qty.
    step_size <= 0 means no lot constraint (only float noise is trimmed).
    """
    if qty <= 0:
        return 0.0
    if step_size > 0:
        qty = math.floor(qty / step_size + 1e-9) * step_size
    rounded = round(qty, 8)
    if rounded <= 0 or rounded < min_qty:
        return 0.0
    return rounded
