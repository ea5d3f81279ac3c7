from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3, -2.5 -> -2).

    Python's ``round`` uses banker's rounding, which would make scores drift by
    one point on exact halves.
    """
    return int(math.floor(value + 0.5))


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))
