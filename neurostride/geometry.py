"""
Planar joint geometry over optional 2-D points (pixel coordinates).
Absent points propagate as None; nothing here raises on bad geometry.
"""
from __future__ import annotations

import math
from typing import Optional

Point = tuple[float, float]


def angle(
    a: Optional[Point],
    b: Optional[Point],
    c: Optional[Point],
) -> Optional[float]:
    """Angle at b for triangle a-b-c, in degrees [0, 180]."""
    if a is None or b is None or c is None:
        return None
    ba = (a[0] - b[0], a[1] - b[1])
    bc = (c[0] - b[0], c[1] - b[1])
    norm_ba = math.hypot(ba[0], ba[1])
    norm_bc = math.hypot(bc[0], bc[1])
    if norm_ba == 0.0 or norm_bc == 0.0:
        return None
    cos_val = (ba[0] * bc[0] + ba[1] * bc[1]) / (norm_ba * norm_bc)
    cos_val = max(-1.0, min(1.0, cos_val))
    return math.degrees(math.acos(cos_val))


def average(*values: Optional[float]) -> Optional[float]:
    """Mean of the present values; None if every value is absent."""
    present = [v for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)
