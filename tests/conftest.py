from __future__ import annotations

import math
from typing import Optional

import pytest

from neurostride.landmarks import Landmark, PoseFrame

HIP_Y = 400.0
KNEE_Y = 500.0
SHIN = 100.0


def squat_frame(
    knee_angle: float,
    knee_hip_ratio: float = 1.0,
    hip_width: float = 200.0,
    center_x: float = 600.0,
    confidence: float = 0.9,
    width: Optional[float] = None,
) -> PoseFrame:
    """
    Synthetic front-facing frame whose left and right knee angles both equal
    knee_angle. Knees sit knee_hip_ratio * hip_width apart; each ankle is the
    knee->hip direction rotated by knee_angle, so ankles move in parallel.
    """
    lh = (center_x - hip_width / 2, HIP_Y)
    rh = (center_x + hip_width / 2, HIP_Y)
    kw = hip_width * knee_hip_ratio
    lk = (center_x - kw / 2, KNEE_Y)
    rk = (center_x + kw / 2, KNEE_Y)

    def ankle(hip, knee, sign):
        ux, uy = hip[0] - knee[0], hip[1] - knee[1]
        n = math.hypot(ux, uy)
        ux, uy = ux / n, uy / n
        t = math.radians(knee_angle) * sign
        rx = ux * math.cos(t) - uy * math.sin(t)
        ry = ux * math.sin(t) + uy * math.cos(t)
        return (knee[0] + SHIN * rx, knee[1] + SHIN * ry)

    # Both shins rotate the same way in image space (side-step of the feet).
    la = ankle(lh, lk, -1)
    ra = ankle(rh, rk, -1)
    pts = {
        "left_shoulder": (lh[0], 200.0),
        "right_shoulder": (rh[0], 200.0),
        "left_hip": lh,
        "right_hip": rh,
        "left_knee": lk,
        "right_knee": rk,
        "left_ankle": la,
        "right_ankle": ra,
    }
    return PoseFrame(
        landmarks=tuple(Landmark(n, p[0], p[1], confidence) for n, p in pts.items()),
        width=width,
    )


def frame_from_points(points: dict, confidence: float = 0.9, width: Optional[float] = None) -> PoseFrame:
    return PoseFrame(
        landmarks=tuple(Landmark(n, float(p[0]), float(p[1]), confidence) for n, p in points.items()),
        width=width,
    )


# Descend 160 -> 90 over 5 ticks, hold one tick, rise 90 -> 150, then stand.
# The hold and the standing tail let the 5-tick window mean cross 105 and 130;
# without them the default smoothing never reaches Down.
SQUAT_TRAJECTORY = [160.0, 142.5, 125.0, 107.5, 90.0, 90.0, 105.0, 120.0, 135.0, 150.0, 150.0, 150.0, 150.0]


@pytest.fixture
def make_squat_frame():
    return squat_frame
