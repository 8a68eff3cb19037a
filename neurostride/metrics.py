"""
Per-frame biomechanics metrics: joint angles, step width, symmetry, knee valgus,
squat depth label and a coaching cue. Pure functions of (frame, mode, config).
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Optional

from .config import EngineConfig, GaitThresholds, SquatThresholds, ValgusRatios
from .geometry import Point, angle, average
from .landmarks import PoseFrame, extract_joints


class Mode(str, Enum):
    SQUAT = "squat"
    WALK = "walk"

    @classmethod
    def parse(cls, value: "Mode | str") -> "Mode":
        if isinstance(value, Mode):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"unknown mode {value!r}; expected one of {[m.value for m in cls]}"
            ) from None


class DepthLabel(str, Enum):
    DEEP = "Deep"
    MODERATE = "Moderate"
    SHALLOW = "Shallow"
    UNKNOWN = "unknown"


CUE_VALGUS_SQUAT = "keep knees outward"
CUE_FACE_CAMERA = "face camera"
CUE_GO_DEEPER = "go deeper"
CUE_TOO_DEEP = "don't go too deep"
CUE_GREAT_FORM = "great form"
CUE_VALGUS_GAIT = "improve knee alignment"
CUE_WALK = "walk naturally"
CUE_WIDEN = "increase width"
CUE_NARROW = "reduce width"
CUE_GOOD_WIDTH = "good width"
CUE_SYMMETRY = "improve symmetry"


@dataclass(frozen=True)
class MetricsSnapshot:
    mode: Mode
    knee_angle_avg: Optional[float]
    hip_angle_avg: Optional[float]
    step_width: Optional[float]
    symmetry: Optional[float]
    has_knee_valgus: bool
    depth_label: DepthLabel
    cue: str
    left_knee_angle: Optional[float] = None
    right_knee_angle: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["mode"] = self.mode.value
        d["depth_label"] = self.depth_label.value
        return d


def knee_valgus(joints: dict[str, Optional[Point]], ratios: ValgusRatios) -> bool:
    """
    Horizontal-distance heuristic for knees collapsing inward (frontal view).
    Needs both hips, knees and ankles; anything missing means no flag.
    """
    lh, rh = joints.get("left_hip"), joints.get("right_hip")
    lk, rk = joints.get("left_knee"), joints.get("right_knee")
    la, ra = joints.get("left_ankle"), joints.get("right_ankle")
    if None in (lh, rh, lk, rk, la, ra):
        return False
    hip_width = abs(lh[0] - rh[0])
    knee_width = abs(lk[0] - rk[0])
    ankle_width = abs(la[0] - ra[0])
    if hip_width > 0 and knee_width / hip_width < ratios.knee_hip:
        return True
    return knee_width < ankle_width * ratios.knee_ankle


def step_width_pct(
    joints: dict[str, Optional[Point]],
    reference_width: float,
) -> Optional[float]:
    la, ra = joints.get("left_ankle"), joints.get("right_ankle")
    if la is None or ra is None:
        return None
    return abs(la[0] - ra[0]) / reference_width * 100.0


def symmetry_score(left: Optional[float], right: Optional[float]) -> Optional[float]:
    """Bilateral knee-angle difference as a 0..100 score (100 = identical)."""
    if left is None or right is None:
        return None
    return max(0.0, 100.0 - abs(left - right))


def depth_label_for(knee_angle: Optional[float], th: SquatThresholds) -> DepthLabel:
    if knee_angle is None:
        return DepthLabel.UNKNOWN
    if knee_angle < th.deep_below:
        return DepthLabel.DEEP
    if knee_angle < th.shallow_from:
        return DepthLabel.MODERATE
    return DepthLabel.SHALLOW


def squat_cue(
    knee_angle: Optional[float],
    has_valgus: bool,
    previous_depth: DepthLabel,
    th: SquatThresholds,
) -> tuple[str, DepthLabel]:
    """Ordered rules, first match wins. Valgus keeps the previous depth label."""
    if has_valgus:
        return CUE_VALGUS_SQUAT, previous_depth
    if knee_angle is None:
        return CUE_FACE_CAMERA, DepthLabel.UNKNOWN
    depth = depth_label_for(knee_angle, th)
    if knee_angle > th.cue_shallow_above:
        return CUE_GO_DEEPER, depth
    if knee_angle < th.cue_deep_below:
        return CUE_TOO_DEEP, depth
    return CUE_GREAT_FORM, depth


def gait_cue(
    step_width: Optional[float],
    symmetry: Optional[float],
    has_valgus: bool,
    th: GaitThresholds,
) -> str:
    if has_valgus:
        return CUE_VALGUS_GAIT
    cue = CUE_WALK
    if step_width is not None:
        if step_width < th.step_width_min:
            cue = CUE_WIDEN
        elif step_width > th.step_width_max:
            cue = CUE_NARROW
        else:
            cue = CUE_GOOD_WIDTH
    # Symmetry overrides the width cue.
    if symmetry is not None and symmetry < th.symmetry_warn_below:
        cue = CUE_SYMMETRY
    return cue


def compute_metrics(
    frame: PoseFrame,
    mode: Mode,
    config: Optional[EngineConfig] = None,
    previous_depth: DepthLabel = DepthLabel.UNKNOWN,
) -> MetricsSnapshot:
    """Compute the display metrics for one frame."""
    cfg = config or EngineConfig()
    j = extract_joints(frame, min_confidence=cfg.min_confidence)

    left_knee = angle(j["left_hip"], j["left_knee"], j["left_ankle"])
    right_knee = angle(j["right_hip"], j["right_knee"], j["right_ankle"])
    left_hip = angle(j["left_shoulder"], j["left_hip"], j["left_knee"])
    right_hip = angle(j["right_shoulder"], j["right_hip"], j["right_knee"])
    knee_avg = average(left_knee, right_knee)
    hip_avg = average(left_hip, right_hip)

    has_valgus = knee_valgus(j, cfg.valgus)
    width = step_width_pct(j, frame.width or cfg.reference_width)
    symmetry = symmetry_score(left_knee, right_knee)

    if mode is Mode.SQUAT:
        cue, depth = squat_cue(knee_avg, has_valgus, previous_depth, cfg.squat)
    else:
        cue = gait_cue(width, symmetry, has_valgus, cfg.gait)
        depth = DepthLabel.UNKNOWN

    return MetricsSnapshot(
        mode=mode,
        knee_angle_avg=knee_avg,
        hip_angle_avg=hip_avg,
        step_width=width,
        symmetry=symmetry,
        has_knee_valgus=has_valgus,
        depth_label=depth,
        cue=cue,
        left_knee_angle=left_knee,
        right_knee_angle=right_knee,
    )
