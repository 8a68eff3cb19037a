"""
Named pose landmarks and the frame adapter used by the metrics layer.
A tick with no detected subject is represented by None, never by an empty frame.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from .geometry import Point

logger = logging.getLogger(__name__)

# COCO / MoveNet keypoint names, in detector order.
JOINT_NAMES = (
    "nose",
    "left_eye",
    "right_eye",
    "left_ear",
    "right_ear",
    "left_shoulder",
    "right_shoulder",
    "left_elbow",
    "right_elbow",
    "left_wrist",
    "right_wrist",
    "left_hip",
    "right_hip",
    "left_knee",
    "right_knee",
    "left_ankle",
    "right_ankle",
)
_JOINT_SET = frozenset(JOINT_NAMES)

LOWER_BODY = (
    "left_shoulder",
    "right_shoulder",
    "left_hip",
    "right_hip",
    "left_knee",
    "right_knee",
    "left_ankle",
    "right_ankle",
)

# Landmarks below this confidence are treated as absent.
DEFAULT_MIN_CONFIDENCE = 0.3


@dataclass(frozen=True)
class Landmark:
    name: str
    x: float
    y: float
    confidence: float


@dataclass(frozen=True)
class PoseFrame:
    """
    Landmarks detected at one instant, in source-image pixel coordinates.

    width is the pixel width of the source image when the producer knows it;
    step width is normalised against it.
    """

    landmarks: tuple[Landmark, ...]
    width: Optional[float] = None
    timestamp: Optional[float] = None

    def get(self, name: str) -> Optional[Landmark]:
        for lm in self.landmarks:
            if lm.name == name:
                return lm
        return None


def joint(
    frame: Optional[PoseFrame],
    name: str,
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
) -> Optional[Point]:
    """(x, y) of a named joint, or None when missing, unreliable or non-finite."""
    if name not in _JOINT_SET:
        raise KeyError(f"unknown joint name: {name!r}")
    if frame is None:
        return None
    lm = frame.get(name)
    if lm is None or lm.confidence < min_confidence:
        return None
    if not (math.isfinite(lm.x) and math.isfinite(lm.y)):
        return None
    return (lm.x, lm.y)


def extract_joints(
    frame: Optional[PoseFrame],
    names: Iterable[str] = LOWER_BODY,
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
) -> dict[str, Optional[Point]]:
    return {name: joint(frame, name, min_confidence) for name in names}


def pose_frame_from_dicts(
    items: Optional[Iterable[dict[str, Any]]],
    width: Optional[float] = None,
    timestamp: Optional[float] = None,
) -> Optional[PoseFrame]:
    """
    Build a PoseFrame from JSON-like landmark dicts.
    Accepts "confidence" or "score" (MoveNet naming); missing confidence means 1.0.
    None or an empty list yields None (no subject this tick).
    """
    if not items:
        return None
    landmarks: list[Landmark] = []
    for item in items:
        if not isinstance(item, dict):
            raise ValueError(f"landmark must be an object, got {type(item).__name__}")
        name = item.get("name")
        if name not in _JOINT_SET:
            logger.debug("landmarks: skipping unknown landmark %r", name)
            continue
        conf = item.get("confidence")
        if conf is None:
            conf = item.get("score")
        try:
            landmarks.append(
                Landmark(
                    name=name,
                    x=float(item["x"]),
                    y=float(item["y"]),
                    confidence=1.0 if conf is None else float(conf),
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"malformed landmark {name!r}: {e}") from e
    if not landmarks:
        return None
    return PoseFrame(landmarks=tuple(landmarks), width=width, timestamp=timestamp)
