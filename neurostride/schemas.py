"""
Request models for the web API.
"""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from .landmarks import PoseFrame, pose_frame_from_dicts


class LandmarkIn(BaseModel):
    name: str
    x: float
    y: float
    confidence: Optional[float] = None
    # MoveNet / tfjs naming for confidence.
    score: Optional[float] = None


def to_pose_frame(
    landmarks: Optional[list[LandmarkIn]],
    width: Optional[float] = None,
    timestamp: Optional[float] = None,
) -> Optional[PoseFrame]:
    if landmarks is None:
        return None
    return pose_frame_from_dicts(
        [lm.model_dump() for lm in landmarks], width=width, timestamp=timestamp
    )


class AnalyzeRequest(BaseModel):
    mode: str = "squat"
    width: Optional[float] = Field(default=None, gt=0)
    frames: list[Optional[list[LandmarkIn]]]
    include_ticks: bool = True


class LandmarksMessage(BaseModel):
    type: str = "landmarks"
    landmarks: Optional[list[LandmarkIn]] = None
    width: Optional[float] = Field(default=None, gt=0)
    timestamp: Optional[float] = None


def error_message(detail: Any) -> dict[str, Any]:
    return {"type": "error", "detail": detail}
