"""
Draw the skeleton, cue badges and metric panels onto a BGR frame (in-place).
Absent values render as "-", never as zero.
"""
from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from .config import EngineConfig
from .engine import TickResult
from .form import FormStatus, form_status
from .landmarks import PoseFrame, joint
from .metrics import MetricsSnapshot, Mode
from .session import SessionStats

SKELETON_EDGES = (
    ("left_shoulder", "right_shoulder"),
    ("left_hip", "right_hip"),
    ("left_shoulder", "left_elbow"),
    ("left_elbow", "left_wrist"),
    ("right_shoulder", "right_elbow"),
    ("right_elbow", "right_wrist"),
    ("left_hip", "left_knee"),
    ("left_knee", "left_ankle"),
    ("right_hip", "right_knee"),
    ("right_knee", "right_ankle"),
)

# BGR
STATUS_COLORS = {
    FormStatus.OK: (94, 197, 34),
    FormStatus.NEEDS_WORK: (8, 179, 234),
    FormStatus.RISK: (68, 68, 239),
}
_WHITE = (255, 255, 255)
_PANEL = (23, 23, 23)
_FONT = cv2.FONT_HERSHEY_SIMPLEX


def _pt(p: tuple[float, float]) -> tuple[int, int]:
    return (int(round(p[0])), int(round(p[1])))


def _fmt(val: Optional[float], digits: int = 0, suffix: str = "") -> str:
    return f"{val:.{digits}f}{suffix}" if val is not None else "-"


def draw_skeleton(
    frame: np.ndarray,
    pose: PoseFrame,
    snapshot: Optional[MetricsSnapshot],
    config: EngineConfig,
) -> None:
    color = STATUS_COLORS[form_status(snapshot, config)]
    for a, b in SKELETON_EDGES:
        # Edges only need presence; joints also need confidence.
        pa, pb = pose.get(a), pose.get(b)
        if pa is None or pb is None:
            continue
        cv2.line(frame, _pt((pa.x, pa.y)), _pt((pb.x, pb.y)), color, 4, cv2.LINE_AA)
    for lm in pose.landmarks:
        if lm.confidence > config.min_confidence:
            cv2.circle(frame, _pt((lm.x, lm.y)), 6, color, -1, cv2.LINE_AA)
    if snapshot is not None and snapshot.has_knee_valgus:
        for name in ("left_knee", "right_knee"):
            p = joint(pose, name, 0.0)
            if p is not None:
                cv2.circle(frame, _pt(p), 20, STATUS_COLORS[FormStatus.RISK], 3, cv2.LINE_AA)
                cv2.circle(frame, _pt(p), 30, STATUS_COLORS[FormStatus.RISK], 2, cv2.LINE_AA)


def draw_badge(
    frame: np.ndarray,
    text: str,
    x: int,
    y: int,
    bg: tuple[int, int, int] = _PANEL,
) -> None:
    (tw, th), _ = cv2.getTextSize(text, _FONT, 0.6, 2)
    overlay = frame.copy()
    cv2.rectangle(overlay, (x - 8, y - th - 8), (x + tw + 8, y + 8), bg, -1)
    cv2.addWeighted(overlay, 0.6, frame, 0.4, 0, frame)
    cv2.putText(frame, text, (x, y), _FONT, 0.6, _WHITE, 2, cv2.LINE_AA)


def _panel(frame: np.ndarray, lines: list[str], x: int, y: int) -> int:
    """Draw a text panel; returns the y just below it."""
    dy = 24
    height = dy * len(lines) + 12
    overlay = frame.copy()
    cv2.rectangle(overlay, (x, y), (x + 250, y + height), _PANEL, -1)
    cv2.addWeighted(overlay, 0.7, frame, 0.3, 0, frame)
    for i, line in enumerate(lines):
        cv2.putText(frame, line, (x + 10, y + 24 + i * dy), _FONT, 0.55, _WHITE, 1, cv2.LINE_AA)
    return y + height


def metrics_lines(snap: Optional[MetricsSnapshot], stats: SessionStats, mode: Mode) -> list[str]:
    if mode is Mode.SQUAT:
        return [
            "Live metrics",
            f"Knee angle: {_fmt(snap.knee_angle_avg if snap else None, suffix=' deg')}",
            f"Hip angle: {_fmt(snap.hip_angle_avg if snap else None, suffix=' deg')}",
            f"Depth: {snap.depth_label.value if snap else '-'}",
            f"Reps: {stats.total}",
            f"Good form: {stats.good}",
        ]
    return [
        "Live metrics",
        f"Step width: {_fmt(snap.step_width if snap else None, 1, '%')}",
        f"Symmetry: {_fmt(snap.symmetry if snap else None)}",
        f"Steps: {stats.total}",
    ]


def draw_frame_overlay(
    frame: np.ndarray,
    pose: Optional[PoseFrame],
    result: TickResult,
    mode: Mode,
    config: EngineConfig,
) -> None:
    """Full realtime overlay for one tick."""
    w = frame.shape[1]
    snap = result.snapshot
    if pose is None or snap is None:
        draw_badge(frame, "No person detected", 16, 32)
    else:
        draw_skeleton(frame, pose, snap, config)
        draw_badge(frame, f"Mode: {mode.value}", 16, 32)
        draw_badge(frame, f"Cue: {snap.cue}", 16, 64)
        if snap.has_knee_valgus:
            draw_badge(frame, "Knee valgus detected", w // 2 - 110, 32,
                       bg=STATUS_COLORS[FormStatus.RISK])

    stats = result.stats
    lines = metrics_lines(snap, stats, mode)
    x = max(0, w - 266)
    y = _panel(frame, lines, x, 16)

    session = ["Session", f"Total: {stats.total}", f"Good: {stats.good}", f"Warnings: {stats.warnings}"]
    if stats.accuracy is not None:
        session.append(f"Accuracy: {stats.accuracy * 100:.0f}%")
    _panel(frame, session, x, y + 8)
