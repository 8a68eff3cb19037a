"""
Live pipeline: capture, pose, engine tick, overlay window.
Keys: q=quit, r=reset session, m=toggle squat/walk.
"""
from __future__ import annotations

import logging
import time
from typing import Generator, Optional, Union

import cv2
import numpy as np

from .config import EngineConfig
from .engine import MotionEngine
from .metrics import Mode
from .overlay import draw_frame_overlay
from .pose import create_pose_detector, process_frame

logger = logging.getLogger(__name__)

# Capture resolution requested from webcams; also the default reference width.
CAPTURE_WIDTH = 1280
CAPTURE_HEIGHT = 720
WINDOW_NAME = "NeuroStride (q=quit, r=reset, m=mode)"


def iter_frames(
    source: Union[int, str],
    target_fps: float = 30,
) -> Generator[tuple[np.ndarray, int, float], None, None]:
    """
    Yield (frame_bgr, frame_idx, fps) from a camera id or a video file path.
    fps is the file's nominal rate, or an EMA of measured timings for cameras.
    """
    is_camera = isinstance(source, int)
    cap = cv2.VideoCapture(source)
    if not cap.isOpened():
        if is_camera:
            raise RuntimeError(f"Cannot open camera {source}. Check permissions and that no other app is using it.")
        raise FileNotFoundError(f"Cannot open video: {source}")
    try:
        if is_camera:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, CAPTURE_WIDTH)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, CAPTURE_HEIGHT)
            cap.set(cv2.CAP_PROP_FPS, target_fps)
            fps = float(target_fps)
        else:
            fps = cap.get(cv2.CAP_PROP_FPS) or float(target_fps)
        idx = 0
        t_prev = time.perf_counter()
        while True:
            ret, frame = cap.read()
            if not ret:
                break
            if is_camera:
                t_now = time.perf_counter()
                dt = t_now - t_prev
                if dt > 0:
                    fps = 0.9 * fps + 0.1 * (1.0 / dt)
                t_prev = t_now
            yield (frame, idx, fps)
            idx += 1
    finally:
        cap.release()


def run_live(
    source: Union[int, str] = 0,
    mode: Mode | str = Mode.SQUAT,
    config: Optional[EngineConfig] = None,
    mirror: bool = True,
    show: bool = True,
) -> dict:
    """
    Drive the engine from a camera or video until the source ends or q is pressed.
    Returns the session summary.
    """
    engine = MotionEngine(config, mode)
    pose = create_pose_detector()
    is_camera = isinstance(source, int)
    if show:
        cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)
    t0 = time.perf_counter()
    try:
        for frame_bgr, frame_idx, fps in iter_frames(source):
            if mirror and is_camera:
                frame_bgr = cv2.flip(frame_bgr, 1)
            ts = (time.perf_counter() - t0) if is_camera else frame_idx / fps
            pose_frame = process_frame(frame_bgr, pose, timestamp=ts)
            result = engine.tick(pose_frame)
            if frame_idx % 60 == 0:
                logger.debug("live: frame %s fps=%.1f reps=%s", frame_idx, fps, result.stats.total)
            if not show:
                continue

            draw_frame_overlay(frame_bgr, pose_frame, result, engine.mode, engine.config)
            cv2.imshow(WINDOW_NAME, frame_bgr)
            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            if key == ord("r"):
                engine.reset()
            if key == ord("m"):
                engine.set_mode(Mode.WALK if engine.mode is Mode.SQUAT else Mode.SQUAT)
    finally:
        if show:
            cv2.destroyAllWindows()

    summary = engine.summary()
    stats = summary["stats"]
    logger.info(
        "live: session ended (mode=%s reps=%s good=%s warnings=%s)",
        summary["mode"], stats["total"], stats["good"], stats["warnings"],
    )
    return summary
