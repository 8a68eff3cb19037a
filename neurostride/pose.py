"""
MediaPipe Pose provider. Turns one BGR frame into a named PoseFrame (pixel coords)
or None when nobody is detected. Uses the Pose Landmarker task (MediaPipe 0.10+).
"""
from __future__ import annotations

import logging
import os
import urllib.request
from typing import Optional

import cv2
import numpy as np

from .landmarks import Landmark, PoseFrame

logger = logging.getLogger(__name__)

# MediaPipe's 33-point topology -> the COCO joint names used by the engine.
MEDIAPIPE_JOINTS = {
    "nose": 0,
    "left_eye": 2,
    "right_eye": 5,
    "left_ear": 7,
    "right_ear": 8,
    "left_shoulder": 11,
    "right_shoulder": 12,
    "left_elbow": 13,
    "right_elbow": 14,
    "left_wrist": 15,
    "right_wrist": 16,
    "left_hip": 23,
    "right_hip": 24,
    "left_knee": 25,
    "right_knee": 26,
    "left_ankle": 27,
    "right_ankle": 28,
}

_POSE_MODEL_URL = "https://storage.googleapis.com/mediapipe-models/pose_landmarker/pose_landmarker_lite/float16/1/pose_landmarker_lite.task"
_POSE_MODEL_FILENAME = "pose_landmarker_lite.task"
MODEL_DIR_ENV_VAR = "NEUROSTRIDE_MODEL_DIR"


def _get_model_path(cache_dir: Optional[str] = None) -> str:
    """Return path to the pose landmarker model, downloading it on first use."""
    if cache_dir is None:
        cache_dir = os.getenv(MODEL_DIR_ENV_VAR) or os.path.join(
            os.path.expanduser("~"), ".cache", "neurostride"
        )
    os.makedirs(cache_dir, exist_ok=True)
    path = os.path.join(cache_dir, _POSE_MODEL_FILENAME)
    if not os.path.isfile(path):
        logger.info("pose: downloading model to %s", path)
        urllib.request.urlretrieve(_POSE_MODEL_URL, path)
    return path


def _create_landmarker(cache_dir: Optional[str], min_confidence: float):
    from mediapipe.tasks.python.core import base_options
    from mediapipe.tasks.python.vision import PoseLandmarker, PoseLandmarkerOptions
    from mediapipe.tasks.python.vision.core import vision_task_running_mode

    base = base_options.BaseOptions(model_asset_path=_get_model_path(cache_dir))
    options = PoseLandmarkerOptions(
        base_options=base,
        running_mode=vision_task_running_mode.VisionTaskRunningMode.IMAGE,
        num_poses=1,
        min_pose_detection_confidence=min_confidence,
        min_pose_presence_confidence=min_confidence,
        min_tracking_confidence=min_confidence,
    )
    return PoseLandmarker.create_from_options(options)


def create_pose_detector(
    min_detection_confidence: float = 0.5,
    cache_dir: Optional[str] = None,
):
    """Single-person detector; falls back to the legacy solutions API on old MediaPipe."""
    try:
        return _create_landmarker(cache_dir, min_detection_confidence)
    except (ImportError, AttributeError, RuntimeError) as e:
        logger.warning("pose: landmarker unavailable (%s), using legacy solutions API", e)
        import mediapipe as mp
        return mp.solutions.pose.Pose(
            static_image_mode=False,
            model_complexity=1,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_detection_confidence,
        )


def _to_pose_frame(landmarks, w: int, h: int, timestamp: Optional[float]) -> PoseFrame:
    out = []
    for name, idx in MEDIAPIPE_JOINTS.items():
        if idx >= len(landmarks):
            continue
        lm = landmarks[idx]
        vis = getattr(lm, "visibility", None)
        out.append(
            Landmark(
                name=name,
                x=float(lm.x) * w,
                y=float(lm.y) * h,
                confidence=1.0 if vis is None else float(vis),
            )
        )
    return PoseFrame(landmarks=tuple(out), width=float(w), timestamp=timestamp)


def process_frame(
    frame_bgr: np.ndarray,
    pose,  # PoseLandmarker or legacy mp.solutions.pose.Pose
    timestamp: Optional[float] = None,
) -> Optional[PoseFrame]:
    """Run pose estimation on one BGR frame."""
    h, w = frame_bgr.shape[:2]
    rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)

    if hasattr(pose, "detect"):
        from mediapipe.tasks.python.vision.core import image as mp_image
        mp_img = mp_image.Image(image_format=mp_image.ImageFormat.SRGB, data=rgb)
        result = pose.detect(mp_img)
        if not result.pose_landmarks:
            return None
        return _to_pose_frame(result.pose_landmarks[0], w, h, timestamp)
    results = pose.process(rgb)
    if not results.pose_landmarks:
        return None
    return _to_pose_frame(results.pose_landmarks.landmark, w, h, timestamp)
