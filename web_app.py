from __future__ import annotations

import asyncio
import base64
import binascii
import concurrent.futures
import json
import logging
from typing import Any, Optional

# Ensure rep and session logging is visible when running under uvicorn
logging.getLogger("neurostride").setLevel(logging.INFO)

from fastapi import FastAPI, HTTPException
from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

import cv2
import numpy as np

from neurostride.config import ConfigError, config_to_dict, load_config
from neurostride.engine import MotionEngine
from neurostride.schemas import AnalyzeRequest, LandmarksMessage, error_message, to_pose_frame

logger = logging.getLogger("neurostride.web")

app = FastAPI(title="NeuroStride")

# Pose inference runs off the event loop so the socket keeps answering pings.
_POSE_EXECUTOR = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="live_pose")
_POSE_DETECTOR = None


def _engine_config():
    # Re-read per session so $NEUROSTRIDE_CONFIG changes apply to new sessions.
    return load_config()


def _get_pose_detector():
    global _POSE_DETECTOR
    if _POSE_DETECTOR is None:
        from neurostride.pose import create_pose_detector
        _POSE_DETECTOR = create_pose_detector()
    return _POSE_DETECTOR


def _detect_pose(frame_bgr: np.ndarray):
    # Runs on the pose executor; the first call may download the model.
    from neurostride.pose import process_frame

    return process_frame(frame_bgr, _get_pose_detector())


def _decode_image(image_data: str) -> Optional[np.ndarray]:
    if image_data.startswith("data:"):
        image_data = image_data.split(",", 1)[1]
    try:
        img_bytes = base64.b64decode(image_data)
    except (binascii.Error, ValueError):
        return None
    if not img_bytes:
        return None
    np_arr = np.frombuffer(img_bytes, np.uint8)
    try:
        return cv2.imdecode(np_arr, cv2.IMREAD_COLOR)
    except cv2.error:
        return None


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/config")
def get_config() -> dict[str, Any]:
    try:
        return config_to_dict(_engine_config())
    except ConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/analyze")
def analyze(req: AnalyzeRequest) -> dict[str, Any]:
    """Replay a recorded landmark sequence through a fresh engine."""
    try:
        engine = MotionEngine(_engine_config(), req.mode)
    except ConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    ticks = []
    for i, landmarks in enumerate(req.frames):
        try:
            frame = to_pose_frame(landmarks, width=req.width)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"frame {i}: {e}")
        result = engine.tick(frame)
        if req.include_ticks:
            ticks.append(result.to_dict())
    summary = engine.summary()
    logger.info(
        "web: analyzed %s frames (mode=%s reps=%s)",
        len(req.frames), summary["mode"], summary["stats"]["total"],
    )
    return {"summary": summary, "ticks": ticks if req.include_ticks else None}


@app.websocket("/ws/live")
async def live_socket(websocket: WebSocket) -> None:
    await websocket.accept()
    try:
        engine = MotionEngine(_engine_config(), websocket.query_params.get("mode", "squat"))
    except ValueError as e:
        await websocket.send_text(json.dumps(error_message(str(e))))
        await websocket.close()
        return
    logger.info("web: live session started (mode=%s)", engine.mode.value)
    loop = asyncio.get_running_loop()
    frames = 0
    try:
        while True:
            msg = await websocket.receive_text()
            try:
                payload = json.loads(msg)
            except json.JSONDecodeError:
                await websocket.send_text(json.dumps(error_message("invalid JSON")))
                continue
            if not isinstance(payload, dict):
                await websocket.send_text(json.dumps(error_message("message must be an object")))
                continue
            kind = payload.get("type", "landmarks")

            if kind == "stop":
                await websocket.send_text(json.dumps({"type": "summary", **engine.summary()}))
                await websocket.close()
                logger.info("web: live session stopped (frames=%s reps=%s)", frames, engine.stats.total)
                return
            if kind == "reset":
                engine.reset()
                await websocket.send_text(json.dumps({"type": "reset", "stats": engine.stats.to_dict()}))
                continue
            if kind == "mode":
                try:
                    engine.set_mode(payload.get("mode", ""))
                except ValueError as e:
                    await websocket.send_text(json.dumps(error_message(str(e))))
                    continue
                await websocket.send_text(json.dumps({"type": "mode", "mode": engine.mode.value}))
                continue

            if kind == "image":
                image_data = payload.get("image")
                frame_bgr = _decode_image(image_data) if isinstance(image_data, str) else None
                if frame_bgr is None:
                    await websocket.send_text(json.dumps(error_message("could not decode image")))
                    continue
                pose_frame = await loop.run_in_executor(_POSE_EXECUTOR, _detect_pose, frame_bgr)
            elif kind == "landmarks":
                try:
                    m = LandmarksMessage.model_validate(payload)
                    pose_frame = to_pose_frame(m.landmarks, width=m.width, timestamp=m.timestamp)
                except (ValidationError, ValueError) as e:
                    await websocket.send_text(json.dumps(error_message(str(e))))
                    continue
            else:
                await websocket.send_text(json.dumps(error_message(f"unknown message type {kind!r}")))
                continue

            result = engine.tick(pose_frame)
            frames += 1
            await websocket.send_text(json.dumps({"type": "tick", "mode": engine.mode.value, **result.to_dict()}))
    except WebSocketDisconnect:
        logger.info("web: client disconnected (frames=%s reps=%s)", frames, engine.stats.total)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("web_app:app", host="0.0.0.0", port=8000, reload=True)
