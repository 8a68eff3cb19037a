import base64
import threading
from types import SimpleNamespace

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient

import web_app

from conftest import SQUAT_TRAJECTORY, squat_frame


@pytest.fixture
def client(monkeypatch):
    monkeypatch.delenv("NEUROSTRIDE_CONFIG", raising=False)
    return TestClient(web_app.app)


def _landmarks(angle, **kw):
    frame = squat_frame(angle, **kw)
    return [{"name": lm.name, "x": lm.x, "y": lm.y, "score": lm.confidence} for lm in frame.landmarks]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_config_endpoint(client):
    data = client.get("/config").json()
    assert data["smoothing_window"] == 5
    assert data["rep_thresholds"]["squat"] == {"down_below": 105.0, "up_above": 130.0}


def test_analyze_squat(client):
    frames = [_landmarks(a) for a in SQUAT_TRAJECTORY]
    frames.insert(3, None)
    resp = client.post("/analyze", json={"mode": "squat", "frames": frames})
    assert resp.status_code == 200
    body = resp.json()
    assert body["summary"]["stats"] == {"total": 1, "good": 1, "warnings": 0, "accuracy": 1.0}
    assert body["ticks"][3]["metrics"] is None
    assert len(body["ticks"]) == len(frames)


def test_analyze_valgus_without_ticks(client):
    frames = [_landmarks(a, knee_hip_ratio=0.4) for a in SQUAT_TRAJECTORY]
    body = client.post("/analyze", json={"frames": frames, "include_ticks": False}).json()
    assert body["ticks"] is None
    assert body["summary"]["stats"]["warnings"] == 1
    assert body["summary"]["reps"][0]["verdict"] == "Warning"


def test_analyze_bad_mode(client):
    resp = client.post("/analyze", json={"mode": "lunge", "frames": []})
    assert resp.status_code == 400


def test_analyze_validation_error(client):
    resp = client.post("/analyze", json={"frames": [[{"name": "left_hip", "x": "a"}]]})
    assert resp.status_code == 422


def test_live_socket_landmarks(client):
    with client.websocket_connect("/ws/live?mode=squat") as ws:
        reps = 0
        for a in SQUAT_TRAJECTORY:
            ws.send_json({"type": "landmarks", "landmarks": _landmarks(a)})
            msg = ws.receive_json()
            assert msg["type"] == "tick"
            reps += 1 if msg["rep"] else 0
        assert reps == 1

        ws.send_json({"type": "landmarks", "landmarks": None})
        msg = ws.receive_json()
        assert msg["metrics"] is None
        assert msg["stats"]["total"] == 1

        ws.send_json({"type": "stop"})
        summary = ws.receive_json()
        assert summary["type"] == "summary"
        assert summary["stats"]["good"] == 1


def test_live_socket_controls(client):
    with client.websocket_connect("/ws/live") as ws:
        ws.send_text("not json")
        assert ws.receive_json()["type"] == "error"

        ws.send_json({"type": "mode", "mode": "walk"})
        assert ws.receive_json() == {"type": "mode", "mode": "walk"}

        ws.send_json({"type": "mode", "mode": "yoga"})
        assert ws.receive_json()["type"] == "error"

        ws.send_json({"type": "landmarks", "landmarks": _landmarks(170.0)})
        msg = ws.receive_json()
        assert msg["mode"] == "walk"
        assert msg["metrics"]["cue"] == "good width"

        ws.send_json({"type": "reset"})
        assert ws.receive_json()["stats"]["total"] == 0

        ws.send_json({"type": "image", "image": "%%%"})
        assert ws.receive_json()["type"] == "error"

        ws.send_json({"type": "dance"})
        assert ws.receive_json()["type"] == "error"


class _EmptyPose:
    def process(self, rgb):
        return SimpleNamespace(pose_landmarks=None)


def test_live_socket_image_loads_detector_off_event_loop(client, monkeypatch):
    threads = []

    def fake_detector():
        threads.append(threading.current_thread().name)
        return _EmptyPose()

    monkeypatch.setattr(web_app, "_get_pose_detector", fake_detector)
    ok, png = cv2.imencode(".png", np.zeros((48, 64, 3), dtype=np.uint8))
    assert ok
    image = "data:image/png;base64," + base64.b64encode(png.tobytes()).decode("ascii")
    with client.websocket_connect("/ws/live") as ws:
        ws.send_json({"type": "image", "image": image})
        msg = ws.receive_json()
        assert msg["type"] == "tick"
        assert msg["metrics"] is None
        assert msg["stats"]["total"] == 0
    assert len(threads) == 1
    assert threads[0].startswith("live_pose")
