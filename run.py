#!/usr/bin/env python3
"""
NeuroStride motion analysis: live webcam, video file, or recorded landmarks.
Usage:
  Live:      python run.py --live [--camera 0] [--mode squat|walk]
  Video:     python run.py --video path/to/video.mp4 [--no-window]
  Landmarks: python run.py --landmarks frames.json [--mode walk]
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional

# Load .env so NEUROSTRIDE_CONFIG / NEUROSTRIDE_MODEL_DIR can be set there.
from dotenv import load_dotenv

load_dotenv()
load_dotenv(Path(__file__).resolve().parent / ".env")

from neurostride.config import STRICT_VALGUS, ConfigError, EngineConfig, load_config
from neurostride.engine import MotionEngine
from neurostride.landmarks import pose_frame_from_dicts


def replay_landmarks(
    frames: list[Any],
    mode: str = "squat",
    config: Optional[EngineConfig] = None,
    width: Optional[float] = None,
) -> dict[str, Any]:
    """
    Feed recorded frames through a fresh engine.
    Each frame is a list of landmark dicts, or null for a tick with no subject.
    """
    engine = MotionEngine(config, mode)
    for item in frames:
        engine.tick(pose_frame_from_dicts(item, width=width))
    return engine.summary()


def _load_frames(path: str) -> tuple[list[Any], Optional[float]]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        return list(data.get("frames", [])), data.get("width")
    if isinstance(data, list):
        return data, None
    raise ValueError("landmark file must be a list of frames or an object with 'frames'")


def main() -> None:
    ap = argparse.ArgumentParser(description="Squat and gait form analysis from pose keypoints")
    ap.add_argument("--video", type=str, default=None, help="Path to video file")
    ap.add_argument("--live", action="store_true", help="Use live webcam")
    ap.add_argument("--landmarks", type=str, default=None, help="JSON file of recorded landmark frames")
    ap.add_argument("--camera", type=int, default=0, help="Camera device id (default 0)")
    ap.add_argument("--mode", choices=("squat", "walk"), default="squat", help="Exercise mode")
    ap.add_argument("--config", type=str, default=None, help="Engine config JSON (default: $NEUROSTRIDE_CONFIG)")
    ap.add_argument("--strict-valgus", action="store_true", help="Use the stricter knee valgus ratios")
    ap.add_argument("--no-window", action="store_true", help="Process video without a display window")
    ap.add_argument("--log-level", default="INFO", help="Logging level (default INFO)")
    args = ap.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    sources = [s for s in (args.video, args.live or None, args.landmarks) if s]
    if len(sources) != 1:
        print("Error: provide exactly one of --video PATH, --live or --landmarks PATH", file=sys.stderr)
        sys.exit(1)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)
    if args.strict_valgus:
        config = replace(config, valgus=STRICT_VALGUS)

    if args.landmarks:
        if not os.path.isfile(args.landmarks):
            print(f"Error: landmark file not found: {args.landmarks}", file=sys.stderr)
            sys.exit(1)
        try:
            frames, width = _load_frames(args.landmarks)
            summary = replay_landmarks(frames, args.mode, config, width)
        except (ValueError, json.JSONDecodeError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(json.dumps(summary, indent=2))
        return

    from neurostride.live import run_live

    if args.live:
        summary = run_live(args.camera, args.mode, config)
    else:
        if not os.path.isfile(args.video):
            print(f"Error: video file not found: {args.video}", file=sys.stderr)
            sys.exit(1)
        summary = run_live(args.video, args.mode, config, mirror=False, show=not args.no_window)
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
