"""
Motion analysis engine: one tick in, metrics snapshot and rep/session updates out.

Per tick: adapter -> metrics -> smoother (knee angle) -> rep state machine ->
form classifier -> session aggregator. Mode changes and resets clear all
per-session state under the same lock as tick processing.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import Any, Optional

from .config import EngineConfig
from .form import classify_rep
from .landmarks import PoseFrame
from .metrics import DepthLabel, MetricsSnapshot, Mode, compute_metrics
from .reps import RepPhase, RepRecord, RepStateMachine
from .session import SessionAggregator, SessionStats
from .smoothing import MovingAverage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickResult:
    snapshot: Optional[MetricsSnapshot]
    smoothed_angle: Optional[float]
    phase: RepPhase
    rep: Optional[RepRecord]
    stats: SessionStats

    def to_dict(self) -> dict[str, Any]:
        return {
            "metrics": self.snapshot.to_dict() if self.snapshot else None,
            "smoothed_angle": self.smoothed_angle,
            "phase": self.phase.value,
            "rep": self.rep.to_dict() if self.rep else None,
            "stats": self.stats.to_dict(),
        }


class MotionEngine:
    """
    Single-subject engine for one tracking session.
    tick, reset and set_mode are serialised; a tick never sees a half-done reset.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        mode: Mode | str = Mode.SQUAT,
    ):
        self.config = (config or EngineConfig()).validate()
        self._lock = threading.Lock()
        self._mode = Mode.parse(mode)
        self._smoother = MovingAverage(self.config.smoothing_window)
        self._machine: Optional[RepStateMachine] = None
        self._aggregator = SessionAggregator()
        self._reps: list[RepRecord] = []
        self._ticks = 0
        self._last_depth = DepthLabel.UNKNOWN
        self._bottom: Optional[MetricsSnapshot] = None
        self._valgus_in_rep = False
        self._clear()

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def stats(self) -> SessionStats:
        return self._aggregator.snapshot()

    @property
    def phase(self) -> RepPhase:
        return self._machine.phase if self._machine else RepPhase.UP

    @property
    def reps(self) -> tuple[RepRecord, ...]:
        return tuple(self._reps)

    def _clear(self) -> None:
        th = self.config.rep_thresholds.get(self._mode.value)
        self._machine = RepStateMachine.from_thresholds(th) if th else None
        self._smoother.reset()
        self._aggregator.reset()
        self._reps.clear()
        self._ticks = 0
        self._last_depth = DepthLabel.UNKNOWN
        self._bottom = None
        self._valgus_in_rep = False

    def reset(self) -> None:
        with self._lock:
            self._clear()
        logger.info("engine: session reset (mode=%s)", self._mode.value)

    def set_mode(self, mode: Mode | str) -> None:
        new_mode = Mode.parse(mode)
        with self._lock:
            self._mode = new_mode
            self._clear()
        logger.info("engine: mode set to %s", new_mode.value)

    def tick(self, frame: Optional[PoseFrame]) -> TickResult:
        with self._lock:
            return self._tick_locked(frame)

    def _tick_locked(self, frame: Optional[PoseFrame]) -> TickResult:
        self._ticks += 1
        if frame is None:
            logger.debug("engine: tick %s has no subject", self._ticks)
            return TickResult(None, self._smoother.value if self._machine else None,
                              self.phase, None, self._aggregator.snapshot())

        snap = compute_metrics(frame, self._mode, self.config, self._last_depth)
        self._last_depth = snap.depth_label

        smoothed: Optional[float] = None
        rep: Optional[RepRecord] = None
        if self._machine is not None:
            self._track_bottom(snap)
            if snap.knee_angle_avg is not None:
                smoothed = self._smoother.push(snap.knee_angle_avg)
                if self._machine.update(smoothed):
                    rep = self._complete_rep(snap)
                elif self._machine.phase is RepPhase.UP and smoothed >= self._machine.up_above:
                    # Still standing: the next rep starts from here.
                    self._bottom = None
                    self._valgus_in_rep = False
            else:
                smoothed = self._smoother.value

        return TickResult(snap, smoothed, self.phase, rep, self._aggregator.snapshot())

    def _track_bottom(self, snap: MetricsSnapshot) -> None:
        """Keep the deepest snapshot since the subject left the standing band."""
        if snap.has_knee_valgus:
            self._valgus_in_rep = True
        angle = snap.knee_angle_avg
        if angle is None:
            return
        if (
            self._bottom is None
            or self._bottom.knee_angle_avg is None
            or angle < self._bottom.knee_angle_avg
        ):
            self._bottom = snap

    def _complete_rep(self, current: MetricsSnapshot) -> RepRecord:
        bottom = self._bottom or current
        summary = replace(bottom, has_knee_valgus=bottom.has_knee_valgus or self._valgus_in_rep)
        verdict = classify_rep(summary)
        stats = self._aggregator.record_rep(verdict, summary.has_knee_valgus)
        rep = RepRecord(
            rep=stats.total,
            tick=self._ticks,
            verdict=verdict.value,
            has_knee_valgus=summary.has_knee_valgus,
            bottom_knee_angle=summary.knee_angle_avg,
            bottom_depth_label=summary.depth_label.value,
        )
        self._reps.append(rep)
        self._bottom = None
        self._valgus_in_rep = False
        logger.info(
            "engine: rep %s (tick=%s verdict=%s depth=%s bottom_knee=%s valgus=%s)",
            rep.rep, rep.tick, rep.verdict, rep.bottom_depth_label,
            None if rep.bottom_knee_angle is None else round(rep.bottom_knee_angle, 1),
            rep.has_knee_valgus,
        )
        return rep

    def summary(self) -> dict[str, Any]:
        with self._lock:
            return {
                "mode": self._mode.value,
                "ticks": self._ticks,
                "stats": self._aggregator.snapshot().to_dict(),
                "reps": [r.to_dict() for r in self._reps],
            }

