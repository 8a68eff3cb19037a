"""
Rep detection: a two-state hysteresis machine over one smoothed scalar signal.
For squats the signal is the knee angle; Up is standing, Down is the bottom phase.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .config import ConfigError, RepThresholds

logger = logging.getLogger(__name__)


class RepPhase(str, Enum):
    UP = "Up"
    DOWN = "Down"


class RepStateMachine:
    """
    Up -> Down when the signal drops below down_below.
    Down -> Up when it rises above up_above; that transition completes a rep.
    No transition fires until a previous value exists.
    """

    def __init__(self, down_below: float = 105.0, up_above: float = 130.0):
        if down_below >= up_above:
            raise ConfigError(
                f"rep thresholds need down_below < up_above, got {down_below} >= {up_above}"
            )
        self.down_below = down_below
        self.up_above = up_above
        self.phase = RepPhase.UP
        self.previous: Optional[float] = None

    @classmethod
    def from_thresholds(cls, th: RepThresholds) -> "RepStateMachine":
        return cls(down_below=th.down_below, up_above=th.up_above)

    def reset(self) -> None:
        self.phase = RepPhase.UP
        self.previous = None

    def update(self, value: Optional[float]) -> bool:
        """Advance with this tick's smoothed value. Returns True when a rep completes."""
        if value is None:
            return False
        if self.previous is None:
            self.previous = value
            return False
        completed = False
        if self.phase is RepPhase.UP and value < self.down_below:
            self.phase = RepPhase.DOWN
            logger.debug("reps: Up -> Down at %.1f", value)
        elif self.phase is RepPhase.DOWN and value > self.up_above:
            self.phase = RepPhase.UP
            completed = True
            logger.debug("reps: Down -> Up at %.1f", value)
        self.previous = value
        return completed


@dataclass(frozen=True)
class RepRecord:
    rep: int
    tick: int
    verdict: str
    has_knee_valgus: bool
    bottom_knee_angle: Optional[float]
    bottom_depth_label: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "rep": self.rep,
            "tick": self.tick,
            "verdict": self.verdict,
            "has_knee_valgus": self.has_knee_valgus,
            "bottom_knee_angle": self.bottom_knee_angle,
            "bottom_depth_label": self.bottom_depth_label,
        }
