"""
Rep quality grading and the display form tier used to colour the skeleton.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from .config import EngineConfig
from .metrics import DepthLabel, MetricsSnapshot


class Verdict(str, Enum):
    GOOD = "Good"
    WARNING = "Warning"


class FormStatus(str, Enum):
    OK = "ok"
    NEEDS_WORK = "needs_work"
    RISK = "risk"


_GOOD_DEPTHS = (DepthLabel.MODERATE, DepthLabel.DEEP)


def classify_rep(snapshot: MetricsSnapshot) -> Verdict:
    # Width and symmetry feed cues only; they never grade a rep.
    if not snapshot.has_knee_valgus and snapshot.depth_label in _GOOD_DEPTHS:
        return Verdict.GOOD
    return Verdict.WARNING


def form_status(
    snapshot: Optional[MetricsSnapshot],
    config: Optional[EngineConfig] = None,
) -> FormStatus:
    if snapshot is None:
        return FormStatus.OK
    cfg = config or EngineConfig()
    if snapshot.has_knee_valgus:
        return FormStatus.RISK
    if snapshot.depth_label is DepthLabel.SHALLOW:
        return FormStatus.NEEDS_WORK
    if snapshot.symmetry is not None and snapshot.symmetry < cfg.gait.symmetry_warn_below:
        return FormStatus.NEEDS_WORK
    return FormStatus.OK
