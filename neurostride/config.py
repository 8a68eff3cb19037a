"""
Engine configuration: thresholds for metrics, cues, smoothing and rep counting.
Invalid configuration is fatal; the engine refuses to start rather than guess.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "NEUROSTRIDE_CONFIG"
MODES = ("squat", "walk")


class ConfigError(ValueError):
    """Raised when engine configuration is unusable."""


@dataclass(frozen=True)
class ValgusRatios:
    # Lenient by default to avoid false positives.
    knee_hip: float = 0.5
    knee_ankle: float = 0.65


STRICT_VALGUS = ValgusRatios(knee_hip=0.7, knee_ankle=0.8)


@dataclass(frozen=True)
class SquatThresholds:
    # Depth label buckets (knee angle, deg).
    deep_below: float = 80.0
    shallow_from: float = 135.0
    # Wider dead zone for the cue text so it does not flicker.
    cue_deep_below: float = 60.0
    cue_shallow_above: float = 140.0


@dataclass(frozen=True)
class GaitThresholds:
    # Step width as a percentage of the reference width.
    step_width_min: float = 4.0
    step_width_max: float = 20.0
    symmetry_warn_below: float = 80.0


@dataclass(frozen=True)
class RepThresholds:
    # Hysteresis band on the smoothed signal: Up -> Down below, Down -> Up above.
    down_below: float = 105.0
    up_above: float = 130.0


@dataclass(frozen=True)
class EngineConfig:
    smoothing_window: int = 5
    min_confidence: float = 0.3
    reference_width: float = 1280.0
    valgus: ValgusRatios = field(default_factory=ValgusRatios)
    squat: SquatThresholds = field(default_factory=SquatThresholds)
    gait: GaitThresholds = field(default_factory=GaitThresholds)
    # Modes without an entry do not count reps.
    rep_thresholds: Dict[str, RepThresholds] = field(
        default_factory=lambda: {"squat": RepThresholds()}
    )

    def validate(self) -> "EngineConfig":
        if self.smoothing_window < 1:
            raise ConfigError(f"smoothing_window must be >= 1, got {self.smoothing_window}")
        if not 0.0 <= self.min_confidence <= 1.0:
            raise ConfigError(f"min_confidence must be within [0, 1], got {self.min_confidence}")
        if self.reference_width <= 0:
            raise ConfigError(f"reference_width must be > 0, got {self.reference_width}")
        if self.valgus.knee_hip <= 0 or self.valgus.knee_ankle <= 0:
            raise ConfigError(f"valgus ratios must be > 0, got {self.valgus}")
        sq = self.squat
        if not sq.deep_below < sq.shallow_from:
            raise ConfigError(
                f"squat depth boundaries out of order: deep_below={sq.deep_below} "
                f"shallow_from={sq.shallow_from}"
            )
        if not (sq.cue_deep_below <= sq.deep_below and sq.cue_shallow_above >= sq.shallow_from):
            raise ConfigError(
                "squat cue dead zone must enclose the depth band: "
                f"cue_deep_below={sq.cue_deep_below} cue_shallow_above={sq.cue_shallow_above}"
            )
        gt = self.gait
        if gt.step_width_min < 0 or gt.step_width_min > gt.step_width_max:
            raise ConfigError(
                f"step width range invalid: [{gt.step_width_min}, {gt.step_width_max}]"
            )
        for mode, th in self.rep_thresholds.items():
            if mode not in MODES:
                raise ConfigError(f"rep thresholds given for unknown mode {mode!r}")
            if th.down_below >= th.up_above:
                raise ConfigError(
                    f"{mode}: rep thresholds need down_below < up_above, "
                    f"got {th.down_below} >= {th.up_above}"
                )
        return self


def _section(cls, raw: Any, default):
    """Overlay a JSON object onto a dataclass default, rejecting unknown keys."""
    if raw is None:
        return default
    if not isinstance(raw, dict):
        raise ConfigError(f"{cls.__name__} section must be an object")
    known = {f.name for f in fields(cls)}
    unknown = set(raw) - known
    if unknown:
        raise ConfigError(f"{cls.__name__}: unknown keys {sorted(unknown)}")
    try:
        return replace(default, **{k: float(v) for k, v in raw.items()})
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{cls.__name__}: {e}") from e


def config_from_dict(raw: Dict[str, Any]) -> EngineConfig:
    if not isinstance(raw, dict):
        raise ConfigError("config root must be an object")
    unknown = set(raw) - {f.name for f in fields(EngineConfig)}
    if unknown:
        raise ConfigError(f"unknown config keys {sorted(unknown)}")
    base = EngineConfig()
    window = raw.get("smoothing_window", base.smoothing_window)
    if isinstance(window, bool) or not (
        isinstance(window, int) or (isinstance(window, float) and window.is_integer())
    ):
        raise ConfigError(f"smoothing_window must be a whole number, got {window!r}")
    window = int(window)
    try:
        min_conf = float(raw.get("min_confidence", base.min_confidence))
        ref_width = float(raw.get("reference_width", base.reference_width))
    except (TypeError, ValueError) as e:
        raise ConfigError(str(e)) from e

    valgus_raw = raw.get("valgus")
    if valgus_raw == "strict":
        valgus = STRICT_VALGUS
    else:
        valgus = _section(ValgusRatios, valgus_raw, base.valgus)

    rep_thresholds = dict(base.rep_thresholds)
    reps_raw = raw.get("rep_thresholds")
    if reps_raw is not None:
        if not isinstance(reps_raw, dict):
            raise ConfigError("rep_thresholds must be an object keyed by mode")
        for mode, th in reps_raw.items():
            if th is None:
                rep_thresholds.pop(mode, None)
            else:
                rep_thresholds[mode] = _section(
                    RepThresholds, th, rep_thresholds.get(mode, RepThresholds())
                )

    cfg = EngineConfig(
        smoothing_window=window,
        min_confidence=min_conf,
        reference_width=ref_width,
        valgus=valgus,
        squat=_section(SquatThresholds, raw.get("squat"), base.squat),
        gait=_section(GaitThresholds, raw.get("gait"), base.gait),
        rep_thresholds=rep_thresholds,
    )
    return cfg.validate()


def load_config(path: Optional[str | Path] = None) -> EngineConfig:
    """
    Load engine config from JSON. Falls back to $NEUROSTRIDE_CONFIG, then defaults.
    A named file that is missing or malformed is an error.
    """
    if path is None:
        path = os.getenv(CONFIG_ENV_VAR) or None
    if path is None:
        return EngineConfig().validate()
    p = Path(path).expanduser()
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"cannot read config {p}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"malformed config {p}: {e}") from e
    cfg = config_from_dict(raw)
    logger.info("config: loaded %s", p)
    return cfg


def config_to_dict(cfg: EngineConfig) -> Dict[str, Any]:
    return {
        "smoothing_window": cfg.smoothing_window,
        "min_confidence": cfg.min_confidence,
        "reference_width": cfg.reference_width,
        "valgus": {"knee_hip": cfg.valgus.knee_hip, "knee_ankle": cfg.valgus.knee_ankle},
        "squat": {f.name: getattr(cfg.squat, f.name) for f in fields(cfg.squat)},
        "gait": {f.name: getattr(cfg.gait, f.name) for f in fields(cfg.gait)},
        "rep_thresholds": {
            mode: {"down_below": th.down_below, "up_above": th.up_above}
            for mode, th in cfg.rep_thresholds.items()
        },
    }
