import json

import pytest

from neurostride.config import (
    CONFIG_ENV_VAR,
    STRICT_VALGUS,
    ConfigError,
    EngineConfig,
    GaitThresholds,
    SquatThresholds,
    config_from_dict,
    config_to_dict,
    load_config,
)


def test_defaults_are_valid():
    cfg = EngineConfig().validate()
    assert cfg.smoothing_window == 5
    assert cfg.rep_thresholds["squat"].down_below == 105.0
    assert cfg.rep_thresholds["squat"].up_above == 130.0
    assert cfg.valgus.knee_hip == 0.5
    assert cfg.valgus.knee_ankle == 0.65
    assert "walk" not in cfg.rep_thresholds


@pytest.mark.parametrize(
    "cfg",
    [
        EngineConfig(smoothing_window=0),
        EngineConfig(min_confidence=1.5),
        EngineConfig(reference_width=0),
        EngineConfig(squat=SquatThresholds(deep_below=135.0, shallow_from=80.0)),
        EngineConfig(squat=SquatThresholds(cue_deep_below=90.0)),
        EngineConfig(gait=GaitThresholds(step_width_min=25.0, step_width_max=20.0)),
    ],
)
def test_invalid_configs(cfg):
    with pytest.raises(ConfigError):
        cfg.validate()


def test_from_dict_overrides():
    cfg = config_from_dict({
        "smoothing_window": 7,
        "valgus": "strict",
        "squat": {"deep_below": 75},
        "rep_thresholds": {"squat": {"down_below": 100}, "walk": {"down_below": 120, "up_above": 160}},
    })
    assert cfg.smoothing_window == 7
    assert cfg.valgus == STRICT_VALGUS
    assert cfg.squat.deep_below == 75.0
    assert cfg.squat.shallow_from == 135.0
    assert cfg.rep_thresholds["squat"].down_below == 100.0
    assert cfg.rep_thresholds["squat"].up_above == 130.0
    assert cfg.rep_thresholds["walk"].up_above == 160.0


def test_from_dict_accepts_integral_float_window():
    assert config_from_dict({"smoothing_window": 7.0}).smoothing_window == 7


def test_from_dict_can_disable_rep_counting():
    cfg = config_from_dict({"rep_thresholds": {"squat": None}})
    assert cfg.rep_thresholds == {}


@pytest.mark.parametrize(
    "raw",
    [
        {"squat": {"depth": 80}},
        {"rep_thresholds": {"squat": {"down_below": 140}}},
        {"rep_thresholds": {"lunge": {"down_below": 90}}},
        {"smoothing_window": "five"},
        {"smoothing_window": 2.7},
        {"smoothing_window": True},
        {"smoothing_windw": 7},
        {"valgus_ratios": "strict"},
        {"gait": [1, 2]},
        [],
    ],
)
def test_from_dict_rejects(raw):
    with pytest.raises(ConfigError):
        config_from_dict(raw)


def test_load_config_file(tmp_path):
    p = tmp_path / "engine.json"
    p.write_text(json.dumps({"reference_width": 1920}))
    assert load_config(p).reference_width == 1920.0


def test_load_config_env(tmp_path, monkeypatch):
    p = tmp_path / "engine.json"
    p.write_text(json.dumps({"min_confidence": 0.5}))
    monkeypatch.setenv(CONFIG_ENV_VAR, str(p))
    assert load_config().min_confidence == 0.5


def test_load_config_defaults_without_path(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    assert load_config() == EngineConfig()


def test_load_config_errors(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.json")
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    with pytest.raises(ConfigError):
        load_config(bad)


def test_round_trip_through_dict():
    cfg = config_from_dict({"valgus": "strict", "rep_thresholds": {"walk": {}}})
    assert config_from_dict(config_to_dict(cfg)) == cfg
