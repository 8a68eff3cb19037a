import pytest

from neurostride.config import ConfigError, RepThresholds
from neurostride.reps import RepPhase, RepStateMachine


def run(machine, values):
    return sum(1 for v in values if machine.update(v))


def test_single_rep_down_then_up():
    m = RepStateMachine()
    assert run(m, [160, 140, 120, 100, 95, 100, 120, 135, 150]) == 1
    assert m.phase is RepPhase.UP


def test_dip_inside_band_counts_nothing():
    m = RepStateMachine()
    assert run(m, [160, 140, 120, 110, 110, 120, 140, 160]) == 0
    assert m.phase is RepPhase.UP


def test_first_value_cannot_transition():
    m = RepStateMachine()
    assert m.update(90.0) is False
    assert m.phase is RepPhase.UP
    assert m.previous == 90.0
    m.update(90.0)
    assert m.phase is RepPhase.DOWN


def test_noise_inside_band_does_not_oscillate():
    m = RepStateMachine()
    run(m, [160, 100])
    assert m.phase is RepPhase.DOWN
    assert run(m, [104, 106, 110, 125, 129, 104, 129]) == 0
    assert m.phase is RepPhase.DOWN


def test_thresholds_are_strict():
    m = RepStateMachine(105.0, 130.0)
    run(m, [160, 105.0])
    assert m.phase is RepPhase.UP
    run(m, [104.9])
    assert m.phase is RepPhase.DOWN
    assert m.update(130.0) is False
    assert m.update(130.1) is True


def test_none_is_ignored():
    m = RepStateMachine()
    run(m, [160, 100])
    assert m.update(None) is False
    assert m.previous == 100
    assert m.phase is RepPhase.DOWN


def test_reset():
    m = RepStateMachine()
    run(m, [160, 100])
    m.reset()
    assert m.phase is RepPhase.UP
    assert m.previous is None


def test_from_thresholds():
    m = RepStateMachine.from_thresholds(RepThresholds(down_below=90.0, up_above=150.0))
    assert run(m, [170, 100, 95, 140, 160]) == 0
    assert run(m, [85, 155]) == 1


@pytest.mark.parametrize("down,up", [(130.0, 130.0), (140.0, 130.0)])
def test_inverted_band_rejected(down, up):
    with pytest.raises(ConfigError):
        RepStateMachine(down, up)
