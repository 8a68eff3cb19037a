from dataclasses import FrozenInstanceError

import pytest

from neurostride.form import Verdict
from neurostride.session import SessionAggregator, SessionStats


def test_counts_and_accuracy():
    agg = SessionAggregator()
    for _ in range(3):
        agg.record_rep(Verdict.GOOD, False)
    agg.record_rep(Verdict.WARNING, True)
    assert agg.snapshot() == SessionStats(total=4, good=3, warnings=1)
    assert agg.accuracy() == pytest.approx(0.75)


def test_shallow_rep_without_valgus_is_not_a_warning():
    agg = SessionAggregator()
    agg.record_rep(Verdict.WARNING, False)
    assert agg.snapshot() == SessionStats(total=1, good=0, warnings=0)


def test_accuracy_undefined_without_reps():
    agg = SessionAggregator()
    assert agg.accuracy() is None
    assert agg.snapshot().to_dict() == {"total": 0, "good": 0, "warnings": 0, "accuracy": None}


def test_reset_is_idempotent():
    agg = SessionAggregator()
    agg.record_rep(Verdict.GOOD, True)
    agg.reset()
    once = agg.snapshot()
    agg.reset()
    assert agg.snapshot() == once == SessionStats()


def test_snapshot_is_immutable_copy():
    agg = SessionAggregator()
    before = agg.snapshot()
    agg.record_rep(Verdict.GOOD, False)
    assert before.total == 0
    with pytest.raises(FrozenInstanceError):
        before.total = 5
