"""
Session statistics: one mutating operation (record_rep) keeps good <= total.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .form import Verdict


@dataclass(frozen=True)
class SessionStats:
    total: int = 0
    good: int = 0
    warnings: int = 0

    @property
    def accuracy(self) -> Optional[float]:
        """good / total, or None before the first rep."""
        if self.total <= 0:
            return None
        return self.good / self.total

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "good": self.good,
            "warnings": self.warnings,
            "accuracy": self.accuracy,
        }


class SessionAggregator:
    def __init__(self) -> None:
        self._stats = SessionStats()

    def record_rep(self, verdict: Verdict, has_valgus: bool) -> SessionStats:
        s = self._stats
        self._stats = SessionStats(
            total=s.total + 1,
            good=s.good + (1 if verdict is Verdict.GOOD else 0),
            warnings=s.warnings + (1 if has_valgus else 0),
        )
        return self._stats

    def reset(self) -> None:
        self._stats = SessionStats()

    def snapshot(self) -> SessionStats:
        return self._stats

    def accuracy(self) -> Optional[float]:
        return self._stats.accuracy
