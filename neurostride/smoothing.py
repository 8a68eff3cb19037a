"""
Fixed-window moving average for one scalar metric stream.
"""
from __future__ import annotations

from collections import deque
from typing import Optional

import numpy as np

from .config import ConfigError


class MovingAverage:
    """Mean of the last `window` valid samples. None samples are skipped, not interpolated."""

    def __init__(self, window: int = 5):
        if window < 1:
            raise ConfigError(f"smoothing window must be >= 1, got {window}")
        self.window = window
        self._values: deque[float] = deque(maxlen=window)

    def __len__(self) -> int:
        return len(self._values)

    @property
    def value(self) -> Optional[float]:
        if not self._values:
            return None
        return float(np.mean(self._values))

    def push(self, value: Optional[float]) -> Optional[float]:
        if value is not None:
            self._values.append(float(value))
        return self.value

    def reset(self) -> None:
        self._values.clear()
