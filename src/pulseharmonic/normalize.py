"""Streaming z-score normalization over a fixed window."""

from __future__ import annotations

import numpy as np

# Relative floor below which the window is treated as constant.
STD_FLOOR = 1e-9


class StreamingNormalizer:
    """Running mean with a full-window standard deviation.

    The mean is updated incrementally from the value being overwritten, so it
    always describes exactly the current window contents. The standard
    deviation is recomputed over the whole window on every sample.
    """

    def __init__(self, length: int) -> None:
        self.length = int(length)
        self.values = np.zeros(self.length, dtype=np.float64)
        self.mean = 0.0
        self.std = 0.0

    def update(self, position: int, value: float) -> float:
        """Write ``value`` at ``position`` and return its z-score.

        Returns 0.0 when the window is constant (std below the floor).
        """
        value = float(value)
        self.mean += (value - float(self.values[position])) / self.length
        self.values[position] = value
        dev = self.values - self.mean
        self.std = float(np.sqrt(np.dot(dev, dev) / (self.length - 1)))
        if self.std <= STD_FLOOR * max(1.0, abs(self.mean)):
            return 0.0
        return (value - self.mean) / self.std
