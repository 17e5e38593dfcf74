"""Short moving-average filter with zero-crossing polarity output.

The polarity output lags the input by roughly ``filter_length`` samples.
"""

from __future__ import annotations

import numpy as np

from .ringindex import wrap


class PhaseDetector:
    """Zero-crossing detector driving a +1/-1 polarity output.

    Every detected sign change of the lagged filter difference toggles the
    parity; the polarity flips each time the parity returns to 0, i.e. once
    per full oscillation.
    """

    def __init__(self, filter_length: int = 5, output: float = 1.0) -> None:
        if filter_length < 2:
            raise ValueError("filter_length must be >= 2")
        self.filter_length = int(filter_length)
        self.taps = np.zeros(self.filter_length, dtype=np.float64)
        self.filtered = np.zeros(self.filter_length, dtype=np.float64)
        # zeros never form a negative product, so no crossing before real deltas
        self.lag = np.zeros(2, dtype=np.float64)
        self.parity = 0
        self.output = 1.0 if output >= 0 else -1.0
        self._pos = 0
        self._lag_pos = 0

    def push(self, value: float) -> float:
        """Feed one raw combined value and return the current polarity."""
        L = self.filter_length
        pos = self._pos
        self.taps[pos] = value
        self.filtered[pos] = float(np.sum(self.taps)) / L
        self.lag[self._lag_pos] = self.filtered[pos] - self.filtered[wrap(pos - (L - 1), L)]
        if self.lag[0] * self.lag[1] < 0.0:
            self.parity = (self.parity + 1) % 2
            if self.parity == 0:
                self.output = -self.output
        self._pos = wrap(pos + 1, L)
        self._lag_pos = wrap(self._lag_pos + 1, 2)
        return self.output
