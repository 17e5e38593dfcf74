"""Block averaging of the combined signal into a slow output window."""

from __future__ import annotations

import numpy as np

from .ringindex import wrap


class BlockAverager:
    """Averages ``block`` consecutive samples into one slow-window slot."""

    def __init__(self, block: int, capacity: int) -> None:
        if block < 1:
            raise ValueError("block must be >= 1")
        self.block = int(block)
        self.values = np.zeros(int(capacity), dtype=np.float64)
        self.cursor = 0
        self.accumulator = 0.0
        self.countdown = self.block

    def push(self, value: float) -> bool:
        """Accumulate ``value``; return True when a block average was written."""
        self.accumulator += float(value)
        self.countdown -= 1
        if self.countdown > 0:
            return False
        self.values[self.cursor] = self.accumulator / self.block
        self.cursor = wrap(self.cursor + 1, self.values.size)
        self.countdown = self.block
        self.accumulator = 0.0
        return True
