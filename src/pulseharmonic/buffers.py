"""Fixed-capacity sample windows shared by ingestion and analysis."""

from __future__ import annotations

import numpy as np

from .ringindex import wrap, wrap_range

# Initial per-frame duration so an unfilled window never has zero length.
INITIAL_FRAME_MS = 35.0


class SampleStore:
    """Ring buffer set for one processor.

    Args:
        datalength: capacity of the main windows (>= 2).
        bufferlength: capacity of the PCA matrix and analysis window
            (<= datalength).
    """

    def __init__(self, datalength: int, bufferlength: int) -> None:
        if datalength < 2:
            raise ValueError("datalength must be >= 2")
        if bufferlength < 2 or bufferlength > datalength:
            raise ValueError("bufferlength must be in [2, datalength]")
        self.datalength = int(datalength)
        self.bufferlength = int(bufferlength)
        self.cursor = 0
        self.pca_cursor = 0
        self.time = np.full(self.datalength, INITIAL_FRAME_MS, dtype=np.float64)
        self.signal = np.zeros(self.datalength, dtype=np.float64)
        idx = np.arange(self.datalength)
        self.polarity = np.where(idx % 4 == 0, -1.0, 1.0)
        self.slow = np.zeros(self.datalength, dtype=np.float64)
        self.pca_rgb = np.zeros((self.bufferlength, 3), dtype=np.float64)

    def advance(self) -> None:
        self.cursor = wrap(self.cursor + 1, self.datalength)

    def write_rgb_row(self, r: float, g: float, b: float) -> int:
        """Store a normalized triple at the PCA cursor and advance it."""
        pos = self.pca_cursor
        self.pca_rgb[pos] = (r, g, b)
        self.pca_cursor = wrap(pos + 1, self.bufferlength)
        return pos

    def last_position(self) -> int:
        return wrap(self.cursor - 1, self.datalength)

    def window(self) -> np.ndarray:
        """Main-window indices of the last ``bufferlength`` samples, oldest first."""
        start = self.cursor - 1 - (self.bufferlength - 1)
        return wrap_range(start, self.bufferlength, self.datalength)

    def pca_rows(self) -> np.ndarray:
        """PCA matrix rows in chronological order."""
        order = wrap_range(self.pca_cursor, self.bufferlength, self.bufferlength)
        return self.pca_rgb[order]

    def window_duration_ms(self) -> float:
        return float(np.sum(self.time[self.window()]))
