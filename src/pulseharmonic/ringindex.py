"""Modular indexing over fixed-capacity circular buffers."""

from __future__ import annotations

import numpy as np


def wrap(k: int, n: int) -> int:
    """Return ``k mod n`` in ``[0, n)`` using floor semantics.

    Works for negative and large offsets, e.g. ``wrap(-1, 8) == 7``.
    """
    return int(k) % int(n)


def wrap_range(start: int, count: int, n: int) -> np.ndarray:
    """Indices of ``count`` consecutive slots starting at ``start`` (may be negative)."""
    return np.mod(np.arange(int(start), int(start) + int(count)), int(n))
