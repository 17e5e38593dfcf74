"""Color channel combination for per-frame region sums."""

from __future__ import annotations

from enum import Enum
from typing import Tuple


class ColorChannel(str, Enum):
    RED = "red"
    GREEN = "green"
    BLUE = "blue"


def _safe_area(area: float) -> float:
    # An empty region reports area 0; its sums are 0 as well.
    return float(area) if area > 0 else 1.0


def normalized_rgb(
    red: float, green: float, blue: float, area: float
) -> Tuple[float, float, float]:
    """Return per-pixel mean intensities (R, G, B)."""
    a = _safe_area(area)
    return float(red) / a, float(green) / a, float(blue) / a


def chrominance_pair(r: float, g: float, b: float) -> Tuple[float, float]:
    """Two chrominance channels from normalized RGB.

    ``ch1 = R - G`` and ``ch2 = R + G - 2B``; pulsatile blood-volume changes
    move them in opposite directions, illumination changes in the same one.
    """
    return r - g, r + g - 2.0 * b


def single_channel(
    red: float, green: float, blue: float, area: float, channel: ColorChannel
) -> float:
    r, g, b = normalized_rgb(red, green, blue, area)
    if channel == ColorChannel.RED:
        return r
    if channel == ColorChannel.BLUE:
        return b
    return g
