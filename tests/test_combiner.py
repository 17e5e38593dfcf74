from __future__ import annotations

import numpy as np

from pulseharmonic.combiner import (
    ColorChannel,
    chrominance_pair,
    normalized_rgb,
    single_channel,
)


def test_chrominance_pair_from_region_sums() -> None:
    r, g, b = normalized_rgb(2000, 1500, 500, 10)
    assert (r, g, b) == (200.0, 150.0, 50.0)
    ch1, ch2 = chrominance_pair(r, g, b)
    assert np.isclose(ch1, 50.0)
    assert np.isclose(ch2, 200.0 + 150.0 - 100.0)


def test_single_channel_selection_and_empty_region() -> None:
    assert single_channel(10, 20, 30, 10, ColorChannel.RED) == 1.0
    assert single_channel(10, 20, 30, 10, ColorChannel.GREEN) == 2.0
    assert single_channel(10, 20, 30, 10, ColorChannel.BLUE) == 3.0
    # zero area must not raise
    assert single_channel(0, 0, 0, 0, ColorChannel.GREEN) == 0.0
