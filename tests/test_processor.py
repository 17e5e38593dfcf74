from __future__ import annotations

import numpy as np

from pulseharmonic.events import Event
from pulseharmonic.processor import HarmonicProcessor, ProcessorConfig

FS = 32.0  # frames per second -> 31.25 ms per frame
F_HZ = 1.25  # 75 BPM, exactly bin 10 of a 256-sample window


def feed_single(proc: HarmonicProcessor, n: int, f: float = F_HZ, amp: float = 2.0) -> None:
    area = 1000.0
    for i in range(n):
        g = 120.0 + amp * np.sin(2 * np.pi * f * i / FS)
        proc.write_one_color(90.0 * area, g * area, 60.0 * area, area, 1000.0 / FS)


def feed_dual(proc: HarmonicProcessor, n: int, f: float = F_HZ, amp: float = 2.0) -> None:
    area = 1000.0
    for i in range(n):
        s = amp * np.sin(2 * np.pi * f * i / FS)
        r, g, b = 80.0 + 0.3 * s, 120.0 + s, 60.0 + 0.2 * s
        proc.write_rgb(r * area, g * area, b * area, area, 1000.0 / FS)


def test_cursor_advances_modulo_datalength() -> None:
    proc = HarmonicProcessor(datalength=16, bufferlength=8)
    for m in range(1, 40):
        proc.write_one_color(1.0, 2.0 + m % 3, 3.0, 1.0, 33.0)
        assert proc.cursor == m % 16
    # most recent time value sits just behind the cursor
    proc.write_one_color(1.0, 2.0, 3.0, 1.0, 41.0)
    assert proc.store.time[proc.cursor - 1] == 41.0


def test_sinusoid_spectral_estimate_in_range() -> None:
    proc = HarmonicProcessor(256, 256)
    feed_single(proc, 512)
    res = proc.compute_frequency()
    assert not res.too_noisy
    assert abs(res.bpm - 75.0) / 75.0 < 0.02
    assert res.in_range
    assert res.spectrum.shape == (256 // 2 + 1,)
    assert proc.hr_frequency == res.bpm


def test_in_range_flag_follows_plausible_bounds() -> None:
    proc = HarmonicProcessor(256, 256, ProcessorConfig(hr_low=40.0, hr_high=60.0))
    feed_single(proc, 512)
    res = proc.compute_frequency()
    assert res.bpm is not None
    assert not res.in_range


def test_white_noise_is_too_noisy() -> None:
    proc = HarmonicProcessor(512, 512)
    rng = np.random.RandomState(3)
    for v in 120.0 + rng.randn(1024):
        proc.write_one_color(0.0, v * 100.0, 0.0, 100.0, 1000.0 / FS)
    res = proc.compute_frequency()
    assert res.too_noisy
    assert res.bpm is None
    assert res.snr_db <= proc.cfg.snr_threshold


def test_polarity_is_always_plus_or_minus_one() -> None:
    proc = HarmonicProcessor(64, 64)
    assert set(np.unique(proc.store.polarity)) == {-1.0, 1.0}
    rng = np.random.RandomState(0)
    for i in range(200):
        proc.write_one_color(0.0, 50.0 + rng.randn(), 0.0, 1.0, 30.0)
        assert set(np.unique(proc.store.polarity)) <= {-1.0, 1.0}


def test_zero_crossing_count_matches_spectral_estimate() -> None:
    proc = HarmonicProcessor(256, 256)
    feed_single(proc, 512)
    spectral = proc.compute_frequency().bpm
    counted = proc.count_frequency()
    assert spectral is not None
    assert abs(counted - spectral) / spectral < 0.05


def test_dual_channel_with_pca_projection() -> None:
    proc = HarmonicProcessor(256, 256)
    projections = []
    proc.events.connect(Event.PCA_PROJECTION, lambda arr, n: projections.append((arr, n)))
    feed_dual(proc, 512)
    plain = proc.compute_frequency()
    assert not plain.too_noisy
    assert abs(plain.bpm - 75.0) / 75.0 < 0.02
    assert projections == []

    proc.set_pca(True)
    res = proc.compute_frequency()
    assert len(projections) == 1
    assert projections[0][1] == 256
    assert not res.too_noisy
    assert abs(res.bpm - 75.0) / 75.0 < 0.02


def test_pca_falls_back_to_combined_signal_without_rgb_history() -> None:
    proc = HarmonicProcessor(256, 256, ProcessorConfig(pca=True))
    feed_single(proc, 512)
    res = proc.compute_frequency()
    assert not res.too_noisy
    assert abs(res.bpm - 75.0) / 75.0 < 0.02


def test_observers_receive_snapshots() -> None:
    proc = HarmonicProcessor(16, 8)
    signals = []
    values = []
    proc.events.connect(Event.SIGNAL, lambda arr, n: signals.append(arr))

    def on_values(*v) -> None:
        values.append(v)

    proc.events.connect(Event.ACTUAL_VALUES, on_values)
    proc.write_one_color(0.0, 10.0, 0.0, 1.0, 30.0)
    first = signals[0].copy()
    proc.write_one_color(0.0, 20.0, 0.0, 1.0, 30.0)
    assert np.array_equal(signals[0], first)
    assert signals[1] is not proc.store.signal
    assert len(values[0]) == 4
    assert values[0][1] == values[0][2] == values[0][3] == 10.0
    proc.events.disconnect(Event.ACTUAL_VALUES, on_values)
    proc.write_one_color(0.0, 30.0, 0.0, 1.0, 30.0)
    assert len(values) == 2


def test_slow_output_emitted_per_block() -> None:
    proc = HarmonicProcessor(32, 16, ProcessorConfig(strobe_factor=4))
    blocks = []
    proc.events.connect(Event.SLOW_SIGNAL, lambda arr, n: blocks.append(arr))
    for i in range(12):
        proc.write_one_color(0.0, float(i % 5), 0.0, 1.0, 30.0)
    assert len(blocks) == 3
    assert np.isclose(blocks[0][0], proc.store.signal[0:4].mean())
    assert np.isclose(blocks[-1][2], proc.store.signal[8:12].mean())


def test_spectrum_and_too_noisy_notifications() -> None:
    proc = HarmonicProcessor(64, 32)
    spectra = []
    noisy = []
    proc.events.connect(Event.SPECTRUM, lambda arr, n: spectra.append(n))
    proc.events.connect(Event.TOO_NOISY, noisy.append)
    res = proc.compute_frequency()
    # empty windows carry no power
    assert res.too_noisy
    assert spectra == [32 // 2 + 1]
    assert noisy == [res.snr_db]


def test_setters() -> None:
    proc = HarmonicProcessor(32, 16)
    proc.set_zero_crossing_target(6)
    assert proc.zero_crossing_target == 6
    proc.switch_to_channel("red")
    assert proc.channel.value == "red"
    proc.set_plausible_range(50.0, 110.0)
    assert proc.bounds == (50.0, 110.0)
    try:
        proc.set_zero_crossing_target(1)
    except ValueError:
        pass
    else:
        raise AssertionError("target below 2 accepted")


def test_pca_cursor_wraps_independently_and_projection_is_chronological() -> None:
    proc = HarmonicProcessor(301, 128, ProcessorConfig(pca=True))
    projections = []
    proc.events.connect(Event.PCA_PROJECTION, lambda arr, n: projections.append(arr))
    m = 777
    feed_dual(proc, m)
    assert proc.store.cursor == m % 301
    assert proc.store.pca_cursor == m % 128

    res = proc.compute_frequency()
    assert not res.too_noisy
    assert len(projections) == 1
    proj = projections[0]
    i = np.arange(m - 128, m)
    s = np.sin(2 * np.pi * F_HZ * i / FS)
    expected = (s - s.mean()) / s.std(ddof=1)
    # axis sign is arbitrary; order is not
    sign = np.sign(np.dot(proj, expected))
    assert np.allclose(sign * proj, expected, atol=1e-6)


def test_failing_observer_does_not_break_ingestion() -> None:
    proc = HarmonicProcessor(16, 8)
    seen = []

    def broken(arr, n) -> None:
        raise RuntimeError("observer failure")

    proc.events.connect(Event.SIGNAL, broken)
    proc.events.connect(Event.SIGNAL, lambda arr, n: seen.append(n))
    for k in range(5):
        proc.write_one_color(0.0, 10.0 + k, 0.0, 1.0, 30.0)
    assert proc.cursor == 5
    assert seen == [16] * 5
