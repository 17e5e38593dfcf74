"""Band-limited spectral peak search with SNR-weighted frequency estimate.

Power is taken as re^2 + im^2 of the real FFT over the analysis window. The
peak frequency is refined with a power-weighted centroid over
``+-half_interval`` bins, and the SNR is penalized by the fourth power of the
centroid's relative offset from the peak bin.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np
import scipy.fft

# Reported SNR is clamped to this range; the limits also stand in for a
# band with zero noise or zero signal power.
SNR_CEILING_DB = 100.0
SNR_FLOOR_DB = -100.0


class SpectrumPlan:
    """FFT workspace for a fixed window length.

    Buffers are allocated once; scipy.fft caches its transform plan per
    length, so repeated ``execute`` calls reuse it.
    """

    def __init__(self, length: int) -> None:
        self.length = int(length)
        self.n_bins = self.length // 2 + 1
        self.data = np.zeros(self.length, dtype=np.float64)
        self.power = np.zeros(self.n_bins, dtype=np.float64)

    def execute(self) -> np.ndarray:
        X = scipy.fft.rfft(self.data)
        np.add(X.real * X.real, X.imag * X.imag, out=self.power)
        return self.power


@dataclass
class SpectralResult:
    snr_db: float
    bpm: Optional[float]  # None when too noisy
    in_range: bool = False
    peak_index: Optional[int] = None
    spectrum: np.ndarray = field(default_factory=lambda: np.zeros(0))

    @property
    def too_noisy(self) -> bool:
        return self.bpm is None


def search_band(
    duration_ms: float, bpm_min: float, bpm_max: float, n_bins: int
) -> Tuple[int, int]:
    """Convert a BPM band to ``[bottom, top)`` bin indices for a window."""
    seconds = duration_ms / 1000.0
    bottom = int(bpm_min / 60.0 * seconds)
    top = int(bpm_max / 60.0 * seconds)
    bottom = min(max(bottom, 0), n_bins)
    top = min(max(top, 0), n_bins)
    return bottom, top


def find_peak(power: np.ndarray, bottom: int, top: int, half: int) -> Optional[int]:
    """Index of the strongest bin strictly inside the band, first one on ties."""
    lo = bottom + half
    hi = top - half
    if hi <= lo:
        return None
    seg = power[lo:hi]
    k = int(np.argmax(seg))
    if not seg[k] > 0.0:
        return None
    return lo + k


def ratio_db(signal_power: float, noise_power: float) -> float:
    if noise_power <= 0.0:
        return SNR_CEILING_DB if signal_power > 0.0 else 0.0
    if signal_power <= 0.0:
        return SNR_FLOOR_DB
    db = 10.0 * float(np.log10(signal_power / noise_power))
    return min(max(db, SNR_FLOOR_DB), SNR_CEILING_DB)


def band_snr_db(power: np.ndarray, peak: int, bottom: int, top: int, half: int) -> float:
    """Peak-adjacent bins are signal, the rest of ``[bottom, top)`` is noise."""
    band = power[bottom:top]
    idx = np.arange(bottom, top)
    near = np.abs(idx - peak) <= half
    return ratio_db(float(band[near].sum()), float(band[~near].sum()))


def centroid(power: np.ndarray, peak: int, half: int) -> Tuple[float, float]:
    """Return (centroid_bin, weight) over ``peak +- half``.

    weight = ((half + 1 - |peak - centroid|) / (half + 1)) ** 4
    """
    idx = np.arange(peak - half, peak + half + 1)
    p = power[idx]
    total = float(p.sum())
    if total <= 0.0:
        return float(peak), 1.0
    c = float(np.dot(idx, p)) / total
    bias = abs(peak - c)
    w = (half + 1 - bias) / (half + 1)
    return c, w ** 4


def estimate_heart_rate(
    power: np.ndarray,
    duration_ms: float,
    bpm_min: float,
    bpm_max: float,
    half: int,
    snr_threshold: float,
    bounds: Tuple[float, float],
) -> SpectralResult:
    """Pick the in-band peak and turn it into a BPM reading or a noise verdict."""
    p = np.asarray(power, dtype=np.float64)
    if duration_ms <= 0.0:
        return SpectralResult(0.0, None, spectrum=p)
    bottom, top = search_band(duration_ms, bpm_min, bpm_max, p.size)
    peak = find_peak(p, bottom, top, half)
    if peak is None:
        return SpectralResult(0.0, None, spectrum=p)
    snr = band_snr_db(p, peak, bottom, top, half)
    c, weight = centroid(p, peak, half)
    snr *= weight
    if snr > snr_threshold:
        bpm = c * 60000.0 / duration_ms
        low, high = bounds
        return SpectralResult(snr, bpm, bool(low <= bpm <= high), peak, p)
    return SpectralResult(snr, None, False, peak, p)
