"""Harmonic processor: streaming ingestion and on-demand heart-rate estimation.

One instance owns every window and all filter state. Calls are expected to be
serialized (ingest, ingest, ..., analyze, ingest, ...); a concurrent driver
must hold a single lock around each call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

from .buffers import SampleStore
from .combiner import ColorChannel, chrominance_pair, normalized_rgb, single_channel
from .decimate import BlockAverager
from .events import Event, Events
from .normalize import StreamingNormalizer
from .pca import pca_basis, project_first_component
from .phase import PhaseDetector
from .spectrum import SpectralResult, SpectrumPlan, estimate_heart_rate
from .thresholds import Alpha, Sex, ThresholdStatus, load_thresholds
from .zerocross import count_crossings_bpm

logger = logging.getLogger(__name__)


@dataclass
class ProcessorConfig:
    filter_length: int = 5  # phase filter taps
    strobe_factor: int = 8  # samples per slow-output block
    half_interval: int = 2  # bins on each side of the spectral peak
    snr_threshold: float = 2.0  # dB, weighted
    bpm_min: float = 42.0  # spectral search band
    bpm_max: float = 240.0
    hr_low: float = 70.0  # plausible range until thresholds are loaded
    hr_high: float = 80.0
    zero_crossing_target: int = 4
    channel: ColorChannel = ColorChannel.GREEN
    pca: bool = False


class HarmonicProcessor:
    """rPPG numerical core.

    Args:
        datalength: capacity of the streaming windows.
        bufferlength: length of the spectral analysis window (<= datalength).
        cfg: fixed per-instance parameters.
    """

    def __init__(
        self,
        datalength: int = 256,
        bufferlength: int = 256,
        cfg: Optional[ProcessorConfig] = None,
    ) -> None:
        self.cfg = cfg or ProcessorConfig()
        self.store = SampleStore(datalength, bufferlength)
        self.ch1 = StreamingNormalizer(self.store.datalength)
        self.ch2 = StreamingNormalizer(self.store.datalength)
        self.phase = PhaseDetector(self.cfg.filter_length)
        self.slow = BlockAverager(self.cfg.strobe_factor, self.store.datalength)
        self.plan = SpectrumPlan(self.store.bufferlength)
        self.events = Events()
        self.pca_enabled = bool(self.cfg.pca)
        self.channel = ColorChannel(self.cfg.channel)
        self.zero_crossing_target = 2
        self.set_zero_crossing_target(self.cfg.zero_crossing_target)
        self.bounds: Tuple[float, float] = (float(self.cfg.hr_low), float(self.cfg.hr_high))
        self.hr_frequency = 0.0
        self.snr_db = -5.0

    # ------------------------------------------------------------------
    # State views
    # ------------------------------------------------------------------

    @property
    def datalength(self) -> int:
        return self.store.datalength

    @property
    def bufferlength(self) -> int:
        return self.store.bufferlength

    @property
    def cursor(self) -> int:
        return self.store.cursor

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def write_rgb(
        self, red: float, green: float, blue: float, area: float, time_ms: float
    ) -> None:
        """Ingest one frame using the chrominance pair (and PCA bookkeeping)."""
        st = self.store
        cur = st.cursor
        r, g, b = normalized_rgb(red, green, blue, area)
        st.write_rgb_row(r, g, b)
        c1, c2 = chrominance_pair(r, g, b)
        z = self.ch1.update(cur, c1) - self.ch2.update(cur, c2)
        self._record_time(cur, time_ms)
        self._filter(cur, z)
        self.events.emit(Event.ACTUAL_VALUES, float(st.signal[cur]), r, g, b)
        st.advance()

    def write_one_color(
        self, red: float, green: float, blue: float, area: float, time_ms: float
    ) -> None:
        """Ingest one frame using the selected single channel."""
        st = self.store
        cur = st.cursor
        value = single_channel(red, green, blue, area, self.channel)
        z = self.ch1.update(cur, value)
        self._record_time(cur, time_ms)
        self._filter(cur, z)
        if self.slow.push(st.signal[cur]):
            self.events.emit_window(Event.SLOW_SIGNAL, self.slow.values)
        self.events.emit(Event.ACTUAL_VALUES, float(st.signal[cur]), value, value, value)
        st.advance()

    def _record_time(self, cur: int, time_ms: float) -> None:
        self.store.time[cur] = float(time_ms)
        self.events.emit_window(Event.TIME, self.store.time)

    def _filter(self, cur: int, z: float) -> None:
        st = self.store
        st.signal[cur] = (z + st.signal[st.last_position()]) / 2.0
        st.polarity[cur] = self.phase.push(z)
        self.events.emit_window(Event.POLARITY, st.polarity)
        self.events.emit_window(Event.SIGNAL, st.signal)

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def compute_frequency(self) -> SpectralResult:
        """Spectral heart-rate estimate over the last ``bufferlength`` samples."""
        st = self.store
        window = st.window()
        data = self.plan.data
        projected = False
        if self.pca_enabled:
            rows = st.pca_rows()
            pca = pca_basis(rows)
            if pca.ok:
                data[:] = project_first_component(rows, pca)
                projected = True
                self.events.emit_window(Event.PCA_PROJECTION, data)
            else:
                logger.debug("PCA decomposition failed, using combined signal")
        if not projected:
            data[:] = st.signal[window]
        duration_ms = st.window_duration_ms()

        power = self.plan.execute()
        self.events.emit_window(Event.SPECTRUM, power)

        result = estimate_heart_rate(
            power,
            duration_ms,
            self.cfg.bpm_min,
            self.cfg.bpm_max,
            self.cfg.half_interval,
            self.cfg.snr_threshold,
            self.bounds,
        )
        result.spectrum = power.copy()
        self.snr_db = result.snr_db
        if result.too_noisy:
            self.events.emit(Event.TOO_NOISY, result.snr_db)
        else:
            self.hr_frequency = float(result.bpm)
            self.events.emit(Event.FREQUENCY, result.bpm, result.snr_db, result.in_range)
        return result

    def count_frequency(self) -> float:
        """Zero-crossing-count estimate from the polarity window (0.0 if none)."""
        st = self.store
        bpm = count_crossings_bpm(
            st.polarity, st.time, st.last_position(), self.zero_crossing_target
        )
        if bpm > 0.0:
            self.hr_frequency = bpm
            low, high = self.bounds
            self.events.emit(Event.FREQUENCY, bpm, 0.0, bool(low <= bpm <= high))
        return bpm

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_pca(self, enabled: bool) -> None:
        self.pca_enabled = bool(enabled)

    def switch_to_channel(self, channel: ColorChannel) -> None:
        self.channel = ColorChannel(channel)

    def set_zero_crossing_target(self, value: int) -> None:
        if int(value) < 2:
            raise ValueError("zero crossing target must be >= 2")
        self.zero_crossing_target = int(value)

    def set_plausible_range(self, low: float, high: float) -> None:
        if low > high:
            raise ValueError("low must not exceed high")
        self.bounds = (float(low), float(high))

    def load_thresholds(
        self, path: Union[str, Path], sex: Sex, age: int, alpha: Alpha
    ) -> ThresholdStatus:
        """Replace the plausible range from a threshold table; bounds unchanged on error."""
        status, bounds = load_thresholds(path, sex, age, alpha)
        if status == ThresholdStatus.NO_ERROR and bounds is not None:
            self.bounds = bounds
        return status
