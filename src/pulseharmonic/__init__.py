"""Numerical core for remote photoplethysmography heart-rate estimation.

Per-frame region color sums go in; combined signal windows, a polarity
output, spectra and BPM readings come out.
"""

from .processor import HarmonicProcessor, ProcessorConfig

__all__ = [
    "HarmonicProcessor",
    "ProcessorConfig",
    "buffers",
    "combiner",
    "decimate",
    "events",
    "normalize",
    "pca",
    "phase",
    "processor",
    "ringindex",
    "service",
    "spectrum",
    "thresholds",
    "zerocross",
]

__version__ = "0.1.0"
