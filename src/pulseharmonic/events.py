"""Observer registry for processor notifications.

Array payloads are copied before delivery, so observers may keep them while
the processor keeps mutating its windows. A failing observer is logged and
skipped; it never interrupts ingestion or analysis.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, DefaultDict, List

import numpy as np

logger = logging.getLogger(__name__)


class Event(str, Enum):
    TIME = "time"
    SIGNAL = "signal"
    POLARITY = "polarity"
    PCA_PROJECTION = "pca_projection"
    SLOW_SIGNAL = "slow_signal"
    ACTUAL_VALUES = "actual_values"
    SPECTRUM = "spectrum"
    FREQUENCY = "frequency"
    TOO_NOISY = "too_noisy"


Callback = Callable[..., None]


class Events:
    def __init__(self) -> None:
        self._handlers: DefaultDict[Event, List[Callback]] = defaultdict(list)

    def connect(self, event: Event, callback: Callback) -> None:
        self._handlers[Event(event)].append(callback)

    def disconnect(self, event: Event, callback: Callback) -> None:
        handlers = self._handlers.get(Event(event), [])
        if callback in handlers:
            handlers.remove(callback)

    def emit(self, event: Event, *payload: Any) -> None:
        handlers = self._handlers.get(event)
        if not handlers:
            return
        args = tuple(p.copy() if isinstance(p, np.ndarray) else p for p in payload)
        for cb in list(handlers):
            try:
                cb(*args)
            except Exception:
                logger.exception("observer for %s failed", Event(event).value)

    def emit_window(self, event: Event, window: np.ndarray) -> None:
        """Deliver ``(copy_of_window, length)``."""
        self.emit(event, window, int(window.shape[0]))
