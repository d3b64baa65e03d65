"""
Per-frame latency measurement.

``Timer`` times one block; ``LatencyStats`` keeps a rolling window of
frame latencies so a replay or a long-running session can report how
much of the frame budget the engine uses.
"""

import time
import logging
import threading
from collections import deque
from typing import Dict, Optional

import numpy as np

logger = logging.getLogger(__name__)


class Timer:
    """Context manager measuring wall time with ``perf_counter``.

    Example:
        >>> with Timer("classify") as t:
        ...     classifier.classify(states)
        >>> t.elapsed_ms
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._started: Optional[float] = None
        self._stopped: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        self._stopped = None
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._stopped = time.perf_counter()
        return False

    @property
    def elapsed(self) -> float:
        """Seconds since entry; frozen once the block exits."""
        if self._started is None:
            return 0.0
        end = self._stopped if self._stopped is not None else time.perf_counter()
        return end - self._started

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed * 1000


class LatencyStats:
    """Rolling latency window over the most recent analyzed frames.

    Args:
        window_size: Number of frames kept for mean and percentile
        budget_ms: Latency above which a frame counts as over budget
    """

    def __init__(self, window_size: int = 100, budget_ms: float = 100.0):
        self.window_size = window_size
        self.budget_ms = budget_ms
        self._samples: deque = deque(maxlen=window_size)
        self._total = 0
        self._over_budget = 0
        self._lock = threading.Lock()

    def record(self, latency_ms: float) -> None:
        with self._lock:
            self._samples.append(latency_ms)
            self._total += 1
            if latency_ms > self.budget_ms:
                self._over_budget += 1
                logger.debug("Frame took %.2fms (budget %.0fms)", latency_ms, self.budget_ms)

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()
            self._total = 0
            self._over_budget = 0

    @property
    def count(self) -> int:
        """Frames recorded since the last clear, including ones out of the window."""
        return self._total

    @property
    def over_budget(self) -> int:
        return self._over_budget

    def summary(self) -> Dict[str, float]:
        """Mean, p95 and max over the window, in milliseconds."""
        with self._lock:
            samples = np.array(self._samples, dtype=float)
        if samples.size == 0:
            return {"frames": 0, "mean_ms": 0.0, "p95_ms": 0.0, "max_ms": 0.0}
        return {
            "frames": self._total,
            "mean_ms": round(float(samples.mean()), 3),
            "p95_ms": round(float(np.percentile(samples, 95)), 3),
            "max_ms": round(float(samples.max()), 3),
        }
