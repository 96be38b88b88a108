"""
Color Palette API Metrics
Process-local counters and latency samples, exposed at GET /metrics.
"""
import time
from collections import Counter, defaultdict
from threading import Lock
from typing import Any, Dict, List, Optional

import numpy as np

REQUESTS_TOTAL = "palette_requests_total"
SOURCE_PREFIX = "palette_source_total_"
FAILED_PREFIX = "palette_failed_total_"


def summarize_samples(samples: List[float]) -> Dict[str, float]:
    """count/mean/min/max/p50/p95 of a latency series."""
    values = np.asarray(samples, dtype=np.float64)
    p50, p95 = np.percentile(values, [50, 95])
    return {
        "count": int(values.size),
        "mean": float(values.mean()),
        "min": float(values.min()),
        "max": float(values.max()),
        "p50": float(p50),
        "p95": float(p95),
    }


class MetricsCollector:
    """Thread-safe metrics store shared by all requests; never read by the pipeline."""

    def __init__(self):
        self._lock = Lock()
        self._counters: Counter = Counter()
        self._samples: Dict[str, List[float]] = defaultdict(list)
        self._palette_sizes: Counter = Counter()
        self._started = time.monotonic()

    def increment(self, name: str, amount: int = 1):
        with self._lock:
            self._counters[name] += amount

    def request_started(self):
        self.increment(REQUESTS_TOTAL)

    def source_used(self, source: str):
        """Count a resolved image source ("url" or "upload")."""
        self.increment(f"{SOURCE_PREFIX}{source}")

    def request_failed(self, error_type: str):
        self.increment(f"{FAILED_PREFIX}{error_type}")

    def observe(self, stage: str, duration_ms: float):
        """Record one latency sample for ``stage``."""
        with self._lock:
            self._samples[f"{stage}_duration_ms"].append(duration_ms)

    def palette_requested(self, num_colors: int):
        with self._lock:
            self._palette_sizes[num_colors] += 1

    def snapshot(self) -> Dict[str, Any]:
        """Consistent copy of everything collected so far."""
        with self._lock:
            counters = dict(self._counters)
            samples = {name: list(values) for name, values in self._samples.items() if values}
            sizes = {str(size): count for size, count in sorted(self._palette_sizes.items())}
            uptime = time.monotonic() - self._started

        return {
            "uptime_seconds": uptime,
            "counters": counters,
            "timing_stats": {name: summarize_samples(values) for name, values in samples.items()},
            "palette_size_stats": sizes,
        }

    def reset(self):
        with self._lock:
            self._counters.clear()
            self._samples.clear()
            self._palette_sizes.clear()
            self._started = time.monotonic()


_metrics: Optional[MetricsCollector] = None


def get_metrics() -> MetricsCollector:
    """Get or create the process-wide collector."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def reset_metrics():
    """Clear the process-wide collector (used by tests)."""
    if _metrics is not None:
        _metrics.reset()
