"""
Metrics — Conversion counters and timings.

In-process registry with Prometheus text and JSON export.

## Usage

    from upload_converter.observability.metrics import metrics

    metrics.increment("conversions_total", labels={"status": "converted"})
    metrics.timing("conversion_duration_seconds", 0.42)

    output = metrics.export_prometheus()
"""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, List, Optional

Labels = Optional[Dict[str, str]]


@dataclass
class MetricPoint:
    """A single metric data point."""

    name: str
    value: float
    timestamp: float
    labels: Dict[str, str] = field(default_factory=dict)


def _labels_key(labels: Labels) -> str:
    if not labels:
        return ""
    return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))


def _labels_from_key(key: str) -> Dict[str, str]:
    labels: Dict[str, str] = {}
    if key:
        for pair in key.split(","):
            k, v = pair.split("=", 1)
            labels[k] = v
    return labels


class Counter:
    """A monotonically increasing counter."""

    def __init__(self, name: str, help_text: str = ""):
        self.name = name
        self.help_text = help_text
        self._values: Dict[str, float] = defaultdict(float)
        self._lock = Lock()

    def inc(self, value: float = 1, labels: Labels = None) -> None:
        if value < 0:
            raise ValueError("Counter can only increase")
        key = _labels_key(labels)
        with self._lock:
            self._values[key] += value

    def get(self, labels: Labels = None) -> float:
        return self._values.get(_labels_key(labels), 0)

    def total(self) -> float:
        return sum(self._values.values())

    def export(self) -> List[MetricPoint]:
        now = time.time()
        return [
            MetricPoint(self.name, value, now, _labels_from_key(key))
            for key, value in self._values.items()
        ]


class Histogram:
    """A histogram for timing distributions."""

    DEFAULT_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30, float("inf"))

    def __init__(self, name: str, help_text: str = "", buckets: Optional[tuple] = None):
        self.name = name
        self.help_text = help_text
        self.buckets = buckets or self.DEFAULT_BUCKETS
        self._counts: Dict[str, Dict[float, int]] = defaultdict(lambda: defaultdict(int))
        self._sums: Dict[str, float] = defaultdict(float)
        self._totals: Dict[str, int] = defaultdict(int)
        self._lock = Lock()

    def observe(self, value: float, labels: Labels = None) -> None:
        key = _labels_key(labels)
        with self._lock:
            self._sums[key] += value
            self._totals[key] += 1
            for bucket in self.buckets:
                if value <= bucket:
                    self._counts[key][bucket] += 1
                    break

    def count(self, labels: Labels = None) -> int:
        return self._totals.get(_labels_key(labels), 0)

    def sum(self, labels: Labels = None) -> float:
        return self._sums.get(_labels_key(labels), 0.0)

    def export(self) -> List[MetricPoint]:
        points = []
        now = time.time()

        for key in set(self._sums.keys()) | set(self._counts.keys()):
            labels = _labels_from_key(key)

            cumulative = 0
            for bucket in self.buckets:
                cumulative += self._counts[key].get(bucket, 0)
                le = "+Inf" if bucket == float("inf") else str(bucket)
                points.append(MetricPoint(f"{self.name}_bucket", cumulative, now, {**labels, "le": le}))

            points.append(MetricPoint(f"{self.name}_sum", self._sums[key], now, labels))
            points.append(MetricPoint(f"{self.name}_count", self._totals[key], now, labels))

        return points


class MetricsRegistry:
    """
    Central registry for converter metrics.

    Provides a simple interface and Prometheus export.
    """

    def __init__(self, prefix: str = "upload_converter"):
        self.prefix = prefix
        self._counters: Dict[str, Counter] = {}
        self._histograms: Dict[str, Histogram] = {}
        self._lock = Lock()

        self._register_common_metrics()

    def _register_common_metrics(self) -> None:
        self.counter("conversions_total", "Upload conversions by outcome")
        self.counter("bytes_saved_total", "Bytes saved by replacing originals")
        self.histogram("conversion_duration_seconds", "Time spent converting one upload")

    def counter(self, name: str, help_text: str = "") -> Counter:
        """Get or create a counter."""
        full_name = f"{self.prefix}_{name}"
        with self._lock:
            if full_name not in self._counters:
                self._counters[full_name] = Counter(full_name, help_text)
            return self._counters[full_name]

    def histogram(self, name: str, help_text: str = "") -> Histogram:
        """Get or create a histogram."""
        full_name = f"{self.prefix}_{name}"
        with self._lock:
            if full_name not in self._histograms:
                self._histograms[full_name] = Histogram(full_name, help_text)
            return self._histograms[full_name]

    def increment(self, name: str, value: float = 1, labels: Labels = None) -> None:
        self.counter(name).inc(value, labels)

    def timing(self, name: str, seconds: float, labels: Labels = None) -> None:
        self.histogram(name).observe(seconds, labels)

    def reset(self) -> None:
        """Drop all recorded values (metric definitions are kept)."""
        with self._lock:
            self._counters = {
                name: Counter(name, c.help_text) for name, c in self._counters.items()
            }
            self._histograms = {
                name: Histogram(name, h.help_text, h.buckets) for name, h in self._histograms.items()
            }

    def export_prometheus(self) -> str:
        """Export metrics in Prometheus text format."""
        lines = []

        for counter in self._counters.values():
            lines.append(f"# HELP {counter.name} {counter.help_text}")
            lines.append(f"# TYPE {counter.name} counter")
            for point in counter.export():
                lines.append(f"{point.name}{self._format_labels(point.labels)} {point.value}")

        for histogram in self._histograms.values():
            lines.append(f"# HELP {histogram.name} {histogram.help_text}")
            lines.append(f"# TYPE {histogram.name} histogram")
            for point in histogram.export():
                lines.append(f"{point.name}{self._format_labels(point.labels)} {point.value}")

        return "\n".join(lines)

    def export_json(self) -> Dict[str, Any]:
        """Export metrics as JSON."""
        result: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "counters": {},
            "histograms": {},
        }

        for name, counter in self._counters.items():
            result["counters"][name] = {
                _labels_key(point.labels) or "total": point.value
                for point in counter.export()
            }

        for name, histogram in self._histograms.items():
            result["histograms"][name] = {
                "sum": sum(histogram._sums.values()),
                "count": sum(histogram._totals.values()),
            }

        return result

    def _format_labels(self, labels: Dict[str, str]) -> str:
        if not labels:
            return ""
        pairs = [f'{k}="{v}"' for k, v in sorted(labels.items())]
        return "{" + ",".join(pairs) + "}"


# Global metrics instance
metrics = MetricsRegistry()
