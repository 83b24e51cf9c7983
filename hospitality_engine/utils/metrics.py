"""
Prometheus Metrics

In-process metrics exported in Prometheus text format at /metrics:
- HTTP request metrics (count, duration)
- Engine metrics (availability verdicts, quotes, pricing faults, commit conflicts)
"""

from typing import Dict, List
import time
from collections import defaultdict
from threading import Lock


class Counter:
    """Simple counter metric."""

    metric_type = "counter"

    def __init__(self, name: str, description: str, labels: tuple = ()):
        self.name = name
        self.description = description
        self.labels = labels
        self._values: Dict[tuple, float] = defaultdict(float)
        self._lock = Lock()

    def inc(self, value: float = 1, **label_values):
        """Increment counter."""
        key = tuple(label_values.get(l, '') for l in self.labels)
        with self._lock:
            self._values[key] += value

    def get_all(self) -> Dict[tuple, float]:
        with self._lock:
            return dict(self._values)

    def render(self) -> List[str]:
        return [
            f"{self.name}{_label_str(self.labels, key)} {value}"
            for key, value in sorted(self.get_all().items())
        ]


class Histogram:
    """Simple histogram metric."""

    metric_type = "histogram"
    DEFAULT_BUCKETS = (0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, float('inf'))

    def __init__(self, name: str, description: str, labels: tuple = (), buckets: tuple = None):
        self.name = name
        self.description = description
        self.labels = labels
        self.buckets = buckets or self.DEFAULT_BUCKETS
        self._counts: Dict[tuple, Dict[float, int]] = defaultdict(lambda: defaultdict(int))
        self._sums: Dict[tuple, float] = defaultdict(float)
        self._totals: Dict[tuple, int] = defaultdict(int)
        self._lock = Lock()

    def observe(self, value: float, **label_values):
        """Record an observation."""
        key = tuple(label_values.get(l, '') for l in self.labels)
        with self._lock:
            self._sums[key] += value
            self._totals[key] += 1
            for bucket in self.buckets:
                if value <= bucket:
                    self._counts[key][bucket] += 1

    def time(self, **label_values):
        """Context manager to time a block of code."""
        return _HistogramTimer(self, label_values)

    def get_all(self) -> Dict:
        with self._lock:
            return {
                'counts': {k: dict(v) for k, v in self._counts.items()},
                'sums': dict(self._sums),
                'totals': dict(self._totals)
            }

    def render(self) -> List[str]:
        data = self.get_all()
        lines = []
        for key in sorted(data['totals']):
            counts = data['counts'].get(key, {})
            for bucket in self.buckets:
                le = "+Inf" if bucket == float('inf') else repr(bucket)
                extra = {"le": le}
                lines.append(
                    f"{self.name}_bucket{_label_str(self.labels, key, extra)} {counts.get(bucket, 0)}"
                )
            lines.append(f"{self.name}_sum{_label_str(self.labels, key)} {data['sums'][key]}")
            lines.append(f"{self.name}_count{_label_str(self.labels, key)} {data['totals'][key]}")
        return lines


class _HistogramTimer:
    """Context manager for timing code blocks."""

    def __init__(self, histogram: Histogram, label_values: dict):
        self.histogram = histogram
        self.label_values = label_values
        self.start_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.perf_counter() - self.start_time
        self.histogram.observe(duration, **self.label_values)


def _label_str(names: tuple, values: tuple, extra: dict = None) -> str:
    pairs = list(zip(names, values))
    if extra:
        pairs.extend(extra.items())
    if not pairs:
        return ""
    return "{" + ",".join(f'{k}="{v}"' for k, v in pairs) + "}"


# ================================
# APPLICATION METRICS
# ================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labels=("method", "path", "status_code")
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    labels=("method", "path")
)

availability_checks_total = Counter(
    "availability_checks_total",
    "Availability checks evaluated",
    labels=("resource_kind", "verdict")
)

quotes_total = Counter(
    "quotes_total",
    "Price quotes computed",
    labels=("resource_kind",)
)

pricing_faults_total = Counter(
    "pricing_faults_total",
    "Quotes that failed to resolve while availability succeeded",
    labels=("resource_kind",)
)

reservation_commits_total = Counter(
    "reservation_commits_total",
    "Reservation commit attempts",
    labels=("outcome",)
)

engine_duration_seconds = Histogram(
    "engine_duration_seconds",
    "Time spent evaluating the availability & pricing engine",
    labels=("operation",)
)

REGISTRY = (
    http_requests_total,
    http_request_duration_seconds,
    availability_checks_total,
    quotes_total,
    pricing_faults_total,
    reservation_commits_total,
    engine_duration_seconds,
)


def format_prometheus_metrics() -> str:
    """Format all metrics in Prometheus text format."""
    lines = []
    for metric in REGISTRY:
        lines.append(f"# HELP {metric.name} {metric.description}")
        lines.append(f"# TYPE {metric.name} {metric.metric_type}")
        lines.extend(metric.render())
    return "\n".join(lines) + "\n"


# ================================
# CONVENIENCE FUNCTIONS
# ================================

def record_http_request(method: str, path: str, status_code: int, duration: float):
    """Record an HTTP request."""
    http_requests_total.inc(method=method, path=path, status_code=str(status_code))
    http_request_duration_seconds.observe(duration, method=method, path=path)


def record_availability_check(resource_kind: str, is_available: bool):
    verdict = "available" if is_available else "unavailable"
    availability_checks_total.inc(resource_kind=resource_kind, verdict=verdict)


def record_quote(resource_kind: str):
    quotes_total.inc(resource_kind=resource_kind)


def record_pricing_fault(resource_kind: str):
    pricing_faults_total.inc(resource_kind=resource_kind)


def record_reservation_commit(outcome: str):
    """outcome: committed | conflict | error"""
    reservation_commits_total.inc(outcome=outcome)
