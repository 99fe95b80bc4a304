"""
Metric accumulators shared by every iteration of a run.

- Trend: duration distribution (avg, min, max, med, percentiles)
- Rate: fraction of truthy observations
- Checks: pass/fail counters per named check

RunMetrics bundles the accumulators a run needs and is what the worker
records into. All accumulators are append-only and lock-protected so
concurrent users never lose an update. When given a CollectorRegistry,
RunMetrics also mirrors observations into Prometheus collectors.
"""

import logging
import math
import threading
from typing import Any, Iterable, Optional, Protocol

from prometheus_client import CollectorRegistry, Counter, Histogram

logger = logging.getLogger(__name__)

DEFAULT_PERCENTILES = ("90", "95", "99")

DURATION_BUCKETS_SECONDS = [0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 5.7, 10.0, 30.0]


class MetricsRecorder(Protocol):
    """What the iteration worker needs from the metrics layer"""

    def record_duration(self, ms: float) -> None: ...

    def record_outcome(self, failed: bool) -> None: ...

    def record_check(self, name: str, passed: bool) -> None: ...


def percentile(sorted_values: list[float], pct: float) -> float:
    """Percentile with linear interpolation between closest ranks"""
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return sorted_values[0]

    rank = (pct / 100.0) * (len(sorted_values) - 1)
    lower = math.floor(rank)
    upper = math.ceil(rank)
    if lower == upper:
        return sorted_values[int(rank)]
    weight = rank - lower
    return sorted_values[lower] + (sorted_values[upper] - sorted_values[lower]) * weight


class Trend:
    """Distribution accumulator for latencies in milliseconds"""

    def __init__(self, name: str):
        self.name = name
        self._values: list[float] = []
        self._lock = threading.Lock()

    def add(self, value: float) -> None:
        with self._lock:
            self._values.append(float(value))

    @property
    def count(self) -> int:
        return len(self._values)

    def values(self, percentiles: Iterable[str] = DEFAULT_PERCENTILES) -> dict[str, float]:
        """
        Aggregate the distribution.

        Args:
            percentiles: percentile labels to include, e.g. ("90", "95", "99.9")

        Returns:
            {"avg", "min", "max", "med", "count", "p(90)", ...}; zeros when empty
        """
        with self._lock:
            data = sorted(self._values)

        result = {
            "avg": sum(data) / len(data) if data else 0.0,
            "min": data[0] if data else 0.0,
            "max": data[-1] if data else 0.0,
            "med": percentile(data, 50),
            "count": float(len(data)),
        }
        for pct in percentiles:
            result[f"p({pct})"] = percentile(data, float(pct))
        return result


class Rate:
    """Binary accumulator reporting the fraction of non-zero observations"""

    def __init__(self, name: str):
        self.name = name
        self._passes = 0  # non-zero observations
        self._fails = 0  # zero observations
        self._lock = threading.Lock()

    def add(self, value: Any) -> None:
        with self._lock:
            if value:
                self._passes += 1
            else:
                self._fails += 1

    @property
    def count(self) -> int:
        return self._passes + self._fails

    def values(self) -> dict[str, float]:
        with self._lock:
            passes, fails = self._passes, self._fails
        total = passes + fails
        return {
            "rate": passes / total if total else 0.0,
            "passes": float(passes),
            "fails": float(fails),
            "count": float(total),
        }


class Checks:
    """Per-name check counters; the overall rate is the share of passed checks"""

    def __init__(self):
        self._results: dict[str, list[int]] = {}  # name -> [passes, fails]
        self._lock = threading.Lock()

    def add(self, name: str, passed: bool) -> None:
        with self._lock:
            counts = self._results.setdefault(name, [0, 0])
            counts[0 if passed else 1] += 1

    def by_name(self) -> dict[str, dict[str, int]]:
        with self._lock:
            return {name: {"passes": p, "fails": f} for name, (p, f) in self._results.items()}

    def values(self) -> dict[str, float]:
        checks = self.by_name()
        passes = sum(c["passes"] for c in checks.values())
        fails = sum(c["fails"] for c in checks.values())
        total = passes + fails
        return {
            "rate": passes / total if total else 0.0,
            "passes": float(passes),
            "fails": float(fails),
            "count": float(total),
        }


class RunMetrics:
    """
    The metrics of one run: get_breeds_duration, error_rate and checks.

    Implements MetricsRecorder. Created once per process and written by every
    iteration; read at summary time only.
    """

    DURATION_METRIC = "get_breeds_duration"
    ERROR_RATE_METRIC = "error_rate"
    CHECKS_METRIC = "checks"

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.duration = Trend(self.DURATION_METRIC)
        self.error_rate = Rate(self.ERROR_RATE_METRIC)
        self.checks = Checks()
        self.registry = registry

        self._prom_duration: Optional[Histogram] = None
        self._prom_outcomes: Optional[Counter] = None
        self._prom_checks: Optional[Counter] = None
        if registry is not None:
            self._init_prometheus(registry)

    def _init_prometheus(self, registry: CollectorRegistry) -> None:
        self._prom_duration = Histogram(
            "get_breeds_duration_seconds",
            "Round-trip duration of GET breeds/list/all",
            buckets=DURATION_BUCKETS_SECONDS,
            registry=registry,
        )
        self._prom_outcomes = Counter(
            "error_rate_observations_total",
            "Error-rate observations by outcome",
            ["outcome"],  # outcome: success/failure
            registry=registry,
        )
        self._prom_checks = Counter(
            "checks_total",
            "Named check results",
            ["check", "result"],  # result: pass/fail
            registry=registry,
        )
        logger.info("Prometheus collectors registered for run metrics")

    def record_duration(self, ms: float) -> None:
        self.duration.add(ms)
        if self._prom_duration is not None:
            self._prom_duration.observe(ms / 1000.0)

    def record_outcome(self, failed: bool) -> None:
        self.error_rate.add(1 if failed else 0)
        if self._prom_outcomes is not None:
            self._prom_outcomes.labels(outcome="failure" if failed else "success").inc()

    def record_check(self, name: str, passed: bool) -> None:
        self.checks.add(name, passed)
        if self._prom_checks is not None:
            self._prom_checks.labels(check=name, result="pass" if passed else "fail").inc()

    def snapshot(self, percentiles: Iterable[str] = DEFAULT_PERCENTILES) -> dict[str, dict[str, Any]]:
        """
        Aggregated view keyed by metric name.

        error_rate is only present once something was recorded into it, so a
        run whose policy never feeds it does not report a misleading 0%.
        """
        result: dict[str, dict[str, Any]] = {
            self.DURATION_METRIC: {"type": "trend", "values": self.duration.values(percentiles)},
            self.CHECKS_METRIC: {"type": "rate", "values": self.checks.values()},
        }
        if self.error_rate.count:
            result[self.ERROR_RATE_METRIC] = {"type": "rate", "values": self.error_rate.values()}
        return result
