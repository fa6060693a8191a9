"""Synthesis metrics — attempts, outcomes, cost and latency across requests."""

from __future__ import annotations

import sys
import threading
from datetime import datetime, timezone

from maritime_synthesis.contracts import SynthesisMetricsSnapshot

SUMMARY_EVERY_N_SUCCESSES = 5


class SynthesisMetricsTracker:
    """Counts synthesis outcomes. Safe to share between concurrent requests.

    Implements the MetricsSink protocol; pass an instance into the engine.
    """

    def __init__(self, *, verbose: bool = False) -> None:
        self._lock = threading.Lock()
        self._verbose = verbose
        self._reset_unlocked()

    def _reset_unlocked(self) -> None:
        self._attempts = 0
        self._success = 0
        self._failures = 0
        self._skipped = 0
        self._total_cost = 0.0
        self._total_duration_ms = 0.0
        self._last_timestamp: str | None = None

    def record_attempt(self) -> None:
        with self._lock:
            self._attempts += 1

    def record_success(self, cost_usd: float, duration_ms: float) -> None:
        with self._lock:
            self._success += 1
            self._total_cost += cost_usd
            self._total_duration_ms += duration_ms
            self._last_timestamp = datetime.now(timezone.utc).isoformat()
            success = self._success

        if self._verbose and success % SUMMARY_EVERY_N_SUCCESSES == 0:
            print(self.summary(), file=sys.stderr)

    def record_failure(self) -> None:
        with self._lock:
            self._failures += 1

    def record_skipped(self) -> None:
        with self._lock:
            self._skipped += 1

    @property
    def total_cost(self) -> float:
        with self._lock:
            return self._total_cost

    @property
    def average_duration_ms(self) -> int:
        with self._lock:
            if self._success == 0:
                return 0
            return round(self._total_duration_ms / self._success)

    def success_rate(self) -> int:
        """Successes as a percentage of completed (success + failure) syntheses."""
        with self._lock:
            total = self._success + self._failures
            if total == 0:
                return 0
            return round(self._success / total * 100)

    def snapshot(self) -> SynthesisMetricsSnapshot:
        avg = self.average_duration_ms
        with self._lock:
            return SynthesisMetricsSnapshot(
                total_synthesis_attempts=self._attempts,
                total_synthesis_success=self._success,
                total_synthesis_failures=self._failures,
                total_synthesis_skipped=self._skipped,
                total_cost_usd=self._total_cost,
                average_duration_ms=avg,
                last_synthesis_timestamp=self._last_timestamp,
            )

    def summary(self) -> str:
        """Human-readable metrics summary."""
        m = self.snapshot()
        return (
            f"Synthesis: {m['total_synthesis_attempts']:,} attempts | "
            f"Success: {m['total_synthesis_success']:,} ({self.success_rate()}%) | "
            f"Failures: {m['total_synthesis_failures']:,} | "
            f"Skipped: {m['total_synthesis_skipped']:,} | "
            f"Cost: ${m['total_cost_usd']:.4f} | "
            f"Avg: {m['average_duration_ms']:,}ms"
        )

    def reset(self) -> None:
        with self._lock:
            self._reset_unlocked()


_default_metrics: SynthesisMetricsTracker | None = None
_default_lock = threading.Lock()


def get_default_metrics() -> SynthesisMetricsTracker:
    """Process-wide tracker for hosts that do not inject their own sink."""
    global _default_metrics
    with _default_lock:
        if _default_metrics is None:
            _default_metrics = SynthesisMetricsTracker()
        return _default_metrics
