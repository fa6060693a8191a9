"""Classification telemetry — which tier answered, and which Tier 1 patterns hit.

Fallback (tier 3) hits are the candidates for promoting new phrases into Tier 1.
"""

from __future__ import annotations

import sys
import threading
from collections import Counter
from datetime import datetime, timezone

from maritime_synthesis.contracts import ClassificationMetricsSnapshot, QueryClassification

SUMMARY_LOG_INTERVAL = 100


class ClassificationTelemetry:
    """In-memory tier counters for the query classifier."""

    def __init__(self, *, verbose: bool = False) -> None:
        self._lock = threading.Lock()
        self._verbose = verbose
        self._tier1_hits = 0
        self._tier2_hits = 0
        self._tier3_hits = 0
        self._tier1_patterns: Counter[str] = Counter()
        self._total = 0
        self._last_timestamp = datetime.now(timezone.utc).isoformat()

    def track(self, result: QueryClassification) -> None:
        """Record which tier produced the classification."""
        with self._lock:
            self._total += 1
            self._last_timestamp = datetime.now(timezone.utc).isoformat()
            if result.method.startswith("tier1"):
                self._tier1_hits += 1
                self._tier1_patterns[result.reasoning or result.method] += 1
            elif result.method == "tier2-state":
                self._tier2_hits += 1
            else:
                self._tier3_hits += 1
            total = self._total

        if self._verbose and total % SUMMARY_LOG_INTERVAL == 0:
            print(self.summary(), file=sys.stderr)

    def snapshot(self) -> ClassificationMetricsSnapshot:
        with self._lock:
            return ClassificationMetricsSnapshot(
                tier1_hits=self._tier1_hits,
                tier2_hits=self._tier2_hits,
                tier3_hits=self._tier3_hits,
                tier1_patterns=dict(self._tier1_patterns),
                total_classifications=self._total,
                timestamp=self._last_timestamp,
            )

    def top_patterns(self, n: int = 5) -> list[tuple[str, int]]:
        with self._lock:
            return self._tier1_patterns.most_common(n)

    def summary(self) -> str:
        m = self.snapshot()
        total = m["total_classifications"]

        def pct(hits: int) -> str:
            return f"{hits / total:.0%}" if total else "0%"

        return (
            f"Classifications: {total:,} | "
            f"Tier 1: {m['tier1_hits']} ({pct(m['tier1_hits'])}) | "
            f"Tier 2: {m['tier2_hits']} ({pct(m['tier2_hits'])}) | "
            f"Fallback: {m['tier3_hits']} ({pct(m['tier3_hits'])})"
        )

    def reset(self) -> None:
        with self._lock:
            self._tier1_hits = 0
            self._tier2_hits = 0
            self._tier3_hits = 0
            self._tier1_patterns.clear()
            self._total = 0
