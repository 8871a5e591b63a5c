"""Lightweight observability metrics for the assistant pipeline.

In-process counters without external dependencies. Metrics are best-effort in
multi-worker environments (each worker has its own state).
"""

import os
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any

# Most recent latency samples kept for percentiles
MAX_LATENCY_SAMPLES = 1000


@dataclass
class MetricsCollector:
    """Thread-safe in-memory metrics collector."""

    # Counters for routed intent types (get-time, general, ...)
    intent_counts: dict[str, int] = field(default_factory=dict)

    # Counters for pipeline outcomes (success, parse_failure, ...)
    outcome_counts: dict[str, int] = field(default_factory=dict)

    # Latency samples for the assistant endpoint (in milliseconds), oldest evicted first
    command_latencies: deque[float] = field(
        default_factory=lambda: deque(maxlen=MAX_LATENCY_SAMPLES)
    )

    _lock: threading.Lock = field(default_factory=threading.Lock)

    def record_command(
        self,
        intent_type: str | None,
        outcome: str,
        latency_ms: float,
    ) -> None:
        """Record one pipeline run.

        Args:
            intent_type: Intent type, when the model reply got far enough to have one
            outcome: Pipeline outcome value
            latency_ms: Latency in milliseconds
        """
        with self._lock:
            if intent_type:
                self.intent_counts[intent_type] = self.intent_counts.get(intent_type, 0) + 1
            self.outcome_counts[outcome] = self.outcome_counts.get(outcome, 0) + 1
            self.command_latencies.append(latency_ms)

    @staticmethod
    def _percentile(sorted_values: list[float], percentile: float) -> float | None:
        if not sorted_values:
            return None
        n = len(sorted_values)
        return sorted_values[min(int(n * percentile), n - 1)]

    def get_snapshot(self) -> dict[str, Any]:
        """Get a snapshot of current metrics, including latency percentiles."""
        with self._lock:
            sorted_latencies = sorted(self.command_latencies)
            return {
                "intent_counts": dict(self.intent_counts),
                "outcome_counts": dict(self.outcome_counts),
                "command_latency_ms": {
                    "p50": self._percentile(sorted_latencies, 0.5),
                    "p95": self._percentile(sorted_latencies, 0.95),
                    "count": len(sorted_latencies),
                },
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self.intent_counts.clear()
            self.outcome_counts.clear()
            self.command_latencies.clear()


_metrics_collector: MetricsCollector | None = None
_metrics_lock = threading.Lock()


def get_metrics_collector() -> MetricsCollector:
    """Get or create the global metrics collector instance."""
    global _metrics_collector
    with _metrics_lock:
        if _metrics_collector is None:
            _metrics_collector = MetricsCollector()
        return _metrics_collector


def is_metrics_enabled() -> bool:
    """Check if the metrics endpoint is enabled (ASSISTANT_ENABLE_METRICS=true)."""
    return os.getenv("ASSISTANT_ENABLE_METRICS", "false").lower() in ("true", "1", "yes")
