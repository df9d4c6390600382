"""Decision metrics collection and aggregation.

Tracks decision latency, switch and failure counters, and memory usage for
monitoring the selection service.
"""

import logging
import time
from collections import deque
from datetime import datetime
from typing import Any

import numpy as np
import psutil

logger = logging.getLogger(__name__)

# Decisions slower than this are logged
DECISION_LATENCY_WARN_MS = 50.0


class LatencyHistogram:
    """Tracks latency measurements with percentile calculations."""

    def __init__(self, max_samples: int = 10000):
        """Initialize latency histogram.

        Args:
            max_samples: Maximum samples to retain (circular buffer)
        """
        self.samples: deque[float] = deque(maxlen=max_samples)
        self.max_samples = max_samples

    def record(self, latency_ms: float) -> None:
        self.samples.append(latency_ms)

    def get_stats(self) -> dict[str, float | int]:
        """Get latency statistics.

        Returns:
            Dictionary with avg, p50, p95, p99, samples count
        """
        if not self.samples:
            return {"avg": 0.0, "p50": 0.0, "p95": 0.0, "p99": 0.0, "samples": 0}

        arr = np.array(list(self.samples))
        return {
            "avg": float(np.mean(arr)),
            "p50": float(np.percentile(arr, 50)),
            "p95": float(np.percentile(arr, 95)),
            "p99": float(np.percentile(arr, 99)),
            "samples": len(self.samples),
        }


class DecisionMetrics:
    """Collects and aggregates selection metrics."""

    def __init__(self) -> None:
        self.decision_latency = LatencyHistogram()

        # Event counters
        self.decisions = 0
        self.adaptive_switches = 0
        self.inference_failures = 0
        self.queue_discards = 0

        self.start_time = time.time()

    def record_decision(self, latency_ms: float, switched: bool) -> None:
        """Record one selector decision.

        Args:
            latency_ms: Decision time in milliseconds
            switched: Whether the selected index changed
        """
        self.decisions += 1
        self.decision_latency.record(latency_ms)
        if switched:
            self.adaptive_switches += 1

        if latency_ms > DECISION_LATENCY_WARN_MS:
            logger.warning(
                f"Decision latency {latency_ms:.1f}ms exceeds {DECISION_LATENCY_WARN_MS:.0f}ms"
            )

    def increment_inference_failure(self) -> None:
        self.inference_failures += 1
        logger.warning(f"Inference failure recorded (total: {self.inference_failures})")

    def increment_queue_discard(self) -> None:
        self.queue_discards += 1

    def get_snapshot(self) -> dict[str, Any]:
        """Get current metrics snapshot.

        Returns:
            Dictionary with all metrics data
        """
        process = psutil.Process()
        memory_mb = process.memory_info().rss / (1024 * 1024)

        return {
            "decision_latency_ms": self.decision_latency.get_stats(),
            "decisions": self.decisions,
            "adaptive_switches": self.adaptive_switches,
            "inference_failures": self.inference_failures,
            "queue_discards": self.queue_discards,
            "memory_usage_mb": memory_mb,
            "uptime_sec": time.time() - self.start_time,
            "timestamp": datetime.now().isoformat(),
        }
