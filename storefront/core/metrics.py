"""
Application metrics for monitoring and observability.

Provides thread-safe metrics collection for:
- Business counters (quotes, orders, bookings, messages, checkouts)
- Authentication outcomes
- Realtime event fan-out
- Request latency per route group

Usage:
    from storefront.core.metrics import metrics

    metrics.increment('quotes_created')
    metrics.record_latency('checkout', 42.0)
    data = metrics.to_dict()
"""
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from threading import Lock

COUNTERS = (
    "quotes_created",
    "guest_quotes_created",
    "orders_created",
    "bookings_created",
    "messages_sent",
    "checkouts_completed",
    "uploads_stored",
    "logins",
    "logins_failed",
    "registrations",
    "rate_limit_exceeded",
    "events_published",
    "events_delivered",
)

GAUGES = ("websocket_connections",)


@dataclass
class Metrics:
    """Thread-safe application metrics."""

    _lock: Lock = field(default_factory=Lock, repr=False)

    # Counters
    quotes_created: int = 0
    guest_quotes_created: int = 0
    orders_created: int = 0
    bookings_created: int = 0
    messages_sent: int = 0
    checkouts_completed: int = 0
    uploads_stored: int = 0
    logins: int = 0
    logins_failed: int = 0
    registrations: int = 0
    rate_limit_exceeded: int = 0
    events_published: int = 0
    events_delivered: int = 0

    # Gauges (current values)
    websocket_connections: int = 0

    # Histograms (simplified - store recent samples)
    latencies: Dict[str, List[float]] = field(default_factory=dict)
    _max_latency_samples: int = field(default=1000, repr=False)

    _start_time: float = field(default_factory=time.time, repr=False)

    def increment(self, metric: str, value: int = 1) -> None:
        """Increment a counter metric.

        Args:
            metric: Name of the metric to increment
            value: Amount to increment by (default 1)
        """
        with self._lock:
            current = getattr(self, metric, 0)
            setattr(self, metric, current + value)

    def decrement(self, metric: str, value: int = 1) -> None:
        """Decrement a gauge metric, never below zero."""
        with self._lock:
            current = getattr(self, metric, 0)
            setattr(self, metric, max(0, current - value))

    def set_gauge(self, metric: str, value: int) -> None:
        with self._lock:
            setattr(self, metric, value)

    def record_latency(self, name: str, latency_ms: float) -> None:
        """Record a latency sample for a named operation."""
        with self._lock:
            samples = self.latencies.setdefault(name, [])
            samples.append(latency_ms)
            if len(samples) > self._max_latency_samples:
                self.latencies[name] = samples[-self._max_latency_samples:]

    def get_latency_stats(self, name: str) -> Dict[str, Optional[float]]:
        """Get latency statistics for an operation.

        Returns:
            Dict with count, min, max, avg, p50, p95 latencies
        """
        with self._lock:
            samples = sorted(self.latencies.get(name, []))

        if not samples:
            return {"count": 0, "min": None, "max": None, "avg": None, "p50": None, "p95": None}

        count = len(samples)
        return {
            "count": count,
            "min": samples[0],
            "max": samples[-1],
            "avg": sum(samples) / count,
            "p50": samples[int(count * 0.5)],
            "p95": samples[int(count * 0.95)] if count >= 20 else samples[-1],
        }

    @property
    def uptime_seconds(self) -> float:
        """Get application uptime in seconds."""
        return time.time() - self._start_time

    @property
    def login_success_rate(self) -> float:
        """Share of login attempts that succeeded (0.0 to 1.0)."""
        total = self.logins + self.logins_failed
        if total == 0:
            return 1.0
        return self.logins / total

    def to_dict(self) -> dict:
        """Export all metrics as a dictionary."""
        with self._lock:
            data = {name: getattr(self, name) for name in COUNTERS + GAUGES}
            names = list(self.latencies.keys())
        data["login_success_rate"] = self.login_success_rate
        data["uptime_seconds"] = self.uptime_seconds
        data["latencies"] = {name: self.get_latency_stats(name) for name in names}
        return data

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            for name in COUNTERS + GAUGES:
                setattr(self, name, 0)
            self.latencies.clear()
            self._start_time = time.time()


# Global metrics instance
metrics = Metrics()
