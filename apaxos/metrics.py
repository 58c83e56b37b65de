"""Running averages of transaction latency and throughput."""

import threading


class Metrics:
    """Accumulates per-transaction latency (microseconds) and throughput (TPS)."""

    def __init__(self):
        self._latency = 0.0
        self._throughput = 0.0
        self._records = 0
        self._lock = threading.Lock()

    def observe(self, nanoseconds):
        """Record one transaction that took the given number of nanoseconds."""
        value = int(nanoseconds)
        throughput = 1_000_000_000 * (1 / value) if value != 0 else 0.0
        with self._lock:
            self._records += 1
            self._latency += float(value // 1000)
            self._throughput += throughput

    def values(self):
        """Return (average latency, average throughput)."""
        with self._lock:
            if self._records == 0:
                return self._latency, self._throughput
            return self._latency / self._records, self._throughput / self._records