"""In-memory counters for outbound dispatch activity.

Thread-safe so a health endpoint or admin command running outside the
event loop can read a snapshot while the loop keeps dispatching.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass


@dataclass
class DispatchMetricsSnapshot:
    """Point-in-time copy of the dispatch counters."""

    enqueued: int = 0
    coalesced: int = 0
    sent: int = 0
    failed: int = 0
    purged: int = 0
    challenges: int = 0
    uptime_seconds: float = 0.0

    def to_dict(self) -> dict:
        return {
            "enqueued": self.enqueued,
            "coalesced": self.coalesced,
            "sent": self.sent,
            "failed": self.failed,
            "purged": self.purged,
            "challenges": self.challenges,
            "uptime_seconds": round(self.uptime_seconds, 1),
        }


class DispatchMetrics:
    """Thread-safe counters. Waiter counts, not entry counts, except sent/failed."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._start_time = time.monotonic()
        self._enqueued = 0
        self._coalesced = 0
        self._sent = 0
        self._failed = 0
        self._purged = 0
        self._challenges = 0

    def record_enqueued(self, *, coalesced: bool = False) -> None:
        with self._lock:
            self._enqueued += 1
            if coalesced:
                self._coalesced += 1

    def record_sent(self) -> None:
        with self._lock:
            self._sent += 1

    def record_failed(self) -> None:
        with self._lock:
            self._failed += 1

    def record_purged(self, waiters: int) -> None:
        with self._lock:
            self._purged += waiters

    def record_challenge(self) -> None:
        with self._lock:
            self._challenges += 1

    def snapshot(self) -> DispatchMetricsSnapshot:
        with self._lock:
            return DispatchMetricsSnapshot(
                enqueued=self._enqueued,
                coalesced=self._coalesced,
                sent=self._sent,
                failed=self._failed,
                purged=self._purged,
                challenges=self._challenges,
                uptime_seconds=time.monotonic() - self._start_time,
            )
