"""
Anonymous usage metering.

Bilbul lets an anonymous client complete ONE split. After that, further
receipt uploads from the same client require a signed-in user. The flag is
keyed by the client id the frontend persists on the device (X-Client-Id);
callers without that header are keyed by their network address.

Records expire after `ttl_seconds` so the tracker does not grow without bound.
"""

import logging
import threading
import time
from typing import Dict

logger = logging.getLogger(__name__)


class UsageTracker:
    """In-process record of client ids that already completed a split."""

    def __init__(self, ttl_seconds: float = 30 * 24 * 3600.0) -> None:
        self._ttl_seconds = ttl_seconds
        self._completed: Dict[str, float] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._completed)

    def _prune(self, now: float) -> None:
        expired = [
            client_id
            for client_id, recorded_at in self._completed.items()
            if now - recorded_at > self._ttl_seconds
        ]
        for client_id in expired:
            del self._completed[client_id]

    def has_completed_split(self, client_id: str) -> bool:
        with self._lock:
            recorded_at = self._completed.get(client_id)
            if recorded_at is None:
                return False
            return time.monotonic() - recorded_at <= self._ttl_seconds

    def record_completed_split(self, client_id: str) -> None:
        now = time.monotonic()
        with self._lock:
            self._prune(now)
            if client_id not in self._completed:
                logger.info(f"Recorded first completed split for client_id={client_id}")
            self._completed[client_id] = now

    def clear(self) -> None:
        with self._lock:
            self._completed.clear()
