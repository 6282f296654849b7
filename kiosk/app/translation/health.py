from __future__ import annotations

import threading
from datetime import datetime, timezone
from time import monotonic
from typing import Callable


class GatewayHealthState:
    """Online/offline view of the translation provider.

    Shared between request handlers and explicit availability checks, so every read
    and write goes through a lock. The gateway is the only writer, so flips always
    reach its status subscribers.
    """

    def __init__(
        self,
        recheck_interval_seconds: float = 60.0,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        self._recheck_interval_seconds = max(0.0, recheck_interval_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._is_online = True
        self._last_checked_at: datetime | None = None
        self._last_checked_mono: float | None = None

    @property
    def is_online(self) -> bool:
        with self._lock:
            return self._is_online

    @property
    def last_checked_at(self) -> datetime | None:
        with self._lock:
            return self._last_checked_at

    def record(self, online: bool) -> bool:
        """Store a call outcome. Returns True when the online flag flipped."""
        with self._lock:
            changed = self._is_online != online
            self._is_online = online
            self._last_checked_at = datetime.now(timezone.utc)
            self._last_checked_mono = self._clock()
            return changed

    def should_attempt_live_call(self) -> bool:
        with self._lock:
            if self._is_online or self._last_checked_mono is None:
                return True
            elapsed = self._clock() - self._last_checked_mono
            return elapsed >= self._recheck_interval_seconds

    def snapshot(self) -> dict[str, object]:
        with self._lock:
            return {
                "is_online": self._is_online,
                "last_checked_at": (
                    self._last_checked_at.isoformat() if self._last_checked_at else None
                ),
                "recheck_interval_seconds": self._recheck_interval_seconds,
            }
