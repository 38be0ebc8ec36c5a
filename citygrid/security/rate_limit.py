"""Per-identity request rate limiting.

The limiter is the only process-wide mutable state the engine owns.  Each
identity has its own window record guarded by its own lock, so callers for
different identities never serialise on each other.  The ledger lock is
held only long enough to create a missing record, at which point windows
that have already expired are dropped from the ledger.

Swap in another object exposing ``allow(identity) -> bool`` to back the
ledger with a shared cache instead of process memory.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class _Window:
    started_at: float
    count: int
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class RateLimiter:
    """Fixed window limiter keyed by identity.

    The first request from an identity opens a window.  Requests inside the
    window increment its count until ``limit`` is reached; further requests
    are refused without touching the count.  The first request after the
    window has elapsed opens a fresh one.
    """

    def __init__(
        self,
        limit: int = 30,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._limit = limit
        self._window = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._ledger_lock = threading.Lock()

    def _window_for(self, identity: str) -> _Window | None:
        window = self._windows.get(identity)
        if window is not None:
            return window
        with self._ledger_lock:
            window = self._windows.get(identity)
            if window is None:
                now = self._clock()
                self._prune(now)
                self._windows[identity] = _Window(started_at=now, count=1)
                return None
            return window

    def _prune(self, now: float) -> None:
        # Caller holds the ledger lock.
        expired = [
            identity
            for identity, window in self._windows.items()
            if now - window.started_at > self._window
        ]
        for identity in expired:
            del self._windows[identity]

    def tracked(self) -> int:
        """Number of identities currently in the ledger."""
        return len(self._windows)

    def allow(self, identity: str) -> bool:
        """Record a request and return whether it is within the limit."""
        if self._limit <= 0:
            return True
        window = self._window_for(identity)
        if window is None:
            return True

        with window.lock:
            now = self._clock()
            if now - window.started_at > self._window:
                window.started_at = now
                window.count = 1
                return True
            if window.count + 1 > self._limit:
                logger.warning("Rate limit exceeded for %s", identity)
                return False
            window.count += 1
            return True

    def remaining(self, identity: str) -> int:
        """Requests left in the identity's current window."""
        window = self._windows.get(identity)
        if window is None:
            return self._limit
        with window.lock:
            if self._clock() - window.started_at > self._window:
                return self._limit
            return max(0, self._limit - window.count)

    def reset(self) -> None:
        """Forget every window."""
        with self._ledger_lock:
            self._windows.clear()
