"""
Per-display, non-blocking critical section for timeline loop restarts.

The set of displays currently restarting is process-local. Running several
scheduler instances behind a load balancer needs a store-backed lease instead.
"""

from __future__ import annotations

import contextlib
import threading
from collections.abc import Iterator


class LoopRestartGuard:
    """Check-and-set claim on "this display is being repopulated"."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._in_progress: set[str] = set()

    def try_acquire(self, display_key: str) -> bool:
        """Claim the display; False if another caller already holds it."""
        with self._lock:
            if display_key in self._in_progress:
                return False
            self._in_progress.add(display_key)
            return True

    def release(self, display_key: str) -> None:
        with self._lock:
            self._in_progress.discard(display_key)

    def is_held(self, display_key: str) -> bool:
        with self._lock:
            return display_key in self._in_progress

    @contextlib.contextmanager
    def claim(self, display_key: str) -> Iterator[bool]:
        """Yield whether the claim was won; always release a won claim."""
        acquired = self.try_acquire(display_key)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(display_key)
