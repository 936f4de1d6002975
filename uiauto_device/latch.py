# uiauto_device/latch.py
"""
@file latch.py
@brief Single-use timed gate used by the blocking lifecycle waits.
"""

from __future__ import annotations

import threading
import time
from typing import Optional

from .exceptions import UIAutoError, WaitInterruptedError


class WaitLatch:
    """
    Count-down latch with a count of one that may be waited on once.

    count_down() releases the waiter. cancel() releases it with a
    WaitInterruptedError instead. Whichever comes first wins; the other is
    ignored.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._released = False
        self._cancel_reason: Optional[str] = None
        self._cancelled = False
        self._used = False

    @property
    def released(self) -> bool:
        return self._released

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def count_down(self) -> bool:
        """Release the latch. Returns False if it was already released or cancelled."""
        with self._lock:
            if self._event.is_set():
                return False
            self._released = True
            self._event.set()
            return True

    def cancel(self, reason: Optional[str] = None) -> bool:
        """Interrupt the waiter. Returns False if the latch was already released."""
        with self._lock:
            if self._event.is_set():
                return False
            self._cancelled = True
            self._cancel_reason = reason
            self._event.set()
            return True

    def wait(self, timeout: Optional[float]) -> bool:
        """
        Block until released, cancelled or the deadline passes.

        @param timeout Seconds to wait; None waits forever
        @return True if released, False on timeout
        @throws WaitInterruptedError if cancelled
        """
        with self._lock:
            if self._used:
                raise UIAutoError("WaitLatch is single-use and has already been waited on")
            self._used = True

        deadline = None if timeout is None else time.monotonic() + max(0.0, timeout)
        # Event.wait in short slices keeps KeyboardInterrupt deliverable on the waiting thread.
        while True:
            if deadline is None:
                remaining = 0.5
            else:
                remaining = min(0.5, deadline - time.monotonic())
                if remaining <= 0:
                    break
            if self._event.wait(remaining):
                break

        with self._lock:
            if self._cancelled:
                raise WaitInterruptedError(self._cancel_reason)
            return self._released
