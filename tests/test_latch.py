"""
Tests for WaitLatch.
"""

import threading
import time

import pytest

from uiauto_device.exceptions import UIAutoError, WaitInterruptedError
from uiauto_device.latch import WaitLatch


class TestWaitLatch:
    """Tests for the single-use latch."""

    def test_released_before_wait(self):
        """Should return True immediately if already released."""
        latch = WaitLatch()
        assert latch.count_down() is True

        start = time.monotonic()
        assert latch.wait(5) is True
        assert time.monotonic() - start < 0.5

    def test_released_from_other_thread(self):
        """Should return True when released while waiting."""
        latch = WaitLatch()
        timer = threading.Timer(0.05, latch.count_down)
        timer.start()

        assert latch.wait(5) is True
        timer.join()

    def test_timeout_returns_false(self):
        """Should return False once the deadline passes."""
        latch = WaitLatch()

        start = time.monotonic()
        assert latch.wait(0.1) is False
        elapsed = time.monotonic() - start

        assert elapsed >= 0.1
        assert elapsed < 1.0

    def test_single_use(self):
        """Should refuse a second wait."""
        latch = WaitLatch()
        latch.count_down()
        latch.wait(0)

        with pytest.raises(UIAutoError):
            latch.wait(0)

    def test_count_down_is_idempotent(self):
        """Only the first release counts."""
        latch = WaitLatch()

        assert latch.count_down() is True
        assert latch.count_down() is False
        assert latch.released is True

    def test_cancel_raises(self):
        """A cancelled wait should raise WaitInterruptedError with the reason."""
        latch = WaitLatch()
        timer = threading.Timer(0.05, latch.cancel, args=("shutting down",))
        timer.start()

        with pytest.raises(WaitInterruptedError) as exc_info:
            latch.wait(5)
        timer.join()

        assert exc_info.value.reason == "shutting down"
        assert latch.cancelled is True

    def test_release_and_cancel_first_one_wins(self):
        """Release then cancel should still report release; and vice versa."""
        released = WaitLatch()
        released.count_down()
        assert released.cancel() is False
        assert released.wait(0) is True

        cancelled = WaitLatch()
        cancelled.cancel()
        assert cancelled.count_down() is False
        with pytest.raises(WaitInterruptedError):
            cancelled.wait(0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
