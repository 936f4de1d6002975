# uiauto_device/helper_screen.py
"""
@file helper_screen.py
@brief Launch and finish the invisible helper screen used to trigger config changes.

The helper screen runs in its own task so that its lifecycle transitions do
not interleave with the screen under test. It acknowledges through
broadcasts rather than return values:

  test process                      helper screen
  register EMPTY_ACTIVITY_RESUMED
  start_screen(NEW_TASK)  ------->  created, started, resumed
                          <-------  send EMPTY_ACTIVITY_RESUMED
  ... environment change ...
  send FINISH_EMPTY_ACTIVITIES --->  finish()
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Generator, Optional

from .config import LifecycleTimeConfig
from .exceptions import HelperScreenError, HelperScreenTimeoutError, WaitInterruptedError
from .interfaces import IAppContext
from .latch import WaitLatch
from .screen import LaunchFlags, Screen
from .timinglogger import TIMING_LOGGER

if TYPE_CHECKING:
    from .local import LocalAppContext

EMPTY_ACTIVITY_RESUMED = "empty-activity-resumed"
FINISH_EMPTY_ACTIVITIES = "finish-empty-activities"
HELPER_SCREEN = "uiauto.device/uiauto.device.EmptyConfigChangeScreen"


class HelperScreenCoordinator:
    """
    Request/acknowledge protocol with the helper screen.

    One launch may be in flight per coordinator; cancel() interrupts it from
    another thread.
    """

    def __init__(
        self,
        helper_identity: str = HELPER_SCREEN,
        logger: Optional[logging.Logger] = None,
    ):
        self.helper_identity = helper_identity
        self.log = logger or logging.getLogger("uiauto_device")
        self._lock = threading.Lock()
        self._latch: Optional[WaitLatch] = None

    def launch_and_await_ready(self, context: IAppContext, timeout: Optional[float] = None) -> None:
        """
        Launch the helper screen in a new task and block until it reports resumed.

        The receiver is registered before the launch and unregistered on every
        exit path.

        @param context Application context to launch from and receive on
        @param timeout Seconds to wait (default: config helper_screen_ready)
        @throws HelperScreenTimeoutError if no acknowledgement arrives in time
        @throws HelperScreenError if the wait is cancelled
        """
        if timeout is None:
            timeout = LifecycleTimeConfig.current().helper_screen_ready.timeout

        latch = WaitLatch()

        def on_resumed(ctx: IAppContext, topic: str) -> None:
            self.log.debug("Received %s from helper screen", topic)
            latch.count_down()

        with self._lock:
            if self._latch is not None:
                raise HelperScreenError("A helper screen launch is already in progress")
            self._latch = latch

        start = time.monotonic()
        if TIMING_LOGGER.is_enabled():
            TIMING_LOGGER.log(
                event="wait_start",
                description="helper screen to resume",
                metadata={"timeout_s": timeout, "stage": "helper_screen_ready"},
            )

        try:
            context.register_receiver(EMPTY_ACTIVITY_RESUMED, on_resumed)
            context.start_screen(self.helper_identity, LaunchFlags.NEW_TASK)
            ready = latch.wait(timeout)
        except WaitInterruptedError as e:
            raise HelperScreenError("Interrupted while waiting for the helper screen to resume") from e
        finally:
            context.unregister_receiver(on_resumed)
            with self._lock:
                self._latch = None

        elapsed = time.monotonic() - start
        if not ready:
            if TIMING_LOGGER.is_enabled():
                TIMING_LOGGER.log(
                    event="wait_timeout",
                    description="helper screen to resume",
                    status="error",
                    metadata={"timeout_s": timeout, "elapsed_s": round(elapsed, 3)},
                )
            error = HelperScreenTimeoutError(
                f"Timed out waiting for helper screen {self.helper_identity} to resume after {timeout}s"
            )
            error.description = "helper screen to resume"
            error.timeout = timeout
            error.elapsed_time = elapsed
            error.stage = "helper_screen_ready"
            raise error

        if TIMING_LOGGER.is_enabled():
            TIMING_LOGGER.log(
                event="wait_success",
                description="helper screen to resume",
                status="success",
                metadata={"elapsed_s": round(elapsed, 3)},
            )
        self.log.info("Helper screen %s is resumed", self.helper_identity)

    def request_finish(self, context: IAppContext) -> None:
        """Ask every helper screen to finish. Does not wait; unobserved requests are fine."""
        self.log.debug("Requesting helper screens to finish")
        context.send_broadcast(FINISH_EMPTY_ACTIVITIES)

    def cancel(self, reason: Optional[str] = None) -> bool:
        """Interrupt an in-flight launch_and_await_ready. Returns False if none is waiting."""
        with self._lock:
            latch = self._latch
        if latch is None:
            return False
        return latch.cancel(reason)

    @contextmanager
    def helper_screen(
        self, context: IAppContext, timeout: Optional[float] = None
    ) -> Generator[None, None, None]:
        """Keep the helper screen up for the duration of the block."""
        try:
            self.launch_and_await_ready(context, timeout)
        except HelperScreenTimeoutError:
            # it may still come up after the deadline
            self.request_finish(context)
            raise
        try:
            yield
        finally:
            self.request_finish(context)


def launch_helper_screen(context: IAppContext, timeout: Optional[float] = None) -> None:
    HelperScreenCoordinator().launch_and_await_ready(context, timeout)


def finish_helper_screen(context: IAppContext) -> None:
    HelperScreenCoordinator().request_finish(context)


class HelperScreen:
    """
    The helper screen's side of the protocol, for the local runtime.

    Listens for FINISH_EMPTY_ACTIVITIES from creation until destruction and
    announces EMPTY_ACTIVITY_RESUMED each time it is resumed.
    """

    def __init__(self, context: LocalAppContext, screen: Screen):
        self.context = context
        self.screen = screen

    def on_create(self) -> None:
        self.context.register_receiver(FINISH_EMPTY_ACTIVITIES, self._on_finish)

    def on_resume(self) -> None:
        self.context.send_broadcast(EMPTY_ACTIVITY_RESUMED)

    def on_destroy(self) -> None:
        self.context.unregister_receiver(self._on_finish)

    def _on_finish(self, context: IAppContext, topic: str) -> None:
        self.context.finish_screen(self.screen)


def install_helper_screen(context: LocalAppContext, identity: str = HELPER_SCREEN) -> None:
    """Register HelperScreen as the behavior for the helper identity."""
    context.register_screen(identity, HelperScreen)
