# uiauto_device/stage_waiter.py
"""
@file stage_waiter.py
@brief Find the screen in the RESUMED stage, waiting briefly for one if needed.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import List, Optional, Tuple

from .config import LifecycleTimeConfig
from .exceptions import UIAutoError
from .interfaces import ILifecycleRegistry, IMainThread
from .latch import WaitLatch
from .screen import Screen, Stage
from .timinglogger import TIMING_LOGGER


class _ResumedSubscription:
    """One-shot lifecycle callback that captures the first screen to resume."""

    def __init__(self, registry: ILifecycleRegistry, log: logging.Logger):
        self._registry = registry
        self._log = log
        self._lock = threading.Lock()
        self._active = False
        self.latch = WaitLatch()
        self.screen: Optional[Screen] = None

    @property
    def active(self) -> bool:
        return self._active

    def register(self) -> None:
        with self._lock:
            self._active = True
        self._registry.add_lifecycle_callback(self)

    def unregister(self) -> None:
        """Remove the callback. Safe to call more than once."""
        with self._lock:
            if not self._active:
                return
            self._active = False
        self._registry.remove_lifecycle_callback(self)

    def __call__(self, screen: Screen, stage: Stage) -> None:
        if stage is not Stage.RESUMED:
            return
        with self._lock:
            if not self._active or self.screen is not None:
                return
            self.screen = screen
        self._log.debug("Found %s in the RESUMED stage.", screen.local_name)
        self.unregister()
        self.latch.count_down()


class StageWaiter:
    """
    Returns the screen currently in the RESUMED stage.

    The registry query and the subscription both run on the main thread, where
    the registry dispatches transitions, so a screen cannot resume between the
    two. The calling thread then blocks on a latch; the main thread is never
    blocked.
    """

    def __init__(
        self,
        registry: ILifecycleRegistry,
        main_thread: IMainThread,
        logger: Optional[logging.Logger] = None,
    ):
        self.registry = registry
        self.main_thread = main_thread
        self.log = logger or logging.getLogger("uiauto_device")

    def find_or_await_resumed(self, timeout: Optional[float] = None) -> Optional[Screen]:
        """
        Get the first screen in the RESUMED stage.

        If none is resumed, waits up to timeout for one to resume. Before
        returning, waits for the main thread to become idle.

        @param timeout Seconds to wait (default: config resumed_wait, 2s)
        @return The resumed screen, or None if none resumed in time
        """
        if timeout is None:
            timeout = LifecycleTimeConfig.current().resumed_wait.timeout
        if self.main_thread.is_main_thread():
            raise UIAutoError("find_or_await_resumed can not be called from the main application thread")

        subscription: Optional[_ResumedSubscription] = None
        try:
            screen, subscription = self.main_thread.run_on_main_sync(
                lambda: self._query_or_subscribe(timeout)
            )
            if subscription is not None:
                screen = self._await(subscription, timeout)
        finally:
            if subscription is not None:
                self.main_thread.run_on_main_sync(subscription.unregister)
            self.main_thread.wait_for_idle_sync()
        return screen

    def _query_or_subscribe(
        self, timeout: float
    ) -> Tuple[Optional[Screen], Optional[_ResumedSubscription]]:
        screens: List[Screen] = list(self.registry.get_screens_in_stage(Stage.RESUMED))
        if len(screens) > 1:
            names = [s.local_name for s in screens]
            self.log.warning(
                "More than one screen was found in the RESUMED stage. Screens found: %s", names
            )
            return screens[0], None
        if screens:
            return screens[0], None

        self.log.debug("No screen found in the RESUMED stage. Waiting up to %ss for one.", timeout)
        subscription = _ResumedSubscription(self.registry, self.log)
        subscription.register()
        return None, subscription

    def _await(self, subscription: _ResumedSubscription, timeout: float) -> Optional[Screen]:
        start = time.monotonic()
        if TIMING_LOGGER.is_enabled():
            TIMING_LOGGER.log(
                event="wait_start",
                description="screen to resume",
                metadata={"timeout_s": timeout, "stage": Stage.RESUMED.name},
            )

        released = subscription.latch.wait(timeout)
        elapsed = round(time.monotonic() - start, 3)

        if not released:
            self.log.debug("No screen reached the RESUMED stage within %ss.", timeout)
            if TIMING_LOGGER.is_enabled():
                TIMING_LOGGER.log(
                    event="wait_timeout",
                    description="screen to resume",
                    status="warning",
                    metadata={"timeout_s": timeout, "elapsed_s": elapsed, "stage": Stage.RESUMED.name},
                )
            return None

        if TIMING_LOGGER.is_enabled():
            TIMING_LOGGER.log(
                event="wait_success",
                description="screen to resume",
                status="success",
                metadata={"elapsed_s": elapsed, "stage": Stage.RESUMED.name},
            )
        return subscription.screen


def get_resumed_screen_or_none(
    registry: ILifecycleRegistry,
    main_thread: IMainThread,
    timeout: Optional[float] = None,
    logger: Optional[logging.Logger] = None,
) -> Optional[Screen]:
    """Returns the first screen in the RESUMED stage, or None after waiting up to timeout."""
    return StageWaiter(registry, main_thread, logger).find_or_await_resumed(timeout)
