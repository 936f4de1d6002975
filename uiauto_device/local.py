# uiauto_device/local.py
"""
@file local.py
@brief In-process runtime: a main thread, a lifecycle registry and an app context.

These implement the interfaces in uiauto_device.interfaces without a device.
All lifecycle transitions and broadcast deliveries run on the MainThread, so
callbacks observe the same ordering a real UI thread would give them.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future
from typing import Any, Callable, Dict, List, Optional, Tuple

from .config import LifecycleTimeConfig
from .exceptions import TimeoutError, UIAutoError
from .interfaces import (BroadcastReceiver, IAppContext, ILifecycleRegistry,
                         IMainThread, LifecycleCallback)
from .screen import LaunchFlags, Screen, Stage
from .waits import wait_until

_STOP = object()

# Optional per-stage hooks a screen behavior may define.
_STAGE_HOOKS = {
    Stage.CREATED: "on_create",
    Stage.STARTED: "on_start",
    Stage.RESUMED: "on_resume",
    Stage.PAUSED: "on_pause",
    Stage.STOPPED: "on_stop",
    Stage.DESTROYED: "on_destroy",
}

ScreenFactory = Callable[["LocalAppContext", Screen], Any]


class MainThread(IMainThread):
    """
    A dedicated thread draining a FIFO task queue.

    Use as a context manager, or call start() and shutdown().
    """

    def __init__(self, name: str = "uiauto-main", logger: Optional[logging.Logger] = None):
        self.name = name
        self.log = logger or logging.getLogger("uiauto_device")
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._timers: List[threading.Timer] = []
        self._timers_lock = threading.Lock()

    def start(self) -> MainThread:
        if self._thread is not None:
            raise UIAutoError(f"Main thread '{self.name}' already started")
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()
        return self

    def shutdown(self, timeout: float = 5.0) -> None:
        """Cancel delayed tasks, drain queued ones and join the thread."""
        with self._timers_lock:
            timers, self._timers = self._timers, []
        for timer in timers:
            timer.cancel()
        if self._thread is None:
            return
        self._queue.put(_STOP)
        self._thread.join(timeout)
        self._thread = None

    def __enter__(self) -> MainThread:
        return self.start()

    def __exit__(self, *exc: Any) -> None:
        self.shutdown()

    def is_main_thread(self) -> bool:
        return self._thread is not None and threading.current_thread() is self._thread

    def post(self, fn: Callable[[], Any]) -> None:
        """Queue fn to run on the main thread."""
        if self._thread is None:
            raise UIAutoError(f"Main thread '{self.name}' is not running")
        self._queue.put(fn)

    def post_delayed(self, fn: Callable[[], Any], delay: float) -> None:
        """Queue fn to run on the main thread after delay seconds."""
        timer = threading.Timer(delay, self._post_from_timer, args=(fn,))
        timer.daemon = True
        with self._timers_lock:
            self._timers = [t for t in self._timers if t.is_alive()]
            self._timers.append(timer)
        timer.start()

    def _post_from_timer(self, fn: Callable[[], Any]) -> None:
        if self._thread is not None:
            self._queue.put(fn)

    def run_on_main_sync(self, fn: Callable[[], Any]) -> Any:
        self._check_not_main_thread()
        future: Future = Future()

        def task() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(fn())
            except BaseException as e:
                future.set_exception(e)

        self.post(task)
        return future.result()

    def wait_for_idle_sync(self, timeout: Optional[float] = None) -> None:
        """Block until every task queued before this call has run."""
        self._check_not_main_thread()
        if timeout is None:
            timeout = LifecycleTimeConfig.current().idle_sync.timeout
        idle = threading.Event()
        self.post(idle.set)
        if not idle.wait(timeout):
            error = TimeoutError(f"Main thread '{self.name}' did not become idle within {timeout}s")
            error.description = "main thread idle"
            error.timeout = timeout
            error.stage = "idle_sync"
            raise error

    def _check_not_main_thread(self) -> None:
        if self.is_main_thread():
            raise UIAutoError("This method can not be called from the main application thread")

    def _loop(self) -> None:
        while True:
            task = self._queue.get()
            if task is _STOP:
                return
            try:
                task()
            except Exception:
                self.log.exception("Uncaught exception in task on main thread '%s'", self.name)


class LifecycleMonitor(ILifecycleRegistry):
    """
    Tracks live screens and dispatches lifecycle transitions on the main thread.
    """

    def __init__(self, main_thread: MainThread, logger: Optional[logging.Logger] = None):
        self.main_thread = main_thread
        self.log = logger or logging.getLogger("uiauto_device")
        self._lock = threading.Lock()
        self._screens: List[Screen] = []
        self._callbacks: List[LifecycleCallback] = []

    def get_screens_in_stage(self, stage: Stage) -> List[Screen]:
        with self._lock:
            return [s for s in self._screens if s.stage is stage]

    def add_lifecycle_callback(self, callback: LifecycleCallback) -> None:
        with self._lock:
            self._callbacks.append(callback)

    def remove_lifecycle_callback(self, callback: LifecycleCallback) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    @property
    def callback_count(self) -> int:
        with self._lock:
            return len(self._callbacks)

    @property
    def screens(self) -> List[Screen]:
        with self._lock:
            return list(self._screens)

    def signal_lifecycle_change(self, screen: Screen, stage: Stage) -> None:
        """Record a transition and notify callbacks. Must run on the main thread."""
        if not self.main_thread.is_main_thread():
            raise UIAutoError("Lifecycle changes must be signalled on the main thread")

        with self._lock:
            screen._set_stage(stage)
            if stage is Stage.DESTROYED:
                if screen in self._screens:
                    self._screens.remove(screen)
            elif screen not in self._screens:
                self._screens.append(screen)
            callbacks = list(self._callbacks)

        self.log.debug("Lifecycle status change: %s in: %s", screen.local_name, stage.name)
        for callback in callbacks:
            with self._lock:
                if callback not in self._callbacks:
                    continue
            try:
                callback(screen, stage)
            except Exception:
                self.log.exception("Lifecycle callback failed for %s in %s", screen.local_name, stage.name)


class LocalAppContext(IAppContext):
    """
    Screen manager and broadcast channel backed by a MainThread and a LifecycleMonitor.

    Screens are launched by identity; a factory registered for the identity
    may return a behavior object whose on_create/on_resume/... hooks run
    right after each transition is signalled.
    """

    def __init__(
        self,
        main_thread: MainThread,
        monitor: LifecycleMonitor,
        logger: Optional[logging.Logger] = None,
    ):
        self.main_thread = main_thread
        self.monitor = monitor
        self.log = logger or logging.getLogger("uiauto_device")
        self._lock = threading.Lock()
        self._factories: Dict[str, ScreenFactory] = {}
        self._behaviors: Dict[int, Any] = {}
        self._receivers: Dict[str, List[BroadcastReceiver]] = {}
        self.launches: List[Tuple[str, LaunchFlags]] = []
        self.broadcasts: List[str] = []

    # -------------------------
    # Screen manager
    # -------------------------
    def register_screen(self, identity: str, factory: ScreenFactory) -> None:
        with self._lock:
            self._factories[identity] = factory

    def start_screen(self, identity: str, flags: LaunchFlags = LaunchFlags.NONE) -> None:
        self.log.info("Starting screen: %s (flags=%s)", identity, hex(int(flags)))
        with self._lock:
            self.launches.append((identity, flags))
        screen = Screen(identity)
        self.main_thread.post(lambda: self._launch(screen))

    def _launch(self, screen: Screen) -> None:
        with self._lock:
            factory = self._factories.get(screen.name)
        if factory is not None:
            behavior = factory(self, screen)
            with self._lock:
                self._behaviors[id(screen)] = behavior
        for stage in (Stage.CREATED, Stage.STARTED, Stage.RESUMED):
            self._transition(screen, stage)

    def finish_screen(self, screen: Screen) -> None:
        """Queue PAUSED -> STOPPED -> DESTROYED for a screen."""
        self.main_thread.post(lambda: self._finish(screen))

    def _finish(self, screen: Screen) -> None:
        if screen.stage is Stage.DESTROYED:
            return
        if screen.stage is Stage.RESUMED:
            self._transition(screen, Stage.PAUSED)
        if screen.stage is not Stage.STOPPED:
            self._transition(screen, Stage.STOPPED)
        self._transition(screen, Stage.DESTROYED)

    def move_to_stage(self, screen: Screen, stage: Stage) -> None:
        """Queue a single transition, e.g. to drive a screen from a test."""
        self.main_thread.post(lambda: self._transition(screen, stage))

    def _transition(self, screen: Screen, stage: Stage) -> None:
        self.monitor.signal_lifecycle_change(screen, stage)
        with self._lock:
            behavior = self._behaviors.get(id(screen))
            if stage is Stage.DESTROYED:
                self._behaviors.pop(id(screen), None)
        hook_name = _STAGE_HOOKS.get(stage)
        hook = getattr(behavior, hook_name, None) if behavior is not None and hook_name else None
        if hook is not None:
            hook()

    def await_stage(self, identity: str, stage: Stage, timeout: float = 2.0) -> Optional[Screen]:
        """Wait until a tracked screen with this identity reaches stage (DESTROYED: none left)."""
        if stage is Stage.DESTROYED:
            wait_until(
                lambda: not [s for s in self.monitor.screens if s.name == identity],
                timeout,
                description=f"{identity} to be destroyed",
                stage=stage.name,
            )
            return None
        return wait_until(
            lambda: next((s for s in self.monitor.screens if s.name == identity and s.stage is stage), None),
            timeout,
            description=f"{identity} to reach {stage.name}",
            stage=stage.name,
        )

    # -------------------------
    # Broadcast channel
    # -------------------------
    def register_receiver(self, topic: str, receiver: BroadcastReceiver) -> None:
        with self._lock:
            self._receivers.setdefault(topic, []).append(receiver)

    def unregister_receiver(self, receiver: BroadcastReceiver) -> None:
        with self._lock:
            for receivers in self._receivers.values():
                while receiver in receivers:
                    receivers.remove(receiver)

    def receivers_for(self, topic: str) -> List[BroadcastReceiver]:
        with self._lock:
            return list(self._receivers.get(topic, []))

    def send_broadcast(self, topic: str) -> None:
        with self._lock:
            self.broadcasts.append(topic)
        self.main_thread.post(lambda: self._deliver(topic))

    def _deliver(self, topic: str) -> None:
        receivers = self.receivers_for(topic)
        if not receivers:
            self.log.debug("Broadcast %s had no receivers", topic)
        for receiver in receivers:
            with self._lock:
                if receiver not in self._receivers.get(topic, []):
                    continue
            try:
                receiver(self, topic)
            except Exception:
                self.log.exception("Broadcast receiver failed for %s", topic)
