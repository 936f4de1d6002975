# uiauto_device/waits.py
"""
@file waits.py
@brief Bounded polling and the retrying main-thread task runner.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Callable, Optional, TypeVar

from .config import LifecycleTimeConfig
from .exceptions import TimeoutError
from .timinglogger import TIMING_LOGGER

if TYPE_CHECKING:
    from .interfaces import IMainThread

T = TypeVar("T")


class RescheduleTask(Exception):
    """Raised by a main-thread task to ask run_retrying_on_main to run it again."""
    pass


def _timing(event: str, description: str, status: str = "info", **metadata: Any) -> None:
    if TIMING_LOGGER.is_enabled():
        TIMING_LOGGER.log(event=event, description=description, status=status, metadata=metadata)


def _expired(
    message: str,
    *,
    description: str,
    timeout: float,
    attempts: int,
    elapsed: float,
    stage: Optional[str],
    cause: Optional[BaseException] = None,
) -> TimeoutError:
    error = TimeoutError(message)
    error.original_exception = cause
    error.description = description
    error.timeout = timeout
    error.attempt_count = attempts
    error.elapsed_time = elapsed
    error.stage = stage
    return error


def wait_until(
    predicate: Callable[[], T],
    timeout: float,
    interval: float = 0.05,
    description: str = "condition",
    stage: Optional[str] = None,
) -> T:
    """
    Poll predicate until it returns something truthy and return that value.

    Exceptions raised by predicate count as a falsy result; the last one is
    attached to the TimeoutError raised once timeout seconds have passed.
    """
    deadline = time.monotonic() + timeout
    attempts = 0
    last_error: Optional[BaseException] = None
    _timing("wait_start", description, timeout_s=timeout, interval_s=interval, stage=stage)

    while True:
        attempts += 1
        try:
            value = predicate()
        except Exception as e:
            last_error = e
        else:
            if value:
                _timing("wait_success", description, "success", attempts=attempts, stage=stage)
                return value

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break
        time.sleep(min(interval, remaining))

    elapsed = timeout - (deadline - time.monotonic())
    _timing("wait_timeout", description, "error", attempts=attempts, elapsed_s=round(elapsed, 3), stage=stage)
    reason = f"{type(last_error).__name__}: {last_error}" if last_error else "condition kept returning falsy"
    raise _expired(
        f"Timed out waiting for {description} after {timeout}s ({reason})",
        description=description,
        timeout=timeout,
        attempts=attempts,
        elapsed=elapsed,
        stage=stage,
        cause=last_error,
    )


def run_retrying_on_main(
    main_thread: IMainThread,
    task: Callable[[], T],
    timeout: Optional[float] = None,
    poll_delay: Optional[float] = None,
) -> T:
    """
    Run task on the main thread until it stops raising RescheduleTask.

    The first attempt is submitted immediately; later attempts wait poll_delay
    first, so other main-thread work (lifecycle transitions, broadcasts) runs
    in between. Any exception other than RescheduleTask propagates unchanged.

    @param main_thread Main thread to run the task on
    @param task Callable returning a result or raising RescheduleTask
    @param timeout Total seconds to keep retrying (default: config ui_task_retry)
    @param poll_delay Seconds between attempts (default: config ui_task_retry interval)
    @return The task's result
    @throws TimeoutError if the task is still rescheduling when timeout expires
    """
    settings = LifecycleTimeConfig.current().ui_task_retry
    timeout = settings.timeout if timeout is None else timeout
    poll_delay = settings.interval if poll_delay is None else poll_delay

    deadline = time.monotonic() + timeout
    delay = 0.0
    attempts = 0
    _timing("retry_start", "main thread task", timeout_s=timeout, interval_s=poll_delay, stage="ui_task")

    while True:
        if delay:
            time.sleep(min(delay, max(deadline - time.monotonic(), 0.0)))
        attempts += 1
        try:
            result = main_thread.run_on_main_sync(task)
        except RescheduleTask as e:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                elapsed = timeout - remaining
                _timing("retry_timeout", "main thread task", "error", attempts=attempts, stage="ui_task")
                raise _expired(
                    f"Main thread task still rescheduling after {timeout}s ({attempts} attempts)",
                    description="main thread task",
                    timeout=timeout,
                    attempts=attempts,
                    elapsed=elapsed,
                    stage="ui_task",
                    cause=e,
                ) from e
            delay = poll_delay
            continue
        _timing("retry_success", "main thread task", "success", attempts=attempts, stage="ui_task")
        return result
