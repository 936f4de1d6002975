"""
Shared fixtures: a running local runtime per test.
"""

import pytest

from uiauto_device.config import LifecycleTimeConfig
from uiauto_device.local import LifecycleMonitor, LocalAppContext, MainThread
from uiauto_device.screen import Stage


@pytest.fixture(autouse=True)
def reset_time_config(monkeypatch):
    monkeypatch.delenv("UIAUTO_LIFECYCLE_TIMEOUT_MS", raising=False)
    LifecycleTimeConfig.reset_to_defaults()
    yield
    LifecycleTimeConfig.reset_to_defaults()


@pytest.fixture
def main_thread():
    thread = MainThread(name="test-main").start()
    yield thread
    thread.shutdown()


@pytest.fixture
def monitor(main_thread):
    return LifecycleMonitor(main_thread)


@pytest.fixture
def context(main_thread, monitor):
    return LocalAppContext(main_thread, monitor)


@pytest.fixture
def launch(context):
    """Launch a screen by identity and wait until it is resumed."""

    def _launch(identity, timeout=2.0):
        context.start_screen(identity)
        return context.await_stage(identity, Stage.RESUMED, timeout=timeout)

    return _launch
