"""
Tests for the helper screen request/acknowledge protocol.
"""

import threading
import time

import pytest

from uiauto_device.config import LifecycleTimeConfig
from uiauto_device.exceptions import (HelperScreenError,
                                      HelperScreenTimeoutError, TimeoutError,
                                      WaitInterruptedError)
from uiauto_device.helper_screen import (EMPTY_ACTIVITY_RESUMED,
                                         FINISH_EMPTY_ACTIVITIES,
                                         HELPER_SCREEN,
                                         HelperScreen,
                                         HelperScreenCoordinator,
                                         finish_helper_screen,
                                         install_helper_screen,
                                         launch_helper_screen)
from uiauto_device.interfaces import IAppContext
from uiauto_device.local import LocalAppContext
from uiauto_device.screen import LaunchFlags, Stage


class SilentHelper:
    """Helper screen that never acknowledges."""
    pass


class SynchronousContext(IAppContext):
    """Delivers broadcasts inline; the helper acknowledges inside start_screen."""

    def __init__(self):
        self.receivers = []
        self.calls = []

    def start_screen(self, identity, flags=LaunchFlags.NONE):
        self.calls.append(("start_screen", identity, flags))
        self.send_broadcast(EMPTY_ACTIVITY_RESUMED)

    def register_receiver(self, topic, receiver):
        self.calls.append(("register_receiver", topic))
        self.receivers.append((topic, receiver))

    def unregister_receiver(self, receiver):
        self.calls.append(("unregister_receiver",))
        self.receivers = [(t, r) for t, r in self.receivers if r != receiver]

    def send_broadcast(self, topic):
        self.calls.append(("send_broadcast", topic))
        for t, receiver in list(self.receivers):
            if t == topic:
                receiver(self, topic)


@pytest.fixture
def coordinator():
    return HelperScreenCoordinator()


class TestLaunchAndAwaitReady:
    """Tests for launch_and_await_ready."""

    def test_returns_when_helper_resumes(self, coordinator, context):
        """Should return once the helper broadcasts that it resumed."""
        install_helper_screen(context)

        coordinator.launch_and_await_ready(context, timeout=5)

        assert context.launches == [(HELPER_SCREEN, LaunchFlags.NEW_TASK)]
        assert context.receivers_for(EMPTY_ACTIVITY_RESUMED) == []
        helper = context.await_stage(HELPER_SCREEN, Stage.RESUMED)
        assert helper.stage is Stage.RESUMED

    def test_returns_at_ack_not_at_timeout(self, coordinator, context, main_thread):
        """An acknowledgement 50ms after resume should end the wait at ~50ms."""

        class DelayedAck:
            def on_resume(self):
                main_thread.post_delayed(lambda: context.send_broadcast(EMPTY_ACTIVITY_RESUMED), 0.05)

        context.register_screen(HELPER_SCREEN, lambda ctx, screen: DelayedAck())

        start = time.monotonic()
        coordinator.launch_and_await_ready(context, timeout=10)
        elapsed = time.monotonic() - start

        assert elapsed >= 0.04
        assert elapsed < 2.0

    def test_timeout_raises_and_unregisters(self, coordinator, context):
        """Should raise HelperScreenTimeoutError and leave no receiver behind."""
        context.register_screen(HELPER_SCREEN, lambda ctx, screen: SilentHelper())

        start = time.monotonic()
        with pytest.raises(HelperScreenTimeoutError) as exc_info:
            coordinator.launch_and_await_ready(context, timeout=0.1)
        elapsed = time.monotonic() - start

        assert context.receivers_for(EMPTY_ACTIVITY_RESUMED) == []
        assert elapsed >= 0.1
        assert elapsed < 2.0
        error = exc_info.value
        assert isinstance(error, TimeoutError)
        assert isinstance(error, HelperScreenError)
        assert error.timeout == 0.1
        assert error.stage == "helper_screen_ready"
        assert "Timed out" in str(error)

    def test_default_timeout_comes_from_config(self, coordinator, context):
        """Should use the helper_screen_ready timeout when none is given."""
        context.register_screen(HELPER_SCREEN, lambda ctx, screen: SilentHelper())

        with LifecycleTimeConfig.override(helper_screen_ready=0.1):
            with pytest.raises(HelperScreenTimeoutError) as exc_info:
                coordinator.launch_and_await_ready(context)

        assert exc_info.value.timeout == 0.1

    def test_cancel_raises_and_unregisters(self, coordinator, context):
        """A cancelled wait should surface as HelperScreenError after cleanup."""
        context.register_screen(HELPER_SCREEN, lambda ctx, screen: SilentHelper())
        timer = threading.Timer(0.1, coordinator.cancel, args=("test teardown",))
        timer.start()
        try:
            with pytest.raises(HelperScreenError) as exc_info:
                coordinator.launch_and_await_ready(context, timeout=10)
        finally:
            timer.join()

        assert not isinstance(exc_info.value, HelperScreenTimeoutError)
        assert isinstance(exc_info.value.__cause__, WaitInterruptedError)
        assert context.receivers_for(EMPTY_ACTIVITY_RESUMED) == []
        assert coordinator.cancel() is False

    def test_launch_failure_propagates_after_cleanup(self, coordinator, main_thread, monitor):
        """A failing launch should propagate with the receiver already removed."""

        class BrokenContext(LocalAppContext):
            def start_screen(self, identity, flags=LaunchFlags.NONE):
                raise RuntimeError("no such screen")

        broken = BrokenContext(main_thread, monitor)

        with pytest.raises(RuntimeError, match="no such screen"):
            coordinator.launch_and_await_ready(broken, timeout=1)

        assert broken.receivers_for(EMPTY_ACTIVITY_RESUMED) == []

    def test_receiver_registered_before_launch(self, coordinator):
        """An acknowledgement delivered during the launch call must not be missed."""
        ctx = SynchronousContext()

        start = time.monotonic()
        coordinator.launch_and_await_ready(ctx, timeout=5)

        assert time.monotonic() - start < 1.0
        names = [c[0] for c in ctx.calls]
        assert names.index("register_receiver") < names.index("start_screen")
        assert names[-1] == "unregister_receiver"
        assert ctx.receivers == []

    def test_functional_form(self, context):
        """launch_helper_screen should launch and wait like the coordinator."""
        install_helper_screen(context)

        launch_helper_screen(context, timeout=5)

        assert context.launches[0][0] == HELPER_SCREEN


class TestRequestFinish:
    """Tests for request_finish."""

    def test_launch_then_finish_destroys_helper(self, coordinator, context, main_thread):
        """The helper should finish itself on request."""
        install_helper_screen(context)
        coordinator.launch_and_await_ready(context, timeout=5)

        coordinator.request_finish(context)

        context.await_stage(HELPER_SCREEN, Stage.DESTROYED)
        main_thread.wait_for_idle_sync()
        assert context.receivers_for(EMPTY_ACTIVITY_RESUMED) == []
        assert context.receivers_for(FINISH_EMPTY_ACTIVITIES) == []

    def test_finish_without_helper_is_not_an_error(self, coordinator, context, main_thread):
        """An unobserved finish request is fine."""
        coordinator.request_finish(context)
        main_thread.wait_for_idle_sync()

        assert context.broadcasts == [FINISH_EMPTY_ACTIVITIES]

    def test_functional_form(self, context, main_thread):
        """finish_helper_screen should broadcast the finish topic."""
        finish_helper_screen(context)
        main_thread.wait_for_idle_sync()

        assert FINISH_EMPTY_ACTIVITIES in context.broadcasts

    def test_context_manager_brackets_helper(self, coordinator, context):
        """helper_screen() should keep the helper up only inside the block."""
        install_helper_screen(context)

        with coordinator.helper_screen(context, timeout=5):
            helper = context.await_stage(HELPER_SCREEN, Stage.RESUMED)
            assert helper is not None
            assert FINISH_EMPTY_ACTIVITIES not in context.broadcasts

        assert context.broadcasts[-1] == FINISH_EMPTY_ACTIVITIES
        context.await_stage(HELPER_SCREEN, Stage.DESTROYED)

    def test_context_manager_finishes_late_helper_on_timeout(self, coordinator, context):
        """A helper that misses the deadline should still be asked to finish."""

        class UnannouncedHelper(HelperScreen):
            def on_resume(self):
                pass

        context.register_screen(HELPER_SCREEN, UnannouncedHelper)

        with pytest.raises(HelperScreenTimeoutError):
            with coordinator.helper_screen(context, timeout=0.1):
                pytest.fail("block must not run when the helper never resumes")

        assert context.broadcasts[-1] == FINISH_EMPTY_ACTIVITIES
        context.await_stage(HELPER_SCREEN, Stage.DESTROYED)

    def test_relaunch_after_finish(self, coordinator, context):
        """A second launch after finishing should wait on its own acknowledgement."""
        install_helper_screen(context)
        coordinator.launch_and_await_ready(context, timeout=5)
        coordinator.request_finish(context)
        context.await_stage(HELPER_SCREEN, Stage.DESTROYED)

        coordinator.launch_and_await_ready(context, timeout=5)

        assert len(context.launches) == 2
        assert context.broadcasts.count(EMPTY_ACTIVITY_RESUMED) == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
