"""
@file interfaces.py
@brief Abstract base classes for the collaborators lifecycle sync depends on.

The lifecycle registry, the main (UI) thread, the application context and
the manifest metadata source are process-wide services owned elsewhere.
Components receive them as constructor arguments so that tests can pass
the in-process implementations from uiauto_device.local instead.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, List

from uiauto_device.screen import LaunchFlags, Screen, Stage

LifecycleCallback = Callable[[Screen, Stage], None]
BroadcastReceiver = Callable[["IAppContext", str], None]


class ILifecycleRegistry(ABC):
    """
    Abstract lifecycle registry.

    Tracks every live screen and its current stage. Transition callbacks are
    delivered on the main thread.
    """

    @abstractmethod
    def get_screens_in_stage(self, stage: Stage) -> List[Screen]:
        """
        Get the screens currently in a stage.

        Args:
            stage: Stage to filter on

        Returns:
            Screens in registry order (stable, otherwise arbitrary)
        """
        pass

    @abstractmethod
    def add_lifecycle_callback(self, callback: LifecycleCallback) -> None:
        """
        Register a callback invoked as callback(screen, stage) on each transition.
        """
        pass

    @abstractmethod
    def remove_lifecycle_callback(self, callback: LifecycleCallback) -> None:
        """
        Unregister a callback. Removing an unknown callback is a no-op.
        """
        pass


class IMainThread(ABC):
    """
    Abstract handle on the thread that owns lifecycle transitions.
    """

    @abstractmethod
    def run_on_main_sync(self, fn: Callable[[], Any]) -> Any:
        """
        Run fn on the main thread and block until it returns.

        Returns:
            The return value of fn; exceptions raised by fn are re-raised
        """
        pass

    @abstractmethod
    def wait_for_idle_sync(self) -> None:
        """
        Block until all work queued on the main thread so far has run.
        """
        pass

    @abstractmethod
    def is_main_thread(self) -> bool:
        """Return True if called from the main thread."""
        pass


class IAppContext(ABC):
    """
    Abstract application context: screen launching and broadcast delivery.
    """

    @abstractmethod
    def start_screen(self, identity: str, flags: LaunchFlags = LaunchFlags.NONE) -> None:
        """
        Ask the screen manager to launch a screen. Does not wait for it.

        Args:
            identity: Component identity of the screen to launch
            flags: Launch flags
        """
        pass

    @abstractmethod
    def register_receiver(self, topic: str, receiver: BroadcastReceiver) -> None:
        """
        Register receiver(context, topic) for broadcasts on a topic.
        """
        pass

    @abstractmethod
    def unregister_receiver(self, receiver: BroadcastReceiver) -> None:
        """
        Unregister a receiver from every topic. Unknown receivers are ignored.
        """
        pass

    @abstractmethod
    def send_broadcast(self, topic: str) -> None:
        """
        Send a fire-and-forget broadcast. Delivery is asynchronous.
        """
        pass


class IMetadataSource(ABC):
    """
    Abstract source of static per-screen manifest metadata.
    """

    @abstractmethod
    def get_config_flags(self, identity: str) -> int:
        """
        Get the configuration categories a screen declares it handles itself.

        Args:
            identity: Component identity of the screen

        Returns:
            Bitmask of ConfigChange values

        Raises:
            MetadataUnavailableError: identity cannot be resolved
        """
        pass
