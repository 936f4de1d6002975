"""
UIAuto Device - screen lifecycle synchronization for UI tests.

This package provides:
- StageWaiter: find the resumed screen, or wait briefly for one
- ConfigFlagInspector: does a screen handle a configuration change itself
- HelperScreenCoordinator: launch/finish the helper screen used for config changes
- ManifestRepository: static screen metadata from a YAML manifest
- Local runtime: in-process main thread, lifecycle monitor and app context
"""

from uiauto_device.config import LifecycleTimeConfig, TimeoutSettings
from uiauto_device.config_flags import (ConfigChange, ConfigFlagInspector,
                                        is_config_change_handled)
from uiauto_device.exceptions import (ConfigError, HelperScreenError,
                                      HelperScreenTimeoutError,
                                      MetadataUnavailableError, TimeoutError,
                                      UIAutoError, WaitInterruptedError)
from uiauto_device.helper_screen import (HelperScreenCoordinator,
                                         finish_helper_screen,
                                         install_helper_screen,
                                         launch_helper_screen)
from uiauto_device.interfaces import (IAppContext, ILifecycleRegistry,
                                      IMainThread, IMetadataSource)
from uiauto_device.latch import WaitLatch
from uiauto_device.local import LifecycleMonitor, LocalAppContext, MainThread
from uiauto_device.manifest import ManifestRepository, ScreenInfo, ScreenInfoBuilder
from uiauto_device.screen import LaunchFlags, Screen, Stage
from uiauto_device.stage_waiter import StageWaiter, get_resumed_screen_or_none
from uiauto_device.waits import RescheduleTask, run_retrying_on_main, wait_until

__all__ = [
    "LifecycleTimeConfig",
    "TimeoutSettings",
    "ConfigChange",
    "ConfigFlagInspector",
    "is_config_change_handled",
    "UIAutoError",
    "ConfigError",
    "TimeoutError",
    "HelperScreenError",
    "HelperScreenTimeoutError",
    "MetadataUnavailableError",
    "WaitInterruptedError",
    "HelperScreenCoordinator",
    "launch_helper_screen",
    "finish_helper_screen",
    "install_helper_screen",
    "IAppContext",
    "ILifecycleRegistry",
    "IMainThread",
    "IMetadataSource",
    "WaitLatch",
    "LifecycleMonitor",
    "LocalAppContext",
    "MainThread",
    "ManifestRepository",
    "ScreenInfo",
    "ScreenInfoBuilder",
    "LaunchFlags",
    "Screen",
    "Stage",
    "StageWaiter",
    "get_resumed_screen_or_none",
    "RescheduleTask",
    "run_retrying_on_main",
    "wait_until",
]

__version__ = "1.0.0"
