# uiauto_device/screen.py
"""
@file screen.py
@brief Screen identity and lifecycle stage model.
"""

from __future__ import annotations

import threading
from enum import Enum, IntFlag
from typing import Optional


class Stage(Enum):
    """Lifecycle stages in the order a screen moves through them."""
    PRE_ON_CREATE = 0
    CREATED = 1
    STARTED = 2
    RESUMED = 3
    PAUSED = 4
    STOPPED = 5
    RESTARTED = 6
    DESTROYED = 7


class LaunchFlags(IntFlag):
    NONE = 0
    NEW_TASK = 0x10000000


class Screen:
    """
    One live top-level UI surface.

    Screens are owned by the screen manager; this package only observes them.
    Two Screen objects are equal only if they are the same object.
    """

    def __init__(self, name: str, stage: Stage = Stage.PRE_ON_CREATE):
        self.name = name
        self._stage = stage
        self._lock = threading.Lock()

    @property
    def local_name(self) -> str:
        """Short class name used in diagnostics (``.MainActivity`` -> ``MainActivity``)."""
        component = self.name.split("/", 1)[-1]
        return component.rsplit(".", 1)[-1]

    @property
    def package(self) -> Optional[str]:
        if "/" not in self.name:
            return None
        return self.name.split("/", 1)[0]

    @property
    def stage(self) -> Stage:
        with self._lock:
            return self._stage

    def _set_stage(self, stage: Stage) -> None:
        with self._lock:
            self._stage = stage

    def __repr__(self) -> str:
        return f"Screen(name={self.name!r}, stage={self.stage.name})"
