# uiauto_device/config.py
"""
@file config.py
@brief Timeouts for lifecycle synchronization.

Built in layers: field defaults, a named preset, an optional ``timings:``
YAML block, explicit overrides and finally ``UIAUTO_LIFECYCLE_TIMEOUT_MS``.
Callers read ``LifecycleTimeConfig.current()``; tests narrow it with
``LifecycleTimeConfig.override(...)``.
"""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any, Dict, Generator, List, Mapping, Optional

from .exceptions import ConfigError
from .timings import TIMEOUT_FIELDS, build_preset_values, load_timings_yaml

LIFECYCLE_TIMEOUT_ENV = "UIAUTO_LIFECYCLE_TIMEOUT_MS"


@dataclass(frozen=True)
class TimeoutSettings:
    """Timeout settings for a single wait."""
    timeout: float
    interval: float = 0.0

    def with_overrides(
        self,
        timeout: Optional[float] = None,
        interval: Optional[float] = None,
    ) -> TimeoutSettings:
        """Create a new settings instance with overrides applied."""
        changes: Dict[str, float] = {}
        if timeout is not None:
            changes["timeout"] = float(timeout)
        if interval is not None:
            changes["interval"] = float(interval)
        return replace(self, **changes)


class LifecycleTimeConfig:
    """One immutable snapshot of every lifecycle timeout."""

    _process_default: Optional[LifecycleTimeConfig] = None
    _lock = threading.Lock()
    _scopes = threading.local()

    resumed_wait: TimeoutSettings
    helper_screen_ready: TimeoutSettings
    idle_sync: TimeoutSettings
    ui_task_retry: TimeoutSettings

    def __init__(self, preset: Optional[str] = None):
        for name, raw in build_preset_values(preset or "default").items():
            setattr(self, name, TimeoutSettings(float(raw["timeout"]), float(raw.get("interval", 0.0))))

    def to_dict(self) -> Dict[str, Any]:
        return {
            name: {"timeout": getattr(self, name).timeout, "interval": getattr(self, name).interval}
            for name in TIMEOUT_FIELDS
        }

    def merged(self, overrides: Mapping[str, Any]) -> LifecycleTimeConfig:
        """
        Return a copy with overrides applied.

        Each value may be a TimeoutSettings, a {"timeout", "interval"} mapping
        or a bare number of seconds for the timeout.
        """
        result = type(self).__new__(type(self))
        result.__dict__.update(self.__dict__)
        for name, value in overrides.items():
            if name not in TIMEOUT_FIELDS:
                raise ValueError(f"Unknown LifecycleTimeConfig field: {name}")
            setting: TimeoutSettings = getattr(self, name)
            if isinstance(value, TimeoutSettings):
                setting = value
            elif isinstance(value, Mapping):
                setting = setting.with_overrides(value.get("timeout"), value.get("interval"))
            elif isinstance(value, (int, float)) and not isinstance(value, bool):
                setting = setting.with_overrides(timeout=value)
            else:
                raise ValueError(f"Invalid override for {name}: {value!r}")
            setattr(result, name, setting)
        return result

    @classmethod
    def build_from(
        cls,
        *,
        preset: str = "default",
        overrides: Optional[Mapping[str, Any]] = None,
        timings_path: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> LifecycleTimeConfig:
        """Build a config from a preset plus the optional layers above it."""
        cfg = cls(preset)
        if timings_path:
            cfg = cfg.merged(load_timings_yaml(timings_path))
        if overrides:
            cfg = cfg.merged(overrides)
        millis = _lifecycle_timeout_ms(os.environ if env is None else env)
        if millis is not None:
            cfg = cfg.merged({"helper_screen_ready": millis / 1000.0})
        return cfg

    @classmethod
    def default(cls) -> LifecycleTimeConfig:
        """Process-wide config, built from os.environ on first use."""
        with cls._lock:
            if cls._process_default is None:
                cls._process_default = cls.build_from()
            return cls._process_default

    @classmethod
    def _stack(cls) -> List[LifecycleTimeConfig]:
        stack = getattr(cls._scopes, "stack", None)
        if stack is None:
            stack = cls._scopes.stack = []
        return stack

    @classmethod
    def current(cls) -> LifecycleTimeConfig:
        """Innermost override on this thread, else the process default."""
        stack = cls._stack()
        return stack[-1] if stack else cls.default()

    @classmethod
    @contextmanager
    def override(cls, **fields: Any) -> Generator[LifecycleTimeConfig, None, None]:
        """Temporarily replace some timeouts for the calling thread."""
        cfg = cls.current().merged(fields)
        stack = cls._stack()
        stack.append(cfg)
        try:
            yield cfg
        finally:
            stack.remove(cfg)

    @classmethod
    def reset_to_defaults(cls) -> None:
        """Forget the process default and this thread's overrides."""
        with cls._lock:
            cls._process_default = None
        cls._scopes.stack = []


def _lifecycle_timeout_ms(env: Mapping[str, str]) -> Optional[int]:
    raw = env.get(LIFECYCLE_TIMEOUT_ENV)
    if not raw:
        return None
    try:
        millis = int(raw)
    except ValueError as e:
        raise ConfigError(f"{LIFECYCLE_TIMEOUT_ENV} must be an integer, got: {raw!r}") from e
    if millis <= 0:
        raise ConfigError(f"{LIFECYCLE_TIMEOUT_ENV} must be positive, got: {millis}")
    return millis
