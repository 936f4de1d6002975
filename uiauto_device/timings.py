# uiauto_device/timings.py
"""
@file timings.py
@brief Lifecycle timeout presets and defaults.
"""

from __future__ import annotations
import os
from copy import deepcopy
from typing import Any, Dict

import yaml

from .exceptions import ConfigError


# helper_screen_ready mirrors the platform's default activity lifecycle timeout (45s).
TIMEOUT_FIELDS: Dict[str, Dict[str, Any]] = {
    "resumed_wait": {"timeout": 2.0, "interval": 0.0},
    "helper_screen_ready": {"timeout": 45.0, "interval": 0.0},
    "idle_sync": {"timeout": 5.0, "interval": 0.0},
    "ui_task_retry": {"timeout": 5.0, "interval": 0.1},
}

PRESET_OVERRIDES: Dict[str, Dict[str, Any]] = {
    "fast": {
        "helper_screen_ready": {"timeout": 10.0},
        "idle_sync": {"timeout": 2.0},
        "ui_task_retry": {"timeout": 3.0, "interval": 0.05},
    },
    "slow": {
        "resumed_wait": {"timeout": 4.0},
        "helper_screen_ready": {"timeout": 60.0},
        "idle_sync": {"timeout": 10.0},
        "ui_task_retry": {"timeout": 10.0, "interval": 0.2},
    },
    "ci": {
        "resumed_wait": {"timeout": 5.0},
        "helper_screen_ready": {"timeout": 90.0},
        "idle_sync": {"timeout": 15.0},
        "ui_task_retry": {"timeout": 15.0, "interval": 0.2},
    },
}


def list_presets() -> Dict[str, Dict[str, Any]]:
    return {"default": {}, **PRESET_OVERRIDES}


def build_preset_values(preset: str) -> Dict[str, Any]:
    preset_key = (preset or "default").lower()
    values: Dict[str, Any] = deepcopy(TIMEOUT_FIELDS)

    if preset_key == "default":
        return values

    overrides = PRESET_OVERRIDES.get(preset_key)
    if overrides is None:
        raise ValueError(f"Unknown timing preset: {preset}")

    for key, value in overrides.items():
        base = deepcopy(values[key])
        base.update(value)
        values[key] = base

    return values


def load_timings_yaml(path: str) -> Dict[str, Any]:
    """
    Load timeout overrides from the ``timings:`` block of a YAML file.

    @param path Path to the YAML file
    @return Mapping of field name to {"timeout": ..., "interval": ...}
    """
    if not os.path.exists(path):
        raise ConfigError(f"Timings YAML not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("Timings YAML must be a mapping at root.")
    timings = data.get("timings", {}) or {}
    if not isinstance(timings, dict):
        raise ConfigError("'timings' must be a mapping")

    for name, spec in timings.items():
        if name not in TIMEOUT_FIELDS:
            raise ConfigError(f"timings.{name}: unknown field. Allowed: {sorted(TIMEOUT_FIELDS)}")
        if not isinstance(spec, dict):
            raise ConfigError(f"timings.{name} must be a dict")
    return timings
