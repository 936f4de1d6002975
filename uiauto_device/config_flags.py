# uiauto_device/config_flags.py
"""
@file config_flags.py
@brief Whether a screen declares that it handles a configuration change itself.
"""

from __future__ import annotations

from enum import IntFlag
from typing import Iterable, Union

from .exceptions import ConfigError, MetadataUnavailableError
from .interfaces import IMetadataSource
from .screen import Screen


class ConfigChange(IntFlag):
    """Configuration categories, using the platform's configChanges bit values."""
    NONE = 0
    MCC = 0x0001
    MNC = 0x0002
    LOCALE = 0x0004
    TOUCHSCREEN = 0x0008
    KEYBOARD = 0x0010
    KEYBOARD_HIDDEN = 0x0020
    NAVIGATION = 0x0040
    ORIENTATION = 0x0080
    SCREEN_LAYOUT = 0x0100
    UI_MODE = 0x0200
    SCREEN_SIZE = 0x0400
    SMALLEST_SCREEN_SIZE = 0x0800
    DENSITY = 0x1000
    LAYOUT_DIRECTION = 0x2000
    FONT_SCALE = 0x40000000


# Manifest attribute spelling -> flag.
ATTRIBUTE_NAMES = {
    "mcc": ConfigChange.MCC,
    "mnc": ConfigChange.MNC,
    "locale": ConfigChange.LOCALE,
    "touchscreen": ConfigChange.TOUCHSCREEN,
    "keyboard": ConfigChange.KEYBOARD,
    "keyboardHidden": ConfigChange.KEYBOARD_HIDDEN,
    "navigation": ConfigChange.NAVIGATION,
    "orientation": ConfigChange.ORIENTATION,
    "screenLayout": ConfigChange.SCREEN_LAYOUT,
    "uiMode": ConfigChange.UI_MODE,
    "screenSize": ConfigChange.SCREEN_SIZE,
    "smallestScreenSize": ConfigChange.SMALLEST_SCREEN_SIZE,
    "density": ConfigChange.DENSITY,
    "layoutDirection": ConfigChange.LAYOUT_DIRECTION,
    "fontScale": ConfigChange.FONT_SCALE,
}


def parse_config_changes(values: Iterable[Union[str, int]]) -> int:
    """
    Combine manifest attribute names, enum member names or raw ints into a bitmask.

    Accepts "screenSize", "SCREEN_SIZE" or 0x400 for the same flag.
    """
    mask = 0
    for value in values:
        if isinstance(value, bool):
            raise ConfigError(f"Invalid config change: {value!r}")
        if isinstance(value, int):
            mask |= value
            continue
        flag = ATTRIBUTE_NAMES.get(value)
        if flag is None:
            flag = ConfigChange.__members__.get(str(value).upper())
        if flag is None:
            raise ConfigError(
                f"Unknown config change: {value!r}. Allowed: {sorted(ATTRIBUTE_NAMES)}"
            )
        mask |= int(flag)
    return mask


class ConfigFlagInspector:
    """Reads static configChanges metadata for live screens."""

    def __init__(self, metadata_source: IMetadataSource):
        self.metadata_source = metadata_source

    def handles_config_change(self, screen: Screen, config_bit: int) -> bool:
        """
        Detect whether the screen handles a configuration change itself.

        @param screen Live screen
        @param config_bit ConfigChange bit(s) for the category of change
        @return True if any of config_bit is declared in the screen's configChanges
        @throws MetadataUnavailableError if the screen's metadata can not be resolved
        """
        try:
            flags = self.metadata_source.get_config_flags(screen.name)
        except MetadataUnavailableError:
            raise
        except LookupError as e:
            raise MetadataUnavailableError(screen.name, e) from e
        return (int(flags) & int(config_bit)) != 0


def is_config_change_handled(
    screen: Screen, config_bit: int, metadata_source: IMetadataSource
) -> bool:
    return ConfigFlagInspector(metadata_source).handles_config_change(screen, config_bit)
