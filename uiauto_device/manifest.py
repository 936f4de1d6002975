# uiauto_device/manifest.py
"""
@file manifest.py
@brief Static screen metadata loaded from a YAML manifest.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Union

import yaml
from jsonschema import Draft202012Validator

from .config_flags import parse_config_changes
from .exceptions import ConfigError, MetadataUnavailableError
from .interfaces import IMetadataSource

SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schemas", "manifest.schema.json")


def resolve_identity(name: str, package: Optional[str] = None) -> str:
    """
    Expand a screen name to ``package/fully.qualified.Class``.

    ``com.example/.Main``, ``.Main``, ``Main`` and ``com.example.Main`` (with
    package ``com.example``) all resolve to ``com.example/com.example.Main``.
    """
    if "/" in name:
        pkg, cls = name.split("/", 1)
    else:
        if not package:
            raise ConfigError(f"Cannot resolve '{name}' without a package")
        pkg, cls = package, name
    if not pkg or not cls:
        raise ConfigError(f"Invalid screen identity: '{name}'")
    if cls.startswith("."):
        cls = pkg + cls
    elif "." not in cls:
        cls = f"{pkg}.{cls}"
    return f"{pkg}/{cls}"


@dataclass(frozen=True)
class ScreenInfo:
    name: str
    package: str
    config_changes: int = 0
    exported: bool = False

    @property
    def identity(self) -> str:
        return f"{self.package}/{self.name}"


class ScreenInfoBuilder:
    """
    Builds validated ScreenInfo entries.

    Example:
        ScreenInfoBuilder.new_builder().set_package("com.example").set_name(".Main").build()
    """

    def __init__(self) -> None:
        self._name: Optional[str] = None
        self._package: Optional[str] = None
        self._config_changes = 0
        self._exported = False

    @classmethod
    def new_builder(cls) -> ScreenInfoBuilder:
        return cls()

    def set_name(self, name: str) -> ScreenInfoBuilder:
        self._name = name
        return self

    def set_package(self, package: str) -> ScreenInfoBuilder:
        self._package = package
        return self

    def set_config_changes(self, config_changes: Union[int, Iterable[Union[str, int]]]) -> ScreenInfoBuilder:
        if isinstance(config_changes, int):
            self._config_changes = config_changes
        else:
            self._config_changes = parse_config_changes(config_changes)
        return self

    def set_exported(self, exported: bool) -> ScreenInfoBuilder:
        self._exported = bool(exported)
        return self

    def build(self) -> ScreenInfo:
        if not self._name:
            raise ConfigError("Mandatory field 'name' missing.")
        if "/" in self._name:
            name_package = self._name.split("/", 1)[0]
            if self._package and self._package != name_package:
                raise ConfigError("Field 'package' must match the package of field 'name'")
            package = name_package
        elif self._package:
            package = self._package
        else:
            raise ConfigError("Mandatory field 'package' missing.")

        identity = resolve_identity(self._name, package)
        return ScreenInfo(
            name=identity.split("/", 1)[1],
            package=package,
            config_changes=self._config_changes,
            exported=self._exported,
        )


class ManifestRepository(IMetadataSource):
    """
    Loads a screen manifest. Provides configChanges lookups by screen identity.
    """

    def __init__(self, data: Dict[str, Any], source: str = "<memory>"):
        self.source = source
        self._validate_schema(data)
        self.package: str = data["package"]
        self._screens: Dict[str, ScreenInfo] = {}

        for i, spec in enumerate(data.get("screens", []) or []):
            info = (
                ScreenInfoBuilder.new_builder()
                .set_package(self.package)
                .set_name(spec["name"])
                .set_config_changes(spec.get("config_changes", []))
                .set_exported(spec.get("exported", False))
                .build()
            )
            if info.identity in self._screens:
                raise ConfigError(f"{source}: screens[{i}] duplicates '{info.identity}'")
            self._screens[info.identity] = info

    @classmethod
    def from_yaml(cls, path: str) -> ManifestRepository:
        path = os.path.abspath(path)
        if not os.path.exists(path):
            raise ConfigError(f"Manifest YAML not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError("Manifest YAML must be a mapping at root.")
        return cls(data, source=path)

    @staticmethod
    def _load_schema() -> Dict[str, Any]:
        with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
            return json.load(f)

    def _validate_schema(self, data: Any) -> None:
        validator = Draft202012Validator(self._load_schema())
        errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])
        if errors:
            lines = [f"Manifest schema validation failed ({self.source}):"]
            for err in errors:
                where = ".".join(str(p) for p in err.path) or "<root>"
                lines.append(f"  - {where}: {err.message}")
            raise ConfigError("\n".join(lines))

    def _key(self, identity: str) -> str:
        return resolve_identity(identity, self.package)

    def get_screen_info(self, identity: str) -> ScreenInfo:
        try:
            return self._screens[self._key(identity)]
        except (KeyError, ConfigError) as e:
            raise MetadataUnavailableError(identity, e) from e

    def get_config_flags(self, identity: str) -> int:
        return self.get_screen_info(identity).config_changes

    def list_screens(self) -> List[str]:
        return sorted(self._screens.keys())
