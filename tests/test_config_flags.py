"""
Tests for config change flag inspection and the screen manifest.
"""

import pytest

from uiauto_device.config_flags import (ConfigChange, ConfigFlagInspector,
                                        is_config_change_handled,
                                        parse_config_changes)
from uiauto_device.exceptions import ConfigError, MetadataUnavailableError
from uiauto_device.interfaces import IMetadataSource
from uiauto_device.manifest import (ManifestRepository, ScreenInfoBuilder,
                                    resolve_identity)
from uiauto_device.screen import Screen

MANIFEST = {
    "package": "com.example",
    "screens": [
        {"name": ".MainActivity", "config_changes": ["orientation", "screenSize"], "exported": True},
        {"name": "com.example.settings.SettingsActivity"},
        {"name": "RawActivity", "config_changes": [0x200]},
    ],
}


class DictSource(IMetadataSource):
    def __init__(self, flags):
        self.flags = flags

    def get_config_flags(self, identity):
        return self.flags[identity]


@pytest.fixture
def repo():
    return ManifestRepository(MANIFEST)


class TestHandlesConfigChange:
    """Tests for ConfigFlagInspector."""

    def test_declared_category_is_handled(self, repo):
        """Should report categories listed in configChanges."""
        screen = Screen("com.example/.MainActivity")
        inspector = ConfigFlagInspector(repo)

        assert inspector.handles_config_change(screen, ConfigChange.ORIENTATION) is True
        assert inspector.handles_config_change(screen, ConfigChange.SCREEN_SIZE) is True

    def test_undeclared_category_is_not_handled(self, repo):
        """Should report False for categories not listed."""
        screen = Screen("com.example/.MainActivity")

        assert ConfigFlagInspector(repo).handles_config_change(screen, ConfigChange.UI_MODE) is False

    def test_screen_without_config_changes(self, repo):
        """A screen with no configChanges handles nothing itself."""
        screen = Screen("com.example/com.example.settings.SettingsActivity")

        for flag in ConfigChange:
            assert is_config_change_handled(screen, flag, repo) is False

    def test_raw_integer_flags(self, repo):
        """Integer config_changes entries should be used as-is."""
        screen = Screen("com.example/.RawActivity")

        assert is_config_change_handled(screen, ConfigChange.UI_MODE, repo) is True

    def test_is_pure(self, repo):
        """Identical inputs should give identical outputs."""
        screen = Screen("com.example/.MainActivity")
        inspector = ConfigFlagInspector(repo)

        for flag in ConfigChange:
            first = inspector.handles_config_change(screen, flag)
            assert inspector.handles_config_change(screen, flag) == first

    def test_unknown_screen_raises(self, repo):
        """Should surface MetadataUnavailableError for an unknown identity."""
        screen = Screen("com.example/.MissingActivity")

        with pytest.raises(MetadataUnavailableError) as exc_info:
            ConfigFlagInspector(repo).handles_config_change(screen, ConfigChange.ORIENTATION)

        assert exc_info.value.identity == "com.example/.MissingActivity"

    def test_foreign_lookup_error_is_wrapped(self):
        """A LookupError from another metadata source should become MetadataUnavailableError."""
        source = DictSource({"a/b.C": int(ConfigChange.ORIENTATION)})

        assert is_config_change_handled(Screen("a/b.C"), ConfigChange.ORIENTATION, source) is True
        with pytest.raises(MetadataUnavailableError) as exc_info:
            is_config_change_handled(Screen("a/b.D"), ConfigChange.ORIENTATION, source)

        assert isinstance(exc_info.value.cause, KeyError)


class TestParseConfigChanges:
    """Tests for parse_config_changes."""

    def test_attribute_and_member_names(self):
        """Should accept manifest spelling, enum names and ints."""
        mask = parse_config_changes(["orientation", "SCREEN_SIZE", 0x1000])

        assert mask == ConfigChange.ORIENTATION | ConfigChange.SCREEN_SIZE | ConfigChange.DENSITY

    def test_unknown_name_raises(self):
        """Should reject unknown categories."""
        with pytest.raises(ConfigError):
            parse_config_changes(["sideways"])


class TestScreenInfoBuilder:
    """Tests for ScreenInfoBuilder."""

    def test_build_all_fields(self):
        """Should build a complete ScreenInfo."""
        info = (
            ScreenInfoBuilder.new_builder()
            .set_package("com.example")
            .set_name(".MainActivity")
            .set_config_changes(["orientation"])
            .set_exported(True)
            .build()
        )

        assert info.name == "com.example.MainActivity"
        assert info.package == "com.example"
        assert info.identity == "com.example/com.example.MainActivity"
        assert info.config_changes == ConfigChange.ORIENTATION
        assert info.exported is True

    def test_package_taken_from_full_identity(self):
        """A full identity should supply the package."""
        info = ScreenInfoBuilder.new_builder().set_name("com.example/.MainActivity").build()

        assert info.package == "com.example"

    def test_missing_name_raises(self):
        """Should reject a builder without a name."""
        with pytest.raises(ConfigError, match="Mandatory field 'name' missing."):
            ScreenInfoBuilder.new_builder().set_package("com.example").build()

    def test_missing_package_raises(self):
        """Should reject a relative name without a package."""
        with pytest.raises(ConfigError, match="Mandatory field 'package' missing."):
            ScreenInfoBuilder.new_builder().set_name(".MainActivity").build()

    def test_mismatched_package_raises(self):
        """Should reject a package that differs from the identity's package."""
        builder = (
            ScreenInfoBuilder.new_builder()
            .set_package("com.example")
            .set_name("com.other/.MainActivity")
        )

        with pytest.raises(ConfigError, match="Field 'package' must match"):
            builder.build()


class TestManifestRepository:
    """Tests for ManifestRepository."""

    def test_identity_forms_resolve_to_same_entry(self, repo):
        """Short, relative and full forms should all resolve."""
        full = repo.get_screen_info("com.example/com.example.MainActivity")

        assert repo.get_screen_info("com.example/.MainActivity") is full
        assert repo.get_screen_info(".MainActivity") is full
        assert repo.get_screen_info("MainActivity") is full

    def test_list_screens(self, repo):
        """Should list full identities."""
        assert repo.list_screens() == [
            "com.example/com.example.MainActivity",
            "com.example/com.example.RawActivity",
            "com.example/com.example.settings.SettingsActivity",
        ]

    def test_schema_violation_raises(self):
        """Should reject manifests that do not match the schema."""
        with pytest.raises(ConfigError) as exc_info:
            ManifestRepository({"package": "com.example", "screens": [{"label": "x"}]})

        assert "schema validation failed" in str(exc_info.value)

    def test_duplicate_screen_raises(self):
        """Should reject two entries for the same screen."""
        data = {"package": "com.example", "screens": [{"name": ".A"}, {"name": "com.example.A"}]}

        with pytest.raises(ConfigError, match="duplicates"):
            ManifestRepository(data)

    def test_from_yaml(self, tmp_path):
        """Should load a manifest from YAML."""
        path = tmp_path / "manifest.yaml"
        path.write_text(
            "package: com.example\n"
            "screens:\n"
            "  - name: .MainActivity\n"
            "    config_changes: [keyboardHidden]\n",
            encoding="utf-8",
        )

        repo = ManifestRepository.from_yaml(str(path))

        assert repo.get_config_flags(".MainActivity") == ConfigChange.KEYBOARD_HIDDEN

    def test_from_yaml_missing_file(self, tmp_path):
        """Should raise ConfigError for a missing file."""
        with pytest.raises(ConfigError, match="not found"):
            ManifestRepository.from_yaml(str(tmp_path / "nope.yaml"))

    def test_resolve_identity_requires_package_for_relative_names(self):
        """Should not guess a package."""
        with pytest.raises(ConfigError):
            resolve_identity(".MainActivity")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
