"""
Unit tests for yarnthread.config module.

Tests defaults, TOML loading, environment overrides and saving.
"""

import pytest

from yarnthread.config import DEFAULT_CONFIG, Config, toml_string
from yarnthread.constants import DEFAULT_COMPRESSION_FORMAT, DEFAULT_SHARE_BASE_URL
from yarnthread.errors import ConfigError, ErrorCode


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Remove any YARN_* overrides from the test environment."""
    for section, settings in DEFAULT_CONFIG.items():
        for key in settings:
            monkeypatch.delenv(f"YARN_{section.upper()}_{key.upper()}", raising=False)


class TestDefaults:
    """Test configuration defaults."""

    def test_missing_file_uses_defaults(self, temp_dir):
        """Test that a missing file gives the default configuration."""
        config = Config(temp_dir / "missing.toml")

        assert config.get("capsule", "compression") == DEFAULT_COMPRESSION_FORMAT
        assert config.get("share", "base_url") == DEFAULT_SHARE_BASE_URL
        assert config.get("logging", "level") == "WARNING"

    def test_get_default(self, temp_dir):
        """Test that unknown keys return the supplied default."""
        config = Config(temp_dir / "missing.toml")

        assert config.get("capsule", "nope") is None
        assert config.get("nope", "nope", 42) == 42

    def test_defaults_not_mutated(self, temp_dir, monkeypatch):
        """Test that overrides never leak into the module defaults."""
        monkeypatch.setenv("YARN_CAPSULE_COMPRESSION", "deflate")
        Config(temp_dir / "missing.toml").set("share", "base_url", "http://changed/")

        assert DEFAULT_CONFIG["capsule"]["compression"] == DEFAULT_COMPRESSION_FORMAT
        assert DEFAULT_CONFIG["share"]["base_url"] == DEFAULT_SHARE_BASE_URL


class TestLoading:
    """Test loading TOML files."""

    def test_file_values_merged(self, temp_dir):
        """Test that file values override defaults section by section."""
        path = temp_dir / "config.toml"
        path.write_text('[capsule]\ncompression = "deflate-raw"\n', encoding="utf-8")

        config = Config(path)
        assert config.get("capsule", "compression") == "deflate-raw"
        assert config.get("share", "base_url") == DEFAULT_SHARE_BASE_URL

    def test_invalid_toml(self, temp_dir):
        """Test that an unparsable file raises a config error."""
        path = temp_dir / "config.toml"
        path.write_text("[capsule\ncompression = ", encoding="utf-8")

        with pytest.raises(ConfigError) as exc_info:
            Config(path)

        assert exc_info.value.code == ErrorCode.E704_CONFIG_PARSE_ERROR


class TestEnvironmentOverrides:
    """Test YARN_SECTION_KEY overrides."""

    def test_string_override(self, temp_dir, monkeypatch):
        """Test that an environment variable beats the file."""
        path = temp_dir / "config.toml"
        path.write_text('[capsule]\ncompression = "deflate-raw"\n', encoding="utf-8")
        monkeypatch.setenv("YARN_CAPSULE_COMPRESSION", "deflate")

        assert Config(path).get("capsule", "compression") == "deflate"

    def test_bool_override(self, temp_dir, monkeypatch):
        """Test boolean conversion."""
        monkeypatch.setenv("YARN_LOGGING_FILE_LOGGING", "yes")
        monkeypatch.setenv("YARN_LOGGING_CONSOLE_LOGGING", "0")

        config = Config(temp_dir / "missing.toml")
        assert config.get("logging", "file_logging") is True
        assert config.get("logging", "console_logging") is False


class TestSaving:
    """Test writing configuration back to disk."""

    def test_save_and_reload(self, temp_dir):
        """Test that saved values load back."""
        path = temp_dir / "nested" / "config.toml"
        config = Config(path)
        config.set("share", "base_url", 'https://yarn.example/"quoted"')
        config.set("logging", "file_logging", True)
        config.save()

        reloaded = Config(path)
        assert reloaded.get("share", "base_url") == 'https://yarn.example/"quoted"'
        assert reloaded.get("logging", "file_logging") is True
        assert reloaded.to_dict() == config.to_dict()

    def test_save_failure(self, temp_dir):
        """Test that an unwritable path raises a config error."""
        blocker = temp_dir / "file"
        blocker.write_text("", encoding="utf-8")

        with pytest.raises(ConfigError) as exc_info:
            Config(blocker / "config.toml").save()

        assert exc_info.value.code == ErrorCode.E702_CONFIG_SAVE_FAILED

    def test_control_characters_round_trip(self, temp_dir):
        """Test that newlines, tabs and other control characters are escaped."""
        path = temp_dir / "config.toml"
        value = 'line one\nline "two"\ttab\\slash\x01\x7f\r\b\f'
        config = Config(path)
        config.set("logging", "file", value)
        config.save()

        assert Config(path).get("logging", "file") == value

    def test_environment_not_saved(self, temp_dir, monkeypatch):
        """Test that environment overrides are used but not written to the file."""
        path = temp_dir / "config.toml"
        monkeypatch.setenv("YARN_CAPSULE_COMPRESSION", "deflate")
        config = Config(path)
        config.set("share", "base_url", "https://yarn.example/")
        config.save()

        assert config.get("capsule", "compression") == "deflate"
        monkeypatch.delenv("YARN_CAPSULE_COMPRESSION")
        reloaded = Config(path)
        assert reloaded.get("capsule", "compression") == DEFAULT_COMPRESSION_FORMAT
        assert reloaded.get("share", "base_url") == "https://yarn.example/"


class TestUpdateFromText:
    """Test setting values from command line text."""

    def test_converts_to_existing_type(self, temp_dir):
        """Test that text becomes a bool for a bool setting."""
        config = Config(temp_dir / "config.toml")

        assert config.update_from_text("logging", "file_logging", "true") is True
        assert config.get("logging", "file_logging") is True
        assert config.update_from_text("share", "base_url", "http://x/") == "http://x/"

    @pytest.mark.parametrize("section,key", [("nope", "level"), ("logging", "nope")])
    def test_unknown_setting(self, temp_dir, section, key):
        """Test that unknown sections and keys are refused."""
        config = Config(temp_dir / "config.toml")

        with pytest.raises(ConfigError) as exc_info:
            config.update_from_text(section, key, "x")

        assert exc_info.value.code == ErrorCode.E703_UNKNOWN_SETTING
        assert config.get(section, key) is None


def test_toml_string():
    """Test TOML basic-string quoting."""
    assert toml_string("plain") == '"plain"'
    assert toml_string('a"b\\c') == '"a\\"b\\\\c"'
    assert toml_string("a\nb\x00") == '"a\\nb\\u0000"'
