"""Tests for the layered configuration manager."""
import pytest
import yaml

from srcbundle.core.constants import ErrorCode
from srcbundle.core.validators import ValidationError
from srcbundle.infrastructure.config_manager import ConfigError, ConfigManager, ConfigSource


@pytest.fixture
def manager():
    return ConfigManager(environ={})


class TestDefaults:
    """Compiled defaults."""

    def test_default_section(self, manager):
        section = manager.get_section()

        assert section["includes"] == []
        assert section["method"] == "none"
        assert section["minify"] is False
        assert section["compress"] is True
        assert section["logging"]["level"] == "INFO"

    def test_get_with_default(self, manager):
        assert manager.get("srcbundle.minify") is False
        assert manager.get("srcbundle.missing", default=42) == 42
        assert manager.get("srcbundle.compile", default="fallback") == "fallback"

    def test_defaults_are_not_shared(self):
        first = ConfigManager(environ={})
        first.get_all()["srcbundle"]["includes"].append("leak")

        assert ConfigManager(environ={}).get("srcbundle.includes") == []


class TestLoadFile:
    """Project config files."""

    def test_load_file_with_root_key(self, manager, config_file):
        manager.load_file(str(config_file))

        assert manager.get("srcbundle.excludes") == ["**/*.test.js"]
        assert manager.get("srcbundle.logging.level") == "DEBUG"
        assert str(config_file.resolve()) in manager.loaded_files()

    def test_load_file_without_root_key(self, manager, tmp_path):
        path = tmp_path / "bare.yaml"
        path.write_text(yaml.dump({"includes": ["src/**"], "minify": True}))

        manager.load_file(str(path))

        assert manager.get("srcbundle.includes") == ["src/**"]
        assert manager.get("srcbundle.minify") is True

    def test_constructor_loads_file(self, config_file):
        manager = ConfigManager(str(config_file), environ={})

        assert manager.get("srcbundle.includes")[0] == "lib/**"

    def test_missing_file(self, manager, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            manager.load_file(str(tmp_path / "missing.yaml"))

        assert exc_info.value.error_code == ErrorCode.NOT_FOUND

    def test_invalid_yaml(self, manager, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("srcbundle: [unclosed\n")

        with pytest.raises(ConfigError) as exc_info:
            manager.load_file(str(path))

        assert exc_info.value.error_code == ErrorCode.INVALID_INPUT

    def test_non_mapping(self, manager, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigError):
            manager.load_file(str(path))

    def test_empty_file(self, manager, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        manager.load_file(str(path))

        assert manager.get("srcbundle.method") == "none"


class TestEnvironment:
    """SRCBUNDLE_* environment variables."""

    def test_top_level_and_nested_keys(self):
        manager = ConfigManager(
            environ={
                "SRCBUNDLE_MINIFY": "true",
                "SRCBUNDLE_LOGGING__LEVEL": "DEBUG",
                "UNRELATED": "x",
            }
        )

        assert manager.get("srcbundle.minify") is True
        assert manager.get("srcbundle.logging.level") == "DEBUG"
        assert manager.get("srcbundle.logging.file") is None
        assert manager.get("unrelated") is None

    def test_keys_with_underscores(self):
        manager = ConfigManager(environ={"SRCBUNDLE_COMPILE_CONFIG_FILE": "babel.config.json"})

        assert manager.get("srcbundle.compile_config_file") == "babel.config.json"

    @pytest.mark.parametrize(
        "raw,parsed",
        [
            ("true", True),
            ("YES", True),
            ("false", False),
            ("no", False),
            ("42", 42),
            ("1.5", 1.5),
            ("compile", "compile"),
        ],
    )
    def test_value_parsing(self, manager, raw, parsed):
        assert manager._parse_env_value(raw) == parsed


class TestPrecedence:
    """Layer ordering and merging."""

    def test_cli_over_environment_over_file(self, config_file):
        manager = ConfigManager(str(config_file), environ={"SRCBUNDLE_METHOD": "compile"})

        assert manager.get("srcbundle.method") == "compile"

        manager.load_dict({"method": "none"}, ConfigSource.CLI_ARGS)

        assert manager.get("srcbundle.method") == "none"

    def test_runtime_set_wins(self, manager):
        manager.load_dict({"compress": True}, ConfigSource.CLI_ARGS)
        manager.set("srcbundle.compress", False)

        assert manager.get("srcbundle.compress") is False

    def test_nested_sections_are_merged(self, manager):
        manager.load_dict({"logging": {"file": "/tmp/srcbundle.log"}}, ConfigSource.CLI_ARGS)

        section = manager.get_section()

        assert section["logging"] == {"level": "INFO", "file": "/tmp/srcbundle.log"}

    def test_lists_are_replaced(self, manager, config_file):
        manager.load_file(str(config_file))
        manager.load_dict({"includes": ["bin/*"]}, ConfigSource.CLI_ARGS)

        assert manager.get_section()["includes"] == ["bin/*"]

    def test_clear_single_source(self, manager):
        manager.load_dict({"minify": True}, ConfigSource.CLI_ARGS)

        manager.clear(ConfigSource.CLI_ARGS)

        assert manager.get("srcbundle.minify") is False

    def test_clear_keeps_defaults(self, manager):
        manager.set("srcbundle.minify", True)

        manager.clear()

        assert manager.get("srcbundle.minify") is False
        assert manager.get("srcbundle.method") == "none"


class TestSectionValidation:
    """Validation of the merged section."""

    def test_invalid_section_raises(self, manager):
        manager.load_dict({"method": "webpack"}, ConfigSource.CLI_ARGS)

        with pytest.raises(ValidationError):
            manager.get_section()

    def test_validation_can_be_skipped(self, manager):
        manager.load_dict({"method": "webpack"}, ConfigSource.CLI_ARGS)

        assert manager.get_section(validate=False)["method"] == "webpack"
