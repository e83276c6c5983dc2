"""Tests for settings loading and validation."""

import pytest
from pydantic import ValidationError

from reactorloom.setting import DEFAULT_CONFIG_PATH, MigrationSettings, get_settings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("REACTORLOOM_CONFIG", "REACTORLOOM_LOG_LEVEL", "REACTORLOOM_INDENT"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestDefaults:
    def test_model_defaults(self):
        settings = MigrationSettings()
        assert settings.log_level == "INFO"
        assert settings.indent == "    "
        assert settings.listener_method_order == ["doOnError", "doOnNext", "doFinally"]
        assert settings.add_override_annotations is True
        assert settings.termination_param_name == "terminationType"
        assert settings.file_extensions == [".java"]
        assert settings.extra_skip_directories == []

    def test_shipped_config_matches_defaults(self):
        assert DEFAULT_CONFIG_PATH.is_file()
        assert load_settings(DEFAULT_CONFIG_PATH) == MigrationSettings()

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_settings(tmp_path / "absent.yaml") == MigrationSettings()

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_settings(path) == MigrationSettings()


class TestLoading:
    def test_yaml_values(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(
            "log_level: debug\n"
            "indent: \"  \"\n"
            "listener_method_order: [doFinally, doOnNext, doOnError]\n"
            "add_override_annotations: false\n"
            "extra_skip_directories: [generated]\n",
            encoding="utf-8",
        )
        settings = load_settings(path)
        assert settings.log_level == "DEBUG"
        assert settings.indent == "  "
        assert settings.listener_method_order == ["doFinally", "doOnNext", "doOnError"]
        assert settings.add_override_annotations is False
        assert settings.extra_skip_directories == ["generated"]

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.yaml"
        path.write_text("log_level: ERROR\n", encoding="utf-8")
        monkeypatch.setenv("REACTORLOOM_LOG_LEVEL", "warning")
        monkeypatch.setenv("REACTORLOOM_INDENT", "\t")

        settings = load_settings(path)
        assert settings.log_level == "WARNING"
        assert settings.indent == "\t"

    def test_config_path_from_env(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("termination_param_name: signal\n", encoding="utf-8")
        monkeypatch.setenv("REACTORLOOM_CONFIG", str(path))

        assert load_settings().termination_param_name == "signal"

    def test_get_settings_is_cached(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("termination_param_name: first\n", encoding="utf-8")
        monkeypatch.setenv("REACTORLOOM_CONFIG", str(path))

        settings = get_settings()
        assert get_settings() is settings

        path.write_text("termination_param_name: second\n", encoding="utf-8")
        assert get_settings().termination_param_name == "first"
        get_settings.cache_clear()
        assert get_settings().termination_param_name == "second"


class TestValidation:
    @pytest.mark.parametrize(
        "field,value",
        [
            ("log_level", "verbose"),
            ("indent", ""),
            ("indent", "xx"),
            ("listener_method_order", ["doOnNext", "doOnError"]),
            ("listener_method_order", ["doOnNext", "doOnNext", "doFinally"]),
            ("termination_param_name", "signal type"),
        ],
    )
    def test_rejected(self, field, value):
        with pytest.raises(ValidationError):
            MigrationSettings(**{field: value})

    def test_invalid_yaml_value(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("listener_method_order: [doOnNext]\n", encoding="utf-8")
        with pytest.raises(ValidationError):
            load_settings(path)
