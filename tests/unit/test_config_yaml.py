"""Tests for settings precedence and YAML config loading."""

from asdf_vm.config import (
    CONFIG_KEYS,
    Settings,
    _load_yaml_config,
    get_config_path,
    reload_settings,
    save_yaml_config,
)


class TestYamlConfig:
    def test_load_empty_data_dir(self, data_dir):
        assert _load_yaml_config(data_dir) == {}

    def test_save_and_load_roundtrip(self, data_dir):
        save_yaml_config(data_dir, {"log_level": "DEBUG"})
        assert _load_yaml_config(data_dir) == {"log_level": "DEBUG"}

    def test_config_file_location(self, data_dir):
        assert get_config_path(data_dir) == data_dir / "config.yaml"

    def test_save_creates_parent_dirs(self, tmp_path):
        data_dir = tmp_path / "deep" / "asdf"
        save_yaml_config(data_dir, {"log_level": "INFO"})
        assert (data_dir / "config.yaml").exists()

    def test_load_invalid_yaml_returns_empty(self, data_dir):
        get_config_path(data_dir).write_text("[ invalid yaml {{{")
        assert _load_yaml_config(data_dir) == {}

    def test_load_non_dict_yaml_returns_empty(self, data_dir):
        get_config_path(data_dir).write_text("- just\n- a\n- list\n")
        assert _load_yaml_config(data_dir) == {}


class TestSettings:
    def test_explicit_data_dir(self, data_dir):
        assert Settings(data_dir=data_dir).data_dir == data_dir

    def test_data_dir_from_env(self, data_dir, monkeypatch):
        monkeypatch.setenv("ASDF_DATA_DIR", str(data_dir))
        assert Settings().data_dir == data_dir

    def test_default_data_dir(self, monkeypatch, tmp_path):
        monkeypatch.delenv("ASDF_DATA_DIR", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        assert Settings().data_dir == tmp_path / ".asdf"

    def test_yaml_fills_unset_values(self, data_dir, monkeypatch):
        monkeypatch.delenv("ASDF_LOG_LEVEL", raising=False)
        save_yaml_config(data_dir, {"log_level": "DEBUG"})
        assert Settings(data_dir=data_dir).log_level == "DEBUG"

    def test_env_beats_yaml(self, data_dir, monkeypatch):
        monkeypatch.setenv("ASDF_LOG_LEVEL", "ERROR")
        save_yaml_config(data_dir, {"log_level": "DEBUG"})
        assert Settings(data_dir=data_dir).log_level == "ERROR"

    def test_unknown_yaml_keys_ignored(self, data_dir):
        save_yaml_config(data_dir, {"port": 3333})
        settings = Settings(data_dir=data_dir)
        assert not hasattr(settings, "port")

    def test_reload_settings(self, data_dir, monkeypatch):
        monkeypatch.setenv("ASDF_DATA_DIR", str(data_dir))
        assert reload_settings().data_dir == data_dir

    def test_config_keys(self):
        assert CONFIG_KEYS == {"data_dir", "log_level", "log_format"}
