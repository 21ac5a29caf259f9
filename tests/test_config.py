"""
HypermediaConfig validation and ConfigLoader layering.
"""

import json

import pytest

from wshypermedia.config import ConfigError, ConfigLoader, HypermediaConfig
from wshypermedia.faults import Fault, FaultDomain


# ============================================================================
# HypermediaConfig
# ============================================================================

class TestHypermediaConfig:

    def test_defaults(self):
        config = HypermediaConfig()
        assert config.auto_reconnect is True
        assert config.reconnect_delay == 1000
        assert config.max_reconnect_attempts == 5
        assert config.escape_char == "~"
        assert config.max_message_size == 1024 * 1024
        assert config.max_parts == 100
        assert config.max_json_size == 1024 * 1024
        assert config.enable_json_validation is False
        assert config.enable_security_logging is False
        assert config.security_log_level == "warn"
        assert config.protocol_version == "1.1"
        assert config.require_version is False
        assert config.input_sanitizers == {}
        assert config.on_message is None

    def test_immutable(self):
        config = HypermediaConfig()
        with pytest.raises(AttributeError):
            config.max_parts = 5

    def test_with_options(self):
        config = HypermediaConfig().with_options(max_parts=5)
        assert config.max_parts == 5

    def test_with_unknown_option(self):
        with pytest.raises(ConfigError, match="max_partz"):
            HypermediaConfig().with_options(max_partz=5)

    @pytest.mark.parametrize("kwargs", [
        {"escape_char": ""},
        {"escape_char": "~~"},
        {"escape_char": "|"},
        {"security_log_level": "info"},
        {"reconnect_delay": 0},
        {"max_message_size": -1},
        {"max_parts": 0},
        {"max_json_size": 0},
        {"max_reconnect_attempts": -1},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigError):
            HypermediaConfig(**kwargs)

    @pytest.mark.parametrize("kwargs", [
        {"reconnect_delay": "1000"},
        {"max_parts": 2.5},
        {"max_json_size": None},
        {"max_reconnect_attempts": True},
    ])
    def test_wrong_type_raises_config_error(self, kwargs):
        with pytest.raises(ConfigError, match="must be an integer"):
            HypermediaConfig(**kwargs)

    def test_config_error_is_fault(self):
        with pytest.raises(Fault) as exc_info:
            HypermediaConfig(max_parts=0)
        assert exc_info.value.code == "WS_CONFIG_INVALID"
        assert exc_info.value.domain == FaultDomain.CONFIG


# ============================================================================
# ConfigLoader
# ============================================================================

class TestConfigLoader:

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("WSHM_MAX_PARTS", "50")
        monkeypatch.setenv("WSHM_AUTO_RECONNECT", "false")
        monkeypatch.setenv("OTHER_MAX_PARTS", "7")
        config = ConfigLoader.load().to_config()
        assert config.max_parts == 50
        assert config.auto_reconnect is False

    def test_version_stays_string(self, monkeypatch):
        monkeypatch.setenv("WSHM_PROTOCOL_VERSION", "2.0")
        assert ConfigLoader.load().to_config().protocol_version == "2.0"

    def test_custom_prefix(self, monkeypatch):
        monkeypatch.setenv("APP_MAX_PARTS", "9")
        assert ConfigLoader.load(env_prefix="APP_").to_config().max_parts == 9

    def test_non_config_keys_readable(self, monkeypatch):
        monkeypatch.setenv("WSHM_URL", "ws://localhost:8765")
        loader = ConfigLoader.load()
        assert loader.get("url") == "ws://localhost:8765"
        assert loader.to_dict()["url"] == "ws://localhost:8765"
        loader.to_config()

    def test_json_file(self, tmp_path):
        path = tmp_path / "wshm.json"
        path.write_text(json.dumps({"max_parts": 12, "escape_char": "^"}))
        config = ConfigLoader.load(paths=[str(path)]).to_config()
        assert config.max_parts == 12
        assert config.escape_char == "^"

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "wshm.yaml"
        path.write_text("max_reconnect_attempts: 2\nenable_json_validation: true\n")
        config = ConfigLoader.load(paths=[str(path)]).to_config()
        assert config.max_reconnect_attempts == 2
        assert config.enable_json_validation is True

    def test_glob_pattern(self, tmp_path):
        (tmp_path / "a.json").write_text(json.dumps({"max_parts": 1}))
        (tmp_path / "b.json").write_text(json.dumps({"max_parts": 2}))
        config = ConfigLoader.load(paths=[str(tmp_path / "*.json")]).to_config()
        assert config.max_parts == 2

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# comment\n"
            "WSHM_RECONNECT_DELAY=250\n"
            "WSHM_ESCAPE_CHAR='^'\n"
            "UNRELATED=1\n"
        )
        config = ConfigLoader.load(env_file=str(env_file)).to_config()
        assert config.reconnect_delay == 250
        assert config.escape_char == "^"

    def test_missing_env_file_ignored(self, tmp_path):
        ConfigLoader.load(env_file=str(tmp_path / "missing.env")).to_config()

    def test_precedence(self, tmp_path, monkeypatch):
        path = tmp_path / "wshm.json"
        path.write_text(json.dumps({"max_parts": 1, "max_reconnect_attempts": 1, "reconnect_delay": 1}))
        env_file = tmp_path / ".env"
        env_file.write_text("WSHM_MAX_PARTS=2\nWSHM_MAX_RECONNECT_ATTEMPTS=2\n")
        monkeypatch.setenv("WSHM_MAX_PARTS", "3")

        loader = ConfigLoader.load(
            paths=[str(path)], env_file=str(env_file), overrides={"reconnect_delay": 4},
        )
        config = loader.to_config()
        assert config.max_parts == 3
        assert config.max_reconnect_attempts == 2
        assert config.reconnect_delay == 4

    def test_to_config_overrides(self, monkeypatch):
        monkeypatch.setenv("WSHM_MAX_PARTS", "3")
        callback = lambda frame: None
        config = ConfigLoader.load().to_config(max_parts=4, on_message=callback)
        assert config.max_parts == 4
        assert config.on_message is callback

    def test_type_mismatch(self, monkeypatch):
        monkeypatch.setenv("WSHM_MAX_PARTS", "lots")
        with pytest.raises(ConfigError, match="max_parts"):
            ConfigLoader.load().to_config()

    def test_numeric_flag_coerced_to_bool(self, monkeypatch):
        monkeypatch.setenv("WSHM_AUTO_RECONNECT", "1")
        assert ConfigLoader.load().to_config().auto_reconnect is True

    def test_parse_value(self):
        loader = ConfigLoader()
        assert loader._parse_value("yes") is True
        assert loader._parse_value("No") is False
        assert loader._parse_value("42") == 42
        assert loader._parse_value("0.5") == 0.5
        assert loader._parse_value('{"a": 1}') == {"a": 1}
        assert loader._parse_value("ws://x") == "ws://x"
