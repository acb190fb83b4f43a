"""Tests for configuration loading and saving."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

from ask_human_mcp.config import (
    BrokerConfig,
    get_system_log_path,
    load_config,
    load_config_strict,
    save_config,
)
from ask_human_mcp.constants import DEFAULT_PORT, DEFAULT_TOOL_NAME
from ask_human_mcp.exceptions import ConfigurationError


class TestBrokerConfig:
    """Tests for BrokerConfig validation."""

    def test_defaults(self) -> None:
        """Defaults match the documented constants."""
        config = BrokerConfig()

        assert config.port == DEFAULT_PORT
        assert config.tool_name == DEFAULT_TOOL_NAME
        assert config.log_level == "INFO"

    @pytest.mark.parametrize("port", [0, 80, 1023, 65536])
    def test_rejects_out_of_range_port(self, port: int) -> None:
        """Privileged and out-of-range ports are rejected."""
        with pytest.raises(ValidationError):
            BrokerConfig(port=port)

    def test_rejects_unknown_log_level(self) -> None:
        """Only DEBUG/INFO/WARNING/ERROR are accepted."""
        with pytest.raises(ValidationError):
            BrokerConfig(log_level="TRACE")

    def test_ignores_unknown_fields(self) -> None:
        """Unknown keys from newer versions are ignored."""
        config = BrokerConfig.model_validate({"port": 12000, "future_option": True})

        assert config.port == 12000

    def test_system_log_path(self, tmp_path: Path) -> None:
        """System log lives under <log_dir>/ask-human-mcp/."""
        config = BrokerConfig(log_dir=str(tmp_path))

        assert get_system_log_path(config) == tmp_path / "ask-human-mcp" / "system.jsonl"


class TestLoadConfig:
    """Tests for load_config() and load_config_strict()."""

    def test_missing_file_returns_defaults(self, tmp_path: Path) -> None:
        """A missing file is not an error for lenient loading."""
        config = load_config(tmp_path / "missing.json")

        assert config == BrokerConfig()

    def test_invalid_json_returns_defaults(self, tmp_path: Path) -> None:
        """Broken JSON falls back to defaults."""
        path = tmp_path / "config.json"
        path.write_text("{not json")

        assert load_config(path) == BrokerConfig()

    def test_invalid_values_return_defaults(self, tmp_path: Path) -> None:
        """Values failing validation fall back to defaults."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"port": 5}))

        assert load_config(path).port == DEFAULT_PORT

    def test_loads_values(self, tmp_path: Path) -> None:
        """Values in the file override defaults."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"port": 12345, "tool_title": "Ping the dev"}))

        config = load_config(path)

        assert config.port == 12345
        assert config.tool_title == "Ping the dev"

    def test_strict_missing_file_raises(self, tmp_path: Path) -> None:
        """Strict loading requires the file."""
        with pytest.raises(ConfigurationError, match="not found"):
            load_config_strict(tmp_path / "missing.json")

    def test_strict_invalid_json_raises(self, tmp_path: Path) -> None:
        """Strict loading reports invalid JSON."""
        path = tmp_path / "config.json"
        path.write_text("[")

        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            load_config_strict(path)

    def test_strict_invalid_values_raise(self, tmp_path: Path) -> None:
        """Strict loading reports validation errors."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"log_level": "LOUD"}))

        with pytest.raises(ConfigurationError, match="Invalid config"):
            load_config_strict(path)


class TestSaveConfig:
    """Tests for save_config()."""

    def test_save_then_load(self, tmp_path: Path) -> None:
        """A saved config loads back unchanged."""
        path = tmp_path / "nested" / "config.json"
        config = BrokerConfig(port=12001, tool_name="ask-dev")

        written = save_config(config, path)

        assert written == path
        assert load_config_strict(path) == config

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_owner_only_permissions(self, tmp_path: Path) -> None:
        """Config file is written with 0600."""
        path = save_config(BrokerConfig(), tmp_path / "config.json")

        assert path.stat().st_mode & 0o777 == 0o600
