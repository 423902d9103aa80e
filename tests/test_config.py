"""Tests for agriassist.config: TOML loading, env overrides and .env files."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from agriassist import config as config_module
from agriassist.config import (
    DEFAULT_ENDPOINT,
    DEFAULT_FALLBACK_MESSAGE,
    ChatConfig,
    load_config,
    load_env_files,
)
from agriassist.errors import ConfigError

_ENV_VARS = [
    "AGRIASSIST_ENDPOINT",
    "AGRIASSIST_API_KEY",
    "AGRIASSIST_TIMEOUT",
    "SUPABASE_URL",
]


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch):
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "home" / "config.toml")
    monkeypatch.setattr(config_module, "KEYS_FILE", tmp_path / "home" / "keys.env")
    monkeypatch.chdir(tmp_path)


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_defaults_without_file(self):
        config = load_config()
        assert config.endpoint == DEFAULT_ENDPOINT
        assert config.api_key == ""
        assert config.timeout == 60.0
        assert config.fallback_message == DEFAULT_FALLBACK_MESSAGE

    def test_reads_default_file(self, tmp_path):
        _write(
            tmp_path / "home" / "config.toml",
            '[chat]\nendpoint = "https://farm.example/chat"\ntimeout = 15\n',
        )
        config = load_config()
        assert config.endpoint == "https://farm.example/chat"
        assert config.timeout == 15.0

    def test_explicit_path(self, tmp_path):
        path = _write(
            tmp_path / "custom.toml",
            '[chat]\napi_key = "secret"\nfallback_message = "Try again soon."\n',
        )
        config = load_config(path)
        assert config.api_key == "secret"
        assert config.fallback_message == "Try again soon."

    def test_explicit_path_missing(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "nope.toml")

    def test_file_without_chat_table(self, tmp_path):
        path = _write(tmp_path / "other.toml", '[weather]\nunits = "metric"\n')
        assert load_config(path).endpoint == DEFAULT_ENDPOINT

    def test_invalid_toml(self, tmp_path):
        path = _write(tmp_path / "bad.toml", "[chat\nendpoint = ")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(path)

    def test_chat_must_be_table(self, tmp_path):
        path = _write(tmp_path / "bad.toml", 'chat = "https://x"\n')
        with pytest.raises(ConfigError, match="must be a table"):
            load_config(path)

    def test_invalid_values(self, tmp_path):
        path = _write(tmp_path / "bad.toml", "[chat]\ntimeout = -1\n")
        with pytest.raises(ConfigError, match="Invalid chat configuration"):
            load_config(path)

    def test_unknown_keys_ignored(self, tmp_path):
        path = _write(tmp_path / "c.toml", '[chat]\nmodel = "gemini"\n')
        assert load_config(path).endpoint == DEFAULT_ENDPOINT


class TestEnvOverrides:
    def test_env_beats_file(self, tmp_path, monkeypatch):
        path = _write(
            tmp_path / "c.toml",
            '[chat]\nendpoint = "https://file.example/chat"\napi_key = "file-key"\n',
        )
        monkeypatch.setenv("AGRIASSIST_ENDPOINT", "https://env.example/chat")
        monkeypatch.setenv("AGRIASSIST_API_KEY", "env-key")
        monkeypatch.setenv("AGRIASSIST_TIMEOUT", "12.5")
        config = load_config(path)
        assert config.endpoint == "https://env.example/chat"
        assert config.api_key == "env-key"
        assert config.timeout == 12.5

    def test_supabase_url_derives_endpoint(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://abc.supabase.co/")
        config = load_config()
        assert config.endpoint == "https://abc.supabase.co/functions/v1/ai-chat"

    def test_explicit_endpoint_beats_supabase_url(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://abc.supabase.co")
        monkeypatch.setenv("AGRIASSIST_ENDPOINT", "http://localhost:9000/chat")
        assert load_config().endpoint == "http://localhost:9000/chat"

    def test_invalid_timeout_env(self, monkeypatch):
        monkeypatch.setenv("AGRIASSIST_TIMEOUT", "soon")
        with pytest.raises(ConfigError):
            load_config()


class TestLoadEnvFiles:
    def test_loads_keys_and_dotenv(self, tmp_path, monkeypatch):
        _write(tmp_path / "home" / "keys.env", "# saved keys\nAGRIASSIST_API_KEY='from-keys'\n")
        _write(tmp_path / ".env", "AGRIASSIST_ENDPOINT=https://dotenv.example/chat\nnot a pair\n")
        monkeypatch.setenv("AGRIASSIST_API_KEY", "")
        monkeypatch.setenv("AGRIASSIST_ENDPOINT", "")
        load_env_files()
        assert os.environ["AGRIASSIST_API_KEY"] == "from-keys"
        assert os.environ["AGRIASSIST_ENDPOINT"] == "https://dotenv.example/chat"

    def test_does_not_overwrite_existing(self, tmp_path, monkeypatch):
        _write(tmp_path / ".env", "AGRIASSIST_API_KEY=from-file\n")
        monkeypatch.setenv("AGRIASSIST_API_KEY", "from-shell")
        load_env_files()
        assert os.environ["AGRIASSIST_API_KEY"] == "from-shell"

    def test_keys_file_wins_over_dotenv(self, tmp_path, monkeypatch):
        _write(tmp_path / "home" / "keys.env", "AGRIASSIST_TIMEOUT=5\n")
        _write(tmp_path / ".env", "AGRIASSIST_TIMEOUT=99\n")
        monkeypatch.setenv("AGRIASSIST_TIMEOUT", "")
        load_env_files()
        assert os.environ["AGRIASSIST_TIMEOUT"] == "5"

    def test_export_prefix_and_quotes(self, tmp_path, monkeypatch):
        _write(
            tmp_path / ".env",
            "export AGRIASSIST_ENDPOINT=\"https://farm.example/chat\"\n"
            "AGRIASSIST_API_KEY=it's-a-key\n",
        )
        monkeypatch.setenv("AGRIASSIST_ENDPOINT", "")
        monkeypatch.setenv("AGRIASSIST_API_KEY", "")
        load_env_files()
        assert os.environ["AGRIASSIST_ENDPOINT"] == "https://farm.example/chat"
        assert os.environ["AGRIASSIST_API_KEY"] == "it's-a-key"

    def test_logs_loaded_names(self, tmp_path, monkeypatch, caplog):
        _write(tmp_path / "home" / "keys.env", "AGRIASSIST_TIMEOUT=5\n")
        monkeypatch.setenv("AGRIASSIST_TIMEOUT", "")
        with caplog.at_level("DEBUG", logger="agriassist.config"):
            load_env_files()
        assert "Loaded AGRIASSIST_TIMEOUT from" in caplog.text


class TestChatConfig:
    def test_masked_api_key(self):
        assert ChatConfig(api_key="abcd5678").masked_api_key() == "****5678"
        assert ChatConfig(api_key="abc").masked_api_key() == "***"
        assert ChatConfig().masked_api_key() == ""

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValueError):
            ChatConfig(timeout=0)
