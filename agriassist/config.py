"""Configuration for the AgriAssist chat client.

Settings are resolved with this priority (highest first):
  1. Environment variables (AGRIASSIST_ENDPOINT, AGRIASSIST_API_KEY,
     AGRIASSIST_TIMEOUT; SUPABASE_URL derives the endpoint)
  2. The [chat] table of ~/.agriassist/config.toml (or --config PATH)
  3. Built-in defaults

Environment variables may themselves come from ~/.agriassist/keys.env
or a .env file in the current directory.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from agriassist.errors import ConfigError

logger = logging.getLogger(__name__)

# Directory for user-level AgriAssist configuration
AGRIASSIST_HOME = Path.home() / ".agriassist"
CONFIG_FILE = AGRIASSIST_HOME / "config.toml"
KEYS_FILE = AGRIASSIST_HOME / "keys.env"

ENDPOINT_ENV = "AGRIASSIST_ENDPOINT"
API_KEY_ENV = "AGRIASSIST_API_KEY"
TIMEOUT_ENV = "AGRIASSIST_TIMEOUT"
SUPABASE_URL_ENV = "SUPABASE_URL"

# Path of the chat function under a Supabase project URL
CHAT_FUNCTION_PATH = "/functions/v1/ai-chat"

DEFAULT_ENDPOINT = "http://localhost:54321" + CHAT_FUNCTION_PATH
DEFAULT_FALLBACK_MESSAGE = "Sorry, I encountered an error. Please try again."


class ChatConfig(BaseModel):
    """Connection settings for the chat endpoint."""

    endpoint: str = Field(
        default=DEFAULT_ENDPOINT, min_length=1, description="Streaming chat URL"
    )
    api_key: str = Field(
        default="", description="Optional key sent as bearer token and apikey header"
    )
    timeout: float = Field(
        default=60.0, gt=0, description="Network timeout in seconds"
    )
    fallback_message: str = Field(
        default=DEFAULT_FALLBACK_MESSAGE,
        min_length=1,
        description="Reply shown when a request fails",
    )

    def masked_api_key(self) -> str:
        """API key with all but the last four characters hidden."""
        if not self.api_key:
            return ""
        if len(self.api_key) <= 4:
            return "*" * len(self.api_key)
        return "*" * (len(self.api_key) - 4) + self.api_key[-4:]


def load_env_files() -> None:
    """Load ~/.agriassist/keys.env and ./.env into os.environ.

    Existing environment variables are NOT overwritten, and the user-level
    file wins over the project-level one.
    """
    for env_file in (KEYS_FILE, Path.cwd() / ".env"):
        if not env_file.is_file():
            continue
        loaded = _load_env_file(env_file)
        if loaded:
            logger.debug("Loaded %s from %s", ", ".join(loaded), env_file)


def _parse_env_line(line: str) -> tuple[str, str] | None:
    """Split one ``[export ]KEY=VALUE`` line; comments and junk give None."""
    line = line.strip()
    if line.startswith("export "):
        line = line[len("export "):].lstrip()
    if not line or line.startswith("#") or "=" not in line:
        return None
    key, _, value = line.partition("=")
    key = key.strip()
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        value = value[1:-1]
    return (key, value) if key else None


def _load_env_file(path: Path) -> list[str]:
    """Set variables from ``path`` that are unset or empty; return their names."""
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        logger.warning("Skipping unreadable env file %s: %s", path, e)
        return []

    loaded: list[str] = []
    for line in lines:
        pair = _parse_env_line(line)
        if pair is None:
            continue
        key, value = pair
        if not os.environ.get(key):
            os.environ[key] = value
            loaded.append(key)
    return loaded


def load_config(config_path: Path | None = None) -> ChatConfig:
    """Build the effective ChatConfig.

    Args:
        config_path: TOML file to read. Defaults to ~/.agriassist/config.toml;
            a missing default file is not an error, a missing explicit one is.

    Raises:
        ConfigError: If the file is unreadable, malformed, or values are invalid.
    """
    values: dict = {}

    path = config_path or CONFIG_FILE
    if path.is_file():
        values.update(_read_chat_table(path))
    elif config_path is not None:
        raise ConfigError(f"Config file not found: {config_path}")

    values.update(_env_overrides())

    try:
        return ChatConfig(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid chat configuration: {e}") from e


def _read_chat_table(path: Path) -> dict:
    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read {path}: {e}") from e

    section = raw.get("chat", {})
    if not isinstance(section, dict):
        raise ConfigError(f"[chat] in {path} must be a table")
    return dict(section)


def _env_overrides() -> dict:
    overrides: dict = {}

    supabase_url = os.environ.get(SUPABASE_URL_ENV, "").strip()
    if supabase_url:
        overrides["endpoint"] = supabase_url.rstrip("/") + CHAT_FUNCTION_PATH

    endpoint = os.environ.get(ENDPOINT_ENV, "").strip()
    if endpoint:
        overrides["endpoint"] = endpoint

    api_key = os.environ.get(API_KEY_ENV, "").strip()
    if api_key:
        overrides["api_key"] = api_key

    timeout = os.environ.get(TIMEOUT_ENV, "").strip()
    if timeout:
        overrides["timeout"] = timeout

    return overrides
