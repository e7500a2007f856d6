"""
Client configuration — ~/.claw-chat/config.json plus environment overrides.
"""

import json
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from claw_chat.errors import ConfigError
from claw_chat.transport.http import DEFAULT_BASE_URL

CONFIG_FILE = Path.home() / ".claw-chat" / "config.json"

ENV_OVERRIDES = {
    "CLAW_CHAT_GATEWAY_URL": "gateway_url",
    "CLAW_CHAT_TOKEN": "token",
    "CLAW_CHAT_SESSION": "session_key",
}


class ClawChatConfig(BaseModel):
    gateway_url: str = DEFAULT_BASE_URL
    token: Optional[str] = None
    session_key: str = "main"
    history_limit: int = 200
    history_max_retries: int = 3
    history_retry_delay: float = 0.15
    recommendations_limit: int = 5
    request_timeout: float = 30.0
    ready_timeout: float = 15.0


def _read_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text())
    except FileNotFoundError:
        return {}
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid config file {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config file {path}: expected a JSON object")
    return data


def load_config(path: Optional[Path] = None, env: Optional[dict[str, str]] = None) -> ClawChatConfig:
    """Read the config file, then apply CLAW_CHAT_* environment overrides."""
    data = _read_file(path or CONFIG_FILE)
    environ = os.environ if env is None else env
    for var, field in ENV_OVERRIDES.items():
        if environ.get(var):
            data[field] = environ[var]
    try:
        return ClawChatConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}")


def save_config(config: ClawChatConfig, path: Optional[Path] = None) -> Path:
    target = path or CONFIG_FILE
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(config.model_dump(exclude_none=True), indent=2))
    return target


def update_config(key: str, value: str, path: Optional[Path] = None) -> ClawChatConfig:
    """Set one field in the config file. Values are validated against the field type."""
    if key not in ClawChatConfig.model_fields:
        raise ConfigError(f"Unknown config key: {key}")
    data = _read_file(path or CONFIG_FILE)
    data[key] = value
    try:
        config = ClawChatConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid value for {key}: {e}")
    save_config(config, path)
    return config
