import json
import os
from pathlib import Path

from dotenv import load_dotenv

from forge_relay.core.errors import ConfigurationError
from forge_relay.models.config import AppConfig


API_KEY_ENV = "GOOGLE_GENERATIVE_AI_API_KEY"

_config: AppConfig | None = None


def get_project_root() -> Path:
    """Get project root directory."""
    return Path(__file__).parent.parent.parent


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from JSON file and environment variables."""
    global _config

    if config_path is None:
        config_path = get_project_root() / "config.json"

    # Load .env file
    env_path = get_project_root() / ".env"
    load_dotenv(env_path)

    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        _config = AppConfig.model_validate(data)
    else:
        _config = AppConfig()

    return _config


def get_config() -> AppConfig:
    """Get current configuration. Loads from file if not already loaded."""
    global _config
    if _config is None:
        return load_config()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() reloads it."""
    global _config
    _config = None


def get_api_key() -> str:
    """Get Gemini API key from environment."""
    key = os.getenv(API_KEY_ENV, "")
    if not key:
        raise ConfigurationError(
            f"API key not configured. Please add {API_KEY_ENV} to your environment variables."
        )
    return key


def mask_api_key(key: str) -> str:
    """Mask key, show only last 4 characters."""
    return f"...{key[-4:]}" if len(key) > 4 else "****"
