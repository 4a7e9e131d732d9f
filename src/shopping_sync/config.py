"""Configuration management for Shopping Sync."""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .models import DEFAULT_EMOJI, DEFAULT_SET_EMOJI

DEFAULT_STORAGE_DIR = "~/shopping-sync/data"
REMOTE_KEY_ENV = "SHOPPING_SYNC_REMOTE_KEY"
AI_KEY_ENV = {"gemini": "GEMINI_API_KEY", "claude": "ANTHROPIC_API_KEY"}
DEFAULT_AI_MODELS = {
    "gemini": ["gemini-2.0-flash", "gemini-1.5-flash"],
    "claude": ["claude-sonnet-4-5-20250929"],
}


@dataclass
class DataConfig:
    """Local data storage configuration."""

    storage_dir: Path


@dataclass
class RemoteConfig:
    """Shared family datastore configuration."""

    backend: str = "file"
    path: Path | None = None
    url: str = ""
    api_key: str = ""
    timeout: float = 10.0


@dataclass
class AIConfig:
    """AI assistance configuration."""

    backend: str = "gemini"
    api_key: str = ""
    models: list[str] = field(default_factory=list)
    max_retries: int = 5
    retry_delay: float = 2.0
    backoff: float = 1.5


@dataclass
class UserConfig:
    """Who is signing in to the family list."""

    id: int = 0
    first_name: str = "Guest"
    username: str | None = None
    invite_code: str | None = None


@dataclass
class DefaultsConfig:
    """Default values configuration."""

    category_emoji: str = DEFAULT_EMOJI
    set_emoji: str = DEFAULT_SET_EMOJI


@dataclass
class Config:
    """Complete application configuration."""

    data: DataConfig
    remote: RemoteConfig
    ai: AIConfig
    user: UserConfig
    defaults: DefaultsConfig


class ConfigManager:
    """Manages application configuration from TOML files."""

    def __init__(self, config_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            config_path: Optional explicit path to config file.
                        If not provided, searches standard locations.
        """
        self.config_path = config_path or self._find_config()
        self._config = self._load_config()

    @property
    def data(self) -> DataConfig:
        return self._config.data

    @property
    def remote(self) -> RemoteConfig:
        return self._config.remote

    @property
    def ai(self) -> AIConfig:
        return self._config.ai

    @property
    def user(self) -> UserConfig:
        return self._config.user

    @property
    def defaults(self) -> DefaultsConfig:
        return self._config.defaults

    def _find_config(self) -> Path:
        """Find config file in standard locations."""
        locations = [
            Path.cwd() / "config.toml",
            Path.home() / ".config" / "shopping-sync" / "config.toml",
            Path.home() / ".shopping-sync" / "config.toml",
        ]

        for loc in locations:
            if loc.exists():
                return loc

        return Path.home() / ".config" / "shopping-sync" / "config.toml"

    def _load_config(self) -> Config:
        """Load configuration from TOML file; a missing file means defaults."""
        data: dict[str, Any] = {}
        if self.config_path.exists():
            with open(self.config_path, "rb") as f:
                data = tomllib.load(f)

        data_section = data.get("data", {})
        remote_section = data.get("remote", {})
        ai_section = data.get("ai", {})
        user_section = data.get("user", {})
        defaults_section = data.get("defaults", {})

        storage_dir = Path(data_section.get("storage_dir", DEFAULT_STORAGE_DIR)).expanduser()
        remote_path = remote_section.get("path")

        ai_backend = ai_section.get("backend", "gemini")
        ai_key = ai_section.get("api_key") or os.environ.get(AI_KEY_ENV.get(ai_backend, ""), "")

        return Config(
            data=DataConfig(storage_dir=storage_dir),
            remote=RemoteConfig(
                backend=remote_section.get("backend", "file"),
                path=Path(remote_path).expanduser() if remote_path else None,
                url=remote_section.get("url", ""),
                api_key=remote_section.get("api_key") or os.environ.get(REMOTE_KEY_ENV, ""),
                timeout=float(remote_section.get("timeout", 10.0)),
            ),
            ai=AIConfig(
                backend=ai_backend,
                api_key=ai_key,
                models=list(ai_section.get("models", DEFAULT_AI_MODELS.get(ai_backend, []))),
                max_retries=int(ai_section.get("max_retries", 5)),
                retry_delay=float(ai_section.get("retry_delay", 2.0)),
                backoff=float(ai_section.get("backoff", 1.5)),
            ),
            user=UserConfig(
                id=int(user_section.get("id", 0)),
                first_name=user_section.get("first_name", "Guest"),
                username=user_section.get("username"),
                invite_code=user_section.get("invite_code"),
            ),
            defaults=DefaultsConfig(
                category_emoji=defaults_section.get("category_emoji", DEFAULT_EMOJI),
                set_emoji=defaults_section.get("set_emoji", DEFAULT_SET_EMOJI),
            ),
        )

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get config value by dot-notation path.

        Args:
            key_path: Dot-separated path like 'remote.backend'
            default: Default value if path not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split(".")
        value: Any = self._config

        for key in keys:
            if hasattr(value, key):
                value = getattr(value, key)
            elif isinstance(value, dict):
                value = value.get(key)
                if value is None:
                    return default
            else:
                return default

        return value if value is not None else default
