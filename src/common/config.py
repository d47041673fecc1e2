"""Configuration loader shared by the CLIs and the API."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Callable, Generic, TypeVar

import yaml
from dotenv import load_dotenv

T = TypeVar("T")

CONFIG_DIR = Path(__file__).resolve().parents[2] / "configs"


@dataclass
class FeedsConfig:
    freshness_window_hours: float = 3
    article_limit: int = 100
    fetch_timeout_seconds: float = 30
    refresh_timeout_seconds: float = 240
    max_workers: int = 8
    user_agent: str = "newsletter-pipeline/1.0 (RSS reader)"

    @property
    def freshness_window(self) -> timedelta:
        return timedelta(hours=self.freshness_window_hours)


@dataclass
class DatabaseConfig:
    url: str = "sqlite:///newsletter.db"
    echo: bool = False


@dataclass
class GenerationConfig:
    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    summary_char_limit: int = 500


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class AppConfig:
    feeds: FeedsConfig = field(default_factory=FeedsConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


def find_config_path(
    config_name: str | None,
    config_dir: Path,
    default_name: str = "prod",
    env_var: str | None = None,
) -> Path:
    """Find config file path, checking env var and defaults.

    Args:
        config_name: Name of config (without .yaml) or None for default
        config_dir: Directory containing config files
        default_name: Default config name if config_name is None
        env_var: Environment variable to check for config name

    Returns:
        Path to the config file

    Raises:
        FileNotFoundError: If config file doesn't exist
    """
    if config_name is None:
        config_name = os.environ.get(env_var, default_name) if env_var else default_name

    config_path = config_dir / f"{config_name}.yaml"
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    return config_path


def load_yaml(path: Path) -> dict:
    """Load YAML file and return dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_config(config_name: str | None = None, config_dir: Path = CONFIG_DIR) -> AppConfig:
    """Load configuration from YAML file.

    Args:
        config_name: Name of config file (without .yaml extension).
                    If None, uses CONFIG_ENV env var or "prod".
        config_dir: Directory holding the YAML files.

    Returns:
        Loaded AppConfig object
    """
    load_dotenv()
    path = find_config_path(config_name, config_dir, env_var="CONFIG_ENV")
    return parse_config(load_yaml(path))


def parse_config(data: dict) -> AppConfig:
    """Parse config dictionary into AppConfig, applying environment overrides."""
    feeds_data = data.get("feeds", {})
    database_data = data.get("database", {})
    generation_data = data.get("generation", {})
    server_data = data.get("server", {})

    feeds = FeedsConfig(
        freshness_window_hours=feeds_data.get("freshness_window_hours", 3),
        article_limit=feeds_data.get("article_limit", 100),
        fetch_timeout_seconds=feeds_data.get("fetch_timeout_seconds", 30),
        refresh_timeout_seconds=feeds_data.get("refresh_timeout_seconds", 240),
        max_workers=feeds_data.get("max_workers", 8),
        user_agent=feeds_data.get("user_agent", FeedsConfig.user_agent),
    )

    database = DatabaseConfig(
        url=os.environ.get("DATABASE_URL") or database_data.get("url", DatabaseConfig.url),
        echo=database_data.get("echo", False),
    )

    generation = GenerationConfig(
        model=os.environ.get("OPENAI_MODEL") or generation_data.get("model", GenerationConfig.model),
        temperature=generation_data.get("temperature", 0.7),
        summary_char_limit=generation_data.get("summary_char_limit", 500),
    )

    server = ServerConfig(
        host=server_data.get("host", "0.0.0.0"),
        port=server_data.get("port", 8000),
    )

    if feeds.freshness_window_hours < 0:
        raise ValueError("feeds.freshness_window_hours must not be negative")
    if feeds.article_limit < 1:
        raise ValueError("feeds.article_limit must be at least 1")

    return AppConfig(feeds=feeds, database=database, generation=generation, server=server)


class ConfigSingleton(Generic[T]):
    """Generic config singleton manager.

    Provides get/set/reset pattern for managing a global config instance.
    """

    def __init__(self, loader: Callable[[], T] | None = None):
        self._config: T | None = None
        self._loader = loader

    def get(self) -> T:
        """Get the config, loading it lazily if needed."""
        if self._config is None:
            if self._loader is None:
                raise RuntimeError("No config loaded and no loader set")
            self._config = self._loader()
        return self._config

    def set(self, config: T) -> None:
        """Set the config directly."""
        self._config = config

    def reset(self) -> None:
        """Reset the config, forcing reload on next get()."""
        self._config = None


_manager: ConfigSingleton[AppConfig] = ConfigSingleton(load_config)
get_config = _manager.get
set_config = _manager.set
reset_config = _manager.reset
