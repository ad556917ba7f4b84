"""
Configuration management with YAML loading, .env files and environment variable support.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from dotenv import load_dotenv

from .constants import (
    DEFAULT_APP_VERSION,
    DEFAULT_CONNECTION_ALIASES,
    DEFAULT_EVERYROW_BASE_URL,
    DEFAULT_MAKE_BASE_URL,
    DEFAULT_POLL_ATTEMPTS,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_TIMEOUT,
)

DOTENV_FILES = (".env", ".env.local")


def _env(env_var: str, default: str | None = None) -> str | None:
    """Get value from environment variable or return default."""
    if value := os.environ.get(env_var):
        return value
    return default


def _env_path(env_var: str, default: Path | None = None) -> Path | None:
    """Get path from environment variable or return default."""
    if value := os.environ.get(env_var):
        return Path(value)
    return default


@dataclass
class PathsConfig:
    """Paths configuration - the app directory can be overridden via ERM_APP_DIR."""

    app_dir: Path = field(default_factory=lambda: _env_path("ERM_APP_DIR", Path("app")))
    logs_dir: Path | None = None


@dataclass
class MakeConfig:
    api_key: str | None = field(default_factory=lambda: _env("MAKE_API_KEY"))
    app_id: str | None = field(default_factory=lambda: _env("MAKE_APP_ID"))
    app_version: str = field(default_factory=lambda: _env("MAKE_APP_VERSION", DEFAULT_APP_VERSION))
    base_url: str = field(default_factory=lambda: _env("MAKE_BASE_URL", DEFAULT_MAKE_BASE_URL))
    timeout: float = DEFAULT_TIMEOUT
    connection_aliases: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_CONNECTION_ALIASES))


@dataclass
class EveryRowConfig:
    api_key: str | None = field(default_factory=lambda: _env("EVERYROW_API_KEY"))
    base_url: str = field(default_factory=lambda: _env("EVERYROW_BASE_URL", DEFAULT_EVERYROW_BASE_URL))
    poll_attempts: int = DEFAULT_POLL_ATTEMPTS
    poll_interval: float = DEFAULT_POLL_INTERVAL
    timeout: float = DEFAULT_TIMEOUT


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file_logging: bool = False
    console_logging: bool = True


@dataclass
class AppConfig:
    paths: PathsConfig = field(default_factory=PathsConfig)
    make: MakeConfig = field(default_factory=MakeConfig)
    everyrow: EveryRowConfig = field(default_factory=EveryRowConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> AppConfig:
        """Load configuration from YAML file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> AppConfig:
        """Create config from dictionary."""
        config = cls()

        if "paths" in data:
            for key, value in data["paths"].items():
                if hasattr(config.paths, key):
                    setattr(config.paths, key, Path(value) if isinstance(value, str) else value)

        if "make" in data:
            for key, value in data["make"].items():
                if key == "connection_aliases" and isinstance(value, dict):
                    config.make.connection_aliases.update(value)
                elif key == "app_version" and value is not None:
                    config.make.app_version = str(value)
                elif hasattr(config.make, key) and value is not None:
                    setattr(config.make, key, value)

        if "everyrow" in data:
            for key, value in data["everyrow"].items():
                if hasattr(config.everyrow, key) and value is not None:
                    setattr(config.everyrow, key, value)

        if "logging" in data:
            for key, value in data["logging"].items():
                if hasattr(config.logging, key):
                    setattr(config.logging, key, value)

        return config


def load_env_files(env_file: Path | None = None, search_dir: Path | None = None) -> Path | None:
    """
    Load credentials from a dotenv file into the environment.

    Variables already exported in the environment are never overridden.

    Args:
        env_file: Explicit dotenv file to load
        search_dir: Directory searched for .env then .env.local (default: cwd)

    Returns:
        Path of the file that was loaded, or None
    """
    if env_file is not None:
        load_dotenv(dotenv_path=env_file, override=False)
        return env_file

    base = search_dir or Path.cwd()
    for name in DOTENV_FILES:
        candidate = base / name
        if candidate.exists():
            load_dotenv(dotenv_path=candidate, override=False)
            return candidate
    return None


def _get_default_config_dirs() -> list[Path]:
    """Get default config directories, in search order."""
    dirs = []

    # Explicit override first
    if config_dir := os.environ.get("ERM_CONFIG_DIR"):
        dirs.append(Path(config_dir))

    # Then XDG config home, falling back to ~/.config
    if xdg_config := os.environ.get("XDG_CONFIG_HOME"):
        dirs.append(Path(xdg_config) / "everyrow-make")
    else:
        dirs.append(Path.home() / ".config" / "everyrow-make")

    return dirs


def load_config(config_path: Path | None = None, config_dir: Path | None = None) -> AppConfig:
    """
    Load configuration from the first config file found.

    Args:
        config_path: Path to config file (default: searches standard locations)
        config_dir: Config directory to search instead of the default ones

    Returns:
        AppConfig (defaults plus environment when no file exists)
    """
    config_dirs = [config_dir] if config_dir is not None else _get_default_config_dirs()

    if config_path is None:
        search_paths = [d / "config.yaml" for d in config_dirs] + [
            Path.cwd() / "erm.yaml",
            Path.cwd() / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = path
                break

    return AppConfig.from_yaml(config_path) if config_path else AppConfig()


def validate_make(config: AppConfig) -> list[str]:
    """
    Validate that Make.com credentials are configured.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []
    if not config.make.api_key:
        errors.append("MAKE_API_KEY not configured (get your API key from Make.com > Settings > API)")
    if not config.make.app_id:
        errors.append("MAKE_APP_ID not configured (the app name/ID you created in Make.com)")
    return errors


def validate_everyrow(config: AppConfig) -> list[str]:
    """
    Validate that EveryRow credentials are configured.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []
    if not config.everyrow.api_key:
        errors.append("EVERYROW_API_KEY not configured (set it in the environment or .env file)")
    return errors
