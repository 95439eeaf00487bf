"""
config.py
---------
Centralised configuration management for the D1 client and migration tool.

Loads settings from environment variables (with .env file support via
python-dotenv). Provides typed settings as frozen dataclasses so
configuration is immutable at runtime.

Design Decision:
    Class-level defaults mean the library works without any .env file,
    while credentials and the migration ledger table can still be overridden
    per deployment.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

_env_path = Path(__file__).parent / ".env"
if _env_path.exists():
    load_dotenv(dotenv_path=_env_path)


@dataclass(frozen=True)
class D1Config:
    """HTTP API settings."""
    account_id: str = field(default_factory=lambda: os.getenv("CLOUDFLARE_ACCOUNT_ID", ""))
    api_token: str = field(default_factory=lambda: os.getenv("CLOUDFLARE_API_TOKEN", ""))
    database_name: str = field(default_factory=lambda: os.getenv("CLOUDFLARE_DB_NAME", ""))
    base_url: str = field(
        default_factory=lambda: os.getenv(
            "D1_BASE_URL", "https://api.cloudflare.com/client/v4"
        ).rstrip("/")
    )
    timeout: float = field(default_factory=lambda: float(os.getenv("D1_TIMEOUT", "30")))
    cache_max_age: float = field(
        default_factory=lambda: float(os.getenv("D1_CACHE_MAX_AGE", "86400"))
    )


@dataclass(frozen=True)
class MigrationConfig:
    """Migration engine settings."""
    table_name: str = field(
        default_factory=lambda: os.getenv("D1_MIGRATION_TABLE", "d1_migrations")
    )
    migrations_dir: Path = field(
        default_factory=lambda: Path(os.getenv("D1_MIGRATIONS_DIR", "migrations"))
    )
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper()
    )
    log_file: str | None = field(
        default_factory=lambda: os.getenv("LOG_FILE")  # None → log to stderr only
    )


@dataclass(frozen=True)
class AppConfig:
    """Root application configuration."""
    d1: D1Config = field(default_factory=D1Config)
    migration: MigrationConfig = field(default_factory=MigrationConfig)
    app_name: str = "d1-client"
    app_version: str = "0.3.0"


def load_config() -> AppConfig:
    """
    Build and return the application configuration.

    Returns:
        AppConfig: Fully populated (and frozen) configuration object.

    Example::

        cfg = load_config()
        print(cfg.migration.table_name)   # "d1_migrations"
        print(cfg.d1.timeout)             # 30.0
    """
    return AppConfig()


# Module-level singleton used throughout the library
CONFIG: AppConfig = load_config()


def get_log_level() -> int:
    """Convert string log level from config to logging module constant."""
    level = getattr(logging, CONFIG.migration.log_level, None)
    if not isinstance(level, int):
        return logging.INFO
    return level
