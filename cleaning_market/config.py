"""YAML config loading and validation."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from zoneinfo import ZoneInfoNotFoundError

import yaml

from cleaning_market.booking.clock import zone_for

DEFAULT_JWT_SECRET = "dev-secret-change-me-in-production"


class ConfigError(ValueError):
    """A setting the service cannot start with."""


@dataclass
class DatabaseConfig:
    url: str = "sqlite:///data/cleaning_market.db"
    echo: bool = False


@dataclass
class AuthConfig:
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    token_expire_hours: int = 24


@dataclass
class SchedulerConfig:
    enabled: bool = True
    sweep_interval_minutes: int = 5


@dataclass
class MarketplaceConfig:
    # Job dates and "HH:MM" times are wall-clock times in this zone
    timezone: str = "UTC"


@dataclass
class AppConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    marketplace: MarketplaceConfig = field(default_factory=MarketplaceConfig)
    log_dir: str = "logs"


def load_config(config_path: str = "config.yaml") -> AppConfig:
    """Load and validate configuration from YAML file."""
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Copy config.example.yaml to config.yaml and fill in your settings."
        )

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    config = AppConfig()

    # Database (env var takes precedence)
    db_raw = raw.get("database", {})
    config.database = DatabaseConfig(
        url=os.environ.get("DATABASE_URL", db_raw.get("url", DatabaseConfig.url)),
        echo=db_raw.get("echo", False),
    )

    # Auth
    auth_raw = raw.get("auth", {})
    config.auth = AuthConfig(
        jwt_secret=os.environ.get("JWT_SECRET", auth_raw.get("jwt_secret", DEFAULT_JWT_SECRET)),
        jwt_algorithm=auth_raw.get("jwt_algorithm", "HS256"),
        token_expire_hours=auth_raw.get("token_expire_hours", 24),
    )

    # Scheduler
    scheduler_raw = raw.get("scheduler", {})
    config.scheduler = SchedulerConfig(
        enabled=scheduler_raw.get("enabled", True),
        sweep_interval_minutes=scheduler_raw.get("sweep_interval_minutes", 5),
    )

    marketplace_raw = raw.get("marketplace", {})
    config.marketplace = MarketplaceConfig(
        timezone=marketplace_raw.get("timezone", "UTC"),
    )

    config.log_dir = raw.get("log_dir", "logs")

    check_config(config)
    return config


def config_from_env() -> AppConfig:
    """Load the file named by CLEANING_MARKET_CONFIG, or defaults plus env overrides."""
    path = os.environ.get("CLEANING_MARKET_CONFIG")
    if path:
        return load_config(path)

    config = AppConfig()
    config.database.url = os.environ.get("DATABASE_URL", config.database.url)
    config.auth.jwt_secret = os.environ.get("JWT_SECRET", config.auth.jwt_secret)
    check_config(config)
    return config


def check_config(config: AppConfig) -> None:
    """Raise ConfigError for settings the service cannot run with."""
    problems = []

    try:
        zone_for(config.marketplace.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        problems.append(f"Unknown marketplace timezone: {config.marketplace.timezone}")

    if config.scheduler.enabled and config.scheduler.sweep_interval_minutes <= 0:
        problems.append(
            f"Sweep interval must be a positive number of minutes, got {config.scheduler.sweep_interval_minutes}"
        )

    if problems:
        raise ConfigError("; ".join(problems))


def validate_config(config: AppConfig) -> list[str]:
    """Return list of validation warnings (empty = OK)."""
    warnings = []

    if config.auth.jwt_secret == DEFAULT_JWT_SECRET:
        warnings.append("Using the default JWT secret - set JWT_SECRET before deploying")

    if not config.scheduler.enabled:
        warnings.append("Sweep scheduler disabled - jobs auto-complete only when read")

    return warnings
