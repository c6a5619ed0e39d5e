"""
Configuration loading and validation.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

SUPPORTED_PROVIDERS = ("fmp", "yahoo_finance")


class ConfigValidationError(Exception):
    """Raised when configuration is invalid."""

    pass


@dataclass
class DatabaseConfig:
    """Database configuration."""

    path: str = "data/marketpush.db"


@dataclass
class DataSourceConfig:
    """Market data provider configuration."""

    provider: str = "fmp"
    api_key: str = ""
    timeout_seconds: float = 10.0
    # Yahoo has no market-wide news feed; news is collected from these tickers
    news_symbols: list[str] = field(default_factory=lambda: ["SPY", "QQQ", "DIA"])


@dataclass
class PushConfig:
    """OneSignal push delivery configuration."""

    app_id: str = ""
    api_key: str = ""
    timeout_seconds: float = 10.0


@dataclass
class TriggerConfig:
    """Credentials checked on every job trigger."""

    cron_secret: str = ""
    scheduler_header: str = "x-vercel-cron"


@dataclass
class PriceAlertJobConfig:
    """Price-alert check settings."""

    symbol_delay_seconds: float = 0.1


@dataclass
class MarketMoverJobConfig:
    """Market-mover sweep settings."""

    change_threshold: float = 5.0
    min_price: float = 1.0
    max_movers: int = 5
    shown_movers: int = 4
    cooldown_minutes: int = 25
    retention_days: int = 7


@dataclass
class MarketNewsJobConfig:
    """Market-news sweep settings."""

    max_per_run: int = 2
    recency_window_minutes: int = 24 * 60
    min_score: int = 1
    cooldown_minutes: int = 12
    fetch_limit: int = 50


@dataclass
class DailyRecapJobConfig:
    """Daily recap settings."""

    index_symbols: list[str] = field(
        default_factory=lambda: ["^GSPC", "^DJI", "^IXIC"]
    )
    min_price: float = 1.0


@dataclass
class JobsConfig:
    """Per-job thresholds."""

    price_alerts: PriceAlertJobConfig = field(default_factory=PriceAlertJobConfig)
    market_movers: MarketMoverJobConfig = field(default_factory=MarketMoverJobConfig)
    market_news: MarketNewsJobConfig = field(default_factory=MarketNewsJobConfig)
    daily_recap: DailyRecapJobConfig = field(default_factory=DailyRecapJobConfig)


@dataclass
class AdvancedConfig:
    """Advanced configuration."""

    log_level: str = "INFO"


@dataclass
class AppConfig:
    """Main application configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    data_source: DataSourceConfig = field(default_factory=DataSourceConfig)
    push: PushConfig = field(default_factory=PushConfig)
    triggers: TriggerConfig = field(default_factory=TriggerConfig)
    jobs: JobsConfig = field(default_factory=JobsConfig)
    advanced: AdvancedConfig = field(default_factory=AdvancedConfig)


def _substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in string values."""
    if isinstance(value, str):
        # Match ${VAR_NAME} pattern
        pattern = r"\$\{([^}]+)\}"
        matches = re.findall(pattern, value)
        for var_name in matches:
            env_value = os.environ.get(var_name, "")
            value = value.replace(f"${{{var_name}}}", env_value)
        return value
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def _validate_positive(section: str, values: dict[str, Any]) -> None:
    """Reject negative numbers in a jobs section."""
    for key, value in values.items():
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)) and value < 0:
            raise ConfigValidationError(
                f"jobs.{section}.{key} must not be negative (got {value})"
            )


def _validate_config(config_dict: dict[str, Any]) -> None:
    """Validate configuration values."""
    # Check database path is provided
    db_config = config_dict.get("database") or {}
    db_path = db_config.get("path")
    if not db_path:
        raise ConfigValidationError("Database path is required")

    path = Path(db_path)
    parent = path.parent
    if db_path != ":memory:" and parent.exists() and not os.access(parent, os.W_OK):
        raise ConfigValidationError(f"Database path not writable: {parent}")

    # Check provider
    data_source = config_dict.get("data_source") or {}
    provider = data_source.get("provider", "fmp")
    if provider not in SUPPORTED_PROVIDERS:
        raise ConfigValidationError(
            f"Unknown data provider: {provider} "
            f"(expected one of {', '.join(SUPPORTED_PROVIDERS)})"
        )

    jobs = config_dict.get("jobs") or {}
    for section, values in jobs.items():
        if isinstance(values, dict):
            _validate_positive(section, values)


def build_config(config_dict: dict[str, Any]) -> AppConfig:
    """
    Build an AppConfig from an already-parsed mapping.

    Args:
        config_dict: Raw configuration (env vars already substituted)

    Returns:
        AppConfig instance

    Raises:
        ConfigValidationError: If configuration is invalid
    """
    _validate_config(config_dict)

    try:
        database = DatabaseConfig(**(config_dict.get("database") or {}))
        data_source = DataSourceConfig(**(config_dict.get("data_source") or {}))
        push = PushConfig(**(config_dict.get("push") or {}))
        triggers = TriggerConfig(**(config_dict.get("triggers") or {}))

        # Jobs
        jobs_dict = config_dict.get("jobs") or {}
        jobs = JobsConfig(
            price_alerts=PriceAlertJobConfig(**(jobs_dict.get("price_alerts") or {})),
            market_movers=MarketMoverJobConfig(
                **(jobs_dict.get("market_movers") or {})
            ),
            market_news=MarketNewsJobConfig(**(jobs_dict.get("market_news") or {})),
            daily_recap=DailyRecapJobConfig(**(jobs_dict.get("daily_recap") or {})),
        )

        # Advanced
        advanced = AdvancedConfig(**(config_dict.get("advanced") or {}))
    except TypeError as e:
        # Unknown key in a section
        raise ConfigValidationError(f"Invalid configuration: {e}") from e

    return AppConfig(
        database=database,
        data_source=data_source,
        push=push,
        triggers=triggers,
        jobs=jobs,
        advanced=advanced,
    )


def load_config(config_path: str) -> AppConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        AppConfig instance

    Raises:
        ConfigValidationError: If configuration is invalid
        FileNotFoundError: If config file doesn't exist
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path) as f:
        raw_config = yaml.safe_load(f) or {}

    # Substitute environment variables
    config_dict = _substitute_env_vars(raw_config)

    return build_config(config_dict)
