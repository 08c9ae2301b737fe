"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class LendingConfig(BaseSettings):
    """Cooperative lending core configuration"""

    model_config = SettingsConfigDict(
        env_prefix="COOP_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Database configuration
    database_url: str = "sqlite:///coop_lending.db"  # sqlite:///path or memory://

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090
    api_workers: int = 1

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    # Penalty rules
    default_penalty_rate: str = "0.02"  # Monthly rate on overdue amount
    penalty_days_per_month: int = 30
    late_payment_threshold_days: int = 30  # Beyond this, penalty is non_payment

    # Sequence numbers
    loan_number_prefix: str = "LN"
    payment_number_prefix: str = "LP"
    sequence_padding: int = 6

    # Feature flags
    enable_audit_logging: bool = True


# Global configuration instance
config = LendingConfig()


def get_config() -> LendingConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LendingConfig:
    """Reload configuration from environment"""
    global config
    config = LendingConfig()
    return config
