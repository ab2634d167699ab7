"""
Configuration Management Module

Centralized, environment-based configuration using pydantic-settings.
Every field can be set through a LOANBOOK_-prefixed environment variable
or a .env file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class LoanbookConfig(BaseSettings):
    """Loan book configuration"""

    model_config = SettingsConfigDict(
        env_prefix="LOANBOOK_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage configuration
    storage_backend: str = "sqlite"  # sqlite or memory
    database_path: str = "loanbook.db"

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None

    # Business rules
    default_currency: str = "USD"
    default_amortization_policy: str = "equal_installment"
    append_delinquency_notice: bool = True

    # Feature flags
    enable_audit_logging: bool = True


# Global configuration instance
config = LoanbookConfig()


def get_config() -> LoanbookConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LoanbookConfig:
    """Reload configuration from environment"""
    global config
    config = LoanbookConfig()
    return config
