"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class LedgerConfig(BaseSettings):
    """Wallet ledger configuration"""

    # Database configuration
    database_url: str = "sqlite:///wallet_ledger.db"  # memory://, sqlite:///path, postgresql://...

    # Store transaction bounds
    transaction_timeout_seconds: float = 10.0  # Total time a transaction may stay open
    transaction_max_wait_seconds: float = 5.0  # Time allowed to acquire the transaction

    # Business rules configuration
    initial_balance: str = "1000.00"  # Balance credited at registration

    # Post-commit side effects
    background_queue_size: int = 1000
    background_workers: int = 2

    # Notification configuration
    notification_mailbox_size: int = 100  # Events kept per account for polling
    notification_webhook_url: str = ""  # Empty = disabled
    notification_webhook_timeout: float = 2.0

    # Security configuration
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiry_hours: int = 24
    password_min_length: int = 8

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 5000

    class Config:
        env_prefix = "LEDGER_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = LedgerConfig()


def get_config() -> LedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LedgerConfig:
    """Reload configuration from environment"""
    global config
    config = LedgerConfig()
    return config
