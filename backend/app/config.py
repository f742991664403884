"""
Application configuration using Pydantic settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

from typing import Dict, List


class Settings(BaseSettings):
    """Application settings."""

    # App
    app_name: str = "Coinpurse"
    env: str = "dev"  # dev or prod
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./data/db.sqlite"
    auto_create_tables: bool = True

    # Currencies
    base_currency: str = "VND"
    supported_currencies: List[str] = ["VND", "USD", "EUR"]
    fallback_rates: Dict[str, float] = {"VND": 1.0, "USD": 25000.0, "EUR": 27000.0}

    # Exchange rate source (rates quoted as "1 base = X target")
    exchange_rate_primary_url: str = (
        "https://cdn.jsdelivr.net/npm/@fawazahmed0/currency-api@latest/v1/currencies/vnd.json"
    )
    exchange_rate_fallback_url: str = "https://latest.currency-api.pages.dev/v1/currencies/vnd.json"
    exchange_rate_ttl_seconds: int = 6 * 60 * 60
    exchange_rate_timeout_seconds: float = 5.0
    exchange_rate_warm_on_startup: bool = True

    # Auth / accounts
    auth_user_header: str = "X-User-Id"
    email_verify_ttl_hours: int = 24
    password_reset_ttl_hours: int = 1

    # Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    frontend_url: str = "http://localhost:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Global settings instance
settings = Settings()
