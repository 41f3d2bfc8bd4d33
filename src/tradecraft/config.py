# src/tradecraft/config.py
"""
Application settings, loaded from the environment and an optional `.env` file.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    ENV: str = Field(default="dev")

    # Storage: "memory" keeps users/events in process, "sql" uses DATABASE_URL
    SUBSCRIPTION_STORE: str = Field(default="memory")
    DATABASE_URL: str = Field(default="sqlite:///./tradecraft.db")

    # Stripe
    STRIPE_SECRET_KEY: str | None = None
    STRIPE_WEBHOOK_SECRET: str | None = None
    STRIPE_SUBSCRIPTION_PRICE_ID: str | None = None
    STRIPE_LIFETIME_PRICE_ID: str | None = None
    PUBLIC_BASE_URL: str = "http://localhost:3000"

    # Market data
    QUOTE_CACHE_TTL_SECONDS: int = 60
    FINNHUB_API_KEY: str | None = None

    # API / Security
    JWT_SECRET: str = "change-me-please"
    JWT_ALG: str = "HS256"
    JWT_EXPIRE_MIN: int = 60 * 24 * 7
    CORS_ORIGINS: str = "*"

    # Observability
    METRICS_ENABLED: bool = True
    LOG_LEVEL: str | None = None


settings = Settings()
