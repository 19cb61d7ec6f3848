from decimal import Decimal

from pydantic import Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Read env from container + optionally from files
    model_config = SettingsConfigDict(
        env_file=(".env", ".env.docker"),
        extra="ignore",
        case_sensitive=False,
    )

    # App
    ENVIRONMENT: str = Field(default="docker", validation_alias=AliasChoices("ENVIRONMENT", "environment"))
    APP_NAME: str = Field(default="revenue_sync", validation_alias=AliasChoices("APP_NAME", "app_name"))
    LOG_LEVEL: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "log_level"))
    DEBUG: bool = Field(default=False, validation_alias=AliasChoices("DEBUG", "debug"))

    # Infrastructure
    DATABASE_URL: str = Field(
        default="postgresql+asyncpg://postgres:postgres@db:5432/invoicing_db",
        validation_alias=AliasChoices("DATABASE_URL", "database_url"),
    )
    DATABASE_SSL: bool = Field(default=False, validation_alias=AliasChoices("DATABASE_SSL", "database_ssl"))
    REDIS_URL: str = Field(
        default="redis://redis:6379/0",
        validation_alias=AliasChoices("REDIS_URL", "redis_url"),
    )

    # Auth (tokens are issued by the surrounding app)
    JWT_SECRET: str = Field(default="change-me", validation_alias=AliasChoices("JWT_SECRET", "jwt_secret"))
    JWT_ALGORITHM: str = Field(default="HS256", validation_alias=AliasChoices("JWT_ALGORITHM", "jwt_algorithm"))

    # Currency
    BASE_CURRENCY: str = Field(default="INR", validation_alias=AliasChoices("BASE_CURRENCY", "base_currency"))
    DEFAULT_EXCHANGE_RATES: dict[str, Decimal] = Field(
        default_factory=lambda: {
            "USD": Decimal("90.13"),
            "CAD": Decimal("67"),
            "AUD": Decimal("60"),
            "INR": Decimal("1"),
        },
        validation_alias=AliasChoices("DEFAULT_EXCHANGE_RATES", "default_exchange_rates"),
    )
    FALLBACK_EXCHANGE_RATE: Decimal = Field(
        default=Decimal("90.13"),
        validation_alias=AliasChoices("FALLBACK_EXCHANGE_RATE", "fallback_exchange_rate"),
    )
    # received <= receivable * tolerance means "still in invoice currency"
    RECEIVED_AMOUNT_TOLERANCE: Decimal = Field(
        default=Decimal("1.1"),
        validation_alias=AliasChoices("RECEIVED_AMOUNT_TOLERANCE", "received_amount_tolerance"),
    )

    # Reconciliation
    SPLIT_UPSERT_CONCURRENCY: int = Field(
        default=4,
        ge=1,
        validation_alias=AliasChoices("SPLIT_UPSERT_CONCURRENCY", "split_upsert_concurrency"),
    )
    SWEEP_ENABLED: bool = Field(default=True, validation_alias=AliasChoices("SWEEP_ENABLED", "sweep_enabled"))
    SWEEP_CRON_MINUTE: int = Field(
        default=15,
        ge=0,
        le=59,
        validation_alias=AliasChoices("SWEEP_CRON_MINUTE", "sweep_cron_minute"),
    )


settings = Settings()
