from __future__ import annotations

import json
from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "DataAtlas Brasil API"
    ENVIRONMENT: str = Field(
        default="production",
        validation_alias=AliasChoices("ENVIRONMENT", "NODE_ENV"),
    )
    LOG_LEVEL: str = "INFO"
    PORT: int = 6000
    API_PREFIX: str = "/api"

    DATABASE_URL: str = ""
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_CONNECT_TIMEOUT: int = 10
    DB_SSLMODE: str = "prefer"
    AUTO_CREATE_TABLES: bool = True

    MONITOR_ENABLED: bool = True
    MONITOR_INTERVAL_SECONDS: int = 30
    MONITOR_BACKOFF_INTERVAL_SECONDS: int = 120
    MONITOR_MAX_RETRIES: int = 5
    MONITOR_PROBE_TIMEOUT_SECONDS: int = 5

    QUERY_TIMEOUT_SECONDS: int = 60
    LARGE_QUERY_TIMEOUT_SECONDS: int = 90

    REDIS_URL: str = ""
    CACHE_TTL_SECONDS: int = 3600

    RATE_LIMIT_ENABLED: bool = True
    TRUST_PROXY: bool = False
    FRONTEND_URL: str = "http://localhost:4001"
    FRONTEND_DIST_PATH: str = "frontend/dist"
    CORS_ORIGINS: list[str] = ["http://localhost:4001", "http://localhost:3000"]

    SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_HOURS: int = 24

    RESEND_API_KEY: str = ""
    SENDGRID_API_KEY: str = ""
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    EMAIL_FROM: str = "noreply@dataatlas.com.br"
    EMAIL_FROM_NAME: str = "DataAtlas Brasil"
    EMAIL_TIMEOUT_SECONDS: int = 15
    ADMIN_EMAIL: str = ""

    APIFY_API_KEY: str = ""
    APIFY_BASE_URL: str = "https://api.apify.com/v2"
    APIFY_TIMEOUT_SECONDS: int = 30
    GOOGLE_MAPS_ACTOR_ID: str = "nwua9Gu5YrADL7ZDj"
    INSTAGRAM_ACTOR_ID: str = "apify~instagram-search-scraper"
    INSTAGRAM_RESULTS_LIMIT: int = 50
    APIFY_ALLOWED_ACTOR_IDS: list[str] = ["compass~crawler-google-places"]

    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    AFFILIATE_DISCOUNT: float = 0.10

    @field_validator("CORS_ORIGINS", "APIFY_ALLOWED_ACTOR_IDS", mode="before")
    @classmethod
    def parse_csv_or_json_list(cls, value: object) -> list[str]:
        if value is None:
            return []

        if isinstance(value, str):
            raw = value.strip()
            if not raw:
                return []

            if raw.startswith("["):
                try:
                    parsed = json.loads(raw)
                    if isinstance(parsed, list):
                        return [str(item).strip() for item in parsed if str(item).strip()]
                except json.JSONDecodeError:
                    pass

            return [item.strip() for item in raw.split(",") if item.strip()]

        if isinstance(value, (list, tuple, set)):
            return [str(item).strip() for item in value if str(item).strip()]

        return [str(value).strip()] if str(value).strip() else []

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() in {"development", "dev", "local"}

    @property
    def allowed_origins(self) -> list[str]:
        origins = list(self.CORS_ORIGINS)
        if self.FRONTEND_URL and self.FRONTEND_URL not in origins:
            origins.append(self.FRONTEND_URL)
        return origins

    @property
    def allowed_actor_ids(self) -> set[str]:
        return {self.GOOGLE_MAPS_ACTOR_ID, self.INSTAGRAM_ACTOR_ID, *self.APIFY_ALLOWED_ACTOR_IDS}

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
