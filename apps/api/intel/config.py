from __future__ import annotations

from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    DATABASE_URL: str = "sqlite:///./intel.db"

    # Coalesce blank/empty env to default sqlite path to avoid SQLAlchemy URL parse errors
    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def _normalize_db_url(cls, v: object) -> str:
        val = str(v or "").strip()
        # Hosted Postgres providers still hand out the legacy scheme
        if val.startswith("postgres://"):
            val = "postgresql://" + val[len("postgres://"):]
        return val or "sqlite:///./intel.db"

    # "production" turns on TLS for PostgreSQL connections
    environment: str = "development"
    database_sslmode: str = "require"

    # HTTP
    port: int = 3001
    allowed_origins: str = "*"
    frontend_url: str = "http://localhost:3000"

    @field_validator("frontend_url", mode="after")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # Stripe
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""

    # Logging / error reporting
    log_level: str = "INFO"
    sentry_dsn: Optional[str] = None

    # Data source keys (not read by any code path yet)
    alpha_vantage_api_key: Optional[str] = None
    fred_api_key: Optional[str] = None
    news_api_key: Optional[str] = None
    yahoo_finance_api_key: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    def origins(self) -> List[str]:
        raw = (self.allowed_origins or "*").strip()
        if raw == "*":
            return ["*"]
        return [o.strip() for o in raw.split(",") if o.strip()]


settings = Settings()
