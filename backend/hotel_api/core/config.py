"""Application configuration using pydantic-settings.

All environment variables should be accessed through the settings object
rather than using os.getenv() directly. Secrets for the payment gateway,
the JWT signing key and the Redis broker all live here.
"""

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SECRET_KEY = "change-me-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite:///./hotel.db"

    # Redis - optional, relays real-time events between processes and
    # holds the background job leases
    redis_url: Optional[str] = None

    # Security
    secret_key: str = DEFAULT_SECRET_KEY
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 30  # 30 days, matches the mobile app session

    # CORS - comma-separated origins or "*" for development only
    cors_origins: str = "http://localhost:3000,http://localhost:3001,http://localhost:3005"

    # ==========================================================================
    # HyperPay payment gateway
    # ==========================================================================
    hyperpay_base_url: str = "https://eu-test.oppwa.com"
    hyperpay_access_token: str = ""
    hyperpay_entity_id_aed: str = ""
    hyperpay_entity_id_usd: str = ""
    hyperpay_mode: Literal["test", "live"] = "test"
    hyperpay_webhook_secret: str = ""
    hyperpay_timeout_seconds: float = 15.0

    # ==========================================================================
    # Order cleanup sweep
    # ==========================================================================
    order_cleanup_enabled: bool = True
    order_cleanup_interval_seconds: int = 60
    order_payment_grace_minutes: int = 5

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_prefix: str = "/api"

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_requests: int = 1000  # requests per window
    rate_limit_window: int = 15 * 60  # window in seconds

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        if v == DEFAULT_SECRET_KEY or len(v) < 32:
            import warnings
            warnings.warn(
                "SECRET_KEY is the default or shorter than 32 characters. "
                "Set a strong SECRET_KEY environment variable.",
                UserWarning,
                stacklevel=2,
            )
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Refuse to start in production with insecure settings."""
        import warnings

        if not self.debug:
            if self.secret_key == DEFAULT_SECRET_KEY:
                raise ValueError(
                    "FATAL: Cannot start in production mode with default SECRET_KEY. "
                    "Set a secure SECRET_KEY environment variable (minimum 32 characters)."
                )
            if not self.hyperpay_webhook_secret:
                warnings.warn(
                    "HYPERPAY_WEBHOOK_SECRET is not set: every payment callback will be rejected.",
                    UserWarning,
                    stacklevel=2,
                )
        return self

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def hyperpay_is_test(self) -> bool:
        return self.hyperpay_mode == "test"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
