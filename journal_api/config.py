from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str
    CLERK_SECRET_KEY: str = ""
    CLERK_AUTHORIZED_PARTIES: list[str] = Field(default_factory=list)

    # Environment & logging
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # "json" or "text"
    ENABLE_FILE_LOGGING: bool = False

    CORS_ORIGINS: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    # Rate limiting - in-memory unless a Redis URL is configured
    REDIS_URL: Optional[str] = None
    RATE_LIMIT_ENABLED: bool = True

    # Gemini API Settings
    GEMINI_API_KEY: str = ""
    GEMINI_LLM_MODEL: str = "gemini-2.5-flash"
    PROMPT_TIMEOUT_SECONDS: float = 30.0
    PROMPT_TEMPERATURE: float = 0.7

    # Prompt limits
    PROMPT_MIN_CONTENT_LENGTH: int = 50
    FREE_MONTHLY_PROMPT_LIMIT: int = 10
    PROMPT_RATE_LIMIT: str = "6/minute"  # one prompt per 10 seconds

    # Stripe Configuration
    STRIPE_SECRET_KEY: str = ""
    STRIPE_PRICE_MONTHLY: str = ""
    CHECKOUT_RATE_LIMIT: str = "10/minute"

    # Public origin used for checkout callbacks; derived from headers when unset
    SITE_URL: Optional[str] = None

    # Optional static frontend build served at "/"
    FRONTEND_DIST_DIR: Optional[str] = None

    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')


settings = Settings()
