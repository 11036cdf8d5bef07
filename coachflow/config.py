"""Application configuration using Pydantic Settings."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite:///./coachflow.db"

    # OpenRouter
    OPENROUTER_API_KEY: str = ""
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    SITE_URL: str = ""
    SITE_NAME: str = "Coachflow"
    SPLIT_PLANNER_MODEL: str = "openai/gpt-oss-120b:free"

    # Background dispatch (event bus). Either an event key or dev mode selects async dispatch.
    EVENT_KEY: Optional[str] = None
    EVENT_DEV_MODE: bool = False
    EVENT_API_BASE_URL: str = "https://inn.gs"
    EVENT_DEV_BASE_URL: str = "http://localhost:8288"

    # Email (welcome mail after onboarding)
    EMAIL_API_URL: str = ""
    EMAIL_API_KEY: str = ""
    EMAIL_FROM: str = "coach@coachflow.app"

    # Progress / ETA
    METRICS_MIN_SAMPLES: int = 3
    METRICS_WINDOW: int = 10
    DEFAULT_AI_DURATION_MS: int = 120000
    AI_DURATION_SHARE: float = 0.4
    PROGRESS_TICK_SECONDS: float = 2.0

    # i18n
    DEFAULT_LOCALE: str = "en"

    # Split planner
    SPLIT_PLANNER_MAX_ATTEMPTS: int = 3
    SPLIT_PLANNER_RETRY_DELAY: float = 5.0

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    @property
    def async_dispatch_enabled(self) -> bool:
        """Whether generation should be handed off to the event bus."""
        return bool(self.EVENT_KEY) or self.EVENT_DEV_MODE


# Global settings instance
settings = Settings()
