"""Settings for the mileage tracker, read from the environment and ``.env``."""

from functools import lru_cache
from typing import Any

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Environment-driven configuration."""

    DATABASE_URL: str = "sqlite:///./mileage_tracker.db"
    LOG_LEVEL: str = "INFO"

    # API access tokens
    JWT_SECRET_KEY: str = "your-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days

    @property
    def SECRET_KEY(self) -> str:
        return self.JWT_SECRET_KEY

    @property
    def ALGORITHM(self) -> str:
        return self.JWT_ALGORITHM

    @property
    def ACCESS_TOKEN_EXPIRE_MINUTES(self) -> int:
        return self.JWT_ACCESS_TOKEN_EXPIRE_MINUTES

    # Strava app credentials, used to refresh athlete tokens during sync
    STRAVA_CLIENT_ID: str = ""
    STRAVA_CLIENT_SECRET: str = ""
    STRAVA_TOKEN_URL: str = "https://www.strava.com/oauth/token"
    STRAVA_API_BASE_URL: str = "https://www.strava.com/api/v3"

    # Browser clients allowed by CORS, in addition to FRONTEND_URL
    FRONTEND_URL: str = "http://localhost:5173"
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Cron fields are passed straight to APScheduler's CronTrigger
    SCHEDULER_ENABLED: bool = False
    SCHEDULER_TIMEZONE: str = "UTC"
    PROGRESS_REFRESH_CRON: dict[str, Any] = {"hour": 2, "minute": 0}
    ACTIVITY_SYNC_CRON: dict[str, Any] = {"hour": "*/6", "minute": 0}

    @property
    def allowed_origins(self) -> list[str]:
        return list(dict.fromkeys([self.FRONTEND_URL, *self.CORS_ORIGINS]))

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
