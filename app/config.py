"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str

    # Redis (empty string disables analytics caching)
    REDIS_URL: str = "redis://redis:6379/0"

    # Application
    APP_NAME: str = "Quiz Attempt Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Analytics
    ANALYTICS_CACHE_TTL: int = 60  # seconds
    TOP_PERFORMERS_LIMIT: int = 10

    # Attempt policy
    AUTO_SUBMIT_TAB_SWITCH_LIMIT: int = 0  # 0 = never auto-submit on tab switches
    FREEZE_QUESTIONS_AFTER_ATTEMPTS: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
