"""Application settings and configuration"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Star History Aggregator"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # GitHub API
    GITHUB_TOKEN: Optional[str] = None
    GITHUB_API_BASE_URL: str = "https://api.github.com"
    USER_AGENT: str = "StarHistoryAggregator/1.0"

    # GitHub client controls
    GITHUB_TIMEOUT_SECONDS: float = 30.0
    GITHUB_CONCURRENCY: int = 4

    # Stargazer sampling
    STAR_HISTORY_PER_PAGE: int = 30
    STAR_HISTORY_MAX_REQUEST_PAGES: int = 15  # Upper bound of stargazer pages fetched per repository

    # Chart defaults ("Date" or "Timeline")
    STAR_HISTORY_DEFAULT_MODE: str = "Date"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env


settings = Settings()
