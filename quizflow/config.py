"""
Configuration settings for QuizFlow.
"""

from pydantic_settings import BaseSettings
from typing import Literal, Optional


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application
    APP_NAME: str = "QuizFlow"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Backing store
    STORE_BACKEND: Literal["memory", "rest"] = "memory"
    REST_URL: Optional[str] = None  # e.g. https://<project>.supabase.co/rest/v1
    REST_API_KEY: Optional[str] = None
    REST_TIMEOUT: float = 10.0  # Seconds
    SEED_DEMO_DATA: bool = True  # Only applies to the memory backend

    # Traversal
    BRANCHING_STRATEGY: Literal["linear", "conditional"] = "linear"

    # Graph layout
    NODE_SPACING: int = 300
    NODE_ROW_Y: int = 0

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
