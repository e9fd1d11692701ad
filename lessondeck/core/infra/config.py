# lessondeck/core/infra/config.py

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings (.env loading)."""

    # Content generation (LLM)
    OPENAI_API_KEY: str = ""
    CONTENT_MODEL: str = "gpt-4o-mini"
    CONTENT_TEMPERATURE: float = 0.7
    CONTENT_TIMEOUT_SEC: int = 60
    LLM_CACHE_PATH: Optional[str] = None

    # Request defaults
    DEFAULT_TOPIC: str = "general topic"
    DEFAULT_AGE_GROUP: str = "8-9"

    # Thumbnail rendering
    RENDER_SERVICE_URL: str = "http://localhost:3001/render"
    RENDER_TIMEOUT_SEC: float = 30.0
    THUMBNAIL_WIDTH: int = 1600
    THUMBNAIL_HEIGHT: int = 1200
    THUMBNAIL_FORMAT: str = "png"
    THUMBNAIL_QUALITY: int = 90
    THUMBNAIL_BACKGROUND: str = "#ffffff"
    THUMBNAIL_MAX_CONCURRENCY: int = 8

    # Progress sessions
    SESSION_INACTIVITY_TIMEOUT_SEC: float = 600.0
    SESSION_COMPLETION_GRACE_SEC: float = 1.0
    SESSION_QUEUE_MAXSIZE: int = 256
    HEARTBEAT_INTERVAL_SEC: float = 15.0

    # Logging
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = True
    LOG_ROTATE_WHEN: str = "midnight"
    LOG_ROTATE_INTERVAL: int = 1
    LOG_BACKUP_COUNT: int = 7
    LOG_FILE_BASENAME: str = "lessondeck"

    # Metrics / Feature toggles
    ENABLE_METRICS: bool = True

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton settings instance
settings = Settings()
