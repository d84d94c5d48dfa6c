"""Worker configuration."""

from printshop.config import Settings as ApiSettings
from pydantic_settings import SettingsConfigDict


class Settings(ApiSettings):
    """Worker settings.

    Database, storage and Celery URLs are shared with the API; the fields
    below only tune the worker process.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Celery worker
    worker_concurrency: int = 2
    task_time_limit_seconds: int = 300
    task_soft_time_limit_seconds: int = 240


settings = Settings()
