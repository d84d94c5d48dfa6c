"""Application configuration."""

from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database (DATABASE_URL wins over the POSTGRES_* parts, e.g. a Supabase pooler URL)
    database_url_override: Optional[str] = Field(
        None, validation_alias=AliasChoices("database_url", "database_url_override")
    )
    postgres_host: str = "postgres"
    postgres_port: int = 5432
    postgres_user: str = "printshop"
    postgres_password: str = "changeme"
    postgres_db: str = "printshop_db"
    database_echo: bool = False

    # Redis
    redis_url: str = "redis://redis:6379/0"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = True
    cors_origins: List[str] = ["*"]

    # Celery
    celery_broker_url: str = "redis://redis:6379/0"
    celery_result_backend: str = "redis://redis:6379/0"

    # Storage: "local" or "s3" (Supabase Storage exposes an S3-compatible endpoint)
    storage_provider: str = "local"
    storage_base_path: str = "/tmp/printshop-files"
    storage_bucket: str = "files"
    storage_endpoint_url: Optional[str] = None
    storage_region: str = "us-east-1"
    storage_access_key_id: Optional[str] = None
    storage_secret_access_key: Optional[str] = None
    max_upload_size_mb: int = 200

    # Secrets at rest (printer API keys, Home Assistant token)
    encryption_key: str = "changeme-32-bytes-base64-encoded-key"

    # Printer telemetry: "live" talks to printers / Home Assistant, "simulated" returns random data
    telemetry_mode: str = "live"
    http_timeout_seconds: float = 5.0
    control_timeout_seconds: float = 10.0
    ha_printer_patterns: List[str] = [
        "_printer_status",
        "_printer_state",
        "_3d_printer",
        "rat_rig",
        "bambu",
        "x1c_",
        "a1_",
        "h2d_",
    ]

    # Logging
    log_level: str = "INFO"

    # Environment
    environment: str = "development"

    @property
    def database_url(self) -> str:
        """Build database URL."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


settings = Settings()
