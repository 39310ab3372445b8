"""Application configuration using Pydantic BaseSettings"""
import logging
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Environment
    ENVIRONMENT: str = "development"
    PORT: int = 8000

    # Logging
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGIN: str = "http://localhost:3000"

    # MongoDB (change streams need a replica set)
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "videotube"
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = 5000

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # JWT
    ACCESS_TOKEN_SECRET: str = ""
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    REFRESH_TOKEN_SECRET: str = ""
    REFRESH_TOKEN_EXPIRE_DAYS: int = 10
    JWT_ALGORITHM: str = "HS256"

    # Elasticsearch
    ELASTICSEARCH_NODE: str = "http://localhost:9200"
    ELASTICSEARCH_USERNAME: str = ""
    ELASTICSEARCH_PASSWORD: str = ""
    ELASTICSEARCH_REQUEST_TIMEOUT: int = 10

    # Change stream -> search index sync
    SEARCH_SYNC_ENABLED: bool = True
    SEARCH_REFRESH_ON_WRITE: bool = True
    SEARCH_SYNC_RETRY_SECONDS: float = 5.0
    SEARCH_SYNC_MAX_AWAIT_MS: int = 1000

    # Media storage (S3-compatible CDN)
    STORAGE_ENDPOINT_URL: str = ""
    STORAGE_ACCESS_KEY_ID: str = ""
    STORAGE_SECRET_ACCESS_KEY: str = ""
    STORAGE_BUCKET_NAME: str = ""
    STORAGE_PUBLIC_URL: str = ""
    STORAGE_REGION: str = "auto"

    # Upload staging
    UPLOAD_DIR: Path = Path("uploads/tmp").resolve()
    MAX_VIDEO_SIZE: int = 2 * 1024 * 1024 * 1024  # 2GB in bytes
    MAX_IMAGE_SIZE: int = 10 * 1024 * 1024  # 10MB in bytes

    # Rate limiting (fixed window)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW: int = 60  # seconds
    RATE_LIMIT_REQUESTS: int = 1000
    RATE_LIMIT_STRICT_REQUESTS: int = 300

    # Cache TTLs
    STATS_CACHE_TTL: int = 60  # seconds

    # OpenTelemetry
    OTEL_EXPORTER_OTLP_ENDPOINT: str = ""
    OTEL_SERVICE_NAME: str = "videotube-backend"
    OTEL_ENVIRONMENT: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @field_validator("ACCESS_TOKEN_SECRET", "REFRESH_TOKEN_SECRET")
    @classmethod
    def check_token_secret(cls, v, info):
        if not v or v.strip() == "":
            # Tokens signed with an empty secret are trivially forgeable
            logger.error(f"{info.field_name} is missing! Issued tokens will not be secure.")
        return v

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


# Create global settings instance
settings = Settings()
