"""Environment driven settings for the EasyMind content service.

Firebase identifiers, collection names, upload limits and worker counts are
read once per process from the environment (or a .env file) and validated
before the app accepts traffic.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Service account credentials must be provided via environment variables
    or .env file. When they are omitted the Firebase SDK falls back to
    application default credentials.
    """

    # Firebase Configuration
    firebase_project_id: str = Field(
        ...,
        description="Firebase project that owns the Firestore database"
    )
    firebase_service_account_json: Optional[str] = Field(
        default=None,
        description="Service account JSON string or path to the JSON file"
    )
    firebase_storage_bucket: Optional[str] = Field(
        default=None,
        description="Default Firebase Storage bucket for uploaded documents"
    )

    # Collections
    contents_collection: str = Field(
        default="contents",
        description="Firestore collection holding lessons, games, activities and quizzes"
    )
    logs_collection: str = Field(
        default="logs",
        description="Firestore collection for teacher activity logs"
    )

    # Upload limits
    max_upload_mb: int = Field(
        default=50,
        ge=1,
        le=200,
        description="Maximum accepted upload size in megabytes"
    )

    # Networking
    trusted_proxies: str = Field(
        default="",
        description="Comma-separated proxy IPs allowed to set X-Forwarded-For"
    )

    # Local batch processing
    batch_workers: int = Field(
        default=2,
        ge=1,
        le=50,
        description="Documents classified in parallel by the batch-process command"
    )

    log_level: str = Field(default="INFO", description="Root log level")

    # Model configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("firebase_project_id")
    @classmethod
    def validate_firebase_project_id(cls, v: str) -> str:
        """Validate that FIREBASE_PROJECT_ID is present and non-empty."""
        if not v or not v.strip():
            raise ValueError(
                "FIREBASE_PROJECT_ID must be set in environment variables. "
                "Find it in the Firebase console under Project settings."
            )
        return v.strip()

    @field_validator("firebase_storage_bucket")
    @classmethod
    def validate_storage_bucket(cls, v: Optional[str]) -> Optional[str]:
        """Strip a gs:// prefix so the bucket can be passed straight to the SDK."""
        if v is None or not v.strip():
            return None
        bucket = v.strip()
        if bucket.startswith("gs://"):
            bucket = bucket[len("gs://"):]
        return bucket.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid LOG_LEVEL '{v}'")
        return level

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """Build Settings on first use and hand back the same instance afterwards.

    Tests call get_settings.cache_clear() after changing the environment.

    Raises:
        ValidationError: A required variable is missing or a value is out of range
    """
    return Settings()
