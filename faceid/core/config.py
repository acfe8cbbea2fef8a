"""Configuration settings for the face identity service."""
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    These settings are loaded from environment variables with the following precedence:
    1. Environment variables
    2. .env file
    3. Default values

    Attributes:
        EMBEDDING_DIMENSION: Length of the embedding vectors produced by the detector
        MATCH_THRESHOLD: Maximum Euclidean distance (inclusive) for a gallery match
        UNKNOWN_LABEL: Label reported for faces that match no enrolled identity
        STORE_BACKEND: Embedding store implementation ("sql" or "memory")
        DATABASE_URL: SQLAlchemy async URL used by the SQL embedding store
    """
    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",  # No prefix for environment variables
        env_nested_delimiter="__"  # Use double underscore for nested settings
    )

    # Core Settings
    PROJECT_NAME: str = "Face Identity Service"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"

    # CORS Settings
    ALLOWED_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins(self) -> List[str]:
        """Get list of allowed origins."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    # Matching Settings
    EMBEDDING_DIMENSION: int = 512  # buffalo_l ArcFace embeddings
    MATCH_THRESHOLD: float = 0.6
    UNKNOWN_LABEL: str = "unknown"

    # Enrollment Settings
    ENROLLMENT_REJECT_NAME_CONFLICT: bool = False
    SEED_IMAGES_PER_LABEL: int = 2

    # Face Detection Settings
    MIN_FACE_CONFIDENCE: float = 0.5
    MODEL_NAME: str = "buffalo_l"
    MODEL_CACHE_DIR: str = ".model_cache"
    MAX_IMAGE_PIXELS: int = 1920 * 1080  # ~2MP (Full HD)
    DETECTION_TIMEOUT_SECONDS: float = 10.0

    # Embedding Store Settings
    STORE_BACKEND: str = "sql"
    DATABASE_URL: str = "sqlite+aiosqlite:///./faceid.db"
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10
    DATABASE_POOL_TIMEOUT: int = 30

    # Optional settings with defaults
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000

settings = Settings()
