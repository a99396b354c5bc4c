"""Configuration management for the chunkpilot upload controller."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    ENV: str = "local"
    SERVICE_NAME: str = "chunkpilot"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Upload backend
    UPLOAD_BACKEND: str = "http"  # "http" or "memory"
    BACKEND_BASE_URL: str = "http://localhost:8080"
    DOWNLOAD_BASE_URL: str = ""  # Defaults to BACKEND_BASE_URL

    # Chunking
    CHUNK_SIZE_MB: int = 100

    # Transport
    REQUEST_TIMEOUT: int = 30  # seconds for control calls
    CHUNK_REQUEST_TIMEOUT: int = 600  # seconds for a single chunk PATCH
    TRANSPORT_MAX_ATTEMPTS: int = 3
    TRANSPORT_RETRY_MIN_SECONDS: float = 1.0
    TRANSPORT_RETRY_MAX_SECONDS: float = 10.0

    @property
    def chunk_size_bytes(self) -> int:
        """Convert CHUNK_SIZE_MB to bytes."""
        return self.CHUNK_SIZE_MB * 1024 * 1024

    @property
    def download_base_url(self) -> str:
        """Get download base URL, defaulting to the backend URL."""
        return (self.DOWNLOAD_BASE_URL or self.BACKEND_BASE_URL).rstrip("/")


# Singleton settings instance
settings = Settings()
