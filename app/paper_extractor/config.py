"""
Application configuration using Pydantic Settings.

Automatically loads environment variables from .env files.
"""

import tempfile
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI
    openai_api_key: str | None = None
    transcription_model: str = "gpt-4.1"
    extraction_model: str = "gpt-4.1"

    # Rasterization (dpi = 72 * scale)
    rasterize_scale: float = 2.0

    # Request limits
    max_upload_mb: int = 50
    request_timeout_seconds: float = 600.0

    # Where uploaded PDFs live for the duration of a request
    upload_dir: Path = Path(tempfile.gettempdir())

    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",  # Vite development server
        "http://127.0.0.1:5173",
    ]

    # Debug flags
    debug: bool = False

    model_config = SettingsConfigDict(
        # Load from .env file in the package directory
        env_file=Path(__file__).parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        # Case insensitive environment variable names
        case_sensitive=False,
    )

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration loaded from environment.
    """
    return Settings()
