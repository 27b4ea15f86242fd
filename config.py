"""
Configuration Management for Agentic Document Chain Processor
"""
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).parent / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Project Paths
    PROJECT_ROOT: Path = Path(__file__).parent
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # Gemini API Configuration (https://ai.google.dev/gemini-api/docs/models)
    GEMINI_API_KEY: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY")
    )
    OCR_MODEL: str = "gemini-2.5-pro"  # Pro for better OCR quality

    # API Configuration
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_RELOAD: bool = False
    API_BASE_URL: str = "http://localhost:8000"  # Used by the Streamlit frontend

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or text (log file only; console is always text)

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._create_directories()

    def _create_directories(self) -> None:
        """Create necessary directories if they don't exist"""
        self.LOGS_DIR.mkdir(parents=True, exist_ok=True)


# Global settings instance
settings = Settings()
