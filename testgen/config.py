"""Application configuration using pydantic-settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Required
    openai_api_key: str = Field(..., description="OpenAI API key")

    # Database
    database_path: Path = Field(
        default=Path("./data/app.db"),
        description="Path to SQLite database file",
    )

    # Blob storage for uploaded PDFs
    storage_root: Path = Field(
        default=Path("./data/pdfs"),
        description="Directory where uploaded PDF files are stored",
    )

    # Generation
    generation_model: str = Field(
        default="gpt-4",
        description="OpenAI model for test generation",
    )
    generation_temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    generation_timeout_sec: float = Field(
        default=45.0,
        gt=0,
        description="Timeout for a single LLM completion call",
    )
    generation_max_retries: int = Field(
        default=2,
        ge=0,
        le=5,
        description="Retries on transient LLM failures (timeouts, 5xx)",
    )
    generation_repair_attempts: int = Field(
        default=1,
        ge=0,
        le=1,
        description="Extra generation calls allowed when the model returns malformed JSON",
    )
    request_timeout_sec: float = Field(
        default=120.0,
        gt=0,
        description="Overall time budget for one generation request, across retries and repair",
    )

    # Content and prompt limits
    min_content_chars: int = Field(default=100, ge=1)
    max_excerpt_chars: int = Field(
        default=6000,
        ge=1,
        description="Hard character cut applied to the text sent to the LLM",
    )
    min_questions: int = Field(default=1, ge=1)
    max_questions: int = Field(default=50, ge=1)
    default_num_questions: int = Field(default=10, ge=1)
    default_language: str = Field(default="es")

    # Backpressure
    max_documents_per_batch: int = Field(default=10, ge=1)
    extraction_max_workers: int = Field(default=4, ge=1)
    max_file_size_mb: int = Field(default=10, description="Maximum file size in MB")

    # Auth
    jwt_secret: str = Field(
        default="change-me-in-production",
        description="Shared secret used to verify access tokens",
    )
    jwt_algorithm: str = Field(default="HS256")
    jwt_audience: str | None = Field(
        default=None,
        description="Expected 'aud' claim, if tokens carry one",
    )

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")
    environment: str = Field(
        default="development", description="Environment (development/production)"
    )

    # Security
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins",
    )
    rate_limit_enabled: bool = Field(default=True, description="Enable rate limiting")
    rate_limit_per_minute: int = Field(
        default=10, ge=1, description="Generation requests per minute per IP"
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


# Global settings instance
settings = Settings()
