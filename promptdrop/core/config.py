"""Application configuration settings.

This module defines the application-wide settings using Pydantic's BaseSettings.
It allows for loading configurations from environment variables and .env files,
providing type validation and default values.
"""

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings

from promptdrop.core.validation import FileConstraint

# Default list of CORS allowed origins
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:8000",
    "https://localhost:3000",
    "https://localhost:8000",
    "http://0.0.0.0:8000",
]

# Accepted types offered by the upload page (wider than the component defaults)
DEFAULT_ACCEPTED_TYPES: dict[str, list[str]] = {
    "image/*": [".jpeg", ".jpg", ".png", ".gif", ".webp"],
    "application/pdf": [".pdf"],
    "application/msword": [".doc", ".docx"],
    "text/plain": [".txt"],
}


class Settings(BaseSettings):
    """Manages application settings, loading them from environment variables or an .env file.

    Attributes:
        openrouter_api_key: API key for the OpenAI-compatible LLM endpoint.
        model_id: Identifier for the language model to be used.
        llm_base_url: Base URL of the OpenAI-compatible endpoint.
        api_key: API key securing the HTTP endpoints. Unset disables the check.
        cors_allowed_origins: List of allowed origins for CORS.
        max_files: Maximum number of files held in one upload batch.
        max_file_size: Maximum size of a single file in bytes.
        accepted_types: MIME pattern to extension list accepted by the dropzone.
        progress_interval: Seconds between two simulated progress ticks.
        session_ttl: Seconds an idle upload session is kept in memory.
        log_level: Level of the promptdrop loggers (DEBUG, INFO, ...).
        LLM_CONNECT_TIMEOUT: LLM client connect timeout in seconds.
        LLM_READ_TIMEOUT: LLM client read timeout in seconds.
    """

    openrouter_api_key: str | None = Field(default=None)
    model_id: str = Field(default="google/gemini-flash-1.5")
    llm_base_url: str = Field(default="https://openrouter.ai/api/v1")

    api_key: str | None = Field(default=None)

    cors_allowed_origins: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CORS_ORIGINS),
    )

    max_files: int = Field(default=5, gt=0)
    max_file_size: int = Field(default=10 * 1024 * 1024, gt=0)
    accepted_types: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_ACCEPTED_TYPES.items()},
    )

    progress_interval: float = Field(default=0.3, gt=0)
    session_ttl: int = Field(default=900)
    log_level: str = Field(default="DEBUG")

    LLM_CONNECT_TIMEOUT: float = Field(default=10.0, description="LLM client connect timeout in seconds.")
    LLM_READ_TIMEOUT: float = Field(default=180.0, description="LLM client read timeout in seconds.")

    model_config = {
        "env_file": ".env",
        "protected_namespaces": ("settings_",),
        "env_prefix": "",  # No prefix for environment variables
        "extra": "ignore",
    }

    @field_validator("cors_allowed_origins", mode="before")  # type: ignore
    @classmethod
    def assemble_cors_origins(cls, v: str | list[str] | None) -> list[str]:
        """Accepts a comma-separated string or a list; falls back to the defaults."""
        if isinstance(v, str) and v:
            return [origin.strip() for origin in v.split(",")]
        elif isinstance(v, list):
            return v
        return list(DEFAULT_CORS_ORIGINS)

    def file_constraint(self) -> FileConstraint:
        """Builds the admission constraint used by every upload session."""
        return FileConstraint(
            max_files=self.max_files,
            max_size=self.max_file_size,
            accept=self.accepted_types,
        )


settings = Settings()
