"""
Configuration management for the MessageAI scheduling assistant.

Values come from environment variables or a local .env file; names are
case-insensitive (``MAX_TOOL_ITERATIONS`` sets ``max_tool_iterations``).
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime settings for the API, calendar access and the chat loop.

    Instantiate through ``get_settings()`` outside of tests.
    """

    # Python & Application
    python_env: Literal["development", "production"] = Field(
        default="development",
        description="Deployment mode; production enforces credentials at startup"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level for run_server()"
    )

    # Database (token storage)
    database_url: str = Field(
        default="sqlite:///./data/messageai.db",
        description="SQLAlchemy URL of the OAuth token database"
    )

    # LLM Provider
    llm_provider: Literal["anthropic"] = Field(
        default="anthropic",
        description="LLM provider used by the assistant"
    )
    anthropic_api_key: str = Field(
        default="",
        description="Key for the Anthropic chat and analysis models"
    )
    llm_model: str = Field(
        default="",
        description="Model override (empty uses the default model)"
    )
    llm_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Sampling temperature for chat turns"
    )
    llm_max_tokens: int = Field(
        default=1500,
        gt=0,
        description="Maximum tokens per chat turn"
    )

    # API Configuration
    api_host: str = Field(
        default="0.0.0.0",
        description="Interface uvicorn binds to"
    )
    api_port: int = Field(
        default=8000,
        description="Port uvicorn listens on"
    )
    api_reload: bool = Field(
        default=True,
        description="Restart uvicorn on code changes"
    )

    # Timezone Configuration
    default_timezone: str = Field(
        default="America/Chicago",
        description="Timezone used when a request does not carry one (IANA name)"
    )

    # Google OAuth / Calendar
    google_oauth_client_id: str = Field(
        default="",
        description="OAuth client used to refresh user tokens"
    )
    google_oauth_client_secret: str = Field(
        default="",
        description="Secret of the OAuth client used for refresh"
    )
    google_calendar_id: str = Field(
        default="primary",
        description="Calendar ID used for every user"
    )

    # Calendar access
    event_cache_ttl_seconds: int = Field(
        default=300,
        gt=0,
        description="How long a fetched event range stays valid"
    )
    provider_retry_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts for transient calendar provider failures"
    )

    # Free-slot search
    business_hours_start: int = Field(
        default=8,
        ge=0,
        le=23,
        description="First hour of the day considered for alternatives"
    )
    business_hours_end: int = Field(
        default=20,
        ge=1,
        le=24,
        description="Hour by which an alternative slot must end"
    )
    slot_increment_minutes: int = Field(
        default=30,
        gt=0,
        description="Step between candidate slot start times"
    )

    # Orchestration
    max_tool_iterations: int = Field(
        default=5,
        ge=1,
        description="Maximum tool-execution rounds per chat turn"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @model_validator(mode="after")
    def check_business_hours(self) -> "Settings":
        if self.business_hours_start >= self.business_hours_end:
            raise ValueError(
                "BUSINESS_HOURS_START must be earlier than BUSINESS_HOURS_END"
            )
        return self

    @property
    def is_production(self) -> bool:
        return self.python_env == "production"

    @property
    def can_refresh_tokens(self) -> bool:
        """True when an OAuth client is configured for refresh-token exchange."""
        return bool(self.google_oauth_client_id and self.google_oauth_client_secret)

    def get_llm_api_key(self) -> str:
        """
        Return the Anthropic key.

        Raises:
            ValueError: If ANTHROPIC_API_KEY is empty
        """
        if not self.anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY is not set; add it to the environment or .env")
        return self.anthropic_api_key

    def validate_production_config(self) -> None:
        """
        Fail fast when production lacks the model key or the OAuth client.

        Raises:
            ValueError: Listing every missing setting
        """
        if not self.is_production:
            return

        missing = []
        if not self.anthropic_api_key:
            missing.append("ANTHROPIC_API_KEY is required in production.")
        if not self.can_refresh_tokens:
            missing.append(
                "GOOGLE_OAUTH_CLIENT_ID and GOOGLE_OAUTH_CLIENT_SECRET are required "
                "in production to refresh calendar credentials."
            )
        if missing:
            raise ValueError("Invalid production configuration:\n- " + "\n- ".join(missing))


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings, read once."""
    return Settings()
