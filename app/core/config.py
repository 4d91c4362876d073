# python
# app/core/config.py
"""Configuration settings for the StudyNotes API.

Uses Pydantic BaseSettings for environment variable management.
"""
from enum import Enum

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentEnum(str, Enum):
    development = "development"
    testing = "testing"
    staging = "staging"
    production = "production"


class LogLevelEnum(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormatEnum(str, Enum):
    simple = "simple"
    json = "json"


class Settings(BaseSettings):
    # Pydantic v2 settings configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===== Application Settings =====
    app_name: str = Field(default="StudyNotes API", description="Application name")
    environment: EnvironmentEnum = Field(
        default=EnvironmentEnum.development, description="Environment type"
    )
    debug: bool = Field(default=False, description="Debug mode")
    version: str = Field(default="1.0.0", description="Application version")

    # ===== Database Settings =====
    database_url: str | None = Field(default=None, description="Database connection URL")
    test_database_url: str | None = Field(default=None, description="Test database URL")

    # ===== Authentication =====
    supabase_jwt_secret: str | None = Field(
        default=None, description="Secret used to verify access tokens (HS256)"
    )
    jwt_audience: str = Field(default="authenticated", description="Expected token audience")

    # ===== Supabase (storage + serverless functions) =====
    supabase_url: str | None = Field(default=None, description="Supabase project URL")
    supabase_service_key: str | None = Field(default=None, description="Supabase service key")
    storage_bucket: str = Field(default="documents", description="Storage bucket for uploads")
    functions_url: str | None = Field(
        default=None, description="Base URL of the serverless functions"
    )
    functions_timeout: int = Field(default=120, description="Function call timeout in seconds")
    remote_max_retry_attempts: int = Field(
        default=3, description="Attempts for a function call that reports overload"
    )

    # ===== AI Service (Gemini) =====
    gemini_api_key: str | None = Field(default=None, description="Google Gemini API key")
    gemini_model: str = Field(default="gemini-1.5-flash", description="Gemini model to use")
    gemini_max_tokens: int = Field(default=2048, description="Maximum tokens for Gemini")
    gemini_temperature: float = Field(default=0.7, description="Sampling temperature")
    ai_request_timeout: int = Field(default=60, description="AI request timeout in seconds")
    ai_max_retry_attempts: int = Field(default=3, description="Attempts for retryable AI errors")
    ai_retry_backoff_factor: float = Field(default=2.0, description="Exponential backoff multiplier")
    ai_retry_min_wait: int = Field(default=2, description="Minimum wait between retries (s)")
    ai_retry_max_wait: int = Field(default=30, description="Maximum wait between retries (s)")

    # ===== Chat =====
    chat_sessions_per_page: int = Field(default=10, description="Session list page size")
    chat_messages_per_page: int = Field(default=20, description="Message page size")
    context_document_char_limit: int = Field(
        default=2000, description="Characters of extracted document text sent as context"
    )
    context_note_char_limit: int = Field(
        default=1500, description="Characters of note content sent as context"
    )

    # ===== Audio Processing =====
    audio_poll_interval_seconds: float = Field(
        default=5.0, description="Interval between audio job status checks"
    )
    audio_job_retention_seconds: float = Field(
        default=300.0, ge=0, description="How long a finished audio job stays readable"
    )

    # ===== Application Limits =====
    max_file_size: int = Field(default=52428800, description="Maximum file size in bytes (50MB)")

    # ===== CORS Settings =====
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173,http://localhost:8080,http://127.0.0.1:3000",
        description="Allowed CORS origins (comma-separated)",
    )

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    # ===== Monitoring & Logging =====
    log_level: LogLevelEnum = Field(default=LogLevelEnum.INFO, description="Logging level")
    log_format: LogFormatEnum = Field(default=LogFormatEnum.simple, description="Log format")

    # ===== Server Settings =====
    host: str = Field(default="127.0.0.1", description="Host to bind the server")
    port: int = Field(default=8000, description="Port to bind the server")

    # ===== Computed Properties =====
    @property
    def is_development(self) -> bool:
        return self.environment == EnvironmentEnum.development

    @property
    def is_production(self) -> bool:
        return self.environment == EnvironmentEnum.production

    @property
    def is_testing(self) -> bool:
        return self.environment == EnvironmentEnum.testing

    @property
    def has_ai_enabled(self) -> bool:
        return bool(self.gemini_api_key)

    @property
    def has_remote_functions(self) -> bool:
        return bool(self.functions_url and self.supabase_service_key)

    @property
    def has_file_storage(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)

    # ===== Validation Methods =====
    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        if v and isinstance(v, str):
            lv = v.lower()
            if lv in ["dev", "develop"]:
                return "development"
            if lv in ["prod"]:
                return "production"
            return lv
        return v

    @field_validator("max_file_size")
    @classmethod
    def validate_file_size(cls, v):
        if v > 100 * 1024 * 1024:
            raise ValueError("Maximum file size cannot exceed 100MB")
        return v

    @field_validator("chat_sessions_per_page", "chat_messages_per_page")
    @classmethod
    def validate_page_size(cls, v):
        if v < 1:
            raise ValueError("Page size must be at least 1")
        return v

    @field_validator("audio_poll_interval_seconds")
    @classmethod
    def validate_poll_interval(cls, v):
        if v <= 0:
            raise ValueError("Audio poll interval must be positive")
        return v

    @model_validator(mode="after")
    def set_computed_fields(self):
        if not self.functions_url and self.supabase_url:
            self.functions_url = f"{self.supabase_url.rstrip('/')}/functions/v1"
        return self


settings = Settings()


class ConfigValidator:
    @staticmethod
    def validate_required_settings():
        errors = []
        if not settings.database_url:
            errors.append("DATABASE_URL is required")
        if settings.is_production and not settings.supabase_jwt_secret:
            errors.append("SUPABASE_JWT_SECRET is required in production")
        if settings.is_production and not settings.gemini_api_key:
            errors.append("GEMINI_API_KEY is required in production")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

    @staticmethod
    def get_feature_status() -> dict:
        return {
            "ai_enabled": settings.has_ai_enabled,
            "remote_functions": settings.has_remote_functions,
            "file_storage": settings.has_file_storage,
            "token_verification": bool(settings.supabase_jwt_secret),
            "environment": settings.environment,
        }


def get_config_summary() -> dict:
    return {
        "app_name": settings.app_name,
        "version": settings.version,
        "environment": settings.environment,
        "debug": settings.debug,
        "features": ConfigValidator.get_feature_status(),
        "database_configured": bool(settings.database_url),
    }


__all__ = [
    "settings",
    "Settings",
    "ConfigValidator",
    "get_config_summary",
    "EnvironmentEnum",
    "LogLevelEnum",
    "LogFormatEnum",
]
