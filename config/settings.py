"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anon/public key"
    )

    # ===================
    # IMPORT PIPELINE
    # ===================
    import_max_file_size_mb: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum accepted upload size in MB"
    )
    import_allowed_extensions: list[str] = Field(
        default=[".xlsx", ".xls", ".csv"],
        description="File extensions accepted for import"
    )
    import_sample_rows: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Rows echoed back after upload"
    )
    import_preview_result_limit: int = Field(
        default=100,
        ge=1,
        description="Row results returned by preview"
    )
    import_preview_error_limit: int = Field(
        default=50,
        ge=1,
        description="Error messages returned by preview"
    )
    import_commit_error_limit: int = Field(
        default=20,
        ge=1,
        description="Error messages returned by commit"
    )
    import_job_error_limit: int = Field(
        default=100,
        ge=1,
        description="Error messages stored on the import job"
    )
    import_session_ttl_minutes: int = Field(
        default=30,
        ge=1,
        le=1440,
        description="Minutes an uploaded file stays available for preview/commit"
    )
    import_history_table: str = Field(
        default="importacoes_historico",
        description="Table holding import job records"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def import_max_file_size_bytes(self) -> int:
        return self.import_max_file_size_mb * 1024 * 1024


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
