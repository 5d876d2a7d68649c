"""Application configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Required settings will raise validation errors if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="locum-quote-engine", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    # CORS for the versioned wizard API; the lead endpoints are open to any origin
    cors_origins: str = Field(
        default="http://localhost:3000,https://locumpharmacistmelbourne.com.au",
        description="Comma-separated list of allowed CORS origins",
    )

    # Supabase (lead store)
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase secret key for backend operations")
    leads_table: str = Field(default="quote_leads", description="Table holding submitted and abandoned quotes")

    # Email (Resend)
    resend_api_key: str = Field(default="", description="Resend API key for sending emails")
    email_from_address: str = Field(
        default="contact@locumpharmacistmelbourne.com.au",
        description="From address for notification emails",
    )
    notification_recipient: str = Field(
        default="contact@locumpharmacistmelbourne.com.au",
        description="Mailbox that receives quote and contact notifications",
    )

    # Quote wizard
    draft_store_dir: str = Field(default=".drafts", description="Directory for persisted wizard drafts")
    abandonment_debounce_ms: int = Field(
        default=2000,
        ge=0,
        description="Quiet period before an abandoned quote is captured",
    )
    quote_session_cookie_name: str = Field(default="locum_quote_session", description="Wizard session cookie name")
    quote_session_cookie_max_age: int = Field(
        default=604800,
        description="Wizard session cookie max age in seconds (7 days)",
    )
    session_cookie_secure: bool = Field(default=True, description="Use secure cookies (HTTPS only)")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_email_configured(self) -> bool:
        """Check if a Resend API key is present."""
        return bool(self.resend_api_key)

    @property
    def abandonment_debounce_seconds(self) -> float:
        """Abandonment quiet period in seconds."""
        return self.abandonment_debounce_ms / 1000


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached using lru_cache for performance.
        Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
