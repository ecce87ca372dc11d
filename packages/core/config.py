from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Runtime Configuration (APP_*)
    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = Field(default=3000, validation_alias=AliasChoices("PORT", "APP_PORT"))
    app_log_level: str = "info"

    # Metadata
    service_name: str = "attendance-relay"
    service_version: str = "0.1.0"

    # n8n Webhooks
    n8n_login_webhook_url: str = "http://127.0.0.1:5678/webhook/login"
    n8n_logout_webhook_url: str = "http://127.0.0.1:5678/webhook/logout"
    webhook_timeout_seconds: float = Field(default=30.0, gt=0)
    webhook_user_agent: str = "Employee-Tracker/1.0"

    # Job tracking
    jobs_retention_seconds: int = Field(default=3600, gt=0)
    jobs_cleanup_interval_seconds: int = Field(default=1800, gt=0)
    recent_activities_limit: int = Field(default=10, ge=1)


settings = Settings()
