"""Central environment-driven settings for the SysPay API process.

The process loads this once at startup. Behavior is controlled by environment
variables (see `.env.example`).
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class CommonSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "syspay-api"
    log_level: str = "INFO"
    database_url: str = "sqlite:///./syspay.db"
    api_prefix: str = "/api"
    host: str = "0.0.0.0"
    port: int = 8000
    frontend_origin: str = "*"
    otel_exporter_otlp_endpoint: str = ""
    session_cookie_name: str = "syspay.session_token"
    session_expires_in_seconds: int = 60 * 60 * 24 * 7
    session_remember_me_seconds: int = 60 * 60 * 24 * 30
    admin_email: str | None = None
    admin_password: str | None = None
    admin_name: str = "Administrator"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = CommonSettings()
