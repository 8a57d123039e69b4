"""
Centralized application settings using Pydantic.

All environment variables are read once at startup and validated.
Use this instead of scattered os.getenv() calls throughout the codebase.
"""

from pydantic_settings import BaseSettings


class ProxySettings(BaseSettings):
    """Credential-forwarding proxy configuration."""

    REMOTE_API_BASE: str = "https://api.sarvam.ai"
    PROXY_TIMEOUT_SECONDS: float = 60.0
    CORS_ALLOW_ORIGINS: list[str] = ["*"]

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


class ConverterSettings(BaseSettings):
    """Conversion pipeline configuration (client side of the proxy)."""

    PROXY_BASE_URL: str = "http://localhost:3000"
    DEFAULT_LANGUAGE: str = "en-IN"
    DEFAULT_OUTPUT_FORMAT: str = "md"
    POLL_INTERVAL_SECONDS: float = 5.0
    POLL_MAX_ATTEMPTS: int = 60
    CLIENT_TIMEOUT_SECONDS: float = 60.0
    OUTPUT_FILENAME: str = "converted-document.docx"

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}

    @property
    def poll_deadline_seconds(self) -> float:
        """Polling deadline derived from interval and attempts."""
        return self.POLL_INTERVAL_SECONDS * self.POLL_MAX_ATTEMPTS


class AppSettings(BaseSettings):
    """General application settings."""

    APP_NAME: str = "scan-to-docx"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


# Singleton instances - loaded once at module import
proxy_settings = ProxySettings()
converter_settings = ConverterSettings()
app_settings = AppSettings()
