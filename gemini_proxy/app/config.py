"""
Configuration module for the Gemini proxy.

This module uses Pydantic Settings to load and validate environment variables
for the upstream Gemini API, the HTTP surface and logging.

Environment variables are loaded from .env file or system environment.
The API key is optional at load time: a missing key is reported by the
proxy on every request rather than preventing the function from starting.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import UpstreamConfig


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """

    # =========================================================================
    # Upstream Gemini API
    # =========================================================================

    GEMINI_API_KEY: Optional[SecretStr] = Field(
        None,
        description="Google Gemini API key, sent upstream as the `key` query parameter",
    )

    GEMINI_API_BASE_URL: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the Generative Language API",
        min_length=1,
    )

    GEMINI_MODEL: str = Field(
        default="gemini-3-flash-preview",
        description="Model name used in the upstream path",
        min_length=1,
    )

    UPSTREAM_TIMEOUT_SECONDS: float = Field(
        default=60.0,
        description="Timeout applied by the shared HTTP client to upstream calls",
        gt=0,
    )

    # =========================================================================
    # Proxy Behaviour
    # =========================================================================

    REJECT_MALFORMED_JSON: bool = Field(
        default=False,
        description="Answer unparseable request bodies with 400 instead of the generic 500",
    )

    # =========================================================================
    # HTTP Surface
    # =========================================================================

    ALLOWED_ORIGINS: Optional[str] = Field(
        None,
        description="Comma-separated list of allowed CORS origins (leave empty for no CORS)",
    )

    FUNCTIONS_BASE_PATH: str = Field(
        default="/.netlify/functions",
        description="Path prefix stripped from serverless events before routing",
    )

    PROXY_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind when running under uvicorn",
    )

    PROXY_PORT: int = Field(
        default=8080,
        description="Port to bind when running under uvicorn",
        ge=1,
        le=65535,
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def allowed_origins_list(self) -> List[str]:
        """
        Parse and return ALLOWED_ORIGINS as a list.

        Returns:
            List of allowed origin URLs, or empty list if not configured.
        """
        if not self.ALLOWED_ORIGINS:
            return []

        return [
            origin.strip()
            for origin in self.ALLOWED_ORIGINS.split(",")
            if origin.strip()
        ]

    @property
    def upstream(self) -> UpstreamConfig:
        """Upstream location and credential, as handed to ProxyHandler."""
        return UpstreamConfig.from_settings(self)

    @property
    def has_api_key(self) -> bool:
        return self.upstream.resolve_api_key() is not None

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("GEMINI_API_BASE_URL")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """
        Require an http(s) URL and strip any trailing slash.

        Raises:
            ValueError: If the URL has no http or https scheme
        """
        v = v.strip()
        if not v.startswith(("https://", "http://")):
            raise ValueError(
                f"GEMINI_API_BASE_URL must start with http:// or https://, got: {v}"
            )
        return v.rstrip("/")

    @field_validator("GEMINI_MODEL")
    @classmethod
    def validate_model(cls, v: str) -> str:
        v = v.strip()
        if not v or "/" in v or ":" in v:
            raise ValueError(
                f"Invalid model name: '{v}'. "
                "Expected a bare model name such as 'gemini-3-flash-preview'"
            )
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """
        Validate the log level is one the logging module understands.

        Raises:
            ValueError: If level is not supported
        """
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

        v = v.upper()
        if v not in allowed_levels:
            raise ValueError(
                f"LOG_LEVEL must be one of {allowed_levels}, got: {v}"
            )

        return v

    @field_validator("FUNCTIONS_BASE_PATH")
    @classmethod
    def validate_functions_base_path(cls, v: str) -> str:
        v = v.strip()
        if v and not v.startswith("/"):
            v = "/" + v
        return v.rstrip("/")


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    This function is cached so that the settings are loaded only once
    per process (once per cold start on serverless platforms).

    Returns:
        Settings instance with all configuration loaded and validated.

    Raises:
        ValidationError: If an environment variable holds an invalid value.
    """
    return Settings()


# =============================================================================
# Configuration Helpers
# =============================================================================

def validate_configuration(settings: Settings) -> dict:
    """
    Validate critical configuration settings and return a status report.

    Called during application startup. A missing API key is an error in the
    report but does not stop startup; the proxy rejects each request instead.

    Returns:
        Dictionary with validation status and any warnings.

    Example:
        >>> status = validate_configuration(get_settings())
        >>> if not status["valid"]:
        ...     print(status["errors"])
    """
    errors = []
    warnings = []

    if not settings.has_api_key:
        errors.append("GEMINI_API_KEY is not set")

    if settings.GEMINI_API_BASE_URL.startswith("http://"):
        warnings.append("GEMINI_API_BASE_URL is not HTTPS (API key would travel in clear text)")

    if "*" in settings.allowed_origins_list:
        warnings.append("ALLOWED_ORIGINS allows any origin")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "model": settings.GEMINI_MODEL,
        "timeout_seconds": settings.UPSTREAM_TIMEOUT_SECONDS,
    }
