"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_llm_settings() -> "LLMSettings":
    """Build LLM settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return LLMSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    See _build_llm_settings() for rationale about the type ignore.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_rate_limit_settings() -> "RateLimitSettings":
    return RateLimitSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class LLMSettings(BaseSettings):
    """LLM provider configuration.

    Supports OpenAI, Azure OpenAI and Ollama. Validation of provider-specific
    requirements happens in the factory.
    """

    provider: str = Field(
        ...,
        description="LLM provider name (openai, azure_openai, ollama)",
    )
    model: str = Field(
        ...,
        description="Model or Azure deployment name (e.g., gpt-4o, qwen2.5-coder)",
    )
    api_key: str | None = Field(
        None,
        description="API key for cloud providers (required for OpenAI and Azure OpenAI)",
    )
    base_url: str | None = Field(
        None,
        description="Custom API endpoint (Azure resource endpoint or Ollama host)",
    )
    api_version: str = Field(
        "2024-06-01",
        description="Azure OpenAI API version",
    )
    timeout_seconds: float = Field(
        30.0,
        description="Request timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_key_required: bool = Field(
        True,
        description="Whether API key authentication is required",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid API keys for authentication",
    )
    admin_api_keys: str | None = Field(
        None,
        description="Comma-separated subset of API keys that carry the admin role",
    )
    default_role: str = Field(
        "ADO.ReadOnly",
        description="Role granted to authenticated non-admin API keys",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Tiered rate limiting configuration.

    Limits are deliberately not range-checked: a zero or negative limit makes
    the corresponding tier deny every request.
    """

    enabled: bool = Field(
        True,
        description="Enable the rate limiting middleware",
    )
    default_max_requests: int = Field(
        100,
        description="Maximum requests per window for ordinary traffic",
    )
    default_window_seconds: int = Field(
        60,
        description="Window size in seconds for ordinary traffic",
    )
    ai_max_requests: int = Field(
        10,
        description="Maximum requests per window for AI endpoints",
    )
    ai_window_seconds: int = Field(
        60,
        description="Window size in seconds for AI endpoints",
    )
    admin_max_requests: int = Field(
        30,
        description="Maximum requests per window for admin traffic",
    )
    admin_window_seconds: int = Field(
        60,
        description="Window size in seconds for admin traffic",
    )
    max_request_body_size_bytes: int = Field(
        5 * 1024 * 1024,
        description="Reject requests whose declared Content-Length exceeds this",
    )
    max_query_string_length: int = Field(
        2048,
        description="Reject requests whose raw query string is longer than this",
    )
    ai_path_marker: str = Field(
        "/semantickernel",
        description="Path fragment identifying AI endpoints (case-insensitive)",
    )
    protected_path_marker: str = Field(
        "/workitem",
        description="Path fragment whose DELETE requests count as admin traffic",
    )
    admin_role: str = Field(
        "ADO.Admin",
        description="Role that places a requester in the admin tier",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATELIMITING_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log output: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file at this size (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Number of rotated files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and echo the correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if required settings are missing.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    llm: LLMSettings = Field(default_factory=_build_llm_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
