"""Configuration management for the LLM gateway using environment variables.

This module provides centralized configuration management using Pydantic Settings
to load and validate configuration from environment variables with sensible defaults.
"""

import logging
from typing import List, Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# XTTS v2 rejects anything above 250 characters per request
XTTS_HARD_LIMIT = 250


def _split_csv(value, default: List[str]) -> List[str]:
    if isinstance(value, str):
        if not value.strip():
            return list(default)
        return [item.strip() for item in value.split(',') if item.strip()]
    return value


class APIConfig(BaseSettings):
    """Configuration for the FastAPI application and HTTP behavior."""

    # Server settings
    host: str = Field(default="0.0.0.0", description="Host to bind the server to")
    port: int = Field(default=3000, description="Port to bind the server to")
    log_level: str = Field(default="info", description="Logging level")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")
    debug: bool = Field(default=False, description="Expose internal error messages")

    # API metadata
    title: str = Field(default="LLM Gateway", description="API title")
    version: str = Field(default="1.0.0", description="API version")
    description: str = Field(
        default="Gateway for chat, text-to-speech, image generation and translation backends",
        description="API description"
    )

    # CORS settings; an empty list disables cross-origin access
    cors_origins: Union[List[str], str] = Field(
        default_factory=list,
        description="CORS allowed origins"
    )
    cors_credentials: bool = Field(default=True, description="Allow CORS credentials")

    # Request limits
    max_body_bytes: int = Field(default=10 * 1024 * 1024, description="Maximum request body size")

    @field_validator('cors_origins', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        return _split_csv(v, [])

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ['debug', 'info', 'warning', 'error', 'critical']
        if v.lower() not in valid_levels:
            raise ValueError(f'log_level must be one of {valid_levels}')
        return v.lower()

    model_config = SettingsConfigDict(
        env_prefix="API_",
        case_sensitive=False,
        env_file=".env",
        extra="ignore",
        env_parse_none_str=""
    )


class AuthConfig(BaseSettings):
    """Configuration for JWT authentication and user storage."""

    jwt_secret: str = Field(
        default="your-super-secret-jwt-key-change-in-production",
        description="Secret used to sign access tokens"
    )
    jwt_refresh_secret: str = Field(
        default="your-refresh-secret-key-change-in-production",
        description="Secret used to sign refresh tokens"
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    access_token_minutes: int = Field(default=60, description="Access token lifetime in minutes")
    refresh_token_days: int = Field(default=7, description="Refresh token lifetime in days")
    bcrypt_rounds: int = Field(default=12, ge=4, le=31, description="bcrypt cost factor")

    users_file: str = Field(default="data/users.json", description="Path of the JSON user store")

    default_admin_email: str = Field(default="admin@example.com", description="Default admin email")
    default_admin_username: str = Field(default="admin", description="Default admin username")
    default_admin_password: str = Field(default="admin123", description="Default admin password")

    @field_validator('access_token_minutes', 'refresh_token_days')
    @classmethod
    def validate_lifetimes(cls, v):
        if v <= 0:
            raise ValueError('Token lifetimes must be positive')
        return v

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        case_sensitive=False,
        env_file=".env",
        extra="ignore"
    )


class RateLimitConfig(BaseSettings):
    """Configuration for request rate limiting on /api/ routes."""

    enabled: bool = Field(default=True, description="Enable rate limiting")
    max_requests: int = Field(default=100, description="Requests allowed per window")
    window_minutes: int = Field(default=15, description="Window length in minutes")
    storage_uri: str = Field(default="memory://", description="slowapi storage backend URI")

    @property
    def limit_string(self) -> str:
        return f"{self.max_requests}/{self.window_minutes} minutes"

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
        env_file=".env",
        extra="ignore"
    )


class XTTSConfig(BaseSettings):
    """Configuration for the XTTS speech backend and chunked synthesis."""

    url: str = Field(default="http://xtts:80", description="XTTS streaming server base URL")
    max_chars: int = Field(default=240, description="Maximum characters per synthesis call")
    chunk_timeout_seconds: float = Field(default=180.0, description="Timeout for one chunk call")
    max_parallel_chunks: int = Field(default=1, description="Chunk calls allowed in flight")
    max_text_length: int = Field(default=50000, description="Maximum accepted input length")

    supported_languages: Union[List[str], str] = Field(
        default=["en", "pl"],
        description="Language codes accepted by the TTS route"
    )
    default_speaker: str = Field(default="Claribel Dervla", description="Speaker used when none given")
    fallback_speakers: Union[List[str], str] = Field(
        default=["Claribel Dervla", "Daisy Studious", "Gracie Wise", "Tammie Ema", "Alison Dietlinde"],
        description="Speaker names reported when XTTS cannot be reached"
    )

    min_speed: float = Field(default=0.5, description="Minimum speech speed")
    max_speed: float = Field(default=2.0, description="Maximum speech speed")

    @field_validator('supported_languages', mode='before')
    @classmethod
    def parse_languages(cls, v):
        return [code.lower() for code in _split_csv(v, ["en", "pl"])]

    @field_validator('fallback_speakers', mode='before')
    @classmethod
    def parse_fallback_speakers(cls, v):
        return _split_csv(v, [])

    @field_validator('max_chars')
    @classmethod
    def validate_max_chars(cls, v):
        if v <= 0 or v > XTTS_HARD_LIMIT:
            raise ValueError(f'max_chars must be between 1 and {XTTS_HARD_LIMIT}')
        return v

    @field_validator('max_parallel_chunks')
    @classmethod
    def validate_parallelism(cls, v):
        if v < 1:
            raise ValueError('max_parallel_chunks must be at least 1')
        return v

    @field_validator('min_speed', 'max_speed')
    @classmethod
    def validate_speed_range(cls, v):
        if v <= 0:
            raise ValueError('Speed values must be positive')
        return v

    model_config = SettingsConfigDict(
        env_prefix="XTTS_",
        case_sensitive=False,
        env_file=".env",
        extra="ignore"
    )


class BackendConfig(BaseSettings):
    """Locations and defaults for the chat, image and translation backends."""

    ollama_base_url: str = Field(default="http://localhost:11434", description="Ollama base URL")
    localai_base_url: str = Field(default="http://localai:8080", description="LocalAI base URL")
    libretranslate_url: str = Field(default="http://libretranslate:5000", description="LibreTranslate URL")

    ollama_default_model: str = Field(default="llama2", description="Default Ollama model")
    localai_default_model: str = Field(default="gpt-3.5-turbo", description="Default LocalAI chat model")
    image_model: str = Field(default="stablediffusion", description="Default LocalAI image model")

    request_timeout_seconds: float = Field(default=120.0, description="Timeout for backend calls")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        extra="ignore"
    )


class Settings(BaseSettings):
    """Main configuration class combining all config sections."""

    environment: str = Field(default="production", description="Application environment")

    api: APIConfig = Field(default_factory=APIConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    xtts: XTTSConfig = Field(default_factory=XTTSConfig)
    backends: BackendConfig = Field(default_factory=BackendConfig)

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        valid_environments = ['development', 'testing', 'staging', 'production']
        if v.lower() not in valid_environments:
            raise ValueError(f'environment must be one of {valid_environments}')
        return v.lower()

    def model_post_init(self, __context=None) -> None:
        """Post-initialization validation across sections."""
        if self.xtts.min_speed >= self.xtts.max_speed:
            raise ValueError('min_speed must be less than max_speed')

        if self.environment == "production" and self.auth.jwt_secret.startswith("your-"):
            logger.warning("Using the default JWT secret; set AUTH_JWT_SECRET in production")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


_settings: Optional[Settings] = None


def get_config() -> Settings:
    """Get the process-wide settings instance, loading it on first use."""
    global _settings
    if _settings is None:
        try:
            _settings = Settings()
        except Exception as e:
            logger.error(f"Failed to load configuration: {e}")
            logger.error("Please check your environment variables and .env file")
            raise RuntimeError(f"Configuration initialization failed: {e}") from e
    return _settings


def reload_config() -> Settings:
    """Reload settings from environment variables."""
    global _settings
    _settings = None
    return get_config()
