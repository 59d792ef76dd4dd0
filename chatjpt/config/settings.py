"""
Application settings and configuration.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_SYSTEM_PROMPT = (
    "You are a chat assistant called ChatJPT on a website of the same name. "
    "You are just meant to be a normal large language model that can chat "
    "with the user and act as an assistant. "
)


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Storage
    redis_url: str = Field(default="redis://localhost:6379", description="Redis URL")
    redis_key_prefix: str = Field(
        default="chatjpt", description="Namespace for all Redis keys"
    )

    # Reply generation
    google_api_key: Optional[str] = Field(
        default=None, description="Google AI Studio API key"
    )
    google_model: str = Field(default="gemini-1.5-flash", description="Gemini model")
    google_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Google AI API base URL",
    )
    generation_temperature: float = Field(
        default=0.7, ge=0, le=2, description="Sampling temperature"
    )
    generation_max_tokens: int = Field(
        default=2048, ge=1, description="Maximum tokens per reply"
    )
    reply_timeout_seconds: int = Field(
        default=60, ge=1, description="Upper bound on a single reply generation"
    )
    system_prompt: str = Field(
        default=DEFAULT_SYSTEM_PROMPT,
        description="Instruction used when a session has no system message",
    )

    # Conversation
    history_window: int = Field(
        default=20, ge=1, description="Recent messages forwarded to the generator"
    )
    session_list_limit: int = Field(
        default=200, ge=1, description="Maximum sessions returned by a listing"
    )
    serialize_sessions: bool = Field(
        default=True,
        description="Serialize concurrent sends to the same session in-process",
    )

    # Identity
    jwt_secret: Optional[str] = Field(
        default=None, description="Secret or public key used to verify bearer tokens"
    )
    jwt_algorithms: str = Field(
        default="HS256", description="Comma-separated accepted JWT algorithms"
    )
    jwt_audience: Optional[str] = Field(default=None, description="Expected audience")
    jwt_issuer: Optional[str] = Field(default=None, description="Expected issuer")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3001, description="Server port")
    cors_origins: str = Field(
        default="", description="Comma-separated allowed origins, empty allows all"
    )
    static_dir: Optional[Path] = Field(
        default=None, description="Directory of static frontend files served at /"
    )
    log_level: str = Field(default="INFO", description="Application log level")

    class Config:
        env_prefix = "CHATJPT_"
        env_file = ".env"

    def get_cors_origins(self) -> List[str]:
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        return origins or ["*"]

    def get_jwt_algorithms(self) -> List[str]:
        return [a.strip() for a in self.jwt_algorithms.split(",") if a.strip()]


def configure_logging(level: str = "INFO") -> None:
    """
    Configure logging with development-friendly structured output.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    from ..utils.logging.structured import create_development_formatter

    log_level = getattr(logging, level.upper())
    formatter = create_development_formatter()

    # Configure only our application logger (chatjpt.*)
    app_logger = logging.getLogger("chatjpt")
    app_logger.setLevel(log_level)

    for handler in app_logger.handlers[:]:
        app_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    # Uvicorn keeps its own handlers on the root logger
    app_logger.propagate = False

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
