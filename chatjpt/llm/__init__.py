"""
Reply generation for ChatJPT.
"""

from .base_generator import BaseHTTPGenerator, ReplyGenerator
from .exceptions import (
    AuthenticationError,
    ConnectionError,
    GeneratorAPIError,
    GeneratorConfigurationError,
    InvalidRequestError,
    ModelNotFoundError,
    RateLimitError,
    ReplyGeneratorError,
    ServerError,
    TimeoutError,
)
from .gemini_generator import GeminiReplyGenerator

__all__ = [
    "AuthenticationError",
    "BaseHTTPGenerator",
    "ConnectionError",
    "GeminiReplyGenerator",
    "GeneratorAPIError",
    "GeneratorConfigurationError",
    "InvalidRequestError",
    "ModelNotFoundError",
    "RateLimitError",
    "ReplyGenerator",
    "ReplyGeneratorError",
    "ServerError",
    "TimeoutError",
]
