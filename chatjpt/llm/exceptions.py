"""
Structured exception hierarchy for reply generators.

Generators raise these; the conversation assembler absorbs every one of
them into the fallback assistant reply, so they never reach HTTP callers.
"""

from typing import Any, Dict, Optional


class ReplyGeneratorError(Exception):
    """
    Base exception for all reply generator errors.

    Attributes:
        message: Human-readable error message
        generator_id: Identifier of the generator that raised the error
        model: Model identifier (if applicable)
        error_type: Categorization of error type
        retryable: Whether the request could succeed if repeated
        metadata: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        generator_id: str,
        model: Optional[str] = None,
        error_type: str = "unknown",
        retryable: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.generator_id = generator_id
        self.model = model
        self.error_type = error_type
        self.retryable = retryable
        self.metadata = metadata or {}

    def __str__(self) -> str:
        parts = [self.message]
        if self.generator_id:
            parts.append(f"(generator: {self.generator_id})")
        if self.model:
            parts.append(f"(model: {self.model})")
        return " ".join(parts)


class GeneratorConfigurationError(ReplyGeneratorError):
    """Missing or invalid generator configuration, e.g. no API key."""

    def __init__(self, message: str, generator_id: str):
        super().__init__(
            message=message,
            generator_id=generator_id,
            error_type="configuration_error",
        )


class GeneratorAPIError(ReplyGeneratorError):
    """
    Error response from the generation endpoint.

    Attributes:
        status_code: HTTP status code
        response_body: Raw response body
    """

    def __init__(
        self,
        message: str,
        generator_id: str,
        status_code: int,
        response_body: str,
        model: Optional[str] = None,
        retryable: bool = False,
    ):
        super().__init__(
            message=message,
            generator_id=generator_id,
            model=model,
            error_type=self._categorize_status_code(status_code),
            retryable=retryable,
            metadata={
                "status_code": status_code,
                "response_body": response_body[:1000],
            },
        )
        self.status_code = status_code
        self.response_body = response_body

    @staticmethod
    def _categorize_status_code(status_code: int) -> str:
        if status_code == 400:
            return "invalid_request"
        elif status_code in (401, 403):
            return "authentication_error"
        elif status_code == 404:
            return "not_found"
        elif status_code == 429:
            return "rate_limit_exceeded"
        elif 500 <= status_code < 600:
            return "server_error"
        return "api_error"


class AuthenticationError(GeneratorAPIError):
    """API key rejected or lacking permission."""

    def __init__(self, message, generator_id, status_code, response_body, model=None):
        super().__init__(message, generator_id, status_code, response_body, model)


class RateLimitError(GeneratorAPIError):
    """Quota or rate limit exceeded."""

    def __init__(self, message, generator_id, status_code, response_body, model=None):
        super().__init__(
            message, generator_id, status_code, response_body, model, retryable=True
        )


class InvalidRequestError(GeneratorAPIError):
    """Malformed request, or a response without usable content."""

    pass


class ModelNotFoundError(GeneratorAPIError):
    """Configured model does not exist or is not available to the key."""

    pass


class ServerError(GeneratorAPIError):
    """5xx from the endpoint. Typically transient."""

    def __init__(self, message, generator_id, status_code, response_body, model=None):
        super().__init__(
            message, generator_id, status_code, response_body, model, retryable=True
        )


class ConnectionError(ReplyGeneratorError):
    """Network failure talking to the endpoint."""

    def __init__(
        self,
        message: str,
        generator_id: str,
        model: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            generator_id=generator_id,
            model=model,
            error_type="connection_error",
            retryable=True,
            metadata={"original_error": str(original_error)} if original_error else {},
        )
        self.original_error = original_error


class TimeoutError(ReplyGeneratorError):
    """Generation exceeded its time budget."""

    def __init__(
        self,
        message: str,
        generator_id: str,
        timeout_seconds: float,
        model: Optional[str] = None,
    ):
        super().__init__(
            message=message,
            generator_id=generator_id,
            model=model,
            error_type="timeout",
            retryable=True,
            metadata={"timeout_seconds": timeout_seconds},
        )
        self.timeout_seconds = timeout_seconds
