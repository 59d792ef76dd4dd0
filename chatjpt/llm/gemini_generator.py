"""
Google Gemini reply generator.

Sends the assembled prompt as a single user turn to the Gemini
``generateContent`` REST endpoint using API key authentication.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from ..utils.logging import log_event, track
from .base_generator import BaseHTTPGenerator, ReplyGenerator
from .exceptions import (
    AuthenticationError,
    ConnectionError,
    GeneratorConfigurationError,
    InvalidRequestError,
    ModelNotFoundError,
    RateLimitError,
    ServerError,
)
from .exceptions import TimeoutError as GenerationTimeoutError

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiReplyGenerator(BaseHTTPGenerator, ReplyGenerator):
    """
    Reply generator backed by a Gemini model.

    One instance is created and initialized at startup and shared by all
    requests; aiohttp sessions are safe for concurrent use.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-1.5-flash",
        base_url: str = DEFAULT_BASE_URL,
        temperature: float = 0.7,
        max_output_tokens: int = 2048,
        timeout_seconds: float = 60,
        generator_id: str = "gemini",
    ):
        ReplyGenerator.__init__(self, generator_id)
        BaseHTTPGenerator.__init__(self)
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout_seconds = timeout_seconds

    async def initialize(self) -> None:
        """
        Open the HTTP session.

        Raises:
            GeneratorConfigurationError: If no API key is configured
        """
        if self._initialized:
            return

        if not self.api_key:
            raise GeneratorConfigurationError(
                "Google API key is not configured (CHATJPT_GOOGLE_API_KEY)",
                generator_id=self.generator_id,
            )

        self._initialize_session(timeout_seconds=self.timeout_seconds)
        await ReplyGenerator.initialize(self)

        log_event(
            "gemini_generator_initialized",
            {"model": self.model, "base_url": self.base_url},
        )

    async def cleanup(self) -> None:
        await self._cleanup_session()
        await ReplyGenerator.cleanup(self)
        log_event("gemini_generator_cleaned_up", {"model": self.model})

    def _build_url(self, action: str = "generateContent") -> str:
        return f"{self.base_url}/models/{self.model}:{action}?key={self.api_key}"

    def _build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
            },
        }

    @track(
        operation="gemini_generate",
        track_performance=True,
        frequency="low_frequency",
    )
    async def generate(self, prompt: str) -> str:
        """
        Generate a reply.

        Returns:
            Concatenated text of the first candidate, stripped

        Raises:
            ReplyGeneratorError subclass on any HTTP, network or payload error
        """
        session = self._ensure_session()
        url = self._build_url()

        log_event("reply_requested", {"model": self.model, "prompt_length": len(prompt)})

        try:
            async with session.post(url, json=self._build_payload(prompt)) as response:
                response_text = await response.text()

                if response.status != 200:
                    log_event(
                        "gemini_request_failed",
                        {
                            "status": response.status,
                            "error": response_text[:500],
                            "model": self.model,
                        },
                        level=logging.ERROR,
                    )
                    self._raise_api_error(response.status, response_text)

                data = json.loads(response_text)

        except aiohttp.ClientError as e:
            log_event(
                "gemini_connection_error",
                {"error": str(e), "model": self.model},
                level=logging.ERROR,
            )
            raise ConnectionError(
                message=f"Failed to connect to Google AI: {str(e)}",
                generator_id=self.generator_id,
                model=self.model,
                original_error=e,
            ) from e
        except asyncio.TimeoutError as e:
            raise GenerationTimeoutError(
                message="Google AI request timed out",
                generator_id=self.generator_id,
                timeout_seconds=self.timeout_seconds,
                model=self.model,
            ) from e
        except json.JSONDecodeError as e:
            raise InvalidRequestError(
                message="Malformed JSON in Google AI response",
                generator_id=self.generator_id,
                status_code=200,
                response_body=response_text,
                model=self.model,
            ) from e

        candidates = (data.get("candidates") if isinstance(data, dict) else None) or []
        if not candidates:
            raise InvalidRequestError(
                message="No candidates in Google AI response",
                generator_id=self.generator_id,
                status_code=200,
                response_body=response_text,
                model=self.model,
            )

        parts = (candidates[0].get("content") or {}).get("parts") or []
        reply = "".join(part.get("text", "") for part in parts).strip()

        log_event("reply_received", {"model": self.model, "reply_length": len(reply)})

        return reply

    def _raise_api_error(self, status_code: int, response_text: str) -> None:
        """Raise the exception matching an HTTP error status."""
        error_message = self._extract_error_message(response_text)
        common = {
            "generator_id": self.generator_id,
            "status_code": status_code,
            "response_body": response_text,
            "model": self.model,
        }

        if status_code in (401, 403):
            raise AuthenticationError(
                message=f"Invalid API key or insufficient permissions: {error_message}",
                **common,
            )
        elif status_code == 404:
            raise ModelNotFoundError(
                message=f"Model '{self.model}' not found: {error_message}", **common
            )
        elif status_code == 429:
            raise RateLimitError(
                message=f"Rate limit exceeded: {error_message}", **common
            )
        elif 500 <= status_code < 600:
            raise ServerError(
                message=f"Google AI server error: {error_message}", **common
            )
        raise InvalidRequestError(message=f"Invalid request: {error_message}", **common)

    @staticmethod
    def _extract_error_message(response_text: str) -> str:
        try:
            data = json.loads(response_text)
        except json.JSONDecodeError:
            return response_text[:500]

        if isinstance(data, dict):
            error = data.get("error", {})
            if isinstance(error, dict):
                return error.get("message") or response_text[:500]
            if isinstance(error, str):
                return error
        return response_text[:500]
