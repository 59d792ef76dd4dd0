"""
Reply generator interface and HTTP session management.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, Optional

import aiohttp


class ReplyGenerator(ABC):
    """
    Produces assistant text from an assembled prompt.

    Lifecycle:
        1. __init__: create the generator
        2. initialize: set up resources once, at process startup
        3. generate: called per request, concurrently
        4. cleanup: release resources at shutdown
    """

    def __init__(self, generator_id: str):
        self.generator_id = generator_id
        self._initialized = False

    async def initialize(self) -> None:
        """Set up resources. Idempotent."""
        self._initialized = True

    async def cleanup(self) -> None:
        """Release resources. Idempotent."""
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """
        Generate a reply for a single prompt string.

        Args:
            prompt: System instruction, rendered history and the trailing
                "Assistant:" cue

        Returns:
            Reply text, possibly empty

        Raises:
            ReplyGeneratorError: On any failure to obtain a reply
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(generator_id={self.generator_id!r})"


class BaseHTTPGenerator:
    """
    Mixin for generators that talk HTTP.

    Owns one pooled aiohttp session for the life of the process.
    """

    def __init__(self):
        self._session: Optional[aiohttp.ClientSession] = None

    def _initialize_session(
        self,
        timeout_seconds: float,
        max_connections: int = 100,
        max_connections_per_host: int = 30,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        if self._session is not None:
            return

        timeout = aiohttp.ClientTimeout(
            total=timeout_seconds,
            connect=10,
            sock_read=timeout_seconds,
        )
        connector = aiohttp.TCPConnector(
            limit=max_connections,
            limit_per_host=max_connections_per_host,
            ttl_dns_cache=300,
            keepalive_timeout=30,
        )

        self._session = aiohttp.ClientSession(
            timeout=timeout,
            connector=connector,
            connector_owner=True,
            headers=headers,
        )

    async def _cleanup_session(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            # Let the connector finish closing transports
            await asyncio.sleep(0.25)

        self._session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        """
        Return the active session.

        Raises:
            RuntimeError: If initialize() has not run
        """
        if self._session is None or self._session.closed:
            raise RuntimeError("HTTP session not initialized. Call initialize() first.")
        return self._session
