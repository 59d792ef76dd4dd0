"""
Service container for dependency injection and lifecycle management.

Builds every long-lived collaborator exactly once at startup, in
dependency order, and tears them down in reverse order on shutdown.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import redis.asyncio as redis

from ..auth import IdentityResolver, JWTIdentityResolver
from ..config.settings import Settings
from ..conversation import ConversationAssembler
from ..llm import GeminiReplyGenerator, ReplyGenerator
from ..storage import RedisMessageLog, RedisSessionStore
from ..utils.logging import log_event


@dataclass
class ServiceConfig:
    """
    Configuration for all core services.

    Keeps the container's inputs explicit instead of reading global
    settings from inside each initializer.
    """

    redis_url: str
    key_prefix: str
    settings: Settings


class ServiceInitializationError(Exception):
    """Raised when service initialization fails."""

    pass


class ServiceContainer:
    """
    Container for core services.

    Manages the lifecycle of:
    - Redis client (shared by both stores)
    - Session store and message log
    - Reply generator (one HTTP session for the process)
    - Conversation assembler
    - Identity resolver

    All services are non-None after initialize() returns.

    Usage:
        container = ServiceContainer(config)
        await container.initialize()
        result = await container.session_store.list_sessions(user_id="u1")
        await container.cleanup()

    Or as an async context manager:
        async with ServiceContainer(config) as container:
            ...
    """

    def __init__(self, config: ServiceConfig):
        self.config = config
        self._initialized = False

        self.redis_client: Optional[redis.Redis] = None
        self.session_store: Optional[RedisSessionStore] = None
        self.message_log: Optional[RedisMessageLog] = None
        self.reply_generator: Optional[ReplyGenerator] = None
        self.assembler: Optional[ConversationAssembler] = None
        self.identity_resolver: Optional[IdentityResolver] = None

    async def initialize(self) -> None:
        """
        Initialize all services in dependency order.

        Initialization phases:
        1. Redis connection
        2. Stores (depend on Redis)
        3. Reply generator
        4. Assembler (depends on stores and generator)
        5. Identity resolver

        Raises:
            ServiceInitializationError: If any service fails to initialize
        """
        if self._initialized:
            log_event("service_container_already_initialized", level=logging.WARNING)
            return

        try:
            log_event(
                "service_container_init_start",
                {
                    "redis_url": self.config.redis_url,
                    "key_prefix": self.config.key_prefix,
                },
            )

            await self._init_redis()
            self._init_stores()
            await self._init_reply_generator()
            self._init_assembler()
            self._init_identity_resolver()

            self._initialized = True

            log_event(
                "service_container_initialized",
                {
                    "services": [
                        "redis",
                        "session_store",
                        "message_log",
                        "reply_generator",
                        "assembler",
                        "identity_resolver",
                    ],
                    "status": "ready",
                },
            )

        except Exception as e:
            log_event(
                "service_container_init_failed",
                {"error": str(e), "error_type": type(e).__name__},
                level=logging.ERROR,
            )
            await self.cleanup()
            if isinstance(e, ServiceInitializationError):
                raise
            raise ServiceInitializationError(
                f"Failed to initialize services: {str(e)}"
            ) from e

    async def cleanup(self) -> None:
        """
        Release resources in reverse initialization order.

        Safe to call after a partial initialization.
        """
        log_event("service_container_cleanup_start")

        if self.reply_generator:
            try:
                await self.reply_generator.cleanup()
                log_event("reply_generator_cleaned_up")
            except Exception as e:
                log_event(
                    "reply_generator_cleanup_error",
                    {"error": str(e)},
                    level=logging.WARNING,
                )

        if self.redis_client:
            try:
                await self.redis_client.aclose()
                log_event("redis_client_cleaned_up")
            except Exception as e:
                log_event(
                    "redis_cleanup_error",
                    {"error": str(e)},
                    level=logging.WARNING,
                )

        self._initialized = False
        log_event("service_container_cleanup_complete")

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.cleanup()
        return False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def _init_redis(self) -> None:
        try:
            self.redis_client = redis.from_url(
                self.config.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_keepalive=True,
                socket_connect_timeout=5,
                retry_on_timeout=True,
                max_connections=50,
            )
            await self.redis_client.ping()

            log_event("redis_initialized", {"url": self.config.redis_url})

        except Exception as e:
            raise ServiceInitializationError(
                f"Failed to initialize Redis: {str(e)}"
            ) from e

    def _init_stores(self) -> None:
        settings = self.config.settings
        self.session_store = RedisSessionStore(
            self.redis_client,
            key_prefix=self.config.key_prefix,
            list_limit=settings.session_list_limit,
        )
        self.message_log = RedisMessageLog(
            self.redis_client, key_prefix=self.config.key_prefix
        )
        log_event("stores_initialized", {"key_prefix": self.config.key_prefix})

    async def _init_reply_generator(self) -> None:
        settings = self.config.settings
        generator = GeminiReplyGenerator(
            api_key=settings.google_api_key,
            model=settings.google_model,
            base_url=settings.google_base_url,
            temperature=settings.generation_temperature,
            max_output_tokens=settings.generation_max_tokens,
            timeout_seconds=settings.reply_timeout_seconds,
        )
        try:
            await generator.initialize()
        except Exception as e:
            raise ServiceInitializationError(
                f"Failed to initialize reply generator: {str(e)}"
            ) from e

        self.reply_generator = generator

    def _init_assembler(self) -> None:
        settings = self.config.settings
        self.assembler = ConversationAssembler(
            message_log=self.message_log,
            reply_generator=self.reply_generator,
            default_system_prompt=settings.system_prompt,
            history_window=settings.history_window,
            reply_timeout_seconds=settings.reply_timeout_seconds,
            serialize_sessions=settings.serialize_sessions,
        )
        log_event(
            "assembler_initialized",
            {
                "history_window": settings.history_window,
                "serialize_sessions": settings.serialize_sessions,
            },
        )

    def _init_identity_resolver(self) -> None:
        settings = self.config.settings
        if not settings.jwt_secret:
            raise ServiceInitializationError(
                "JWT secret is not configured (CHATJPT_JWT_SECRET)"
            )

        self.identity_resolver = JWTIdentityResolver(
            secret=settings.jwt_secret,
            algorithms=settings.get_jwt_algorithms(),
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
        log_event(
            "identity_resolver_initialized",
            {"algorithms": settings.get_jwt_algorithms()},
        )
