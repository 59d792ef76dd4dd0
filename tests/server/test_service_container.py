from unittest.mock import patch

import pytest

from chatjpt.auth import JWTIdentityResolver
from chatjpt.config import Settings
from chatjpt.conversation import ConversationAssembler
from chatjpt.llm import GeminiReplyGenerator
from chatjpt.server import ApplicationServer
from chatjpt.server.service_container import (
    ServiceConfig,
    ServiceContainer,
    ServiceInitializationError,
)
from chatjpt.storage import RedisMessageLog, RedisSessionStore
from tests.mocks import MockRedis

FROM_URL = "chatjpt.server.service_container.redis.from_url"


def _settings(**overrides) -> Settings:
    values = {
        "redis_url": "redis://redis.test:6379/0",
        "redis_key_prefix": "itest",
        "google_api_key": "google-key",
        "jwt_secret": "jwt-secret",
        "history_window": 12,
    }
    values.update(overrides)
    return Settings(**values)


def _container(settings: Settings) -> ServiceContainer:
    return ServiceContainer(
        ServiceConfig(
            redis_url=settings.redis_url,
            key_prefix=settings.redis_key_prefix,
            settings=settings,
        )
    )


class TestServiceContainer:
    @pytest.mark.asyncio
    async def test_initialize_wires_services(self):
        redis_client = MockRedis()
        container = _container(_settings())

        with patch(FROM_URL, return_value=redis_client) as from_url:
            await container.initialize()

        try:
            from_url.assert_called_once()
            assert from_url.call_args.args[0] == "redis://redis.test:6379/0"
            assert from_url.call_args.kwargs["decode_responses"] is True
            assert "ping" in redis_client.calls

            assert container.is_initialized
            assert isinstance(container.session_store, RedisSessionStore)
            assert isinstance(container.message_log, RedisMessageLog)
            assert isinstance(container.reply_generator, GeminiReplyGenerator)
            assert isinstance(container.assembler, ConversationAssembler)
            assert isinstance(container.identity_resolver, JWTIdentityResolver)
            assert container.assembler.history_window == 12
            assert container.session_store.keys.prefix == "itest"
        finally:
            await container.cleanup()

        assert redis_client.closed is True
        assert container.reply_generator.is_initialized is False
        assert not container.is_initialized

    @pytest.mark.asyncio
    async def test_initialize_fails_when_redis_unreachable(self):
        redis_client = MockRedis()
        redis_client.failing_commands.add("ping")
        container = _container(_settings())

        with patch(FROM_URL, return_value=redis_client):
            with pytest.raises(ServiceInitializationError, match="Redis"):
                await container.initialize()

        assert redis_client.closed is True
        assert not container.is_initialized

    @pytest.mark.asyncio
    async def test_initialize_requires_google_key(self):
        container = _container(_settings(google_api_key=None))

        with patch(FROM_URL, return_value=MockRedis()):
            with pytest.raises(ServiceInitializationError, match="reply generator"):
                await container.initialize()

    @pytest.mark.asyncio
    async def test_initialize_requires_jwt_secret(self):
        container = _container(_settings(jwt_secret=None))

        with patch(FROM_URL, return_value=MockRedis()):
            with pytest.raises(ServiceInitializationError, match="JWT secret"):
                await container.initialize()

    @pytest.mark.asyncio
    async def test_async_context_manager(self):
        redis_client = MockRedis()

        with patch(FROM_URL, return_value=redis_client):
            async with _container(_settings()) as container:
                assert container.is_initialized

        assert redis_client.closed is True


class TestApplicationServer:
    @pytest.mark.asyncio
    async def test_health_before_initialize(self):
        server = ApplicationServer(settings=_settings())
        assert server.health() == {"storage": False, "generator": False}

    @pytest.mark.asyncio
    async def test_initialize_and_cleanup(self):
        server = ApplicationServer(settings=_settings())

        with patch(FROM_URL, return_value=MockRedis()):
            await server.initialize()

        assert server.health() == {"storage": True, "generator": True}

        await server.cleanup()
        assert server.health()["generator"] is False

    @pytest.mark.asyncio
    async def test_initialize_failure_propagates(self):
        server = ApplicationServer(settings=_settings(jwt_secret=None))

        with patch(FROM_URL, return_value=MockRedis()):
            with pytest.raises(ServiceInitializationError):
                await server.initialize()
