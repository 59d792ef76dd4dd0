from contextlib import asynccontextmanager
from typing import Dict

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from unittest.mock import patch

from chatjpt.storage import RedisMessageLog, RedisSessionStore
from tests.mocks import MockApplicationServer, MockRedis, MockReplyGenerator


def _create_test_client(mock_server: MockApplicationServer) -> TestClient:
    from chatjpt.server.api import dependencies
    from chatjpt.server.main import create_app

    dependencies.set_server_instance(mock_server)

    @asynccontextmanager
    async def mock_lifespan(app: FastAPI):
        yield

    with patch("chatjpt.server.main.server", mock_server):
        with patch("chatjpt.server.main.lifespan", mock_lifespan):
            app = create_app()
            return TestClient(app)


@pytest.fixture
def mock_server() -> MockApplicationServer:
    return MockApplicationServer()


@pytest.fixture
def mock_server_no_services() -> MockApplicationServer:
    server = MockApplicationServer()
    server.service_container.session_store = None
    server.service_container.message_log = None
    server.service_container.assembler = None
    return server


@pytest.fixture
def client(mock_server: MockApplicationServer) -> TestClient:
    return _create_test_client(mock_server)


@pytest.fixture
def client_no_services(mock_server_no_services: MockApplicationServer) -> TestClient:
    return _create_test_client(mock_server_no_services)


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"Authorization": "Bearer token-alice"}


@pytest.fixture
def other_auth_headers() -> Dict[str, str]:
    return {"Authorization": "Bearer token-bob"}


@pytest.fixture
def redis_client() -> MockRedis:
    return MockRedis()


@pytest.fixture
def session_store(redis_client: MockRedis) -> RedisSessionStore:
    return RedisSessionStore(redis_client, key_prefix="test", list_limit=200)


@pytest.fixture
def message_log(redis_client: MockRedis) -> RedisMessageLog:
    return RedisMessageLog(redis_client, key_prefix="test")


@pytest.fixture
def reply_generator() -> MockReplyGenerator:
    return MockReplyGenerator()
