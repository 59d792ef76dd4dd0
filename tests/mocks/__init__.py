from tests.mocks.auth import MockIdentityResolver
from tests.mocks.llm import MockReplyGenerator
from tests.mocks.server import (
    MockApplicationServer,
    MockServiceContainer,
    MockSettings,
)
from tests.mocks.storage import MockPipeline, MockRedis

__all__ = [
    "MockApplicationServer",
    "MockIdentityResolver",
    "MockPipeline",
    "MockRedis",
    "MockReplyGenerator",
    "MockServiceContainer",
    "MockSettings",
]
