"""
Key layout and shared helpers for the Redis stores.
"""

from typing import Tuple

import redis.asyncio as redis

# Optimistic-lock attempts before a WATCH conflict is reported as a failure
WATCH_ATTEMPTS = 5


class ConcurrentModificationError(Exception):
    """Raised when a WATCHed update keeps losing to concurrent writers."""

    pass


class ChatKeys:
    """
    Builds the Redis keys for one key prefix.

    User and session ids are embedded in every key, so a lookup can only
    ever reach the caller's own data.
    """

    def __init__(self, prefix: str = "chatjpt"):
        self.prefix = prefix

    def session_index(self, user_id: str) -> str:
        return f"{self.prefix}:users:{user_id}:sessions"

    def session_meta(self, user_id: str, session_id: str) -> str:
        return f"{self.prefix}:users:{user_id}:sessions:{session_id}:meta"

    def messages(self, user_id: str, session_id: str) -> str:
        return f"{self.prefix}:users:{user_id}:sessions:{session_id}:messages"


def _to_ms(server_time: Tuple[int, int]) -> int:
    seconds, microseconds = server_time
    return int(seconds) * 1000 + int(microseconds) // 1000


async def server_time_ms(client: "redis.Redis") -> int:
    """Current time from the Redis server clock, in epoch milliseconds."""
    return _to_ms(await client.time())
