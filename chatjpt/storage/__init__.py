"""
Redis-backed chat storage.

Each user's sessions live under their own key namespace:

- ``{prefix}:users:{uid}:sessions`` (set) indexes the user's session ids
- ``{prefix}:users:{uid}:sessions:{sid}:meta`` (hash) holds title and timestamps
- ``{prefix}:users:{uid}:sessions:{sid}:messages`` (stream) is the message log

Multi-key writes go through MULTI/EXEC pipelines; metadata updates that
must not resurrect a deleted session WATCH the meta key.
"""

from .keys import ChatKeys, ConcurrentModificationError, server_time_ms
from .message_log import RedisMessageLog
from .session_store import DEFAULT_SESSION_TITLE, RedisSessionStore

__all__ = [
    "ChatKeys",
    "DEFAULT_SESSION_TITLE",
    "RedisMessageLog",
    "RedisSessionStore",
    "ConcurrentModificationError",
    "server_time_ms",
]
