"""
Message log for chat sessions.

Each session's messages are a Redis stream. Every entry is added with the
id ``<ms>-*``, where ``<ms>`` is the server clock clamped to the last
entry's time, and Redis fills in the sequence. Ids are therefore unique,
strictly increasing in insertion order, and carry the message timestamp.
Explicit ms ids with an auto sequence need Redis 7 or later.
"""

import logging
from typing import List, Tuple

import redis.asyncio as redis
from redis.exceptions import RedisError, WatchError

from ..models import Message, MessageRole
from ..utils.logging import log_event, track
from ..utils.result import (
    Result,
    Success,
    not_found_error,
    storage_error,
    validation_error,
)
from .keys import (
    WATCH_ATTEMPTS,
    ChatKeys,
    ConcurrentModificationError,
    server_time_ms,
)

VALID_ROLES = {role.value for role in MessageRole}

StreamEntry = Tuple[str, dict]


def _entry_ms(entry_id: str) -> int:
    ms, _, _ = entry_id.partition("-")
    return int(ms)


class RedisMessageLog:
    """
    Append-only, ordered message log per session.

    Appends run under WATCH on the session meta and the stream. A message
    can never land in a session deleted concurrently, and the session's
    updatedAt moves to the message ts in the same transaction. Reads never
    fail on a missing session; they return an empty list.
    """

    def __init__(self, redis_client: "redis.Redis", key_prefix: str = "chatjpt"):
        self.redis_client = redis_client
        self.keys = ChatKeys(key_prefix)

    @track(
        operation="message_append",
        include_args=["user_id", "session_id", "role"],
        track_performance=True,
        frequency="high_frequency",
    )
    async def append_message(
        self, user_id: str, session_id: str, role: str, text: str
    ) -> Result[Message, str]:
        """
        Append a message to a session.

        Args:
            user_id: Owner of the session
            session_id: Target session
            role: 'user', 'assistant' or 'system'
            text: Non-empty message body

        Returns:
            Success with the stored message (id and ts assigned by Redis),
            ValidationError for bad input, NotFoundError when the session
            does not exist
        """
        if role not in VALID_ROLES:
            return validation_error(
                f"Invalid role: {role}. Must be 'user', 'assistant', or 'system'",
                context={"role": role},
            )

        if not isinstance(text, str) or text == "":
            return validation_error(
                "text required", context={"session_id": session_id}
            )

        meta_key = self.keys.session_meta(user_id, session_id)
        stream_key = self.keys.messages(user_id, session_id)

        try:
            async with self.redis_client.pipeline(transaction=True) as pipe:
                for _ in range(WATCH_ATTEMPTS):
                    try:
                        await pipe.watch(meta_key, stream_key)
                        meta = await pipe.hgetall(meta_key)
                        if not meta:
                            return not_found_error(
                                f"Session '{session_id}' not found",
                                context={"session_id": session_id},
                            )

                        now = await server_time_ms(self.redis_client)
                        last: List[StreamEntry] = await pipe.xrevrange(
                            stream_key, "+", "-", count=1
                        )
                        ts = max(now, _entry_ms(last[0][0]) if last else 0)
                        updated_at = max(int(meta.get("updatedAt") or 0), ts)

                        pipe.multi()
                        pipe.xadd(
                            stream_key, {"role": role, "text": text}, id=f"{ts}-*"
                        )
                        pipe.hset(meta_key, "updatedAt", str(updated_at))
                        entry_id, _ = await pipe.execute()
                        break
                    except WatchError:
                        continue
                else:
                    raise ConcurrentModificationError(
                        f"Session '{session_id}' is being modified"
                    )

        except (RedisError, ConcurrentModificationError) as e:
            log_event(
                "message_append_error",
                {"session_id": session_id, "role": role, "error": str(e)},
                level=logging.ERROR,
            )
            return storage_error(
                f"Failed to append message: {e}",
                context={"session_id": session_id},
            )

        message = Message.from_stream_entry(entry_id, {"role": role, "text": text})

        log_event(
            "message_appended",
            {
                "message_id": message.id,
                "session_id": session_id,
                "role": role,
                "ts": message.ts,
            },
        )

        return Success(message)

    @track(
        operation="messages_list",
        include_args=["user_id", "session_id"],
        track_performance=True,
        frequency="high_frequency",
    )
    async def list_messages(
        self, user_id: str, session_id: str
    ) -> Result[List[Message], str]:
        """Return the full log of a session, oldest first."""
        try:
            entries: List[StreamEntry] = await self.redis_client.xrange(
                self.keys.messages(user_id, session_id), "-", "+"
            )
        except RedisError as e:
            return self._read_failure(session_id, e)

        return Success(self._to_messages(entries))

    @track(
        operation="messages_list_recent",
        include_args=["user_id", "session_id", "limit"],
        track_performance=True,
        frequency="high_frequency",
    )
    async def list_recent_messages(
        self, user_id: str, session_id: str, limit: int = 20
    ) -> Result[List[Message], str]:
        """
        Return the last ``limit`` messages of a session, oldest first.
        """
        if limit < 1:
            return validation_error(
                "Limit must be at least 1", context={"limit": limit}
            )

        try:
            entries: List[StreamEntry] = await self.redis_client.xrevrange(
                self.keys.messages(user_id, session_id), "+", "-", count=limit
            )
        except RedisError as e:
            return self._read_failure(session_id, e)

        return Success(self._to_messages(reversed(entries)))

    @staticmethod
    def _to_messages(entries) -> List[Message]:
        messages = [
            Message.from_stream_entry(entry_id, fields) for entry_id, fields in entries
        ]
        # Stable sort: equal ts keep insertion order
        messages.sort(key=lambda m: m.ts)
        return messages

    def _read_failure(self, session_id: str, error: Exception):
        log_event(
            "messages_read_error",
            {"session_id": session_id, "error": str(error)},
            level=logging.ERROR,
        )
        return storage_error(
            f"Failed to read messages: {error}",
            context={"session_id": session_id},
        )
