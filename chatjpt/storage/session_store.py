"""
Session store for per-user chat sessions.

Provides operations for:
- Creating sessions with server-assigned timestamps
- Listing a user's most recently active sessions
- Renaming sessions
- Deleting sessions together with their message logs
"""

import logging
from typing import Any, Awaitable, Dict, List, Optional, Set, cast
from uuid import uuid4

import redis.asyncio as redis
from redis.exceptions import RedisError, WatchError

from ..models import Session
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

DEFAULT_SESSION_TITLE = "New chat"


class RedisSessionStore:
    """
    Redis-backed store of chat sessions.

    Data Structure Design:
    ----------------------
    1. Session metadata (Redis Hash):
       Key: "{prefix}:users:{uid}:sessions:{sid}:meta"
       Fields: title, createdAt, updatedAt (epoch ms)

    2. Session index (Redis Set):
       Key: "{prefix}:users:{uid}:sessions"
       Value: ids of every session the user owns

    Creation and deletion touch the hash, the index and the message stream
    in one MULTI/EXEC transaction. Rename WATCHes the hash so they
    never recreate a session deleted concurrently.

    All methods return Result types for consistent error handling.
    """

    def __init__(
        self,
        redis_client: "redis.Redis",
        key_prefix: str = "chatjpt",
        list_limit: int = 200,
    ):
        """
        Args:
            redis_client: Shared async Redis client (decode_responses=True)
            key_prefix: Namespace for all keys
            list_limit: Maximum sessions returned by list_sessions
        """
        self.redis_client = redis_client
        self.keys = ChatKeys(key_prefix)
        self.list_limit = list_limit

    @track(
        operation="session_list",
        include_args=["user_id"],
        track_performance=True,
        frequency="medium_frequency",
    )
    async def list_sessions(self, user_id: str) -> Result[List[Session], str]:
        """
        List a user's sessions, most recently updated first.

        Index entries whose metadata is gone are skipped. Sessions without
        an updatedAt sort as if it were 0.

        Returns:
            Success with at most ``list_limit`` sessions
        """
        try:
            client = self.redis_client
            session_ids = await cast(
                Awaitable[Set[str]], client.smembers(self.keys.session_index(user_id))
            )
            if not session_ids:
                return Success([])

            ordered_ids = list(session_ids)
            async with client.pipeline(transaction=False) as pipe:
                for session_id in ordered_ids:
                    pipe.hgetall(self.keys.session_meta(user_id, session_id))
                metas: List[Dict[str, str]] = await pipe.execute()

            sessions = [
                Session.from_redis(session_id, meta)
                for session_id, meta in zip(ordered_ids, metas)
                if meta
            ]
            sessions.sort(key=lambda s: s.updated_at, reverse=True)

            return Success(sessions[: self.list_limit])

        except RedisError as e:
            return self._storage_failure("session_list", e, user_id=user_id)

    @track(
        operation="session_create",
        include_args=["user_id"],
        track_performance=True,
        frequency="low_frequency",
    )
    async def create_session(
        self, user_id: str, title: Optional[str] = None
    ) -> Result[Session, str]:
        """
        Create a new session.

        Args:
            user_id: Owner of the session
            title: Optional title; absent or empty becomes "New chat"

        Returns:
            Success with the created session
        """
        if title is not None and not isinstance(title, str):
            return validation_error("title must be a string", context={"title": title})

        title = title or DEFAULT_SESSION_TITLE
        session_id = str(uuid4())

        try:
            client = self.redis_client
            now = await server_time_ms(client)

            async with client.pipeline(transaction=True) as pipe:
                pipe.hset(
                    self.keys.session_meta(user_id, session_id),
                    mapping={
                        "title": title,
                        "createdAt": str(now),
                        "updatedAt": str(now),
                    },
                )
                pipe.sadd(self.keys.session_index(user_id), session_id)
                await pipe.execute()

        except RedisError as e:
            return self._storage_failure("session_create", e, user_id=user_id)

        log_event(
            "session_created",
            {"user_id": user_id, "session_id": session_id},
        )

        return Success(
            Session(id=session_id, title=title, created_at=now, updated_at=now)
        )

    @track(
        operation="session_rename",
        include_args=["user_id", "session_id"],
        track_performance=True,
        frequency="low_frequency",
    )
    async def rename_session(
        self, user_id: str, session_id: str, title: Optional[str]
    ) -> Result[Session, str]:
        """
        Rename a session and bump its updatedAt.

        Returns:
            Success with the updated session, ValidationError when the
            title is missing or empty, NotFoundError when the session does
            not exist
        """
        if not isinstance(title, str) or title == "":
            return validation_error(
                "title required", context={"session_id": session_id}
            )

        meta_key = self.keys.session_meta(user_id, session_id)

        try:
            client = self.redis_client
            async with client.pipeline(transaction=True) as pipe:
                for _ in range(WATCH_ATTEMPTS):
                    try:
                        await pipe.watch(meta_key)
                        meta = await pipe.hgetall(meta_key)
                        if not meta:
                            return self._not_found(session_id)

                        now = await server_time_ms(client)
                        updated_at = max(now, int(meta.get("updatedAt") or 0))

                        pipe.multi()
                        pipe.hset(
                            meta_key,
                            mapping={"title": title, "updatedAt": str(updated_at)},
                        )
                        await pipe.execute()
                        break
                    except WatchError:
                        continue
                else:
                    raise ConcurrentModificationError(
                        f"Session '{session_id}' is being modified"
                    )

        except (RedisError, ConcurrentModificationError) as e:
            return self._storage_failure(
                "session_rename", e, user_id=user_id, session_id=session_id
            )

        log_event(
            "session_renamed",
            {"user_id": user_id, "session_id": session_id},
        )

        meta.update({"title": title, "updatedAt": str(updated_at)})
        return Success(Session.from_redis(session_id, meta))

    @track(
        operation="session_delete",
        include_args=["user_id", "session_id"],
        track_performance=True,
        frequency="low_frequency",
    )
    async def delete_session(
        self, user_id: str, session_id: str
    ) -> Result[Dict[str, Any], str]:
        """
        Delete a session and all of its messages.

        Deleting a session that does not exist succeeds.

        Returns:
            Success with {"deleted": bool}
        """
        try:
            async with self.redis_client.pipeline(transaction=True) as pipe:
                pipe.delete(
                    self.keys.session_meta(user_id, session_id),
                    self.keys.messages(user_id, session_id),
                )
                pipe.srem(self.keys.session_index(user_id), session_id)
                removed_keys, removed_index = await pipe.execute()

        except RedisError as e:
            return self._storage_failure(
                "session_delete", e, user_id=user_id, session_id=session_id
            )

        deleted = bool(removed_keys or removed_index)
        log_event(
            "session_deleted",
            {"user_id": user_id, "session_id": session_id, "existed": deleted},
        )

        return Success({"deleted": deleted})

    def _not_found(self, session_id: str):
        return not_found_error(
            f"Session '{session_id}' not found",
            context={"session_id": session_id},
        )

    def _storage_failure(self, operation: str, error: Exception, **context):
        log_event(
            f"{operation}_error",
            {**context, "error": str(error), "error_type": type(error).__name__},
            level=logging.ERROR,
        )
        return storage_error(
            f"Session storage failed during {operation}: {error}",
            context=context,
        )
