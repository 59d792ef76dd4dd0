import pytest

from chatjpt.models import Message
from chatjpt.storage import RedisMessageLog
from tests.mocks import MockRedis

STREAM = "test:users:alice:sessions:{}:messages"
META = "test:users:alice:sessions:{}:meta"


@pytest.fixture
def session_id(redis_client: MockRedis) -> str:
    session_id = "s1"
    redis_client._hset(
        META.format(session_id),
        mapping={"title": "New chat", "createdAt": "1", "updatedAt": "1"},
    )
    redis_client._sadd("test:users:alice:sessions", session_id)
    return session_id


async def _append(log: RedisMessageLog, session_id: str, text: str, role="user"):
    result = await log.append_message(
        user_id="alice", session_id=session_id, role=role, text=text
    )
    assert result.is_success(), result
    return result.unwrap()


class TestAppendMessage:
    @pytest.mark.asyncio
    async def test_append_message(
        self, message_log: RedisMessageLog, redis_client: MockRedis, session_id: str
    ):
        message = await _append(message_log, session_id, "Hello")

        assert isinstance(message, Message)
        assert message.role == "user"
        assert message.text == "Hello"
        assert message.id.startswith(f"{message.ts}-")
        assert redis_client.streams[STREAM.format(session_id)] == [
            (message.id, {"role": "user", "text": "Hello"})
        ]

    @pytest.mark.asyncio
    async def test_append_keeps_text_verbatim(
        self, message_log: RedisMessageLog, session_id: str
    ):
        message = await _append(message_log, session_id, "  spaced  ")
        assert message.text == "  spaced  "

    @pytest.mark.asyncio
    async def test_append_accepts_whitespace_only_text(
        self, message_log: RedisMessageLog, session_id: str
    ):
        message = await _append(message_log, session_id, "   ")
        assert message.text == "   "

    @pytest.mark.asyncio
    async def test_append_bumps_session_updated_at(
        self, message_log: RedisMessageLog, redis_client: MockRedis, session_id: str
    ):
        first = await _append(message_log, session_id, "one")
        meta = redis_client.hashes[META.format(session_id)]
        assert meta["updatedAt"] == str(first.ts)

        second = await _append(message_log, session_id, "two", role="assistant")
        meta = redis_client.hashes[META.format(session_id)]
        assert meta["updatedAt"] == str(second.ts)
        assert meta["title"] == "New chat"
        assert meta["createdAt"] == "1"

    @pytest.mark.asyncio
    async def test_append_never_moves_updated_at_backwards(
        self, message_log: RedisMessageLog, redis_client: MockRedis, session_id: str
    ):
        future = redis_client.clock_ms + 60_000
        redis_client._hset(META.format(session_id), "updatedAt", str(future))

        message = await _append(message_log, session_id, "hi")

        assert message.ts < future
        assert redis_client.hashes[META.format(session_id)]["updatedAt"] == str(future)

    @pytest.mark.asyncio
    async def test_append_ts_never_precedes_last_entry(
        self, message_log: RedisMessageLog, redis_client: MockRedis, session_id: str
    ):
        first = await _append(message_log, session_id, "a")
        redis_client.clock_ms = first.ts - 5_000

        second = await _append(message_log, session_id, "b")

        assert second.ts == first.ts
        assert second.id > first.id

    @pytest.mark.asyncio
    async def test_append_retries_after_concurrent_append(
        self, message_log: RedisMessageLog, redis_client: MockRedis, session_id: str
    ):
        stream_key = STREAM.format(session_id)
        redis_client.before_execute.append(
            lambda r: r._xadd(stream_key, {"role": "user", "text": "racer"})
        )

        message = await _append(message_log, session_id, "mine")

        assert [fields["text"] for _, fields in redis_client.streams[stream_key]] == [
            "racer",
            "mine",
        ]
        assert redis_client.streams[stream_key][-1][0] == message.id

    @pytest.mark.asyncio
    async def test_append_ids_strictly_increase(self, session_id: str):
        frozen = MockRedis(tick_ms=0)
        frozen._hset(META.format(session_id), mapping={"title": "x", "updatedAt": "0"})
        log = RedisMessageLog(frozen, key_prefix="test")

        first = await _append(log, session_id, "a")
        second = await _append(log, session_id, "b", role="assistant")

        assert first.ts == second.ts
        assert first.id != second.id
        messages = (
            await log.list_messages(user_id="alice", session_id=session_id)
        ).unwrap()
        assert [m.text for m in messages] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_append_rejects_invalid_role(
        self, message_log: RedisMessageLog, redis_client: MockRedis, session_id: str
    ):
        result = await message_log.append_message(
            user_id="alice", session_id=session_id, role="robot", text="hi"
        )

        assert result.error_type == "ValidationError"
        assert STREAM.format(session_id) not in redis_client.streams

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", [None, "", 42])
    async def test_append_requires_text(
        self, message_log: RedisMessageLog, redis_client: MockRedis, session_id: str, text
    ):
        result = await message_log.append_message(
            user_id="alice", session_id=session_id, role="user", text=text
        )

        assert result.status_code == 400
        assert result.error == "text required"
        assert STREAM.format(session_id) not in redis_client.streams

    @pytest.mark.asyncio
    async def test_append_to_missing_session(
        self, message_log: RedisMessageLog, redis_client: MockRedis
    ):
        result = await message_log.append_message(
            user_id="alice", session_id="missing", role="user", text="hi"
        )

        assert result.status_code == 404
        assert redis_client.streams == {}

    @pytest.mark.asyncio
    async def test_append_racing_delete_leaves_no_orphans(
        self, message_log: RedisMessageLog, redis_client: MockRedis, session_id: str
    ):
        redis_client.before_execute.append(
            lambda r: r._delete(META.format(session_id), STREAM.format(session_id))
        )

        result = await message_log.append_message(
            user_id="alice", session_id=session_id, role="user", text="late"
        )

        assert result.status_code == 404
        assert STREAM.format(session_id) not in redis_client.streams

    @pytest.mark.asyncio
    async def test_append_storage_failure(
        self, message_log: RedisMessageLog, redis_client: MockRedis, session_id: str
    ):
        redis_client.failing_commands.add("xadd")

        result = await message_log.append_message(
            user_id="alice", session_id=session_id, role="user", text="hi"
        )

        assert result.error_type == "StorageError"
        assert result.status_code == 500


class TestListMessages:
    @pytest.mark.asyncio
    async def test_list_messages_missing_session_is_empty(
        self, message_log: RedisMessageLog
    ):
        result = await message_log.list_messages(user_id="alice", session_id="none")
        assert result.unwrap() == []

    @pytest.mark.asyncio
    async def test_list_messages_in_insertion_order(
        self, message_log: RedisMessageLog, session_id: str
    ):
        texts = [f"m{i}" for i in range(6)]
        for text in texts:
            await _append(message_log, session_id, text)

        messages = (
            await message_log.list_messages(user_id="alice", session_id=session_id)
        ).unwrap()

        assert [m.text for m in messages] == texts
        assert [m.ts for m in messages] == sorted(m.ts for m in messages)

    @pytest.mark.asyncio
    async def test_list_messages_scoped_to_user(
        self, message_log: RedisMessageLog, session_id: str
    ):
        await _append(message_log, session_id, "private")

        result = await message_log.list_messages(user_id="bob", session_id=session_id)

        assert result.unwrap() == []


class TestListRecentMessages:
    @pytest.mark.asyncio
    async def test_recent_messages_returns_tail_oldest_first(
        self, message_log: RedisMessageLog, session_id: str
    ):
        for i in range(25):
            await _append(message_log, session_id, f"m{i}")

        recent = (
            await message_log.list_recent_messages(
                user_id="alice", session_id=session_id, limit=20
            )
        ).unwrap()

        assert len(recent) == 20
        assert [m.text for m in recent] == [f"m{i}" for i in range(5, 25)]

    @pytest.mark.asyncio
    async def test_recent_messages_fewer_than_limit(
        self, message_log: RedisMessageLog, session_id: str
    ):
        await _append(message_log, session_id, "only")

        recent = (
            await message_log.list_recent_messages(
                user_id="alice", session_id=session_id, limit=20
            )
        ).unwrap()

        assert [m.text for m in recent] == ["only"]

    @pytest.mark.asyncio
    async def test_recent_messages_rejects_bad_limit(
        self, message_log: RedisMessageLog, session_id: str
    ):
        result = await message_log.list_recent_messages(
            user_id="alice", session_id=session_id, limit=0
        )
        assert result.error_type == "ValidationError"

    @pytest.mark.asyncio
    async def test_recent_messages_storage_failure(
        self, message_log: RedisMessageLog, redis_client: MockRedis, session_id: str
    ):
        redis_client.failing_commands.add("xrevrange")

        result = await message_log.list_recent_messages(
            user_id="alice", session_id=session_id
        )

        assert result.error_type == "StorageError"
