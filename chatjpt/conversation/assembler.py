"""
Conversation assembly: the send-message pipeline.

Appends the user's message, builds a prompt from the recent history,
asks the reply generator for an answer and stores it. Each append also
bumps the session's activity time. A reply is always produced: generator
failures and timeouts become a fixed fallback text.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Tuple

from ..llm import ReplyGenerator, ReplyGeneratorError
from ..models import Exchange, Message, MessageRole
from ..storage import RedisMessageLog
from ..utils.logging import log_event, log_operation_error, track
from ..utils.result import Result, Success
from .prompts import PromptBuilder, prepare_context

FALLBACK_REPLY = "⚠️ AI service error."
EMPTY_REPLY = "…"

SessionKey = Tuple[str, str]


class SessionLocks:
    """
    Per-session asyncio locks, created on demand and dropped when the last
    holder or waiter leaves.

    Only serializes requests within one process.
    """

    def __init__(self):
        self._locks: Dict[SessionKey, asyncio.Lock] = {}
        self._holders: Dict[SessionKey, int] = {}

    @asynccontextmanager
    async def hold(self, key: SessionKey) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if not self._holders[key]:
                del self._holders[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class ConversationAssembler:
    """
    Runs one user turn against a session.

    Dependencies are injected once at startup; the assembler itself keeps
    no per-request state apart from the optional session locks.
    """

    def __init__(
        self,
        message_log: RedisMessageLog,
        reply_generator: ReplyGenerator,
        default_system_prompt: str,
        history_window: int = 20,
        reply_timeout_seconds: float = 60,
        serialize_sessions: bool = True,
    ):
        self.message_log = message_log
        self.reply_generator = reply_generator
        self.prompt_builder = PromptBuilder(default_system_prompt)
        self.history_window = history_window
        self.reply_timeout_seconds = reply_timeout_seconds
        self.session_locks: Optional[SessionLocks] = (
            SessionLocks() if serialize_sessions else None
        )

    @track(
        operation="conversation_send",
        include_args=["user_id", "session_id", "text"],
        track_performance=True,
        frequency="low_frequency",
    )
    async def send_message(
        self, user_id: str, session_id: str, text: str
    ) -> Result[Exchange, str]:
        """
        Record a user message and produce the assistant reply.

        Args:
            user_id: Owner of the session
            session_id: Target session
            text: User message body

        Returns:
            Success with the stored user and assistant messages, or the
            store's Failure when the user message cannot be recorded or the
            reply cannot be stored
        """
        if self.session_locks is None:
            return await self._run_turn(user_id, session_id, text)

        async with self.session_locks.hold((user_id, session_id)):
            return await self._run_turn(user_id, session_id, text)

    async def _run_turn(
        self, user_id: str, session_id: str, text: str
    ) -> Result[Exchange, str]:
        user_result = await self.message_log.append_message(
            user_id=user_id,
            session_id=session_id,
            role=MessageRole.USER.value,
            text=text,
        )
        if user_result.is_failure():
            return user_result
        user_message: Message = user_result.unwrap()

        context = await self._load_context(user_id, session_id, user_message)
        prompt = self.prompt_builder.build_prompt(context)

        log_event(
            "reply_prompt_built",
            {
                "session_id": session_id,
                "context_messages": len(context),
                "prompt_length": len(prompt),
            },
            level=logging.DEBUG,
        )

        reply_text = await self._generate_reply(session_id, prompt)

        assistant_result = await self.message_log.append_message(
            user_id=user_id,
            session_id=session_id,
            role=MessageRole.ASSISTANT.value,
            text=reply_text,
        )
        if assistant_result.is_failure():
            return assistant_result
        assistant_message: Message = assistant_result.unwrap()

        return Success(Exchange(user=user_message, assistant=assistant_message))

    async def _load_context(
        self, user_id: str, session_id: str, user_message: Message
    ) -> List[Message]:
        window_result = await self.message_log.list_recent_messages(
            user_id=user_id, session_id=session_id, limit=self.history_window
        )
        if window_result.is_failure():
            log_event(
                "message_history_unavailable",
                {"session_id": session_id, "error": window_result.error},
                level=logging.WARNING,
            )
            window: List[Message] = []
        else:
            window = window_result.unwrap()

        return prepare_context(window, user_message)

    async def _generate_reply(self, session_id: str, prompt: str) -> str:
        """Call the generator; any failure or timeout yields the fallback text."""
        try:
            async with asyncio.timeout(self.reply_timeout_seconds):
                reply = await self.reply_generator.generate(prompt)
        except TimeoutError as e:
            log_operation_error(
                "reply_generation",
                e,
                session_id=session_id,
                timeout_seconds=self.reply_timeout_seconds,
            )
            return FALLBACK_REPLY
        except ReplyGeneratorError as e:
            log_operation_error(
                "reply_generation",
                e,
                session_id=session_id,
                generator_id=e.generator_id,
                failure_kind=e.error_type,
                retryable=e.retryable,
                details=e.metadata,
            )
            return FALLBACK_REPLY
        except Exception as e:
            log_operation_error("reply_generation", e, session_id=session_id)
            return FALLBACK_REPLY

        if not isinstance(reply, str) or not reply.strip():
            log_event(
                "reply_empty",
                {"session_id": session_id},
                level=logging.WARNING,
            )
            return EMPTY_REPLY

        return reply
