"""
Core data models for ChatJPT.

Timestamps are integer epoch milliseconds taken from the storage server's
clock. Models serialize with the camelCase names the web client expects
(``model_dump(by_alias=True)``).
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    # Reserved; the send flow never emits system messages
    SYSTEM = "system"


class Identity(BaseModel):
    """Authenticated caller, as resolved from a bearer credential."""

    uid: str = Field(description="Opaque user id")
    email: Optional[str] = Field(default=None, description="Email claim, if any")
    name: Optional[str] = Field(default=None, description="Display name, if any")


class Session(BaseModel):
    """A chat session owned by one user."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(description="Session UUID")
    title: str = Field(description="Session title")
    created_at: int = Field(alias="createdAt", description="Creation time (ms)")
    updated_at: int = Field(alias="updatedAt", description="Last activity time (ms)")

    @classmethod
    def from_redis(cls, session_id: str, meta: Dict[str, str]) -> "Session":
        return cls(
            id=session_id,
            title=meta.get("title", ""),
            created_at=int(meta.get("createdAt") or 0),
            updated_at=int(meta.get("updatedAt") or 0),
        )

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class Message(BaseModel):
    """One entry of a session's message log."""

    id: str = Field(description="Stream entry id, order-preserving")
    role: str = Field(description="user, assistant or system")
    text: str = Field(description="Message body")
    ts: int = Field(description="Acceptance time (ms)")

    @classmethod
    def from_stream_entry(cls, entry_id: str, fields: Dict[str, str]) -> "Message":
        """Build a message from an XADD/XRANGE entry; ts is the id's ms part."""
        ms, _, _ = entry_id.partition("-")
        return cls(
            id=entry_id,
            role=fields.get("role", ""),
            text=fields.get("text", ""),
            ts=int(ms) if ms.isdigit() else 0,
        )

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump()


class Exchange(BaseModel):
    """The user message and assistant reply produced by one send."""

    user: Message
    assistant: Message

    def to_api(self) -> Dict[str, Any]:
        return {"user": self.user.to_api(), "assistant": self.assistant.to_api()}
