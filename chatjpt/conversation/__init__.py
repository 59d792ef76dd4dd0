"""
Conversation assembly for ChatJPT.
"""

from .assembler import (
    EMPTY_REPLY,
    FALLBACK_REPLY,
    ConversationAssembler,
    SessionLocks,
)
from .prompts import PromptBuilder, prepare_context

__all__ = [
    "ConversationAssembler",
    "EMPTY_REPLY",
    "FALLBACK_REPLY",
    "PromptBuilder",
    "SessionLocks",
    "prepare_context",
]
