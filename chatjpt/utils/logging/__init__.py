"""
Structured logging for ChatJPT.

One decorator (``track``) instruments store, assembler and generator
operations; ``log_event`` emits ad-hoc structured events.
"""

from .context import get_correlation_id, reset_correlation_id, set_correlation_id
from .smart_logger import log_operation_error, track
from .structured import StructuredLogger, log_event

__all__ = [
    "track",
    "log_event",
    "get_correlation_id",
    "set_correlation_id",
    "reset_correlation_id",
    "log_operation_error",
    "StructuredLogger",
]
