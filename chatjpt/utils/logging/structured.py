"""
Structured event logging with a human-readable development formatter.

Events are ordinary log records carrying a ``structured_data`` dict, so they
flow through the standard logging module and any handler attached to the
``chatjpt`` logger.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional


class StructuredLogger:
    """
    Creates consistent, searchable log events.

    Every event carries its name and the current correlation id, plus any
    caller-supplied data.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def event(
        self,
        event_name: str,
        data: Optional[Dict[str, Any]] = None,
        level: int = logging.INFO,
    ):
        """
        Log a structured event with optional data.

        Args:
            event_name: Name of the event (e.g., 'session_created')
            data: Dictionary of structured data to include
            level: Log level (defaults to INFO)
        """
        from .context import get_correlation_id

        if not self.logger.isEnabledFor(level):
            return

        structured_data = {
            "event": event_name,
            "correlation_id": get_correlation_id(),
        }
        if data:
            structured_data.update(data)

        record = self.logger.makeRecord(
            self.logger.name, level, "(structured)", 0, event_name, (), None
        )
        record.structured_data = structured_data

        self.logger.handle(record)


_global_logger: Optional[StructuredLogger] = None


def get_structured_logger(name: str = "chatjpt") -> StructuredLogger:
    """Get or create the structured logger instance."""
    global _global_logger
    if _global_logger is None:
        _global_logger = StructuredLogger(name)
    return _global_logger


def log_event(
    event_name: str, data: Optional[Dict[str, Any]] = None, level: int = logging.INFO
):
    """
    Convenience function for logging structured events.

    Example::

        log_event("message_appended", {
            "session_id": "2f1c...",
            "role": "assistant",
            "ts": 1718000000123,
        })
    """
    get_structured_logger().event(event_name, data, level)


def create_development_formatter() -> logging.Formatter:
    """
    Create a human-readable formatter for development environments.

    Structured records are rendered per event family; plain records fall
    back to ``time | level | message``.
    """

    class DevelopmentFormatter(logging.Formatter):
        def format(self, record: logging.LogRecord) -> str:
            timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[
                :-3
            ]

            data: Optional[dict] = getattr(record, "structured_data", None)

            if not data:
                return f"{timestamp} | {record.levelname:5} | {record.getMessage()}"

            event = data.get("event", "")
            operation = data.get("operation", "")

            if event == "operation_started":
                message_content = f"🚀 {operation or 'operation'} started"
            elif event == "operation_completed":
                message_content = self._format_operation_success(data, operation)
            elif event == "operation_failed":
                message_content = self._format_operation_error(data, operation)
            elif event.startswith(("session_", "message_")):
                message_content = self._format_chat_event(data, event)
            elif event.startswith(("reply_", "gemini_")):
                message_content = self._format_reply_event(data, event)
            elif event in ("http_request", "auth_rejected"):
                message_content = self._format_request_event(data, event)
            else:
                message_content = f"📝 {event}" if event else "📝 log_event"

            return f"{timestamp} | {record.levelname:5} | {message_content}"

        @staticmethod
        def _format_duration(duration_ms: int) -> str:
            if duration_ms >= 1000:
                return f"{duration_ms/1000:.1f}s"
            return f"{duration_ms}ms"

        def _format_operation_success(self, data: dict, operation: str) -> str:
            duration_ms = data.get("duration_ms", 0)

            if duration_ms < 50:
                duration_emoji = "⚡"
            elif duration_ms > 2000:
                duration_emoji = "🐌"
            else:
                duration_emoji = "⏱️"

            details = []
            if data.get("operation_success") is False:
                details.append(f"failed: {data.get('failure_type', 'Failure')}")
            if "result_length" in data:
                details.append(f"{data['result_length']} items")

            base = f"{duration_emoji} {self._format_duration(duration_ms)} {operation}"
            return f"{base} ({', '.join(details)})" if details else base

        def _format_operation_error(self, data: dict, operation: str) -> str:
            duration_ms = data.get("duration_ms", 0)
            error_type = data.get("error_type", "Error")
            error_message = data.get("error_message", "")

            duration_part = f" {self._format_duration(duration_ms)}" if duration_ms else ""

            if len(error_message) > 60:
                error_message = error_message[:57] + "..."

            return (
                f"❌{duration_part} {operation} failed ({error_type}: {error_message})"
            )

        def _format_chat_event(self, data: dict, event: str) -> str:
            session_id = str(data.get("session_id", ""))[:8]
            if event == "message_appended":
                return f"💬 {event} ({data.get('role', '?')}, session={session_id})"
            if session_id:
                return f"🗂️ {event} (session={session_id})"
            if "count" in data:
                return f"🗂️ {event} ({data['count']} sessions)"
            return f"🗂️ {event}"

        def _format_reply_event(self, data: dict, event: str) -> str:
            if "prompt_length" in data:
                return f"🤖 {event} (prompt: {data['prompt_length']} chars)"
            if "reply_length" in data:
                return f"🤖 {event} ({data['reply_length']} chars)"
            if "error_type" in data:
                return f"🤖 {event} ({data['error_type']})"
            return f"🤖 {event}"

        def _format_request_event(self, data: dict, event: str) -> str:
            if event == "http_request":
                return (
                    f"🌐 {data.get('method', '?')} {data.get('path', '?')} "
                    f"→ {data.get('status_code', '?')} "
                    f"({self._format_duration(data.get('duration_ms', 0))})"
                )
            return f"🔒 {event} ({data.get('reason', 'unknown')})"

    return DevelopmentFormatter()
