"""
Operation tracking decorator.

``@track`` logs start, completion and failure of an operation with its
duration, a sanitized view of selected arguments, and a summary of the
returned value. Hot read paths are sampled by frequency class.
"""

import asyncio
import functools
import logging
import random
import time
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union, cast

from ..result import Failure, Success
from .context import get_correlation_id
from .structured import log_event

F = TypeVar("F", bound=Callable[..., Any])


class LogConfig:
    """Global configuration for operation tracking."""

    SAMPLE_RATES = {
        "high_frequency": 0.1,
        "medium_frequency": 0.5,
        "low_frequency": 1.0,
    }

    SENSITIVE_KEYS = {"token", "secret", "key", "api_key", "auth", "authorization"}
    LARGE_CONTENT_KEYS = {"text", "prompt", "content", "body"}
    MAX_ARG_LENGTH = 100

    # Operations that mutate chat state are never sampled out
    CRITICAL_OPS = {
        "create",
        "rename",
        "delete",
        "append",
        "send",
        "initialize",
        "generate",
    }


def track(
    operation: Optional[str] = None,
    level: int = logging.INFO,
    frequency: str = "low_frequency",
    include_args: Union[bool, List[str]] = True,
    include_result: bool = True,
    track_performance: bool = True,
    emit_events: bool = True,
):
    """
    Decorator that logs an operation's lifecycle.

    Args:
        operation: Operation name (derived from the function if None)
        level: Log level for start and completion events
        frequency: Sampling class (high_frequency, medium_frequency, low_frequency)
        include_args: True for all kwargs, a list for specific kwargs, False for none
        include_result: Whether to summarize the return value
        track_performance: Whether to record duration_ms
        emit_events: False to stay silent

    Examples:
        @track(operation="session_create", include_args=["user_id"])
        @track(frequency="high_frequency")
    """

    def decorator(func: F) -> F:
        op_name = operation or _get_operation_name(func)

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            if not _should_log(op_name, frequency):
                return await func(*args, **kwargs)

            tracker = OperationTracker(
                operation=op_name,
                level=level,
                include_args=include_args,
                include_result=include_result,
                track_performance=track_performance,
                emit_events=emit_events,
                kwargs=kwargs,
            )

            tracker.on_enter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                tracker.on_exit(e)
                raise
            tracker.set_result(result)
            tracker.on_exit(None)
            return result

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            if not _should_log(op_name, frequency):
                return func(*args, **kwargs)

            tracker = OperationTracker(
                operation=op_name,
                level=level,
                include_args=include_args,
                include_result=include_result,
                track_performance=track_performance,
                emit_events=emit_events,
                kwargs=kwargs,
            )

            tracker.on_enter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                tracker.on_exit(e)
                raise
            tracker.set_result(result)
            tracker.on_exit(None)
            return result

        if asyncio.iscoroutinefunction(func):
            return cast(F, async_wrapper)
        return cast(F, sync_wrapper)

    return decorator


class OperationTracker:
    """Holds the state of one tracked call and emits its events."""

    def __init__(
        self,
        operation: str,
        level: int,
        include_args: Union[bool, List[str]],
        include_result: bool,
        track_performance: bool,
        emit_events: bool,
        kwargs: dict,
    ):
        self.operation = operation
        self.level = level
        self.include_args = include_args
        self.include_result = include_result
        self.track_performance = track_performance
        self.emit_events = emit_events
        self.kwargs = kwargs

        self.start_time: Optional[float] = None
        self.correlation_id: Optional[str] = None
        self.result: Any = None
        self.metrics: Dict[str, Any] = {}

    def on_enter(self) -> None:
        if self.track_performance:
            self.start_time = time.perf_counter()

        self.correlation_id = get_correlation_id()

        if self.emit_events and self.level <= logging.INFO:
            context: Dict[str, Any] = {
                "operation": self.operation,
                "correlation_id": self.correlation_id,
            }
            if self.include_args:
                context.update(_extract_safe_args(self.kwargs, self.include_args))
            log_event("operation_started", context, self.level)

    def on_exit(self, error: Optional[BaseException]) -> None:
        if self.track_performance and self.start_time:
            self.metrics["duration_ms"] = int(
                (time.perf_counter() - self.start_time) * 1000
            )

        if not self.emit_events:
            return

        context: Dict[str, Any] = {
            "operation": self.operation,
            "correlation_id": self.correlation_id,
            "success": error is None,
            **self.metrics,
        }

        if error is None:
            if self.include_result and self.result is not None:
                context.update(_extract_result_info(self.result))
            log_event("operation_completed", context, self.level)
        else:
            context.update(
                {
                    "error_type": type(error).__name__,
                    "error_message": str(error),
                }
            )
            log_event("operation_failed", context, logging.ERROR)

    def set_result(self, result: Any) -> None:
        self.result = result


def _get_operation_name(func: Callable) -> str:
    if hasattr(func, "__qualname__"):
        return func.__qualname__.replace(".", "_").lower()
    return func.__name__.lower()


def _should_log(operation: str, frequency: str) -> bool:
    if any(critical in operation.lower() for critical in LogConfig.CRITICAL_OPS):
        return True

    sample_rate = LogConfig.SAMPLE_RATES.get(frequency, 1.0)
    return random.random() < sample_rate


def _extract_safe_args(
    kwargs: dict, include_spec: Union[bool, List[str]]
) -> Dict[str, Any]:
    if include_spec is True:
        include_keys = set(kwargs.keys())
    elif isinstance(include_spec, list):
        include_keys = set(include_spec)
    else:
        return {}

    return {
        f"arg_{key}": _sanitize_value(key, value)
        for key, value in kwargs.items()
        if key in include_keys
    }


def _sanitize_value(key: str, value: Any) -> Any:
    if any(sensitive in key.lower() for sensitive in LogConfig.SENSITIVE_KEYS):
        return "[REDACTED]"

    # Message bodies are summarized, never logged verbatim
    if key.lower() in LogConfig.LARGE_CONTENT_KEYS and isinstance(value, str):
        return f"<{len(value)} chars>"

    if isinstance(value, (str, int, float, bool, type(None))):
        if isinstance(value, str) and len(value) > LogConfig.MAX_ARG_LENGTH:
            return f"{value[:LogConfig.MAX_ARG_LENGTH]}..."
        return value
    return f"<{type(value).__name__}>"


def _extract_result_info(result: Any) -> Dict[str, Any]:
    """Summarize a return value, unwrapping Success/Failure results."""
    info: Dict[str, Any] = {"result_type": type(result).__name__}

    if isinstance(result, (Success, Failure)):
        info["operation_success"] = result.is_success()
        if result.is_failure():
            info["failure_type"] = result.error_type
            return info
        result = result.unwrap()

    if isinstance(result, (list, tuple)):
        info["result_length"] = len(result)
    elif isinstance(result, dict):
        info["result_keys_count"] = len(result)
    elif isinstance(result, str):
        info["result_length"] = len(result)
    elif isinstance(result, bool):
        info["result_value"] = result

    return info


def log_operation_error(operation: str, error: BaseException, **context) -> None:
    """Log an operation failure that was handled rather than raised."""
    context.update(
        {
            "operation": operation,
            "correlation_id": get_correlation_id(),
            "success": False,
            "error_type": type(error).__name__,
            "error_message": str(error),
        }
    )
    log_event("operation_failed", context, logging.ERROR)
